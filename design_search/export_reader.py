"""Read the screenshot-analysis export used to seed the database.

Layout of an export root::

    <root>/<project dir>/imgs.json
    <root>/<project dir>/ui-analysis/<order>_<screenId>.json          (recommended)
    <root>/<project dir>/classic-analysis/<x>_<order>_<screenId>.json  (classic)
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from design_search.models import Project, Screen

logger = logging.getLogger(__name__)

ORIGINAL_URL_TEMPLATE = "https://bytescale.mobbin.com/FW25bBB/image/mobbin.com/prod/content/app_screens/{screen_id}.png"

UI_ANALYSIS = "ui-analysis"
CLASSIC_ANALYSIS = "classic-analysis"


def read_json(path: Path):
    return json.loads(Path(path).read_text(encoding="utf-8"))


def chunk(items: list, size: int) -> list[list]:
    if size <= 0:
        raise ValueError("batch size must be greater than 0")
    return [items[i:i + size] for i in range(0, len(items), size)]


def basename(url) -> str:
    return url.rsplit("/", 1)[-1] if isinstance(url, str) else ""


def normalize_string_list(raw) -> list[str]:
    if not isinstance(raw, list):
        return []
    out = []
    for item in raw:
        value = item.strip() if isinstance(item, str) else ""
        if value and value not in out:
            out.append(value)
    return out


def parse_order(raw) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else None
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def parse_analysis_file_name(file_name: str, kind: str) -> tuple[int | None, str]:
    """(order, screen id) encoded in an analysis file name."""
    parts = file_name.split(".")[0].split("_")
    if kind == UI_ANALYSIS:
        order, screen_id = (parts[0], parts[1]) if len(parts) > 1 else (None, "")
    else:
        order, screen_id = (parts[1], parts[2]) if len(parts) > 2 else (None, "")
    return parse_order(order), screen_id.strip()


def iter_project_dirs(roots: Iterable[Path]) -> Iterable[Path]:
    for root in roots:
        root = Path(root)
        if not root.is_dir():
            logger.warning("Export root does not exist, skipping: %s", root)
            continue
        for entry in sorted(root.iterdir()):
            if entry.name.startswith(".") or not (entry / "imgs.json").is_file():
                continue
            yield entry


def _lower_text(value) -> str:
    return value.strip().lower() if isinstance(value, str) else ""


def _section(analysis: dict, key: str) -> dict:
    value = analysis.get(key)
    return value if isinstance(value, dict) else {}


def analysis_to_screen(
    analysis: dict,
    project_id: str,
    screen_id: str,
    recommended: bool,
    order: int | None = None,
) -> Screen:
    metadata = _section(analysis, "metadata")
    style = _section(analysis, "global_style")
    layout = _section(analysis, "layout")
    fields = {
        "project_id": project_id,
        "screen_id": screen_id,
        "original_url": ORIGINAL_URL_TEMPLATE.format(screen_id=screen_id),
        "url": f"{screen_id}.webp",
        "is_recommended": recommended,
        "page_type": analysis.get("page_type"),
        "page_type_l2": analysis.get("page_type_l2"),
        "platform": _lower_text(analysis.get("platform")),
        "app_category": metadata.get("app_category"),
        "app_category_l2": metadata.get("app_category_l2"),
        "intent": metadata.get("intent"),
        "design_system": style.get("design_system"),
        "type": layout.get("type"),
        "spacing": layout.get("spacing"),
        "density": layout.get("density"),
        "type_l2": layout.get("type_l2"),
        "component_index": analysis.get("component_index"),
        "component_index_l2": analysis.get("component_index_l2"),
        "tags_primary": analysis.get("tags_primary"),
        "tags_primary_l2": analysis.get("tags_primary_l2"),
        "tags_style": analysis.get("tags_style"),
        "tags_style_l2": analysis.get("tags_style_l2"),
        "tags_components": analysis.get("tags_components"),
        "tags_components_l2": analysis.get("tags_components_l2"),
        "design_style": style.get("design_style"),
        "feeling": style.get("feeling"),
    }
    if order is not None:
        fields["order"] = order
    # drop missing values so model defaults apply
    return Screen.model_validate({k: v for k, v in fields.items() if v is not None})


def project_from_imgs(data: dict, meta: dict | None = None) -> Project:
    meta = meta or {}
    recommended = int(data.get("recommendedCount") or 0)
    classic = int(data.get("classicCount") or 0)
    return Project(
        project_id=str(data.get("id") or "").strip(),
        platform=_lower_text(data.get("platform")),
        app_name=data.get("appName") or "",
        name=data.get("name") or "",
        app_logo_url=basename(meta.get("appLogoUrl")),
        preview_screens=[
            basename(p.get("screenUrl")) for p in meta.get("previewScreens") or []
            if isinstance(p, dict) and p.get("screenUrl")
        ],
        screen_count=classic + recommended,
        recommended_count=recommended,
        app_tagline=meta.get("appTagline") or "",
        keywords=normalize_string_list(meta.get("keywords")),
        application_type=normalize_string_list(data.get("application_type")),
        industry_sector=normalize_string_list(data.get("industry_sector")),
    )


def _read_imgs(project_dir: Path) -> dict | None:
    path = project_dir / "imgs.json"
    try:
        data = read_json(path)
    except (OSError, ValueError) as e:
        logger.warning("Failed to read %s, skipping: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("%s is not a JSON object, skipping", path)
        return None
    return data


def _analysis_results(data: dict):
    for kind, key, recommended in (
        (UI_ANALYSIS, "uiParseResults", True),
        (CLASSIC_ANALYSIS, "classicParseResults", False),
    ):
        for result in data.get(key) or []:
            file_name = result.get("analysisFile") if isinstance(result, dict) else None
            if isinstance(file_name, str) and file_name:
                yield kind, file_name, recommended


def collect_export(roots: Iterable[Path], meta_map: dict | None = None) -> tuple[list[Project], list[Screen]]:
    projects: list[Project] = []
    screens: list[Screen] = []
    meta_map = meta_map or {}
    for project_dir in iter_project_dirs(roots):
        data = _read_imgs(project_dir)
        if data is None:
            continue
        project = project_from_imgs(data, meta_map.get(data.get("id")))
        if not project.project_id:
            logger.warning("imgs.json without id, skipping: %s", project_dir)
            continue
        projects.append(project)

        for kind, file_name, recommended in _analysis_results(data):
            path = project_dir / kind / file_name
            if not path.is_file():
                continue
            order, screen_id = parse_analysis_file_name(file_name, kind)
            if not screen_id:
                continue
            try:
                analysis = read_json(path)
            except (OSError, ValueError) as e:
                logger.warning("Unreadable analysis %s, skipping: %s", path, e)
                continue
            if not isinstance(analysis, dict):
                logger.warning("Analysis %s is not a JSON object, skipping", path)
                continue
            try:
                screens.append(analysis_to_screen(analysis, project.project_id, screen_id, recommended, order))
            except ValidationError as e:
                logger.warning("Invalid analysis %s, skipping: %s", path, e)
    return projects, screens


def collect_screen_orders(roots: Iterable[Path]) -> list[tuple[str, int]]:
    """(screen id, order) pairs from analysis file names; last occurrence wins."""
    orders: dict[str, int] = {}
    for project_dir in iter_project_dirs(roots):
        data = _read_imgs(project_dir)
        if data is None:
            continue
        for kind, file_name, _ in _analysis_results(data):
            if not (project_dir / kind / file_name).is_file():
                continue
            order, screen_id = parse_analysis_file_name(file_name, kind)
            if screen_id and order is not None:
                orders[screen_id] = order
    return list(orders.items())


def collect_project_taxonomies(roots: Iterable[Path]) -> list[dict]:
    """application_type / industry_sector per project id, merged across roots."""
    merged: dict[str, dict] = {}
    for project_dir in iter_project_dirs(roots):
        data = _read_imgs(project_dir)
        if data is None:
            continue
        project_id = data.get("id").strip() if isinstance(data.get("id"), str) else ""
        application_type = normalize_string_list(data.get("application_type"))
        industry_sector = normalize_string_list(data.get("industry_sector"))
        if not project_id or not (application_type or industry_sector):
            continue
        item = merged.setdefault(
            project_id,
            {"project_id": project_id, "application_type": [], "industry_sector": []},
        )
        for field, values in (("application_type", application_type), ("industry_sector", industry_sector)):
            for value in values:
                if value not in item[field]:
                    item[field].append(value)
    return list(merged.values())
