"""Two-level tag trees used for filter menus and LLM tag selection.

Each tree is a JSON list of ``{"name": ..., "children": [...]}`` nodes stored
under ``design_search/data``. Only the first two levels are meaningful.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from design_search.errors import BadRequestError
from design_search.models import FilterCategory, FilterResponse

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"


def load_tree(name: str) -> list[dict]:
    path = DATA_DIR / f"{name}.json"
    with open(path, encoding="utf-8") as f:
        nodes = json.load(f)
    if not isinstance(nodes, list):
        raise ValueError(f"taxonomy {path} must be a JSON list")
    return nodes


def _node_name(node) -> str:
    if not isinstance(node, dict):
        return ""
    name = node.get("name")
    return name.strip() if isinstance(name, str) else ""


def _unique(names):
    seen = set()
    out = []
    for name in names:
        if name and name not in seen:
            seen.add(name)
            out.append(name)
    return out


def collect_first_level_names(nodes: list[dict]) -> list[str]:
    return _unique(_node_name(n) for n in nodes)


def collect_second_level_names(nodes: list[dict]) -> list[str]:
    return _unique(
        _node_name(child)
        for node in nodes
        for child in (node.get("children") or [] if isinstance(node, dict) else [])
    )


def build_second_level_lookup(nodes: list[dict]) -> dict[str, list[str]]:
    """Map each first-level name to its children; childless parents are left out."""
    lookup: dict[str, list[str]] = {}
    for node in nodes:
        parent = _node_name(node)
        if not parent:
            continue
        children = _unique(_node_name(c) for c in node.get("children") or [])
        if not children:
            continue
        merged = lookup.get(parent, [])
        lookup[parent] = _unique(merged + children)
    return lookup


@dataclass
class Taxonomy:
    """A loaded tree with its derived views."""

    nodes: list[dict]
    first_level: list[str] = field(init=False)
    second_level: list[str] = field(init=False)
    second_level_lookup: dict[str, list[str]] = field(init=False)

    def __post_init__(self):
        self.first_level = collect_first_level_names(self.nodes)
        self.second_level = collect_second_level_names(self.nodes)
        self.second_level_lookup = build_second_level_lookup(self.nodes)


TAXONOMIES: dict[str, Taxonomy] = {
    name: Taxonomy(load_tree(name))
    for name in (
        "page_type", "app_category", "component_index", "layout_type",
        "tags_primary", "tags_style", "tags_components",
        "application_type", "industry_sector",
    )
}


@dataclass
class FilterDataset:
    key: str
    label: str
    taxonomy: Taxonomy

    @property
    def first_level(self) -> list[str]:
        return self.taxonomy.first_level

    @property
    def second_level_lookup(self) -> dict[str, list[str]]:
        return self.taxonomy.second_level_lookup


SCREEN_FILTER_DATASETS = [
    FilterDataset("page_type", "Page type", TAXONOMIES["page_type"]),
    FilterDataset("app_category", "App category", TAXONOMIES["app_category"]),
    FilterDataset("component_index", "Component index", TAXONOMIES["component_index"]),
    FilterDataset("tags_primary", "Function tags", TAXONOMIES["tags_primary"]),
    FilterDataset("tags_style", "Style tags", TAXONOMIES["tags_style"]),
    FilterDataset("tags_components", "Component tags", TAXONOMIES["tags_components"]),
    FilterDataset("layout_type", "Page layout", TAXONOMIES["layout_type"]),
]

PROJECT_FILTER_DATASETS = [
    FilterDataset("application_type", "Application type", TAXONOMIES["application_type"]),
    FilterDataset("industry_sector", "Industry sector", TAXONOMIES["industry_sector"]),
]


def get_filter_options(
    datasets: list[FilterDataset],
    category: str | None = None,
    parent: str | None = None,
) -> FilterResponse:
    """Filter menu entries.

    No category: every dataset with its first level. Category only: that
    dataset's first level. Category and parent: the parent's children.
    """
    category_key = (category or "").strip().lower()
    if not category_key:
        return FilterResponse(categories=[
            FilterCategory(key=d.key, label=d.label, options=list(d.first_level))
            for d in datasets
        ])

    dataset = next((d for d in datasets if d.key.lower() == category_key), None)
    if dataset is None:
        raise BadRequestError(f"Unsupported filter category: {category}")

    parent_name = (parent or "").strip()
    if parent_name:
        children = dataset.second_level_lookup.get(parent_name, [])
        return FilterResponse(categories=[
            FilterCategory(key=dataset.key, label=dataset.label, options=list(children), parent=parent_name)
        ])

    return FilterResponse(categories=[
        FilterCategory(key=dataset.key, label=dataset.label, options=list(dataset.first_level))
    ])
