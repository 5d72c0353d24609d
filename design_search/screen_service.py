import logging
from datetime import datetime

from design_search import database
from design_search.errors import BadRequestError
from design_search.models import (
    FilterQuery,
    FilterResponse,
    Page,
    Screen,
    ScreenFuzzyQuery,
    ScreenListQuery,
    ScreenPreciseQuery,
    ScreenSearchResult,
)
from design_search.taxonomy import SCREEN_FILTER_DATASETS, get_filter_options as _filter_options

logger = logging.getLogger(__name__)

PRECISE_SCALAR_FIELDS = (
    "platform", "page_type_l2", "app_category_l2", "design_system",
    "type_l2", "spacing", "density",
)
PRECISE_ARRAY_FIELDS = (
    "component_index_l2", "tags_primary_l2", "tags_style_l2",
    "tags_components_l2", "design_style", "feeling",
)
FUZZY_SCALAR_FIELDS = ("page_type_l2", "app_category_l2", "design_system", "type_l2")
FUZZY_ARRAY_FIELDS = (
    "component_index_l2", "tags_primary_l2", "tags_style_l2", "tags_components_l2",
)

MIN_MATCH_PERCENTAGE = 50


def _clean_values(value) -> list[str]:
    if value is None:
        return []
    values = [value] if isinstance(value, str) else value
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]


def _mark_favorites(user_id: str, items: list[dict]) -> list[dict]:
    favorites = database.favorite_target_ids(
        user_id, "screen", [item["screen_id"] for item in items]
    )
    for item in items:
        item["is_favorite"] = item["screen_id"] in favorites
    return items


def find_by_project(user_id: str, query: ScreenListQuery) -> Page[Screen]:
    clauses = [database.eq("project_id", query.project_id)]
    total = database.count_screens(clauses)
    rows = database.select_screens(
        clauses,
        order_by='"order" ASC, created_at DESC, id DESC',
        limit=query.page_size,
        offset=(query.page - 1) * query.page_size,
    )
    _mark_favorites(user_id, rows)
    return Page[Screen](
        items=[Screen.model_validate(r) for r in rows],
        total=total,
        page=query.page,
        page_size=query.page_size,
    )


def get_filter_options(query: FilterQuery) -> FilterResponse:
    return _filter_options(SCREEN_FILTER_DATASETS, query.category, query.parent)


def precise_search(user_id: str, query: ScreenPreciseQuery) -> Page[Screen]:
    """Screens matching every provided field (AND), each field matching any of its values."""
    clauses = []
    if query.project_id:
        clauses.append(database.eq("project_id", query.project_id))
    for field in PRECISE_SCALAR_FIELDS:
        values = _clean_values(getattr(query, field))
        if values:
            clauses.append(database.in_ci(field, values))
    for field in PRECISE_ARRAY_FIELDS:
        values = _clean_values(getattr(query, field))
        if values:
            clauses.append(database.array_any_ci(field, values))

    total = database.count_screens(clauses)
    rows = database.select_screens(
        clauses,
        order_by='is_recommended DESC, "order" ASC, created_at DESC, id DESC',
        limit=query.page_size,
        offset=(query.page - 1) * query.page_size,
    )
    _mark_favorites(user_id, rows)
    return Page[Screen](
        items=[Screen.model_validate(r) for r in rows],
        total=total,
        page=query.page,
        page_size=query.page_size,
    )


def _timestamp(value) -> float:
    if not value:
        return 0.0
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def _fuzzy_sort_key(item: dict):
    order = item.get("order")
    return (
        -item["match_percentage"],
        0 if item.get("is_recommended") else 1,
        order if order is not None else float("inf"),
        -_timestamp(item.get("updated_at") or item.get("created_at")),
    )


def fuzzy_search(user_id: str, query: ScreenFuzzyQuery) -> Page[ScreenSearchResult]:
    """Score screens by the share of provided criteria they satisfy.

    Screens matching at least half of the criteria are returned, best first.
    """
    base = []
    if query.project_id:
        base.append(database.eq("project_id", query.project_id))
    if query.platform:
        base.append(database.in_ci("platform", [query.platform]))

    # (field, lowercase value set, is_array)
    criteria: list[tuple[str, set[str], bool]] = []
    clauses = []
    for field in FUZZY_SCALAR_FIELDS:
        values = _clean_values(getattr(query, field))
        if values:
            criteria.append((field, {v.lower() for v in values}, False))
            clauses.append(database.in_ci(field, values))
    for field in FUZZY_ARRAY_FIELDS:
        values = _clean_values(getattr(query, field))
        if values:
            criteria.append((field, {v.lower() for v in values}, True))
            clauses.append(database.array_any_ci(field, values))

    if not criteria:
        raise BadRequestError("At least one fuzzy search condition is required")

    candidates = database.select_screens(base + [database.any_of(clauses)])
    logger.info("Fuzzy search: %d criteria, %d candidates", len(criteria), len(candidates))

    scored = []
    for screen in candidates:
        matched = 0
        for field, wanted, is_array in criteria:
            if is_array:
                values = screen.get(field) or []
                if any(isinstance(v, str) and v.lower() in wanted for v in values):
                    matched += 1
            else:
                value = screen.get(field)
                if isinstance(value, str) and value.lower() in wanted:
                    matched += 1
        percentage = round(matched / len(criteria) * 100, 2)
        if percentage >= MIN_MATCH_PERCENTAGE:
            screen["match_percentage"] = percentage
            scored.append(screen)

    scored.sort(key=_fuzzy_sort_key)
    start = (query.page - 1) * query.page_size
    page_items = scored[start:start + query.page_size]
    _mark_favorites(user_id, page_items)

    return Page[ScreenSearchResult](
        items=[ScreenSearchResult.model_validate(s) for s in page_items],
        total=len(scored),
        page=query.page,
        page_size=query.page_size,
    )
