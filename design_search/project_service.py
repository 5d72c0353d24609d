import logging

from design_search import database
from design_search.errors import NotFoundError
from design_search.models import FilterQuery, FilterResponse, Page, Project, ProjectListQuery
from design_search.taxonomy import PROJECT_FILTER_DATASETS, get_filter_options as _filter_options

logger = logging.getLogger(__name__)


def _mark_favorites(user_id: str, items: list[dict]) -> list[dict]:
    favorites = database.favorite_target_ids(
        user_id, "project", [item["project_id"] for item in items]
    )
    for item in items:
        item["is_favorite"] = item["project_id"] in favorites
    return items


def _build_clauses(query: ProjectListQuery) -> list[tuple[str, list]]:
    clauses = []
    if query.platform:
        clauses.append(database.eq("platform", query.platform))
    application_type = [v for v in query.application_type or [] if v.strip()]
    if application_type:
        clauses.append(database.array_any("application_type", application_type))
    industry_sector = [v for v in query.industry_sector or [] if v.strip()]
    if industry_sector:
        clauses.append(database.array_any("industry_sector", industry_sector))
    app_name = (query.app_name or "").strip()
    if app_name:
        clauses.append(database.contains_ci("app_name", app_name))
    return clauses


def find_all(user_id: str, query: ProjectListQuery) -> Page[Project]:
    clauses = _build_clauses(query)
    total = database.count_projects(clauses)
    rows = database.select_projects(
        clauses,
        order_by="recommended_count DESC, created_at DESC, id DESC",
        limit=query.page_size,
        offset=(query.page - 1) * query.page_size,
    )
    _mark_favorites(user_id, rows)
    return Page[Project](
        items=[Project.model_validate(r) for r in rows],
        total=total,
        page=query.page,
        page_size=query.page_size,
    )


def find_detail(user_id: str, project_id: str) -> dict:
    row = database.get_project(project_id)
    if row is None:
        raise NotFoundError(f"Project {project_id} not found")
    _mark_favorites(user_id, [row])
    return {"project": Project.model_validate(row)}


def get_filter_options(query: FilterQuery) -> FilterResponse:
    return _filter_options(PROJECT_FILTER_DATASETS, query.category, query.parent)
