import logging
from typing import Annotated

from fastapi import APIRouter, Header, Query

from design_search import (
    chat as chat_service,
    favorite_service,
    model_service,
    project_ai,
    project_service,
    screen_ai,
    screen_service,
)
from design_search.models import (
    ChatRequest,
    FavoriteQuery,
    FilterQuery,
    ProjectAiSearchRequest,
    ProjectListQuery,
    ScreenAiSearchRequest,
    ScreenFuzzyQuery,
    ScreenListQuery,
    ScreenPreciseQuery,
)

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_USER = "anonymous"


def _user(x_user_id: str | None) -> str:
    return (x_user_id or "").strip() or DEFAULT_USER


# --- Projects ---


@router.get("/project/filters")
def project_filters(category: str | None = None, parent: str | None = None):
    return project_service.get_filter_options(FilterQuery(category=category, parent=parent))


@router.post("/project/list")
def project_list(query: ProjectListQuery, x_user_id: str | None = Header(None)):
    return project_service.find_all(_user(x_user_id), query)


@router.get("/project/detail")
def project_detail(project_id: str = Query(..., min_length=1), x_user_id: str | None = Header(None)):
    return project_service.find_detail(_user(x_user_id), project_id.strip())


@router.post("/project/search/ai")
def project_ai_search(request: ProjectAiSearchRequest, x_user_id: str | None = Header(None)):
    return project_ai.search_with_requirement(_user(x_user_id), request)


# --- Screens ---


@router.get("/screen")
def screens_by_project(
    query: Annotated[ScreenListQuery, Query()],
    x_user_id: str | None = Header(None),
):
    return screen_service.find_by_project(_user(x_user_id), query)


@router.get("/screen/filters")
def screen_filters(
    project_id: str | None = None,
    category: str | None = None,
    parent: str | None = None,
):
    return screen_service.get_filter_options(
        FilterQuery(project_id=project_id, category=category, parent=parent)
    )


@router.post("/screen/search/precise")
def screen_precise_search(query: ScreenPreciseQuery, x_user_id: str | None = Header(None)):
    return screen_service.precise_search(_user(x_user_id), query)


@router.post("/screen/search/fuzzy")
def screen_fuzzy_search(query: ScreenFuzzyQuery, x_user_id: str | None = Header(None)):
    return screen_service.fuzzy_search(_user(x_user_id), query)


@router.post("/screen/search/ai")
def screen_ai_search(request: ScreenAiSearchRequest, x_user_id: str | None = Header(None)):
    return screen_ai.search_with_requirement(_user(x_user_id), request)


# --- Favorites ---


@router.post("/favorite/projects/{project_id}")
def add_project_favorite(project_id: str, x_user_id: str | None = Header(None)):
    return favorite_service.add_project_favorite(_user(x_user_id), project_id)


@router.delete("/favorite/projects/{project_id}")
def remove_project_favorite(project_id: str, x_user_id: str | None = Header(None)):
    return favorite_service.remove_project_favorite(_user(x_user_id), project_id)


@router.get("/favorite/projects")
def list_project_favorites(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    x_user_id: str | None = Header(None),
):
    return favorite_service.list_project_favorites(
        _user(x_user_id), FavoriteQuery(page=page, page_size=page_size)
    )


@router.post("/favorite/screens/{screen_id}")
def add_screen_favorite(screen_id: str, x_user_id: str | None = Header(None)):
    return favorite_service.add_screen_favorite(_user(x_user_id), screen_id)


@router.delete("/favorite/screens/{screen_id}")
def remove_screen_favorite(screen_id: str, x_user_id: str | None = Header(None)):
    return favorite_service.remove_screen_favorite(_user(x_user_id), screen_id)


@router.get("/favorite/screens")
def list_screen_favorites(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    x_user_id: str | None = Header(None),
):
    return favorite_service.list_screen_favorites(
        _user(x_user_id), FavoriteQuery(page=page, page_size=page_size)
    )


# --- Models & chat ---


@router.get("/models")
def list_models():
    return model_service.list_all()


@router.post("/ai/chat")
def ai_chat(request: ChatRequest):
    return chat_service.chat(request)
