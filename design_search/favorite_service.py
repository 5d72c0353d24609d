import logging

from design_search import database
from design_search.errors import NotFoundError
from design_search.models import FavoriteQuery, Page, Project, Screen

logger = logging.getLogger(__name__)

PROJECT = "project"
SCREEN = "screen"


def add_project_favorite(user_id: str, project_id: str) -> dict:
    if database.get_project(project_id) is None:
        raise NotFoundError(f"Project {project_id} not found")
    database.add_favorite(user_id, PROJECT, project_id)
    logger.info("User %s favorited project %s", user_id, project_id)
    return {"success": True}


def remove_project_favorite(user_id: str, project_id: str) -> dict:
    return {"success": database.remove_favorite(user_id, PROJECT, project_id)}


def add_screen_favorite(user_id: str, screen_id: str) -> dict:
    if database.get_screen(screen_id) is None:
        raise NotFoundError(f"Screen {screen_id} not found")
    database.add_favorite(user_id, SCREEN, screen_id)
    logger.info("User %s favorited screen %s", user_id, screen_id)
    return {"success": True}


def remove_screen_favorite(user_id: str, screen_id: str) -> dict:
    return {"success": database.remove_favorite(user_id, SCREEN, screen_id)}


def list_project_favorites(user_id: str, query: FavoriteQuery) -> Page[Project]:
    """Favorited projects, newest favorite first. Deleted projects are skipped."""
    total = database.count_favorites(user_id, PROJECT)
    ids = database.list_favorite_ids(
        user_id, PROJECT, query.page_size, (query.page - 1) * query.page_size
    )
    found = database.get_projects_by_ids(ids)
    items = [Project.model_validate({**found[i], "is_favorite": True}) for i in ids if i in found]
    return Page[Project](items=items, total=total, page=query.page, page_size=query.page_size)


def list_screen_favorites(user_id: str, query: FavoriteQuery) -> Page[Screen]:
    total = database.count_favorites(user_id, SCREEN)
    ids = database.list_favorite_ids(
        user_id, SCREEN, query.page_size, (query.page - 1) * query.page_size
    )
    found = database.get_screens_by_ids(ids)
    items = [Screen.model_validate({**found[i], "is_favorite": True}) for i in ids if i in found]
    return Page[Screen](items=items, total=total, page=query.page, page_size=query.page_size)
