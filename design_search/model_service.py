from design_search import database
from design_search.errors import BadRequestError
from design_search.models import ModelConfig, ModelListItem, ResolvedModelConfig


def list_all() -> list[ModelListItem]:
    return [ModelListItem.model_validate(row) for row in database.list_model_configs()]


def resolve_for_chat(name_or_model: str | None) -> ResolvedModelConfig:
    """Look up an enabled config by name or model id."""
    key = (name_or_model or "").strip()
    if not key:
        raise BadRequestError("Model must not be empty")
    row = database.find_enabled_model_config(key)
    if row is None:
        raise BadRequestError(f"Model {key} is not available")
    return ResolvedModelConfig.model_validate(row)


def upsert_model_config(config: ModelConfig):
    database.upsert_model_config(config)
