from __future__ import annotations

from enum import Enum
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")


def _to_string_list(value, *, split_commas: bool = False):
    """Normalise a query value into a list of trimmed, non-empty strings."""
    if value is None:
        return None
    if isinstance(value, str):
        parts = value.split(",") if split_commas else [value]
        cleaned = [p.strip() for p in parts if p.strip()]
        return cleaned or None
    if isinstance(value, (list, tuple)):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return value


def _trim(value):
    return value.strip() if isinstance(value, str) else value


# --- Stored records ---


class Project(BaseModel):
    project_id: str
    name: str = ""
    platform: str = ""
    app_name: str = ""
    app_logo_url: str = ""
    app_tagline: str = ""
    preview_screens: list[str] = Field(default_factory=list)
    screen_count: int = 0
    recommended_count: int = 0
    keywords: list[str] = Field(default_factory=list)
    application_type: list[str] = Field(default_factory=list)
    industry_sector: list[str] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
    # not persisted: whether the current user favorited it
    is_favorite: bool = False


class Screen(BaseModel):
    project_id: str
    screen_id: str
    original_url: str = ""
    url: str = ""
    is_recommended: bool = False
    order: int | None = 0

    page_type: str = ""
    page_type_l2: str = ""
    platform: str = ""
    app_category: str = ""
    app_category_l2: str = ""
    intent: str = ""
    design_system: str = ""
    type: str = ""
    spacing: str = ""
    density: str = ""
    type_l2: str = ""

    component_index: list[str] = Field(default_factory=list)
    component_index_l2: list[str] = Field(default_factory=list)
    tags_primary: list[str] = Field(default_factory=list)
    tags_primary_l2: list[str] = Field(default_factory=list)
    tags_style: list[str] = Field(default_factory=list)
    tags_style_l2: list[str] = Field(default_factory=list)
    tags_components: list[str] = Field(default_factory=list)
    tags_components_l2: list[str] = Field(default_factory=list)
    design_style: list[str] = Field(default_factory=list)
    feeling: list[str] = Field(default_factory=list)

    created_at: str | None = None
    updated_at: str | None = None
    is_favorite: bool = False


class ScreenSearchResult(Screen):
    match_percentage: float = 0.0


class Page(BaseModel, Generic[T]):
    items: list[T] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10


# --- Query models ---


class PageQuery(BaseModel):
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=100)


class ScreenListQuery(BaseModel):
    project_id: str = Field(..., min_length=1)
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)

    @field_validator("project_id", mode="before")
    @classmethod
    def _trim_project(cls, v):
        return _trim(v)


class ScreenPreciseQuery(PageQuery):
    project_id: str | None = None
    # scalar fields: one value or a list of alternatives
    platform: str | list[str] | None = None
    page_type_l2: str | list[str] | None = None
    app_category_l2: str | list[str] | None = None
    design_system: str | list[str] | None = None
    type_l2: str | list[str] | None = None
    spacing: str | list[str] | None = None
    density: str | list[str] | None = None
    # array fields: the screen must carry at least one of the values
    component_index_l2: list[str] | None = None
    tags_primary_l2: list[str] | None = None
    tags_style_l2: list[str] | None = None
    tags_components_l2: list[str] | None = None
    design_style: list[str] | None = None
    feeling: list[str] | None = None

    @field_validator("project_id", mode="before")
    @classmethod
    def _trim_project(cls, v):
        return _trim(v)

    @field_validator(
        "component_index_l2", "tags_primary_l2", "tags_style_l2",
        "tags_components_l2", "design_style", "feeling",
        mode="before",
    )
    @classmethod
    def _listify(cls, v):
        return _to_string_list(v)


class ScreenFuzzyQuery(PageQuery):
    project_id: str | None = None
    platform: str | None = None
    page_type_l2: list[str] | None = None
    app_category_l2: list[str] | None = None
    design_system: list[str] | None = None
    type_l2: list[str] | None = None
    component_index_l2: list[str] | None = None
    tags_primary_l2: list[str] | None = None
    tags_style_l2: list[str] | None = None
    tags_components_l2: list[str] | None = None

    @field_validator("project_id", "platform", mode="before")
    @classmethod
    def _trim_scalar(cls, v):
        return _trim(v)

    @field_validator(
        "page_type_l2", "app_category_l2", "design_system", "type_l2",
        "component_index_l2", "tags_primary_l2", "tags_style_l2", "tags_components_l2",
        mode="before",
    )
    @classmethod
    def _listify(cls, v):
        return _to_string_list(v)


class ProjectListQuery(PageQuery):
    platform: Literal["ios", "web"] | None = None
    app_name: str | None = None
    application_type: list[str] | None = None
    industry_sector: list[str] | None = None

    @field_validator("application_type", "industry_sector", mode="before")
    @classmethod
    def _listify(cls, v):
        return _to_string_list(v, split_commas=True)


class FilterQuery(BaseModel):
    project_id: str | None = None
    category: str | None = None
    parent: str | None = None

    @field_validator("project_id", "category", "parent", mode="before")
    @classmethod
    def _trim_all(cls, v):
        return _trim(v)


class FilterCategory(BaseModel):
    key: str
    label: str
    options: list[str] = Field(default_factory=list)
    parent: str | None = None


class FilterResponse(BaseModel):
    categories: list[FilterCategory] = Field(default_factory=list)


class FavoriteQuery(PageQuery):
    pass


# --- AI search ---


class AiSearchRequest(PageQuery):
    requirement: str = Field(..., min_length=2)
    platform: str | None = None

    @field_validator("requirement", "platform", mode="before")
    @classmethod
    def _trim_text(cls, v):
        return _trim(v)


class ScreenAiSearchRequest(AiSearchRequest):
    project_id: str | None = None

    @field_validator("project_id", mode="before")
    @classmethod
    def _trim_project(cls, v):
        return _trim(v)


class ProjectAiSearchRequest(AiSearchRequest):
    platform: Literal["ios", "web"] | None = None


class DimensionSelection(BaseModel):
    first_level: list[str] = Field(default_factory=list)
    second_level: list[str] = Field(default_factory=list)
    mapping: dict[str, list[str]] = Field(default_factory=dict)


class DimensionIntent(BaseModel):
    relevant: bool = False
    reason: str = ""
    confidence: float | None = None


class ScreenAiTags(BaseModel):
    app_category: DimensionSelection = Field(default_factory=DimensionSelection)
    component_index: DimensionSelection = Field(default_factory=DimensionSelection)
    layout_type: DimensionSelection = Field(default_factory=DimensionSelection)
    page_type: DimensionSelection = Field(default_factory=DimensionSelection)
    tags_primary: DimensionSelection = Field(default_factory=DimensionSelection)
    tags_style: DimensionSelection = Field(default_factory=DimensionSelection)
    tags_components: DimensionSelection = Field(default_factory=DimensionSelection)


class ProjectAiTags(BaseModel):
    application_type: DimensionSelection = Field(default_factory=DimensionSelection)
    industry_sector: DimensionSelection = Field(default_factory=DimensionSelection)


class AiMeta(BaseModel):
    intent: dict[str, DimensionIntent] = Field(default_factory=dict)
    notice: str | None = None


class ScreenAiSearchResponse(BaseModel):
    tags: ScreenAiTags
    llm_meta: AiMeta
    search: Page[ScreenSearchResult]


class ProjectAiSearchResponse(BaseModel):
    tags: ProjectAiTags
    llm_meta: AiMeta
    search: Page[Project]


# --- Model configs & chat ---


class ModelConfig(BaseModel):
    name: str
    model: str
    adapter: str = "gemini image"
    base_url: str = ""
    api_key: str = ""
    provider: str = ""
    enabled: bool = True
    description: str = ""
    created_at: str | None = None
    updated_at: str | None = None


class ModelListItem(BaseModel):
    name: str
    model: str
    provider: str = ""
    adapter: str
    enabled: bool
    description: str = ""
    created_at: str | None = None
    updated_at: str | None = None


class ResolvedModelConfig(BaseModel):
    name: str = ""
    model: str
    base_url: str = ""
    api_key: str = ""
    adapter: str = ""


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    id: int = 0
    session_id: str
    role: MessageRole = MessageRole.USER
    content: str = ""
    images: list[str] = Field(default_factory=list)
    metadata: dict = Field(default_factory=dict)
    created_at: str | None = None

    @field_validator("role", mode="before")
    @classmethod
    def _known_role(cls, v):
        # unknown stored roles replay as user turns
        if isinstance(v, MessageRole):
            return v
        return v if isinstance(v, str) and v in {r.value for r in MessageRole} else MessageRole.USER

    @field_validator("content", mode="before")
    @classmethod
    def _content_text(cls, v):
        return v if isinstance(v, str) else ""

    @field_validator("images", mode="before")
    @classmethod
    def _image_urls(cls, v):
        return _to_string_list(v) or []


class ChatRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    content: str | None = Field(None, max_length=4000)
    images: list[str] = Field(default_factory=list, max_length=50)
    model: str | None = None
    aspect_ratio: str | None = None

    @field_validator("session_id", "content", "model", "aspect_ratio", mode="before")
    @classmethod
    def _trim_text(cls, v):
        return _trim(v)


class ChatResponse(BaseModel):
    content: str | None = None
    images: list[str] = Field(default_factory=list)
    metadata: dict = Field(default_factory=dict)
