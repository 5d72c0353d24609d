import logging

from design_search import screen_service
from design_search.models import (
    AiMeta,
    Page,
    ScreenAiSearchRequest,
    ScreenAiSearchResponse,
    ScreenAiTags,
    ScreenFuzzyQuery,
    ScreenSearchResult,
)
from design_search.tag_resolver import DimensionConfig, GenerateJson, TagResolver
from design_search.taxonomy import TAXONOMIES

logger = logging.getLogger(__name__)

NO_TAGS_NOTICE = "AI could not extract any usable tags, please refine the requirement and try again"

SCREEN_DIMENSIONS = [
    DimensionConfig(
        key="app_category",
        display_name="App category",
        description="The app or industry scenario the requirement belongs to, e.g. e-commerce, travel, education",
        search_field="app_category_l2",
    ),
    DimensionConfig(
        key="component_index",
        display_name="Component index",
        description="Component modules that are prominent or required on the page, e.g. carousel, tab bar, action sheet",
        search_field="component_index_l2",
    ),
    DimensionConfig(
        key="layout_type",
        display_name="Page layout",
        description="The overall layout of the page content, e.g. single column, two column, split view, card based",
        search_field="type_l2",
    ),
    DimensionConfig(
        key="page_type",
        display_name="Page type",
        description="The role of the page in the product flow, e.g. home, detail, payment, settings",
        search_field="page_type_l2",
    ),
    DimensionConfig(
        key="tags_primary",
        display_name="Function tags",
        description="The main goal or key function the page serves, e.g. conversion, data display, task handling",
        search_field="tags_primary_l2",
    ),
    DimensionConfig(
        key="tags_style",
        display_name="Style tags",
        description="The overall visual or emotional style of the page, e.g. minimal, tech, vibrant, business",
        search_field="tags_style_l2",
    ),
    DimensionConfig(
        key="tags_components",
        display_name="Component tags",
        description="The most central or frequent components on the page, e.g. table, chart, card, list",
        search_field="tags_components_l2",
    ),
]

SYSTEM_INSTRUCTION = """\
You are an assistant specialised in UI/UX design analysis. You extract design tags from a written requirement.
Reply strictly in the requested JSON format, without any extra text or explanation.
Only use the options provided; never invent new tags."""


def build_screen_resolver(generate_json: GenerateJson | None = None) -> TagResolver:
    return TagResolver(
        dimensions=SCREEN_DIMENSIONS,
        taxonomies=TAXONOMIES,
        system_instruction=SYSTEM_INSTRUCTION,
        intent_subject="design dimensions",
        max_first_level=1,
        max_second_level=2,
        generate_json=generate_json,
    )


def build_fuzzy_query(request: ScreenAiSearchRequest, selections) -> ScreenFuzzyQuery:
    fields = {}
    for dimension in SCREEN_DIMENSIONS:
        selection = selections.get(dimension.key)
        if selection and selection.second_level:
            fields[dimension.search_field] = list(selection.second_level)
    return ScreenFuzzyQuery(
        page=request.page,
        page_size=request.page_size,
        project_id=request.project_id,
        platform=request.platform,
        **fields,
    )


def search_with_requirement(
    user_id: str,
    request: ScreenAiSearchRequest,
    resolver: TagResolver | None = None,
) -> ScreenAiSearchResponse:
    resolver = resolver or build_screen_resolver()
    intents, selections = resolver.resolve(request.requirement)

    total_tags = sum(len(s.second_level) for s in selections.values())
    notice = None
    if total_tags == 0:
        notice = NO_TAGS_NOTICE
        search = Page[ScreenSearchResult](page=request.page, page_size=request.page_size)
    else:
        search = screen_service.fuzzy_search(user_id, build_fuzzy_query(request, selections))

    logger.info("Screen AI search: %d tag(s), %d result(s)", total_tags, search.total)
    return ScreenAiSearchResponse(
        tags=ScreenAiTags(**selections),
        llm_meta=AiMeta(intent=intents, notice=notice),
        search=search,
    )
