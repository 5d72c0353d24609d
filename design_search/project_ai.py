import logging

from design_search import project_service
from design_search.models import (
    AiMeta,
    Page,
    Project,
    ProjectAiSearchRequest,
    ProjectAiSearchResponse,
    ProjectAiTags,
    ProjectListQuery,
)
from design_search.screen_ai import NO_TAGS_NOTICE
from design_search.tag_resolver import DimensionConfig, GenerateJson, TagResolver
from design_search.taxonomy import TAXONOMIES

logger = logging.getLogger(__name__)

PROJECT_DIMENSIONS = [
    DimensionConfig(
        key="application_type",
        display_name="Application type",
        description="The main usage scenario or function type of the product, e.g. scheduling, task collaboration, password management",
        search_field="application_type",
    ),
    DimensionConfig(
        key="industry_sector",
        display_name="Industry sector",
        description="The industry or business domain the product serves, e.g. information security, financial services, healthcare",
        search_field="industry_sector",
    ),
]

SYSTEM_INSTRUCTION = """\
You are an assistant specialised in product and industry classification. You extract project category tags from a user's requirement.
Reply strictly in the requested JSON format, without any extra text or explanation.
Only use the options provided; never invent new tags."""


def build_project_resolver(generate_json: GenerateJson | None = None) -> TagResolver:
    return TagResolver(
        dimensions=PROJECT_DIMENSIONS,
        taxonomies=TAXONOMIES,
        system_instruction=SYSTEM_INSTRUCTION,
        intent_subject="project category dimensions",
        max_first_level=2,
        max_second_level=3,
        generate_json=generate_json,
    )


def build_project_query(request: ProjectAiSearchRequest, selections) -> ProjectListQuery:
    return ProjectListQuery(
        page=request.page,
        page_size=request.page_size,
        platform=request.platform,
        application_type=list(selections["application_type"].second_level) or None,
        industry_sector=list(selections["industry_sector"].second_level) or None,
    )


def search_with_requirement(
    user_id: str,
    request: ProjectAiSearchRequest,
    resolver: TagResolver | None = None,
) -> ProjectAiSearchResponse:
    resolver = resolver or build_project_resolver()
    intents, selections = resolver.resolve(request.requirement)

    total_tags = sum(len(s.second_level) for s in selections.values())
    notice = None
    if total_tags == 0:
        notice = NO_TAGS_NOTICE
        search = Page[Project](page=request.page, page_size=request.page_size)
    else:
        search = project_service.find_all(user_id, build_project_query(request, selections))

    logger.info("Project AI search: %d tag(s), %d result(s)", total_tags, search.total)
    return ProjectAiSearchResponse(
        tags=ProjectAiTags(**selections),
        llm_meta=AiMeta(intent=intents, notice=notice),
        search=search,
    )
