from design_search import project_ai, screen_ai
from design_search.models import ProjectAiSearchRequest, ScreenAiSearchRequest
from design_search.tag_resolver import sanitize_second_level_selections, sanitize_selections


# ---------------------------------------------------------------------------
# Sanitizers
# ---------------------------------------------------------------------------


def test_sanitize_selections_canonicalises_and_dedupes():
    allowed = ["Home", "Detail", "Checkout"]
    result = sanitize_selections([" home", "HOME", "Unknown", "", 3, "checkout"], allowed)
    assert result == ["Home", "Checkout"]


def test_sanitize_selections_rejects_non_lists():
    assert sanitize_selections(None, ["Home"]) == []
    assert sanitize_selections("Home", ["Home"]) == []


def test_sanitize_second_level_selections():
    lookup = {"Home": ["Feed", "Dashboard"], "Checkout": ["Cart"]}
    raw = {
        " home ": ["feed", "Nope", "FEED"],
        "Checkout": ["Payment"],
        "Unknown": ["Feed"],
    }
    assert sanitize_second_level_selections(raw, lookup) == {"Home": ["Feed"]}
    assert sanitize_second_level_selections(["Home"], lookup) == {}


# ---------------------------------------------------------------------------
# Intent detection
# ---------------------------------------------------------------------------


def test_intent_parsing(scripted_llm):
    fake = scripted_llm(intents={
        "page_type": {"relevant": True, "reason": "  \"login page\" ", "confidence": "0.876"},
        "app_category": {"relevant": "true", "confidence": 1},
        "tags_style": {"relevant": True, "confidence": "high"},
        "layout_type": {"relevant": False, "confidence": float("inf")},
    })
    intents = screen_ai.build_screen_resolver(fake).detect_dimension_intent("a login page")

    assert set(intents) == {d.key for d in screen_ai.SCREEN_DIMENSIONS}
    assert intents["page_type"].relevant is True
    assert intents["page_type"].reason == '"login page"'
    assert intents["page_type"].confidence == 0.88
    # only a literal boolean true counts
    assert intents["app_category"].relevant is False
    assert intents["app_category"].confidence == 1.0
    assert intents["tags_style"].confidence is None
    assert intents["layout_type"].confidence is None
    assert intents["component_index"].relevant is False
    assert intents["component_index"].reason == ""


def test_intent_confidence_coercion(scripted_llm):
    fake = scripted_llm(intents={
        "page_type": {"relevant": True, "confidence": None},
        "app_category": {"relevant": True, "confidence": "  "},
        "tags_style": {"relevant": True, "confidence": [0.5]},
        "layout_type": {"relevant": True, "confidence": {"value": 1}},
        "tags_primary": {"relevant": True, "confidence": True},
    })
    intents = screen_ai.build_screen_resolver(fake).detect_dimension_intent("a page")

    # a present but empty confidence counts as zero, an absent one stays unset
    assert intents["page_type"].confidence == 0.0
    assert intents["app_category"].confidence == 0.0
    assert intents["tags_style"].confidence == 0.5
    assert intents["layout_type"].confidence is None
    assert intents["tags_primary"].confidence == 1.0
    assert intents["component_index"].confidence is None


def test_intent_failure_marks_everything_irrelevant(scripted_llm):
    fake = scripted_llm(fail={"intent"})
    intents = screen_ai.build_screen_resolver(fake).detect_dimension_intent("anything")
    assert not any(i.relevant for i in intents.values())


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def test_first_level_prompt_lists_numbered_options(scripted_llm):
    fake = scripted_llm(first={"page_type": ["onboarding"]})
    resolver = screen_ai.build_screen_resolver(fake)
    dimension = screen_ai.SCREEN_DIMENSIONS[3]
    assert dimension.key == "page_type"

    assert resolver.select_first_level_tags("login", dimension) == ["Onboarding"]
    prompt = fake.prompts[0]
    assert "1. Home" in prompt
    assert "Pick 0~1" in prompt


def test_second_level_skips_childless_parents(scripted_llm):
    fake = scripted_llm(second={"page_type": {"Onboarding": ["login"]}})
    resolver = screen_ai.build_screen_resolver(fake)
    dimension = screen_ai.SCREEN_DIMENSIONS[3]

    assert resolver.select_second_level_tags("x", dimension, ["Empty State"]) == {}
    assert fake.calls == []

    result = resolver.select_second_level_tags("x", dimension, ["Onboarding", "Empty State"])
    assert result == {"Onboarding": ["Login"]}
    assert '"Sign Up"' in fake.prompts[0]
    assert "Empty State:" not in fake.prompts[0]


def test_resolve_only_relevant_dimensions(scripted_llm):
    fake = scripted_llm(
        intents={"page_type": {"relevant": True}, "tags_style": {"relevant": True}},
        first={"page_type": ["Onboarding"], "tags_style": ["Tech", "Minimal"]},
        second={
            "page_type": {"Onboarding": ["Login", "Sign Up", "Login"]},
            "tags_style": {"Tech": ["Dark Mode"]},
        },
    )
    intents, selections = screen_ai.build_screen_resolver(fake).resolve("dark login")

    assert selections["page_type"].first_level == ["Onboarding"]
    assert selections["page_type"].second_level == ["Login", "Sign Up"]
    assert selections["page_type"].mapping == {"Onboarding": ["Login", "Sign Up"]}
    assert selections["tags_style"].second_level == ["Dark Mode"]
    assert selections["app_category"].first_level == []
    called = {key for kind, key in fake.calls if kind != "intent"}
    assert called == {"page_type", "tags_style"}


def test_failing_dimension_degrades_to_empty(scripted_llm):
    fake = scripted_llm(
        intents={"page_type": {"relevant": True}, "tags_style": {"relevant": True}},
        first={"page_type": ["Onboarding"], "tags_style": ["Tech"]},
        second={"page_type": {"Onboarding": ["Login"]}, "tags_style": {"Tech": ["Dark Mode"]}},
        fail={("second", "tags_style")},
    )
    _, selections = screen_ai.build_screen_resolver(fake).resolve("dark login")
    assert selections["page_type"].second_level == ["Login"]
    assert selections["tags_style"].first_level == ["Tech"]
    assert selections["tags_style"].second_level == []


# ---------------------------------------------------------------------------
# AI search
# ---------------------------------------------------------------------------


def test_screen_ai_search_runs_fuzzy_query(seeded, scripted_llm):
    fake = scripted_llm(
        intents={"page_type": {"relevant": True}, "app_category": {"relevant": True}},
        first={"page_type": ["Onboarding"], "app_category": ["Finance"]},
        second={
            "page_type": {"Onboarding": ["Login"]},
            "app_category": {"Finance": ["Banking"]},
        },
    )
    request = ScreenAiSearchRequest(requirement="  banking app login  ", project_id="p1", platform="ios")
    response = screen_ai.search_with_requirement("u1", request, screen_ai.build_screen_resolver(fake))

    assert response.llm_meta.notice is None
    assert response.tags.page_type.second_level == ["Login"]
    assert [i.screen_id for i in response.search.items] == ["s1", "s2"]
    assert [i.match_percentage for i in response.search.items] == [100.0, 50.0]
    assert response.llm_meta.intent["page_type"].relevant is True


def test_layout_type_feeds_type_l2(scripted_llm):
    fake = scripted_llm(
        intents={"layout_type": {"relevant": True}},
        first={"layout_type": ["Multi Column"]},
        second={"layout_type": {"Multi Column": ["Grid"]}},
    )
    _, selections = screen_ai.build_screen_resolver(fake).resolve("grid layout")
    query = screen_ai.build_fuzzy_query(ScreenAiSearchRequest(requirement="grid layout"), selections)
    assert query.type_l2 == ["Grid"]
    assert query.page_type_l2 is None


def test_screen_ai_search_without_tags_returns_notice(seeded, scripted_llm):
    fake = scripted_llm()
    request = ScreenAiSearchRequest(requirement="something vague", page=2, page_size=5)
    response = screen_ai.search_with_requirement("u1", request, screen_ai.build_screen_resolver(fake))

    assert response.llm_meta.notice == screen_ai.NO_TAGS_NOTICE
    assert response.search.items == []
    assert response.search.total == 0
    assert response.search.page == 2
    assert response.search.page_size == 5


def test_project_ai_search(seeded, scripted_llm):
    fake = scripted_llm(
        intents={"application_type": {"relevant": True}},
        first={"application_type": ["Security", "Productivity"]},
        second={"application_type": {"Security": ["Password Manager"], "Productivity": ["Note Taking"]}},
    )
    request = ProjectAiSearchRequest(requirement="a password vault", platform="ios")
    response = project_ai.search_with_requirement("u1", request, project_ai.build_project_resolver(fake))

    assert response.tags.application_type.first_level == ["Security", "Productivity"]
    assert response.tags.industry_sector.second_level == []
    assert [p.project_id for p in response.search.items] == ["p1", "p3"]
    first_prompt = next(p for p in fake.prompts if "First-level tag options" in p)
    assert "Pick 0~2" in first_prompt
    second_prompt = next(p for p in fake.prompts if "Second-level options" in p)
    assert "0~3" in second_prompt
