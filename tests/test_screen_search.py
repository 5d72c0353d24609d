import pytest
from pydantic import ValidationError

from design_search import database, screen_service
from design_search.errors import BadRequestError
from design_search.models import FilterQuery, Screen, ScreenFuzzyQuery, ScreenListQuery, ScreenPreciseQuery


def _ids(page):
    return [item.screen_id for item in page.items]


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def test_find_by_project_sorts_by_order(seeded):
    page = screen_service.find_by_project("u1", ScreenListQuery(project_id="p1"))
    assert _ids(page) == ["s2", "s1", "s3"]
    assert page.total == 3
    assert page.page == 1
    assert page.page_size == 20


def test_find_by_project_paginates(seeded):
    page = screen_service.find_by_project("u1", ScreenListQuery(project_id="p1", page=2, page_size=2))
    assert _ids(page) == ["s3"]
    assert page.total == 3


def test_find_by_project_flags_favorites(seeded):
    database.add_favorite("u1", "screen", "s1")
    page = screen_service.find_by_project("u1", ScreenListQuery(project_id="p1"))
    flags = {item.screen_id: item.is_favorite for item in page.items}
    assert flags == {"s2": False, "s1": True, "s3": False}

    other = screen_service.find_by_project("u2", ScreenListQuery(project_id="p1"))
    assert not any(item.is_favorite for item in other.items)


def test_screen_list_query_validation():
    assert ScreenListQuery(project_id="  p1 ").project_id == "p1"
    with pytest.raises(ValidationError):
        ScreenListQuery(project_id="   ")
    with pytest.raises(ValidationError):
        ScreenListQuery(project_id="p1", page_size=101)


def test_filter_options_for_screens():
    result = screen_service.get_filter_options(FilterQuery(category="layout_type"))
    assert result.categories[0].key == "layout_type"
    assert "Multi Column" in result.categories[0].options


# ---------------------------------------------------------------------------
# Precise search
# ---------------------------------------------------------------------------


def test_precise_scalar_and_array_fields_ignore_case(seeded):
    query = ScreenPreciseQuery(platform="IOS", tags_primary_l2="authentication")
    page = screen_service.precise_search("u1", query)
    # recommended first
    assert _ids(page) == ["s1", "s2"]
    assert page.total == 2


def test_precise_scalar_list_matches_any(seeded):
    query = ScreenPreciseQuery(page_type_l2=["login", "cart", " "])
    page = screen_service.precise_search("u1", query)
    assert sorted(_ids(page)) == ["s1", "s4"]


def test_precise_fields_are_anded(seeded):
    query = ScreenPreciseQuery(project_id="p1", component_index_l2=["tab bar"], tags_style_l2=["minimal"])
    page = screen_service.precise_search("u1", query)
    assert _ids(page) == ["s3"]


def test_precise_sort_recommended_then_order(seeded):
    query = ScreenPreciseQuery(project_id="p1", component_index_l2=["Tab Bar", "Text Field"])
    page = screen_service.precise_search("u1", query)
    assert _ids(page) == ["s1", "s2", "s3"]


def test_precise_spacing_density_and_feeling(seeded):
    query = ScreenPreciseQuery(spacing="comfortable", density=["low"], feeling=["calm"], design_style="flat")
    page = screen_service.precise_search("u1", query)
    assert _ids(page) == ["s1"]


def test_precise_without_filters_returns_everything(seeded):
    page = screen_service.precise_search("u1", ScreenPreciseQuery(page_size=2))
    assert page.total == 4
    assert len(page.items) == 2


# ---------------------------------------------------------------------------
# Fuzzy search
# ---------------------------------------------------------------------------


def test_fuzzy_scores_and_threshold(seeded):
    query = ScreenFuzzyQuery(
        project_id="p1",
        page_type_l2=["login"],
        app_category_l2=["Banking"],
        component_index_l2=["Tab Bar"],
        tags_primary_l2=["Authentication"],
    )
    page = screen_service.fuzzy_search("u1", query)
    assert _ids(page) == ["s1", "s2"]
    assert [item.match_percentage for item in page.items] == [100.0, 50.0]
    # s3 only matches a quarter of the criteria
    assert page.total == 2


def test_fuzzy_percentage_is_rounded(seeded):
    query = ScreenFuzzyQuery(
        page_type_l2=["Login"],
        app_category_l2=["Banking"],
        component_index_l2=["Text Field"],
    )
    page = screen_service.fuzzy_search("u1", query)
    result = {item.screen_id: item.match_percentage for item in page.items}
    assert result == {"s1": 66.67, "s2": 66.67}


def test_fuzzy_platform_is_a_hard_filter(seeded):
    query = ScreenFuzzyQuery(platform="WEB", page_type_l2=["Login", "Cart"])
    page = screen_service.fuzzy_search("u1", query)
    assert _ids(page) == ["s4"]


def test_fuzzy_requires_a_criterion(seeded):
    with pytest.raises(BadRequestError):
        screen_service.fuzzy_search("u1", ScreenFuzzyQuery(project_id="p1", platform="ios"))


def test_fuzzy_blank_values_do_not_count(seeded):
    with pytest.raises(BadRequestError):
        screen_service.fuzzy_search("u1", ScreenFuzzyQuery(page_type_l2=["  "]))


def test_fuzzy_tie_break_recommended_then_order(temp_db):
    database.upsert_screens([
        Screen(project_id="px", screen_id="a", page_type_l2="Feed", order=5),
        Screen(project_id="px", screen_id="b", page_type_l2="Feed", order=None),
        Screen(project_id="px", screen_id="c", page_type_l2="Feed", order=1),
        Screen(project_id="px", screen_id="d", page_type_l2="Feed", order=9, is_recommended=True),
    ])
    page = screen_service.fuzzy_search("u1", ScreenFuzzyQuery(page_type_l2=["feed"]))
    # recommended first, then order ascending with a missing order last
    assert _ids(page) == ["d", "c", "a", "b"]


def test_fuzzy_paginates_in_memory_and_flags_favorites(seeded):
    database.add_favorite("u1", "screen", "s2")
    query = ScreenFuzzyQuery(app_category_l2=["banking"], page=2, page_size=1)
    page = screen_service.fuzzy_search("u1", query)
    assert page.total == 2
    assert _ids(page) == ["s2"]
    assert page.items[0].is_favorite is True


def test_case_folding_covers_non_ascii_tags(temp_db):
    database.upsert_screens([
        Screen(project_id="px", screen_id="e1", page_type_l2="Écran", tags_style_l2=["Ästhetik"]),
        Screen(project_id="px", screen_id="e2", page_type_l2="Feed"),
    ])
    precise = screen_service.precise_search("u1", ScreenPreciseQuery(page_type_l2="écran"))
    assert _ids(precise) == ["e1"]
    exact = screen_service.precise_search("u1", ScreenPreciseQuery(tags_style_l2=["Ästhetik"]))
    assert _ids(exact) == ["e1"]

    fuzzy = screen_service.fuzzy_search("u1", ScreenFuzzyQuery(tags_style_l2=["ÄSTHETIK"]))
    assert _ids(fuzzy) == ["e1"]
    assert fuzzy.items[0].match_percentage == 100.0
