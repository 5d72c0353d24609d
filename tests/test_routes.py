import pytest
from fastapi.testclient import TestClient

from design_search import screen_ai
from main import app


@pytest.fixture
def client(seeded):
    return TestClient(app)


def test_screen_list_endpoint(client):
    resp = client.get("/screen", params={"project_id": "p1", "page_size": 2}, headers={"X-User-Id": "u1"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 3
    assert [i["screen_id"] for i in body["items"]] == ["s2", "s1"]


def test_screen_list_endpoint_validates_query(client):
    assert client.get("/screen", params={"project_id": "p1", "page_size": 0}).status_code == 400
    resp = client.get("/screen")
    assert resp.status_code == 400
    assert resp.json()["code"] == -1
    assert client.get("/screen", params={"project_id": " p2 "}).json()["total"] == 1


def test_screen_filters_endpoint(client):
    resp = client.get("/screen/filters", params={"category": "page_type", "parent": "Checkout"})
    assert resp.status_code == 200
    category = resp.json()["categories"][0]
    assert category["options"] == ["Cart", "Payment", "Order Confirmation"]
    assert category["parent"] == "Checkout"


def test_unknown_filter_category_uses_error_format(client):
    resp = client.get("/project/filters", params={"category": "colour"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == -1
    assert body["statusCode"] == 400
    assert body["path"] == "/project/filters"
    assert body["error"] == "Bad Request"
    assert "colour" in body["message"]
    assert "timestamp" in body


def test_fuzzy_endpoint(client):
    resp = client.post("/screen/search/fuzzy", json={"project_id": "p1", "app_category_l2": ["Banking"]})
    assert resp.status_code == 200
    assert [i["match_percentage"] for i in resp.json()["items"]] == [100.0, 100.0]


def test_fuzzy_endpoint_without_criteria(client):
    resp = client.post("/screen/search/fuzzy", json={"project_id": "p1"})
    assert resp.status_code == 400


def test_precise_endpoint(client):
    resp = client.post("/screen/search/precise", json={"platform": "web"})
    assert [i["screen_id"] for i in resp.json()["items"]] == ["s4"]


def test_page_size_is_validated(client):
    resp = client.post("/project/list", json={"page_size": 101})
    assert resp.status_code == 400
    assert resp.json()["code"] == -1


def test_project_detail_not_found(client):
    resp = client.get("/project/detail", params={"project_id": "nope"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Not Found"


def test_favorite_flow(client):
    headers = {"X-User-Id": "u9"}
    assert client.post("/favorite/projects/p2", headers=headers).json() == {"success": True}
    listed = client.get("/favorite/projects", headers=headers).json()
    assert [p["project_id"] for p in listed["items"]] == ["p2"]

    detail = client.get("/project/detail", params={"project_id": "p2"}, headers=headers).json()
    assert detail["project"]["is_favorite"] is True
    # anonymous callers have their own favorites
    anon = client.get("/project/detail", params={"project_id": "p2"}).json()
    assert anon["project"]["is_favorite"] is False

    assert client.delete("/favorite/projects/p2", headers=headers).json() == {"success": True}
    assert client.post("/favorite/screens/missing", headers=headers).status_code == 404


def test_ai_search_requires_a_requirement(client):
    resp = client.post("/screen/search/ai", json={"requirement": " x "})
    assert resp.status_code == 400


def test_ai_search_endpoint(client, monkeypatch, scripted_llm):
    fake = scripted_llm(
        intents={"page_type": {"relevant": True}},
        first={"page_type": ["Checkout"]},
        second={"page_type": {"Checkout": ["Cart"]}},
    )
    original = screen_ai.build_screen_resolver
    monkeypatch.setattr(screen_ai, "build_screen_resolver", lambda generate_json=None: original(fake))

    resp = client.post("/screen/search/ai", json={"requirement": "shopping cart page"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["tags"]["page_type"]["second_level"] == ["Cart"]
    assert body["llm_meta"]["notice"] is None
    assert [i["screen_id"] for i in body["search"]["items"]] == ["s4"]


def test_models_endpoint(client):
    resp = client.get("/models")
    assert resp.status_code == 200
    assert resp.json() == []
