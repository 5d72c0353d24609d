"""Shared fixtures: a throwaway SQLite file per test, seed data, a scripted LLM."""

from __future__ import annotations

import re
import sys
import threading
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from design_search import database
from design_search.errors import AiServiceError
from design_search.models import Project, Screen


@pytest.fixture(autouse=True)
def temp_db(tmp_path, monkeypatch):
    db_path = tmp_path / "test.db"
    monkeypatch.setattr(database, "DB_PATH", db_path)
    database.init_db()
    return db_path


SEED_PROJECTS = [
    Project(
        project_id="p1", name="Secure Vault", app_name="Secure Vault", platform="ios",
        recommended_count=5,
        application_type=["Password Manager"], industry_sector=["Identity & Access"],
    ),
    Project(
        project_id="p2", name="ShopHub", app_name="ShopHub", platform="web",
        recommended_count=10,
        application_type=["Online Store"], industry_sector=["Apparel"],
    ),
    Project(
        project_id="p3", name="Vault Notes", app_name="Vault Notes", platform="ios",
        recommended_count=1,
        application_type=["Note Taking"], industry_sector=["Data Protection"],
    ),
]

SEED_SCREENS = [
    Screen(
        project_id="p1", screen_id="s1", platform="ios", is_recommended=True, order=2,
        page_type="Onboarding", page_type_l2="Login",
        app_category="Finance", app_category_l2="Banking",
        design_system="Material", type_l2="Grid", spacing="Comfortable", density="Low",
        component_index_l2=["Tab Bar", "Card"], tags_primary_l2=["Authentication"],
        tags_style_l2=["Dark Mode"], design_style=["Flat"], feeling=["Calm"],
    ),
    Screen(
        project_id="p1", screen_id="s2", platform="ios", is_recommended=False, order=1,
        page_type_l2="Sign Up", app_category_l2="Banking",
        component_index_l2=["Text Field"], tags_primary_l2=["Authentication"],
    ),
    Screen(
        project_id="p1", screen_id="s3", platform="ios", is_recommended=False, order=3,
        page_type_l2="Dashboard", app_category_l2="Investing",
        component_index_l2=["Tab Bar"], tags_style_l2=["Minimal"],
    ),
    Screen(
        project_id="p2", screen_id="s4", platform="web", is_recommended=True, order=1,
        page_type_l2="Cart", app_category_l2="Marketplace",
        tags_primary_l2=["Purchase"],
    ),
]


@pytest.fixture
def seeded(temp_db):
    for project in SEED_PROJECTS:
        database.upsert_project(project)
    database.upsert_screens(SEED_SCREENS)
    return temp_db


class ScriptedLLM:
    """Stands in for llm.generate_json_response, answering by prompt kind.

    intents: {dimension key: raw intent dict}
    first:   {dimension key: list returned as "selected"}
    second:  {dimension key: dict returned as "selected"}
    fail:    prompt kinds ("intent", "first", "second") or (kind, key) pairs to raise on
    """

    def __init__(self, intents=None, first=None, second=None, fail=()):
        self.intents = intents or {}
        self.first = first or {}
        self.second = second or {}
        self.fail = set(fail)
        self.calls = []
        self.prompts = []
        self._lock = threading.Lock()

    def __call__(self, prompt, system_instruction=None):
        kind, key = self._classify(prompt)
        with self._lock:
            self.calls.append((kind, key))
            self.prompts.append(prompt)
        if kind in self.fail or (kind, key) in self.fail:
            raise AiServiceError("scripted failure")
        if kind == "intent":
            return {"dimensions": self.intents}
        if kind == "first":
            return {"selected": self.first.get(key, [])}
        return {"selected": self.second.get(key, {})}

    @staticmethod
    def _classify(prompt):
        match = re.search(r"^Dimension: .* \((\w+)\)$", prompt, re.M)
        key = match.group(1) if match else None
        if "First-level tag options" in prompt:
            return "first", key
        if "Second-level options" in prompt:
            return "second", key
        return "intent", None


@pytest.fixture
def scripted_llm():
    return ScriptedLLM


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=b"", headers=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.content = content
        self.headers = headers or {}
        self.text = text if text is not None else ("" if payload is None else str(payload))

    def json(self):
        return self._payload

    def raise_for_status(self):
        import httpx

        if self.status_code >= 400:
            request = httpx.Request("GET", "http://test")
            raise httpx.HTTPStatusError(
                f"status {self.status_code}",
                request=request,
                response=httpx.Response(self.status_code, request=request),
            )


@pytest.fixture
def fake_response():
    return FakeResponse
