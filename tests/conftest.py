"""Shared fixtures for title sync tests."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import httpx
import pytest
import respx

from testrail_sync.config import Config, SyncConfig, TestRailConfig

HOST = "https://example.testrail.io"
API_URL = f"{HOST}/index.php"


SAMPLE_TEST_FILE = """\
import { test, expect } from '@playwright/test';

test.describe('Checkout', () => {
  test('C1234 Checkout flow', async ({ page }) => {
    await expect(page).toHaveTitle(/Shop/);
  });

  test("C5678 Login works", async () => {});

  test('Regular test without ID', () => {});
});
"""


class FakeTestRail:
    """In-memory TestRail API v2 served through respx.

    Requests look like ``index.php?/api/v2/get_case/1234``; the handler parses
    the endpoint out of the query string.
    """

    def __init__(self) -> None:
        self.projects: dict[int, dict] = {}
        self.suites: dict[int, list[dict]] = {}
        self.cases: dict[int, dict] = {}
        self.suite_cases: dict[int, list[dict]] = {}
        self.fail_get: dict[int, int] = {}
        self.fail_update: set[int] = set()
        self.calls: list[tuple[str, str]] = []
        self.updates: list[tuple[int, dict]] = []

    def add_case(self, case_id: int, title: str, suite_id: int = 1) -> None:
        case = {"id": case_id, "title": title, "suite_id": suite_id}
        self.cases[case_id] = case
        self.suite_cases.setdefault(suite_id, []).append(case)

    @staticmethod
    def _split(endpoint: str) -> tuple[str, dict[str, str]]:
        path, *pairs = endpoint.split("&")
        params = dict(p.split("=", 1) for p in pairs)
        return path, params

    @staticmethod
    def _page(items: list[dict], params: dict[str, str], key: str) -> dict:
        limit = int(params.get("limit", 250))
        offset = int(params.get("offset", 0))
        page = items[offset:offset + limit]
        has_more = offset + limit < len(items)
        return {
            "offset": offset,
            "limit": limit,
            "size": len(page),
            "_links": {"next": "/api/v2/next" if has_more else None, "prev": None},
            key: page,
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        endpoint = request.url.query.decode().removeprefix("/api/v2/")
        self.calls.append((request.method, endpoint))
        path, params = self._split(endpoint)
        name, _, ident = path.partition("/")

        if name == "get_project":
            project = self.projects.get(int(ident))
            if project is None:
                return httpx.Response(400, json={"error": "Field :project_id is not a valid or accessible project."})
            return httpx.Response(200, json=project)
        if name == "get_projects":
            return httpx.Response(200, json=self._page(list(self.projects.values()), params, "projects"))
        if name == "get_suites":
            return httpx.Response(200, json=self.suites.get(int(ident), []))
        if name == "get_case":
            case_id = int(ident)
            if case_id in self.fail_get:
                return httpx.Response(self.fail_get[case_id], json={"error": "Field :case_id is not a valid test case."})
            case = self.cases.get(case_id)
            if case is None:
                return httpx.Response(400, json={"error": "Field :case_id is not a valid test case."})
            return httpx.Response(200, json=case)
        if name == "get_cases":
            items = self.suite_cases.get(int(params.get("suite_id", 0)), [])
            return httpx.Response(200, json=self._page(items, params, "cases"))
        if name == "update_case" and request.method == "POST":
            case_id = int(ident)
            if case_id in self.fail_update:
                return httpx.Response(403, json={"error": "No permission to modify test cases."})
            body = json.loads(request.content)
            self.updates.append((case_id, body))
            self.cases.setdefault(case_id, {"id": case_id}).update(body)
            return httpx.Response(200, json=self.cases[case_id])
        return httpx.Response(404, json={"error": f"Unknown method {name}"})


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that's cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def testrail_cfg() -> TestRailConfig:
    return TestRailConfig(
        host=HOST,
        username="qa@example.com",
        password="api-key",
        project_id=1,
        request_timeout=5,
        page_limit=250,
    )


@pytest.fixture
def cfg(testrail_cfg: TestRailConfig) -> Config:
    """Config with the pauses between calls switched off."""
    return Config(
        testrail=testrail_cfg,
        sync=SyncConfig(lookup_delay=0, update_delay=0, progress_every=10),
    )


@pytest.fixture
def fake_testrail():
    """FakeTestRail with project 1 and one suite, mounted on the respx router."""
    fake = FakeTestRail()
    fake.projects[1] = {"id": 1, "name": "Web App"}
    fake.suites[1] = [{"id": 1, "name": "Master"}]
    with respx.mock(assert_all_called=False) as router:
        router.route(url__startswith=API_URL).mock(side_effect=fake.handler)
        yield fake


@pytest.fixture
def test_tree(tmp_dir: Path) -> Path:
    """A small directory of test files with nested folders."""
    root = tmp_dir / "tests"
    (root / "checkout").mkdir(parents=True)
    (root / "auth").mkdir()
    (root / "checkout" / "checkout.test.ts").write_text(SAMPLE_TEST_FILE, encoding="utf-8")
    (root / "auth" / "login.test.ts").write_text(
        "test('C9999 Logout clears session', () => {});\n"
        "it('C4242 not picked up by it()', () => {});\n",
        encoding="utf-8",
    )
    (root / "auth" / "helpers.ts").write_text("test('C1 helper, not a test file', () => {});\n", encoding="utf-8")
    return root
