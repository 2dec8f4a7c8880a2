"""TestRail API v2 client: authenticated requests and offset pagination."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import TestRailConfig

log = logging.getLogger("testrail_sync.client")

# Keys TestRail uses for the item list in paginated responses
PAGE_KEYS = ("cases", "projects", "suites")


class TestRailError(Exception):
    """A TestRail request failed at the transport or HTTP level."""

    __test__ = False  # not a pytest test class

    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


def _error_detail(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return resp.text


def _page_items(data: Any, key: str | None) -> list[dict[str, Any]]:
    """Return the item list from a bare-list or wrapped page."""
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return []
    for k in (key, *PAGE_KEYS):
        if k and isinstance(data.get(k), list):
            return data[k]
    return []


def _has_next(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    links = data.get("_links") or {}
    return bool(links.get("next"))


class TestRailClient:
    """Sync wrapper around the TestRail HTTP API (``index.php?/api/v2/...``)."""

    __test__ = False

    def __init__(self, cfg: TestRailConfig, *, transport: httpx.BaseTransport | None = None) -> None:
        self._cfg = cfg
        self._base = f"{cfg.host.rstrip('/')}/index.php?/api/v2/"
        self._client = httpx.Client(
            auth=httpx.BasicAuth(cfg.username, cfg.password),
            headers={"Content-Type": "application/json"},
            timeout=cfg.request_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> TestRailClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def url(self, endpoint: str) -> str:
        return self._base + endpoint.lstrip("/")

    def request(self, endpoint: str, method: str = "GET", data: dict[str, Any] | None = None) -> Any:
        """Send one request and return the decoded JSON body.

        Raises TestRailError on connection failures and non-2xx responses.
        """
        kwargs: dict[str, Any] = {}
        if data is not None and method in ("POST", "PUT"):
            kwargs["json"] = data
        try:
            resp = self._client.request(method, self.url(endpoint), **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            log.error("API error (%s %s): %d %s", method, endpoint, e.response.status_code, detail)
            raise TestRailError(
                f"{method} {endpoint} failed with HTTP {e.response.status_code}: {detail}",
                status_code=e.response.status_code,
                detail=detail,
            ) from e
        except httpx.HTTPError as e:
            log.error("API error (%s %s): %s", method, endpoint, e)
            raise TestRailError(f"{method} {endpoint} failed: {e}") from e

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TestRailError(f"{method} {endpoint} returned invalid JSON", status_code=resp.status_code) from e

    def paginate(self, endpoint: str, key: str | None = None, limit: int | None = None) -> list[dict[str, Any]]:
        """Collect every page of a list endpoint.

        Keeps requesting with ``offset += limit`` until a page is shorter than
        ``limit`` or carries no ``_links.next``.
        """
        limit = limit or self._cfg.page_limit
        offset = 0
        results: list[dict[str, Any]] = []
        while True:
            data = self.request(f"{endpoint}&limit={limit}&offset={offset}")
            items = _page_items(data, key)
            results.extend(items)
            if not _has_next(data) or len(items) < limit:
                break
            offset += limit
        return results

    # --- Endpoints ---

    def get_project(self, project_id: int | str) -> dict[str, Any]:
        return self.request(f"get_project/{project_id}")

    def get_projects(self) -> list[dict[str, Any]]:
        return self.paginate("get_projects", key="projects")

    def get_suites(self, project_id: int | str) -> list[dict[str, Any]]:
        return self.paginate(f"get_suites/{project_id}", key="suites")

    def get_case(self, case_id: int | str) -> dict[str, Any]:
        return self.request(f"get_case/{case_id}")

    def get_cases(self, project_id: int | str, suite_id: int | str) -> list[dict[str, Any]]:
        return self.paginate(f"get_cases/{project_id}&suite_id={suite_id}", key="cases")

    def update_case(self, case_id: int | str, title: str) -> dict[str, Any]:
        return self.request(f"update_case/{case_id}", method="POST", data={"title": title})
