"""Compare local case titles with TestRail and push the local titles back.

The run is strictly sequential: one TestRail call at a time, with a fixed
pause after every lookup and every update. Local files are the source of
truth, so updates always write the file's normalized title.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from pydantic import ValidationError

from .client import TestRailClient, TestRailError
from .config import SyncConfig
from .models import (
    CaseRecord,
    CaseTable,
    Difference,
    LookupFailure,
    Project,
    ProjectInfo,
    RemoteCase,
    RunState,
    Suite,
    SyncReport,
    UpdateResult,
)
from .ratelimit import FixedDelay, RateLimiter
from .scanner import scan_directory
from .titles import normalize_title

log = logging.getLogger("testrail_sync.sync")

# Given the differences found, decide whether to push the updates
DecisionProvider = Callable[[list[Difference]], bool]


class SyncError(Exception):
    """The run cannot continue (project missing or not configured)."""


def decline(differences: list[Difference]) -> bool:
    return False


def compare(local: CaseRecord, remote: RemoteCase) -> Difference | None:
    """Return a Difference when the normalized titles are not identical."""
    clean_remote = normalize_title(remote.title, local.identifier)
    if clean_remote == local.title:
        return None
    return Difference(
        identifier=local.identifier,
        case_number=local.case_number,
        file_path=local.file_path,
        file_original_title=local.original_title,
        file_title=local.title,
        testrail_title=remote.title,
        testrail_clean_title=clean_remote,
    )


class Synchronizer:
    def __init__(
        self,
        client: TestRailClient,
        cfg: SyncConfig | None = None,
        *,
        confirm: DecisionProvider = decline,
        lookup_limiter: RateLimiter | None = None,
        update_limiter: RateLimiter | None = None,
    ) -> None:
        self._client = client
        self._cfg = cfg or SyncConfig()
        self._confirm = confirm
        self._lookup_limiter = lookup_limiter or FixedDelay(self._cfg.lookup_delay)
        self._update_limiter = update_limiter or FixedDelay(self._cfg.update_delay)
        self.state = RunState.IDLE
        self._project_info: ProjectInfo | None = None

    def _transition(self, state: RunState) -> None:
        log.debug("State %s -> %s", self.state.value, state.value)
        self.state = state

    # --- Project ---

    def resolve_project(self, project_id: int | None) -> ProjectInfo:
        """Load the project and its suites.

        Without a project id the available projects are logged and SyncError
        is raised.
        """
        if not project_id:
            log.warning("TESTRAIL_PROJECT_ID is not set")
            projects = [Project.model_validate(p) for p in self._client.get_projects()]
            for p in projects:
                log.info("Available project: %s (ID: %d)", p.name, p.id)
            raise SyncError(
                "Set TESTRAIL_PROJECT_ID to the ID of the project to use "
                f"({len(projects)} projects available)"
            )

        log.info("Using project ID %s", project_id)
        try:
            project = Project.model_validate(self._client.get_project(project_id))
        except (TestRailError, ValidationError) as e:
            raise SyncError(f"Project with ID {project_id} not found or inaccessible: {e}") from e
        log.info("Found project: %s (ID: %d)", project.name, project.id)

        suites = [Suite.model_validate(s) for s in self._client.get_suites(project.id)]
        if not suites:
            log.info("No test suites found in the project")
        for s in suites:
            log.info("Suite: %s (ID: %d)", s.name, s.id)

        self._project_info = ProjectInfo(project=project, suites=suites)
        return self._project_info

    # --- Lookups ---

    def _search_suites(self, case_number: str) -> RemoteCase | None:
        if self._project_info is None:
            return None
        log.info("Searching for case %s in all suites...", case_number)
        project_id = self._project_info.project.id
        for suite in self._project_info.suites:
            try:
                cases = self._client.get_cases(project_id, suite.id)
            except TestRailError as e:
                log.error("Error searching in suite %s: %s", suite.name, e)
                continue
            for c in cases:
                if str(c.get("id")) == case_number:
                    return RemoteCase.model_validate(c)
        return None

    def fetch_case(self, case_number: str) -> RemoteCase | None:
        """Look up one case by numeric id. Returns None on any failure.

        An HTTP 400 from get_case falls back to scanning each suite's case
        list of the resolved project.
        """
        try:
            return RemoteCase.model_validate(self._client.get_case(case_number))
        except TestRailError as e:
            if e.status_code == 400:
                try:
                    found = self._search_suites(case_number)
                except ValidationError as ve:
                    log.error("Malformed case %s in suite listing: %s", case_number, ve)
                    return None
                if found is not None:
                    return found
            log.error("Error getting TestRail case %s: %s", case_number, e.detail or e)
            return None
        except ValidationError as e:
            log.error("TestRail case %s is missing required fields: %s", case_number, e)
            return None

    def compare_all(self, cases: CaseTable) -> tuple[list[Difference], list[LookupFailure]]:
        differences: list[Difference] = []
        errors: list[LookupFailure] = []
        total = len(cases)

        for processed, (case_id, record) in enumerate(cases.items(), start=1):
            remote = self.fetch_case(record.case_number)
            if self._cfg.progress_every and processed % self._cfg.progress_every == 0:
                log.info("Progress: %d/%d cases processed", processed, total)

            if remote is None:
                errors.append(
                    LookupFailure(
                        identifier=case_id,
                        file_path=record.file_path,
                        file_title=record.title,
                        reason=f"case {record.case_number} not found or not accessible",
                    )
                )
            else:
                diff = compare(record, remote)
                if diff is not None:
                    differences.append(diff)
            self._lookup_limiter.wait()

        return differences, errors

    # --- Updates ---

    def apply_updates(self, differences: list[Difference]) -> UpdateResult:
        result = UpdateResult()
        for diff in differences:
            log.info('Updating case %s with title: "%s"', diff.case_number, diff.file_title)
            try:
                self._client.update_case(diff.case_number, diff.file_title)
            except TestRailError as e:
                log.error("Failed to update case %s: %s", diff.case_number, e.detail or e)
                result.failed += 1
                result.failures.append(diff.identifier)
            else:
                log.info("Successfully updated case %s", diff.case_number)
                result.succeeded += 1
            self._update_limiter.wait()
        return result

    # --- Full run ---

    def run(
        self,
        test_dir: str | Path,
        project_id: int | None,
        *,
        suffix: str | None = None,
        base_dir: str | Path | None = None,
    ) -> SyncReport:
        """Resolve the project, scan files, compare, and update if confirmed."""
        report = SyncReport(state=self.state)

        self._transition(RunState.RESOLVING_PROJECT)
        info = self.resolve_project(project_id)
        report.project_id = info.project.id

        self._transition(RunState.SCANNING_FILES)
        cases = scan_directory(test_dir, suffix or self._cfg.file_suffix, base_dir)
        report.cases_scanned = len(cases)

        self._transition(RunState.COMPARING_CASES)
        log.info("Comparing titles with TestRail...")
        report.differences, report.errors = self.compare_all(cases)

        if not report.differences:
            self._transition(RunState.REPORTING_ONLY)
        else:
            self._transition(RunState.AWAITING_CONFIRMATION)
            if self._confirm(report.differences):
                self._transition(RunState.UPDATING)
                report.update = self.apply_updates(report.differences)
            else:
                log.info("Update cancelled")

        self._transition(RunState.DONE)
        report.state = self.state
        return report
