"""Pydantic v2 models for local cases, TestRail records and sync results."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# --- Local cases ---


class CaseRecord(BaseModel):
    """A test case found in a local source file."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(pattern=r"^C[0-9]+$", description="TestRail id as written in the file, e.g. C1234")
    title: str = Field(description="Title with the identifier prefix removed")
    original_title: str = Field(description="Title literal exactly as found in the file")
    file_path: str = ""

    @property
    def case_number(self) -> str:
        """Numeric id used by the TestRail API."""
        return self.identifier[1:]


# Identifier -> record, in discovery order
CaseTable = dict[str, CaseRecord]


# --- TestRail records ---


class RemoteCase(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    title: str


class Project(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: str = ""


class Suite(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: str = ""


class ProjectInfo(BaseModel):
    project: Project
    suites: list[Suite] = []


# --- Sync results ---


class Difference(BaseModel):
    identifier: str
    case_number: str
    file_path: str
    file_original_title: str
    file_title: str
    testrail_title: str
    testrail_clean_title: str


class LookupFailure(BaseModel):
    identifier: str
    file_path: str
    file_title: str
    reason: str = ""


class UpdateResult(BaseModel):
    succeeded: int = 0
    failed: int = 0
    failures: list[str] = Field(default_factory=list, description="Identifiers whose update failed")


class RunState(str, Enum):
    IDLE = "idle"
    RESOLVING_PROJECT = "resolving_project"
    SCANNING_FILES = "scanning_files"
    COMPARING_CASES = "comparing_cases"
    REPORTING_ONLY = "reporting_only"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    UPDATING = "updating"
    DONE = "done"


class SyncReport(BaseModel):
    project_id: int | None = None
    cases_scanned: int = 0
    differences: list[Difference] = []
    errors: list[LookupFailure] = []
    update: UpdateResult | None = None
    state: RunState = RunState.IDLE
