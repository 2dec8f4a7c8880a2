"""Find local test files and collect the TestRail cases they declare."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .models import CaseTable
from .titles import extract_cases

log = logging.getLogger("testrail_sync.scanner")


def find_test_files(root: str | Path, suffix: str = ".test.ts") -> list[Path]:
    """Recursively list files under ``root`` whose name ends with ``suffix``.

    Entries are visited in sorted order so repeated runs see files (and
    therefore id collisions) in the same sequence. Unreadable directories are
    logged and skipped.
    """
    root = Path(root)
    files: list[Path] = []
    log.debug("Scanning directory: %s", root)
    try:
        with os.scandir(root) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        log.error("Error reading directory %s: %s", root, e)
        return files

    for entry in entries:
        path = Path(entry.path)
        if entry.is_dir():
            files.extend(find_test_files(path, suffix))
        elif entry.name.endswith(suffix):
            log.debug("Test file: %s", path)
            files.append(path)
    return files


def _display_path(path: Path, base_dir: Path | None) -> str:
    if base_dir is None:
        return str(path)
    try:
        return os.path.relpath(path, base_dir)
    except ValueError:
        # Different drive on Windows
        return str(path)


def analyze_file(path: str | Path, base_dir: str | Path | None = None) -> CaseTable:
    """Read one file and extract its cases. Unreadable files yield no cases."""
    path = Path(path)
    display = _display_path(path, Path(base_dir) if base_dir is not None else None)
    log.debug("Analyzing test file: %s", display)
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        log.error("Error analyzing file %s: %s", display, e)
        return {}
    return extract_cases(content, display)


def scan_directory(
    root: str | Path,
    suffix: str = ".test.ts",
    base_dir: str | Path | None = None,
) -> CaseTable:
    """Merge the cases of every test file under ``root``.

    Later files overwrite earlier ones on id collision, without a warning.
    """
    files = find_test_files(root, suffix)
    log.info("Found %d test files in %s", len(files), root)

    cases: CaseTable = {}
    for path in files:
        cases.update(analyze_file(path, base_dir))
    log.info("Total test cases found in files: %d", len(cases))
    return cases
