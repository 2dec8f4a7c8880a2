"""Extract TestRail case ids and titles from test source and normalize titles.

Only the first string literal of a ``test(`` call is considered::

    test('C1234 Login works', () => { ... })

The id is the first ``C<digits>`` run anywhere inside that literal. Matching is
purely regex based and line-oblivious, so malformed or truncated source never
raises; it simply yields fewer matches.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator

from .models import CaseRecord, CaseTable

log = logging.getLogger("testrail_sync.titles")

TEST_CALL_RE = re.compile(r"""test\(['"]([^'"]+)['"]""")
CASE_ID_RE = re.compile(r"C[0-9]+")


def normalize_title(raw_title: str, identifier: str) -> str:
    """Strip a leading ``identifier`` and the whitespace after it, then trim.

    The prefix must sit at the very start of ``raw_title``. Leading whitespace
    before the id defeats the match, so ``"  C1 Login"`` comes back as
    ``"C1 Login"`` rather than ``"Login"``. TestRail titles are compared this
    way on both sides, so the quirk is kept as is.
    """
    return re.sub(rf"^{re.escape(identifier)}\s*", "", raw_title, count=1).strip()


def iter_test_titles(source_text: str) -> Iterator[str]:
    """Yield the first string literal of every ``test(`` call, in order."""
    for match in TEST_CALL_RE.finditer(source_text):
        yield match.group(1)


def find_case_id(title: str) -> str | None:
    match = CASE_ID_RE.search(title)
    return match.group(0) if match else None


def extract_cases(source_text: str, file_path: str = "") -> CaseTable:
    """Build an id -> CaseRecord table from one file's source text.

    Literals without an id are skipped. A repeated id overwrites the earlier
    entry.
    """
    cases: CaseTable = {}
    for raw_title in iter_test_titles(source_text):
        case_id = find_case_id(raw_title)
        if case_id is None:
            continue
        record = CaseRecord(
            identifier=case_id,
            title=normalize_title(raw_title, case_id),
            original_title=raw_title,
            file_path=file_path,
        )
        cases[case_id] = record
        log.debug('Found test case %s: "%s" (original: "%s")', case_id, record.title, raw_title)
    return cases
