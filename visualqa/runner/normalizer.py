"""Issue normalizer: folds suite-reported issues that say the same thing."""

from __future__ import annotations

import logging
import re
from typing import Iterable

from visualqa.models.issues import IssueSeverity, NormalizedIssue
from visualqa.models.suite_result import RawIssue, SuiteResult

logger = logging.getLogger(__name__)

PLACEHOLDER = "#"
MAX_SAMPLES = 3

_QUOTES = re.compile(r"[\"'`]")
_DIGITS = re.compile(r"\d+")
_SINGLE_LETTER = re.compile(r"\b[a-z]\b")
_WHITESPACE = re.compile(r"\s+")


def canonical_key(issue: RawIssue) -> str:
    """Derive the grouping key for an issue.

    "Button X not found" and "Button Y not found" map to the same key, as do
    messages that only differ in counts ("Found 3 errors" / "Found 12 errors").
    """
    message = issue.message.strip() or issue.kind
    key = message.lower()
    key = _QUOTES.sub("", key)
    key = _DIGITS.sub(PLACEHOLDER, key)
    key = _SINGLE_LETTER.sub(PLACEHOLDER, key)
    key = _WHITESPACE.sub(" ", key)
    key = key.strip().rstrip(".!?:;").strip()
    return key or issue.kind.lower()


def issue_severity(occurrence_count: int, suite_count: int) -> IssueSeverity:
    """Severity of a folded issue; monotonic in both arguments."""
    if suite_count >= 3:
        return "critical"
    if occurrence_count >= 5:
        return "high"
    if occurrence_count >= 3:
        return "medium"
    return "low"


def normalize(raw_issues: Iterable[RawIssue]) -> list[NormalizedIssue]:
    """Fold raw issues sharing a canonical key, in first-seen order."""
    groups: dict[str, dict] = {}
    for issue in raw_issues:
        key = canonical_key(issue)
        group = groups.setdefault(key, {"count": 0, "suites": [], "samples": [], "kinds": []})
        group["count"] += 1
        if issue.source_suite not in group["suites"]:
            group["suites"].append(issue.source_suite)
        if len(group["samples"]) < MAX_SAMPLES:
            group["samples"].append(issue.message)
        if issue.kind not in group["kinds"]:
            group["kinds"].append(issue.kind)

    normalized = [
        NormalizedIssue(
            canonical_key=key,
            occurrence_count=g["count"],
            affected_suites=g["suites"],
            severity=issue_severity(g["count"], len(g["suites"])),
            sample_messages=g["samples"],
            kinds=g["kinds"],
        )
        for key, g in groups.items()
    ]
    logger.debug("Normalized %d distinct issues", len(normalized))
    return normalized


def collect_issues(results: Iterable[SuiteResult]) -> list[RawIssue]:
    """All raw issues across results, stamped with the reporting suite's name."""
    issues: list[RawIssue] = []
    for result in results:
        for issue in result.issues:
            if issue.source_suite != result.suite_name:
                issue = issue.model_copy(update={"source_suite": result.suite_name})
            issues.append(issue)
    return issues
