"""
Field mapping between GitHub issues and Todoist tasks.

This module holds the pure rules the reconciler applies: the description
marker that links a task to an issue, label conversion, and the
label-to-priority table.
"""

import re
from collections.abc import Iterable

# Literal prefix of the marker written into task descriptions
MARKER_PREFIX = "GitHub Issue #"

# Label name (lower case) -> Todoist priority (4 is most urgent)
LABEL_PRIORITIES: dict[str, int] = {
    "urgent": 4,
    "high": 3,
    "medium": 2,
    "low": 1,
}
DEFAULT_PRIORITY = 1

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def format_issue_reference(issue_number: int, url: str) -> str:
    """
    Build the marker that links a task description to an issue.

    Args:
        issue_number: GitHub issue number
        url: Canonical issue URL

    Returns:
        Marker text like ``GitHub Issue #42: https://github.com/o/r/issues/42``
    """
    return f"{MARKER_PREFIX}{issue_number}: {url}"


def extract_issue_number(description: str | None) -> int | None:
    """
    Extract the linked issue number from a task description.

    The number is the text between the first ``GitHub Issue #`` and the
    next ``:``, parsed as a base-10 integer.

    Args:
        description: Task description text

    Returns:
        Issue number, or None if the task is not linked
    """
    if not description or MARKER_PREFIX not in description:
        return None

    _, _, remainder = description.partition(MARKER_PREFIX)
    number_part = remainder.partition(":")[0]

    if not _INTEGER_PATTERN.fullmatch(number_part):
        return None

    number = int(number_part)
    if number <= 0:
        return None
    return number


def convert_labels(labels: Iterable[str]) -> list[str]:
    """
    Convert GitHub label names to Todoist label names.

    Labels are lower-cased and spaces and hyphens become underscores.
    Labels that end up empty are dropped.

    Args:
        labels: GitHub label names in issue order

    Returns:
        Todoist label names in the same order
    """
    converted: list[str] = []
    for label in labels:
        clean_label = label.lower().replace(" ", "_").replace("-", "_")
        if clean_label:
            converted.append(clean_label)
    return converted


def label_priority(labels: Iterable[str]) -> int:
    """
    Derive a Todoist priority from GitHub labels.

    The first label (in issue order) that names a priority wins, so
    ``["medium", "urgent"]`` yields 2.

    Args:
        labels: GitHub label names in issue order

    Returns:
        Priority between 1 (low) and 4 (urgent); 1 when no label matches
    """
    for label in labels:
        priority = LABEL_PRIORITIES.get(label.lower())
        if priority is not None:
            return priority
    return DEFAULT_PRIORITY
