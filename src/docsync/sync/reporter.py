"""Plan and validation report formatting.

Provides human-readable and machine-readable output for the commands:

- ``format_document_plan`` -- one document of a push plan.
- ``format_upload_plan`` -- every document of a push plan.
- ``format_issues`` -- settings validation issues.
- ``issues_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import DocumentPlan, FileItemStatus

if TYPE_CHECKING:
    from ..document.validator import SettingsIssue

_SYMBOLS = {
    FileItemStatus.NEW: "+",
    FileItemStatus.MODIFIED: "~",
    FileItemStatus.UNCHANGED: "=",
    FileItemStatus.SYNCED: "=",
    FileItemStatus.INCLUDED: "=",
    FileItemStatus.ADD: "^",
    FileItemStatus.REMOVE: "v",
    FileItemStatus.IGNORED: "x",
}

# Shown in parentheses after the file name; None shows nothing
_LABELS = {
    FileItemStatus.NEW: "new",
    FileItemStatus.MODIFIED: "modified",
    FileItemStatus.SYNCED: "synced",
    FileItemStatus.ADD: "new",
    FileItemStatus.REMOVE: "remove",
    FileItemStatus.IGNORED: "ignored",
}

_UNCHANGED = (
    FileItemStatus.UNCHANGED,
    FileItemStatus.SYNCED,
    FileItemStatus.INCLUDED,
)

# ------------------------------------------------------------------
# Plans
# ------------------------------------------------------------------


def format_document_plan(
    plan: DocumentPlan,
    show_all_files: bool = False,
    hidden_files: frozenset[str] = frozenset(),
) -> str:
    """Format one document plan.

    With *show_all_files* every file gets its own line.  Otherwise changes
    are listed and unchanged files are summarised by count.

    Args:
        plan: The document plan.
        show_all_files: List unchanged files too.
        hidden_files: File names to leave out.

    Returns:
        Multi-line formatted string.
    """
    lines = ["", plan.label, plan.url]
    if plan.archive_info:
        lines.append(f"Archive: {plan.archive_info}")

    visible = [f for f in plan.files if f.file not in hidden_files]

    if show_all_files:
        for item in visible:
            label = _LABELS.get(item.status)
            suffix = f" ({label})" if label else ""
            lines.append(f"{_SYMBOLS[item.status]} {item.file}{suffix}")
    else:
        changed = 0
        for status in (
            FileItemStatus.NEW,
            FileItemStatus.ADD,
            FileItemStatus.MODIFIED,
            FileItemStatus.REMOVE,
            FileItemStatus.IGNORED,
        ):
            for item in visible:
                if item.status is status:
                    lines.append(f"{_SYMBOLS[status]} {item.file} ({_LABELS[status]})")
                    if status is not FileItemStatus.IGNORED:
                        changed += 1
        unchanged = sum(1 for f in visible if f.status in _UNCHANGED)
        if unchanged:
            state = "unchanged" if changed else "up to date"
            lines.append(f"{unchanged} file(s) {state}")

    for info in plan.extra_info:
        lines.append(f"- {info}")

    return "\n".join(lines)


def format_upload_plan(plans: list[DocumentPlan]) -> str:
    """Format a full push plan, one block per document."""
    blocks = ["Upload plan:"]
    blocks.extend(format_document_plan(p, show_all_files=True) for p in plans)
    return "\n".join(blocks)


# ------------------------------------------------------------------
# Settings validation
# ------------------------------------------------------------------


def format_issues(issues: list[SettingsIssue]) -> str:
    """One line per issue, with the available fix in brackets."""
    if not issues:
        return "settings.json is valid"
    lines = []
    for issue in issues:
        line = f"- {issue.message}"
        if issue.fix:
            line += f" [fix: {issue.fix}]"
        lines.append(line)
    return "\n".join(lines)


def issues_to_json(
    issues: list[SettingsIssue], fixed: int | None = None, total: int | None = None
) -> dict:
    """Structured result of a ``settings`` run."""
    result: dict = {
        "valid": not issues,
        "violations": [
            {"message": i.message, "fix": i.fix} for i in issues
        ],
    }
    if fixed is not None:
        result["fixed"] = f"{fixed}/{total if total is not None else fixed}"
    return result
