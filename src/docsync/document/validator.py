"""Fractal settings validation for a document tree.

The same checks run on the root directory, then on ``template/`` and
``slot/`` with the parent's and sibling's paths marked as forbidden.
Issues that can be repaired carry an ``apply`` callable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ..exceptions import SettingsDriftError
from ..file_handler import list_upload_files
from .context import (
    SETTINGS_FILE,
    NodeReference,
    PathContext,
    Settings,
    read_settings,
    update_settings_property,
    write_settings,
)

logger = logging.getLogger(__name__)

_CHILDREN = (NodeReference.TEMPLATE, NodeReference.SLOT)


@dataclass(frozen=True)
class SettingsIssue:
    """A problem found in a ``settings.json``.

    Attributes:
        message: What is wrong.
        fix: Human description of the repair, when one exists.
        apply: Performs the repair.
    """

    message: str
    fix: str | None = None
    apply: Callable[[], None] | None = None

    @property
    def fixable(self) -> bool:
        return self.apply is not None


def _set_property(directory: Path, key: str, value) -> Callable[[], None]:
    return lambda: update_settings_property(directory, key, value)


def _create_settings(directory: Path, path: str) -> Callable[[], None]:
    return lambda: write_settings(directory, {"path": path})


def _check_uploads(ctx: PathContext) -> list[SettingsIssue]:
    uploads_dir = ctx.uploads_dir
    if not uploads_dir.is_dir():
        return []

    local = list_upload_files(uploads_dir)
    declared = ctx.settings.uploads or []
    added = [name for name in local if name not in declared]
    removed = [name for name in declared if name not in local]
    if not added and not removed:
        return []

    parts = []
    if added:
        parts.append(f"add {', '.join(added)}")
    if removed:
        parts.append(f"remove {', '.join(removed)}")
    return [
        SettingsIssue(
            message=f"{ctx.label}settings.json uploads out of sync: {'; '.join(parts)}",
            fix="Sync settings.json uploads array",
            apply=_set_property(ctx.absolute_dir, "uploads", local),
        )
    ]


def validate_path_settings(ctx: PathContext) -> list[SettingsIssue]:
    """Validate the settings of *ctx* and of its template/slot sub-nodes.

    Checks, in order: the ``path`` field, collisions with
    ``ctx.forbidden_paths``, sub-directory settings and pointers, and the
    ``uploads`` array.  Sub-nodes with readable settings are then
    validated recursively.

    Returns:
        Every issue found across the tree; an empty list means consistent.
    """
    settings = ctx.settings
    label = ctx.label
    base = ctx.absolute_dir

    if not settings.path:
        return [SettingsIssue(f'{label}settings.json is missing the "path" field')]

    issues: list[SettingsIssue] = []

    if settings.path in ctx.forbidden_paths:
        issues.append(
            SettingsIssue(
                f'{label}settings.json path "{settings.path}" '
                "collides with a parent or sibling path"
            )
        )

    children: dict[NodeReference, Settings | None] = {}
    for reference in _CHILDREN:
        child_dir = base / reference.value
        if child_dir.is_dir():
            children[reference] = read_settings(child_dir)

    for reference, child_settings in children.items():
        name = reference.value
        key = f"{name}_path"
        child_dir = base / name
        child_label = f"{label}{name}/"
        pointer = settings.pointer(reference)
        default_path = f"{settings.path}/{name}"

        if child_settings is None:
            new_path = pointer or default_path
            issues.append(
                SettingsIssue(
                    message=f"{child_label}{SETTINGS_FILE} is missing",
                    fix=f'Create {child_label}{SETTINGS_FILE} with path "{new_path}"',
                    apply=_create_settings(child_dir, new_path),
                )
            )

        if not pointer:
            new_pointer = (child_settings and child_settings.path) or default_path
            issues.append(
                SettingsIssue(
                    message=(
                        f"{label}{name.capitalize()} directory exists but "
                        f"{key} is not set in settings.json"
                    ),
                    fix=f'Set {key} to "{new_pointer}"',
                    apply=_set_property(base, key, new_pointer),
                )
            )
        elif child_settings is not None and not child_settings.path:
            issues.append(
                SettingsIssue(
                    message=(
                        f'{key} "{pointer}" differs from '
                        f"{child_label}settings.json, which has no path"
                    ),
                    fix=f'Set {child_label}settings.json path to "{pointer}"',
                    apply=_set_property(child_dir, "path", pointer),
                )
            )
        elif child_settings is not None and child_settings.path != pointer:
            issues.append(
                SettingsIssue(
                    message=(
                        f'{key} "{pointer}" differs from '
                        f'{child_label}settings.json path "{child_settings.path}"'
                    ),
                    fix=f'Update {key} to "{child_settings.path}"',
                    apply=_set_property(base, key, child_settings.path),
                )
            )

    issues.extend(_check_uploads(ctx))

    inherited = (settings.path, *ctx.forbidden_paths)
    for reference, child_settings in children.items():
        if child_settings is None:
            continue
        sibling = NodeReference.SLOT if reference is NodeReference.TEMPLATE else NodeReference.TEMPLATE
        sibling_settings = children.get(sibling)
        forbidden = inherited
        if sibling_settings is not None and sibling_settings.path:
            forbidden = (*inherited, sibling_settings.path)
        issues.extend(
            validate_path_settings(ctx.child(reference, child_settings, forbidden))
        )

    return issues


def apply_fixes(issues: list[SettingsIssue]) -> tuple[int, list[SettingsIssue]]:
    """Apply every fixable issue.

    Returns:
        ``(fixed_count, unfixed_issues)``.
    """
    fixed = 0
    unfixed: list[SettingsIssue] = []
    for issue in issues:
        if issue.apply is None:
            unfixed.append(issue)
            continue
        logger.info("Fixing: %s", issue.fix or issue.message)
        issue.apply()
        fixed += 1
    return fixed, unfixed


def validate_dir_settings(settings: Settings, directory: Path | str) -> None:
    """Reject a directory whose ``template/``/``slot/`` has no pointer.

    Raises:
        SettingsDriftError: With a hint to run ``docsync settings --fix``.
    """
    directory = Path(directory)
    for reference in _CHILDREN:
        name = reference.value
        if (directory / name).is_dir() and not settings.pointer(reference):
            raise SettingsDriftError(
                f"{name.capitalize()} directory exists but {name}_path is not "
                "set in settings.json. Run 'docsync settings --fix' to repair it."
            )
