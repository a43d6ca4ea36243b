"""Exception hierarchy for docsync.

Errors fall into a few families so callers can decide how to react:

- ``ConfigurationError``: missing or ambiguous files, settings drift.
  Detected before any network I/O; some are auto-fixable.
- ``ConsistencyError``: path collisions and template/slot mismatches.
  Never auto-resolved.
- ``TransportError``: git remote problems, dirty working trees,
  credential failures.  Messages never contain credentials.
- ``ServerError``: non-2xx responses or missing bodies.
- ``AssetError``: a single upload transfer failed.  The upload passes
  catch these and log a warning.
- ``SyncError``: stage-prefixed wrapper raised by the push/pull harness.
"""

from __future__ import annotations


class DocsyncError(Exception):
    """Base class for all docsync errors."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(DocsyncError):
    """Local files or settings are missing, ambiguous, or out of sync."""


class ContentMissingError(ConfigurationError):
    """No content file (``content.*`` or ``index.html``) was found."""


class ContentAmbiguousError(ContentMissingError):
    """More than one content file was found in the same directory."""


class DataAmbiguousError(ConfigurationError):
    """More than one ``data.*`` file was found in the same directory."""


class ArchiveFileSetError(ConfigurationError):
    """A directory does not hold a valid file set for an archive push."""


class SettingsNotFoundError(ConfigurationError):
    """No readable ``settings.json`` where one is required."""


class SettingsDriftError(ConfigurationError):
    """``settings.json`` disagrees with the directories on disk."""


class DirectoryNotFoundError(ConfigurationError):
    """A template or slot directory referenced by settings does not exist."""


class TargetResolutionError(ConfigurationError):
    """The server, credentials, or document path could not be determined."""


# ---------------------------------------------------------------------------
# Consistency
# ---------------------------------------------------------------------------


class ConsistencyError(DocsyncError):
    """Two sources of truth for a document path disagree."""


class PathMismatchError(ConsistencyError):
    """A sub-document's own path differs from its parent's pointer."""


class PathCollisionError(ConsistencyError):
    """A node reuses the path of an ancestor or sibling."""


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TransportError(DocsyncError):
    """A transport primitive could not complete."""


class RemoteMismatchError(TransportError):
    """An existing repository points at a different remote."""


class UncommittedChangesError(TransportError):
    """The working tree has uncommitted changes."""


class TransportConflictError(TransportError):
    """The directory is already tracked by the other transport."""


class GitCommandError(TransportError):
    """A git command failed.  The message is sanitized."""

    def __init__(self, command: str, message: str) -> None:
        super().__init__(message)
        self.command = command


class AuthenticationError(TransportError):
    """The server rejected the credentials."""


# ---------------------------------------------------------------------------
# Network / assets / harness
# ---------------------------------------------------------------------------


class ServerError(DocsyncError):
    """The document server answered with an unexpected response."""

    def __init__(
        self,
        method: str,
        url: str,
        status: int | None,
        detail: str = "",
    ) -> None:
        self.method = method
        self.url = url
        self.status = status
        self.detail = detail
        status_text = str(status) if status is not None else "no response"
        message = f"{method} {url} failed ({status_text})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class AssetError(DocsyncError):
    """Transferring a single upload failed."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class SyncError(DocsyncError):
    """A push or pull aborted.  The message carries the stage prefix."""
