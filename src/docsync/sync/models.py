"""Pydantic models for push plans and upload sync.

Defines the data contracts shared by the plan builder, the reporter and
the harness:

- ``FileItemStatus``: How a file appears in a plan.
- ``FileItem``: One file line of a plan.
- ``DocumentPlan``: What a push will do to one document.
- ``UploadEntry``: One row of a server ``uploads.json`` manifest.

All models are frozen (immutable).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from ..core.client import UploadEntry


class FileItemStatus(str, Enum):
    """Status of a file line in a plan."""

    NEW = "new"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"
    SYNCED = "synced"
    ADD = "add"
    REMOVE = "remove"
    IGNORED = "ignored"
    INCLUDED = "included"


class FileItem(BaseModel):
    """One file line of a plan.

    Attributes:
        file: File name, ``uploads/<name>`` for uploads.
        status: How the push treats the file.
    """

    file: str
    status: FileItemStatus

    model_config = {"frozen": True}


class DocumentPlan(BaseModel):
    """What a push will do to one document.

    Attributes:
        label: ``Create Template``, ``Update Main`` and so on.
        url: Public URL of the document.
        files: File lines in display order.
        archive_info: Archive size and short hash, when known.
        is_create: The document does not exist on the server yet.
        extra_info: Additional lines shown under the files.
    """

    label: str
    url: str
    files: list[FileItem] = []
    archive_info: str | None = None
    is_create: bool = False
    extra_info: list[str] = []

    model_config = {"frozen": True}

    def with_status(self, *statuses: FileItemStatus) -> list[FileItem]:
        return [f for f in self.files if f.status in statuses]

    @property
    def upload_count(self) -> int:
        """Files and uploads that will be sent."""
        return len(
            self.with_status(FileItemStatus.INCLUDED, FileItemStatus.ADD)
        )

    @property
    def remove_count(self) -> int:
        """Uploads that will be deleted from the server."""
        return len(self.with_status(FileItemStatus.REMOVE))


__all__ = ["DocumentPlan", "FileItem", "FileItemStatus", "UploadEntry"]
