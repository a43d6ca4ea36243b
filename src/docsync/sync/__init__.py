"""Document push/pull engine.

Moves a document tree (root plus optional template and slot) between a
local directory and the document server.

Modules:

- ``harness``  -- ``SyncSession``, ``push``, ``pull``, ``select_transport``.
- ``uploads``  -- download, upload and delete passes for ``uploads/``.
- ``plan``     -- upload plan shown before an archive push.
- ``models``   -- ``FileItem``, ``DocumentPlan`` and friends.
- ``reporter`` -- plan and validation output formatting.
- ``cache``    -- ``populate_cache`` render hook.

Usage example
-------------
::

    import asyncio
    from docsync.config import load_config
    from docsync.sync import SyncSession, push

    config = load_config()
    with SyncSession.create(config) as session:
        url = asyncio.run(push(session))
"""

from .cache import populate_cache
from .harness import SyncSession, pull, push, select_transport
from .models import DocumentPlan, FileItem, FileItemStatus
from .plan import build_upload_plan, confirm_message
from .reporter import format_document_plan, format_issues, issues_to_json
from .uploads import delete_path_uploads, download_path_uploads, upload_path_uploads

__all__ = [
    "DocumentPlan",
    "FileItem",
    "FileItemStatus",
    "SyncSession",
    "build_upload_plan",
    "confirm_message",
    "delete_path_uploads",
    "download_path_uploads",
    "format_document_plan",
    "format_issues",
    "issues_to_json",
    "populate_cache",
    "pull",
    "push",
    "select_transport",
    "upload_path_uploads",
]
