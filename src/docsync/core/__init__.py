"""Core helpers shared by the transports and the sync harness."""

from .async_utils import run_sync
from .client import DocumentServerClient, UploadEntry

__all__ = ["DocumentServerClient", "UploadEntry", "run_sync"]
