"""docsync: keep folder-based documents in sync with a document server."""

__version__ = "0.1.0"
