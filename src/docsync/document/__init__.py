"""Document model: settings, node contexts, validation and assembly."""

from .assembler import Document, assemble, has_eta_templates
from .context import (
    NodeReference,
    PathContext,
    Settings,
    build_node_list,
    make_context,
    read_settings,
    update_settings_property,
)
from .discovery import DiscoveryResult, discover_documents, make_path_resolver
from .validator import (
    SettingsIssue,
    apply_fixes,
    validate_dir_settings,
    validate_path_settings,
)

__all__ = [
    "Document",
    "DiscoveryResult",
    "NodeReference",
    "PathContext",
    "Settings",
    "SettingsIssue",
    "apply_fixes",
    "assemble",
    "build_node_list",
    "discover_documents",
    "has_eta_templates",
    "make_context",
    "make_path_resolver",
    "read_settings",
    "update_settings_property",
    "validate_dir_settings",
    "validate_path_settings",
]
