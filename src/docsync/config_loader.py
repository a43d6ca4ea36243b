"""
YAML config file discovery and loading for docsync.

Config files are looked up by convention, may pull in other files with
``!include``, and may reference environment variables as ``${VAR}`` or
``${VAR:-default}``.  Discovered files are merged so that the project file
wins over the user-global one.

Usage:
    from docsync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "DOCSYNC_CONFIG"
PROJECT_CONFIG_NAMES = ("config.yml", "config.yaml")

_ENV_REFERENCE = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def expand_env_references(text: str) -> str:
    """Substitute ``${VAR}`` / ``${VAR:-default}`` references in *text*.

    An unset or empty variable resolves to its default, or to ``""`` when
    no default is given.
    """

    def _lookup(match: re.Match) -> str:
        name, default = match.group(1), match.group(2)
        return os.environ.get(name) or (default if default is not None else "")

    return _ENV_REFERENCE.sub(_lookup, text)


def _expand_tree(node: Any) -> Any:
    if isinstance(node, str):
        return expand_env_references(node)
    if isinstance(node, dict):
        return {key: _expand_tree(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_expand_tree(item) for item in node]
    return node


class ConfigLoader(yaml.SafeLoader):
    """``yaml.SafeLoader`` that understands ``!include <path>``.

    Relative include paths are resolved against the including file.  The
    chain of files being loaded is carried on the loader instance so that
    include cycles raise instead of recursing forever.
    """

    include_chain: tuple[Path, ...] = ()

    def include(self, node: yaml.ScalarNode) -> Any:
        target = Path(self.construct_scalar(node))
        if not target.is_absolute():
            target = Path(self.name).resolve().parent / target
        target = target.resolve()

        if target in self.include_chain:
            cycle = " -> ".join(str(p) for p in (*self.include_chain, target))
            raise ValueError(f"Circular include detected: {cycle}")
        if not target.exists():
            raise FileNotFoundError(
                f"Include file not found: {target} "
                f"(referenced from {Path(self.name).resolve()})"
            )
        return load_yaml_file(target, include_chain=self.include_chain)


ConfigLoader.add_constructor("!include", ConfigLoader.include)


def load_yaml_file(
    path: Path, *, include_chain: tuple[Path, ...] = ()
) -> Any:
    """Parse one YAML file, following ``!include`` directives."""
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader.include_chain = (*include_chain, path)
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


def discover_config_files() -> list[Path]:
    """Return existing config files, highest precedence first.

    Candidates, in order:
        1. the file named by ``DOCSYNC_CONFIG``
        2. ``.docsync/config.yml`` or ``.docsync/config.yaml`` in the CWD
        3. ``~/.config/docsync/config.yml``
    """
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    project_dir = Path.cwd() / ".docsync"
    candidates.extend(project_dir / name for name in PROJECT_CONFIG_NAMES)
    candidates.append(Path.home() / ".config" / "docsync" / "config.yml")

    return [p for p in candidates if p.exists()]


def load_hierarchical_config() -> dict[str, Any]:
    """Load every discovered config file and merge them.

    Files are applied from lowest to highest precedence; a later file's
    top-level sections replace earlier ones wholesale.  Environment
    references are expanded after merging.  No files means ``{}``.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using zero-config defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = load_yaml_file(path)
        except (OSError, ValueError, yaml.YAMLError):
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return _expand_tree(merged)  # type: ignore[no-any-return]
