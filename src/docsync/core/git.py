"""Thin wrappers around the ``git`` command line.

All helpers are blocking and run ``git`` through ``subprocess.run``; async
callers bridge them with ``run_sync``.  Credentials are only ever placed
in the ``origin`` URL inside ``authenticated_remote``.
"""

from __future__ import annotations

import base64
import logging
import shutil
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from urllib.parse import quote, urlsplit, urlunsplit

from ..exceptions import GitCommandError

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 300


def run_git(args: list[str], cwd: Path | str | None = None) -> str:
    """Run ``git <args>`` and return its stripped stdout.

    Raises:
        GitCommandError: On a non-zero exit status, a timeout, or when git
            cannot be started.
    """
    command = " ".join(["git", *args])
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=str(cwd) if cwd is not None else None,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise GitCommandError(command, f"{command} failed: {e}") from e

    if result.returncode != 0:
        detail = (result.stderr or result.stdout).strip()
        raise GitCommandError(
            command, f"{command} failed (exit {result.returncode}): {detail}"
        )
    return result.stdout.strip()


def is_git_installed() -> bool:
    return shutil.which("git") is not None


def is_git_repo(directory: Path | str) -> bool:
    """True when *directory* itself holds a ``.git`` (parents are not searched)."""
    return (Path(directory) / ".git").exists()


def has_remote(directory: Path | str) -> bool:
    if not is_git_repo(directory):
        return False
    try:
        return bool(run_git(["remote"], cwd=directory))
    except GitCommandError:
        return False


def get_remote_url(directory: Path | str, remote: str = "origin") -> str | None:
    try:
        return run_git(["remote", "get-url", remote], cwd=directory) or None
    except GitCommandError:
        return None


def has_uncommitted_changes(directory: Path | str) -> bool:
    try:
        return bool(run_git(["status", "--porcelain"], cwd=directory))
    except GitCommandError:
        return False


def has_upstream(directory: Path | str) -> bool:
    try:
        run_git(
            ["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"],
            cwd=directory,
        )
    except GitCommandError:
        return False
    return True


def current_branch(directory: Path | str) -> str:
    return run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=directory)


# ---------------------------------------------------------------------------
# Credential URLs
# ---------------------------------------------------------------------------


def remote_url_for(server_url: str, path: str) -> str:
    """Git remote of a document: ``{server_url}{path}.git``."""
    return f"{server_url}{path}.git"


def sanitize_url(url: str) -> str:
    """Remove any ``user:password@`` part from *url*."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit(parts._replace(netloc=host))


def build_auth_url(url: str, auth: str) -> tuple[str, str]:
    """Embed the basic-auth token *auth* into *url*.

    Returns:
        ``(auth_url, clean_url)``.  Username and password are
        percent-encoded in ``auth_url``.
    """
    clean_url = sanitize_url(url)
    username, _, password = base64.b64decode(auth).decode("utf-8").partition(":")
    parts = urlsplit(clean_url)
    userinfo = f"{quote(username, safe='')}:{quote(password, safe='')}"
    auth_url = urlunsplit(parts._replace(netloc=f"{userinfo}@{parts.netloc}"))
    return auth_url, clean_url


def sanitize_message(message: str, auth_url: str, clean_url: str) -> str:
    return message.replace(auth_url, clean_url)


@contextmanager
def authenticated_remote(
    directory: Path | str, auth_url: str, clean_url: str
) -> Iterator[None]:
    """Point ``origin`` at *auth_url* for the duration of the block.

    ``origin`` is reset to *clean_url* on exit, also when the block raises.
    ``GitCommandError`` raised inside is re-raised with the credential URL
    replaced by *clean_url*.
    """
    try:
        run_git(["remote", "set-url", "origin", auth_url], cwd=directory)
        yield
    except GitCommandError as e:
        raise GitCommandError(
            sanitize_message(e.command, auth_url, clean_url),
            sanitize_message(str(e), auth_url, clean_url),
        ) from None
    finally:
        try:
            run_git(["remote", "set-url", "origin", clean_url], cwd=directory)
        except GitCommandError as e:
            logger.warning(
                "Could not restore origin URL in %s: %s",
                directory,
                sanitize_message(str(e), auth_url, clean_url),
            )
