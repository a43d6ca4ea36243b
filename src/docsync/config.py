"""Server connection configuration and target resolution.

Reads document server settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    DOCSYNC_URL: Document server URL (required)
    DOCSYNC_USERNAME: Username (required)
    DOCSYNC_PASSWORD: Password (required)
    DOCSYNC_INSECURE: Skip SSL verification (optional, default: false)
    DOCSYNC_DEBUG: Enable debug logging (optional, default: false)
    DOCSYNC_TIMEOUT: HTTP timeout in seconds (optional, default: 60)
"""

import base64
import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

from .exceptions import TargetResolutionError

logger = logging.getLogger(__name__)


@dataclass
class Config:
    server_url: str
    username: str
    password: str
    insecure: bool = False
    debug: bool = False
    timeout: float = 60.0

    @property
    def auth(self) -> str:
        """Base64 ``username:password`` token for basic auth headers."""
        raw = f"{self.username}:{self.password}".encode("utf-8")
        return base64.b64encode(raw).decode("ascii")


def sanitize_server_url(url: str) -> str:
    """Reduce *url* to ``scheme://host[:port]``.

    Raises:
        ValueError: If the URL has no scheme or host.
    """
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid server URL '{url}'")
    return f"{parsed.scheme}://{parsed.netloc}"


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If URL format is invalid or credentials are empty.
    """
    config.server_url = config.server_url.strip()

    if not config.server_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid server URL '{config.server_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.server_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid server URL '{config.server_url}': URL must include a hostname"
        )

    config.server_url = sanitize_server_url(config.server_url)

    if not config.username.strip():
        raise ValueError(
            "Username cannot be empty. Set DOCSYNC_USERNAME environment variable."
        )

    if not config.password.strip():
        raise ValueError(
            "Password cannot be empty. Set DOCSYNC_PASSWORD environment variable."
        )

    if config.timeout <= 0:
        raise ValueError(
            f"Invalid timeout '{config.timeout}': must be greater than 0"
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def load_config(
    url: str | None = None,
    username: str | None = None,
    password: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        url: Override server URL.
        username: Override username.
        password: Override password.
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML ``server`` section.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If URL, username or password is missing after
            checking all sources.
    """
    fb = yaml_fallbacks or {}

    server_url = url or os.getenv("DOCSYNC_URL") or fb.get("url")
    if not server_url:
        raise ValueError(
            "Server URL not found. Set DOCSYNC_URL environment variable, "
            "pass --url CLI argument, or add 'url' to config.yml."
        )

    final_username = username or os.getenv("DOCSYNC_USERNAME") or fb.get("username")
    if not final_username:
        raise ValueError(
            "Username not found. Set DOCSYNC_USERNAME environment variable, "
            "pass --username CLI argument, or add 'username' to config.yml."
        )

    final_password = password or os.getenv("DOCSYNC_PASSWORD") or fb.get("password")
    if not final_password:
        raise ValueError(
            "Password not found. Set DOCSYNC_PASSWORD environment variable, "
            "pass --password CLI argument, or add 'password' to config.yml."
        )

    def get_bool_env(key: str) -> bool | None:
        """Return True/False from env var, or None if unset."""
        val = os.getenv(key)
        if val is None:
            return None
        return val.lower() in ("true", "1", "yes", "on")

    if insecure:
        final_insecure = True
    else:
        env_insecure = get_bool_env("DOCSYNC_INSECURE")
        if env_insecure is not None:
            final_insecure = env_insecure
        else:
            final_insecure = bool(fb.get("insecure", False))

    if debug:
        final_debug = True
    else:
        env_debug = get_bool_env("DOCSYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    timeout_raw = os.getenv("DOCSYNC_TIMEOUT")
    if timeout_raw is not None:
        try:
            final_timeout = float(timeout_raw)
        except ValueError:
            raise ValueError(
                f"Invalid DOCSYNC_TIMEOUT '{timeout_raw}': must be a number of seconds"
            ) from None
    elif "timeout" in fb:
        final_timeout = float(fb["timeout"])
    else:
        final_timeout = 60.0

    config = Config(
        server_url=server_url.strip(),
        username=final_username.strip(),
        password=final_password.strip(),
        insecure=final_insecure,
        debug=final_debug,
        timeout=final_timeout,
    )

    validate_config(config)

    return config


# ---------------------------------------------------------------------------
# Document paths and targets
# ---------------------------------------------------------------------------


def parse_document_path(value: str) -> str:
    """Parse a user-provided value into a canonical document path.

    Accepts::

        https://example.com/notes      -> /notes
        https://example.com/notes.git  -> /notes
        example.com/notes              -> /notes
        /notes                         -> /notes
        notes                          -> /notes
    """
    if value.startswith(("http://", "https://")):
        path = urlparse(value).path
        path = path.removesuffix(".git")
        return path or "/"

    # Schemeless URL: a dot before the first slash (example.com/notes)
    slash_index = value.find("/")
    if slash_index > 0 and "." in value[:slash_index]:
        path = value[slash_index:].removesuffix(".git")
        return path or "/"

    if value.startswith("/"):
        return value
    return f"/{value}"


@dataclass(frozen=True)
class ResolvedTarget:
    """Server, credentials, document path and local directory for one command."""

    server_url: str
    document_path: str
    username: str
    password: str
    auth: str
    dest: str

    @property
    def url(self) -> str:
        """Public URL of the document on the server."""
        normalized = self.document_path.lstrip("/")
        return f"{self.server_url}/{normalized}" if normalized else self.server_url


def resolve_target(
    config: Config,
    source: str | None = None,
    destination: str | None = None,
    cwd: Path | None = None,
) -> ResolvedTarget:
    """Resolve the server, document path, credentials and destination.

    With a *source*, the document path is parsed from it and an absolute
    ``http(s)://`` source also selects the server.  Without one, the path
    comes from ``settings.json`` in *cwd*.

    The destination is, in order: the explicit *destination*, the last
    segment of the document path, the server hostname (when a source was
    given), or ``"."``.

    Raises:
        TargetResolutionError: If no path can be determined, or a source
            URL names a server the configuration has no credentials for.
    """
    from .document.context import read_settings

    base = cwd or Path.cwd()
    server_url = config.server_url

    if source:
        if source.startswith(("http://", "https://")):
            source_server = sanitize_server_url(source)
            if source_server != server_url:
                raise TargetResolutionError(
                    f"No credentials for {urlparse(source_server).netloc}. "
                    "Set DOCSYNC_URL or pass --url for that server."
                )
        document_path = parse_document_path(source)
    else:
        settings = read_settings(base)
        if settings is None or not settings.path:
            raise TargetResolutionError(
                "No source argument and no settings.json found in current directory"
            )
        document_path = settings.path

    if destination is not None:
        dest = destination
    elif source:
        dest = PurePosixPath(document_path).name or urlparse(server_url).hostname or "."
    else:
        dest = "."

    return ResolvedTarget(
        server_url=server_url,
        document_path=document_path,
        username=config.username,
        password=config.password,
        auth=config.auth,
        dest=dest,
    )
