# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Client configuration.

Configuration is loaded from a YAML file.  The default location follows
the XDG Base Directory Specification:

    ``$XDG_CONFIG_HOME/sigv4client/sigv4client.yaml``
    (typically ``~/.config/sigv4client/sigv4client.yaml``)

``!env VAR_NAME`` tags resolve values from environment variables, so the
secret key does not have to be written to the file.  A ``.env`` file next
to the config file (or in the working directory) is loaded first.

Example::

    credentials:
      service: execute-api
      access_key: !env AWS_ACCESS_KEY_ID
      secret_key: !env AWS_SECRET_ACCESS_KEY
      host: abc123
      region: us-east-1
    endpoint:
      fingerprint: "AB:CD:..."
    response:
      capture_headers: true
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from platformdirs import user_config_path

from sigv4client.response import CaptureMask
from sigv4client.transport import normalize_fingerprint
from sigv4client.types import Credentials


logger = logging.getLogger(__name__)

#: Application name for XDG path resolution.
_APP_NAME = "sigv4client"

_BOOL_TRUTHY = frozenset({"true", "1", "yes", "on"})
_BOOL_FALSY = frozenset({"false", "0", "no", "off"})

_dotenv_loaded = False


class ConfigError(Exception):
    """Raised for missing or invalid configuration values."""


def get_config_path() -> Path:
    """Return the default config file path (XDG)."""
    return user_config_path(_APP_NAME) / f"{_APP_NAME}.yaml"


def get_dotenv_path() -> Path:
    """Return the ``.env`` path inside the XDG config directory."""
    return user_config_path(_APP_NAME) / ".env"


def load_dotenv_once() -> None:
    """Load ``.env`` files once per process.

    The XDG config directory is read first, then the working directory.
    Variables already set are never overwritten, so the XDG file wins
    over the working directory file and the real environment wins over
    both.
    """
    global _dotenv_loaded
    if _dotenv_loaded:
        return

    for path in (get_dotenv_path(), Path.cwd() / ".env"):
        if path.exists():
            load_dotenv(path)
            logger.debug("Loaded .env from %s", path)

    _dotenv_loaded = True


def reset_dotenv_state() -> None:
    """Reset the dotenv loaded state. For testing only."""
    global _dotenv_loaded
    _dotenv_loaded = False


# ---------------------------------------------------------------------------
# YAML tags and value resolution
# ---------------------------------------------------------------------------


class _EnvVar:
    """Placeholder for an unresolved ``!env VAR_NAME`` tag."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name


def _env_constructor(loader: yaml.SafeLoader, node: yaml.Node) -> _EnvVar:
    """Handle ``!env VAR_NAME`` in YAML."""
    value = loader.construct_scalar(node)  # type: ignore[arg-type]
    return _EnvVar(str(value))


def _make_loader() -> type[yaml.SafeLoader]:
    """Create a YAML loader that understands ``!env``."""

    class EnvLoader(yaml.SafeLoader):
        pass

    EnvLoader.add_constructor("!env", _env_constructor)
    return EnvLoader


def _coerce_bool(value: object) -> bool:
    """Coerce a value to bool, handling string representations."""
    if isinstance(value, bool):
        return value
    s = str(value).lower().strip()
    if s in _BOOL_TRUTHY:
        return True
    if s in _BOOL_FALSY:
        return False
    raise ConfigError(f"Cannot convert {value!r} to bool")


def _raw_resolve(value: object) -> str | None:
    """Resolve an ``_EnvVar`` or stringify a literal.

    Returns None for None, and for unset or empty environment variables.
    """
    if isinstance(value, _EnvVar):
        return os.environ.get(value.var_name) or None
    if value is None:
        return None
    return str(value)


_MISSING = object()


def _resolve(
    value: object,
    coerce: type[Any],
    *,
    default: object = _MISSING,
    required: str = "",
) -> Any:
    """Resolve a YAML value, handling ``!env`` tags and type coercion.

    Args:
        value: Raw value from YAML.
        coerce: Target type (``str``, ``int``, ``float``, ``bool``).
        default: Default when the value is absent.
        required: Human-readable field name.  When set, raises
            ``ConfigError`` if the value is absent.

    Returns:
        The resolved, coerced value, or None when optional and absent.
    """
    if not isinstance(value, _EnvVar) and value is not None:
        if coerce is bool:
            return _coerce_bool(value)
        if isinstance(value, coerce) and not isinstance(value, bool):
            return value

    resolved = _raw_resolve(value)

    if resolved is None:
        if required:
            if isinstance(value, _EnvVar):
                raise ConfigError(
                    f"Required config '{required}': environment variable "
                    f"'{value.var_name}' is not set"
                )
            raise ConfigError(f"Required config '{required}' is missing")
        if default is not _MISSING:
            return default
        return None

    if coerce is bool:
        return _coerce_bool(resolved)
    try:
        return coerce(resolved)
    except ValueError as exc:
        name = required or "value"
        raise ConfigError(
            f"Config '{name}': cannot convert {resolved!r} to "
            f"{coerce.__name__}"
        ) from exc


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return value


# ---------------------------------------------------------------------------
# Client config
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClientConfig:
    """Resolved client configuration.

    Attributes:
        credentials: Account credentials and endpoint coordinates.
        custom_fqdn: Endpoint override, empty to use the derived FQDN.
        port: Endpoint port.
        fingerprint: Pinned certificate fingerprint (normalized hex),
            empty to disable pinning.
        timeout: Socket timeout in seconds.
        verify_certificates: Validate the certificate chain.
        capture_mask: Which response parts to keep.
        canonicalize_query: Use standard SigV4 query canonicalization.
    """

    credentials: Credentials
    custom_fqdn: str = ""
    port: int = 443
    fingerprint: str = ""
    timeout: float = 30.0
    verify_certificates: bool = True
    capture_mask: CaptureMask = field(default_factory=CaptureMask.default)
    canonicalize_query: bool = False

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> ClientConfig:
        """Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML file.  Defaults to
                :func:`get_config_path`.

        Raises:
            ConfigError: If the file is missing, malformed, or required
                values are absent.
        """
        load_dotenv_once()

        if config_path is None:
            config_path = get_config_path()

        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        try:
            with open(config_path) as f:
                raw = yaml.load(f, Loader=_make_loader())
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError(
                f"Config file must be a YAML mapping: {config_path}"
            )

        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: dict) -> ClientConfig:
        """Build config from a parsed (but unresolved) YAML mapping."""
        creds = _section(raw, "credentials")
        endpoint = _section(raw, "endpoint")
        response = _section(raw, "response")
        signing = _section(raw, "signing")

        credentials = Credentials(
            service=_resolve(
                creds.get("service"), str, required="credentials.service"
            ),
            access_key=_resolve(
                creds.get("access_key"), str, required="credentials.access_key"
            ),
            secret_key=_resolve(
                creds.get("secret_key"), str, required="credentials.secret_key"
            ),
            host=_resolve(creds.get("host"), str, required="credentials.host"),
            region=_resolve(creds.get("region"), str, default="us-east-1"),
            tld=_resolve(creds.get("tld"), str, default="amazonaws.com"),
        )

        fingerprint = _resolve(endpoint.get("fingerprint"), str, default="")
        if fingerprint:
            try:
                fingerprint = normalize_fingerprint(fingerprint)
            except ValueError as exc:
                raise ConfigError(
                    f"Config 'endpoint.fingerprint': {exc}"
                ) from exc

        port = _resolve(endpoint.get("port"), int, default=443)
        if not 0 < port < 65536:
            raise ConfigError(f"Config 'endpoint.port' out of range: {port}")

        mask = CaptureMask(0)
        if _resolve(response.get("capture_headers"), bool, default=False):
            mask |= CaptureMask.HEADERS
        if _resolve(response.get("capture_body"), bool, default=False):
            mask |= CaptureMask.BODY
        if _resolve(response.get("capture_body_on_error"), bool, default=True):
            mask |= CaptureMask.BODY_ON_ERROR

        return cls(
            credentials=credentials,
            custom_fqdn=_resolve(endpoint.get("custom_fqdn"), str, default=""),
            port=port,
            fingerprint=fingerprint,
            timeout=_resolve(endpoint.get("timeout"), float, default=30.0),
            verify_certificates=_resolve(
                endpoint.get("verify_certificates"), bool, default=True
            ),
            capture_mask=mask,
            canonicalize_query=_resolve(
                signing.get("canonicalize_query"), bool, default=False
            ),
        )
