"""Connection endpoint and option parsing for SFTP filesystems.

Configuration arrives as a plain mapping (``connection_info``), either built
by hand or assembled by the URI factory from query parameters. Values coming
from URIs are strings, so numeric and boolean options are coerced here.

Example:

    >>> from f9_sftp_backend.config import load_connection_info
    >>> endpoint, options = load_connection_info(
    ...     {"host": "files.example.com", "username": "deploy", "password": "s3cret"},
    ... )
    >>> endpoint.auth_method
    'password'
    >>> options.connect_timeout
    30.0

"""

from __future__ import annotations

import getpass
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

DEFAULT_PORT = 22
DEFAULT_CONNECT_TIMEOUT = 30.0
HOST_KEY_POLICIES = ("auto_add", "warn", "reject")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ConnectionEndpoint:
    """Address and credentials identifying one logical remote filesystem."""

    host: str
    port: int = DEFAULT_PORT
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    key_material: str | None = field(default=None, repr=False)
    key_passphrase: str | None = field(default=None, repr=False)

    @property
    def auth_method(self) -> str:
        """Return the single authentication strategy this endpoint uses.

        Key material always wins over a password, and the agent is only
        consulted when neither is configured.
        """
        if self.key_material:
            return "publickey"
        if self.password is not None:
            return "password"
        return "agent"

    @property
    def address(self) -> str:
        """Return ``user@host:port`` for messages and logs."""
        user = f"{self.username}@" if self.username else ""
        return f"{user}{self.host}:{self.port}"


@dataclass(frozen=True)
class SFTPOptions:
    """Behavioural options for an SFTP filesystem."""

    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    operation_timeout: float | None = None
    host_key_policy: str = "auto_add"
    known_hosts: str | None = None
    remote_root: str = "/"
    working_directory: str | None = None
    eager_connect: bool = False
    disable_connection_cache: bool = False


def parse_bool(value: Any, *, key: str) -> bool:
    """Coerce a boolean option that may have been supplied as text."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    message = f"Invalid boolean for '{key}': {value!r}"
    raise ValueError(message)


def _parse_port(value: Any, *, key: str) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        message = f"Invalid port for '{key}': {value!r}"
        raise ValueError(message) from exc
    if not 0 < port < 65536:
        message = f"Port out of range for '{key}': {port}"
        raise ValueError(message)
    return port


def _parse_timeout(value: Any, *, key: str) -> float | None:
    if value is None or value == "":
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError) as exc:
        message = f"Invalid timeout for '{key}': {value!r}"
        raise ValueError(message) from exc
    if timeout <= 0:
        message = f"Timeout must be positive for '{key}': {timeout}"
        raise ValueError(message)
    return timeout


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("ascii")
    return str(value)


def _local_username() -> str:
    try:
        return getpass.getuser()
    except (OSError, KeyError) as exc:
        # no USER/LOGNAME and no passwd entry, common in containers
        message = "Missing 'username' in connection_info"
        raise ValueError(message) from exc


def load_connection_info(
    connection_info: Mapping[str, Any],
) -> tuple[ConnectionEndpoint, SFTPOptions]:
    """Validate a connection mapping and split it into endpoint and options.

    Args:
        connection_info: Mapping of connection keys (see ``SFTPOptions`` and
            ``ConnectionEndpoint`` for the recognised names).

    Returns:
        Tuple of (endpoint, options).

    Raises:
        TypeError: If connection_info is not a mapping.
        ValueError: If the host is missing or a value is malformed.

    """
    if not isinstance(connection_info, Mapping):
        message = "connection_info must be a mapping"
        raise TypeError(message)
    host = connection_info.get("host")
    if not host:
        message = "Missing 'host' in connection_info"
        raise ValueError(message)

    # host_port overrides the URI/explicit port
    port = DEFAULT_PORT
    for key in ("port", "host_port"):
        if connection_info.get(key) not in (None, ""):
            port = _parse_port(connection_info[key], key=key)

    username = _optional_str(connection_info.get("username")) or _local_username()

    endpoint = ConnectionEndpoint(
        host=str(host),
        port=port,
        username=username,
        password=_optional_str(connection_info.get("password")),
        key_material=_optional_str(connection_info.get("key_material")),
        key_passphrase=_optional_str(connection_info.get("key_passphrase")),
    )

    policy = str(connection_info.get("host_key_policy", "auto_add")).lower()
    if policy not in HOST_KEY_POLICIES:
        supported = ", ".join(HOST_KEY_POLICIES)
        message = f"Unsupported host_key_policy '{policy}'. Supported: {supported}"
        raise ValueError(message)

    connect_timeout = _parse_timeout(
        connection_info.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT),
        key="connect_timeout",
    )
    options = SFTPOptions(
        connect_timeout=connect_timeout or DEFAULT_CONNECT_TIMEOUT,
        operation_timeout=_parse_timeout(
            connection_info.get("operation_timeout"),
            key="operation_timeout",
        ),
        host_key_policy=policy,
        known_hosts=_optional_str(connection_info.get("known_hosts")),
        remote_root=str(connection_info.get("remote_root") or "/"),
        working_directory=_optional_str(connection_info.get("working_directory")),
        eager_connect=parse_bool(
            connection_info.get("eager_connect", False),
            key="eager_connect",
        ),
        disable_connection_cache=parse_bool(
            connection_info.get("disable_connection_cache", False),
            key="disable_connection_cache",
        ),
    )
    return endpoint, options
