"""SSH session establishment on top of paramiko.

A ``SessionProvider`` opens one SSH connection and one SFTP channel per
call to ``connect()``. Exactly one authentication strategy is attempted,
chosen by ``ConnectionEndpoint.auth_method``:

    - ``publickey``: identity built from the configured key material
    - ``password``: the configured password
    - ``agent``: keys offered by a running SSH agent

paramiko's own key discovery (``look_for_keys``) is always disabled so that
no credential other than the selected one is ever sent to the server.

Example:

    >>> from f9_sftp_backend.config import ConnectionEndpoint
    >>> provider = SessionProvider(connect_timeout=10.0)
    >>> session = provider.connect(
    ...     ConnectionEndpoint("files.example.com", username="deploy", password="pw"),
    ... )
    >>> session.sftp.listdir(".")
    >>> session.close()

"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, Any, Callable

import paramiko

from .config import DEFAULT_CONNECT_TIMEOUT
from .interfaces import SFTPConnectionError

if TYPE_CHECKING:
    from .config import ConnectionEndpoint

logger = logging.getLogger(__name__)

_KEY_CLASSES = (paramiko.RSAKey, paramiko.Ed25519Key, paramiko.ECDSAKey)

_HOST_KEY_POLICIES: dict[str, Callable[[], paramiko.MissingHostKeyPolicy]] = {
    "auto_add": paramiko.AutoAddPolicy,
    "warn": paramiko.WarningPolicy,
    "reject": paramiko.RejectPolicy,
}


def load_private_key(
    key_material: str | bytes,
    passphrase: str | None = None,
) -> paramiko.PKey:
    """Parse PEM or OpenSSH private key text into a paramiko key.

    Raises:
        SFTPConnectionError: If no supported key type accepts the material.

    """
    if isinstance(key_material, bytes):
        key_material = key_material.decode("ascii")
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key(
                io.StringIO(key_material),
                password=passphrase,
            )
        except (paramiko.SSHException, ValueError):
            continue
    raise SFTPConnectionError.invalid_key()


class SFTPSession:
    """A live SFTP channel bound to one connection endpoint.

    The session is either usable or closed; ``close()`` is idempotent and
    never raises.
    """

    def __init__(
        self,
        sftp: Any,
        *,
        client: Any | None = None,
        endpoint: ConnectionEndpoint | None = None,
    ) -> None:
        """Wrap an open SFTP client and the SSH client that carries it."""
        self._sftp = sftp
        self._client = client
        self._endpoint = endpoint
        self._closed = False

    @property
    def sftp(self) -> Any:
        """The underlying paramiko ``SFTPClient``."""
        return self._sftp

    @property
    def closed(self) -> bool:
        """True once the session has been closed."""
        return self._closed

    def is_active(self) -> bool:
        """Return True while the SFTP channel is still open."""
        if self._closed:
            return False
        channel = self._sftp.get_channel()
        return channel is not None and not channel.closed

    def home_directory(self) -> str:
        """Return the remote login directory as reported by the server."""
        return self._sftp.normalize(".")

    def close(self) -> None:
        """Close the SFTP channel and the SSH connection."""
        if self._closed:
            return
        self._closed = True
        for resource in (self._sftp, self._client):
            if resource is None:
                continue
            try:
                resource.close()
            except (paramiko.SSHException, OSError, EOFError) as exc:
                logger.debug("Ignoring error while closing session: %s", exc)
        if self._endpoint is not None:
            logger.info("Closed SFTP session to %s", self._endpoint.address)


class SessionProvider:
    """Create authenticated SFTP sessions.

    Args:
        connect_timeout: Seconds allowed for TCP connect, banner and auth.
        operation_timeout: Channel timeout applied to the SFTP channel.
        host_key_policy: One of ``auto_add``, ``warn`` or ``reject``.
        known_hosts: Known-hosts file to load, or ``"system"``.
        client_factory: Callable returning a ``paramiko.SSHClient``.

    """

    def __init__(
        self,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        operation_timeout: float | None = None,
        host_key_policy: str = "auto_add",
        known_hosts: str | None = None,
        client_factory: Callable[[], Any] = paramiko.SSHClient,
    ) -> None:
        """Initialise the provider with connection behaviour settings."""
        if host_key_policy not in _HOST_KEY_POLICIES:
            message = f"Unsupported host_key_policy '{host_key_policy}'"
            raise ValueError(message)
        self._connect_timeout = connect_timeout
        self._operation_timeout = operation_timeout
        self._host_key_policy = host_key_policy
        self._known_hosts = known_hosts
        self._client_factory = client_factory

    def connect(self, endpoint: ConnectionEndpoint) -> SFTPSession:
        """Open an SSH connection and an SFTP channel on top of it.

        Raises:
            SFTPConnectionError: If the host is unreachable, the handshake
                fails, or the credentials are rejected.

        """
        method = endpoint.auth_method
        connect_kwargs: dict[str, Any] = {
            "hostname": endpoint.host,
            "port": endpoint.port,
            "username": endpoint.username,
            "timeout": self._connect_timeout,
            "banner_timeout": self._connect_timeout,
            "auth_timeout": self._connect_timeout,
            "look_for_keys": False,
            "allow_agent": False,
        }
        if method == "publickey":
            connect_kwargs["pkey"] = load_private_key(
                endpoint.key_material,
                endpoint.key_passphrase,
            )
        elif method == "password":
            connect_kwargs["password"] = endpoint.password
        else:
            connect_kwargs["allow_agent"] = True

        client = self._client_factory()
        self._configure_host_keys(client)
        try:
            client.connect(**connect_kwargs)
            sftp = client.open_sftp()
        except paramiko.AuthenticationException as exc:
            client.close()
            logger.info("Authentication to %s rejected (%s)", endpoint.address, method)
            raise SFTPConnectionError.authentication_failed(
                endpoint.host,
                method,
            ) from exc
        except (paramiko.SSHException, EOFError) as exc:
            client.close()
            raise SFTPConnectionError.handshake_failed(endpoint.host, str(exc)) from exc
        except OSError as exc:
            client.close()
            raise SFTPConnectionError.unreachable(endpoint.host, str(exc)) from exc

        if self._operation_timeout is not None:
            sftp.get_channel().settimeout(self._operation_timeout)

        logger.info("Opened SFTP session to %s using %s", endpoint.address, method)
        return SFTPSession(sftp, client=client, endpoint=endpoint)

    def _configure_host_keys(self, client: Any) -> None:
        """Apply the known-hosts source and missing-host-key policy."""
        if self._known_hosts == "system":
            client.load_system_host_keys()
        elif self._known_hosts:
            client.load_host_keys(self._known_hosts)
        client.set_missing_host_key_policy(_HOST_KEY_POLICIES[self._host_key_policy]())
