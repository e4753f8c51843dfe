"""URI-based filesystem resolution.

Address form::

    sftp://[user[:password]@]host[:port][/path][?option=value&...]

The URI path becomes the initial working directory. Query parameters and the
``options`` mapping supply any ``connection_info`` key; explicit options win
over query parameters, and ``host_port`` overrides the URI port.

Example:
    >>> from f9_sftp_backend.factory import resolve_filesystem
    >>> fs = resolve_filesystem("sftp://deploy:pw@files.example.com:2222/srv")
    >>> fs = resolve_filesystem(
    ...     "sftp://deploy@files.example.com",
    ...     options={"key_material": pem_text, "disable_connection_cache": True},
    ... )

"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, unquote, urlparse

from .cache import FileSystemCache, get_default_cache, make_cache_key
from .config import load_connection_info
from .filesystem import SFTPFileSystem

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .interfaces import FileSystem


class FileSystemFactory:
    """Factory for creating filesystems from URI strings."""

    supported_schemes = ("sftp",)

    def __init__(
        self,
        *,
        cache: FileSystemCache | None = None,
        session_provider: Any | None = None,
    ) -> None:
        """Initialise the factory.

        Args:
            cache: Instance cache; defaults to the process-wide cache.
            session_provider: Passed through to every created filesystem.

        """
        self._cache = cache if cache is not None else get_default_cache()
        self._session_provider = session_provider

    def parse_uri(self, uri: str) -> tuple[str, dict[str, Any]]:
        """Parse a URI into its scheme and a ``connection_info`` mapping.

        Raises:
            ValueError: If the URI has no scheme or no host.

        """
        parsed = urlparse(uri)
        if not parsed.scheme:
            msg = f"Invalid URI: missing scheme in '{uri}'"
            raise ValueError(msg)
        if not parsed.hostname:
            msg = f"Invalid URI: missing host in '{uri}'"
            raise ValueError(msg)

        try:
            port = parsed.port
        except ValueError as exc:
            msg = f"Invalid URI: bad port in '{uri}'"
            raise ValueError(msg) from exc

        info: dict[str, Any] = {"host": parsed.hostname}
        if port is not None:
            info["port"] = port
        if parsed.username:
            info["username"] = unquote(parsed.username)
        if parsed.password is not None:
            info["password"] = unquote(parsed.password)
        if parsed.path and parsed.path != "/":
            info["working_directory"] = unquote(parsed.path)

        if parsed.query:
            parsed_params = parse_qs(parsed.query)
            # Take the first value of repeated parameters
            info.update({k: v[0] for k, v in parsed_params.items()})

        return parsed.scheme, info

    def resolve(
        self,
        uri: str,
        options: Mapping[str, Any] | None = None,
    ) -> FileSystem:
        """Return a filesystem for ``uri``, reusing a cached one if allowed.

        Raises:
            ValueError: If the URI scheme is unsupported or malformed.

        """
        scheme, info = self.parse_uri(uri)
        if scheme not in self.supported_schemes:
            supported = ", ".join(self.supported_schemes)
            msg = (
                f"Unsupported URI scheme: '{scheme}'. "
                f"Supported schemes: {supported}"
            )
            raise ValueError(msg)

        info.update(options or {})
        # validates eagerly so bad options fail before touching the cache
        endpoint, parsed_options = load_connection_info(info)

        if parsed_options.disable_connection_cache:
            return self._create(info)

        return self._cache.get_or_create(
            make_cache_key(scheme, endpoint, parsed_options),
            lambda evict: self._create(info, on_close=evict),
        )

    def _create(
        self,
        info: Mapping[str, Any],
        *,
        on_close: Any | None = None,
    ) -> SFTPFileSystem:
        return SFTPFileSystem(
            info,
            session_provider=self._session_provider,
            on_close=on_close,
        )


# Global default factory instance
_default_factory = FileSystemFactory()


def resolve_filesystem(
    uri: str,
    options: Mapping[str, Any] | None = None,
) -> FileSystem:
    """Resolve a filesystem from a URI using the default factory.

    Args:
        uri: ``sftp://`` address of the remote filesystem.
        options: Extra ``connection_info`` keys such as ``key_material``,
            ``host_port`` or ``disable_connection_cache``.

    Example:
        >>> fs = resolve_filesystem("sftp://deploy:pw@files.example.com")

    """
    return _default_factory.resolve(uri, options)
