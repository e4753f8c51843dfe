"""Tests for the process-wide filesystem cache."""

from __future__ import annotations

import logging
import threading
from unittest import mock

import pytest

from f9_sftp_backend import SFTPFileSystem, cache as cache_module
from f9_sftp_backend.cache import FileSystemCache, make_cache_key
from f9_sftp_backend.config import load_connection_info
from tests.fakes import FakeSessionProvider

KEY = ("sftp", "files.example.com", 22, "deploy")
OTHER_KEY = ("sftp", "files.example.com", 22, "other")


def _factory(provider: FakeSessionProvider, created: list[SFTPFileSystem]):
    def build(evict):
        fs = SFTPFileSystem(
            {"host": "files.example.com", "username": "deploy", "password": "pw"},
            session_provider=provider,
            on_close=evict,
        )
        created.append(fs)
        return fs

    return build


@pytest.fixture
def provider() -> FakeSessionProvider:
    """Provide a fake session provider."""
    return FakeSessionProvider()


def test_get_or_create_reuses_entry(provider: FakeSessionProvider) -> None:
    """The factory runs once per key."""
    cache = FileSystemCache()
    created: list[SFTPFileSystem] = []

    first = cache.get_or_create(KEY, _factory(provider, created))
    second = cache.get_or_create(KEY, _factory(provider, created))

    assert first is second
    assert created == [first]
    assert cache.get(KEY) is first
    assert cache.get(OTHER_KEY) is None


def test_close_evicts_entry(provider: FakeSessionProvider) -> None:
    """Closing a cached filesystem removes it from the cache."""
    cache = FileSystemCache()
    fs = cache.get_or_create(KEY, _factory(provider, []))

    fs.close()

    assert len(cache) == 0
    assert cache.get(KEY) is None


def test_evict_ignores_replaced_entry(provider: FakeSessionProvider) -> None:
    """A stale filesystem cannot evict its replacement."""
    cache = FileSystemCache()
    stale = cache.get_or_create(KEY, _factory(provider, []))
    cache.evict(KEY, stale)
    fresh = cache.get_or_create(KEY, _factory(provider, []))

    stale.close()

    assert cache.get(KEY) is fresh


def test_close_all(
    provider: FakeSessionProvider,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """close_all closes every filesystem and empties the cache."""
    cache = FileSystemCache()
    first = cache.get_or_create(KEY, _factory(provider, []))
    second = cache.get_or_create(OTHER_KEY, _factory(provider, []))
    first.exists("/")

    with caplog.at_level(logging.INFO, logger="f9_sftp_backend"):
        cache.close_all()

    assert first.closed
    assert second.closed
    assert cache.keys() == []
    assert provider.sessions[0].closed
    assert "Closed 2 cached filesystem(s)" in caplog.text


def test_concurrent_get_or_create(provider: FakeSessionProvider) -> None:
    """Concurrent lookups of one key share a single filesystem."""
    cache = FileSystemCache()
    created: list[SFTPFileSystem] = []
    results: list[SFTPFileSystem] = []

    def worker() -> None:
        results.append(cache.get_or_create(KEY, _factory(provider, created)))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winner = cache.get(KEY)
    assert winner is not None
    assert all(result is winner for result in results)
    assert all(fs.closed for fs in created if fs is not winner)
    assert not winner.closed


def test_factory_runs_without_holding_lock(provider: FakeSessionProvider) -> None:
    """A slow construction for one key does not block lookups of another."""
    cache = FileSystemCache()
    other = cache.get_or_create(OTHER_KEY, _factory(provider, []))
    entered = threading.Event()
    release = threading.Event()
    build = _factory(provider, [])

    def slow_factory(evict):
        entered.set()
        release.wait(timeout=5)
        return build(evict)

    thread = threading.Thread(target=cache.get_or_create, args=(KEY, slow_factory))
    thread.start()
    try:
        assert entered.wait(timeout=5)
        assert cache.get(OTHER_KEY) is other
        assert cache.get_or_create(OTHER_KEY, _factory(provider, [])) is other
    finally:
        release.set()
        thread.join()

    assert cache.get(KEY) is not None


def test_losing_racer_is_closed_without_evicting_winner(
    provider: FakeSessionProvider,
) -> None:
    """A filesystem built for an already filled key is closed and discarded."""
    cache = FileSystemCache()
    build = _factory(provider, [])
    winner: list[SFTPFileSystem] = []

    def racing_factory(evict):
        winner.append(cache.get_or_create(KEY, build))
        return build(evict)

    result = cache.get_or_create(KEY, racing_factory)

    assert result is winner[0]
    assert cache.get(KEY) is winner[0]
    assert not winner[0].closed


def test_make_cache_key_separates_credentials() -> None:
    """Credentials and options are part of the key, hashed."""
    endpoint, options = load_connection_info(
        {"host": "Files.Example.com", "username": "deploy", "password": "s3cret"},
    )
    no_password, _ = load_connection_info(
        {"host": "files.example.com", "username": "deploy"},
    )
    empty_password, _ = load_connection_info(
        {"host": "files.example.com", "username": "deploy", "password": ""},
    )
    _, rooted = load_connection_info(
        {"host": "files.example.com", "username": "deploy", "remote_root": "/srv"},
    )

    key = make_cache_key("sftp", endpoint, options)

    assert key[:4] == KEY
    assert "s3cret" not in repr(key)
    assert key == make_cache_key("sftp", endpoint, options)
    assert key != make_cache_key("sftp", no_password, options)
    assert make_cache_key("sftp", no_password, options) != make_cache_key(
        "sftp",
        empty_password,
        options,
    )
    assert key != make_cache_key("sftp", endpoint, rooted)


def test_close_all_filesystems_uses_default_cache() -> None:
    """The module-level helper closes the default cache."""
    with mock.patch.object(cache_module._default_cache, "close_all") as close_all:
        cache_module.close_all_filesystems()
    close_all.assert_called_once_with()
    assert cache_module.get_default_cache() is cache_module._default_cache
