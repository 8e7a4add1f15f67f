"""
Shared pytest fixtures.

In-memory fakes
---------------
`FakeStorage`, `FakeConfig` and `FakeClient` stand in for the account's
collaborators so the lifecycle tests can count every write and call.

Settings patch
--------------
`default_settings` pins the live `config.settings` singleton to the shipped
defaults; `account_settings` additionally moves home directories under
tmp_path and drops real key generation to 2048 bits.  Both restore the
original values after the test.
"""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import pytest

from acme.crypto import CompleteKey, PartialKey, generate_key_pair
from account.errors import StorageFailure

LE_DIRECTORY = "https://acme-v02.api.letsencrypt.org/directory"


# ─── Fakes ────────────────────────────────────────────────────────────────────

class FakeStorage:
    def __init__(
        self,
        blobs: dict[str, bytes] | None = None,
        fail_writes: set[str] | None = None,
        fail_reads: set[str] | None = None,
    ) -> None:
        self.blobs = dict(blobs or {})
        self.fail_writes = set(fail_writes or ())
        self.fail_reads = set(fail_reads or ())
        self.writes: list[tuple[str, bytes]] = []
        self.discarded: list[str] = []

    def exists(self, name: str) -> bool:
        return name in self.blobs

    def read(self, name: str) -> bytes:
        if name in self.fail_reads:
            raise StorageFailure(name, "read", OSError("I/O error"))
        if name not in self.blobs:
            raise StorageFailure(name, "read", FileNotFoundError(name))
        return self.blobs[name]

    def write(self, name: str, data: bytes) -> None:
        if name in self.fail_writes:
            raise StorageFailure(name, "write", OSError("disk full"))
        self.writes.append((name, data))
        self.blobs[name] = data

    def discard(self, name: str) -> None:
        self.discarded.append(name)
        self.blobs.pop(name, None)


class FakeConfig:
    def __init__(self) -> None:
        self.values: dict[str, object] = {}
        self.calls: list[tuple[str, object]] = []

    def set(self, key: str, value: object) -> None:
        self.calls.append((key, value))
        self.values[key] = value


class FakeClient:
    def __init__(self, acme_server: str, key_pair, error: Exception | None = None) -> None:
        self.acme_server = acme_server
        self.key_pair = key_pair
        self.error = error
        self.registered: list[str] = []

    def register(self, email: str) -> str:
        if self.error is not None:
            raise self.error
        self.registered.append(email)
        return "https://acme.test/acct/1"


class FakeClientFactory:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.built: list[FakeClient] = []

    def __call__(self, acme_server: str, key_pair) -> FakeClient:
        client = FakeClient(acme_server, key_pair, self.error)
        self.built.append(client)
        return client


# ─── Key material ─────────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def complete_key() -> CompleteKey:
    """One real 2048-bit key pair, shared across the session for speed."""
    result = generate_key_pair(2048)
    assert isinstance(result, CompleteKey)
    return result


@pytest.fixture(scope="session")
def other_complete_key() -> CompleteKey:
    result = generate_key_pair(2048)
    assert isinstance(result, CompleteKey)
    return result


@pytest.fixture()
def complete_generator(complete_key):
    """Generator that always succeeds; records the bit sizes it was asked for."""
    requested: list[int] = []

    def generate(bits: int):
        requested.append(bits)
        return complete_key

    generate.requested = requested
    return generate


@pytest.fixture()
def partial_generator():
    def generate(bits: int):
        return PartialKey("pairwise consistency check failed")

    return generate


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def config() -> FakeConfig:
    return FakeConfig()


@pytest.fixture()
def client_factory() -> FakeClientFactory:
    return FakeClientFactory()


# ─── Settings patch ───────────────────────────────────────────────────────────

@contextmanager
def _patched_settings(**values) -> Iterator:
    """Set attributes on the live settings singleton, restoring them on exit."""
    from config import settings

    originals = {k: getattr(settings, k) for k in values}
    for k, v in values.items():
        setattr(settings, k, v)
    try:
        yield settings
    finally:
        for k, v in originals.items():
            setattr(settings, k, v)


_BASELINE = {
    "HOME_ROOT": "/home",
    "ACCOUNT_DIR_NAME": ".letsencrypt",
    "ACCOUNT_KEY_SIZE": 4096,
    "ACME_DIRECTORY_URL": LE_DIRECTORY,
    "ACME_EAB_KEY_ID": "",
    "ACME_EAB_HMAC_KEY": "",
    "ACME_TIMEOUT": 30,
}


@pytest.fixture()
def default_settings():
    """Shipped defaults, whatever the environment or .env says."""
    with _patched_settings(**_BASELINE) as s:
        yield s


@pytest.fixture()
def account_settings(tmp_path: Path):
    """Home directories under tmp_path and 2048-bit keys for real generation."""
    home = tmp_path / "home"
    home.mkdir()
    with _patched_settings(**{**_BASELINE, "HOME_ROOT": str(home), "ACCOUNT_KEY_SIZE": 2048}) as s:
        yield s
