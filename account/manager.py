"""
Account — one user's ACME account key pair and registration state.

Lifecycle:
  Account(...)        no keys, no registration client
  load_keys()         keys read from /home/<user>/.letsencrypt/{public,private}.key
  create_keys()       fresh 4096-bit RSA pair generated and written there
  register()          newAccount at the ACME server; status "registered at <CA>"

The registration client is derived state: it exists iff a key pair is loaded,
and is rebuilt every time the key pair changes.

Security note: key material never appears in repr() or log output.  Use
summary() for anything that gets printed.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from account.errors import KeyGenerationIncomplete, NotReady, RegistrationFailure, StorageFailure
from account.models import AccountSummary, KeyPair
from acme.client import make_registration_client
from acme.crypto import KeyGenResult, PartialKey, generate_key_pair
from config import service_name, settings
from storage.config_store import JsonConfigStore
from storage.filesystem import FileBlobStorage

logger = logging.getLogger(__name__)

PUBLIC_KEY = "public.key"
PRIVATE_KEY = "private.key"
CONFIG_FILE = "config.json"

STATUS_KEYS_GENERATED = "keys generated"


class BlobStorage(Protocol):
    def exists(self, name: str) -> bool: ...
    def read(self, name: str) -> bytes: ...
    def write(self, name: str, data: bytes) -> None: ...
    def discard(self, name: str) -> None: ...


class ConfigStore(Protocol):
    def set(self, key: str, value: Any) -> None: ...


class RegistrationClient(Protocol):
    def register(self, email: str) -> Any: ...


KeyGenerator = Callable[[int], KeyGenResult]
ClientFactory = Callable[[str, KeyPair], RegistrationClient]


class Account:
    def __init__(
        self,
        username: str,
        email: Optional[str] = None,
        acme_server: Optional[str] = None,
        *,
        storage: Optional[BlobStorage] = None,
        config: Optional[ConfigStore] = None,
        key_generator: KeyGenerator = generate_key_pair,
        client_factory: ClientFactory = make_registration_client,
    ) -> None:
        self._username = username
        self.email = email
        self._acme_server = acme_server or settings.ACME_DIRECTORY_URL

        storage_path = self.get_storage_path()
        self.storage = storage if storage is not None else FileBlobStorage(storage_path)
        self.config = config if config is not None else JsonConfigStore(storage_path / CONFIG_FILE)
        self._generate = key_generator
        self._client_factory = client_factory

        self._key_pair: Optional[KeyPair] = None
        self._acme: Optional[RegistrationClient] = None

    # ── Identity & paths ──────────────────────────────────────────────────

    @property
    def username(self) -> str:
        return self._username

    @property
    def acme_server(self) -> str:
        return self._acme_server

    @property
    def key_pair(self) -> Optional[KeyPair]:
        return self._key_pair

    @property
    def acme(self) -> Optional[RegistrationClient]:
        """Registration client bound to the current key pair (None without keys)."""
        return self._acme

    def get_path(self) -> Path:
        """Home directory of the account's user."""
        return Path(settings.HOME_ROOT) / self._username

    def get_storage_path(self) -> Path:
        """Hidden per-account directory holding keys and config."""
        return self.get_path() / settings.ACCOUNT_DIR_NAME

    # ── Keys ──────────────────────────────────────────────────────────────

    def load_keys(self) -> bool:
        """
        Load the stored key pair.

        Returns False, leaving any current key state alone, when either key
        file is missing.  StorageFailure from a read propagates unchanged; a
        key file that is not a usable PEM key is reported as a StorageFailure
        too.  Key state only changes once both files have been read and parsed.
        """
        if not self.storage.exists(PUBLIC_KEY) or not self.storage.exists(PRIVATE_KEY):
            return False

        public_pem = self._read_pem(PUBLIC_KEY)
        private_pem = self._read_pem(PRIVATE_KEY)
        key_pair = KeyPair.from_pem(private_pem, public_pem)

        try:
            acme = self._client_factory(self._acme_server, key_pair)
        except (ValueError, TypeError) as exc:
            logger.error("Stored %s for %s is not a usable key: %s", PRIVATE_KEY, self._username, exc)
            raise StorageFailure(PRIVATE_KEY, "read", exc) from exc

        self._adopt(key_pair, acme)
        logger.info("Loaded account keys for %s", self._username)
        return True

    def _read_pem(self, name: str) -> str:
        data = self.storage.read(name)
        try:
            return data.decode("ascii")
        except UnicodeDecodeError as exc:
            logger.error("Stored %s for %s is not PEM text", name, self._username)
            raise StorageFailure(name, "read", exc) from exc

    def create_keys(self) -> KeyPair:
        """
        Generate, persist and adopt a fresh RSA key pair.

        A partial generation result raises KeyGenerationIncomplete before
        anything is written.  If the private key cannot be written, the public
        key file is put back the way it was so storage never holds a mixed pair.
        """
        bits = settings.ACCOUNT_KEY_SIZE
        logger.info("Generating %d-bit account key pair for %s", bits, self._username)

        result = self._generate(bits)
        if isinstance(result, PartialKey):
            logger.error("Key generation for %s incomplete: %s", self._username, result.reason)
            raise KeyGenerationIncomplete(bits, result.reason)

        key_pair = KeyPair.from_pem(result.private_pem, result.public_pem)
        # Built before any write: a pair the client cannot use never reaches disk
        acme = self._client_factory(self._acme_server, key_pair)

        self._write_key_pair(key_pair)
        # Both files are on disk now; memory follows even if the status write fails
        self._adopt(key_pair, acme)
        self.config.set("status", STATUS_KEYS_GENERATED)
        return key_pair

    def _write_key_pair(self, key_pair: KeyPair) -> None:
        previous_public = self.storage.read(PUBLIC_KEY) if self.storage.exists(PUBLIC_KEY) else None

        self.storage.write(PUBLIC_KEY, key_pair.public_pem.encode())
        try:
            self.storage.write(PRIVATE_KEY, key_pair.private_pem.encode())
        except StorageFailure:
            logger.error("Private key write failed for %s, restoring %s", self._username, PUBLIC_KEY)
            if previous_public is None:
                self.storage.discard(PUBLIC_KEY)
            else:
                self.storage.write(PUBLIC_KEY, previous_public)
            raise

    def _adopt(self, key_pair: KeyPair, acme: RegistrationClient) -> None:
        self._key_pair = key_pair
        self._acme = acme

    # ── Registration ──────────────────────────────────────────────────────

    def register(self) -> None:
        """
        Register the account's key with the ACME server using its e-mail.

        Blocks for the single newAccount round trip.  Any client error is
        re-raised as RegistrationFailure and no status is recorded.
        """
        if self._acme is None:
            raise NotReady(f"No keys loaded for {self._username}; call load_keys() or create_keys() first")
        if not self.email:
            raise NotReady(f"No e-mail address set for {self._username}")

        email = self.email
        try:
            self._acme.register(email)
        except Exception as exc:
            logger.error("Registration of %s at %s failed: %s", email, self._acme_server, exc)
            raise RegistrationFailure(email, exc) from exc

        self.config.set("status", f"registered at {service_name(self._acme_server)}")
        self.config.set("email", email)

    # ── Introspection ─────────────────────────────────────────────────────

    def summary(self) -> AccountSummary:
        return AccountSummary(
            username=self._username,
            email=self.email,
            acme_server=self._acme_server,
            storage_path=str(self.get_storage_path()),
            has_keys=self._key_pair is not None,
            has_client=self._acme is not None,
        )

    def __repr__(self) -> str:
        return f"Account({self.summary()!r})"
