"""
Low-level ACME RFC 8555 HTTP client, limited to account registration.

`AcmeClient` is **stateless**: the account key and nonce are passed in by the
caller, which keeps it easy to test with mocked HTTP.  `AcmeRegistrationClient`
binds one client to one account key pair and exposes the single blocking
`register(email)` call the account manager needs.

badNonce retry: ACME servers return a fresh `Replay-Nonce` header even on
error responses.  `_post_signed` re-signs with it up to `_NONCE_RETRIES` times.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from josepy.jwk import JWKRSA
import requests

from acme import jws as jwslib

if TYPE_CHECKING:
    from account.models import KeyPair

logger = logging.getLogger(__name__)

_NONCE_RETRIES = 3


class AcmeError(Exception):
    """Raised when the ACME server returns an error response."""

    def __init__(self, status_code: int, body: dict, new_nonce: str = "") -> None:
        self.status_code = status_code
        self.body = body
        self.new_nonce = new_nonce
        problem_type = body.get("type", "unknown")
        detail = body.get("detail", str(body))
        super().__init__(f"ACME {status_code}: {problem_type} — {detail}")


class AcmeClient:
    """Talks RFC 8555 to one ACME directory."""

    def __init__(
        self,
        directory_url: str,
        timeout: int = 30,
        ca_bundle: str = "",
        insecure: bool = False,
    ) -> None:
        self.directory_url = directory_url
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": "acme-account-keys/1.0"})

        if insecure:
            import urllib3
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            self._session.verify = False
        elif ca_bundle:
            self._session.verify = ca_bundle

    # ── Directory & nonce ─────────────────────────────────────────────────

    def get_directory(self) -> dict:
        """GET /directory — discover ACME endpoint URLs."""
        resp = self._session.get(self.directory_url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def get_nonce(self, directory: dict) -> str:
        """HEAD /newNonce — fetch a fresh anti-replay nonce."""
        resp = self._session.head(directory["newNonce"], timeout=self.timeout)
        nonce = resp.headers.get("Replay-Nonce")
        if not nonce:
            raise AcmeError(resp.status_code, {"detail": "No Replay-Nonce header"})
        return nonce

    # ── Account ───────────────────────────────────────────────────────────

    def create_account(
        self,
        account_key: JWKRSA,
        nonce: str,
        directory: dict,
        contact: Optional[list[str]] = None,
        eab_key_id: str = "",
        eab_hmac_key: str = "",
    ) -> tuple[str, str]:
        """
        POST /newAccount agreeing to the terms of service, with contact URIs
        and an EAB binding when credentials are provided.
        An existing account for the same key is returned by the server as-is.
        Returns (account_url, new_nonce).
        """
        new_account_url = directory["newAccount"]
        payload: dict = {"termsOfServiceAgreed": True}
        if contact:
            payload["contact"] = contact

        if eab_key_id and eab_hmac_key:
            payload["externalAccountBinding"] = jwslib.create_eab_jws(
                account_key, eab_key_id, eab_hmac_key, new_account_url
            )

        resp = self._post_signed(payload, account_key, nonce, new_account_url, directory=directory)
        return resp.headers.get("Location", ""), resp.headers.get("Replay-Nonce", "")

    # ── Internal ──────────────────────────────────────────────────────────

    def _post_signed(
        self,
        payload: dict | None,
        account_key: JWKRSA,
        nonce: str,
        url: str,
        directory: dict | None = None,
    ) -> requests.Response:
        """
        Sign *payload* with *account_key* and POST to *url*, retrying up to
        `_NONCE_RETRIES` times on `badNonce` responses.
        """
        current_nonce = nonce
        for attempt in range(_NONCE_RETRIES):
            body = jwslib.sign_request(payload, account_key, current_nonce, url)
            resp = self._session.post(
                url,
                json=body,
                headers={
                    "Content-Type": "application/jose+json",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
            if resp.ok:
                return resp

            try:
                error_body = resp.json()
            except ValueError:
                error_body = {"detail": resp.text}

            if "badNonce" in error_body.get("type", "") and attempt < _NONCE_RETRIES - 1:
                fresh = resp.headers.get("Replay-Nonce")
                if fresh:
                    current_nonce = fresh
                    continue
                if directory is None:
                    directory = self.get_directory()
                current_nonce = self.get_nonce(directory)
                continue

            raise AcmeError(resp.status_code, error_body, resp.headers.get("Replay-Nonce", ""))

        # Unreachable: the last attempt either returns or raises
        raise AcmeError(0, {"detail": "Exceeded nonce retry limit"})


class AcmeRegistrationClient:
    """An AcmeClient bound to one account key pair."""

    def __init__(
        self,
        client: AcmeClient,
        account_key: JWKRSA,
        eab_key_id: str = "",
        eab_hmac_key: str = "",
    ) -> None:
        self.client = client
        self.account_key = account_key
        self.eab_key_id = eab_key_id
        self.eab_hmac_key = eab_hmac_key

    @property
    def directory_url(self) -> str:
        return self.client.directory_url

    def register(self, email: str) -> str:
        """
        Register (or re-register) the bound key with *email* as contact.

        One directory fetch, one nonce, one newAccount POST.  Blocks until the
        server answers; raises AcmeError or requests.RequestException.
        Returns the account URL.
        """
        directory = self.client.get_directory()
        nonce = self.client.get_nonce(directory)
        account_url, _ = self.client.create_account(
            account_key=self.account_key,
            nonce=nonce,
            directory=directory,
            contact=[f"mailto:{email}"],
            eab_key_id=self.eab_key_id,
            eab_hmac_key=self.eab_hmac_key,
        )
        logger.info("Registered ACME account for %s: %s", email, account_url)
        return account_url


def make_registration_client(acme_server: str, key_pair: "KeyPair") -> AcmeRegistrationClient:
    """
    Build a registration client for *key_pair* against *acme_server*.
    Late-imports config to avoid circular imports at module load time.
    """
    from config import settings  # noqa: PLC0415

    client = AcmeClient(
        directory_url=acme_server,
        timeout=settings.ACME_TIMEOUT,
        ca_bundle=settings.ACME_CA_BUNDLE,
        insecure=settings.ACME_INSECURE,
    )
    return AcmeRegistrationClient(
        client,
        jwslib.load_account_key_pem(key_pair.private_pem),
        eab_key_id=settings.ACME_EAB_KEY_ID,
        eab_hmac_key=settings.ACME_EAB_HMAC_KEY,
    )
