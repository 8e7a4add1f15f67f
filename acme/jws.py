"""
JWK / JWS / EAB utilities for the ACME protocol (RFC 8555 + RFC 8739).

Uses *josepy* (the library powering Certbot) for the JWK representation.

Responsibilities (boundary with acme/crypto.py):
  - Load the **account** RSA key from its stored PEM
  - Sign ACME POST bodies as JWS (with jwk or kid header)
  - Build the EAB outer-JWS for EAB-capable CAs (ZeroSSL, Sectigo, DigiCert)
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
from typing import Any

from josepy.jwk import JWKRSA
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa


# ─── Account key ──────────────────────────────────────────────────────────────


def load_account_key_pem(private_pem: str) -> JWKRSA:
    """Wrap a PEM-encoded RSA private key in a josepy JWKRSA."""
    private_key = serialization.load_pem_private_key(private_pem.encode(), password=None)
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise ValueError("Account key must be an RSA private key")
    return JWKRSA(key=private_key)


def public_jwk(account_key: JWKRSA) -> dict[str, Any]:
    """Public half of the account key as a JSON-ready JWK dict."""
    jwk = account_key.public_key().fields_to_partial_json()
    jwk["kty"] = "RSA"
    return jwk


# ─── JWS signing ─────────────────────────────────────────────────────────────


def sign_request(
    payload: dict | None,
    account_key: JWKRSA,
    nonce: str,
    url: str,
    account_url: str | None = None,
) -> dict:
    """
    Sign an ACME request payload and return the JWS dict to POST.

    Without *account_url* the protected header carries the full JWK (used for
    newAccount); with it, the shorter "kid" form.
    """
    header: dict[str, Any] = {
        "alg": "RS256",
        "nonce": nonce,
        "url": url,
    }
    if account_url:
        header["kid"] = account_url
    else:
        header["jwk"] = public_jwk(account_key)

    protected = _b64url(json.dumps(header).encode())
    payload_b64 = "" if payload is None else _b64url(json.dumps(payload).encode())

    signing_input = f"{protected}.{payload_b64}".encode()
    signature = account_key.key.sign(signing_input, padding.PKCS1v15(), hashes.SHA256())

    return {
        "protected": protected,
        "payload": payload_b64,
        "signature": _b64url(signature),
    }


# ─── EAB (External Account Binding) ──────────────────────────────────────────


def create_eab_jws(
    account_key: JWKRSA,
    eab_kid: str,
    eab_hmac_key_b64url: str,
    new_account_url: str,
) -> dict:
    """
    Build the EAB outer-JWS (RFC 8739): HS256 over the account public JWK,
    keyed with the decoded EAB HMAC key.

    Raises ValueError for an empty kid, a key that is not base64url, or a
    decoded key shorter than 16 bytes.
    """
    if not eab_kid or not eab_kid.strip():
        raise ValueError("EAB key ID cannot be empty")
    if not eab_hmac_key_b64url or not eab_hmac_key_b64url.strip():
        raise ValueError("EAB HMAC key cannot be empty")

    try:
        hmac_key = _b64url_decode(eab_hmac_key_b64url)
    except Exception as exc:
        raise ValueError(f"EAB HMAC key is not valid base64url: {exc!s}") from exc

    if len(hmac_key) < 16:
        raise ValueError(
            f"EAB HMAC key is too short: {len(hmac_key)} bytes (minimum 16)"
        )

    protected = _b64url(json.dumps({"alg": "HS256", "kid": eab_kid, "url": new_account_url}).encode())
    payload = _b64url(json.dumps(public_jwk(account_key)).encode())
    mac = hmac.new(hmac_key, f"{protected}.{payload}".encode(), hashlib.sha256).digest()

    return {
        "protected": protected,
        "payload": payload,
        "signature": _b64url(mac),
    }


# ─── Internal helpers ─────────────────────────────────────────────────────────


def _b64url(data: bytes) -> str:
    """URL-safe base64 encoding with no padding (as required by JOSE)."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64url_decode(s: str) -> bytes:
    pad = 4 - len(s) % 4
    if pad != 4:
        s += "=" * pad
    return base64.urlsafe_b64decode(s)
