"""
Account key-pair generation.

Boundary: this module only produces PEM material.  Turning a PEM private key
into a signing JWK lives in acme/jws.py.
"""
from __future__ import annotations

import logging
from typing import NamedTuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

logger = logging.getLogger(__name__)

_SELF_TEST_MESSAGE = b"account key pairwise consistency check"


class CompleteKey(NamedTuple):
    private_pem: str
    public_pem: str


class PartialKey(NamedTuple):
    """Generation produced weak or inconsistent material; nothing usable."""
    reason: str


KeyGenResult = Union[CompleteKey, PartialKey]


def generate_key_pair(bits: int = 4096) -> KeyGenResult:
    """
    Generate an RSA key pair of *bits* and return both halves as PEM.

    The key is only reported complete when it has exactly the requested size
    and passes a sign/verify round trip with its own public half; otherwise a
    PartialKey describing the defect is returned.
    """
    key = rsa.generate_private_key(public_exponent=65537, key_size=bits)

    if key.key_size != bits:
        return PartialKey(f"requested {bits}-bit key, got {key.key_size} bits")

    try:
        signature = key.sign(_SELF_TEST_MESSAGE, padding.PKCS1v15(), hashes.SHA256())
        key.public_key().verify(signature, _SELF_TEST_MESSAGE, padding.PKCS1v15(), hashes.SHA256())
    except InvalidSignature:
        return PartialKey("pairwise consistency check failed")

    logger.debug("Generated %d-bit RSA key pair", bits)
    return CompleteKey(private_key_to_pem(key), public_key_to_pem(key.public_key()))


def private_key_to_pem(key: rsa.RSAPrivateKey) -> str:
    """Serialize a private key to an unencrypted PKCS#1 PEM string."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


def public_key_to_pem(key: rsa.RSAPublicKey) -> str:
    """Serialize a public key to a SubjectPublicKeyInfo PEM string."""
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
