"""
Value types for the account manager.

Neither type ever renders private key material: `KeyPair` keeps it in a
`SecretStr`, and `AccountSummary` has no key fields at all.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, SecretStr


class KeyPair(BaseModel):
    """An immutable (private, public) PEM pair. Replaced wholesale, never patched."""

    model_config = ConfigDict(frozen=True)

    private: SecretStr
    public: str

    @classmethod
    def from_pem(cls, private_pem: str, public_pem: str) -> "KeyPair":
        return cls(private=SecretStr(private_pem), public=public_pem)

    @property
    def private_pem(self) -> str:
        return self.private.get_secret_value()

    @property
    def public_pem(self) -> str:
        return self.public


class AccountSummary(BaseModel):
    """Safe, loggable view of an Account."""

    model_config = ConfigDict(frozen=True)

    username: str
    email: Optional[str]
    acme_server: str
    storage_path: str
    has_keys: bool
    has_client: bool
