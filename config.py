"""
Application configuration via Pydantic Settings.
All values can be overridden by environment variables or a .env file.
"""
from __future__ import annotations

from typing import Literal
from urllib.parse import urlparse

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ── CA presets: directory URL + display name ──────────────────────────────────

_PRESETS = {
    "letsencrypt":         ("https://acme-v02.api.letsencrypt.org/directory", "Let's Encrypt"),
    "letsencrypt_staging": ("https://acme-staging-v02.api.letsencrypt.org/directory", "Let's Encrypt (staging)"),
    "zerossl":             ("https://acme.zerossl.com/v2/DV90", "ZeroSSL"),
    "sectigo":             ("https://acme.sectigo.com/v2/DV", "Sectigo"),
    "digicert":            ("https://acme.digicert.com/v2/DV/directory", "DigiCert"),
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── CA Provider ────────────────────────────────────────────────────────
    CA_PROVIDER: Literal[
        "letsencrypt", "letsencrypt_staging", "zerossl", "sectigo", "digicert", "custom"
    ] = "letsencrypt"

    # Only consulted when CA_PROVIDER="custom"
    ACME_DIRECTORY_URL: str = ""

    # ── External Account Binding (ZeroSSL, Sectigo, DigiCert) ─────────────
    ACME_EAB_KEY_ID: str = ""
    ACME_EAB_HMAC_KEY: str = ""

    # ── Account storage ────────────────────────────────────────────────────
    HOME_ROOT: str = "/home"
    ACCOUNT_DIR_NAME: str = ".letsencrypt"
    ACCOUNT_KEY_SIZE: int = 4096

    # ── ACME HTTP ──────────────────────────────────────────────────────────
    ACME_TIMEOUT: int = 30
    ACME_CA_BUNDLE: str = ""       # Path to CA cert bundle; empty = system default
    ACME_INSECURE: bool = False    # Skip TLS verification (never use in production)

    # ── Logging ────────────────────────────────────────────────────────────
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("ACCOUNT_KEY_SIZE")
    @classmethod
    def validate_key_size(cls, v: int) -> int:
        if v < 2048:
            raise ValueError("ACCOUNT_KEY_SIZE must be at least 2048 bits")
        return v

    @field_validator("ACCOUNT_DIR_NAME")
    @classmethod
    def validate_dir_name(cls, v: str) -> str:
        if not v or "/" in v or v in {".", ".."}:
            raise ValueError("ACCOUNT_DIR_NAME must be a single directory name")
        return v

    @model_validator(mode="after")
    def resolve_acme_directory(self) -> "Settings":
        if self.CA_PROVIDER in _PRESETS:
            self.ACME_DIRECTORY_URL = _PRESETS[self.CA_PROVIDER][0]
        elif not self.ACME_DIRECTORY_URL:
            raise ValueError("ACME_DIRECTORY_URL must be set when CA_PROVIDER='custom'")
        return self


def service_name(directory_url: str) -> str:
    """Human-readable name of the CA behind *directory_url*.

    Known presets map to their display name; anything else falls back to the
    URL's host (or the raw string when it has none).
    """
    for url, name in _PRESETS.values():
        if directory_url == url:
            return name
    return urlparse(directory_url).hostname or directory_url


# Module-level singleton — import and use everywhere.
settings = Settings()
