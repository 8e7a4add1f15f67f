"""Tests for settings validation and CA display names."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from config import Settings, service_name


def test_preset_resolves_directory():
    s = Settings(_env_file=None, CA_PROVIDER="letsencrypt_staging")
    assert s.ACME_DIRECTORY_URL == "https://acme-staging-v02.api.letsencrypt.org/directory"


def test_custom_provider_requires_directory():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, CA_PROVIDER="custom", ACME_DIRECTORY_URL="")


def test_custom_provider_keeps_directory():
    s = Settings(_env_file=None, CA_PROVIDER="custom", ACME_DIRECTORY_URL="https://localhost:14000/dir")
    assert s.ACME_DIRECTORY_URL == "https://localhost:14000/dir"


def test_defaults():
    s = Settings(_env_file=None)
    assert s.ACCOUNT_KEY_SIZE == 4096
    assert s.ACCOUNT_DIR_NAME == ".letsencrypt"
    assert s.HOME_ROOT == "/home"


def test_key_size_floor():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, ACCOUNT_KEY_SIZE=1024)


@pytest.mark.parametrize("name", ["", "..", "a/b"])
def test_dir_name_must_be_single_component(name):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, ACCOUNT_DIR_NAME=name)


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://acme-v02.api.letsencrypt.org/directory", "Let's Encrypt"),
        ("https://acme.zerossl.com/v2/DV90", "ZeroSSL"),
        ("https://ca.internal:9000/acme/directory", "ca.internal"),
        ("not a url", "not a url"),
    ],
)
def test_service_name(url, expected):
    assert service_name(url) == expected
