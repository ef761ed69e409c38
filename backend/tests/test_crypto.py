"""
Tests for API key encryption.
"""

import os
import pytest
from unittest.mock import patch
from cryptography.fernet import Fernet

from revenue_desk import crypto
from revenue_desk.config import get_settings


@pytest.fixture
def configured_key():
    key = Fernet.generate_key().decode()
    with patch.dict(os.environ, {"ENCRYPTION_KEY": key, "ENVIRONMENT": "development"}, clear=False):
        get_settings.cache_clear()
        crypto.reset_cipher()
        yield key
    get_settings.cache_clear()
    crypto.reset_cipher()


@pytest.fixture
def no_key():
    with patch.dict(os.environ, {"ENCRYPTION_KEY": "", "ENVIRONMENT": "development"}, clear=False):
        get_settings.cache_clear()
        crypto.reset_cipher()
        yield
    get_settings.cache_clear()
    crypto.reset_cipher()


def test_encrypt_decrypt_round_trip(configured_key):
    ciphertext = crypto.encrypt_value("sk-deepseek-1234567890")
    assert ciphertext != "sk-deepseek-1234567890"
    assert crypto.decrypt_value(ciphertext) == "sk-deepseek-1234567890"


def test_plaintext_passes_through_decrypt(configured_key):
    # Seeded sample keys are stored unencrypted
    assert crypto.decrypt_value("7f4e8d2a1b5c6f3e9d7a8b4c2e1d5f6a") == "7f4e8d2a1b5c6f3e9d7a8b4c2e1d5f6a"


def test_passthrough_without_key(no_key):
    assert crypto.encrypt_value("secret") == "secret"
    assert crypto.decrypt_value("secret") == "secret"


def test_none_is_preserved(no_key):
    assert crypto.encrypt_value(None) is None
    assert crypto.decrypt_value(None) is None
