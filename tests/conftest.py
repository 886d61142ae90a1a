"""Shared pytest fixtures for CardPay tests."""

from __future__ import annotations

from typing import Iterator

import pytest

from cardpay.application import self_test
from cardpay.crypto.signing import ProtocolVariant
from cardpay.env import Settings, build_settings

LEGACY_KEY = self_test.LEGACY_TEST_KEY
HMAC_KEY = self_test.HMAC_TEST_KEY
EXAMPLE_RURL = self_test.EXAMPLE_RURL


@pytest.fixture(autouse=True)
def fresh_self_test() -> Iterator[None]:
    """Every test starts with the self-test gate un-run."""
    self_test.reset_self_test()
    yield
    self_test.reset_self_test()


@pytest.fixture
def legacy_settings() -> Settings:
    """Merchant settings for the AES-256 generation, using the published test key."""
    return build_settings(
        mid=9999,
        hex_key=LEGACY_KEY,
        form_action_url="https://moja.tatrabanka.sk/cgi-bin/e-commerce/start/cardpay",
        variant=ProtocolVariant.LEGACY,
    )


@pytest.fixture
def hmac_settings() -> Settings:
    """Merchant settings for the HMAC generation, using the published test key."""
    return build_settings(
        mid=9999,
        hex_key=HMAC_KEY,
        form_action_url="https://moja.tatrabanka.sk/cgi-bin/e-commerce/start/cardpay",
        variant=ProtocolVariant.HMAC256,
    )


@pytest.fixture
def legacy_callback_params() -> dict[str, str]:
    return dict(self_test.CALLBACK_VECTORS[0].params)


@pytest.fixture
def hmac_callback_params() -> dict[str, str]:
    return dict(self_test.CALLBACK_VECTORS[1].params)
