"""Tests for environment-dependent settings"""
import logging

import pytest

from ictserve.config.settings import Settings, settings
from ictserve.domain.errors import AuthenticationError
from ictserve.main import log_security_warnings
from ictserve.utils.jwt import JWTValidator

from ..factories import make_token


@pytest.mark.parametrize("environment,expected", [
    ("development", True),
    ("Dev", True),
    ("local", True),
    ("production", False),
    ("test", False),
])
def test_development_environments(environment, expected):
    assert Settings(environment=environment).is_development is expected


class TestUnsignedTokenWarning:

    def test_warns_in_development(self, monkeypatch, caplog):
        monkeypatch.setattr(settings, "environment", "development")

        with caplog.at_level(logging.WARNING, logger="ictserve.main"):
            log_security_warnings()

        assert "signature verification is disabled" in caplog.text

    def test_silent_when_signatures_verified(self, monkeypatch, caplog):
        monkeypatch.setattr(settings, "environment", "production")

        with caplog.at_level(logging.WARNING, logger="ictserve.main"):
            log_security_warnings()

        assert caplog.text == ""

    def test_forged_token_rejected_outside_development(self, monkeypatch):
        monkeypatch.setattr(settings, "environment", "production")
        validator = JWTValidator(secret="a-completely-different-secret-value-1234")

        with pytest.raises(AuthenticationError):
            validator.validate_token(make_token(["superuser"]))
