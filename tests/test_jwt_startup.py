"""
tests/test_jwt_startup — JWT Secret Validation at Startup
===========================================================
The API must refuse to start when JWT_SECRET is missing, blank, too short,
or a known weak default.
"""

from __future__ import annotations

import pytest

from skillbridge.api.deps import _load_jwt_secret


class TestJWTSecretValidation:
    """Prove that _load_jwt_secret() rejects bad secrets and accepts good ones."""

    def test_rejects_missing_secret(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        with pytest.raises(RuntimeError, match="JWT_SECRET environment variable is not set"):
            _load_jwt_secret()

    def test_rejects_empty_secret(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "")
        with pytest.raises(RuntimeError, match="JWT_SECRET environment variable is not set"):
            _load_jwt_secret()

    @pytest.mark.parametrize("secret", ["skillbridge-dev-secret-change-me", "change-me"])
    def test_rejects_known_weak_default(self, monkeypatch, secret):
        monkeypatch.setenv("JWT_SECRET", secret)
        with pytest.raises(RuntimeError, match="known weak default"):
            _load_jwt_secret()

    def test_rejects_short_secret(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "tooshort")
        with pytest.raises(RuntimeError, match="too short"):
            _load_jwt_secret()

    def test_accepts_strong_secret(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "a" * 64)
        assert _load_jwt_secret() == "a" * 64
