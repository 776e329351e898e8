"""
tests/test_jwt_startup.py — Admin signing secret checked at import
===================================================================
``sanctum.api.deps`` validates ``JWT_SECRET`` when it is imported, and the
admin guard verifies tokens against whatever secret that import accepted.
"""

from __future__ import annotations

import importlib
import os
from unittest.mock import patch

import jwt
import pytest
from fastapi import HTTPException

import sanctum.api.deps as deps_mod

STRONG_SECRET = "s" * 48


def _reload_with(env: dict[str, str] | None):
    """Re-import the deps module against a patched environment."""
    with patch.dict(os.environ, env or {}):
        if env is None:
            os.environ.pop("JWT_SECRET", None)
        return importlib.reload(deps_mod)


@pytest.fixture(autouse=True)
def _restore_deps_module():
    original = os.environ.get("JWT_SECRET")
    yield
    if original is None:
        os.environ.pop("JWT_SECRET", None)
        return
    os.environ["JWT_SECRET"] = original
    importlib.reload(deps_mod)


class TestSecretRejected:
    @pytest.mark.parametrize(
        ("env", "message"),
        [
            (None, "environment variable is not set"),
            ({"JWT_SECRET": ""}, "environment variable is not set"),
            ({"JWT_SECRET": "sanctum-dev-secret-change-me"}, "known weak default"),
            ({"JWT_SECRET": "change-me"}, "known weak default"),
            ({"JWT_SECRET": "secret"}, "known weak default"),
            ({"JWT_SECRET": "x" * 31}, "too short \\(31 chars\\)"),
        ],
        ids=["unset", "blank", "dev-default", "change-me", "secret", "31-chars"],
    )
    def test_import_fails(self, env, message):
        with pytest.raises(RuntimeError, match=message):
            _reload_with(env)

    def test_minimum_length_accepted(self):
        secret = "k" * 32
        assert _reload_with({"JWT_SECRET": secret}).JWT_SECRET == secret


class TestAdminGuardUsesLoadedSecret:
    def test_token_signed_with_loaded_secret_is_admin(self):
        deps = _reload_with({"JWT_SECRET": STRONG_SECRET})
        token = jwt.encode(
            {"sub": "7", "is_admin": True}, STRONG_SECRET, algorithm=deps.JWT_ALGORITHM
        )
        payload = deps.get_current_admin(authorization=f"Bearer {token}")
        assert payload["sub"] == "7"

    def test_rotated_secret_invalidates_old_tokens(self):
        deps = _reload_with({"JWT_SECRET": STRONG_SECRET})
        stale = jwt.encode(
            {"sub": "7", "is_admin": True}, STRONG_SECRET, algorithm=deps.JWT_ALGORITHM
        )

        deps = _reload_with({"JWT_SECRET": "r" * 48})
        with pytest.raises(HTTPException) as exc:
            deps.get_current_admin(authorization=f"Bearer {stale}")
        assert exc.value.status_code == 401
