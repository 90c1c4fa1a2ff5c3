from datetime import timedelta

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from retrospect.core import security
from retrospect.core.config import settings
from retrospect.core.security import (
    create_edit_token,
    decode_edit_token,
    hash_password,
    require_edit_capability,
    verify_edit_password,
)


def _bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def test_plain_password(monkeypatch):
    monkeypatch.setattr(settings, "EDIT_PASSWORD_HASH", None)
    monkeypatch.setattr(settings, "EDIT_PASSWORD", "s3cret")
    assert verify_edit_password("s3cret")
    assert not verify_edit_password("wrong")


def test_hashed_password_takes_precedence(monkeypatch):
    monkeypatch.setattr(settings, "EDIT_PASSWORD", "plain")
    monkeypatch.setattr(settings, "EDIT_PASSWORD_HASH", hash_password("hashed"))
    assert verify_edit_password("hashed")
    assert not verify_edit_password("plain")


def test_token_carries_edit_scope():
    payload = decode_edit_token(create_edit_token())
    assert payload["scope"] == security.EDIT_SCOPE
    assert payload["exp"] > payload["iat"]


@pytest.mark.asyncio
async def test_capability_accepts_valid_token():
    payload = await require_edit_capability(_bearer(create_edit_token()))
    assert payload["scope"] == "edit"


@pytest.mark.asyncio
async def test_capability_requires_token():
    with pytest.raises(HTTPException) as excinfo:
        await require_edit_capability(None)
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_capability_rejects_expired_token():
    token = create_edit_token(expires_delta=timedelta(minutes=-5))
    with pytest.raises(HTTPException) as excinfo:
        await require_edit_capability(_bearer(token))
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_capability_rejects_wrong_scope():
    token = jwt.encode({"scope": "read"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    with pytest.raises(HTTPException) as excinfo:
        await require_edit_capability(_bearer(token))
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_capability_rejects_foreign_signature():
    token = jwt.encode({"scope": "edit"}, "another-key", algorithm="HS256")
    with pytest.raises(HTTPException):
        await require_edit_capability(_bearer(token))
