import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from hospital_backend.auth import jwt_handler
from hospital_backend.auth.dependencies import get_current_caller, require_admin
from hospital_backend.models.client import Caller, Role


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_access_token_round_trips_caller() -> None:
    token = jwt_handler.create_access_token(42, Role.ADMIN)

    caller = get_current_caller(credentials=_credentials(token))

    assert caller == Caller(42, Role.ADMIN)
    assert caller.is_admin


def test_token_without_role_defaults_to_patient() -> None:
    payload = {'sub': '7'}

    assert jwt_handler.caller_from_payload(payload) == Caller(7, Role.PATIENT)


def test_invalid_token_is_rejected() -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_caller(credentials=_credentials('not-a-token'))

    assert exception_info.value.status_code == 401


def test_expired_token_is_rejected() -> None:
    token = jwt_handler.create_access_token(42, expires_minutes=-1)

    with pytest.raises(HTTPException) as exception_info:
        get_current_caller(credentials=_credentials(token))

    assert exception_info.value.status_code == 401


def test_unknown_role_claim_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(jwt_handler, 'decode_access_token', lambda token: {'sub': '3', 'role': 'SURGEON'})

    with pytest.raises(HTTPException) as exception_info:
        get_current_caller(credentials=_credentials('token'))

    assert exception_info.value.status_code == 401


def test_require_admin_rejects_patients() -> None:
    with pytest.raises(HTTPException) as exception_info:
        require_admin(caller=Caller(1, Role.PATIENT))

    assert exception_info.value.status_code == 403
    assert require_admin(caller=Caller(2, Role.ADMIN)).is_admin
