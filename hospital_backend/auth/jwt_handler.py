from datetime import datetime, timedelta, timezone

import jwt

from hospital_backend.core import config
from hospital_backend.models.client import Caller, Role


def create_access_token(client_id: int, role: Role = Role.PATIENT, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_minutes)
    payload = {
        "sub": str(client_id),
        "role": Role(role).value,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])


def caller_from_payload(payload: dict) -> Caller:
    return Caller(client_id=int(payload["sub"]), role=Role(payload.get("role", Role.PATIENT.value)))
