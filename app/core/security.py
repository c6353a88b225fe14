from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import HTTPException, status

from app.config import get_settings


@dataclass(frozen=True)
class Actor:
    user_id: str
    organization_id: Optional[str]
    cost_center_id: Optional[str]
    auth_type: str


def _load_api_keys() -> set[str]:
    settings = get_settings()
    keys = set()
    if settings.API_KEYS:
        for value in settings.API_KEYS.split(","):
            value = value.strip()
            if value:
                keys.add(value)
    return keys


def _api_key_matches(api_key: str, keys: set[str]) -> bool:
    return any(hmac.compare_digest(api_key, key) for key in keys)


def _get_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _decode_jwt(token: str) -> dict:
    settings = get_settings()
    if not settings.JWT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="JWT auth is not configured",
        )

    options = {"verify_aud": bool(settings.JWT_AUDIENCE)}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options=options,
        )
    except jwt.PyJWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid JWT",
        ) from exc


def _claim(payload: dict, *names: str) -> Optional[str]:
    for name in names:
        value = payload.get(name)
        if value:
            return str(value)
    return None


def authenticate_request(
    api_key: Optional[str],
    authorization: Optional[str],
    *,
    user_id: Optional[str] = None,
    organization_id: Optional[str] = None,
    cost_center_id: Optional[str] = None,
) -> Actor:
    """Resolve the acting user for staff routes.

    Bearer tokens carry the actor in their claims. Service callers holding an
    API key name the actor through headers instead.
    """
    token = _get_bearer_token(authorization)
    if token:
        payload = _decode_jwt(token)
        subject = _claim(payload, "sub", "user_id")
        if not subject:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has no subject",
            )
        return Actor(
            user_id=subject,
            organization_id=_claim(payload, "organization_id", "organizationId"),
            cost_center_id=_claim(payload, "cost_center_id", "costCenterId"),
            auth_type="jwt",
        )

    keys = _load_api_keys()
    if api_key and keys and _api_key_matches(api_key, keys):
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="X-User-Id header is required with an API key",
            )
        return Actor(
            user_id=user_id,
            organization_id=organization_id,
            cost_center_id=cost_center_id,
            auth_type="api_key",
        )

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
    )
