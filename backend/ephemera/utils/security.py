# backend/ephemera/utils/security.py
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import jwt

from ephemera.config import get_settings
from ephemera.models.principal import AVAILABLE_ROLES, Principal


def create_access_token(
    subject: str,
    roles: Iterable[str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    settings = get_settings()
    roles = [r.value if hasattr(r, "value") else r for r in roles]
    unknown = [r for r in roles if r not in AVAILABLE_ROLES]
    if unknown:
        raise ValueError(f"Unknown roles: {', '.join(unknown)}")
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"sub": str(subject), "roles": list(roles), "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[Principal]:
    """Decode a bearer token, None if it is invalid, expired or malformed."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError:
        return None
    roles = payload.get("roles") or []
    if not isinstance(roles, list):
        return None
    return Principal(
        subject=str(payload["sub"]),
        roles=frozenset(r for r in roles if r in AVAILABLE_ROLES),
    )
