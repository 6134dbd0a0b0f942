# backend/ephemera/api/deps.py
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ephemera.errors import (
    ControlError,
    ControlTimeoutError,
    NotFoundError,
    NotManagedError,
    PolicyError,
    ProviderError,
    ValidationError,
)
from ephemera.models.principal import Principal, Role
from ephemera.services.control_service import ControlService, get_control_service
from ephemera.utils.security import decode_access_token

security = HTTPBearer(auto_error=False)


def get_current_principal(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Principal:
    """Resolve the caller from the bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthorized: missing auth",
            headers={"WWW-Authenticate": "Bearer"},
        )

    principal = decode_access_token(credentials.credentials)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def require_any_role(*roles: Role):
    """Require the caller to hold at least one of the given roles."""
    role_values = [r.value for r in roles]

    def checker(principal: Annotated[Principal, Depends(get_current_principal)]) -> Principal:
        if not principal.has_any_role(*role_values):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Required role: {', '.join(role_values)}",
            )
        return principal
    return checker


# Type aliases for common dependencies
AnyUser = Annotated[Principal, Depends(require_any_role(Role.ADMIN, Role.POWER_USER, Role.USER))]
Operator = Annotated[Principal, Depends(require_any_role(Role.ADMIN, Role.POWER_USER))]
AdminUser = Annotated[Principal, Depends(require_any_role(Role.ADMIN))]
Control = Annotated[ControlService, Depends(get_control_service)]


_STATUS_BY_CATEGORY = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (NotManagedError, status.HTTP_403_FORBIDDEN),
    (PolicyError, status.HTTP_409_CONFLICT),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
    (ControlTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
]


def to_http_exception(exc: ControlError) -> HTTPException:
    """Translate a lifecycle error into the matching HTTP error response."""
    for category, status_code in _STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
