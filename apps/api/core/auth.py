"""
Authentication and authorization dependencies.

Provides FastAPI dependencies for:
- Building the request principal from bearer-token claims
- Role-based access control

The role claim is trusted exactly as presented by the identity provider.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from core.exceptions import ForbiddenError, UnauthorizedError
from core.security import decode_access_token

# Use auto_error=False to handle missing credentials manually and return 401 (not 403)
security = HTTPBearer(auto_error=False)

ROLES = ("athlete", "coach", "scout")

# Identity-provider group name -> role
GROUP_ROLES = {
    "athletes": "athlete",
    "coaches": "coach",
    "scouts": "scout",
}


@dataclass(frozen=True)
class Principal:
    """Verified caller identity for one request."""
    subject_id: str
    role: Optional[str]
    custom_role: str = ""
    groups: List[str] = field(default_factory=list)
    name: Optional[str] = None

    def has_role(self, role: str) -> bool:
        return self.role == role


def principal_from_claims(claims: Dict) -> Principal:
    """
    Map token claims onto a Principal.

    `custom:role` wins; otherwise the first recognised group decides.
    """
    subject_id = claims.get("sub")
    if not subject_id:
        raise UnauthorizedError("Invalid token payload")

    custom_role = (claims.get("custom:role") or "").strip().lower()
    groups = claims.get("cognito:groups") or []
    if isinstance(groups, str):
        groups = [groups]

    role = custom_role if custom_role in ROLES else None
    if role is None:
        for group in groups:
            if group in GROUP_ROLES:
                role = GROUP_ROLES[group]
                break

    return Principal(
        subject_id=str(subject_id),
        role=role,
        custom_role=custom_role,
        groups=list(groups),
        name=claims.get("given_name") or claims.get("name"),
    )


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    """
    Get the current caller from the bearer token.

    Raises UnauthorizedError if the token is missing or invalid.
    """
    if not credentials:
        raise UnauthorizedError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise UnauthorizedError("Invalid authentication credentials")

    return principal_from_claims(payload)


def require_role(allowed_roles: List[str]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/coach-only")
        def coach_endpoint(principal: Principal = Depends(require_role(["coach"]))):
            ...
    """
    def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed_roles:
            raise ForbiddenError(f"Access denied. Required roles: {allowed_roles}")
        return principal

    return role_checker
