from dataclasses import dataclass, field
from enum import Enum

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from erp_portal.config import settings
from erp_portal.db import get_db


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    USER = "USER"
    VIEWER = "VIEWER"


MODULES = ("inventory", "purchasing", "sales")
ACTIONS = ("view", "create", "edit", "delete")

ROLE_DEFAULT_ACTIONS = {
    Role.ADMIN: set(ACTIONS),
    Role.MANAGER: set(ACTIONS),
    Role.USER: {"view", "create", "edit"},
    Role.VIEWER: {"view"},
}


@dataclass
class Principal:
    id: int
    username: str
    role: Role
    organization_id: int
    active: bool
    email: str | None = None
    permissions: dict = field(default_factory=dict)


@dataclass(frozen=True)
class RequestContext:
    organization_id: int
    principal_id: int


def context_for(principal: Principal) -> RequestContext:
    return RequestContext(organization_id=principal.organization_id, principal_id=principal.id)


def has_permission(principal: Principal, module: str, action: str) -> bool:
    # Explicit per-module grants override the role defaults.
    module_grants = (principal.permissions or {}).get(module)
    if isinstance(module_grants, dict) and action in module_grants:
        return module_grants[action] is True
    return action in ROLE_DEFAULT_ACTIONS.get(principal.role, set())


def extract_session_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(settings.session_cookie_name)


def get_current_principal(request: Request, db: Session = Depends(get_db)) -> Principal:
    from erp_portal.security.sessions import load_principal_from_token

    principal = load_principal_from_token(db, extract_session_token(request))
    if not principal:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    # Persist the sliding expiry.
    db.commit()
    if not principal.active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")
    return principal


def require_permission(module: str, action: str):
    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not has_permission(principal, module, action):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return principal

    return _dep
