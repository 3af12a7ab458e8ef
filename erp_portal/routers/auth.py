from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_portal.auth import Principal, extract_session_token, get_current_principal
from erp_portal.db import get_db
from erp_portal.dependencies import get_client_ip, get_user_agent
from erp_portal.models import Principal as PrincipalModel
from erp_portal.schemas import LoginRequest
from erp_portal.security.passwords import verify_and_update_password
from erp_portal.security.sessions import (
    clear_session_cookie,
    create_web_session,
    revoke_web_session,
    set_session_cookie,
)
from erp_portal.services.audit_service import log_audit, log_auth_event

router = APIRouter(prefix='/auth', tags=['auth'])


def _reject_login(db: Session, *, username: str, reason: str, principal_id: int | None, ip, user_agent) -> None:
    log_auth_event(
        db,
        attempted_username=username,
        success=False,
        failure_reason=reason,
        principal_id=principal_id,
        ip=ip,
        user_agent=user_agent,
    )
    db.commit()
    raise HTTPException(status_code=401, detail='Invalid username or password')


@router.post('/login')
def login(payload: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    username = payload.username.strip()
    ip = get_client_ip(request)
    user_agent = get_user_agent(request)

    principal = db.execute(select(PrincipalModel).where(PrincipalModel.username == username)).scalar_one_or_none()
    if not principal:
        _reject_login(db, username=username, reason='UNKNOWN_USERNAME', principal_id=None, ip=ip, user_agent=user_agent)
    if not principal.active:
        _reject_login(
            db, username=username, reason='INACTIVE_PRINCIPAL', principal_id=principal.id, ip=ip, user_agent=user_agent
        )

    valid, updated_hash = verify_and_update_password(payload.password, principal.password_hash)
    if not valid:
        _reject_login(db, username=username, reason='BAD_PASSWORD', principal_id=principal.id, ip=ip, user_agent=user_agent)
    if updated_hash:
        principal.password_hash = updated_hash

    token = create_web_session(db, principal.id, ip=ip, user_agent=user_agent)
    log_auth_event(
        db,
        attempted_username=username,
        success=True,
        failure_reason=None,
        principal_id=principal.id,
        ip=ip,
        user_agent=user_agent,
    )
    log_audit(
        db,
        organization_id=principal.organization_id,
        actor_principal_id=principal.id,
        action='AUTH_LOGIN',
        ip=ip,
        metadata={'username': username},
    )
    db.commit()

    set_session_cookie(response, token)
    return {
        'token': token,
        'principal': {
            'id': principal.id,
            'username': principal.username,
            'email': principal.email,
            'role': principal.role.value,
            'organizationId': principal.organization_id,
        },
    }


@router.post('/logout')
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    token = extract_session_token(request)
    revoked = revoke_web_session(db, token) if token else False
    log_audit(
        db,
        organization_id=principal.organization_id,
        actor_principal_id=principal.id,
        action='AUTH_LOGOUT',
        ip=get_client_ip(request),
        metadata={'session_revoked': revoked},
    )
    db.commit()

    clear_session_cookie(response)
    return {'message': 'Logged out'}
