"""
api/routes/v1/users.py -- Account self-service and per-id account access.

Routes:
  GET    /api/v1/users/me            -- own account
  PUT    /api/v1/users/me            -- update own profile
  PATCH  /api/v1/users/me/password   -- set a new password
  DELETE /api/v1/users/me            -- delete own account
  GET    /api/v1/users/{account_id}  -- owner or elevated role
  PUT    /api/v1/users/{account_id}  -- owner or elevated role
  DELETE /api/v1/users/{account_id}  -- owner or elevated role

Authorization: a client may only read or modify its own account; any elevated
role may act on any account id. ensure_owner_or_elevated() is applied before
the service is called.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import AccountResponse, PasswordChange, ProfileUpdate
from auth.dependencies import ensure_owner_or_elevated, get_identity
from auth.models import AuthenticatedIdentity
from auth.service import AccountService

router = APIRouter()


def _service(request: Request) -> AccountService:
    return request.app.state.account_service


# ---------------------------------------------------------------------------
# Own account
# ---------------------------------------------------------------------------


@router.get("/users/me", response_model=AccountResponse)
def read_self(request: Request, identity: AuthenticatedIdentity = Depends(get_identity)) -> AccountResponse:
    return AccountResponse.from_account(_service(request).get_account(identity.subject))


@router.put("/users/me", response_model=AccountResponse)
def update_self(
    request: Request,
    body: ProfileUpdate,
    identity: AuthenticatedIdentity = Depends(get_identity),
) -> AccountResponse:
    account = _service(request).update_profile(identity.subject, body.to_fields())
    return AccountResponse.from_account(account)


@router.patch("/users/me/password", status_code=204)
def change_password(
    request: Request,
    body: PasswordChange,
    identity: AuthenticatedIdentity = Depends(get_identity),
) -> Response:
    _service(request).change_password(identity.subject, body.password)
    return Response(status_code=204)


@router.delete("/users/me", status_code=204)
def delete_self(request: Request, identity: AuthenticatedIdentity = Depends(get_identity)) -> Response:
    _service(request).delete_account(identity.subject)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# By id (owner or elevated)
# ---------------------------------------------------------------------------


@router.get("/users/{account_id}", response_model=AccountResponse)
def read_user(
    request: Request,
    account_id: str,
    identity: AuthenticatedIdentity = Depends(get_identity),
) -> AccountResponse:
    ensure_owner_or_elevated(identity, account_id)
    return AccountResponse.from_account(_service(request).get_account(account_id))


@router.put("/users/{account_id}", response_model=AccountResponse)
def update_user(
    request: Request,
    account_id: str,
    body: ProfileUpdate,
    identity: AuthenticatedIdentity = Depends(get_identity),
) -> AccountResponse:
    ensure_owner_or_elevated(identity, account_id)
    account = _service(request).update_profile(account_id, body.to_fields())
    return AccountResponse.from_account(account)


@router.delete("/users/{account_id}", status_code=204)
def delete_user(
    request: Request,
    account_id: str,
    identity: AuthenticatedIdentity = Depends(get_identity),
) -> Response:
    ensure_owner_or_elevated(identity, account_id)
    _service(request).delete_account(account_id)
    return Response(status_code=204)
