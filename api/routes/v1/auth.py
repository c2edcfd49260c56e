"""
api/routes/v1/auth.py -- Login, sign-up, token refresh and password reset.

Routes:
  POST /api/v1/auth/login            -- email + password -> token pair
  POST /api/v1/auth/signup           -- create client account -> account + token pair
  POST /api/v1/auth/refresh          -- bearer token -> fresh token pair
  POST /api/v1/auth/reset-password   -- bearer + ?answer= -> 204 if the security answer matches

Security:
  login, signup and reset-password are rate-limited per IP (LOGIN_RATE_LIMIT);
  each accepts a guessable secret.
  Token responses carry Cache-Control: no-store.
  Domain failures are raised as AuthError and mapped to status codes by the
  handler in api/main.py; this module never builds error responses itself.

Handlers are plain `def` so FastAPI runs them in its threadpool -- bcrypt and
the store are blocking calls.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from api.limiter import credential_rate_limit, limiter
from api.models import AccountResponse, LoginRequest, SignUpRequest, SignUpResponse, TokenResponse
from auth.dependencies import get_identity
from auth.models import AuthenticatedIdentity, SignUpProfile
from auth.service import AccountService

# Auth policy:
# - POST /api/v1/auth/login:          public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/signup:         public
# - POST /api/v1/auth/refresh:        requires auth (get_identity)
# - POST /api/v1/auth/reset-password: requires auth (get_identity)
router = APIRouter()


def _service(request: Request) -> AccountService:
    return request.app.state.account_service


def _no_store(payload: dict, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=payload)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@limiter.limit(credential_rate_limit)
@router.post("/auth/login", response_model=TokenResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return access and refresh tokens.

    Unknown email -> 404 account_not_found; wrong password -> 401 bad_credentials.
    """
    pair = _service(request).login(body.email, body.password)
    return _no_store(TokenResponse.from_pair(pair).model_dump())


@limiter.limit(credential_rate_limit)
@router.post("/auth/signup", response_model=SignUpResponse, status_code=201)
def signup(request: Request, body: SignUpRequest) -> JSONResponse:
    """Create a client account and log it in. Role is always client."""
    result = _service(request).sign_up(
        SignUpProfile(
            email=body.email,
            password=body.password,
            name=body.name,
            surname=body.surname,
            phone=body.phone,
            security_question=body.question,
            security_answer=body.answer,
        )
    )
    tokens = TokenResponse.from_pair(result.tokens)
    payload = SignUpResponse(**tokens.model_dump(), user=AccountResponse.from_account(result.account))
    return _no_store(payload.model_dump(mode="json"), status_code=201)


@router.post("/auth/refresh", response_model=TokenResponse)
def refresh(request: Request, identity: AuthenticatedIdentity = Depends(get_identity)) -> JSONResponse:
    """Issue a fresh pair for the identity in the presented (access or refresh) token."""
    pair = _service(request).refresh_tokens(identity)
    return _no_store(TokenResponse.from_pair(pair).model_dump())


@limiter.limit(credential_rate_limit)
@router.post("/auth/reset-password", status_code=204)
def reset_password(
    request: Request,
    answer: str = Query(max_length=1000),
    identity: AuthenticatedIdentity = Depends(get_identity),
) -> Response:
    """Check the caller's security answer. 204 means a password change may follow."""
    _service(request).reset_password(identity.subject, answer)
    return Response(status_code=204)
