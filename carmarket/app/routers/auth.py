import logging

from fastapi import APIRouter, Depends, Request

from ..auth import SESSION_TOKEN_KEY, get_session_context
from ..errors import WizardValidationError
from ..schemas import (
    LoginIn,
    PasswordStrengthIn,
    PasswordStrengthOut,
    ProfileOut,
    SessionOut,
    SignUpIn,
)
from ..services.session_context import SessionContext
from ..utils.credentials import MIN_PASSWORD_LENGTH, password_strength, signup_error


router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _session_out(ctx: SessionContext) -> SessionOut:
    if not ctx.is_authenticated:
        return SessionOut(authenticated=False)
    return SessionOut(
        authenticated=True,
        profile=ProfileOut.model_validate(ctx.profile) if ctx.profile is not None else None,
        expires_at=ctx.session.expires_at.isoformat() if ctx.session is not None else None,
    )


@router.post("/signup", response_model=SessionOut)
def signup(payload: SignUpIn, request: Request, ctx: SessionContext = Depends(get_session_context)):
    error = signup_error(payload.password, payload.phone_number)
    if error:
        field = "password" if len(payload.password) < MIN_PASSWORD_LENGTH else "phone_number"
        raise WizardValidationError(error, fields=[field])
    session = ctx.sign_up(
        payload.email.strip().lower(),
        payload.password,
        payload.full_name.strip(),
        payload.phone_number.strip(),
    )
    request.session[SESSION_TOKEN_KEY] = session.access_token
    logger.info("signup user=%s", session.user_id)
    return _session_out(ctx)


@router.post("/login", response_model=SessionOut)
def login(payload: LoginIn, request: Request, ctx: SessionContext = Depends(get_session_context)):
    session = ctx.sign_in(payload.email.strip().lower(), payload.password)
    request.session[SESSION_TOKEN_KEY] = session.access_token
    return _session_out(ctx)


@router.post("/logout", response_model=SessionOut)
def logout(request: Request, ctx: SessionContext = Depends(get_session_context)):
    if ctx.access_token:
        ctx.sign_out()
    request.session.pop(SESSION_TOKEN_KEY, None)
    return _session_out(ctx)


@router.get("/session", response_model=SessionOut)
def current_session(ctx: SessionContext = Depends(get_session_context)):
    return _session_out(ctx)


@router.post("/password-strength", response_model=PasswordStrengthOut)
def check_password_strength(payload: PasswordStrengthIn):
    strength = password_strength(payload.password)
    return PasswordStrengthOut(
        score=strength.score,
        label=strength.label,
        ratio=strength.ratio,
        requirements=strength.requirements,
    )
