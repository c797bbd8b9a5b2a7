from fastapi import APIRouter, Depends, HTTPException, Request, Response
from typing import Optional

from sqlalchemy.orm import Session

from database import get_db
from schemas.portal_auth import (
    CheckSessionRequest,
    CheckSessionResponse,
    SendCodeRequest,
    SendCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from services.code_issuer import CodeIssuer, CodeSender
from services.code_verifier import CodeVerifier, SESSION_DURATION_HOURS
from services.session_validator import SessionValidator
from services.whitelist_guard import WhitelistGuard
from utils.auth_errors import PortalAuthError
from utils.logger_factory import new_logger
from utils.portal_config import SESSION_COOKIE_NAME, cookie_secure, get_code_sender, get_whitelist_guard

router = APIRouter()

DELIVERY_WARNING = "Code saved but email delivery may be delayed. Please check your spam folder or try again in a moment."


@router.post("/send-code", response_model=SendCodeResponse, response_model_exclude_none=True)
def send_code(
    payload: SendCodeRequest,
    db: Session = Depends(get_db),
    guard: WhitelistGuard = Depends(get_whitelist_guard),
    sender: CodeSender = Depends(get_code_sender),
):
    """
    Email a one-time login code to a whitelisted address.

    Returns:
        200: code stored, with ``warning`` when the email could not be sent
        400: email missing or malformed
        403: email not whitelisted
        500: code could not be stored
    """
    log = new_logger("send_code")
    try:
        email = guard.authorize(payload.email)
        result = CodeIssuer(db, sender).issue(email)
    except PortalAuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception:
        log.exception("Error in send-code")
        raise HTTPException(status_code=500, detail="Failed to process request")

    if not result.delivered:
        return SendCodeResponse(success=True, warning=DELIVERY_WARNING)
    return SendCodeResponse(success=True, message="Verification code sent to your email")


@router.post("/verify-code", response_model=VerifyCodeResponse)
def verify_code(payload: VerifyCodeRequest, response: Response, db: Session = Depends(get_db)):
    """
    Redeem a login code for a session.

    Returns:
        200: ``sessionId`` and ``expiresAt``; the session cookie is set as well
        400: missing fields or a code that is not 5 digits
        401: unknown, used or expired code
        500: the code could not be consumed or the session could not be stored
    """
    log = new_logger("verify_code")
    try:
        result = CodeVerifier(db).verify(payload.email, payload.code)
    except PortalAuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception:
        log.exception("Error in verify-code")
        raise HTTPException(status_code=500, detail="Failed to process request")

    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=result.session_id,
        max_age=SESSION_DURATION_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=cookie_secure(),
        path="/",
    )
    return VerifyCodeResponse(success=True, session_id=result.session_id, expires_at=result.expires_at)


@router.post("/check-session", response_model=CheckSessionResponse, response_model_exclude_none=True)
def check_session(
    request: Request,
    payload: Optional[CheckSessionRequest] = None,
    db: Session = Depends(get_db),
):
    """
    Validate a session token and record the access.

    The token comes from ``sessionId`` in the body, falling back to the
    session cookie. The body may be omitted entirely when the cookie is sent.
    Unknown and expired sessions answer 200 with ``valid: false``.
    """
    log = new_logger("check_session")
    try:
        session_id = (payload.session_id if payload else None) or request.cookies.get(SESSION_COOKIE_NAME)
        check = SessionValidator(db).check(session_id)
    except PortalAuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except Exception:
        log.exception("Error in check-session")
        raise HTTPException(status_code=500, detail="Failed to check session")

    if not check.valid:
        return CheckSessionResponse(valid=False, reason=check.reason)
    return CheckSessionResponse(valid=True, email=check.email, expires_at=check.expires_at)
