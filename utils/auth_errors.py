"""
Error taxonomy for the portal login flow.

Each error carries the HTTP status the API layer answers with and a detail
message that is safe to show to the caller. Causes belong in the server log,
never in ``detail``.
"""
from fastapi import status


class PortalAuthError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Failed to process request"

    def __init__(self, detail: str = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class MissingFieldError(PortalAuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Required field is missing"


class MalformedEmailError(PortalAuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid email format"


class MalformedCodeError(PortalAuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid code format"


class NotWhitelistedError(PortalAuthError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Your email is not authorized to access this portal. Please contact your administrator."


class CodeInvalidError(PortalAuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid verification code"


class CodeConflictError(CodeInvalidError):
    """Lost a redemption race. Answered exactly like an unknown code."""


class CodeExpiredError(PortalAuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Verification code has expired. Please request a new one."


class InternalError(PortalAuthError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Failed to process request"
