from .verification_code import VerificationCode
from .portal_session import PortalSession

__all__ = ['VerificationCode', 'PortalSession']
