"""Domain exceptions shared by the services and mapped to HTTP in main.py"""
import enum
from typing import Iterable


class LoanFlowError(Exception):
    """Base exception for the domain layer"""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ConfigurationError(LoanFlowError):
    """Invalid startup configuration, e.g. a signing key that is too short"""
    pass


class ValidationError(LoanFlowError):
    """Required input is missing or blank"""

    def __init__(self, detail: str, fields: Iterable[str] = ()):
        super().__init__(detail)
        self.fields = list(fields)


class VerificationFailure(str, enum.Enum):
    """Why a credential token was refused"""
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    MALFORMED = "malformed"


class VerificationError(LoanFlowError):
    """Credential token could not be verified"""

    def __init__(self, reason: VerificationFailure):
        super().__init__(f"Could not validate credentials: {reason.value}")
        self.reason = reason


class NotFoundError(LoanFlowError):
    """Requested record does not exist"""
    pass


class ForbiddenError(LoanFlowError):
    """Authenticated principal lacks the role for the requested action"""
    pass


class IllegalTransitionError(LoanFlowError):
    """Lifecycle transition not permitted from the current state"""
    pass


class ConflictError(LoanFlowError):
    """Write collides with an existing record"""
    pass
