"""
Failure kinds of the login flow and the tagged callback outcome.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    MALFORMED_PROVIDER_RESPONSE = "malformed_provider_response"
    TOKEN_REJECTED = "token_rejected"
    MISSING_CONFIGURATION = "missing_configuration"
    MISSING_USER_ID = "missing_user_id"
    TRANSPORT_FAILURE = "transport_failure"
    PARSE_FAILURE = "parse_failure"
    SECURITY_TOKEN_ERROR = "security_token_error"

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self]

    @property
    def status_code(self) -> int:
        return 404 if self is ErrorKind.NOT_FOUND else 500


ERROR_MESSAGES = {
    ErrorKind.NOT_FOUND: "path must be one of the two recognized sub-routes",
    ErrorKind.INVALID_CREDENTIALS: "invalid client id or secret",
    ErrorKind.MALFORMED_PROVIDER_RESPONSE: "bad response data",
    ErrorKind.TOKEN_REJECTED: "invalid response token",
    ErrorKind.MISSING_CONFIGURATION: "missing app client metadata",
    # Provider protocol violation, reported with the same wording as a config gap
    ErrorKind.MISSING_USER_ID: "missing app client metadata",
    ErrorKind.TRANSPORT_FAILURE: "error making request",
    ErrorKind.PARSE_FAILURE: "error parsing response",
    ErrorKind.SECURITY_TOKEN_ERROR: "error generating security token",
}


class LoginError(Exception):
    """Raised by any stage of the login flow"""

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None):
        self.kind = kind
        self.detail = detail
        super().__init__(detail or kind.message)


class SecurityTokenError(LoginError):
    """Raised when the security token cannot be minted"""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(ErrorKind.SECURITY_TOKEN_ERROR, detail)


class CallbackStatus(str, Enum):
    SUCCESS = "success"
    DECLINED = "declined"
    FAILED = "failed"


@dataclass(frozen=True)
class CallbackResult:
    """Outcome of one run of the callback stage."""
    status: CallbackStatus
    security_token: Optional[str] = None
    user_id: Optional[str] = None
    error: Optional[ErrorKind] = None

    @classmethod
    def success(cls, security_token: str, user_id: str) -> "CallbackResult":
        return cls(CallbackStatus.SUCCESS, security_token=security_token, user_id=user_id)

    @classmethod
    def declined(cls) -> "CallbackResult":
        return cls(CallbackStatus.DECLINED)

    @classmethod
    def failed(cls, kind: ErrorKind) -> "CallbackResult":
        return cls(CallbackStatus.FAILED, error=kind)
