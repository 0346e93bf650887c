"""Tagged errors raised by the generative client and caught by controllers.

Callers switch on :attr:`GenerationError.kind` (or the subclass) instead of
matching on message text.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    MISSING_INPUT = "missing_input"
    INVALID_CREDENTIAL = "invalid_credential"
    HTTP_FAILURE = "http_failure"
    SAFETY_BLOCKED = "safety_blocked"
    PARSE_FAILURE = "parse_failure"
    TRANSPORT_FAILURE = "transport_failure"


class GenerationError(Exception):
    kind: ErrorKind = ErrorKind.PARSE_FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def suggests_credential_update(self) -> bool:
        return False


class MissingInput(GenerationError):
    kind = ErrorKind.MISSING_INPUT

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f"Please provide a {field} first.")
        self.field = field

    @property
    def suggests_credential_update(self) -> bool:
        return self.field == "credential"


class HttpFailure(GenerationError):
    kind = ErrorKind.HTTP_FAILURE

    def __init__(self, status_code: int, provider_message: Optional[str] = None):
        message = f"API request failed with status {status_code}."
        if provider_message:
            message = f"{message} {provider_message}"
        super().__init__(message)
        self.status_code = status_code
        self.provider_message = provider_message


class InvalidCredential(GenerationError):
    kind = ErrorKind.INVALID_CREDENTIAL

    def __init__(
        self, status_code: Optional[int] = None, provider_message: Optional[str] = None
    ):
        message = "The API key is invalid or has expired."
        if status_code is not None:
            message = f"{message} (status {status_code})"
        if provider_message:
            message = f"{message} {provider_message}"
        super().__init__(message)
        self.status_code = status_code
        self.provider_message = provider_message

    @property
    def suggests_credential_update(self) -> bool:
        return True


class SafetyBlocked(GenerationError):
    kind = ErrorKind.SAFETY_BLOCKED

    def __init__(self, block_reason: str):
        super().__init__(
            f"Content was blocked due to safety concerns ({block_reason}). "
            "Please adjust your prompt and try again."
        )
        self.block_reason = block_reason


class ParseFailure(GenerationError):
    kind = ErrorKind.PARSE_FAILURE

    def __init__(self, message: str = "Could not parse the generated content from the API response."):
        super().__init__(message)


class TransportFailure(GenerationError):
    kind = ErrorKind.TRANSPORT_FAILURE
