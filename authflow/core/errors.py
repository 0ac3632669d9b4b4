from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Failure kinds reported across the verification-service boundary."""

    INVALID_CODE = "INVALID_CODE"    # correctable: one step back, buffer cleared
    CODE_EXPIRED = "CODE_EXPIRED"    # session invalid: reset to identifier entry
    TRANSIENT = "TRANSIENT"          # network / unknown: no transition, retry allowed


# Server reply texts that carry a distinguished meaning.
# Matching happens here only; the state machine sees ErrorKind.
_SERVER_MESSAGES = {
    "invalid otp": ErrorKind.INVALID_CODE,
    "otp expired": ErrorKind.CODE_EXPIRED,
}


def classify_message(message: Optional[str]) -> ErrorKind:
    return _SERVER_MESSAGES.get((message or "").strip().lower(), ErrorKind.TRANSIENT)


def parse_error_kind(raw) -> Optional[ErrorKind]:
    """Accepts an explicit errorKind field ('InvalidCode', 'INVALID_CODE', ...)."""
    if not isinstance(raw, str) or not raw.strip():
        return None
    norm = raw.strip().replace("_", "").replace("-", "").lower()
    for kind in ErrorKind:
        if kind.value.replace("_", "").lower() == norm:
            return kind
    return None


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    error_kind: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def ok(cls, message: str = "") -> "VerificationResult":
        return cls(success=True, message=message)

    @classmethod
    def failed(cls, kind: ErrorKind, message: str = "") -> "VerificationResult":
        return cls(success=False, error_kind=kind, message=message)
