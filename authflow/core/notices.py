# User-facing notice texts, kept in one place so the workflow only picks keys.
from dataclasses import dataclass, asdict

SUCCESS = "success"
ERROR = "error"

CODE_RESENT = "New OTP sent to your email"
SEND_FAILED = "Failed to send OTP. Please try again."
RESEND_FAILED = "Failed to resend OTP"
INVALID_CODE = "Invalid verification code. Please check and try again."
CODE_EXPIRED = "Verification code has expired. Please request a new one."
CONFIRM_FAILED = "Verification failed"
FINALIZE_FAILED = "Failed to reset password"


@dataclass
class Notice:
    level: str
    message: str
    ts: int

    def to_dict(self) -> dict:
        return asdict(self)
