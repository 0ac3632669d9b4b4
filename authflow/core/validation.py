import re
from typing import Dict

from authflow.core.code_buffer import CodeBuffer

# local@domain.tld, same looseness as the storefront forms
_IDENTIFIER_RE = re.compile(r"^\S+@\S+\.\S+$")


def is_valid_identifier(s: str) -> bool:
    if not isinstance(s, str):
        return False
    s = s.strip()
    return bool(s) and bool(_IDENTIFIER_RE.match(s))


def is_complete_code(buffer: CodeBuffer) -> bool:
    return buffer.is_complete()


def is_valid_new_secret(secret: str, confirmation: str, min_length: int = 8) -> bool:
    if not isinstance(secret, str) or not isinstance(confirmation, str):
        return False
    return len(secret) >= min_length and secret == confirmation


# ---------------------------------------------------------------------------
# Field-error maps (rendered next to the offending input; empty map == valid)
# ---------------------------------------------------------------------------

def validate_identifier(s: str) -> Dict[str, str]:
    if not isinstance(s, str) or not s.strip():
        return {"identifier": "Please enter your email address"}
    if not is_valid_identifier(s):
        return {"identifier": "Please enter a valid email address"}
    return {}


def validate_code(buffer: CodeBuffer) -> Dict[str, str]:
    if not is_complete_code(buffer):
        return {"code": f"Please enter a complete {buffer.length}-digit OTP"}
    return {}


def validate_new_secret(secret: str, confirmation: str, min_length: int = 8) -> Dict[str, str]:
    if not secret:
        return {"secret": "Please enter a new password"}
    if len(secret) < min_length:
        return {"secret": f"Password must be at least {min_length} characters long"}
    if secret != confirmation:
        return {"confirmation": "Passwords do not match"}
    return {}
