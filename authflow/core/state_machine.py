# Workflow step constants and the legal transitions between them.

# Screen: identifier (email) entry
# Network action on submit: send code
COLLECT_IDENTIFIER = "COLLECT_IDENTIFIER"

# Screen: one-time code entry, resend control, "change email"
# Network action on submit: confirm code (verification flows only)
AWAIT_CODE = "AWAIT_CODE"

# Screen: new password + confirmation (recovery flows only)
# Network action on submit: finalize (code + new secret in one request)
COLLECT_SECRET = "COLLECT_SECRET"

# Terminal state; a new session is required to retry
COMPLETED = "COMPLETED"


# Transitions shared by both flow shapes
_COMMON = {
    (COLLECT_IDENTIFIER, AWAIT_CODE),    # code sent
    (AWAIT_CODE, COLLECT_IDENTIFIER),    # change identifier / expired code
}

# Verification-only: code is confirmed directly on the code screen
_VERIFICATION = _COMMON | {
    (AWAIT_CODE, COMPLETED),
}

# Recovery: code is carried to the secret screen and confirmed by finalize
_RECOVERY = _COMMON | {
    (AWAIT_CODE, COLLECT_SECRET),
    (COLLECT_SECRET, COMPLETED),
    (COLLECT_SECRET, AWAIT_CODE),           # invalid code
    (COLLECT_SECRET, COLLECT_IDENTIFIER),   # expired code
}


def steps_for(has_secret_step: bool) -> tuple:
    if has_secret_step:
        return (COLLECT_IDENTIFIER, AWAIT_CODE, COLLECT_SECRET, COMPLETED)
    return (COLLECT_IDENTIFIER, AWAIT_CODE, COMPLETED)


def can_transition(src: str, dst: str, has_secret_step: bool) -> bool:
    table = _RECOVERY if has_secret_step else _VERIFICATION
    return (src, dst) in table


def is_terminal(step: str) -> bool:
    return step == COMPLETED
