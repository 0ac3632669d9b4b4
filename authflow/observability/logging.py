import json
import time
from authflow.settings import settings

# Never written verbatim when PII redaction is enabled
SENSITIVE_KEYS = {"code", "otp", "secret", "newSecret", "newPassword", "confirmation", "cookie"}
# Written masked (first character of the local part + domain)
MASKED_KEYS = {"identifier", "email"}

def _redact_value(v):
    if isinstance(v, str) and len(v) > 0:
        return f"[REDACTED:{len(v)}chars]"
    if isinstance(v, dict):
        return {k: _redact_value(val) for k, val in v.items()}
    return v

def mask_identifier(v):
    if not isinstance(v, str) or not v:
        return v
    local, sep, domain = v.partition("@")
    if not sep:
        return _redact_value(v)
    return f"{local[:1]}***@{domain}"

def _clean(k, v):
    if k in SENSITIVE_KEYS:
        return _redact_value(v)
    if k in MASKED_KEYS:
        return mask_identifier(v)
    if isinstance(v, dict):
        return {sk: _clean(sk, sv) for sk, sv in v.items()}
    return v

def log(event: str, **fields):
    payload = {"ts": int(time.time()), "event": event}

    if settings.ENABLE_PII_REDACTION:
        payload.update({k: _clean(k, v) for k, v in fields.items()})
    else:
        payload.update(fields)

    print(json.dumps(payload, ensure_ascii=False))
