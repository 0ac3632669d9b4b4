"""
Flow descriptors
----------------
The storefront "forgot password", the admin console "forgot password" and the
storefront "verify email" screens run the same workflow. They differ only in
the fields below, so each is described by one FlowDescriptor rather than a
separate controller.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from authflow.settings import settings
from authflow.core import state_machine as sm


@dataclass(frozen=True)
class FlowDescriptor:
    name: str
    has_secret_step: bool
    send_path: str
    # confirm endpoint for verification flows, finalize endpoint for recovery flows
    complete_path: str
    code_length: int = field(default_factory=lambda: settings.CODE_LENGTH)
    cooldown_seconds: int = field(default_factory=lambda: settings.COOLDOWN_SECONDS)
    min_secret_length: int = field(default_factory=lambda: settings.MIN_SECRET_LENGTH)
    # verify-email is opened for a signed-in account whose address is known
    auto_send: bool = False
    # the account cookie identifies the user instead of the request body
    requires_account_cookie: bool = False
    redirect_to: str = "/"
    # where admin-role accounts land instead (verify-email hands admins to the console)
    admin_redirect_to: Optional[str] = None
    sent_notice: str = "OTP sent to your email"
    completed_notice: str = "Done"

    def redirect_for(self, account_role: Optional[str] = None) -> str:
        if account_role == "admin" and self.admin_redirect_to:
            return self.admin_redirect_to
        return self.redirect_to

    @property
    def steps(self) -> tuple:
        return sm.steps_for(self.has_secret_step)

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "hasSecretStep": self.has_secret_step,
            "codeLength": self.code_length,
            "cooldownSeconds": self.cooldown_seconds,
            "minSecretLength": self.min_secret_length,
            "steps": list(self.steps),
            "autoSend": self.auto_send,
        }


PASSWORD_RESET = FlowDescriptor(
    name="password_reset",
    has_secret_step=True,
    send_path="/auth/sendResetPasswordEmail",
    complete_path="/auth/resetPassword",
    redirect_to="/login",
    completed_notice="Password reset successfully",
)

ADMIN_PASSWORD_RESET = FlowDescriptor(
    name="admin_password_reset",
    has_secret_step=True,
    send_path="/auth/sendResetPasswordEmail",
    complete_path="/auth/resetPassword",
    redirect_to="/login",
    completed_notice="Password reset successfully",
)

EMAIL_VERIFY = FlowDescriptor(
    name="email_verify",
    has_secret_step=False,
    send_path="/auth/sendVerificationEmail",
    complete_path="/auth/verifyAccount",
    auto_send=True,
    requires_account_cookie=True,
    redirect_to="/",
    admin_redirect_to=settings.ADMIN_CONSOLE_URL,
    sent_notice="Verification code sent to your email",
    completed_notice="Email verified successfully!",
)

FLOWS: Dict[str, FlowDescriptor] = {
    f.name: f for f in (PASSWORD_RESET, ADMIN_PASSWORD_RESET, EMAIL_VERIFY)
}


def get_flow(name: str) -> FlowDescriptor:
    try:
        return FLOWS[name]
    except KeyError:
        raise KeyError(f"Unknown flow: {name}") from None


def flow_names() -> List[str]:
    return list(FLOWS.keys())
