from dataclasses import dataclass, field
from typing import Dict, List, Optional

from authflow.core import state_machine as sm
from authflow.core.code_buffer import CodeBuffer
from authflow.core.notices import Notice

# Network actions tracked by inFlight
SEND = "send"
CONFIRM = "confirm"
FINALIZE = "finalize"


def _idle_actions() -> Dict[str, bool]:
    return {SEND: False, CONFIRM: False, FINALIZE: False}


@dataclass
class WorkflowSession:
    # Core identifiers
    sessionId: str = ""
    flow: str = ""

    # Step (see core.state_machine)
    step: str = sm.COLLECT_IDENTIFIER

    # Identifier draft while in COLLECT_IDENTIFIER, frozen afterwards
    identifier: str = ""

    # Signed-in account role, when the screen is opened for one
    accountRole: Optional[str] = None

    # One-time code cells
    code: CodeBuffer = field(default_factory=CodeBuffer)

    # COLLECT_SECRET only
    pendingSecret: str = ""
    pendingSecretConfirmation: str = ""

    # At most one True at a time
    inFlight: Dict[str, bool] = field(default_factory=_idle_actions)

    # Surfaced failures
    lastError: Optional[str] = None
    fieldErrors: Dict[str, str] = field(default_factory=dict)
    notices: List[Notice] = field(default_factory=list)

    # Lifecycle (epoch ms)
    createdAtMs: int = 0
    updatedAtMs: int = 0
    completedAtMs: Optional[int] = None

    @property
    def busy(self) -> bool:
        return any(self.inFlight.values())

    def clear_secrets(self) -> None:
        self.pendingSecret = ""
        self.pendingSecretConfirmation = ""
