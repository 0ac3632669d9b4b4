from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field

Step = Literal["COLLECT_IDENTIFIER", "AWAIT_CODE", "COLLECT_SECRET", "COMPLETED"]


class OpenSessionRequest(BaseModel):
    # Known up front for verify-email (signed-in account); typed later for resets
    identifier: Optional[str] = None
    # Role of the signed-in account; admins are sent to the admin console once verified
    accountRole: Optional[str] = None


class IdentifierRequest(BaseModel):
    identifier: str = ""


class CellRequest(BaseModel):
    value: str = ""


class PasteRequest(BaseModel):
    text: str = ""


class SecretRequest(BaseModel):
    secret: str = ""
    confirmation: str = ""


class CodeView(BaseModel):
    cells: List[str]
    focus: int
    complete: bool


class NoticeView(BaseModel):
    level: Literal["success", "error"]
    message: str
    ts: int


class SessionView(BaseModel):
    sessionId: str
    flow: str
    step: Step
    stepNumber: int
    totalSteps: int
    identifier: str
    code: CodeView
    secondsRemaining: int
    canResend: bool
    inFlight: Dict[str, bool]
    processing: bool
    lastError: Optional[str] = None
    fieldErrors: Dict[str, str] = Field(default_factory=dict)
    notices: List[NoticeView] = Field(default_factory=list)
    redirectTo: Optional[str] = None
    # True when the call that produced this view moved or accepted input
    accepted: bool = True
