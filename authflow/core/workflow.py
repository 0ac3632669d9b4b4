"""
Verification Workflow
---------------------
One Workflow drives one open recovery/verification screen:

    COLLECT_IDENTIFIER --send ok--> AWAIT_CODE --code ok--> [COLLECT_SECRET] --> COMPLETED

Shape (two or three input steps), code length and cooldown come from the
FlowDescriptor. UI events arrive as method calls; the async ones are the only
suspension points and each resolves to True when it moved the session forward.

INVARIANTS
- At most one network action is in flight; a request for another while one is
  outstanding is a no-op.
- A transition is applied only after the call that triggers it resolved.
- Every step change bumps an epoch. A response issued under an older epoch, or
  after dispose(), is discarded and never applied.
- Local validation failures only fill fieldErrors: no network call, no step change.
- INVALID_CODE moves one step back (buffer cleared); CODE_EXPIRED resets to
  identifier entry (buffer and timer cleared); anything else keeps the step.
"""
from __future__ import annotations

import uuid
from typing import Callable, Optional

from authflow.settings import settings
from authflow.core import notices
from authflow.core import state_machine as sm
from authflow.core.code_buffer import CodeBuffer
from authflow.core.cooldown import CooldownTimer
from authflow.core.errors import ErrorKind, VerificationResult
from authflow.core.flows import FlowDescriptor
from authflow.core.validation import validate_code, validate_identifier, validate_new_secret
from authflow.store.models import CONFIRM, FINALIZE, SEND, WorkflowSession
from authflow.observability.logging import log
import authflow.observability.metrics as metrics
from authflow.utils.time import now_ms


class Workflow:
    def __init__(
        self,
        flow: FlowDescriptor,
        client,
        *,
        session_id: Optional[str] = None,
        identifier: str = "",
        account_role: Optional[str] = None,
        clock: Optional[Callable[[], float]] = None,
        scheduler=None,
        on_change: Optional[Callable[["Workflow"], None]] = None,
    ):
        self.flow = flow
        self.client = client
        ts = now_ms()
        self.session = WorkflowSession(
            sessionId=session_id or uuid.uuid4().hex,
            flow=flow.name,
            identifier=identifier or "",
            accountRole=account_role,
            code=CodeBuffer(flow.code_length),
            createdAtMs=ts,
            updatedAtMs=ts,
        )
        self.timer = CooldownTimer(
            clock=clock,
            scheduler=scheduler,
            on_tick=self._on_cooldown_tick,
            on_expire=self._on_cooldown_expired,
        )
        self._on_change = on_change
        self._epoch = 0
        self._disposed = False

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def step(self) -> str:
        return self.session.step

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def seconds_remaining(self) -> int:
        return self.timer.seconds_remaining

    @property
    def can_resend(self) -> bool:
        s = self.session
        return (
            not self._disposed
            and s.step == sm.AWAIT_CODE
            and not s.busy
            and self.timer.seconds_remaining == 0
        )

    def view(self, consume_notices: bool = False) -> dict:
        """Snapshot for rendering the current screen. Never includes secrets."""
        s = self.session
        steps = self.flow.steps
        out = {
            "sessionId": s.sessionId,
            "flow": s.flow,
            "step": s.step,
            "stepNumber": steps.index(s.step) + 1,
            "totalSteps": len(steps),
            "identifier": s.identifier,
            "code": {
                "cells": s.code.cells(),
                "focus": s.code.focus,
                "complete": s.code.is_complete(),
            },
            "secondsRemaining": self.timer.seconds_remaining,
            "canResend": self.can_resend,
            "inFlight": dict(s.inFlight),
            "processing": s.busy,
            "lastError": s.lastError,
            "fieldErrors": dict(s.fieldErrors),
            "notices": [n.to_dict() for n in s.notices],
            "redirectTo": self.flow.redirect_for(s.accountRole) if sm.is_terminal(s.step) else None,
        }
        if consume_notices:
            s.notices = []
        return out

    # ------------------------------------------------------------------
    # Input editing (synchronous, never touches the network)
    # ------------------------------------------------------------------
    def set_identifier(self, text: str) -> bool:
        s = self.session
        if self._disposed or s.step != sm.COLLECT_IDENTIFIER or s.inFlight[SEND]:
            return False
        s.identifier = text or ""
        s.fieldErrors.pop("identifier", None)
        self._touch()
        return True

    def type_digit(self, index: int, ch: str) -> bool:
        s = self.session
        if self._disposed or s.step != sm.AWAIT_CODE:
            return False
        if not s.code.set_cell(index, ch):
            return False
        s.fieldErrors.pop("code", None)
        self._touch()
        return True

    def backspace(self, index: int) -> bool:
        s = self.session
        if self._disposed or s.step != sm.AWAIT_CODE:
            return False
        cells = s.code.cells()
        if 0 <= index < len(cells) and cells[index]:
            changed = s.code.set_cell(index, "")
        else:
            changed = s.code.clear_cell_and_retreat(index)
        self._touch()
        return changed

    def paste_code(self, text: str) -> bool:
        s = self.session
        if self._disposed or s.step != sm.AWAIT_CODE:
            return False
        if not s.code.paste_bulk(text):
            return False
        s.fieldErrors.pop("code", None)
        self._touch()
        return True

    def set_secret(self, secret: str, confirmation: str) -> bool:
        s = self.session
        if self._disposed or s.step != sm.COLLECT_SECRET:
            return False
        s.pendingSecret = secret or ""
        s.pendingSecretConfirmation = confirmation or ""
        s.fieldErrors.pop("secret", None)
        s.fieldErrors.pop("confirmation", None)
        self._touch()
        return True

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    async def open(self) -> bool:
        """Screens with auto_send (verify email) send the code as soon as they open."""
        if self.flow.auto_send and self.session.identifier:
            return await self.submit_identifier()
        return False

    async def submit_identifier(self, identifier: Optional[str] = None) -> bool:
        s = self.session
        if self._disposed or s.step != sm.COLLECT_IDENTIFIER or s.busy:
            return False
        if identifier is not None:
            s.identifier = identifier

        errors = validate_identifier(s.identifier)
        if errors:
            s.fieldErrors = errors
            self._touch()
            return False

        sent_to = s.identifier.strip()
        s.identifier = sent_to
        s.fieldErrors = {}
        result = await self._call(SEND, self.client.send_code, sent_to)
        if result is None:
            return False
        if not result.success:
            self._fail(result.message or notices.SEND_FAILED)
            return False

        self._goto(sm.AWAIT_CODE)
        s.code.clear()
        self.timer.start(self.flow.cooldown_seconds)
        self._notify(notices.SUCCESS, self.flow.sent_notice)
        return True

    async def submit_code(self) -> bool:
        s = self.session
        if self._disposed or s.step != sm.AWAIT_CODE or s.busy:
            return False

        errors = validate_code(s.code)
        if errors:
            s.fieldErrors = errors
            self._touch()
            return False

        if self.flow.has_secret_step:
            # The code is checked by finalize together with the new secret.
            self._goto(sm.COLLECT_SECRET)
            return True

        result = await self._call(CONFIRM, self.client.confirm_code, s.identifier, s.code.value())
        if result is None:
            return False
        if result.success:
            self._complete()
            return True
        self._apply_failure(result, notices.CONFIRM_FAILED)
        return False

    async def resend_code(self) -> bool:
        s = self.session
        if not self.can_resend:
            return False

        result = await self._call(SEND, self.client.send_code, s.identifier)
        if result is None:
            return False
        if not result.success:
            self._fail(result.message or notices.RESEND_FAILED)
            return False

        self.timer.start(self.flow.cooldown_seconds)
        s.lastError = None
        self._notify(notices.SUCCESS, notices.CODE_RESENT)
        return True

    def change_identifier(self) -> bool:
        """Back to identifier entry. An outstanding response is discarded on arrival."""
        if self._disposed or self.session.step != sm.AWAIT_CODE:
            return False
        self._reset_to_start()
        return True

    async def submit_secret(self, secret: Optional[str] = None, confirmation: Optional[str] = None) -> bool:
        s = self.session
        if self._disposed or s.step != sm.COLLECT_SECRET or s.busy:
            return False
        if secret is not None:
            s.pendingSecret = secret
        if confirmation is not None:
            s.pendingSecretConfirmation = confirmation

        errors = validate_new_secret(s.pendingSecret, s.pendingSecretConfirmation, self.flow.min_secret_length)
        if errors:
            s.fieldErrors = errors
            self._touch()
            return False

        result = await self._call(
            FINALIZE, self.client.finalize, s.identifier, s.code.value(), s.pendingSecret
        )
        if result is None:
            return False
        if result.success:
            self._complete()
            return True
        self._apply_failure(result, notices.FINALIZE_FAILED)
        return False

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._epoch += 1
        self.timer.dispose()
        self.session.clear_secrets()
        log(event="workflow_disposed", sessionId=self.session.sessionId, flow=self.flow.name, step=self.session.step)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _call(self, action: str, fn, *args) -> Optional[VerificationResult]:
        """
        Runs one network action under the inFlight flag.
        Returns None when the response was superseded (step changed or disposed).
        """
        s = self.session
        epoch = self._epoch
        issued_step = s.step
        s.inFlight[action] = True
        self._touch()
        start = now_ms()
        try:
            result = await fn(self.flow, *args)
        except Exception as e:
            log(
                event="workflow_client_exception",
                sessionId=s.sessionId,
                flow=self.flow.name,
                action=action,
                errorType=type(e).__name__,
                error=str(e)[:300],
            )
            result = VerificationResult.failed(ErrorKind.TRANSIENT, "Something went wrong. Please try again.")
        finally:
            s.inFlight[action] = False

        if not result.success and result.error_kind is None:
            result = VerificationResult.failed(ErrorKind.TRANSIENT, result.message)

        metrics.in_background(
            metrics.record_action,
            self.flow.name,
            action,
            "ok" if result.success else result.error_kind.value,
            now_ms() - start,
        )

        if self._disposed or epoch != self._epoch:
            log(
                event="workflow_response_discarded",
                sessionId=s.sessionId,
                flow=self.flow.name,
                action=action,
                issuedStep=issued_step,
                currentStep=s.step,
                disposed=self._disposed,
            )
            return None

        self._touch()
        return result

    def _goto(self, step: str) -> None:
        s = self.session
        if not sm.can_transition(s.step, step, self.flow.has_secret_step):
            raise RuntimeError(f"Illegal transition {s.step} -> {step} for flow {self.flow.name}")
        log(event="workflow_transition", sessionId=s.sessionId, flow=self.flow.name, src=s.step, dst=step)
        if s.step == sm.COLLECT_SECRET:
            s.clear_secrets()
        s.step = step
        s.lastError = None
        s.fieldErrors = {}
        self._epoch += 1
        self._touch()

    def _reset_to_start(self) -> None:
        self._goto(sm.COLLECT_IDENTIFIER)
        self.session.code.clear()
        self.timer.reset()

    def _complete(self) -> None:
        s = self.session
        self._goto(sm.COMPLETED)
        s.completedAtMs = now_ms()
        self.timer.dispose()
        self._notify(notices.SUCCESS, self.flow.completed_notice)
        metrics.in_background(metrics.increment_completed, self.flow.name)

    def _apply_failure(self, result: VerificationResult, fallback: str) -> None:
        s = self.session
        if result.error_kind == ErrorKind.INVALID_CODE:
            if s.step != sm.AWAIT_CODE:
                self._goto(sm.AWAIT_CODE)
            s.code.clear()
            self._fail(notices.INVALID_CODE)
        elif result.error_kind == ErrorKind.CODE_EXPIRED:
            self._reset_to_start()
            self._fail(notices.CODE_EXPIRED)
        else:
            self._fail(result.message or fallback)

    def _fail(self, message: str) -> None:
        self.session.lastError = message
        self._notify(notices.ERROR, message)

    def _notify(self, level: str, message: str) -> None:
        s = self.session
        s.notices.append(notices.Notice(level=level, message=message, ts=now_ms()))
        limit = max(1, int(settings.MAX_NOTICES))
        if len(s.notices) > limit:
            s.notices = s.notices[-limit:]
        log(event="workflow_notice", sessionId=s.sessionId, flow=self.flow.name, level=level, notice=message)
        self._touch()

    def _touch(self) -> None:
        self.session.updatedAtMs = now_ms()
        if self._on_change is not None:
            self._on_change(self)

    def _on_cooldown_tick(self, remaining: int) -> None:
        # Countdown repaint only; expiry is reported by _on_cooldown_expired.
        if self._disposed or remaining <= 0 or self._on_change is None:
            return
        self._on_change(self)

    def _on_cooldown_expired(self) -> None:
        if self._disposed:
            return
        log(event="cooldown_expired", sessionId=self.session.sessionId, flow=self.flow.name)
        self._touch()
