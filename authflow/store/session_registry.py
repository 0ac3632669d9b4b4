"""
Live workflow sessions, one per open screen.

Sessions hold timers and in-flight calls, so they live in process memory and
are never shared between screens. A session is discarded when its screen is
closed, once a COMPLETED view has been handed out, or when it sits idle for
longer than SESSION_IDLE_TTL_SEC.
"""
from typing import Callable, Dict, List, Optional

from authflow.settings import settings
from authflow.client.verification_client import VerificationClient
from authflow.core.flows import FlowDescriptor, get_flow
from authflow.core.workflow import Workflow
from authflow.observability.logging import log
from authflow.utils.time import now_ms


def default_client_factory(flow: FlowDescriptor, account_token: Optional[str] = None) -> VerificationClient:
    cookies = {}
    if flow.requires_account_cookie and account_token:
        cookies[settings.AUTH_COOKIE_NAME] = account_token
    return VerificationClient(cookies=cookies)


class SessionRegistry:
    def __init__(
        self,
        client_factory: Optional[Callable[..., object]] = None,
        clock: Optional[Callable[[], float]] = None,
        scheduler=None,
    ):
        self._client_factory = client_factory or default_client_factory
        self._clock = clock
        self._scheduler = scheduler
        self._sessions: Dict[str, Workflow] = {}

    async def open(
        self,
        flow_name: str,
        identifier: str = "",
        account_token: Optional[str] = None,
        account_role: Optional[str] = None,
    ) -> Workflow:
        flow = get_flow(flow_name)
        await self.sweep()
        wf = Workflow(
            flow,
            self._client_factory(flow, account_token),
            identifier=identifier or "",
            account_role=account_role,
            clock=self._clock,
            scheduler=self._scheduler,
        )
        self._sessions[wf.session.sessionId] = wf
        log(event="session_opened", sessionId=wf.session.sessionId, flow=flow.name)
        return wf

    async def get(self, session_id: str) -> Workflow:
        await self.sweep()
        return self._sessions[session_id]

    async def discard(self, session_id: str) -> bool:
        wf = self._sessions.pop(session_id, None)
        if wf is None:
            return False
        wf.dispose()
        aclose = getattr(wf.client, "aclose", None)
        if aclose is not None:
            await aclose()
        log(event="session_discarded", sessionId=session_id, flow=wf.flow.name, step=wf.step)
        return True

    async def sweep(self) -> List[str]:
        """Discards idle sessions (closing their HTTP clients). A session with a call in flight is kept."""
        ttl_ms = int(settings.SESSION_IDLE_TTL_SEC) * 1000
        if ttl_ms <= 0:
            return []
        cutoff = now_ms() - ttl_ms
        stale = [
            sid for sid, wf in self._sessions.items()
            if wf.session.updatedAtMs < cutoff and not wf.session.busy
        ]
        for sid in stale:
            await self.discard(sid)
        if stale:
            log(event="sessions_swept", count=len(stale))
        return stale

    def list(self) -> List[Workflow]:
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)


_registry: Optional[SessionRegistry] = None


def get_registry() -> SessionRegistry:
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry
