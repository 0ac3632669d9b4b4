import asyncio
from unittest.mock import patch

import pytest

from authflow.core.errors import VerificationResult
from authflow.core.flows import EMAIL_VERIFY, PASSWORD_RESET
from authflow.core.workflow import Workflow
from authflow.settings import settings


class _Handle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualClock:
    """Clock and scheduler in one; time only moves on advance()."""

    def __init__(self, start: float = 1000.0):
        self.now = float(start)
        self.pending = []

    def __call__(self) -> float:
        return self.now

    def call_later(self, delay, callback):
        h = _Handle(self.now + delay, callback)
        self.pending.append(h)
        return h

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if not h.cancelled and h.when <= target]
            if not due:
                break
            h = min(due, key=lambda x: x.when)
            self.pending.remove(h)
            self.now = h.when
            h.callback()
        self.now = target

    def live_handles(self):
        return [h for h in self.pending if not h.cancelled]


class FakeVerificationClient:
    """Scripted stand-in for VerificationClient; unscripted calls succeed."""

    def __init__(self):
        self.calls = []
        self.results = {"send": [], "confirm": [], "finalize": []}
        self.gates = {}
        self.closed = False

    def script(self, action, *results):
        self.results[action].extend(results)

    def hold(self, action):
        """Blocks `action` until release(action); the Event is created lazily inside the loop."""
        self.gates[action] = None

    def release(self, action):
        gate = self.gates.pop(action, None)
        if gate is not None:
            gate.set()

    def count(self, action):
        return sum(1 for c in self.calls if c[0] == action)

    async def send_code(self, flow, identifier):
        return await self._reply("send", identifier)

    async def confirm_code(self, flow, identifier, code):
        return await self._reply("confirm", identifier, code)

    async def finalize(self, flow, identifier, code, new_secret):
        return await self._reply("finalize", identifier, code, new_secret)

    async def aclose(self):
        self.closed = True

    async def _reply(self, action, *args):
        self.calls.append((action,) + args)
        if action in self.gates:
            if self.gates[action] is None:
                self.gates[action] = asyncio.Event()
            await self.gates[action].wait()
        queue = self.results[action]
        return queue.pop(0) if queue else VerificationResult.ok()


@pytest.fixture(autouse=True)
def no_metrics():
    with patch.object(settings, "METRICS_ENABLED", False):
        yield


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def client():
    return FakeVerificationClient()


@pytest.fixture
def make_client():
    return FakeVerificationClient


@pytest.fixture
def make_workflow(clock, client):
    def _make(flow=PASSWORD_RESET, **kw):
        return Workflow(flow, client, clock=clock, scheduler=clock, **kw)
    return _make


@pytest.fixture
def reset_wf(make_workflow):
    return make_workflow(PASSWORD_RESET)


@pytest.fixture
def verify_wf(make_workflow):
    return make_workflow(EMAIL_VERIFY)
