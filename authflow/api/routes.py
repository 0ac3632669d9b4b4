from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from authflow.api.auth import require_api_key
from authflow.api.schemas import (
    CellRequest,
    IdentifierRequest,
    OpenSessionRequest,
    PasteRequest,
    SecretRequest,
    SessionView,
)
from authflow.core import state_machine as sm
from authflow.core.flows import FLOWS
from authflow.core.workflow import Workflow
from authflow.settings import settings
from authflow.store.session_registry import SessionRegistry, get_registry

router = APIRouter(dependencies=[Depends(require_api_key)])


def _account_token(request: Request) -> Optional[str]:
    # Same cookie names the storefront backend accepts
    return request.cookies.get("userToken") or request.cookies.get(settings.AUTH_COOKIE_NAME)


async def _workflow(registry: SessionRegistry, session_id: str) -> Workflow:
    try:
        return await registry.get(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Session not found")


async def _respond(registry: SessionRegistry, wf: Workflow, accepted: bool = True) -> SessionView:
    view = SessionView.model_validate({**wf.view(consume_notices=True), "accepted": bool(accepted)})
    # A completed session is shown once, then discarded.
    if sm.is_terminal(wf.step):
        await registry.discard(wf.session.sessionId)
    return view


@router.get("/flows")
def list_flows():
    return {"flows": [f.to_dict() for f in FLOWS.values()]}


@router.post("/flows/{flow_name}/sessions", response_model=SessionView)
async def open_session(
    flow_name: str,
    request: Request,
    body: Optional[OpenSessionRequest] = Body(None),
    registry: SessionRegistry = Depends(get_registry),
):
    if flow_name not in FLOWS:
        raise HTTPException(status_code=404, detail="Unknown flow")
    identifier = (body.identifier if body else None) or ""
    wf = await registry.open(
        flow_name,
        identifier=identifier,
        account_token=_account_token(request),
        account_role=body.accountRole if body else None,
    )
    # Only auto-send screens do any work on open
    accepted = await wf.open() if wf.flow.auto_send else True
    return await _respond(registry, wf, accepted)


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    wf = await _workflow(registry, session_id)
    return await _respond(registry, wf)


@router.post("/sessions/{session_id}/identifier", response_model=SessionView)
async def submit_identifier(
    session_id: str, body: IdentifierRequest, registry: SessionRegistry = Depends(get_registry)
):
    wf = await _workflow(registry, session_id)
    accepted = await wf.submit_identifier(body.identifier)
    return await _respond(registry, wf, accepted)


@router.put("/sessions/{session_id}/code/cells/{index}", response_model=SessionView)
async def set_cell(
    session_id: str, index: int, body: CellRequest, registry: SessionRegistry = Depends(get_registry)
):
    wf = await _workflow(registry, session_id)
    accepted = wf.type_digit(index, body.value)
    return await _respond(registry, wf, accepted)


@router.post("/sessions/{session_id}/code/cells/{index}/backspace", response_model=SessionView)
async def backspace_cell(session_id: str, index: int, registry: SessionRegistry = Depends(get_registry)):
    wf = await _workflow(registry, session_id)
    accepted = wf.backspace(index)
    return await _respond(registry, wf, accepted)


@router.post("/sessions/{session_id}/code/paste", response_model=SessionView)
async def paste_code(session_id: str, body: PasteRequest, registry: SessionRegistry = Depends(get_registry)):
    wf = await _workflow(registry, session_id)
    accepted = wf.paste_code(body.text)
    return await _respond(registry, wf, accepted)


@router.post("/sessions/{session_id}/code/submit", response_model=SessionView)
async def submit_code(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    wf = await _workflow(registry, session_id)
    accepted = await wf.submit_code()
    return await _respond(registry, wf, accepted)


@router.post("/sessions/{session_id}/code/resend", response_model=SessionView)
async def resend_code(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    wf = await _workflow(registry, session_id)
    accepted = await wf.resend_code()
    return await _respond(registry, wf, accepted)


@router.post("/sessions/{session_id}/change-identifier", response_model=SessionView)
async def change_identifier(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    wf = await _workflow(registry, session_id)
    accepted = wf.change_identifier()
    return await _respond(registry, wf, accepted)


@router.post("/sessions/{session_id}/secret", response_model=SessionView)
async def submit_secret(session_id: str, body: SecretRequest, registry: SessionRegistry = Depends(get_registry)):
    wf = await _workflow(registry, session_id)
    accepted = await wf.submit_secret(body.secret, body.confirmation)
    return await _respond(registry, wf, accepted)


@router.delete("/sessions/{session_id}")
async def close_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    if not await registry.discard(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"sessionId": session_id, "closed": True}
