from fastapi import APIRouter, Depends

from authflow.api.auth import require_admin
from authflow.core.flows import flow_names
from authflow.store.session_registry import SessionRegistry, get_registry
import authflow.observability.metrics as metrics

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/sessions")
def list_sessions(_=Depends(require_admin), registry: SessionRegistry = Depends(get_registry)):
    """Live sessions, without identifiers or codes."""
    out = []
    for wf in registry.list():
        s = wf.session
        out.append({
            "sessionId": s.sessionId,
            "flow": s.flow,
            "step": s.step,
            "processing": s.busy,
            "secondsRemaining": wf.seconds_remaining,
            "hasError": s.lastError is not None,
            "createdAtMs": s.createdAtMs,
            "updatedAtMs": s.updatedAtMs,
        })
    return {"count": len(out), "sessions": out}


@router.get("/metrics")
def get_metrics(_=Depends(require_admin)):
    """Per-flow action counters backed by Redis."""
    return metrics.get_snapshot(flow_names())
