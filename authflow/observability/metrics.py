"""
Workflow Metrics
----------------
Redis-backed counters for the verification workflow, read back by /admin/metrics.

Every writer is best-effort: a metrics failure is logged and never reaches the
workflow, because the user-visible flow must not depend on Redis availability.
"""
from __future__ import annotations
import asyncio
import time
from typing import Dict, List, Tuple
from authflow.store.redis_conn import get_redis
from authflow.settings import settings
from authflow.observability.logging import log

# Keys
#   metrics:flow:<flow>:<action>:<outcome>   INCR
#   metrics:flow:<flow>:<action>:latencies   LPUSH ms
#   metrics:flow:<flow>:completed            INCR
K_PREFIX = "metrics:flow"

ACTIONS = ("send", "confirm", "finalize")

_MAX_SAMPLES = 500

def _k(*parts: str) -> str:
    return ":".join((K_PREFIX,) + tuple(str(p) for p in parts))

def _percentile(data: List[float], p: float) -> float:
    """Deterministic percentile (nearest-rank on sorted data)."""
    if not data:
        return 0.0
    d = sorted(data)
    k = max(1, int(round(p * len(d))))
    return float(d[k - 1])

def _now_s() -> int:
    return int(time.time())

def in_background(writer, *args) -> None:
    """
    Runs a metrics writer on the default executor so a slow Redis never
    blocks the event loop. Called outside a loop, it writes inline.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        writer(*args)
        return
    loop.run_in_executor(None, writer, *args)

def record_action(flow: str, action: str, outcome: str, latency_ms: int) -> None:
    """outcome is 'ok' or an ErrorKind value."""
    if not settings.METRICS_ENABLED:
        return
    try:
        r = get_redis()
        r.incr(_k(flow, action, outcome), 1)
        r.lpush(_k(flow, action, "latencies"), int(latency_ms))
        r.ltrim(_k(flow, action, "latencies"), 0, _MAX_SAMPLES - 1)
    except Exception as e:
        log(event="metrics_write_failed", flow=flow, action=action, error=str(e)[:200])

def increment_completed(flow: str) -> None:
    if not settings.METRICS_ENABLED:
        return
    try:
        get_redis().incr(_k(flow, "completed"), 1)
    except Exception as e:
        log(event="metrics_write_failed", flow=flow, action="completed", error=str(e)[:200])

def _read_latencies(r, key: str) -> List[float]:
    out: List[float] = []
    for x in r.lrange(key, 0, _MAX_SAMPLES - 1) or []:
        try:
            out.append(float(x))
        except (TypeError, ValueError):
            continue
    return out

def _p50_p95(latencies: List[float]) -> Tuple[float, float]:
    if not latencies:
        return 0.0, 0.0
    return _percentile(latencies, 0.50), _percentile(latencies, 0.95)

def get_snapshot(flows: List[str]) -> Dict:
    """
    Per flow, per action: outcome counters and p50/p95 latency (ms).
    Shape:
      {"flows": {"<flow>": {"completed": n, "actions": {"send": {...}}}}, "snapshot_at": s}
    """
    r = get_redis()
    out: Dict[str, Dict] = {}
    for flow in flows:
        actions = {}
        for action in ACTIONS:
            outcomes = {}
            for key in r.scan_iter(match=_k(flow, action, "*")):
                outcome = key.rsplit(":", 1)[-1]
                if outcome == "latencies":
                    continue
                outcomes[outcome] = int(r.get(key) or 0)
            p50, p95 = _p50_p95(_read_latencies(r, _k(flow, action, "latencies")))
            actions[action] = {
                "attempts": sum(outcomes.values()),
                "outcomes": outcomes,
                "p50_latency_ms": round(p50, 3),
                "p95_latency_ms": round(p95, 3),
            }
        out[flow] = {
            "completed": int(r.get(_k(flow, "completed")) or 0),
            "actions": actions,
        }
    return {"flows": out, "snapshot_at": _now_s()}
