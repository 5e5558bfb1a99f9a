"""
Network Metrics
---------------
Lightweight Redis counters for communications and payments plus a single
snapshot consumed by /admin/stats. Recording is best-effort: it is a no-op
unless METRICS_ENABLED, and a Redis outage never fails a network operation.
"""
from __future__ import annotations
import time
from typing import List, Tuple
from telco.store.redis_conn import get_redis
from telco.settings import settings
from telco.observability.logging import log

_MAX_SAMPLES = 500  # cap to bound percentile computation cost


def _k(*parts: str) -> str:
    return ":".join((settings.METRICS_PREFIX,) + parts)


def _percentile(data: List[float], p: float) -> float:
    """Deterministic percentile (nearest-rank on sorted data)."""
    if not data:
        return 0.0
    d = sorted(data)
    k = max(1, int(round(p * len(d))))
    return float(d[k - 1])


def _now_s() -> int:
    return int(time.time())


def _best_effort(fn, *args) -> None:
    if not settings.METRICS_ENABLED:
        return
    try:
        fn(*args)
    except Exception as e:
        log(event="metrics_write_failed", metric=getattr(fn, "__name__", "?"), error=str(e))


def _incr_started(kind: str) -> None:
    r = get_redis()
    r.incr(_k("communications", "started", kind), 1)


def _incr_finished(kind: str, units: int) -> None:
    r = get_redis()
    r.incr(_k("communications", "finished", kind), 1)
    if kind != "TEXT":
        r.lpush(_k("durations"), int(units))
        r.ltrim(_k("durations"), 0, _MAX_SAMPLES - 1)


def _incr_rejected(code: str) -> None:
    r = get_redis()
    r.incr(_k("rejections", code), 1)


def _incr_payment(amount: float) -> None:
    r = get_redis()
    r.incr(_k("payments", "count"), 1)
    r.incrbyfloat(_k("payments", "amount"), float(amount))


def record_communication_started(kind: str) -> None:
    _best_effort(_incr_started, kind)


def record_communication_finished(kind: str, units: int) -> None:
    _best_effort(_incr_finished, kind, units)


def record_rejection(code: str) -> None:
    _best_effort(_incr_rejected, code)


def record_payment(amount: float) -> None:
    _best_effort(_incr_payment, amount)


def _read_durations() -> List[float]:
    r = get_redis()
    raw = r.lrange(_k("durations"), 0, _MAX_SAMPLES - 1) or []
    out: List[float] = []
    for x in raw:
        try:
            out.append(float(x))
        except (TypeError, ValueError):
            continue
    return out


def _p50_p95(values: List[float]) -> Tuple[float, float]:
    if not values:
        return 0.0, 0.0
    return _percentile(values, 0.50), _percentile(values, 0.95)


def get_stats_snapshot() -> dict:
    """
    Shape consumed by /admin/stats. Counters are keyed by communication kind
    (TEXT/VOICE/VIDEO) and by refusal code (target_off, target_busy, ...).
    """
    if not settings.METRICS_ENABLED:
        return {"enabled": False, "snapshot_at": _now_s()}

    r = get_redis()
    kinds = ("TEXT", "VOICE", "VIDEO")
    codes = ("target_off", "target_busy", "target_silent", "invalid_state", "unsupported_communication")

    started = {k: int(r.get(_k("communications", "started", k)) or 0) for k in kinds}
    finished = {k: int(r.get(_k("communications", "finished", k)) or 0) for k in kinds}
    rejected = {c: int(r.get(_k("rejections", c)) or 0) for c in codes}
    p50, p95 = _p50_p95(_read_durations())

    return {
        "enabled": True,
        "communications_started": started,
        "communications_finished": finished,
        "rejections": rejected,
        "payments_count": int(r.get(_k("payments", "count")) or 0),
        "payments_amount": round(float(r.get(_k("payments", "amount")) or 0.0), 3),
        "p50_interactive_duration": round(p50, 3),
        "p95_interactive_duration": round(p95, 3),
        "snapshot_at": _now_s(),
    }
