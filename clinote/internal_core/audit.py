from __future__ import annotations

import datetime as _dt
from typing import List

from .contracts import AuditEvent, AuditEventType

_MAX_DETAIL_CHARS = 160


def _ts_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _compact_detail(detail: str) -> str:
    # Callers pass titles, counts and codes only; note content stays out of the trail.
    compact = " ".join((detail or "").split())
    if len(compact) > _MAX_DETAIL_CHARS:
        compact = compact[: _MAX_DETAIL_CHARS - 3].rstrip() + "..."
    return compact


def log_event(
    trail: List[AuditEvent],
    session_id: str,
    event_type: AuditEventType,
    code: str,
    detail: str,
) -> AuditEvent:
    event = AuditEvent(
        ts_iso=_ts_iso(),
        session_id=session_id,
        type=event_type,
        code=code,
        detail=_compact_detail(detail),
    )
    trail.append(event)
    return event
