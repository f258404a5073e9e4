"""Event classification: OOM kills, GitOps reconciliation events and generic warnings."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from cluster_health.analysis.models import (
    EventRecord,
    OOMAnalysis,
    OOMEvent,
    ReconciliationEventAnalysis,
    TimeWindow,
    WarningEventAnalysis,
)
from cluster_health.observation.models import EventDescriptor

logger = logging.getLogger(__name__)

FLUX_KINDS = frozenset({"kustomization", "helmrelease"})
OOM_MARKER = "OOMKilled"

_WINDOWS = (TimeWindow.LAST_24H, TimeWindow.LAST_48H)


def is_reconciliation_event(event: EventDescriptor) -> bool:
    """True for events emitted by or about Flux (source, kind, or fluxcd API group)."""
    return (
        "flux" in event.source_component.lower()
        or event.involved_kind.lower() in FLUX_KINDS
        or "fluxcd" in event.involved_api_version.lower()
    )


def is_oom_event(event: EventDescriptor) -> bool:
    return OOM_MARKER in event.reason or OOM_MARKER in event.message


def _record(event: EventDescriptor, window: TimeWindow) -> EventRecord:
    return EventRecord(
        window=window,
        type=event.type,
        reason=event.reason,
        message=event.message,
        namespace=event.namespace,
        involved_object=event.involved_object,
        count=event.count,
        first_seen=event.first_seen,
        last_seen=event.last_seen,
    )


def _windowed(events: list[EventDescriptor], window: TimeWindow, now: datetime) -> list[EventRecord]:
    records = [_record(e, window) for e in events if window.contains(e.last_seen, now)]
    records.sort(key=lambda r: r.last_seen, reverse=True)
    return records


def _timestamped(events: Iterable[EventDescriptor]) -> list[EventDescriptor]:
    out = []
    for e in events:
        if e.last_seen is None:
            logger.debug("Event %s %s has no last-seen time; excluded from windows", e.reason, e.involved_object)
            continue
        out.append(e)
    return out


def classify_reconciliation_events(
    events: Iterable[EventDescriptor], now: datetime
) -> ReconciliationEventAnalysis:
    """Window Flux-tagged events into 24h/48h, counting warnings and errors."""
    flux = _timestamped(e for e in events if is_reconciliation_event(e))
    last_24h, last_48h = (_windowed(flux, w, now) for w in _WINDOWS)
    return ReconciliationEventAnalysis(
        last_24h=tuple(last_24h),
        last_48h=tuple(last_48h),
        warnings_24h=sum(1 for r in last_24h if r.type == "Warning"),
        warnings_48h=sum(1 for r in last_48h if r.type == "Warning"),
        errors_24h=sum(1 for r in last_24h if r.type == "Error"),
        errors_48h=sum(1 for r in last_48h if r.type == "Error"),
    )


def classify_warning_events(events: Iterable[EventDescriptor], now: datetime) -> WarningEventAnalysis:
    """Window non-Flux Warning events into 24h/48h."""
    warnings = _timestamped(e for e in events if e.type == "Warning" and not is_reconciliation_event(e))
    last_24h, last_48h = (_windowed(warnings, w, now) for w in _WINDOWS)
    return WarningEventAnalysis(
        last_24h=tuple(last_24h),
        last_48h=tuple(last_48h),
        warnings_24h=len(last_24h),
        warnings_48h=len(last_48h),
    )


def extract_oom_events(events: Iterable[EventDescriptor], now: datetime) -> OOMAnalysis:
    """Pull every OOMKilled event, Flux-tagged or not, newest first."""
    ooms = [
        OOMEvent(
            node=e.source_host,
            namespace=e.involved_namespace or e.namespace,
            pod=e.involved_name,
            container=e.involved_field_path,
            timestamp=e.last_seen,
            reason=e.reason,
        )
        for e in events
        if is_oom_event(e)
    ]
    dated = sorted((o for o in ooms if o.timestamp is not None), key=lambda o: o.timestamp, reverse=True)
    undated = [o for o in ooms if o.timestamp is None]
    return OOMAnalysis(
        events=tuple(dated + undated),
        last_24h=tuple(o for o in dated if TimeWindow.LAST_24H.contains(o.timestamp, now)),
        last_48h=tuple(o for o in dated if TimeWindow.LAST_48H.contains(o.timestamp, now)),
    )
