"""Backup health from loosely-typed backup custom resources (velero.io/v1 Backup)."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from cluster_health.analysis.models import BackupAnalysis, BackupHealth, TimeWindow

logger = logging.getLogger(__name__)


_RFC3339 = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})[Tt](?P<time>\d{2}:\d{2}:\d{2})(?:\.(?P<frac>\d+))?(?P<offset>[Zz]|[+-]\d{2}:\d{2})",
    re.ASCII,
)


def parse_rfc3339(value: Any) -> datetime | None:
    """Parse an RFC3339 date-time; anything else yields None.

    Accepted: ``YYYY-MM-DDTHH:MM:SS[.fraction](Z|+HH:MM|-HH:MM)``, case-insensitive
    ``T``/``Z``. Fractions past microseconds are truncated. Leap seconds are rejected.
    """
    if not isinstance(value, str):
        return None
    match = _RFC3339.fullmatch(value.strip())
    if match is None:
        return None
    frac = (match["frac"] or "").ljust(6, "0")[:6]
    offset = "+00:00" if match["offset"] in ("Z", "z") else match["offset"]
    try:
        parsed = datetime.fromisoformat(f"{match['date']}T{match['time']}.{frac}{offset}")
    except ValueError:
        return None
    return parsed.astimezone(timezone.utc)


def _int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def decode_backup(obj: Mapping[str, Any]) -> BackupHealth | None:
    """Decode one backup object, or return None to skip it.

    Objects without a status map or a parseable status.startTimestamp are skipped.
    """
    if not isinstance(obj, Mapping):
        return None
    status = obj.get("status")
    if not isinstance(status, Mapping):
        return None
    start = parse_rfc3339(status.get("startTimestamp"))
    if start is None:
        return None
    completion = parse_rfc3339(status.get("completionTimestamp"))
    metadata = obj.get("metadata")
    if not isinstance(metadata, Mapping):
        metadata = {}
    phase = status.get("phase")
    return BackupHealth(
        name=str(metadata.get("name") or ""),
        namespace=str(metadata.get("namespace") or ""),
        phase=phase if isinstance(phase, str) else "",
        start_time=start,
        completion_time=completion,
        duration=completion - start if completion is not None else None,
        errors=_int(status.get("errors")),
        warnings=_int(status.get("warnings")),
    )


def evaluate_backups(objects: Iterable[Mapping[str, Any]], now: datetime) -> BackupAnalysis:
    """Backups started in the last 48h (and 24h), newest first, with failure counts."""
    decoded = []
    for obj in objects:
        record = decode_backup(obj)
        if record is None:
            logger.debug("Skipping backup object without a status or a valid startTimestamp")
            continue
        decoded.append(record)

    last_48h = sorted(
        (b for b in decoded if TimeWindow.LAST_48H.contains(b.start_time, now)),
        key=lambda b: b.start_time,
        reverse=True,
    )
    last_24h = [b for b in last_48h if TimeWindow.LAST_24H.contains(b.start_time, now)]
    return BackupAnalysis(
        last_24h=tuple(last_24h),
        last_48h=tuple(last_48h),
        total_24h=len(last_24h),
        total_48h=len(last_48h),
        failed_24h=sum(1 for b in last_24h if b.failed),
        failed_48h=sum(1 for b in last_48h if b.failed),
    )
