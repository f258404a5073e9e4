"""Workload-specific checks: critical workload stability and short-lived jobs."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from cluster_health.analysis.models import JobAnalysis, OOMEvent, TimeWindow, WorkloadStability
from cluster_health.observation.models import PodDescriptor
from cluster_health.quantities import is_set

DEFAULT_WORKLOAD_PATTERN = "rabbit"

# Jobs finishing faster than this are counted as short-lived
SHORT_JOB_THRESHOLD = timedelta(minutes=2)


@runtime_checkable
class WorkloadClassifier(Protocol):
    """Decides which pods get the critical-workload stability treatment."""

    name: str

    def matches(self, pod: PodDescriptor) -> bool: ...


class NamePatternClassifier:
    """Matches pods whose name contains a substring, case-insensitively."""

    def __init__(self, pattern: str = DEFAULT_WORKLOAD_PATTERN, name: str | None = None) -> None:
        self.pattern = pattern.lower()
        self.name = name or pattern

    def matches(self, pod: PodDescriptor) -> bool:
        return self.pattern in pod.name.lower()


def evaluate_workload_stability(
    pods: Iterable[PodDescriptor],
    oom_events: Iterable[OOMEvent],
    now: datetime,
    classifier: WorkloadClassifier | None = None,
) -> WorkloadStability:
    """Summarize whether the matched workload is protected against eviction and OOM kills."""
    classifier = classifier or NamePatternClassifier()
    matched = [p for p in pods if classifier.matches(p)]
    keys = {(p.namespace, p.name) for p in matched}
    recent = tuple(
        o for o in oom_events if (o.namespace, o.pod) in keys and TimeWindow.LAST_7D.contains(o.timestamp, now)
    )
    return WorkloadStability(
        workload=classifier.name,
        identified_pods=tuple(p.key for p in matched),
        has_priority_class=any(p.priority_class_name for p in matched),
        has_resource_limits=any(
            c.limits is not None and is_set(c.limits.memory) for p in matched for c in p.containers
        ),
        recent_oom_count=len(recent),
        recent_ooms=recent,
    )


def _is_short_lived(pod: PodDescriptor) -> bool:
    if pod.phase != "Succeeded" or pod.start_time is None:
        return False
    for status in pod.container_statuses:
        finished = status.terminated.finished_at if status.terminated else None
        if finished is not None and finished - pod.start_time < SHORT_JOB_THRESHOLD:
            return True
    return False


def analyze_jobs(pods: Iterable[PodDescriptor]) -> JobAnalysis:
    """Count Job-owned pods and those that completed in under two minutes."""
    total = short = 0
    for pod in pods:
        for owner in pod.owner_references:
            if owner.kind != "Job":
                continue
            total += 1
            if _is_short_lived(pod):
                short += 1
    return JobAnalysis(total_jobs=total, short_jobs=short)
