"""Container restart history within sliding windows."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from cluster_health.analysis.models import PodRestart, PodRestartAnalysis, TimeWindow
from cluster_health.observation.models import ContainerStatus, PodDescriptor

UNKNOWN_REASON = "Unknown"


def last_restart(pod: PodDescriptor, status: ContainerStatus) -> tuple[datetime | None, str]:
    """Best-effort (time, reason) of the last restart.

    Prefers the last termination state, then the current terminated state,
    and finally falls back to the pod start time with an unknown reason.
    """
    for record in (status.last_terminated, status.terminated):
        if record is not None:
            return record.finished_at, record.reason or UNKNOWN_REASON
    return pod.start_time, UNKNOWN_REASON


def _window(restarts: list[PodRestart], window: TimeWindow, now: datetime) -> list[PodRestart]:
    selected = [r for r in restarts if window.contains(r.last_restart_time, now)]
    selected.sort(key=lambda r: r.restart_count, reverse=True)
    return selected


def _unique_pods(restarts: Iterable[PodRestart]) -> int:
    return len({(r.namespace, r.pod) for r in restarts})


def aggregate_restarts(pods: Iterable[PodDescriptor], now: datetime) -> PodRestartAnalysis:
    """One PodRestart per container that restarted, bucketed into 24h/48h/7d windows."""
    restarts = []
    for pod in pods:
        for status in pod.container_statuses:
            if status.restart_count <= 0:
                continue
            when, reason = last_restart(pod, status)
            restarts.append(
                PodRestart(
                    namespace=pod.namespace,
                    pod=pod.name,
                    container=status.name,
                    restart_count=status.restart_count,
                    last_restart_time=when,
                    reason=reason,
                )
            )

    last_24h = _window(restarts, TimeWindow.LAST_24H, now)
    last_48h = _window(restarts, TimeWindow.LAST_48H, now)
    last_7d = _window(restarts, TimeWindow.LAST_7D, now)
    return PodRestartAnalysis(
        restarts=tuple(restarts),
        last_24h=tuple(last_24h),
        last_48h=tuple(last_48h),
        last_7d=tuple(last_7d),
        pods_24h=_unique_pods(last_24h),
        pods_48h=_unique_pods(last_48h),
        pods_7d=_unique_pods(last_7d),
    )
