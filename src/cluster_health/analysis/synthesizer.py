"""Combine detector outputs into ranked critical issues and an overall health rating."""

from __future__ import annotations

from collections.abc import Sequence

from cluster_health.analysis.models import ClusterHealth, CriticalIssue, NodeIssue, OOMEvent, ResourceGap

MAX_EXAMPLES = 3


def _gap_example(gap: ResourceGap) -> str:
    return f"{gap.namespace}/{gap.pod} (container: {gap.container})"


def _oom_example(event: OOMEvent) -> str:
    when = event.timestamp.isoformat() if event.timestamp else "unknown time"
    return f"{event.namespace}/{event.pod} at {when}"


def _node_example(issue: NodeIssue) -> str:
    pct = issue.percent
    utilized = f"{pct:.1f}% utilized" if pct is not None else "utilization unknown"
    return f"{issue.node}: {issue.kind.value} ({utilized})"


def build_critical_issues(
    gaps: Sequence[ResourceGap],
    oom_events: Sequence[OOMEvent],
    node_issues: Sequence[NodeIssue],
) -> list[CriticalIssue]:
    """Fixed-priority issue list: resource gaps (1), OOM kills (2), node pressure (3)."""
    issues = []
    if gaps:
        issues.append(
            CriticalIssue(
                priority=1,
                title="Missing Resource Requests and Limits",
                description=f"{len(gaps)} containers are missing resource requests or limits",
                impact="Prevents proper scheduling, impacts backups, and can cause cluster instability",
                recommendation="Set resource requests and limits for all containers based on observed usage patterns",
                examples=tuple(_gap_example(g) for g in gaps[:MAX_EXAMPLES]),
            )
        )
    if oom_events:
        issues.append(
            CriticalIssue(
                priority=2,
                title="OOMKilled Events Detected",
                description=f"{len(oom_events)} OOMKilled events found in recent history",
                impact="Workload disruptions, data loss, and degraded application performance",
                recommendation="Increase memory limits for affected pods or optimize application memory usage",
                examples=tuple(_oom_example(o) for o in oom_events[:MAX_EXAMPLES]),
            )
        )
    if node_issues:
        issues.append(
            CriticalIssue(
                priority=3,
                title="High Node Resource Utilization",
                description=f"{len(node_issues)} node issues showing high resource requests",
                impact="Limited scheduling capacity, potential cascading failures during node issues",
                recommendation="Scale node pool or rebalance workloads across nodes",
                examples=tuple(_node_example(n) for n in node_issues[:MAX_EXAMPLES]),
            )
        )
    return issues


def rate_cluster_health(issues: Sequence[CriticalIssue], oom_count: int) -> ClusterHealth:
    urgent = sum(1 for i in issues if i.priority <= 2)
    if urgent > 3 or oom_count > 10:
        return ClusterHealth.CRITICAL
    if urgent > 0 or oom_count > 0:
        return ClusterHealth.DEGRADED
    return ClusterHealth.HEALTHY
