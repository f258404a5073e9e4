"""Structured findings produced by the analysis engine."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class _Finding(BaseModel):
    model_config = ConfigDict(frozen=True)


class TimeWindow(str, Enum):
    """Look-back windows measured from the snapshot time."""

    LAST_24H = "24h"
    LAST_48H = "48h"
    LAST_7D = "7d"

    @property
    def delta(self) -> timedelta:
        return {
            TimeWindow.LAST_24H: timedelta(hours=24),
            TimeWindow.LAST_48H: timedelta(hours=48),
            TimeWindow.LAST_7D: timedelta(days=7),
        }[self]

    def contains(self, timestamp: datetime | None, now: datetime) -> bool:
        """True if timestamp is strictly after now - window. Unknown times are in no window."""
        return timestamp is not None and timestamp > now - self.delta


class RiskTier(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]


_TIER_RANK = {RiskTier.CRITICAL: 0, RiskTier.HIGH: 1, RiskTier.MEDIUM: 2, RiskTier.LOW: 3}


class ClusterHealth(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"


class NodeIssueKind(str, Enum):
    HIGH_CPU_REQUESTS = "High CPU requests"
    HIGH_MEMORY_REQUESTS = "High memory requests"


class ResourceGap(_Finding):
    """A container missing requests and/or limits."""

    namespace: str
    pod: str
    container: str
    missing_requests: bool
    missing_limits: bool


class NodeIssue(_Finding):
    """A node whose summed requests exceed the pressure threshold on one dimension."""

    node: str
    kind: NodeIssueKind
    requested_cpu_millicores: int
    requested_memory_bytes: int
    allocatable_cpu_millicores: int
    allocatable_memory_bytes: int

    @property
    def cpu_percent(self) -> float | None:
        if not self.allocatable_cpu_millicores:
            return None
        return self.requested_cpu_millicores / self.allocatable_cpu_millicores * 100

    @property
    def memory_percent(self) -> float | None:
        if not self.allocatable_memory_bytes:
            return None
        return self.requested_memory_bytes / self.allocatable_memory_bytes * 100

    @property
    def percent(self) -> float | None:
        """Utilization of the dimension this issue is about."""
        if self.kind is NodeIssueKind.HIGH_CPU_REQUESTS:
            return self.cpu_percent
        return self.memory_percent


class OOMEvent(_Finding):
    node: str
    namespace: str
    pod: str
    container: str
    timestamp: datetime | None
    reason: str = ""


class OOMAnalysis(_Finding):
    events: tuple[OOMEvent, ...] = ()
    last_24h: tuple[OOMEvent, ...] = ()
    last_48h: tuple[OOMEvent, ...] = ()


class PodRestart(_Finding):
    namespace: str
    pod: str
    container: str
    restart_count: int
    last_restart_time: datetime | None
    reason: str


class PodRestartAnalysis(_Finding):
    restarts: tuple[PodRestart, ...] = ()
    last_24h: tuple[PodRestart, ...] = ()
    last_48h: tuple[PodRestart, ...] = ()
    last_7d: tuple[PodRestart, ...] = ()
    pods_24h: int = 0
    pods_48h: int = 0
    pods_7d: int = 0


class EventRecord(_Finding):
    """An event placed in a look-back window."""

    window: TimeWindow
    type: str
    reason: str
    message: str
    namespace: str
    involved_object: str
    count: int
    first_seen: datetime | None
    last_seen: datetime


class ReconciliationEventAnalysis(_Finding):
    """GitOps (Flux) events in the 24h/48h windows."""

    last_24h: tuple[EventRecord, ...] = ()
    last_48h: tuple[EventRecord, ...] = ()
    warnings_24h: int = 0
    warnings_48h: int = 0
    errors_24h: int = 0
    errors_48h: int = 0


class WarningEventAnalysis(_Finding):
    """Non-Flux Warning events in the 24h/48h windows."""

    last_24h: tuple[EventRecord, ...] = ()
    last_48h: tuple[EventRecord, ...] = ()
    warnings_24h: int = 0
    warnings_48h: int = 0


class BackupHealth(_Finding):
    name: str
    namespace: str
    phase: str
    start_time: datetime
    completion_time: datetime | None = None
    duration: timedelta | None = None  # None while in progress
    errors: int = 0
    warnings: int = 0

    @property
    def failed(self) -> bool:
        return self.phase in ("Failed", "PartiallyFailed")


class BackupAnalysis(_Finding):
    last_24h: tuple[BackupHealth, ...] = ()
    last_48h: tuple[BackupHealth, ...] = ()
    total_24h: int = 0
    total_48h: int = 0
    failed_24h: int = 0
    failed_48h: int = 0


class NamespaceRisk(_Finding):
    namespace: str
    total_pods: int
    pods_without_requests: int
    pods_without_limits: int
    tier: RiskTier
    critical_pods: tuple[str, ...] = Field(default=(), description="Pods without any requests")

    @property
    def gap_percent(self) -> float:
        return self.pods_without_requests / self.total_pods * 100


class WorkloadStability(_Finding):
    """Protection posture of one critical workload class (e.g. the message broker)."""

    workload: str
    identified_pods: tuple[str, ...] = ()
    has_priority_class: bool = False
    has_resource_limits: bool = False
    recent_oom_count: int = 0
    recent_ooms: tuple[OOMEvent, ...] = ()

    @property
    def at_risk(self) -> bool:
        if not self.identified_pods:
            return False
        return not self.has_priority_class or not self.has_resource_limits or self.recent_oom_count > 0


class JobAnalysis(_Finding):
    total_jobs: int = 0
    short_jobs: int = 0


class PodResourceInfo(_Finding):
    """Configured resources and live usage of one running container."""

    namespace: str
    pod: str
    container: str
    status: str
    cpu_request: str
    cpu_limit: str
    memory_request: str
    memory_limit: str
    current_cpu: str = "N/A"
    current_memory: str = "N/A"


class CriticalIssue(_Finding):
    priority: int = Field(..., description="1 is highest")
    title: str
    description: str
    impact: str
    recommendation: str
    examples: tuple[str, ...] = ()


class Findings(_Finding):
    """Everything the engine derived from one snapshot."""

    cluster_name: str
    generated_at: datetime
    total_pods: int = 0
    total_nodes: int = 0
    total_events: int = 0
    metrics_available: bool = False
    cluster_health: ClusterHealth = ClusterHealth.HEALTHY
    critical_issues: tuple[CriticalIssue, ...] = ()
    resource_gaps: tuple[ResourceGap, ...] = ()
    node_issues: tuple[NodeIssue, ...] = ()
    oom: OOMAnalysis = OOMAnalysis()
    restarts: PodRestartAnalysis = PodRestartAnalysis()
    reconciliation_events: ReconciliationEventAnalysis = ReconciliationEventAnalysis()
    warning_events: WarningEventAnalysis = WarningEventAnalysis()
    backups: BackupAnalysis = BackupAnalysis()
    namespace_risks: tuple[NamespaceRisk, ...] = ()
    workload: WorkloadStability = WorkloadStability(workload="")
    jobs: JobAnalysis = JobAnalysis()
    pod_resources: tuple[PodResourceInfo, ...] = ()

    @property
    def high_risk_namespaces(self) -> int:
        return sum(1 for ns in self.namespace_risks if ns.tier in (RiskTier.CRITICAL, RiskTier.HIGH))

    def to_summary_text(self) -> str:
        """Render findings as structured text for LLM consumption."""
        lines = [
            f"# Kubernetes Cluster Analysis Data (cluster={self.cluster_name}, "
            f"generated_at={self.generated_at.isoformat()})",
            "",
            "## Cluster Overview",
            f"- Total Pods: {self.total_pods}",
            f"- Total Nodes: {self.total_nodes}",
            f"- Health Status: {self.cluster_health.value}",
            f"- OOM Events: {len(self.oom.events)}",
            f"- Containers Missing Resources: {len(self.resource_gaps)}",
            f"- Pods with Restarts (24h/7d): {self.restarts.pods_24h}/{self.restarts.pods_7d}",
            f"- Flux Warnings/Errors (24h): {self.reconciliation_events.warnings_24h}/"
            f"{self.reconciliation_events.errors_24h}",
            f"- Backups (48h): {self.backups.total_48h} total, {self.backups.failed_48h} failed",
            "",
            "## Critical Issues Detected",
        ]
        for i, issue in enumerate(self.critical_issues, 1):
            lines.append(f"{i}. **{issue.title}** (Priority {issue.priority})")
            lines.append(f"   - Impact: {issue.impact}")
            lines.append(f"   - Current Recommendation: {issue.recommendation}")
        lines.extend(["", "## Node Pressure"])
        for n in self.node_issues:
            pct = f"{n.percent:.1f}%" if n.percent is not None else "n/a"
            lines.append(f"- {n.node}: {n.kind.value} ({pct})")
        lines.extend(["", "## Namespace Risk Analysis"])
        for ns in self.namespace_risks:
            lines.append(
                f"- {ns.namespace}: {ns.tier.value} risk "
                f"({ns.pods_without_requests}/{ns.total_pods} pods missing resources)"
            )
        lines.extend(
            [
                "",
                f"## Critical Workload ({self.workload.workload or 'none'})",
                f"- Pods Found: {len(self.workload.identified_pods)}",
                f"- Has Priority Class: {self.workload.has_priority_class}",
                f"- Has Resource Limits: {self.workload.has_resource_limits}",
                f"- OOM Events (7d): {self.workload.recent_oom_count}",
                "",
                "## Short-Lived Jobs",
                f"- Short Jobs (<2min): {self.jobs.short_jobs}",
                f"- Total Jobs: {self.jobs.total_jobs}",
            ]
        )
        return "\n".join(lines)
