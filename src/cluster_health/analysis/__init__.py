"""Analysis layer: deterministic health findings from a cluster snapshot."""

from cluster_health.analysis.engine import analyze
from cluster_health.analysis.models import (
    BackupAnalysis,
    BackupHealth,
    ClusterHealth,
    CriticalIssue,
    EventRecord,
    Findings,
    JobAnalysis,
    NamespaceRisk,
    NodeIssue,
    NodeIssueKind,
    OOMAnalysis,
    OOMEvent,
    PodResourceInfo,
    PodRestart,
    PodRestartAnalysis,
    ReconciliationEventAnalysis,
    ResourceGap,
    RiskTier,
    TimeWindow,
    WarningEventAnalysis,
    WorkloadStability,
)
from cluster_health.analysis.namespaces import NamespacePolicy, is_application_namespace
from cluster_health.analysis.workloads import NamePatternClassifier, WorkloadClassifier

__all__ = [
    "analyze",
    "BackupAnalysis",
    "BackupHealth",
    "ClusterHealth",
    "CriticalIssue",
    "EventRecord",
    "Findings",
    "JobAnalysis",
    "NamePatternClassifier",
    "NamespacePolicy",
    "NamespaceRisk",
    "NodeIssue",
    "NodeIssueKind",
    "OOMAnalysis",
    "OOMEvent",
    "PodResourceInfo",
    "PodRestart",
    "PodRestartAnalysis",
    "ReconciliationEventAnalysis",
    "ResourceGap",
    "RiskTier",
    "TimeWindow",
    "WarningEventAnalysis",
    "WorkloadClassifier",
    "WorkloadStability",
    "is_application_namespace",
]
