"""Run every detector over one snapshot and synthesize the findings."""

from __future__ import annotations

import logging

from cluster_health.analysis.backups import evaluate_backups
from cluster_health.analysis.events import (
    classify_reconciliation_events,
    classify_warning_events,
    extract_oom_events,
)
from cluster_health.analysis.models import Findings
from cluster_health.analysis.namespaces import NamespacePolicy, score_namespaces
from cluster_health.analysis.resources import collect_pod_resources, evaluate_node_pressure, find_resource_gaps
from cluster_health.analysis.restarts import aggregate_restarts
from cluster_health.analysis.synthesizer import build_critical_issues, rate_cluster_health
from cluster_health.analysis.workloads import WorkloadClassifier, analyze_jobs, evaluate_workload_stability
from cluster_health.observation.models import ClusterSnapshot

logger = logging.getLogger(__name__)


def analyze(
    snapshot: ClusterSnapshot,
    *,
    workload_classifier: WorkloadClassifier | None = None,
    namespace_policy: NamespacePolicy | None = None,
) -> Findings:
    """
    Derive findings from a snapshot. Detectors are independent; only the
    synthesis step reads several of their outputs. The snapshot's `now` is the
    only time source, so the same snapshot always yields the same findings.
    """
    now = snapshot.now
    gaps = find_resource_gaps(snapshot.pods)
    node_issues = evaluate_node_pressure(snapshot.nodes, snapshot.pods)
    oom = extract_oom_events(snapshot.events, now)
    restarts = aggregate_restarts(snapshot.pods, now)
    reconciliation = classify_reconciliation_events(snapshot.events, now)
    warnings = classify_warning_events(snapshot.events, now)
    backups = evaluate_backups(snapshot.backups, now)
    namespace_risks = score_namespaces(snapshot.pods, snapshot.namespaces, namespace_policy)
    workload = evaluate_workload_stability(snapshot.pods, oom.events, now, workload_classifier)
    jobs = analyze_jobs(snapshot.pods)
    pod_resources = collect_pod_resources(snapshot.pods, snapshot.pod_metrics)

    issues = build_critical_issues(gaps, oom.events, node_issues)
    health = rate_cluster_health(issues, len(oom.events))
    logger.info(
        "Cluster %s is %s: %d issues, %d resource gaps, %d OOM events, %d node issues",
        snapshot.cluster_name,
        health.value,
        len(issues),
        len(gaps),
        len(oom.events),
        len(node_issues),
    )

    return Findings(
        cluster_name=snapshot.cluster_name,
        generated_at=now,
        total_pods=len(snapshot.pods),
        total_nodes=len(snapshot.nodes),
        total_events=len(snapshot.events),
        metrics_available=bool(snapshot.pod_metrics),
        cluster_health=health,
        critical_issues=tuple(issues),
        resource_gaps=tuple(gaps),
        node_issues=tuple(node_issues),
        oom=oom,
        restarts=restarts,
        reconciliation_events=reconciliation,
        warning_events=warnings,
        backups=backups,
        namespace_risks=tuple(namespace_risks),
        workload=workload,
        jobs=jobs,
        pod_resources=tuple(pod_resources),
    )
