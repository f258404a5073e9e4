"""Collect cluster-wide Kubernetes state (pods, nodes, events, backups, metrics) into a snapshot."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from cluster_health.observation.models import (
    ClusterSnapshot,
    ContainerSpec,
    ContainerStatus,
    ContainerUsage,
    EventDescriptor,
    NamespaceDescriptor,
    NodeDescriptor,
    OwnerReference,
    PodDescriptor,
    ResourceSpec,
    TerminationRecord,
)
from cluster_health.quantities import cpu_millicores, memory_bytes

logger = logging.getLogger(__name__)

# Page size for list calls
DEFAULT_PAGE_SIZE = 500

BACKUP_GROUP, BACKUP_VERSION, BACKUP_PLURAL = "velero.io", "v1", "backups"
METRICS_GROUP, METRICS_VERSION, METRICS_PLURAL = "metrics.k8s.io", "v1beta1", "pods"

# Node labels that commonly carry the cluster name
CLUSTER_NAME_LABELS = (
    "cluster-name",
    "alpha.eksctl.io/cluster-name",
    "kubernetes.azure.com/cluster",
)


def _load_kube_config(kubeconfig_path: str | None, context: str | None) -> client.Configuration:
    """Load in-cluster or kubeconfig-based configuration."""
    try:
        config.load_incluster_config()
        return client.Configuration.get_default_copy()
    except config.ConfigException:
        pass
    kwargs: dict[str, Any] = {}
    if kubeconfig_path:
        kwargs["config_file"] = str(kubeconfig_path)
    if context:
        kwargs["context"] = context
    config.load_kube_config(**kwargs)
    return client.Configuration.get_default_copy()


def _resource_spec(mapping: dict[str, Any] | None) -> ResourceSpec | None:
    if mapping is None:
        return None
    cpu, memory = mapping.get("cpu"), mapping.get("memory")
    return ResourceSpec(
        cpu=str(cpu) if cpu is not None else None,
        memory=str(memory) if memory is not None else None,
    )


def _termination(terminated: Any) -> TerminationRecord | None:
    if terminated is None:
        return None
    return TerminationRecord(
        reason=getattr(terminated, "reason", None) or "",
        finished_at=getattr(terminated, "finished_at", None),
    )


def _build_container_status(cs: Any) -> ContainerStatus:
    """Extract restart state from V1ContainerStatus."""
    state = getattr(cs, "state", None)
    last_state = getattr(cs, "last_state", None)
    return ContainerStatus(
        name=cs.name,
        restart_count=cs.restart_count or 0,
        terminated=_termination(getattr(state, "terminated", None)) if state else None,
        last_terminated=_termination(getattr(last_state, "terminated", None)) if last_state else None,
    )


def _build_pod(pod: Any) -> PodDescriptor:
    """Build PodDescriptor from V1Pod."""
    spec, status = pod.spec, pod.status
    containers = []
    for c in getattr(spec, "containers", []) or []:
        resources = getattr(c, "resources", None)
        containers.append(
            ContainerSpec(
                name=c.name,
                requests=_resource_spec(getattr(resources, "requests", None)) if resources else None,
                limits=_resource_spec(getattr(resources, "limits", None)) if resources else None,
            )
        )
    return PodDescriptor(
        namespace=pod.metadata.namespace or "default",
        name=pod.metadata.name,
        phase=getattr(status, "phase", None) or "Unknown",
        node_name=getattr(spec, "node_name", None),
        priority_class_name=getattr(spec, "priority_class_name", None),
        start_time=getattr(status, "start_time", None),
        containers=tuple(containers),
        container_statuses=tuple(
            _build_container_status(cs) for cs in getattr(status, "container_statuses", []) or []
        ),
        owner_references=tuple(
            OwnerReference(kind=o.kind, name=o.name) for o in pod.metadata.owner_references or []
        ),
    )


def _build_node(node: Any) -> NodeDescriptor:
    """Build NodeDescriptor from V1Node."""
    allocatable = getattr(node.status, "allocatable", None) or {}
    return NodeDescriptor(
        name=node.metadata.name,
        allocatable_cpu_millicores=cpu_millicores(allocatable.get("cpu")),
        allocatable_memory_bytes=memory_bytes(allocatable.get("memory")),
        labels=dict(node.metadata.labels or {}),
    )


def _build_event(ev: Any) -> EventDescriptor:
    """Build EventDescriptor from CoreV1Event."""
    obj = ev.involved_object
    source = ev.source
    return EventDescriptor(
        type=ev.type or "Normal",
        reason=ev.reason or "",
        message=ev.message or "",
        namespace=ev.metadata.namespace or "",
        involved_kind=getattr(obj, "kind", None) or "",
        involved_name=getattr(obj, "name", None) or "",
        involved_namespace=getattr(obj, "namespace", None) or "",
        involved_api_version=getattr(obj, "api_version", None) or "",
        involved_field_path=getattr(obj, "field_path", None) or "",
        source_component=(getattr(source, "component", None) or "") if source else "",
        source_host=(getattr(source, "host", None) or "") if source else "",
        count=ev.count or 1,
        first_seen=ev.first_timestamp,
        last_seen=ev.last_timestamp or getattr(ev, "event_time", None),
    )


def _parse_pod_metrics(items: list[dict[str, Any]]) -> dict[str, dict[str, ContainerUsage]]:
    """Convert metrics.k8s.io PodMetrics items into namespace/pod -> container -> usage."""
    out: dict[str, dict[str, ContainerUsage]] = {}
    for item in items:
        meta = item.get("metadata") or {}
        containers = item.get("containers")
        if not isinstance(containers, list):
            continue
        usage_by_container: dict[str, ContainerUsage] = {}
        for c in containers:
            if not isinstance(c, dict) or not isinstance(c.get("usage"), dict):
                continue
            usage = c["usage"]
            usage_by_container[c.get("name", "")] = ContainerUsage(
                cpu=usage.get("cpu"),
                memory=usage.get("memory"),
            )
        out[f"{meta.get('namespace', '')}/{meta.get('name', '')}"] = usage_by_container
    return out


class ClusterCollector:
    """Collects cluster-wide state into an immutable ClusterSnapshot."""

    def __init__(
        self,
        kubeconfig: str | None = None,
        context: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.page_size = page_size
        cfg = _load_kube_config(kubeconfig, context)
        api_client = client.ApiClient(cfg)
        self._core = client.CoreV1Api(api_client)
        self._custom = client.CustomObjectsApi(api_client)

    def collect(self, now: datetime | None = None) -> ClusterSnapshot:
        """Collect a full snapshot. Pods, nodes, events and namespaces are mandatory."""
        pods = [_build_pod(p) for p in self._list_all(self._core.list_pod_for_all_namespaces, "pods")]
        raw_nodes = self._list_all(self._core.list_node, "nodes")
        nodes = [_build_node(n) for n in raw_nodes]
        events = [_build_event(e) for e in self._list_all(self._core.list_event_for_all_namespaces, "events")]
        namespaces = [
            NamespaceDescriptor(name=ns.metadata.name)
            for ns in self._list_all(self._core.list_namespace, "namespaces")
        ]
        logger.info(
            "Collected %d pods, %d nodes, %d events, %d namespaces",
            len(pods),
            len(nodes),
            len(events),
            len(namespaces),
        )
        return ClusterSnapshot(
            now=now or datetime.now(timezone.utc),
            cluster_name=self._cluster_name(nodes),
            pods=tuple(pods),
            nodes=tuple(nodes),
            events=tuple(events),
            namespaces=tuple(namespaces),
            backups=tuple(self._list_backups()),
            pod_metrics=self._collect_pod_metrics(),
        )

    def _list_all(self, list_fn: Callable[..., Any], kind: str) -> list[Any]:
        """Follow the continue token until the list is exhausted."""
        items: list[Any] = []
        token: str | None = None
        try:
            while True:
                kwargs: dict[str, Any] = {"limit": self.page_size}
                if token:
                    kwargs["_continue"] = token
                page = list_fn(**kwargs)
                items.extend(page.items or [])
                token = getattr(page.metadata, "_continue", None) if page.metadata else None
                if not token:
                    return items
        except ApiException as e:
            logger.warning("Failed to list %s: %s", kind, e.reason)
            raise

    def _list_custom(self, group: str, version: str, plural: str) -> list[dict[str, Any]]:
        """List a cluster-wide custom resource; an unavailable kind yields no items."""
        try:
            result = self._custom.list_cluster_custom_object(group=group, version=version, plural=plural)
        except ApiException as e:
            logger.debug("%s.%s/%s unavailable: %s", plural, group, version, e.reason)
            return []
        return list((result or {}).get("items") or [])

    def _list_backups(self) -> list[dict[str, Any]]:
        return self._list_custom(BACKUP_GROUP, BACKUP_VERSION, BACKUP_PLURAL)

    def _collect_pod_metrics(self) -> dict[str, dict[str, ContainerUsage]]:
        metrics = _parse_pod_metrics(self._list_custom(METRICS_GROUP, METRICS_VERSION, METRICS_PLURAL))
        if not metrics:
            logger.info("Pod metrics unavailable (metrics-server not found); usage will show N/A")
        return metrics

    def _cluster_name(self, nodes: list[NodeDescriptor]) -> str:
        """Resolve the cluster name from cluster-info ConfigMaps, then node labels."""
        for namespace in ("kube-system", "kube-public"):
            try:
                cm = self._core.read_namespaced_config_map(name="cluster-info", namespace=namespace)
            except ApiException:
                continue
            name = (cm.data or {}).get("cluster-name")
            if name:
                return name
        if nodes:
            labels = nodes[0].labels
            for label in CLUSTER_NAME_LABELS:
                if labels.get(label):
                    return labels[label]
            if labels.get("kubernetes.azure.com/node-pool-name"):
                return "AKS-" + labels["kubernetes.azure.com/node-pool-name"]
        return "Unknown Cluster"
