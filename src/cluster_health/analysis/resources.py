"""Resource configuration analysis: container gaps, node request pressure and the pod inventory."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from functools import reduce

from cluster_health.analysis.models import NodeIssue, NodeIssueKind, PodResourceInfo, ResourceGap
from cluster_health.observation.models import (
    ContainerUsage,
    NodeDescriptor,
    PodDescriptor,
    ResourceSpec,
)
from cluster_health.quantities import cpu_millicores, format_mebibytes, format_millicores, is_set, memory_bytes

# Percent of allocatable above which summed requests count as pressure
NODE_PRESSURE_THRESHOLD = 80

NOT_SET = "Not Set"


def is_missing(spec: ResourceSpec | None) -> bool:
    """A requests/limits map is missing when absent or when both CPU and memory are zero."""
    return spec is None or (not is_set(spec.cpu) and not is_set(spec.memory))


def find_resource_gaps(pods: Iterable[PodDescriptor]) -> list[ResourceGap]:
    """Return one ResourceGap per container missing requests or limits."""
    gaps = []
    for pod in pods:
        for container in pod.containers:
            missing_requests = is_missing(container.requests)
            missing_limits = is_missing(container.limits)
            if missing_requests or missing_limits:
                gaps.append(
                    ResourceGap(
                        namespace=pod.namespace,
                        pod=pod.name,
                        container=container.name,
                        missing_requests=missing_requests,
                        missing_limits=missing_limits,
                    )
                )
    return gaps


def _requested(pod: PodDescriptor) -> tuple[int, int]:
    cpu = memory = 0
    for container in pod.containers:
        if container.requests is None:
            continue
        cpu += cpu_millicores(container.requests.cpu)
        memory += memory_bytes(container.requests.memory)
    return cpu, memory


def _add_node_requests(totals: Mapping[str, tuple[int, int]], pod: PodDescriptor) -> Mapping[str, tuple[int, int]]:
    if not pod.node_name:
        return totals
    cpu, memory = _requested(pod)
    prev_cpu, prev_memory = totals.get(pod.node_name, (0, 0))
    return {**totals, pod.node_name: (prev_cpu + cpu, prev_memory + memory)}


def evaluate_node_pressure(nodes: Iterable[NodeDescriptor], pods: Iterable[PodDescriptor]) -> list[NodeIssue]:
    """Flag nodes whose summed pod requests exceed NODE_PRESSURE_THRESHOLD of allocatable.

    A dimension with zero allocatable has no defined ratio and is never flagged.
    """
    totals = reduce(_add_node_requests, pods, {})

    issues = []
    for node in nodes:
        requested_cpu, requested_memory = totals.get(node.name, (0, 0))
        kinds = []
        if node.allocatable_cpu_millicores and (
            requested_cpu / node.allocatable_cpu_millicores * 100 > NODE_PRESSURE_THRESHOLD
        ):
            kinds.append(NodeIssueKind.HIGH_CPU_REQUESTS)
        if node.allocatable_memory_bytes and (
            requested_memory / node.allocatable_memory_bytes * 100 > NODE_PRESSURE_THRESHOLD
        ):
            kinds.append(NodeIssueKind.HIGH_MEMORY_REQUESTS)
        for kind in kinds:
            issues.append(
                NodeIssue(
                    node=node.name,
                    kind=kind,
                    requested_cpu_millicores=requested_cpu,
                    requested_memory_bytes=requested_memory,
                    allocatable_cpu_millicores=node.allocatable_cpu_millicores,
                    allocatable_memory_bytes=node.allocatable_memory_bytes,
                )
            )
    return issues


def _configured(spec: ResourceSpec | None) -> tuple[str, str]:
    if spec is None:
        return NOT_SET, NOT_SET
    return spec.cpu or NOT_SET, spec.memory or NOT_SET


def collect_pod_resources(
    pods: Iterable[PodDescriptor],
    pod_metrics: Mapping[str, Mapping[str, ContainerUsage]],
    namespace: str | None = None,
) -> list[PodResourceInfo]:
    """Inventory of running containers with configured resources and live usage."""
    infos = []
    for pod in pods:
        if pod.phase != "Running" or (namespace is not None and pod.namespace != namespace):
            continue
        usage_by_container = pod_metrics.get(pod.key, {})
        for container in pod.containers:
            cpu_request, memory_request = _configured(container.requests)
            cpu_limit, memory_limit = _configured(container.limits)
            usage = usage_by_container.get(container.name)
            infos.append(
                PodResourceInfo(
                    namespace=pod.namespace,
                    pod=pod.name,
                    container=container.name,
                    status=pod.phase,
                    cpu_request=cpu_request,
                    cpu_limit=cpu_limit,
                    memory_request=memory_request,
                    memory_limit=memory_limit,
                    current_cpu=format_millicores(usage.cpu) if usage else "N/A",
                    current_memory=format_mebibytes(usage.memory) if usage else "N/A",
                )
            )
    infos.sort(key=lambda i: (i.namespace, i.pod, i.container))
    return infos


def namespaces_missing_resources(pods: Iterable[PodDescriptor]) -> list[str]:
    """Namespaces with a running container lacking any CPU/memory request or limit key."""
    namespaces = set()
    for pod in pods:
        if pod.phase != "Running":
            continue
        for container in pod.containers:
            specs = (container.requests, container.limits)
            if any(s is None or s.cpu is None or s.memory is None for s in specs):
                namespaces.add(pod.namespace)
                break
    return sorted(namespaces)
