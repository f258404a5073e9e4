"""Observation layer: collect Kubernetes cluster state into an immutable snapshot."""

from cluster_health.observation.collector import ClusterCollector
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

__all__ = [
    "ClusterCollector",
    "ClusterSnapshot",
    "ContainerSpec",
    "ContainerStatus",
    "ContainerUsage",
    "EventDescriptor",
    "NamespaceDescriptor",
    "NodeDescriptor",
    "OwnerReference",
    "PodDescriptor",
    "ResourceSpec",
    "TerminationRecord",
]
