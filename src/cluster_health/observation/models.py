"""Immutable descriptors of cluster state consumed by the analysis engine."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class ResourceSpec(_Frozen):
    """CPU/memory quantity pair of a requests or limits map."""

    cpu: str | None = None
    memory: str | None = None


class ContainerSpec(_Frozen):
    """Container resources; None means the map is absent from the pod spec."""

    name: str
    requests: ResourceSpec | None = None
    limits: ResourceSpec | None = None


class TerminationRecord(_Frozen):
    reason: str = ""
    finished_at: UtcDatetime | None = None


class ContainerStatus(_Frozen):
    """Restart state of a container."""

    name: str
    restart_count: int = 0
    terminated: TerminationRecord | None = None  # current state
    last_terminated: TerminationRecord | None = None  # last termination state


class OwnerReference(_Frozen):
    kind: str
    name: str


class PodDescriptor(_Frozen):
    """Scheduling and resource view of a pod."""

    namespace: str
    name: str
    phase: str = "Unknown"
    node_name: str | None = None
    priority_class_name: str | None = None
    start_time: UtcDatetime | None = None
    containers: tuple[ContainerSpec, ...] = ()
    container_statuses: tuple[ContainerStatus, ...] = ()
    owner_references: tuple[OwnerReference, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"


class NodeDescriptor(_Frozen):
    """Node allocatable capacity; zero means unknown or unready."""

    name: str
    allocatable_cpu_millicores: int = 0
    allocatable_memory_bytes: int = 0
    labels: dict[str, str] = Field(default_factory=dict)


class EventDescriptor(_Frozen):
    """Kubernetes event summary."""

    type: str  # Normal | Warning | Error
    reason: str = ""
    message: str = ""
    namespace: str = ""
    involved_kind: str = ""
    involved_name: str = ""
    involved_namespace: str = ""
    involved_api_version: str = ""
    involved_field_path: str = ""
    source_component: str = ""
    source_host: str = ""
    count: int = 1
    first_seen: UtcDatetime | None = None
    last_seen: UtcDatetime | None = None

    @property
    def involved_object(self) -> str:
        return f"{self.involved_kind}/{self.involved_name}"


class NamespaceDescriptor(_Frozen):
    name: str


class ContainerUsage(_Frozen):
    """Live usage sample from metrics.k8s.io."""

    cpu: str | None = None
    memory: str | None = None


class ClusterSnapshot(_Frozen):
    """Point-in-time capture of cluster state; the engine's sole input."""

    now: UtcDatetime
    cluster_name: str = "Unknown Cluster"
    pods: tuple[PodDescriptor, ...] = ()
    nodes: tuple[NodeDescriptor, ...] = ()
    events: tuple[EventDescriptor, ...] = ()
    namespaces: tuple[NamespaceDescriptor, ...] = ()
    backups: tuple[dict[str, Any], ...] = Field(
        default=(),
        description="Raw backup custom resources (velero.io/v1 Backup), decoded failure-soft",
    )
    pod_metrics: dict[str, dict[str, ContainerUsage]] = Field(
        default_factory=dict,
        description="namespace/pod -> container -> live usage",
    )
