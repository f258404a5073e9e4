"""Tests for the snapshot collector and its Kubernetes object converters."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client import (
    CoreV1Event,
    CoreV1EventList,
    V1ConfigMap,
    V1Container,
    V1ContainerState,
    V1ContainerStateRunning,
    V1ContainerStateTerminated,
    V1ContainerStatus,
    V1EventSource,
    V1ListMeta,
    V1Namespace,
    V1NamespaceList,
    V1Node,
    V1NodeList,
    V1NodeStatus,
    V1ObjectMeta,
    V1ObjectReference,
    V1OwnerReference,
    V1Pod,
    V1PodList,
    V1PodSpec,
    V1PodStatus,
    V1ResourceRequirements,
)
from kubernetes.client.rest import ApiException

from cluster_health.observation.collector import (
    ClusterCollector,
    _build_event,
    _build_node,
    _build_pod,
    _parse_pod_metrics,
)

_NOW = datetime(2026, 2, 18, 12, 0, 0, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _make_v1_pod(
    name: str = "web-1",
    namespace: str = "abc",
    resources: V1ResourceRequirements | None = None,
    restart_count: int = 0,
    last_terminated: V1ContainerStateTerminated | None = None,
    owner_kind: str | None = None,
) -> V1Pod:
    owners = None
    if owner_kind:
        owners = [V1OwnerReference(api_version="batch/v1", kind=owner_kind, name="nightly", uid="uid-1")]
    return V1Pod(
        metadata=V1ObjectMeta(name=name, namespace=namespace, owner_references=owners),
        spec=V1PodSpec(
            containers=[V1Container(name="app", resources=resources)],
            node_name="node-1",
            priority_class_name="high",
        ),
        status=V1PodStatus(
            phase="Running",
            start_time=_NOW - timedelta(days=1),
            container_statuses=[
                V1ContainerStatus(
                    name="app",
                    image="app:1",
                    image_id="",
                    ready=True,
                    restart_count=restart_count,
                    state=V1ContainerState(running=V1ContainerStateRunning(started_at=_NOW)),
                    last_state=V1ContainerState(terminated=last_terminated) if last_terminated else None,
                )
            ],
        ),
    )


def _make_v1_node(name: str = "node-1", labels: dict[str, str] | None = None) -> V1Node:
    return V1Node(
        metadata=V1ObjectMeta(name=name, labels=labels),
        status=V1NodeStatus(allocatable={"cpu": "3920m", "memory": "16Gi"}),
    )


def _make_v1_event(**kwargs) -> CoreV1Event:
    defaults = {
        "metadata": V1ObjectMeta(name="web-1.1", namespace="abc"),
        "involved_object": V1ObjectReference(
            kind="Pod", name="web-1", namespace="abc", api_version="v1", field_path="spec.containers{app}"
        ),
        "reason": "OOMKilled",
        "message": "Container app exceeded its memory limit",
        "type": "Warning",
        "source": V1EventSource(component="kubelet", host="node-1"),
        "count": 3,
        "first_timestamp": _NOW - timedelta(hours=2),
        "last_timestamp": _NOW - timedelta(hours=1),
    }
    defaults.update(kwargs)
    return CoreV1Event(**defaults)


def _make_core(pods: list[V1Pod], nodes: list[V1Node], events: list[CoreV1Event]) -> MagicMock:
    core = MagicMock()
    core.list_pod_for_all_namespaces.return_value = V1PodList(items=pods, metadata=V1ListMeta())
    core.list_node.return_value = V1NodeList(items=nodes, metadata=V1ListMeta())
    core.list_event_for_all_namespaces.return_value = CoreV1EventList(items=events, metadata=V1ListMeta())
    core.list_namespace.return_value = V1NamespaceList(
        items=[V1Namespace(metadata=V1ObjectMeta(name="abc"))], metadata=V1ListMeta()
    )
    core.read_namespaced_config_map.side_effect = ApiException(status=404, reason="Not Found")
    return core


def _make_collector(core: MagicMock, custom: MagicMock) -> ClusterCollector:
    with (
        patch("cluster_health.observation.collector._load_kube_config"),
        patch("cluster_health.observation.collector.client") as mock_client,
    ):
        mock_client.CoreV1Api.return_value = core
        mock_client.CustomObjectsApi.return_value = custom
        return ClusterCollector(page_size=2)


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------


class TestBuildPod:
    def test_resources_and_scheduling(self) -> None:
        resources = V1ResourceRequirements(requests={"cpu": "100m"}, limits={"cpu": "1", "memory": "512Mi"})
        pod = _build_pod(_make_v1_pod(resources=resources))
        assert pod.key == "abc/web-1"
        assert pod.node_name == "node-1"
        assert pod.priority_class_name == "high"
        container = pod.containers[0]
        assert (container.requests.cpu, container.requests.memory) == ("100m", None)
        assert (container.limits.cpu, container.limits.memory) == ("1", "512Mi")

    def test_absent_resources_are_none(self) -> None:
        pod = _build_pod(_make_v1_pod(resources=None))
        assert pod.containers[0].requests is None
        assert pod.containers[0].limits is None

    def test_restart_state(self) -> None:
        terminated = V1ContainerStateTerminated(exit_code=137, reason="OOMKilled", finished_at=_NOW - timedelta(hours=1))
        pod = _build_pod(_make_v1_pod(restart_count=4, last_terminated=terminated))
        status = pod.container_statuses[0]
        assert status.restart_count == 4
        assert status.terminated is None
        assert status.last_terminated.reason == "OOMKilled"
        assert status.last_terminated.finished_at == _NOW - timedelta(hours=1)

    def test_owner_references(self) -> None:
        pod = _build_pod(_make_v1_pod(owner_kind="Job"))
        assert [(o.kind, o.name) for o in pod.owner_references] == [("Job", "nightly")]

    def test_naive_start_time_assumed_utc(self) -> None:
        v1 = _make_v1_pod()
        v1.status.start_time = datetime(2026, 2, 17, 12, 0, 0)
        assert _build_pod(v1).start_time == datetime(2026, 2, 17, 12, 0, 0, tzinfo=timezone.utc)


class TestBuildNode:
    def test_allocatable_parsed(self) -> None:
        node = _build_node(_make_v1_node(labels={"cluster-name": "prod"}))
        assert node.allocatable_cpu_millicores == 3920
        assert node.allocatable_memory_bytes == 16 * 1024**3
        assert node.labels == {"cluster-name": "prod"}

    def test_missing_allocatable_is_zero(self) -> None:
        node = _build_node(V1Node(metadata=V1ObjectMeta(name="bare"), status=V1NodeStatus()))
        assert (node.allocatable_cpu_millicores, node.allocatable_memory_bytes) == (0, 0)


class TestBuildEvent:
    def test_fields(self) -> None:
        event = _build_event(_make_v1_event())
        assert event.involved_object == "Pod/web-1"
        assert event.involved_field_path == "spec.containers{app}"
        assert (event.source_component, event.source_host) == ("kubelet", "node-1")
        assert event.count == 3
        assert event.last_seen == _NOW - timedelta(hours=1)

    def test_event_time_used_when_last_timestamp_missing(self) -> None:
        event = _build_event(_make_v1_event(last_timestamp=None, event_time=_NOW - timedelta(minutes=5)))
        assert event.last_seen == _NOW - timedelta(minutes=5)

    def test_missing_source_and_count(self) -> None:
        event = _build_event(_make_v1_event(source=None, count=None))
        assert event.source_component == ""
        assert event.count == 1


class TestParsePodMetrics:
    def test_usage_by_container(self) -> None:
        items = [
            {
                "metadata": {"name": "web-1", "namespace": "abc"},
                "containers": [{"name": "app", "usage": {"cpu": "12m", "memory": "64Mi"}}, {"name": "broken"}],
            },
            {"metadata": {"name": "odd", "namespace": "abc"}, "containers": "nope"},
        ]
        metrics = _parse_pod_metrics(items)
        assert list(metrics) == ["abc/web-1"]
        assert metrics["abc/web-1"]["app"].cpu == "12m"
        assert "broken" not in metrics["abc/web-1"]


# ---------------------------------------------------------------------------
# ClusterCollector
# ---------------------------------------------------------------------------


class TestClusterCollector:
    def test_collect_builds_snapshot(self) -> None:
        core = _make_core([_make_v1_pod()], [_make_v1_node(labels={"cluster-name": "prod"})], [_make_v1_event()])
        custom = MagicMock()
        custom.list_cluster_custom_object.return_value = {"items": []}
        snapshot = _make_collector(core, custom).collect(now=_NOW)

        assert snapshot.now == _NOW
        assert snapshot.cluster_name == "prod"
        assert [p.name for p in snapshot.pods] == ["web-1"]
        assert [n.name for n in snapshot.nodes] == ["node-1"]
        assert [e.reason for e in snapshot.events] == ["OOMKilled"]
        assert [ns.name for ns in snapshot.namespaces] == ["abc"]
        assert snapshot.backups == ()
        assert snapshot.pod_metrics == {}

    def test_follows_continue_token(self) -> None:
        core = _make_core([], [_make_v1_node()], [])
        core.list_pod_for_all_namespaces.side_effect = [
            V1PodList(items=[_make_v1_pod("a"), _make_v1_pod("b")], metadata=V1ListMeta(_continue="page-2")),
            V1PodList(items=[_make_v1_pod("c")], metadata=V1ListMeta()),
        ]
        custom = MagicMock()
        custom.list_cluster_custom_object.return_value = {"items": []}
        snapshot = _make_collector(core, custom).collect(now=_NOW)

        assert [p.name for p in snapshot.pods] == ["a", "b", "c"]
        calls = core.list_pod_for_all_namespaces.call_args_list
        assert calls[0].kwargs == {"limit": 2}
        assert calls[1].kwargs == {"limit": 2, "_continue": "page-2"}

    def test_mandatory_list_failure_propagates(self) -> None:
        core = _make_core([], [], [])
        core.list_node.side_effect = ApiException(status=403, reason="Forbidden")
        collector = _make_collector(core, MagicMock())
        with pytest.raises(ApiException):
            collector.collect(now=_NOW)

    def test_optional_sources_degrade_to_empty(self) -> None:
        core = _make_core([_make_v1_pod()], [_make_v1_node()], [])
        custom = MagicMock()
        custom.list_cluster_custom_object.side_effect = ApiException(status=404, reason="Not Found")
        snapshot = _make_collector(core, custom).collect(now=_NOW)

        assert snapshot.backups == ()
        assert snapshot.pod_metrics == {}
        assert len(snapshot.pods) == 1

    def test_backups_and_metrics_collected(self) -> None:
        core = _make_core([_make_v1_pod()], [_make_v1_node()], [])
        backup = {"metadata": {"name": "nightly"}, "status": {"phase": "Completed"}}
        metrics = {"metadata": {"name": "web-1", "namespace": "abc"}, "containers": [{"name": "app", "usage": {"cpu": "5m"}}]}

        def _list(group: str, version: str, plural: str) -> dict:
            return {"items": [backup]} if group == "velero.io" else {"items": [metrics]}

        custom = MagicMock()
        custom.list_cluster_custom_object.side_effect = _list
        snapshot = _make_collector(core, custom).collect(now=_NOW)

        assert snapshot.backups == (backup,)
        assert snapshot.pod_metrics["abc/web-1"]["app"].cpu == "5m"


class TestClusterName:
    def _collect_name(self, core: MagicMock) -> str:
        custom = MagicMock()
        custom.list_cluster_custom_object.return_value = {"items": []}
        return _make_collector(core, custom).collect(now=_NOW).cluster_name

    def test_cluster_info_config_map_wins(self) -> None:
        core = _make_core([], [_make_v1_node(labels={"cluster-name": "from-label"})], [])
        core.read_namespaced_config_map.side_effect = None
        core.read_namespaced_config_map.return_value = V1ConfigMap(data={"cluster-name": "from-configmap"})
        assert self._collect_name(core) == "from-configmap"

    def test_aks_node_pool_fallback(self) -> None:
        core = _make_core([], [_make_v1_node(labels={"kubernetes.azure.com/node-pool-name": "system"})], [])
        assert self._collect_name(core) == "AKS-system"

    def test_unknown_without_hints(self) -> None:
        core = _make_core([], [_make_v1_node()], [])
        assert self._collect_name(core) == "Unknown Cluster"

    def test_no_nodes(self) -> None:
        core = _make_core([], [], [])
        assert self._collect_name(core) == "Unknown Cluster"
