"""Tests for the garbage collector."""

import pytest

from release_local.exceptions import GarbageCollectionException
from release_local.garbage import CLUSTER_KINDS, NAMESPACED_KINDS, GarbageCollector
from release_local.manifest import LABEL_NAMESPACE, ReleaseIdentity

from .conftest import FakeApplier, release_labels

IDENTITY = ReleaseIdentity(
    release_name="demo",
    namespace="demo-ns",
    chart_name="demo",
    chart_version="2.0.0",
)


async def test_delete_old_resources(applier: FakeApplier) -> None:
    """Test only resources of other versions of the release are deleted."""
    applier.add_resource("configmap", "current", release_labels("demo", "2.0.0"))
    applier.add_resource("configmap", "stale", release_labels("demo", "1.0.0"))
    applier.add_resource("secret", "other", release_labels("other", "1.0.0"))
    applier.add_resource("configmap", "unlabeled", {})

    await GarbageCollector(applier).delete_old_resources(IDENTITY, wait=False)

    assert set(applier.resources) == {
        ("configmap", "current"),
        ("secret", "other"),
        ("configmap", "unlabeled"),
    }


async def test_kinds_and_selectors(applier: FakeApplier) -> None:
    """Test every kind is deleted with the expected selector and scope."""
    await GarbageCollector(applier).delete_old_resources(IDENTITY, wait=True)

    selector = "release-local.dev/chart-release=demo,release-local.dev/version!=2.0.0"
    cluster_selector = f"{selector},{LABEL_NAMESPACE}=demo-ns"
    assert applier.calls == [
        ("delete", kind, selector, "demo-ns", True) for kind in NAMESPACED_KINDS
    ] + [("delete", kind, cluster_selector, None, True) for kind in CLUSTER_KINDS]


async def test_cluster_resources_scoped_by_namespace(applier: FakeApplier) -> None:
    """Test cluster resources of a release in another namespace are kept."""
    applier.add_resource(
        "clusterrole",
        "demo-ns-reader",
        {**release_labels("demo", "1.0.0"), LABEL_NAMESPACE: "demo-ns"},
    )
    applier.add_resource(
        "clusterrole",
        "other-ns-reader",
        {**release_labels("demo", "1.0.0"), LABEL_NAMESPACE: "other-ns"},
    )

    await GarbageCollector(applier).delete_old_resources(IDENTITY, wait=False)

    assert set(applier.resources) == {("clusterrole", "other-ns-reader")}


async def test_delete_release(applier: FakeApplier) -> None:
    """Test deleting a release removes every version and waits."""
    applier.add_resource("configmap", "current", release_labels("demo", "2.0.0"))
    applier.add_resource("configmap", "stale", release_labels("demo", "1.0.0"))
    applier.add_resource("configmap", "other", release_labels("other", "1.0.0"))

    await GarbageCollector(applier).delete_release("demo", "demo-ns")

    assert set(applier.resources) == {("configmap", "other")}
    assert all(call[-1] for call in applier.calls)


async def test_custom_kinds(applier: FakeApplier) -> None:
    """Test the kinds to delete can be overridden."""
    collector = GarbageCollector(applier, kinds=["configmap"], cluster_kinds=[])
    await collector.delete_old_resources(IDENTITY, wait=False)
    assert [call[1] for call in applier.calls] == ["configmap"]


async def test_failures_are_collected(applier: FakeApplier) -> None:
    """Test every kind is attempted when some deletes fail."""
    applier.fail_delete_kinds.update(["pvc", "clusterrole"])
    applier.add_resource("secret", "stale", release_labels("demo", "1.0.0"))

    with pytest.raises(GarbageCollectionException) as exc_info:
        await GarbageCollector(applier).delete_old_resources(IDENTITY, wait=False)

    assert [str(err) for err in exc_info.value.errors] == [
        "Failed to delete pvc",
        "Failed to delete clusterrole",
    ]
    assert len(applier.calls) == len(NAMESPACED_KINDS) + len(CLUSTER_KINDS)
    assert not applier.resources
