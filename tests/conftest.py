"""Fixtures and fake collaborators for release-local tests."""

from pathlib import Path
from typing import Any

import pytest
import yaml

from release_local.exceptions import ApplyException, KubectlException
from release_local.helm import Fetcher, Renderer
from release_local.kubectl import Applier
from release_local.manifest import LABEL_RELEASE_NAME

# Maps an object kind to the resource name used when deleting it by selector
DELETE_KINDS = {
    "ConfigMap": "configmap",
    "Secret": "secret",
    "ServiceAccount": "sa",
    "Role": "role",
    "RoleBinding": "rolebinding",
    "ClusterRole": "clusterrole",
    "ClusterRoleBinding": "clusterrolebinding",
    "PersistentVolumeClaim": "pvc",
}


def selector_matches(selector: str, labels: dict[str, str]) -> bool:
    """Evaluate an equality based label selector."""
    for term in selector.split(","):
        if "!=" in term:
            key, value = term.split("!=")
            if labels.get(key) == value:
                return False
        else:
            key, value = term.split("=")
            if labels.get(key) != value:
                return False
    return True


class FakeApplier(Applier):
    """Applier that records calls and keeps resources in memory."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.resources: dict[tuple[str, str], dict[str, Any]] = {}
        self.deployments: list[dict[str, Any]] = []
        self.fail_apply: set[str] = set()
        self.fail_delete_kinds: set[str] = set()
        self.fail_delete_files: set[str] = set()
        self.fail_jobs: set[str] = set()

    @property
    def applied(self) -> list[str]:
        """Names of the files or directories that were applied."""
        return [call[1].name for call in self.calls if call[0] == "apply"]

    @property
    def deleted_files(self) -> list[str]:
        """Names of the files that were deleted."""
        return [call[1].name for call in self.calls if call[0] == "delete_file"]

    def add_resource(self, kind: str, name: str, labels: dict[str, str]) -> None:
        """Add a resource to the fake cluster."""
        self.resources[(kind, name)] = labels

    async def apply(
        self,
        path: Path,
        label_selector: str | None,
        namespace: str,
        create: bool,
        wait: bool,
    ) -> None:
        self.calls.append(("apply", path, label_selector, namespace, create, wait))
        if path.name in self.fail_apply:
            raise ApplyException(f"Failed to apply {path.name}")
        if not path.is_dir():
            return
        for file in sorted(path.rglob("*.yaml")):
            doc = yaml.safe_load(file.read_text())
            if not doc:
                continue
            labels = doc.get("metadata", {}).get("labels") or {}
            if label_selector and not selector_matches(label_selector, labels):
                continue
            kind = DELETE_KINDS.get(doc["kind"], "all")
            self.add_resource(kind, doc["metadata"]["name"], dict(labels))

    async def delete(
        self,
        kind: str,
        label_selector: str,
        namespace: str | None,
        wait: bool,
    ) -> str:
        self.calls.append(("delete", kind, label_selector, namespace, wait))
        if kind in self.fail_delete_kinds:
            raise KubectlException(f"Failed to delete {kind}")
        matches = [
            key
            for key, labels in self.resources.items()
            if key[0] == kind and selector_matches(label_selector, labels)
        ]
        if not matches:
            return "No resources found"
        for key in matches:
            del self.resources[key]
        return "\n".join(f"{kind} {name} deleted" for _, name in matches)

    async def delete_file(self, path: Path, namespace: str) -> None:
        self.calls.append(("delete_file", path, namespace))
        if path.name in self.fail_delete_files:
            raise KubectlException(f"Failed to delete {path.name}")

    async def list_resources(self, namespace: str, kind: str) -> list[dict[str, Any]]:
        self.calls.append(("list", namespace, kind))
        return self.deployments

    async def wait_for_job(
        self,
        namespace: str,
        name: str,
        timeout: float = 0,
        poll_interval: float = 0,
    ) -> None:
        self.calls.append(("wait_for_job", namespace, name))
        if name in self.fail_jobs:
            raise KubectlException(f"Job {name} did not complete")


class FakeHelm(Renderer, Fetcher):
    """Renderer that writes fixed templates and a fetcher for local charts."""

    def __init__(self, templates: dict[str, str]) -> None:
        self.templates = templates
        self.template_calls: list[dict[str, Any]] = []
        self.fetch_calls: list[str] = []

    async def template(
        self,
        chart_dir: Path,
        release_name: str,
        namespace: str,
        output_dir: Path,
        is_upgrade: bool = False,
        values: list[str] | None = None,
        value_files: list[str] | None = None,
    ) -> None:
        self.template_calls.append(
            {
                "chart_dir": chart_dir,
                "release_name": release_name,
                "namespace": namespace,
                "is_upgrade": is_upgrade,
                "values": values,
            }
        )
        templates_dir = output_dir / chart_dir.name / "templates"
        templates_dir.mkdir(parents=True, exist_ok=True)
        for name, content in self.templates.items():
            (templates_dir / name).write_text(content)

    async def fetch(
        self,
        chart: str,
        version: str | None,
        dest_dir: Path,
        repo: str | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> Path:
        self.fetch_calls.append(chart)
        return Path(chart)


def write_chart(chart_dir: Path, version: str = "1.0.0") -> Path:
    """Write a Chart.yaml for a test chart."""
    chart_dir.mkdir(parents=True, exist_ok=True)
    (chart_dir / "Chart.yaml").write_text(
        yaml.dump(
            {
                "apiVersion": "v2",
                "name": "demo",
                "version": version,
                "appVersion": "2.3.0",
                "description": "A demo chart",
            }
        )
    )
    return chart_dir


@pytest.fixture(name="applier")
def applier_fixture() -> FakeApplier:
    """Fixture for the fake cluster."""
    return FakeApplier()


@pytest.fixture(name="chart_dir")
def chart_dir_fixture(tmp_path: Path) -> Path:
    """Fixture for a local chart directory."""
    return write_chart(tmp_path / "charts" / "demo")


def release_labels(release: str, version: str) -> dict[str, str]:
    """Labels of a resource created by a release."""
    return {
        LABEL_RELEASE_NAME: release,
        "release-local.dev/version": version,
    }
