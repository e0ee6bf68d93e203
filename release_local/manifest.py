"""Representation of release identity and the objects rendered from a chart.

Rendered objects are kept as plain dictionaries decoded with PyYAML. Python
dictionaries preserve insertion order and objects are always encoded with
`sort_keys=False`, so adding labels or annotations never reorders the
unrelated fields of an object when it is written back to disk.
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

import aiofiles
from mashumaro import DataClassDictMixin, field_options
from mashumaro.codecs.yaml import yaml_encode
from mashumaro.config import BaseConfig
import yaml

from .exceptions import CodecException, InputException

__all__ = [
    "ReleaseIdentity",
    "ChartMetadata",
    "HookDefinition",
    "ManifestObject",
    "ReleaseSummary",
    "is_cluster_kind",
]

_LOGGER = logging.getLogger(__name__)


LABEL_DOMAIN = "release-local.dev"

ANNOTATION_CHART_NAME = f"{LABEL_DOMAIN}/chart"
ANNOTATION_APP_VERSION = f"{LABEL_DOMAIN}/chart-app-version"

LABEL_RELEASE_NAME = f"{LABEL_DOMAIN}/chart-release"
# Only set on cluster scoped resources, which have no namespace of their own
LABEL_NAMESPACE = f"{LABEL_DOMAIN}/namespace"
LABEL_CHART_VERSION = f"{LABEL_DOMAIN}/version"

HOOK_ANNOTATION = "helm.sh/hook"
HOOK_DELETE_POLICY_ANNOTATION = "helm.sh/hook-delete-policy"

HOOK_SUCCEEDED = "hook-succeeded"
HOOK_FAILED = "hook-failed"

CHART_FILE_NAME = "Chart.yaml"
JOB_KIND = "Job"
DEPLOYMENT_KIND = "Deployment"


class _ManifestLoader(yaml.SafeLoader):
    """Loader that reads a bare `=` as a string.

    See https://github.com/yaml/pyyaml/issues/89
    """


_ManifestLoader.yaml_implicit_resolvers = {
    key: resolvers
    for key, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
    if key != "="
}


class _ManifestDumper(yaml.SafeDumper):
    """Dumper that writes multi-line strings as literal blocks."""


def _str_presenter(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    """Represent multi-line yaml strings as you'd expect.

    See https://github.com/yaml/pyyaml/issues/240
    """
    return dumper.represent_scalar(
        "tag:yaml.org,2002:str", data, style="|" if data.count("\n") > 0 else None
    )


_ManifestDumper.add_representer(str, _str_presenter)


def decode_document(
    content: str, exc: type[InputException] = CodecException
) -> dict[str, Any] | None:
    """Decode a single YAML document.

    Returns None for an empty document and raises `exc` when the content is
    not valid YAML or is not a mapping.
    """
    try:
        doc = yaml.load(content, Loader=_ManifestLoader)
    except yaml.YAMLError as err:
        raise exc(f"Unable to parse YAML: {err}") from err
    if doc is None:
        return None
    if not isinstance(doc, dict):
        raise exc(f"Expected a YAML mapping but found {type(doc).__name__}")
    return doc


def encode_document(doc: dict[str, Any]) -> str:
    """Encode a document, preserving the order of its fields."""
    try:
        return yaml.dump(
            doc, Dumper=_ManifestDumper, sort_keys=False, default_flow_style=False
        )
    except yaml.YAMLError as err:
        raise CodecException(f"Unable to encode YAML: {err}") from err


def is_cluster_kind(kind: str) -> bool:
    """Return true if the kind or resource name is a cluster wide resource."""
    lower = kind.lower()
    return lower.startswith("cluster") or lower == "namespace"


def split_names(value: str | None) -> frozenset[str]:
    """Parse a comma separated annotation value into a set of names."""
    if not value:
        return frozenset()
    return frozenset(name.strip() for name in value.split(",") if name.strip())


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all serializable objects."""

    def yaml(self) -> str:
        """Return a YAML string representation of the object."""
        return yaml_encode(self, self.__class__)  # type: ignore[return-value]

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass
class ChartMetadata(BaseManifest):
    """The metadata of a chart read from its Chart.yaml file."""

    name: str
    """The name of the chart."""

    version: str | None = None
    """The version of the chart."""

    app_version: str | None = field(
        default=None, metadata=field_options(alias="appVersion")
    )
    """The version of the application packaged in the chart."""

    description: str | None = None
    """A single sentence description of the chart."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "ChartMetadata":
        """Parse a ChartMetadata from the contents of a Chart.yaml file."""
        if not (name := doc.get("name")):
            raise InputException(f"Invalid chart missing name: {doc}")
        version = doc.get("version")
        app_version = doc.get("appVersion")
        return cls(
            name=str(name),
            version=str(version) if version is not None else None,
            app_version=str(app_version) if app_version is not None else None,
            description=doc.get("description"),
        )


@dataclass
class ReleaseIdentity(BaseManifest):
    """The identity stamped onto every resource of a release."""

    release_name: str
    """The name of the release."""

    namespace: str
    """The namespace the release is installed into."""

    chart_name: str
    """The chart name, from chart metadata or the chart reference."""

    chart_version: str = ""
    """The resolved chart version, empty when it is unknown."""

    app_version: str | None = None
    """The app version from chart metadata."""

    @classmethod
    def resolve(
        cls,
        release_name: str,
        namespace: str,
        chart: str,
        version: str | None,
        metadata: ChartMetadata | None,
    ) -> "ReleaseIdentity":
        """Resolve the identity of a release from the chart being installed.

        An explicit version wins over the version in the chart metadata.
        """
        chart_version = version or (metadata.version if metadata else None) or ""
        chart_name = (metadata.name if metadata else None) or chart
        return cls(
            release_name=release_name,
            namespace=namespace,
            chart_name=chart_name,
            chart_version=chart_version,
            app_version=(metadata.app_version if metadata else None) or None,
        )

    @property
    def release_selector(self) -> str:
        """Label selector matching every version of the release."""
        return f"{LABEL_RELEASE_NAME}={self.release_name}"

    @property
    def stale_selector(self) -> str:
        """Label selector matching resources of other versions of the release."""
        return f"{self.release_selector},{LABEL_CHART_VERSION}!={self.chart_version}"


@dataclass
class HookDefinition(BaseManifest):
    """A hook object moved out of the set of steady state resources."""

    kind: str
    """The kind of the hook object."""

    name: str
    """The name of the hook object."""

    file_path: Path
    """The file in the hooks directory holding the object."""

    phases: frozenset[str] = frozenset()
    """The hook phases the object is applied in."""

    delete_policies: frozenset[str] = frozenset()
    """The hook outcomes that cause the object to be deleted."""

    def matches(self, phase: str, delete_policy: str | None = None) -> bool:
        """Return true if the hook runs in the phase and has the delete policy."""
        if phase not in self.phases:
            return False
        return delete_policy is None or delete_policy in self.delete_policies


@dataclass
class ManifestObject:
    """A single decoded object from a rendered manifest file."""

    doc: dict[str, Any]
    """The decoded object."""

    source_file: Path
    """The file the object was read from."""

    @classmethod
    async def read(cls, path: Path) -> "ManifestObject":
        """Decode an object from a file holding exactly one document.

        The file may still contain separators around empty or comment only
        segments, these are ignored.
        """
        try:
            async with aiofiles.open(path) as manifest_file:
                content = await manifest_file.read()
        except OSError as err:
            raise CodecException(f"Failed to load file {path}: {err}") from err
        try:
            docs = [
                doc for doc in yaml.load_all(content, Loader=_ManifestLoader) if doc
            ]
        except yaml.YAMLError as err:
            raise CodecException(
                f"Failed to parse YAML of file {path}: Unable to parse YAML: {err}"
            ) from err
        if len(docs) > 1:
            raise CodecException(
                f"Expected a single object in file {path} but found {len(docs)}"
            )
        doc = docs[0] if docs else {}
        if not isinstance(doc, dict):
            raise CodecException(
                f"Failed to parse YAML of file {path}: Expected a YAML mapping "
                f"but found {type(doc).__name__}"
            )
        return cls(doc=doc, source_file=path)

    async def write(self, path: Path | None = None) -> None:
        """Encode the object, overwriting the source file by default."""
        path = path or self.source_file
        content = encode_document(self.doc)
        try:
            async with aiofiles.open(path, mode="w") as manifest_file:
                await manifest_file.write(content)
        except OSError as err:
            raise CodecException(f"Failed to write YAML file {path}: {err}") from err

    @property
    def kind(self) -> str:
        """The kind of the object."""
        return self.get_str("kind")

    @property
    def name(self) -> str:
        """The name of the object."""
        return self.get_str("metadata", "name")

    def get_value(self, *keys: str) -> Any:
        """Return the nested value at the keys or None if missing."""
        value: Any = self.doc
        for key in keys:
            if not isinstance(value, dict):
                return None
            value = value.get(key)
        return value

    def get_str(self, *keys: str) -> str:
        """Return the nested string value at the keys or an empty string."""
        value = self.get_value(*keys)
        return value if isinstance(value, str) else ""

    def set_value(self, value: str, *keys: str) -> None:
        """Set a nested value, creating intermediate mappings as needed.

        New keys are appended after the existing fields of a mapping.
        """
        current = self.doc
        for key in keys[:-1]:
            child = current.get(key)
            if child is None:
                child = {}
                current[key] = child
            elif not isinstance(child, dict):
                raise CodecException(
                    f"Could not set {'.'.join(keys)} in {self.source_file}: "
                    f"{key} is a {type(child).__name__} not a mapping"
                )
            current = child
        current[keys[-1]] = value

    def __str__(self) -> str:
        return f"{self.kind}/{self.name}"


@dataclass
class ReleaseSummary(BaseManifest):
    """Summary of an installed release."""

    release_name: str
    namespace: str
    chart: str
    chart_version: str
    app_version: str | None = None
    revision: str | None = None
    updated: str | None = None
    status: str | None = None

    @property
    def chart_full_name(self) -> str:
        """The chart name and version joined."""
        return f"{self.chart}-{self.chart_version}"

    @classmethod
    def parse_deployment(
        cls, doc: dict[str, Any], namespace: str
    ) -> "ReleaseSummary | None":
        """Summarize the release a Deployment belongs to.

        Returns None for deployments which were not created by a release.
        """
        metadata = doc.get("metadata") or {}
        labels = metadata.get("labels") or {}
        annotations = metadata.get("annotations") or {}
        if not (release_name := labels.get(LABEL_RELEASE_NAME)):
            return None
        status = doc.get("status") or {}
        state = "ERROR"
        if status.get("replicas", 0) > 0:
            if status.get("unavailableReplicas", 0) > 0:
                state = "PENDING"
            else:
                state = "DEPLOYED"
        generation = metadata.get("generation")
        return cls(
            release_name=release_name,
            namespace=namespace,
            chart=annotations.get(ANNOTATION_CHART_NAME, ""),
            chart_version=labels.get(LABEL_CHART_VERSION, ""),
            app_version=annotations.get(ANNOTATION_APP_VERSION),
            revision=str(generation) if generation is not None else None,
            updated=metadata.get("creationTimestamp"),
            status=state,
        )
