"""Library for labeling rendered resources and extracting chart hooks.

Every object rendered for a release is either a hook, which is moved out of
the output directory into the hooks directory and tracked with a
`HookDefinition`, or a steady state resource which is stamped with the
identity of the release so that it can later be selected for garbage
collection.
"""

import logging
from pathlib import Path

from aiofiles.os import makedirs, rename

from .exceptions import CodecException
from .manifest import (
    ANNOTATION_APP_VERSION,
    ANNOTATION_CHART_NAME,
    HOOK_ANNOTATION,
    HOOK_DELETE_POLICY_ANNOTATION,
    LABEL_CHART_VERSION,
    LABEL_NAMESPACE,
    LABEL_RELEASE_NAME,
    HookDefinition,
    ManifestObject,
    ReleaseIdentity,
    is_cluster_kind,
    split_names,
)
from .splitter import split_objects_in_file

__all__ = [
    "add_labels_to_files",
    "label_object",
]

_LOGGER = logging.getLogger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml")


def manifest_files(output_dir: Path) -> list[Path]:
    """Return the manifest files under the directory in lexical path order."""
    return sorted(
        path
        for path in output_dir.rglob("*")
        if path.is_file() and path.suffix in MANIFEST_SUFFIXES
    )


def label_object(obj: ManifestObject, identity: ReleaseIdentity) -> None:
    """Stamp the release identity onto a steady state object."""
    obj.set_value(identity.release_name, "metadata", "labels", LABEL_RELEASE_NAME)
    if is_cluster_kind(obj.kind):
        obj.set_value(identity.namespace, "metadata", "labels", LABEL_NAMESPACE)
    obj.set_value(identity.chart_version, "metadata", "labels", LABEL_CHART_VERSION)
    if identity.app_version:
        obj.set_value(
            identity.app_version, "metadata", "annotations", ANNOTATION_APP_VERSION
        )
    obj.set_value(identity.chart_name, "metadata", "annotations", ANNOTATION_CHART_NAME)


async def _move_hook(
    obj: ManifestObject, output_dir: Path, hooks_dir: Path
) -> HookDefinition:
    """Move a hook object into the hooks directory at the same relative path."""
    rel_path = obj.source_file.relative_to(output_dir)
    new_path = hooks_dir / rel_path
    await makedirs(new_path.parent, exist_ok=True)
    try:
        await rename(obj.source_file, new_path)
    except OSError as err:
        _LOGGER.warning(
            "Failed to move hook template %s to %s: %s",
            obj.source_file,
            new_path,
            err,
        )
        raise CodecException(
            f"Failed to move hook template {obj.source_file}: {err}"
        ) from err
    return HookDefinition(
        kind=obj.kind,
        name=obj.name,
        file_path=new_path,
        phases=split_names(obj.get_str("metadata", "annotations", HOOK_ANNOTATION)),
        delete_policies=split_names(
            obj.get_str("metadata", "annotations", HOOK_DELETE_POLICY_ANNOTATION)
        ),
    )


async def add_labels_to_files(
    output_dir: Path, hooks_dir: Path, identity: ReleaseIdentity
) -> list[HookDefinition]:
    """Split, label and extract hooks from the rendered manifests.

    Files are visited in lexical path order, which is also the order of the
    returned hooks. Files labeled before a failure are left as they are.
    """
    hooks: list[HookDefinition] = []
    for path in manifest_files(output_dir):
        for obj_file in await split_objects_in_file(path):
            obj = await ManifestObject.read(obj_file)
            if split_names(obj.get_str("metadata", "annotations", HOOK_ANNOTATION)):
                hook = await _move_hook(obj, output_dir, hooks_dir)
                _LOGGER.debug(
                    "Found hook %s/%s for phases %s",
                    hook.kind,
                    hook.name,
                    ",".join(sorted(hook.phases)),
                )
                hooks.append(hook)
                continue
            label_object(obj, identity)
            await obj.write()
    _LOGGER.info(
        "Labeled resources for release %s version '%s' with %d hooks",
        identity.release_name,
        identity.chart_version,
        len(hooks),
    )
    return hooks
