"""Library for deleting resources left behind by older versions of a release.

Resources are found with label selectors over a fixed list of kinds, so
anything of a kind not in the list is never collected. Cluster scoped kinds
are only selected when they also carry the namespace label of the release,
which keeps releases of the same name in different namespaces apart.
"""

import logging

from .exceptions import GarbageCollectionException, ReleaseException
from .kubectl import Applier
from .manifest import LABEL_NAMESPACE, ReleaseIdentity

__all__ = [
    "GarbageCollector",
    "NAMESPACED_KINDS",
    "CLUSTER_KINDS",
]

_LOGGER = logging.getLogger(__name__)

NAMESPACED_KINDS = [
    "all",
    "pvc",
    "configmap",
    "release",
    "sa",
    "role",
    "rolebinding",
    "secret",
]
CLUSTER_KINDS = ["clusterrole", "clusterrolebinding"]


class GarbageCollector:
    """Deletes resources of a release selected by labels."""

    def __init__(
        self,
        applier: Applier,
        kinds: list[str] | None = None,
        cluster_kinds: list[str] | None = None,
    ) -> None:
        """Initialize GarbageCollector."""
        self._applier = applier
        self._kinds = kinds if kinds is not None else NAMESPACED_KINDS
        self._cluster_kinds = (
            cluster_kinds if cluster_kinds is not None else CLUSTER_KINDS
        )

    async def _delete_kinds(
        self,
        kinds: list[str],
        selector: str,
        namespace: str | None,
        wait: bool,
    ) -> list[Exception]:
        errors: list[Exception] = []
        for kind in kinds:
            try:
                await self._applier.delete(kind, selector, namespace, wait)
            except ReleaseException as err:
                _LOGGER.debug("Failed to delete %s with selector %s: %s", kind, selector, err)
                errors.append(err)
        return errors

    async def delete_by_selector(
        self, namespace: str, selector: str, wait: bool, message: str
    ) -> None:
        """Delete namespaced and cluster scoped resources matching the selector.

        Every kind is attempted, failures are raised together.
        """
        _LOGGER.info(
            "Removing resources from %s using selector: %s from %s",
            message,
            selector,
            " ".join(self._kinds),
        )
        errors = await self._delete_kinds(self._kinds, selector, namespace, wait)

        cluster_selector = f"{selector},{LABEL_NAMESPACE}={namespace}"
        _LOGGER.info(
            "Removing resources from %s using selector: %s from %s",
            message,
            cluster_selector,
            " ".join(self._cluster_kinds),
        )
        errors.extend(
            await self._delete_kinds(self._cluster_kinds, cluster_selector, None, wait)
        )
        if errors:
            raise GarbageCollectionException(errors)

    async def delete_old_resources(
        self, identity: ReleaseIdentity, wait: bool
    ) -> None:
        """Delete resources of the release from versions other than the current."""
        await self.delete_by_selector(
            identity.namespace, identity.stale_selector, wait, "older releases"
        )

    async def delete_release(self, release_name: str, namespace: str) -> None:
        """Delete every resource of the release."""
        identity = ReleaseIdentity(
            release_name=release_name, namespace=namespace, chart_name=""
        )
        await self.delete_by_selector(
            namespace, identity.release_selector, True, f"release {release_name}"
        )
