"""
release-local installs and upgrades charts entirely client side.

Charts are rendered with `helm template`, every rendered resource is labeled
with the release name and chart version and then applied with `kubectl`.
Chart hooks run around the main apply, and resources from older versions of
the release are garbage collected by label selector once the new version has
been applied.
"""

__all__ = [
    "release",
    "manifest",
    "splitter",
    "labeler",
    "hooks",
    "garbage",
    "helm",
    "kubectl",
    "exceptions",
    "config",
    "workdir",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
