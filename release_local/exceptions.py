"""Exceptions related to release-local."""

__all__ = [
    "ReleaseException",
    "InputException",
    "ParseException",
    "CodecException",
    "CommandException",
    "HelmException",
    "RenderException",
    "FetchException",
    "KubectlException",
    "ApplyException",
    "HookRunException",
    "HookCleanupException",
    "JobWaitException",
    "ReleaseNotFoundException",
    "AggregateException",
    "GarbageCollectionException",
    "combine_errors",
]


class ReleaseException(Exception):
    """Generic base exception used for this library."""


class InputException(ReleaseException):
    """Raised when the input files or values are not formatted as expected."""


class ParseException(InputException):
    """Raised when a document segment of a manifest file is not valid YAML."""


class CodecException(InputException):
    """Raised when an object can't be decoded or encoded while labeling."""


class CommandException(ReleaseException):
    """Raised when there is a failure running a subcommand."""


class HelmException(CommandException):
    """Raised when there is a failure running a helm command."""


class RenderException(HelmException):
    """Raised when a chart fails to render into manifests."""


class FetchException(HelmException):
    """Raised when a chart can't be fetched from a chart repository."""


class KubectlException(CommandException):
    """Raised when there is a failure running a kubectl command."""


class ApplyException(KubectlException):
    """Raised when resources could not be created or applied to the cluster."""


class HookRunException(ReleaseException):
    """Raised when a hook could not be applied during a hook phase."""

    def __init__(self, phase: str, hook_name: str, message: str) -> None:
        super().__init__(f"Hook {hook_name} failed in phase {phase}: {message}")
        self.phase = phase
        self.hook_name = hook_name


class HookCleanupException(ReleaseException):
    """Raised when one or more hooks could not be deleted after a phase."""


class JobWaitException(KubectlException):
    """Raised when a Job did not complete successfully within the timeout."""


class ReleaseNotFoundException(ReleaseException):
    """Raised when no resources exist for a release."""


class AggregateException(ReleaseException):
    """Raised to report multiple errors together."""

    def __init__(self, errors: list[Exception]) -> None:
        super().__init__("\n".join(str(err) for err in errors))
        self.errors = errors


class GarbageCollectionException(AggregateException):
    """Raised when resources from older versions could not all be deleted."""


def combine_errors(*errors: Exception | None) -> Exception | None:
    """Combine the errors into a single error.

    Returns None when there are no errors and the error itself when there
    is only one.
    """
    found = [err for err in errors if err is not None]
    if not found:
        return None
    if len(found) == 1:
        return found[0]
    return AggregateException(found)
