"""Tests for exceptions library."""

from release_local.exceptions import (
    AggregateException,
    ApplyException,
    CommandException,
    GarbageCollectionException,
    HookCleanupException,
    HookRunException,
    ReleaseException,
    combine_errors,
)


def test_combine_no_errors() -> None:
    """Test combining when nothing failed."""
    assert combine_errors() is None
    assert combine_errors(None, None) is None


def test_combine_single_error() -> None:
    """Test a single error is returned as is."""
    err = HookCleanupException("Failed to delete hook")
    assert combine_errors(None, err, None) is err


def test_combine_multiple_errors() -> None:
    """Test multiple errors are aggregated with all messages."""
    first = HookCleanupException("Failed to delete hook")
    second = GarbageCollectionException(
        [CommandException("Failed to delete pvc"), CommandException("Failed to delete secret")]
    )
    combined = combine_errors(first, None, second)

    assert isinstance(combined, AggregateException)
    assert combined.errors == [first, second]
    assert str(combined) == (
        "Failed to delete hook\nFailed to delete pvc\nFailed to delete secret"
    )


def test_hook_run_exception() -> None:
    """Test the hook and phase are included in the error."""
    err = HookRunException("pre-install", "migrate", "Job is invalid")
    assert str(err) == "Hook migrate failed in phase pre-install: Job is invalid"
    assert err.phase == "pre-install"
    assert err.hook_name == "migrate"
    assert isinstance(err, ReleaseException)


def test_hierarchy() -> None:
    """Test command errors share a common base."""
    assert issubclass(ApplyException, CommandException)
    assert issubclass(GarbageCollectionException, ReleaseException)
