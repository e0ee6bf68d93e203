"""Utilities for tracing the steps of a release.

Steps nest, so every trace log line names the full path of the step it
belongs to, for example `Release 'demo' > Hooks pre-install`.
"""

import contextvars
from contextlib import contextmanager
import logging
from time import perf_counter
from typing import Generator


_LOGGER = logging.getLogger(__name__)

# No public API
__all__: list[str] = []


_STEPS: contextvars.ContextVar[tuple[str, ...]] = contextvars.ContextVar(
    "release_steps", default=()
)


def current_step() -> str:
    """The nested names of the running step, empty outside of any step."""
    return " > ".join(_STEPS.get())


@contextmanager
def trace_context(name: str) -> Generator[None, None, None]:
    """Log entry and exit of a named step with its duration.

    A step that raises is logged as failed and the error propagates.
    """
    token = _STEPS.set(_STEPS.get() + (name,))
    label = current_step()
    start = perf_counter()
    _LOGGER.debug("[Trace] > %s", label)
    try:
        yield
    except Exception:
        _LOGGER.debug("[Trace] ! %s failed (%0.2fs)", label, perf_counter() - start)
        raise
    else:
        _LOGGER.debug("[Trace] < %s (%0.2fs)", label, perf_counter() - start)
    finally:
        _STEPS.reset(token)
