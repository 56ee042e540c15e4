"""
Global gradient-recording switches.

- `no_grad()`: functional wrappers still run forward, but do not attach a
  backward context to their outputs.
- `inference_mode()`: like `no_grad()`, and additionally reported through
  `is_inference_mode_enabled()` so operators can pick forward-only fast
  paths.

Both work as context managers and as function decorators, and restore the
previous state on exit (including on exceptions).
"""

from __future__ import annotations

import functools
from typing import Any, Callable

_grad_enabled: bool = True
_inference_mode: bool = False


def is_grad_enabled() -> bool:
    """Return True when differentiable ops should record backward contexts."""
    return _grad_enabled and not _inference_mode


def is_inference_mode_enabled() -> bool:
    """Return True inside an `inference_mode()` block."""
    return _inference_mode


def set_grad_enabled(mode: bool) -> None:
    """Turn gradient recording on or off globally (see `no_grad` for a scoped switch)."""
    global _grad_enabled
    _grad_enabled = bool(mode)


class _GradModeGuard:
    def __call__(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            with type(self)():
                return fn(*args, **kwargs)

        return wrapper


class no_grad(_GradModeGuard):
    """Context manager / decorator that disables gradient recording."""

    def __enter__(self) -> "no_grad":
        self._prev = _grad_enabled
        set_grad_enabled(False)
        return self

    def __exit__(self, *exc_info) -> None:
        set_grad_enabled(self._prev)


class inference_mode(_GradModeGuard):
    """Context manager / decorator that disables grad and enables inference mode."""

    def __enter__(self) -> "inference_mode":
        global _inference_mode
        self._prev_grad = _grad_enabled
        self._prev_inf = _inference_mode
        set_grad_enabled(False)
        _inference_mode = True
        return self

    def __exit__(self, *exc_info) -> None:
        global _inference_mode
        set_grad_enabled(self._prev_grad)
        _inference_mode = self._prev_inf
