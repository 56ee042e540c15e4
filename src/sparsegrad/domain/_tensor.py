"""
Tensor interface definitions.

This module defines the domain-level interface for tensor-like objects using
structural typing. Operators and kernels only read shapes, dtypes and device
placement from the tensors they receive, and they hand host data across the
NumPy boundary through `to_numpy` / `_from_numpy`; the protocol captures that
surface and nothing more.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from .device._device_protocol import DeviceLike


@runtime_checkable
class ITensor(Protocol):
    """
    Tensor interface.

    An `ITensor` is an n-dimensional array handle that participates in
    numerical computation and, optionally, automatic differentiation.

    Notes
    -----
    The autograd hooks (`_set_ctx`, `_get_ctx`, `_accumulate_grad_`) are
    included because the engine in `Tensor.backward` traverses them.
    """

    @property
    def shape(self) -> tuple[int, ...]:
        """Return the shape of the tensor."""
        ...

    @property
    def device(self) -> DeviceLike:
        """Return the device on which this tensor resides."""
        ...

    @property
    def dtype(self) -> Any:
        """Return the element dtype."""
        ...

    @property
    def requires_grad(self) -> bool:
        """Indicate whether this tensor should accumulate gradients."""
        ...

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None: ...

    @property
    def grad(self) -> Optional["ITensor"]:
        """Return the accumulated gradient, or None."""
        ...

    def zero_grad(self) -> None:
        """Clear the stored gradient."""
        ...

    def numel(self) -> int:
        """Return the total number of elements."""
        ...

    def to_numpy(self) -> Any:
        """
        Return the host array backing this tensor.

        Raises
        ------
        DeviceNotSupportedError
            If the tensor's device has no host-visible storage.
        """
        ...

    def copy_from_numpy(self, arr: Any) -> None:
        """
        Copy a shape-compatible host array into this tensor.

        Raises
        ------
        ValueError
            If the array shape does not match this tensor's shape.
        """
        ...

    def backward(self, grad_out: Optional["ITensor"] = None) -> None:
        """Backpropagate gradients from this tensor through the graph."""
        ...

    def _set_ctx(self, ctx: Optional[Any]) -> None: ...

    def _get_ctx(self) -> Optional[Any]: ...

    def _accumulate_grad_(self, g: "ITensor") -> None: ...
