"""
Concrete Tensor implementation (NumPy backend) and the autograd engine.

This module provides a concrete `Tensor` that satisfies the domain-level
`ITensor` protocol. CPU tensors are backed by NumPy arrays. CUDA tensors
carry their placement but only a placeholder for storage: no CUDA kernels
are registered, so any attempt to compute with them fails with
`DeviceNotSupportedError` at kernel lookup, after device-residency checks
have run.

Design notes
------------
- Automatic differentiation is expressed by attaching an optional `Context`
  to output tensors. `Tensor.backward` walks `Context.parents` links in
  reverse topological order and hands each node's gradient to its
  `backward_fn`.
- `Context.parents` may hold non-tensor forward inputs (ints, bools). Such
  parents are never traversed and must receive a `None` gradient slot.
- Element dtype is preserved across the NumPy boundary so integer tensors
  (lengths, offsets, indices) keep their integer type.
"""

from __future__ import annotations

from typing import Any, Optional, Union

import numpy as np

from ...domain._tensor import ITensor
from ...domain.device._device import Device
from ...domain._errors import DeviceNotSupportedError
from ._tensor_context import Context


class Tensor(ITensor):
    """
    Concrete tensor implementation (NumPy CPU backend, CUDA placeholder).

    Parameters
    ----------
    shape : tuple[int, ...]
        Tensor shape.
    device : Device | str
        Target device placement for the tensor. Strings such as "cpu" or
        "cuda:0" are parsed with `Device.coerce`.
    requires_grad : bool, optional
        Whether this tensor should accumulate gradients during backprop.
        Defaults to False.
    ctx : Optional[Context], optional
        Backward context for autograd graph traversal. Typically set internally
        by differentiable operations. Defaults to None.
    dtype : np.dtype, optional
        Element dtype for this tensor. Defaults to np.float32.

    Notes
    -----
    - For CPU tensors, `_data` is a zero-initialized NumPy ndarray.
    - For CUDA tensors, `_data` is None.
    - Gradients (if any) are stored as another `Tensor` in `_grad`.
    """

    def __init__(
        self,
        shape: tuple[int, ...],
        device: Union[Device, str],
        *,
        requires_grad: bool = False,
        ctx: Optional[Context] = None,
        dtype: np.dtype = np.float32,
    ) -> None:
        self._shape = tuple(int(d) for d in shape)
        self._device = Device.coerce(device)
        self._dtype = np.dtype(dtype)

        if self._device.is_cpu():
            self._data: Optional[np.ndarray] = np.zeros(self._shape, dtype=self._dtype)
        else:
            self._data = None

        # --- autograd fields (optional) ---
        self._requires_grad: bool = bool(requires_grad)
        self._grad: Optional["Tensor"] = None
        self._ctx: Optional[Context] = ctx

    def __repr__(self) -> str:
        return (
            f"Tensor(shape={self._shape}, device={self._device}, "
            f"dtype={self._dtype}, requires_grad={self._requires_grad})"
        )

    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def device(self) -> Device:
        return self._device

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def requires_grad(self) -> bool:
        return self._requires_grad

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None:
        self._requires_grad = bool(value)

    @property
    def grad(self) -> Optional["Tensor"]:
        """
        Return the gradient tensor accumulated into this tensor (if any).

        Returns
        -------
        Optional[Tensor]
            The stored gradient tensor, or None if not computed or cleared.
        """
        return self._grad

    def zero_grad(self) -> None:
        """Clear the stored gradient."""
        self._grad = None

    def _set_ctx(self, ctx: Optional[Context]) -> None:
        """Attach (or, with None, detach) the backward context."""
        self._ctx = ctx

    def _get_ctx(self) -> Optional[Context]:
        """Return the backward context attached to this tensor, if any."""
        return self._ctx

    def _raise_device_not_supported(self, op: str) -> None:
        raise DeviceNotSupportedError(op=op, device=str(self._device))

    def numel(self) -> int:
        n = 1
        for d in self._shape:
            n *= d
        return n

    # ------------------------------------------------------------------
    # NumPy boundary
    # ------------------------------------------------------------------
    def to_numpy(self) -> np.ndarray:
        """
        Return the NumPy array backing this tensor.

        Returns
        -------
        np.ndarray
            The underlying CPU storage (not a copy).

        Raises
        ------
        DeviceNotSupportedError
            If the tensor does not live on the CPU.
        """
        if not self._device.is_cpu():
            self._raise_device_not_supported("to_numpy")
        return self._data

    def copy_from_numpy(self, arr: Any) -> None:
        """
        Copy an array-like (or scalar) into this tensor, casting to `self.dtype`.

        Raises
        ------
        ValueError
            If the array shape does not match this tensor's shape.
        DeviceNotSupportedError
            If the tensor does not live on the CPU.
        """
        arr_nd = np.asarray(arr, dtype=self._dtype)
        if arr_nd.shape != self._shape:
            raise ValueError(
                f"Shape mismatch: tensor {self._shape} vs array {arr_nd.shape}"
            )
        if not self._device.is_cpu():
            self._raise_device_not_supported("copy_from_numpy")
        self._data[...] = arr_nd

    @staticmethod
    def _from_numpy(arr: Any, *, device: Device, requires_grad: bool = False) -> "Tensor":
        """
        Construct a CPU-resident Tensor from a NumPy array, keeping its dtype.

        The array is copied; later modifications to `arr` do not affect the
        tensor. No autograd context is attached.
        """
        arr = np.asarray(arr)
        t = Tensor(
            shape=arr.shape,
            device=device,
            requires_grad=requires_grad,
            ctx=None,
            dtype=arr.dtype,
        )
        t.copy_from_numpy(arr)
        return t

    def item(self) -> float:
        """
        Return the value of a single-element CPU tensor as a Python float.

        Raises
        ------
        ValueError
            If the tensor does not contain exactly one element.
        """
        if self.numel() != 1:
            raise ValueError(
                f"Tensor.item() requires a scalar/1-element tensor, got shape={self.shape}"
            )
        return float(self.to_numpy().reshape(-1)[0])

    # ------------------------------------------------------------------
    # Autograd engine
    # ------------------------------------------------------------------
    def _accumulate_grad_(self, g: "Tensor") -> None:
        """In-place accumulate gradient `g` into `self.grad` (CPU-only)."""
        if not self.device.is_cpu():
            self._raise_device_not_supported("accumulate_grad")

        if self._grad is None:
            self._grad = self._detach_no_grad(g)
            return

        if self._grad.shape != g.shape:
            raise ValueError(f"Grad shape mismatch: {self._grad.shape} vs {g.shape}")

        self._grad._data[...] = self._grad._data + g.to_numpy()

    @staticmethod
    def _detach_no_grad(t: "Tensor") -> "Tensor":
        """Return a copy of `t` that does not track gradients and has no ctx."""
        if not t.device.is_cpu():
            t._raise_device_not_supported("detach_no_grad")
        return Tensor._from_numpy(t.to_numpy(), device=t.device)

    @staticmethod
    def _add_no_grad(a: "Tensor", b: "Tensor") -> "Tensor":
        """Add two tensors without creating autograd history."""
        if a.device != b.device:
            raise ValueError("Device mismatch in _add_no_grad")
        if a.shape != b.shape:
            raise ValueError("Shape mismatch in _add_no_grad")
        if not a.device.is_cpu():
            a._raise_device_not_supported("add_no_grad")
        return Tensor._from_numpy(a.to_numpy() + b.to_numpy(), device=a.device)

    def backward(self, grad_out: Optional["Tensor"] = None) -> None:
        """
        Backpropagate gradients from this tensor through the autograd graph.

        Parameters
        ----------
        grad_out : Optional[Tensor], optional
            Gradient w.r.t. this tensor. If omitted, this tensor must hold a
            single element and the gradient is assumed to be 1.

        Raises
        ------
        ValueError
            If `grad_out` is missing for a multi-element tensor, or a
            gradient's shape or device does not match its parent.
        RuntimeError
            If a `backward_fn` returns the wrong number of gradient slots, or
            a gradient for a non-tensor parent.

        Notes
        -----
        - Gradients are accumulated into `.grad` of every reachable tensor
          with `requires_grad=True`.
        - Each node's gradient is fully accumulated before its `backward_fn`
          runs, so every context is consumed exactly once.
        """
        if grad_out is None:
            if self.numel() != 1:
                raise ValueError(
                    "grad_out must be provided for non-scalar tensors. "
                    f"Got shape={self.shape}."
                )
            grad_out = Tensor._from_numpy(
                np.ones(self.shape, dtype=self.dtype), device=self.device
            )
        else:
            if not isinstance(grad_out, Tensor):
                raise TypeError(f"grad_out must be a Tensor, got {type(grad_out)!r}")
            if grad_out.shape != self.shape:
                raise ValueError(
                    f"grad_out shape mismatch: expected {self.shape}, got {grad_out.shape}"
                )
            if grad_out.device != self.device:
                raise ValueError("grad_out must be on the same device as self")

        # Build reverse topological order of nodes reachable from `self`
        topo: list[Tensor] = []
        visited: set[int] = set()

        def dfs(t: "Tensor") -> None:
            if id(t) in visited:
                return
            visited.add(id(t))
            ctx = t._get_ctx()
            if ctx is not None:
                for p in ctx.parents:
                    if isinstance(p, Tensor):
                        dfs(p)
            topo.append(t)

        dfs(self)

        grads: dict[int, Tensor] = {id(self): grad_out}

        for t in reversed(topo):
            ctx = t._get_ctx()
            if ctx is None:
                continue
            grad_t = grads.get(id(t))
            if grad_t is None:
                continue

            parent_grads = ctx.backward_fn(grad_t)
            if len(parent_grads) != len(ctx.parents):
                raise RuntimeError(
                    "backward_fn must return one grad per parent. "
                    f"Got {len(parent_grads)} grads for {len(ctx.parents)} parents."
                )

            for parent, g in zip(ctx.parents, parent_grads):
                if g is None:
                    continue
                if not isinstance(parent, Tensor):
                    raise RuntimeError(
                        f"backward_fn returned a gradient for non-tensor input {parent!r}"
                    )
                if not isinstance(g, Tensor):
                    raise TypeError(
                        f"backward_fn must return Tensor or None, got {type(g)!r}"
                    )
                if g.device != parent.device:
                    raise ValueError("Gradient device must match parent device")
                if g.shape != parent.shape:
                    raise ValueError(
                        f"Gradient shape mismatch for parent: expected {parent.shape}, got {g.shape}"
                    )

                pid = id(parent)
                if pid in grads:
                    grads[pid] = self._add_no_grad(grads[pid], g)
                else:
                    grads[pid] = self._detach_no_grad(g)

        for t in topo:
            g = grads.get(id(t))
            if g is not None and t.requires_grad:
                t._accumulate_grad_(g)
