"""
Helpers shared by the sparse autograd functions.

- `check_same_device`: device-residency precondition for cooperating tensors.
- `check_grad_arity`: validates how many gradient outputs backward received.
- `compute_sort_permutation`: the locality sort used by index select, shared
  by forward and by the deferred-sort backward path.
- `resolve_kernel`: kernel lookup through the registry a context was
  created with.
- `apply_function`: the functional-wrapper plumbing (context construction,
  forward, freeze, conditional attachment) used by every public entry point.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, NamedTuple, Optional, Sequence, Type

from ...domain._errors import DeviceMismatchError, InvalidArgumentError
from ...domain._function import Function
from ..autograd._grad_mode import is_grad_enabled
from ..ops._registry import KernelRegistry, default_registry
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context


class SortedIndexPermutation(NamedTuple):
    """`sorted_indices[i] == indices[orig_indices[i]]`, ascending."""

    sorted_indices: Tensor
    orig_indices: Tensor


def check_same_device(*tensors: Tensor) -> None:
    """
    Raise `DeviceMismatchError` unless every tensor lives on the same device.
    """
    first = tensors[0]
    for t in tensors[1:]:
        if t.device != first.device:
            raise DeviceMismatchError(str(first.device), str(t.device))


def check_grad_arity(op: str, grad_outputs: Sequence[Any], allowed: Iterable[int]) -> None:
    allowed = tuple(allowed)
    if len(grad_outputs) not in allowed:
        expected = " or ".join(str(n) for n in allowed)
        raise InvalidArgumentError(
            op, f"expected {expected} gradient output(s), got {len(grad_outputs)}"
        )


def check_is_tensor(op: str, **named: Any) -> None:
    for name, value in named.items():
        if not isinstance(value, Tensor):
            raise TypeError(f"{op} expects {name} to be a Tensor, got {type(value)!r}")


def _registry_or_default(registry: Optional[KernelRegistry]) -> KernelRegistry:
    return default_registry() if registry is None else registry


def resolve_kernel(ctx: Context, name: str, device: Any) -> Callable[..., Any]:
    """Return kernel `name` for `device` from the registry `ctx` was created with."""
    return _registry_or_default(ctx.registry).resolve(name, device)


def compute_sort_permutation(
    indices: Tensor, registry: Optional[KernelRegistry] = None
) -> SortedIndexPermutation:
    """
    Sort `indices` ascending, keeping the permutation that produced the order.

    The sort is stable, so the result depends only on `indices`.
    """
    kernel = _registry_or_default(registry).resolve("sort_indices", indices.device)
    sorted_indices, orig_indices = kernel(indices)
    return SortedIndexPermutation(sorted_indices, orig_indices)


def apply_function(
    fn: Type[Function],
    *inputs: Any,
    differentiable: Sequence[Tensor],
    registry: Optional[KernelRegistry] = None,
) -> Tensor:
    """
    Run `fn.forward` under a fresh context and wire it into the graph.

    Parameters
    ----------
    fn : type[Function]
        The autograd function to apply.
    *inputs : Any
        Forward inputs, in `fn.forward` order. All of them become
        `ctx.parents`, so backward returns one slot per input.
    differentiable : Sequence[Tensor]
        Inputs whose `requires_grad` decides whether the output is tracked.
    registry : KernelRegistry, optional
        Registry that serves every kernel of this call, forward and
        backward. Defaults to `default_registry()`.

    Returns
    -------
    Tensor
        The forward output. When grad mode is on and any differentiable
        input requires grad, the output requires grad and carries the
        frozen context; its backward consumes the context exactly once.
    """

    def backward_fn(grad_out: Tensor):
        ctx.consume()
        return fn.backward(ctx, grad_out)

    ctx = Context(parents=inputs, backward_fn=backward_fn, registry=registry)
    out = fn.forward(ctx, *inputs)
    ctx.freeze()

    if is_grad_enabled() and any(t.requires_grad for t in differentiable):
        out.requires_grad = True
        out._set_ctx(ctx)
    return out
