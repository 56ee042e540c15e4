"""
Autograd `Function` for packing ragged segments into a padded tensor.

`PackSegmentsFn` treats the leading dimension of its input as the
concatenation of variable-length segments and produces a dense
`[num_segments, max_length, ...]` tensor (zero-padded, truncated past
`max_length`). Its backward un-pads the gradient back to the ragged layout.

Only the ragged values are differentiable: `lengths` and `max_length`
describe structure, so their gradient slots are always `None`.

Saved context
-------------
- `saved_tensors`: [lengths]
- `saved_meta`: "max_length", "total_length"
"""

from __future__ import annotations

from numbers import Integral
from typing import Optional, Tuple

from ...domain._errors import InvalidArgumentError
from ...domain._function import Function
from ..ops._registry import KernelRegistry
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context
from ._function_utils import (
    apply_function,
    check_grad_arity,
    check_is_tensor,
    check_same_device,
    resolve_kernel,
)
from ._saved_state import PackSegmentsState


class PackSegmentsFn(Function):
    """
    Ragged segments -> dense padded tensor, with the matching unpack as backward.
    """

    @staticmethod
    def forward(ctx: Context, t_in: Tensor, lengths: Tensor, max_length: int) -> Tensor:
        """
        Pack `t_in` into `[len(lengths), max_length, *t_in.shape[1:]]`.

        Parameters
        ----------
        ctx : Context
            Context receiving `lengths`, `max_length` and `total_length`.
        t_in : Tensor
            Ragged input; `t_in.shape[0]` must equal `sum(lengths)`.
        lengths : Tensor
            1-D integer tensor of non-negative segment lengths.
        max_length : int
            Packed length of every segment.

        Raises
        ------
        InvalidArgumentError
            If shapes, `max_length` or `lengths` are malformed.
        DeviceMismatchError
            If `t_in` and `lengths` are on different devices.
        """
        op = "pack_segments"
        check_is_tensor(op, t_in=t_in, lengths=lengths)
        check_same_device(t_in, lengths)
        if len(t_in.shape) < 1:
            raise InvalidArgumentError(op, "input must have at least one dimension")
        if len(lengths.shape) != 1:
            raise InvalidArgumentError(op, f"lengths must be 1-D, got shape {lengths.shape}")
        if isinstance(max_length, bool) or not isinstance(max_length, Integral) or max_length < 0:
            raise InvalidArgumentError(op, f"max_length must be a non-negative int, got {max_length!r}")

        kernel = resolve_kernel(ctx, "pack_segments_forward", t_in.device)
        out = kernel(t_in, lengths, int(max_length))

        PackSegmentsState(
            lengths=lengths, max_length=int(max_length), total_length=t_in.shape[0]
        ).save(ctx)
        return out

    @staticmethod
    def backward(ctx: Context, *grad_outputs: Tensor) -> Tuple[Optional[Tensor], ...]:
        """
        Un-pad the first gradient output back to `[total_length, ...]`.

        One or two gradient outputs are accepted; only the first is used.

        Returns
        -------
        tuple
            `(grad_input, None, None)` for `(t_in, lengths, max_length)`.
        """
        check_grad_arity("pack_segments_backward", grad_outputs, (1, 2))
        grad = grad_outputs[0]
        state = PackSegmentsState.load(ctx)
        check_same_device(grad, state.lengths)

        kernel = resolve_kernel(ctx, "pack_segments_backward", grad.device)
        grad_input = kernel(grad, state.lengths, state.total_length, state.max_length)
        return (grad_input, None, None)


def pack_segments(
    t_in: Tensor,
    lengths: Tensor,
    max_length: int,
    *,
    registry: Optional[KernelRegistry] = None,
) -> Tensor:
    """
    Pack ragged segments into a padded tensor with autograd support.

    Parameters
    ----------
    t_in : Tensor
        Ragged input of shape `(sum(lengths), *trailing)`.
    lengths : Tensor
        1-D integer tensor of segment lengths.
    max_length : int
        Packed length of each segment.
    registry : KernelRegistry, optional
        Kernel provider for this call and its backward. Defaults to
        `default_registry()`.

    Returns
    -------
    Tensor
        Tensor of shape `(len(lengths), max_length, *trailing)`.
    """
    return apply_function(
        PackSegmentsFn,
        t_in,
        lengths,
        max_length,
        differentiable=(t_in,),
        registry=registry,
    )
