"""
Autograd `Function` for dim-0 index select with locality sorting.

Forward gathers `input[indices]`. Unless told to skip it, forward first sorts
the indices so the gather kernel walks `input` in ascending row order; the
kernel writes each row back to its original position, so the output is the
same either way. The sort permutation is saved for backward, which
scatter-adds gradient rows into a zero tensor of the input's shape (summing
over duplicate indices).

When forward skipped the sort, backward computes the permutation itself
from the saved raw indices using the same helper.

Saved context
-------------
- `saved_tensors`: [sorted_indices, orig_indices], or [indices] when sorting
  was skipped
- `saved_meta`: "input_shape", "consecutive_range_start",
  "consecutive_range_length", "skip_indices_sorting_fwd"
"""

from __future__ import annotations

from numbers import Integral
from typing import Optional, Tuple

from ...domain._errors import InvalidArgumentError
from ...domain._function import Function
from ..autograd._grad_mode import is_inference_mode_enabled
from ..ops._registry import KernelRegistry
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context
from ._function_utils import (
    SortedIndexPermutation,
    apply_function,
    check_grad_arity,
    check_is_tensor,
    check_same_device,
    compute_sort_permutation,
    resolve_kernel,
)
from ._saved_state import IndexSelectState


class IndexSelectDim0Fn(Function):
    """
    Row gather along dimension 0, with a scatter-add backward.

    Forward inputs are `(input, indices, consecutive_range_start,
    consecutive_range_length, skip_indices_sorting_fwd)`; only `input` is
    differentiable.
    """

    @staticmethod
    def forward(
        ctx: Context,
        input: Tensor,
        indices: Tensor,
        consecutive_range_start: int,
        consecutive_range_length: int,
        skip_indices_sorting_fwd: bool,
    ) -> Tensor:
        """
        Gather `input[indices]` and record what backward needs.

        Parameters
        ----------
        ctx : Context
            Context receiving the index layout and the scalar parameters.
        input : Tensor
            Source tensor of shape `(num_rows, *trailing)`.
        indices : Tensor
            1-D integer tensor of row ids.
        consecutive_range_start, consecutive_range_length : int
            Hint that all indices lie in `[start, start + length)`;
            a length of 0 means no hint.
        skip_indices_sorting_fwd : bool
            Save raw indices instead of sorting them in forward.

        Returns
        -------
        Tensor
            Tensor of shape `(len(indices), *trailing)`.
        """
        op = "index_select_dim0"
        check_is_tensor(op, input=input, indices=indices)
        check_same_device(input, indices)
        if len(input.shape) < 1:
            raise InvalidArgumentError(op, "input must have at least one dimension")
        if len(indices.shape) != 1:
            raise InvalidArgumentError(op, f"indices must be 1-D, got shape {indices.shape}")
        for name, value in (
            ("consecutive_range_start", consecutive_range_start),
            ("consecutive_range_length", consecutive_range_length),
        ):
            if isinstance(value, bool) or not isinstance(value, Integral) or value < 0:
                raise InvalidArgumentError(op, f"{name} must be a non-negative int, got {value!r}")

        skip = bool(skip_indices_sorting_fwd)
        kernel = resolve_kernel(ctx, "index_select", input.device)

        if skip:
            out = kernel(input, indices, None, False)
            state = IndexSelectState(
                input_shape=input.shape,
                consecutive_range_start=int(consecutive_range_start),
                consecutive_range_length=int(consecutive_range_length),
                skip_indices_sorting_fwd=True,
                indices=indices,
            )
        else:
            # Sort indices to promote locality
            perm = compute_sort_permutation(indices, ctx.registry)
            out = kernel(input, perm.sorted_indices, perm.orig_indices, True)
            state = IndexSelectState(
                input_shape=input.shape,
                consecutive_range_start=int(consecutive_range_start),
                consecutive_range_length=int(consecutive_range_length),
                skip_indices_sorting_fwd=False,
                sorted_indices=perm.sorted_indices,
                orig_indices=perm.orig_indices,
            )

        state.save(ctx)
        return out

    @staticmethod
    def backward(ctx: Context, *grad_outputs: Tensor) -> Tuple[Optional[Tensor], ...]:
        """
        Scatter-add `grad_output` rows back to the rows they were gathered from.

        Returns
        -------
        tuple
            `(grad_input, None, None, None, None)`; `grad_input` always has
            the saved `input_shape`.
        """
        check_grad_arity("index_select_dim0_backward", grad_outputs, (1,))
        (grad_output,) = grad_outputs
        state = IndexSelectState.load(ctx)

        if state.skip_indices_sorting_fwd:
            perm = compute_sort_permutation(state.indices, ctx.registry)
        else:
            perm = SortedIndexPermutation(state.sorted_indices, state.orig_indices)
        check_same_device(grad_output, perm.sorted_indices)

        kernel = resolve_kernel(
            ctx, "index_add_with_unique_indices", grad_output.device
        )
        grad_input = kernel(
            grad_output,
            perm.sorted_indices,
            perm.orig_indices,
            state.input_shape,
            state.consecutive_range_start,
            state.consecutive_range_length,
        )
        return (grad_input, None, None, None, None)


def index_select_dim0(
    input: Tensor,
    indices: Tensor,
    consecutive_range_start: Optional[int] = None,
    consecutive_range_length: Optional[int] = None,
    skip_indices_sorting_fwd: Optional[bool] = None,
    *,
    registry: Optional[KernelRegistry] = None,
) -> Tensor:
    """
    Select rows of `input` by `indices` along dimension 0, with autograd support.

    Parameters
    ----------
    input : Tensor
        Source tensor.
    indices : Tensor
        1-D integer tensor of row ids; duplicates are allowed.
    consecutive_range_start : int, optional
        Start of the contiguous index range hint. Defaults to 0.
    consecutive_range_length : int, optional
        Length of the range hint. Defaults to 0 (no hint).
    skip_indices_sorting_fwd : bool, optional
        Skip the locality sort in forward. Defaults to False. Ignored
        while inference mode is enabled, where indices are always sorted.
    registry : KernelRegistry, optional
        Kernel provider for this call and its backward. Defaults to
        `default_registry()`.

    Returns
    -------
    Tensor
        `input[indices]`.
    """
    skip = bool(skip_indices_sorting_fwd) and not is_inference_mode_enabled()
    return apply_function(
        IndexSelectDim0Fn,
        input,
        indices,
        0 if consecutive_range_start is None else consecutive_range_start,
        0 if consecutive_range_length is None else consecutive_range_length,
        skip,
        differentiable=(input,),
        registry=registry,
    )
