"""
Autograd `Function` for batched unary embedding lookups.

Each of N tasks owns T unary tables packed side by side in `weight`.
Forward sum-pools, for every (task, sample, table), the scalars named by
that sample's indices; backward scatter-adds the output gradient into the
weight entries that were read. Only `weight` is differentiable.

Saved context
-------------
- `saved_tensors`: [weight, table_offsets, offsets, indices]
"""

from __future__ import annotations

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
from ._saved_state import BatchedUnaryEmbeddingState


class LookupFunctionBatchedUnaryEmbeddingFn(Function):
    @staticmethod
    def forward(
        ctx: Context,
        weight: Tensor,
        table_offsets: Tensor,
        offsets: Tensor,
        indices: Tensor,
    ) -> Tensor:
        """
        Compute `output[n, b, t]`, the pooled lookup of sample `b` in table `t`.

        Returns
        -------
        Tensor
            Tensor of shape `(N, B, T)`.
        """
        op = "batched_unary_embeddings"
        check_is_tensor(
            op, weight=weight, table_offsets=table_offsets, offsets=offsets, indices=indices
        )
        check_same_device(weight, table_offsets, offsets, indices)
        for name, t in (
            ("table_offsets", table_offsets),
            ("offsets", offsets),
            ("indices", indices),
        ):
            if len(t.shape) != 1:
                raise InvalidArgumentError(op, f"{name} must be 1-D, got shape {t.shape}")

        kernel = resolve_kernel(ctx, "batched_unary_embeddings_forward", weight.device)
        out = kernel(weight, table_offsets, offsets, indices)

        BatchedUnaryEmbeddingState(weight, table_offsets, offsets, indices).save(ctx)
        return out

    @staticmethod
    def backward(ctx: Context, *grad_outputs: Tensor) -> Tuple[Optional[Tensor], ...]:
        """
        Returns
        -------
        tuple
            `(grad_weight, None, None, None)`.
        """
        check_grad_arity("batched_unary_embeddings_backward", grad_outputs, (1,))
        (grad_output,) = grad_outputs
        s = BatchedUnaryEmbeddingState.load(ctx)
        check_same_device(grad_output, s.weight)

        kernel = resolve_kernel(
            ctx, "batched_unary_embeddings_backward", grad_output.device
        )
        grad_weight = kernel(grad_output, s.weight, s.table_offsets, s.offsets, s.indices)
        return (grad_weight, None, None, None)


def lookup_batched_unary_embedding_function(
    weight: Tensor,
    table_offsets: Tensor,
    offsets: Tensor,
    indices: Tensor,
    *,
    registry: Optional[KernelRegistry] = None,
) -> Tensor:
    """
    Batched unary embedding lookup with autograd support w.r.t. `weight`.

    Parameters
    ----------
    weight : Tensor
        `(N, sum_E)` or `(N, sum_E, 1)` table values for N tasks.
    table_offsets : Tensor
        `(T + 1,)` column offsets of each table within `weight`.
    offsets : Tensor
        `(T * B + 1,)` offsets into `indices`, table-major.
    indices : Tensor
        Table-local row ids.
    registry : KernelRegistry, optional
        Kernel provider for this call and its backward. Defaults to
        `default_registry()`.

    Returns
    -------
    Tensor
        `(N, B, T)` pooled embeddings.
    """
    return apply_function(
        LookupFunctionBatchedUnaryEmbeddingFn,
        weight,
        table_offsets,
        offsets,
        indices,
        differentiable=(weight,),
        registry=registry,
    )
