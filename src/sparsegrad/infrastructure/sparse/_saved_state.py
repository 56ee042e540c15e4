"""
Typed saved-state records for the sparse autograd functions.

Each operator describes what its forward records with a frozen dataclass.
`save(ctx)` writes the record into the generic `Context` (tensors in a fixed
order, scalars by name) and `load(ctx)` reads it back, so the backward code
of an operator only ever touches named, typed fields. A context that does
not hold what `load` expects raises `InternalError` from the context itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ...domain._errors import InternalError
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context


def _expect_tensors(ctx: Context, n: int, op: str) -> Tuple[Tensor, ...]:
    saved = ctx.get_saved_tensors()
    if len(saved) != n:
        raise InternalError(f"{op}: expected {n} saved tensor(s), found {len(saved)}")
    return saved


@dataclass(frozen=True)
class PackSegmentsState:
    lengths: Tensor
    max_length: int
    total_length: int

    def save(self, ctx: Context) -> None:
        ctx.save_scalar("max_length", self.max_length)
        ctx.save_scalar("total_length", self.total_length)
        ctx.save_tensors([self.lengths])

    @classmethod
    def load(cls, ctx: Context) -> "PackSegmentsState":
        (lengths,) = _expect_tensors(ctx, 1, "pack_segments")
        return cls(
            lengths=lengths,
            max_length=int(ctx.get_scalar("max_length")),
            total_length=int(ctx.get_scalar("total_length")),
        )


@dataclass(frozen=True)
class IndexSelectState:
    """
    Saved state of `IndexSelectDim0Fn`.

    Exactly one of the two index layouts is populated: the raw `indices`
    when forward skipped sorting, or the `(sorted_indices, orig_indices)`
    permutation otherwise.
    """

    input_shape: Tuple[int, ...]
    consecutive_range_start: int
    consecutive_range_length: int
    skip_indices_sorting_fwd: bool
    indices: Optional[Tensor] = None
    sorted_indices: Optional[Tensor] = None
    orig_indices: Optional[Tensor] = None

    def save(self, ctx: Context) -> None:
        if self.skip_indices_sorting_fwd:
            ctx.save_tensors([self.indices])
        else:
            ctx.save_tensors([self.sorted_indices, self.orig_indices])
        ctx.save_scalar("input_shape", tuple(self.input_shape))
        ctx.save_scalar("consecutive_range_start", self.consecutive_range_start)
        ctx.save_scalar("consecutive_range_length", self.consecutive_range_length)
        ctx.save_scalar("skip_indices_sorting_fwd", self.skip_indices_sorting_fwd)

    @classmethod
    def load(cls, ctx: Context) -> "IndexSelectState":
        skip = bool(ctx.get_scalar("skip_indices_sorting_fwd"))
        common = dict(
            input_shape=tuple(ctx.get_scalar("input_shape")),
            consecutive_range_start=int(ctx.get_scalar("consecutive_range_start")),
            consecutive_range_length=int(ctx.get_scalar("consecutive_range_length")),
            skip_indices_sorting_fwd=skip,
        )
        if skip:
            (indices,) = _expect_tensors(ctx, 1, "index_select_dim0")
            return cls(indices=indices, **common)
        sorted_indices, orig_indices = _expect_tensors(ctx, 2, "index_select_dim0")
        return cls(sorted_indices=sorted_indices, orig_indices=orig_indices, **common)


@dataclass(frozen=True)
class BatchedUnaryEmbeddingState:
    weight: Tensor
    table_offsets: Tensor
    offsets: Tensor
    indices: Tensor

    def save(self, ctx: Context) -> None:
        ctx.save_for_backward(self.weight, self.table_offsets, self.offsets, self.indices)

    @classmethod
    def load(cls, ctx: Context) -> "BatchedUnaryEmbeddingState":
        weight, table_offsets, offsets, indices = _expect_tensors(
            ctx, 4, "batched_unary_embeddings"
        )
        return cls(weight, table_offsets, offsets, indices)
