"""
Tensor-boundary wrappers for the sparse CPU kernels.

These functions form the CPU kernel provider: they take and return `Tensor`
objects, move data across the NumPy boundary with `to_numpy` /
`Tensor._from_numpy`, and delegate the numeric work to the reference kernels
in `pack_segments_cpu`, `index_select_cpu` and
`batched_unary_embeddings_cpu`.

They are the callables registered under `DeviceType.CPU` in the default
kernel registry. Autograd integration (contexts, saved state) happens in the
`Function` subclasses that resolve them; outputs produced here never carry
a context and never require grad.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from ..tensor._tensor import Tensor
from .pack_segments_cpu import pack_segments_forward_cpu, pack_segments_backward_cpu
from .index_select_cpu import (
    sort_indices_cpu,
    index_select_cpu,
    index_add_with_unique_indices_cpu,
)
from .batched_unary_embeddings_cpu import (
    batched_unary_embeddings_forward_cpu,
    batched_unary_embeddings_backward_cpu,
)


def pack_segments_forward(t_in: Tensor, lengths: Tensor, max_length: int) -> Tensor:
    y = pack_segments_forward_cpu(t_in.to_numpy(), lengths.to_numpy(), int(max_length))
    return Tensor._from_numpy(y, device=t_in.device)


def pack_segments_backward(
    grad: Tensor, lengths: Tensor, total_length: int, max_length: int
) -> Tensor:
    gx = pack_segments_backward_cpu(
        grad.to_numpy(), lengths.to_numpy(), int(total_length), int(max_length)
    )
    return Tensor._from_numpy(gx, device=grad.device)


def sort_indices(indices: Tensor) -> Tuple[Tensor, Tensor]:
    sorted_np, orig_np = sort_indices_cpu(indices.to_numpy())
    return (
        Tensor._from_numpy(sorted_np, device=indices.device),
        Tensor._from_numpy(orig_np, device=indices.device),
    )


def index_select(
    x: Tensor,
    indices: Tensor,
    orig_indices: Optional[Tensor],
    indices_sorted: bool,
) -> Tensor:
    y = index_select_cpu(
        x.to_numpy(),
        indices.to_numpy(),
        None if orig_indices is None else orig_indices.to_numpy(),
        indices_sorted=bool(indices_sorted),
    )
    return Tensor._from_numpy(y, device=x.device)


def index_add_with_unique_indices(
    grad_output: Tensor,
    sorted_indices: Tensor,
    orig_indices: Tensor,
    input_shape: Sequence[int],
    consecutive_range_start: int,
    consecutive_range_length: int,
) -> Tensor:
    gx = index_add_with_unique_indices_cpu(
        grad_output.to_numpy(),
        sorted_indices.to_numpy(),
        orig_indices.to_numpy(),
        input_shape,
        int(consecutive_range_start),
        int(consecutive_range_length),
    )
    return Tensor._from_numpy(gx, device=grad_output.device)


def batched_unary_embeddings_forward(
    weight: Tensor, table_offsets: Tensor, offsets: Tensor, indices: Tensor
) -> Tensor:
    y = batched_unary_embeddings_forward_cpu(
        weight.to_numpy(),
        table_offsets.to_numpy(),
        offsets.to_numpy(),
        indices.to_numpy(),
    )
    return Tensor._from_numpy(y, device=weight.device)


def batched_unary_embeddings_backward(
    grad_output: Tensor,
    weight: Tensor,
    table_offsets: Tensor,
    offsets: Tensor,
    indices: Tensor,
) -> Tensor:
    gw = batched_unary_embeddings_backward_cpu(
        grad_output.to_numpy(),
        weight.to_numpy(),
        table_offsets.to_numpy(),
        offsets.to_numpy(),
        indices.to_numpy(),
    )
    return Tensor._from_numpy(gw, device=weight.device)
