"""
sparsegrad: differentiable sparse-data operators on a NumPy tensor runtime.

Public operators
----------------
- `pack_segments(t_in, lengths, max_length)`
- `index_select_dim0(input, indices, consecutive_range_start=None,
  consecutive_range_length=None, skip_indices_sorting_fwd=None)`
- `lookup_batched_unary_embedding_function(weight, table_offsets, offsets, indices)`
"""

from .domain import (
    Device,
    DeviceType,
    InvalidArgumentError,
    DeviceMismatchError,
    DeviceNotSupportedError,
    InternalError,
)
from .infrastructure import (
    Tensor,
    Context,
    no_grad,
    inference_mode,
    is_grad_enabled,
    is_inference_mode_enabled,
    KernelRegistry,
    default_registry,
    OPERATORS,
    pack_segments,
    index_select_dim0,
    lookup_batched_unary_embedding_function,
)

__version__ = "0.1.0"

__all__ = [
    "Device",
    "DeviceType",
    "InvalidArgumentError",
    "DeviceMismatchError",
    "DeviceNotSupportedError",
    "InternalError",
    "Tensor",
    "Context",
    "no_grad",
    "inference_mode",
    "is_grad_enabled",
    "is_inference_mode_enabled",
    "KernelRegistry",
    "default_registry",
    "OPERATORS",
    "pack_segments",
    "index_select_dim0",
    "lookup_batched_unary_embedding_function",
]
