from .tensor import Tensor, Context
from .autograd import no_grad, inference_mode, is_grad_enabled, is_inference_mode_enabled
from .ops import KernelRegistry, default_registry
from .sparse import (
    OPERATORS,
    pack_segments,
    index_select_dim0,
    lookup_batched_unary_embedding_function,
)

__all__ = [
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
