from types import MappingProxyType

from ._function_utils import SortedIndexPermutation, compute_sort_permutation
from ._saved_state import (
    PackSegmentsState,
    IndexSelectState,
    BatchedUnaryEmbeddingState,
)
from ._pack_segments_function import PackSegmentsFn, pack_segments
from ._index_select_function import IndexSelectDim0Fn, index_select_dim0
from ._batched_unary_embedding_function import (
    LookupFunctionBatchedUnaryEmbeddingFn,
    lookup_batched_unary_embedding_function,
)

# Public operator names -> functional entry points.
OPERATORS = MappingProxyType(
    {
        "pack_segments": pack_segments,
        "index_select_dim0": index_select_dim0,
        "batched_unary_embeddings": lookup_batched_unary_embedding_function,
    }
)

__all__ = [
    "OPERATORS",
    SortedIndexPermutation.__name__,
    compute_sort_permutation.__name__,
    PackSegmentsState.__name__,
    IndexSelectState.__name__,
    BatchedUnaryEmbeddingState.__name__,
    PackSegmentsFn.__name__,
    pack_segments.__name__,
    IndexSelectDim0Fn.__name__,
    index_select_dim0.__name__,
    LookupFunctionBatchedUnaryEmbeddingFn.__name__,
    lookup_batched_unary_embedding_function.__name__,
]
