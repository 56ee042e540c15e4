"""
CPU reference kernels for batched unary embeddings (NumPy backend).

A unary embedding table stores one scalar per row. `weight` packs T such
tables side by side for each of N tasks:

    weight : (N, sum_E) or (N, sum_E, 1)
    table_offsets : (T + 1,)   table t occupies columns [table_offsets[t], table_offsets[t+1])
    offsets : (T * B + 1,)     sample b of table t owns indices[offsets[t*B+b] : offsets[t*B+b+1]]
    indices : (L,)             row ids local to their table

Forward sum-pools the looked-up scalars of each (task, sample, table) bag:

    output[n, b, t] = sum_l weight[n, table_offsets[t] + indices[l]]

When every bag holds exactly one index this is a plain scalar lookup.
Backward scatter-adds `grad_output[n, b, t]` into every weight entry the
forward read; repeated indices accumulate.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from ...domain._errors import InvalidArgumentError


def _weight_2d(weight: np.ndarray) -> np.ndarray:
    if weight.ndim == 3 and weight.shape[2] == 1:
        return weight.reshape(weight.shape[0], weight.shape[1])
    if weight.ndim != 2:
        raise InvalidArgumentError(
            "batched_unary_embeddings",
            f"weight must have shape (N, sum_E) or (N, sum_E, 1), got {weight.shape}",
        )
    return weight


def _flat_columns(
    table_offsets: np.ndarray, offsets: np.ndarray, indices: np.ndarray, sum_e: int
) -> Tuple[np.ndarray, np.ndarray, int, int]:
    """
    Resolve every index to its absolute weight column.

    Returns
    -------
    tuple
        `(columns, bag_ids, B, T)` where `columns[l]` is the weight column
        read for index `l`, and `bag_ids[l]` is the flat `t * B + b` bag that
        owns it.
    """
    op = "batched_unary_embeddings"
    arrays = []
    for name, arr in (
        ("table_offsets", table_offsets),
        ("offsets", offsets),
        ("indices", indices),
    ):
        arr = np.asarray(arr)
        if not np.issubdtype(arr.dtype, np.integer):
            raise InvalidArgumentError(op, f"{name} must be integral, got {arr.dtype}")
        arrays.append(arr.astype(np.int64, copy=False))
    table_offsets, offsets, indices = arrays

    if table_offsets.ndim != 1 or table_offsets.shape[0] < 2:
        raise InvalidArgumentError(op, "table_offsets must be 1-D with at least 2 entries")
    if np.any(np.diff(table_offsets) < 0) or table_offsets[0] < 0 or table_offsets[-1] > sum_e:
        raise InvalidArgumentError(
            op, f"table_offsets must be non-decreasing within [0, {sum_e}]"
        )
    T = table_offsets.shape[0] - 1

    if offsets.ndim != 1 or offsets.shape[0] < 1 or (offsets.shape[0] - 1) % T != 0:
        raise InvalidArgumentError(
            op, f"offsets must have T * B + 1 entries for T={T}, got {offsets.shape[0]}"
        )
    B = (offsets.shape[0] - 1) // T
    if np.any(np.diff(offsets) < 0) or offsets[0] < 0 or offsets[-1] > indices.shape[0]:
        raise InvalidArgumentError(
            op, f"offsets must be non-decreasing within [0, {indices.shape[0]}]"
        )

    bag_sizes = np.diff(offsets)
    bag_ids = np.repeat(np.arange(T * B, dtype=np.int64), bag_sizes)
    # Only indices[offsets[0]:offsets[-1]] belong to a bag.
    used = indices[offsets[0] : offsets[-1]]
    tables = bag_ids // max(B, 1)

    table_sizes = np.diff(table_offsets)
    if used.size and (np.any(used < 0) or np.any(used >= table_sizes[tables])):
        raise InvalidArgumentError(op, "indices must lie within their table")

    columns = table_offsets[tables] + used
    return columns, bag_ids, B, T


def batched_unary_embeddings_forward_cpu(
    weight: np.ndarray,
    table_offsets: np.ndarray,
    offsets: np.ndarray,
    indices: np.ndarray,
) -> np.ndarray:
    """
    Look up and sum-pool unary embeddings for every (task, sample, table).

    Returns
    -------
    np.ndarray
        Array of shape `(N, B, T)` with the dtype of `weight`.
    """
    w = _weight_2d(weight)
    N, sum_e = w.shape
    columns, bag_ids, B, T = _flat_columns(table_offsets, offsets, indices, sum_e)

    pooled = np.zeros((N, T * B), dtype=w.dtype)
    np.add.at(pooled, (slice(None), bag_ids), w[:, columns])
    # Bags are laid out table-major (t * B + b); output is (N, B, T).
    return pooled.reshape(N, T, B).transpose(0, 2, 1).copy()


def batched_unary_embeddings_backward_cpu(
    grad_output: np.ndarray,
    weight: np.ndarray,
    table_offsets: np.ndarray,
    offsets: np.ndarray,
    indices: np.ndarray,
) -> np.ndarray:
    """
    Scatter-add output gradients into the weight entries read by forward.

    Returns
    -------
    np.ndarray
        `grad_weight` with the same shape and dtype as `weight`.
    """
    w = _weight_2d(weight)
    N, sum_e = w.shape
    columns, bag_ids, B, T = _flat_columns(table_offsets, offsets, indices, sum_e)
    if grad_output.shape != (N, B, T):
        raise InvalidArgumentError(
            "batched_unary_embeddings_backward",
            f"expected grad_output of shape {(N, B, T)}, got {grad_output.shape}",
        )

    g_bags = np.asarray(grad_output).transpose(0, 2, 1).reshape(N, T * B)
    grad_w = np.zeros((N, sum_e), dtype=w.dtype)
    np.add.at(grad_w, (slice(None), columns), g_bags[:, bag_ids])
    return grad_w.reshape(weight.shape)
