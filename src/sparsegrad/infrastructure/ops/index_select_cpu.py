"""
CPU reference kernels for dim-0 index select and its gradient (NumPy backend).

Three primitives are provided:

- `sort_indices_cpu`: stable ascending sort returning `(sorted, orig)` with
  `sorted == indices[orig]`. The stable sort makes the permutation a pure
  function of `indices`, so a deferred sort in backward reproduces exactly
  the permutation forward would have computed.
- `index_select_cpu`: row gather. With a sorted permutation the gather walks
  rows in ascending order and scatters results back to their original
  positions, so the output is identical to the unsorted gather.
- `index_add_with_unique_indices_cpu`: the backward primitive. Rows of
  `grad_output` are summed into a zero tensor of the input's shape at the
  positions named by the indices; duplicates accumulate, never overwrite.

Summation order
---------------
Both accumulation paths add every contribution into a zero-initialized
buffer, one row at a time, in sorted order. The consecutive-range fast path
and the general (unique-indices) path therefore produce bit-identical
results.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple
import warnings

import numpy as np

from ...domain._errors import InvalidArgumentError


def _require_integral(indices: np.ndarray, op: str) -> np.ndarray:
    # Checked before any cast: a float or bool index must never be truncated.
    indices = np.asarray(indices)
    if not np.issubdtype(indices.dtype, np.integer):
        raise InvalidArgumentError(op, f"indices must be integral, got {indices.dtype}")
    return indices


def _check_indices(indices: np.ndarray, num_rows: int, op: str) -> np.ndarray:
    indices = np.asarray(indices)
    if indices.ndim != 1:
        raise InvalidArgumentError(op, f"indices must be 1-D, got shape {indices.shape}")
    indices = _require_integral(indices, op).astype(np.int64, copy=False)
    if indices.size and (indices.min() < 0 or indices.max() >= num_rows):
        raise InvalidArgumentError(
            op,
            f"indices must lie in [0, {num_rows}), got range "
            f"[{int(indices.min())}, {int(indices.max())}]",
        )
    return indices


def sort_indices_cpu(indices: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sort indices ascending and return the permutation that produced the order.

    Parameters
    ----------
    indices : np.ndarray
        1-D integer array.

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        `(sorted_indices, orig_indices)`, both int64, such that
        `sorted_indices[i] == indices[orig_indices[i]]`.
    """
    indices = _require_integral(indices, "sort_indices").astype(np.int64, copy=False)
    orig_indices = np.argsort(indices, kind="stable").astype(np.int64, copy=False)
    return indices[orig_indices], orig_indices


def index_select_cpu(
    x: np.ndarray,
    indices: np.ndarray,
    orig_indices: Optional[np.ndarray] = None,
    *,
    indices_sorted: bool = False,
) -> np.ndarray:
    """
    Gather rows of `x` along dimension 0.

    Parameters
    ----------
    x : np.ndarray
        Source of shape `(num_rows, *trailing)`.
    indices : np.ndarray
        Raw indices, or sorted indices when `indices_sorted` is True.
    orig_indices : np.ndarray, optional
        Original position of each sorted index. Required when
        `indices_sorted` is True.
    indices_sorted : bool
        Whether `indices` is the sorted half of a sort permutation.

    Returns
    -------
    np.ndarray
        Array of shape `(len(indices), *trailing)` where row `i` is
        `x[original_indices[i]]`, independent of `indices_sorted`.
    """
    indices = _check_indices(indices, x.shape[0], "index_select")

    if not indices_sorted:
        return x[indices]

    if orig_indices is None or np.shape(orig_indices) != indices.shape:
        raise InvalidArgumentError(
            "index_select", "orig_indices must accompany sorted indices"
        )
    out = np.empty((indices.shape[0],) + x.shape[1:], dtype=x.dtype)
    out[np.asarray(orig_indices, dtype=np.int64)] = x[indices]
    return out


def index_add_with_unique_indices_cpu(
    grad_output: np.ndarray,
    sorted_indices: np.ndarray,
    orig_indices: np.ndarray,
    input_shape: Sequence[int],
    consecutive_range_start: int = 0,
    consecutive_range_length: int = 0,
) -> np.ndarray:
    """
    Scatter-add gradient rows back to the rows they were gathered from.

    Parameters
    ----------
    grad_output : np.ndarray
        Gradient of the gathered output, shape `(len(indices), *trailing)`,
        in original (unsorted) order.
    sorted_indices : np.ndarray
        Ascending indices from the sort permutation.
    orig_indices : np.ndarray
        Original positions matching `sorted_indices`.
    input_shape : Sequence[int]
        Shape of the forward input; the result has exactly this shape.
    consecutive_range_start, consecutive_range_length : int
        Optional hint that every index lies in
        `[start, start + length)`. A positive length enables the
        compact-buffer path. The hint never changes the result.

    Returns
    -------
    np.ndarray
        `grad_input` with `grad_input[k] == sum(grad_output[i] for i where indices[i] == k)`.
    """
    input_shape = tuple(int(d) for d in input_shape)
    sorted_indices = _check_indices(sorted_indices, input_shape[0], "index_add")
    orig_indices = np.asarray(orig_indices, dtype=np.int64)
    if grad_output.shape != (sorted_indices.shape[0],) + input_shape[1:]:
        raise InvalidArgumentError(
            "index_add",
            f"grad_output shape {grad_output.shape} does not match "
            f"{(sorted_indices.shape[0],) + input_shape[1:]}",
        )

    grad_input = np.zeros(input_shape, dtype=grad_output.dtype)
    if sorted_indices.size == 0:
        return grad_input

    # Contributions aligned with the sorted order.
    rows = grad_output[orig_indices]

    start, length = int(consecutive_range_start), int(consecutive_range_length)
    if length > 0:
        lo, hi = int(sorted_indices[0]), int(sorted_indices[-1])
        if start <= lo and hi < start + length and start + length <= input_shape[0]:
            compact = np.zeros((length,) + input_shape[1:], dtype=grad_output.dtype)
            np.add.at(compact, sorted_indices - start, rows)
            grad_input[start : start + length] = compact
            return grad_input
        warnings.warn(
            f"consecutive range hint [{start}, {start + length}) does not cover "
            f"indices in [{lo}, {hi}] for {input_shape[0]} rows; "
            "falling back to the general accumulation path.",
            RuntimeWarning,
            stacklevel=2,
        )

    unique, inverse = np.unique(sorted_indices, return_inverse=True)
    sums = np.zeros((unique.shape[0],) + input_shape[1:], dtype=grad_output.dtype)
    np.add.at(sums, inverse.reshape(-1), rows)
    grad_input[unique] = sums
    return grad_input
