"""
CPU reference kernels for packing ragged segments (NumPy backend).

A ragged input is a tensor whose leading dimension is the concatenation of
variable-length segments, with one length per segment in `lengths`.
Packing lays the segments out as rows of a dense `[num_segments, max_length, ...]`
tensor; unpacking routes a gradient of that dense shape back to the ragged
layout.

Padding and truncation policy
-----------------------------
- Segments shorter than `max_length` are zero-padded at the end.
- Segments longer than `max_length` keep their first `max_length` rows;
  the remaining rows do not appear in the output and receive a zero
  gradient on the way back.
"""

from __future__ import annotations

import numpy as np

from ...domain._errors import InvalidArgumentError


def _segment_starts(lengths: np.ndarray) -> np.ndarray:
    """Return the exclusive prefix sum of `lengths` (start row of each segment)."""
    starts = np.zeros(lengths.shape[0], dtype=np.int64)
    if lengths.shape[0] > 1:
        np.cumsum(lengths[:-1], out=starts[1:])
    return starts


def _check_lengths(lengths: np.ndarray, total_length: int, op: str) -> np.ndarray:
    lengths = np.asarray(lengths)
    if lengths.ndim != 1:
        raise InvalidArgumentError(op, f"lengths must be 1-D, got shape {lengths.shape}")
    if lengths.size and not np.issubdtype(lengths.dtype, np.integer):
        raise InvalidArgumentError(op, f"lengths must be integral, got {lengths.dtype}")
    lengths = lengths.astype(np.int64, copy=False)
    if np.any(lengths < 0):
        raise InvalidArgumentError(op, "lengths must be non-negative")
    if int(lengths.sum()) != int(total_length):
        raise InvalidArgumentError(
            op,
            f"lengths sum to {int(lengths.sum())} but the ragged input has "
            f"{int(total_length)} rows",
        )
    return lengths


def pack_segments_forward_cpu(
    t_in: np.ndarray, lengths: np.ndarray, max_length: int
) -> np.ndarray:
    """
    Pack ragged segments into a dense, zero-padded tensor.

    Parameters
    ----------
    t_in : np.ndarray
        Ragged input of shape `(total_length, *trailing)`.
    lengths : np.ndarray
        1-D integer array, one non-negative length per segment, summing
        to `total_length`.
    max_length : int
        Row count of each packed segment.

    Returns
    -------
    np.ndarray
        Array of shape `(num_segments, max_length, *trailing)` with the
        dtype of `t_in`.

    Raises
    ------
    InvalidArgumentError
        If `lengths` is malformed or inconsistent with `t_in`.
    """
    lengths = _check_lengths(lengths, t_in.shape[0], "pack_segments")
    starts = _segment_starts(lengths)

    out = np.zeros((lengths.shape[0], max_length) + t_in.shape[1:], dtype=t_in.dtype)
    for s in range(lengths.shape[0]):
        n = min(int(lengths[s]), max_length)
        out[s, :n] = t_in[starts[s] : starts[s] + n]
    return out


def pack_segments_backward_cpu(
    grad: np.ndarray, lengths: np.ndarray, total_length: int, max_length: int
) -> np.ndarray:
    """
    Unpack a dense gradient back into the ragged layout.

    Parameters
    ----------
    grad : np.ndarray
        Gradient of shape `(num_segments, max_length, *trailing)`.
    lengths : np.ndarray
        The segment lengths used in forward.
    total_length : int
        Leading-dimension size of the original ragged input.
    max_length : int
        The `max_length` used in forward.

    Returns
    -------
    np.ndarray
        Gradient of shape `(total_length, *trailing)`. Padding rows of `grad`
        contribute nothing; rows truncated away in forward receive zeros.
    """
    lengths = _check_lengths(lengths, total_length, "pack_segments_backward")
    if grad.shape[:2] != (lengths.shape[0], max_length):
        raise InvalidArgumentError(
            "pack_segments_backward",
            f"expected gradient with leading shape {(lengths.shape[0], max_length)}, "
            f"got {grad.shape}",
        )
    starts = _segment_starts(lengths)

    grad_in = np.zeros((int(total_length),) + grad.shape[2:], dtype=grad.dtype)
    for s in range(lengths.shape[0]):
        n = min(int(lengths[s]), max_length)
        grad_in[starts[s] : starts[s] + n] = grad[s, :n]
    return grad_in
