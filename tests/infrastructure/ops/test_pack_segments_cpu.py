import unittest
from unittest import TestCase

import numpy as np

from sparsegrad.domain import InvalidArgumentError
from sparsegrad.infrastructure.ops.pack_segments_cpu import (
    pack_segments_backward_cpu,
    pack_segments_forward_cpu,
)


class TestPackSegmentsForwardCpu(TestCase):
    def test_pads_short_segments(self):
        x = np.arange(12, dtype=np.float32).reshape(6, 2)
        lengths = np.array([2, 3, 1], dtype=np.int64)
        y = pack_segments_forward_cpu(x, lengths, 3)

        self.assertEqual(y.shape, (3, 3, 2))
        self.assertEqual(y.dtype, np.float32)
        np.testing.assert_array_equal(y[0], [[0, 1], [2, 3], [0, 0]])
        np.testing.assert_array_equal(y[1], [[4, 5], [6, 7], [8, 9]])
        np.testing.assert_array_equal(y[2], [[10, 11], [0, 0], [0, 0]])

    def test_truncates_long_segments(self):
        x = np.arange(5, dtype=np.float64)
        y = pack_segments_forward_cpu(x, np.array([4, 1]), 2)
        np.testing.assert_array_equal(y, [[0, 1], [4, 0]])

    def test_zero_length_segment(self):
        x = np.arange(3, dtype=np.float32)
        y = pack_segments_forward_cpu(x, np.array([0, 3, 0]), 2)
        np.testing.assert_array_equal(y, [[0, 0], [0, 1], [0, 0]])

    def test_max_length_zero(self):
        x = np.ones((3, 4), dtype=np.float32)
        y = pack_segments_forward_cpu(x, np.array([1, 2]), 0)
        self.assertEqual(y.shape, (2, 0, 4))

    def test_rejects_inconsistent_lengths(self):
        x = np.zeros((4, 2), dtype=np.float32)
        with self.assertRaises(InvalidArgumentError):
            pack_segments_forward_cpu(x, np.array([2, 3]), 3)
        with self.assertRaises(InvalidArgumentError):
            pack_segments_forward_cpu(x, np.array([5, -1]), 3)
        with self.assertRaises(InvalidArgumentError):
            pack_segments_forward_cpu(x, np.array([2.0, 2.0]), 3)
        with self.assertRaises(InvalidArgumentError):
            pack_segments_forward_cpu(x, np.array([[2, 2]]), 3)


class TestPackSegmentsBackwardCpu(TestCase):
    def test_unpads_gradient(self):
        lengths = np.array([2, 3, 1], dtype=np.int64)
        g = (np.arange(18, dtype=np.float32) + 1).reshape(3, 3, 2)
        gx = pack_segments_backward_cpu(g, lengths, 6, 3)

        self.assertEqual(gx.shape, (6, 2))
        expected = np.stack([g[0, 0], g[0, 1], g[1, 0], g[1, 1], g[1, 2], g[2, 0]])
        np.testing.assert_array_equal(gx, expected)

    def test_truncated_rows_get_zero(self):
        g = np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float32)
        gx = pack_segments_backward_cpu(g, np.array([4, 1]), 5, 2)
        np.testing.assert_array_equal(gx, [1.0, 2.0, 0.0, 0.0, 3.0])

    def test_round_trip_recovers_input(self):
        rng = np.random.default_rng(0)
        lengths = np.array([3, 0, 2, 4], dtype=np.int64)
        x = rng.standard_normal((9, 3)).astype(np.float32)
        packed = pack_segments_forward_cpu(x, lengths, 4)
        np.testing.assert_array_equal(pack_segments_backward_cpu(packed, lengths, 9, 4), x)

    def test_rejects_wrong_gradient_shape(self):
        g = np.zeros((2, 3), dtype=np.float32)
        with self.assertRaises(InvalidArgumentError):
            pack_segments_backward_cpu(g, np.array([1, 1]), 2, 2)


if __name__ == "__main__":
    unittest.main()
