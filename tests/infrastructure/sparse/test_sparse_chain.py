import unittest
from unittest import TestCase

import numpy as np

import sparsegrad
from sparsegrad import Device, Tensor


def tensor_from_numpy(arr, device: Device, requires_grad: bool = False) -> Tensor:
    return Tensor._from_numpy(np.asarray(arr), device=device, requires_grad=requires_grad)


class TestSparseOperatorChain(TestCase):
    """
    Pack ragged rows, then gather packed segments, and check gradients flow
    back through both operators to the ragged input.
    """

    def setUp(self) -> None:
        self.device = Device("cpu")

    def test_pack_then_select(self):
        x = tensor_from_numpy(np.arange(12, dtype=np.float32).reshape(6, 2), self.device, True)
        lengths = tensor_from_numpy(np.array([2, 3, 1], dtype=np.int64), self.device)
        idx = tensor_from_numpy(np.array([2, 0], dtype=np.int64), self.device)

        packed = sparsegrad.pack_segments(x, lengths, 3)
        picked = sparsegrad.index_select_dim0(packed, idx)
        self.assertEqual(picked.shape, (2, 3, 2))

        picked.backward(tensor_from_numpy(np.ones((2, 3, 2), dtype=np.float32), self.device))
        expected = np.zeros((6, 2), dtype=np.float32)
        expected[[0, 1, 5]] = 1.0
        np.testing.assert_array_equal(x.grad.to_numpy(), expected)

    def test_select_same_rows_twice_then_pack(self):
        x = tensor_from_numpy(np.array([[1.0], [2.0]], dtype=np.float32), self.device, True)
        idx = tensor_from_numpy(np.array([1, 1, 0], dtype=np.int64), self.device)
        lengths = tensor_from_numpy(np.array([3], dtype=np.int64), self.device)

        rows = sparsegrad.index_select_dim0(x, idx)
        packed = sparsegrad.pack_segments(rows, lengths, 4)
        np.testing.assert_array_equal(packed.to_numpy()[0, :, 0], [2.0, 2.0, 1.0, 0.0])

        packed.backward(tensor_from_numpy(np.ones((1, 4, 1), dtype=np.float32), self.device))
        np.testing.assert_array_equal(x.grad.to_numpy(), [[1.0], [2.0]])

    def test_operator_table(self):
        self.assertEqual(
            set(sparsegrad.OPERATORS),
            {"pack_segments", "index_select_dim0", "batched_unary_embeddings"},
        )
        self.assertIs(sparsegrad.OPERATORS["pack_segments"], sparsegrad.pack_segments)
        with self.assertRaises(TypeError):
            sparsegrad.OPERATORS["other"] = sparsegrad.pack_segments


if __name__ == "__main__":
    unittest.main()
