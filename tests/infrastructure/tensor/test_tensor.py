import unittest
from unittest import TestCase

import numpy as np

from sparsegrad.domain import DeviceNotSupportedError
from sparsegrad.domain.device import Device
from sparsegrad.infrastructure.tensor import Context, Tensor


class TestTensorNumpyBoundary(TestCase):
    def setUp(self) -> None:
        self.device = Device("cpu")

    def test_constructor_zero_fills_float32(self):
        t = Tensor((2, 3), self.device)
        self.assertEqual(t.shape, (2, 3))
        self.assertEqual(t.dtype, np.float32)
        np.testing.assert_array_equal(t.to_numpy(), np.zeros((2, 3), dtype=np.float32))

    def test_device_string_is_parsed(self):
        t = Tensor((2,), "cpu", dtype=np.int64)
        self.assertEqual(t.device, Device("cpu"))
        self.assertEqual(Tensor((1,), "cuda:1").device, Device("cuda:1"))
        with self.assertRaises(ValueError):
            Tensor((1,), "tpu")
        with self.assertRaises(TypeError):
            Tensor((1,), 0)

    def test_from_numpy_preserves_integer_dtype(self):
        t = Tensor._from_numpy(np.array([2, 0, 2], dtype=np.int64), device=self.device)
        self.assertEqual(t.dtype, np.int64)
        np.testing.assert_array_equal(t.to_numpy(), [2, 0, 2])

    def test_from_numpy_copies(self):
        arr = np.ones((2,), dtype=np.float32)
        t = Tensor._from_numpy(arr, device=self.device)
        arr[0] = 5.0
        self.assertEqual(float(t.to_numpy()[0]), 1.0)

    def test_copy_from_numpy_shape_mismatch(self):
        t = Tensor((2, 2), self.device)
        with self.assertRaises(ValueError):
            t.copy_from_numpy(np.zeros((3,), dtype=np.float32))

    def test_item(self):
        t = Tensor._from_numpy(np.array([4.5], dtype=np.float32), device=self.device)
        self.assertEqual(t.item(), 4.5)
        with self.assertRaises(ValueError):
            Tensor((2,), self.device).item()

    def test_cuda_tensor_has_no_host_storage(self):
        t = Tensor((3,), Device("cuda:0"))
        self.assertEqual(t.shape, (3,))
        with self.assertRaises(DeviceNotSupportedError):
            t.to_numpy()


class TestTensorBackwardEngine(TestCase):
    def setUp(self) -> None:
        self.device = Device("cpu")

    def _scale_node(self, x: Tensor, factor: float, extra_parent=None) -> Tensor:
        parents = (x,) if extra_parent is None else (x, extra_parent)

        def backward_fn(g: Tensor):
            gx = Tensor._from_numpy(g.to_numpy() * factor, device=self.device)
            return (gx,) if extra_parent is None else (gx, None)

        out = Tensor._from_numpy(x.to_numpy() * factor, device=self.device)
        out.requires_grad = True
        out._set_ctx(Context(parents=parents, backward_fn=backward_fn))
        return out

    def test_scalar_seed(self):
        x = Tensor._from_numpy(np.array([2.0], dtype=np.float32), device=self.device, requires_grad=True)
        y = self._scale_node(x, 3.0)
        y.backward()
        np.testing.assert_allclose(x.grad.to_numpy(), [3.0])

    def test_non_scalar_requires_grad_out(self):
        x = Tensor._from_numpy(np.ones((2,), dtype=np.float32), device=self.device, requires_grad=True)
        y = self._scale_node(x, 2.0)
        with self.assertRaises(ValueError):
            y.backward()

    def test_non_tensor_parent_is_skipped(self):
        x = Tensor._from_numpy(np.ones((2,), dtype=np.float32), device=self.device, requires_grad=True)
        y = self._scale_node(x, 2.0, extra_parent=7)
        y.backward(Tensor._from_numpy(np.ones((2,), dtype=np.float32), device=self.device))
        np.testing.assert_allclose(x.grad.to_numpy(), [2.0, 2.0])

    def test_gradient_for_non_tensor_parent_raises(self):
        x = Tensor._from_numpy(np.ones((1,), dtype=np.float32), device=self.device, requires_grad=True)
        out = Tensor._from_numpy(np.ones((1,), dtype=np.float32), device=self.device)
        out.requires_grad = True
        out._set_ctx(Context(parents=(x, 3), backward_fn=lambda g: (g, g)))
        with self.assertRaises(RuntimeError):
            out.backward()

    def test_wrong_slot_count_raises(self):
        x = Tensor._from_numpy(np.ones((1,), dtype=np.float32), device=self.device, requires_grad=True)
        out = Tensor._from_numpy(np.ones((1,), dtype=np.float32), device=self.device)
        out.requires_grad = True
        out._set_ctx(Context(parents=(x,), backward_fn=lambda g: (g, None)))
        with self.assertRaises(RuntimeError):
            out.backward()

    def test_diamond_accumulates(self):
        x = Tensor._from_numpy(np.array([1.0], dtype=np.float32), device=self.device, requires_grad=True)
        a = self._scale_node(x, 2.0)
        b = self._scale_node(x, 5.0)

        out = Tensor._from_numpy(a.to_numpy() + b.to_numpy(), device=self.device)
        out.requires_grad = True
        out._set_ctx(Context(parents=(a, b), backward_fn=lambda g: (g, g)))
        out.backward()
        np.testing.assert_allclose(x.grad.to_numpy(), [7.0])

    def test_grads_accumulate_across_calls_until_zeroed(self):
        x = Tensor._from_numpy(np.array([1.0], dtype=np.float32), device=self.device, requires_grad=True)
        self._scale_node(x, 2.0).backward()
        self._scale_node(x, 3.0).backward()
        np.testing.assert_allclose(x.grad.to_numpy(), [5.0])
        x.zero_grad()
        self.assertIsNone(x.grad)


if __name__ == "__main__":
    unittest.main()
