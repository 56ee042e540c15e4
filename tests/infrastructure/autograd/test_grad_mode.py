import unittest
from unittest import TestCase

import numpy as np

from sparsegrad.domain.device import Device
from sparsegrad.infrastructure.autograd import (
    inference_mode,
    is_grad_enabled,
    is_inference_mode_enabled,
    no_grad,
    set_grad_enabled,
)
from sparsegrad.infrastructure.sparse import index_select_dim0
from sparsegrad.infrastructure.tensor import Tensor


class TestGradModeSwitches(TestCase):
    def test_defaults(self):
        self.assertTrue(is_grad_enabled())
        self.assertFalse(is_inference_mode_enabled())

    def test_no_grad_context_restores(self):
        with no_grad():
            self.assertFalse(is_grad_enabled())
            self.assertFalse(is_inference_mode_enabled())
        self.assertTrue(is_grad_enabled())

    def test_inference_mode_context_restores(self):
        with inference_mode():
            self.assertFalse(is_grad_enabled())
            self.assertTrue(is_inference_mode_enabled())
        self.assertTrue(is_grad_enabled())
        self.assertFalse(is_inference_mode_enabled())

    def test_nested_modes(self):
        with no_grad():
            with inference_mode():
                self.assertTrue(is_inference_mode_enabled())
            self.assertFalse(is_inference_mode_enabled())
            self.assertFalse(is_grad_enabled())
        self.assertTrue(is_grad_enabled())

    def test_restores_on_exception(self):
        with self.assertRaises(KeyError):
            with inference_mode():
                raise KeyError("boom")
        self.assertTrue(is_grad_enabled())
        self.assertFalse(is_inference_mode_enabled())

    def test_set_grad_enabled_toggles_globally(self):
        try:
            set_grad_enabled(False)
            self.assertFalse(is_grad_enabled())
            with no_grad():
                self.assertFalse(is_grad_enabled())
            self.assertFalse(is_grad_enabled())
        finally:
            set_grad_enabled(True)
        self.assertTrue(is_grad_enabled())

    def test_public_switches_are_documented(self):
        for fn in (is_grad_enabled, is_inference_mode_enabled, set_grad_enabled):
            with self.subTest(fn=fn.__name__):
                self.assertTrue(fn.__doc__ and fn.__doc__.strip())

    def test_decorator_form(self):
        @no_grad()
        def f():
            return is_grad_enabled()

        @inference_mode()
        def g():
            return is_inference_mode_enabled()

        self.assertFalse(f())
        self.assertTrue(g())
        self.assertTrue(is_grad_enabled())
        self.assertFalse(is_inference_mode_enabled())


class TestGradModeGatesContextAttachment(TestCase):
    def setUp(self) -> None:
        self.device = Device("cpu")
        self.x = Tensor._from_numpy(
            np.arange(6, dtype=np.float32).reshape(3, 2), device=self.device, requires_grad=True
        )
        self.idx = Tensor._from_numpy(np.array([1, 0], dtype=np.int64), device=self.device)

    def test_output_tracked_by_default(self):
        y = index_select_dim0(self.x, self.idx)
        self.assertTrue(y.requires_grad)
        self.assertIsNotNone(y._get_ctx())

    def test_no_grad_detaches_output(self):
        with no_grad():
            y = index_select_dim0(self.x, self.idx)
        self.assertFalse(y.requires_grad)
        self.assertIsNone(y._get_ctx())
        np.testing.assert_array_equal(y.to_numpy(), [[2.0, 3.0], [0.0, 1.0]])

    def test_inference_mode_detaches_output(self):
        with inference_mode():
            y = index_select_dim0(self.x, self.idx)
        self.assertIsNone(y._get_ctx())

    def test_untracked_input_gives_untracked_output(self):
        x = Tensor._from_numpy(np.ones((3, 2), dtype=np.float32), device=self.device)
        y = index_select_dim0(x, self.idx)
        self.assertFalse(y.requires_grad)
        self.assertIsNone(y._get_ctx())


if __name__ == "__main__":
    unittest.main()
