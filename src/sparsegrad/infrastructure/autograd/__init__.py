from ._grad_mode import (
    is_grad_enabled,
    is_inference_mode_enabled,
    set_grad_enabled,
    no_grad,
    inference_mode,
)

__all__ = [
    "is_grad_enabled",
    "is_inference_mode_enabled",
    "set_grad_enabled",
    "no_grad",
    "inference_mode",
]
