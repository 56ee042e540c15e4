"""
Autograd function interface definitions.

This module defines the abstract base class for differentiable operators.
A concrete `Function` subclass pairs a forward computation with the
backward computation that reconstructs gradients for each forward input,
communicating between the two only through a per-invocation context.

The interface follows function-level autograd systems (e.g., PyTorch's
`autograd.Function`): both methods are static, and all per-call state lives
on the `ctx` object so a single `Function` class can serve any number of
concurrent graphs.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple, Union

from ._tensor import ITensor


class Function(ABC):
    """
    Abstract base class for differentiable operators.

    Subclasses implement:

    - `forward(ctx, *inputs)`, which computes the output and records on
      `ctx` exactly the state backward needs, and
    - `backward(ctx, *grad_outputs)`, which returns a tuple with one slot
      per forward input. Slots for inputs that cannot receive a gradient
      (index tensors, lengths, integer or boolean parameters) are `None`.

    Notes
    -----
    - `backward` receives the gradient outputs as a variadic sequence so an
      operator can check the arity it was handed.
    - `backward` must treat `ctx` as read-only.
    """

    @staticmethod
    @abstractmethod
    def forward(ctx, *inputs: Union[ITensor, Any]) -> ITensor:
        """
        Perform the forward computation.

        Parameters
        ----------
        ctx : Context
            Per-invocation context used to record state for backward.
        *inputs : Tensor | Any
            Forward inputs. Non-tensor inputs (ints, bools) are allowed.

        Returns
        -------
        Tensor
            The output tensor.
        """
        ...

    @staticmethod
    @abstractmethod
    def backward(ctx, *grad_outputs: ITensor) -> Tuple[Optional[ITensor], ...]:
        """
        Compute gradients with respect to every forward input.

        Parameters
        ----------
        ctx : Context
            The context populated (and frozen) by the matching forward call.
        *grad_outputs : Tensor
            Gradients of the loss with respect to the forward outputs.

        Returns
        -------
        tuple[Tensor | None, ...]
            Exactly one entry per forward input.
        """
        ...
