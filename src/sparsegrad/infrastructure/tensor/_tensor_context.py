from typing import Any, Callable, Optional, Sequence, Tuple
from dataclasses import dataclass, field
from types import MappingProxyType

from ...domain._tensor import ITensor
from ...domain._errors import InternalError


@dataclass
class Context:
    """
    Backward context linking one forward call to its matching backward call.

    A `Context` is created by a functional wrapper right before `forward`
    runs, populated by `forward`, frozen once `forward` returns, and consumed
    by at most one backward call.

    Attributes
    ----------
    parents : Sequence[Any]
        The forward inputs, in order. Non-tensor inputs (ints, bools) are
        kept so that `backward_fn` returns one slot per entry.
    backward_fn : Callable[[ITensor], Sequence[Optional[ITensor]]]
        Maps `grad_out` to gradients for each `parents` entry, in order.
    saved_tensors : list[ITensor]
        Tensors saved during forward, retrievable in save order.
    saved_meta : dict[str, Any]
        Scalar or small-tuple metadata saved during forward, keyed by name.
    registry : KernelRegistry, optional
        Kernel registry that forward resolved against; backward resolves
        against the same one. None means the process-wide default.

    Notes
    -----
    The store is append-only: no key is overwritten, nothing is removed,
    and nothing may be saved after `freeze()`. Breaking any of these
    raises `InternalError`.
    """

    parents: Sequence[Any]
    backward_fn: Callable[["ITensor"], Sequence[Optional["ITensor"]]]
    saved_tensors: list["ITensor"] = field(default_factory=list)
    saved_meta: dict[str, Any] = field(default_factory=dict)
    registry: Any = None
    _frozen: bool = field(default=False, init=False, repr=False)
    _consumed: bool = field(default=False, init=False, repr=False)

    def _ensure_writable(self, what: str) -> None:
        if self._frozen:
            raise InternalError(f"cannot save {what}: context is frozen")

    def save_for_backward(self, *tensors: "ITensor") -> None:
        """
        Append tensors to `saved_tensors`.

        Parameters
        ----------
        *tensors : Tensor
            Tensors to store, in the order backward expects them.
        """
        self._ensure_writable("tensors")
        self.saved_tensors.extend(tensors)

    def save_tensors(self, tensors: Sequence["ITensor"]) -> None:
        """Append an ordered sequence of tensors; see `save_for_backward`."""
        self.save_for_backward(*tensors)

    def save_scalar(self, key: str, value: Any) -> None:
        """
        Record a scalar (or tuple of ints) under `key`.

        Raises
        ------
        InternalError
            If `key` was already saved or the context is frozen.
        """
        self._ensure_writable(f"scalar {key!r}")
        if key in self.saved_meta:
            raise InternalError(f"saved scalar {key!r} already set")
        self.saved_meta[key] = value

    def get_scalar(self, key: str) -> Any:
        """
        Return the scalar saved under `key`.

        Raises
        ------
        InternalError
            If forward never saved `key`.
        """
        try:
            return self.saved_meta[key]
        except KeyError:
            raise InternalError(f"saved scalar {key!r} is missing") from None

    def get_saved_tensors(self) -> Tuple["ITensor", ...]:
        """Return the saved tensors in the exact order they were saved."""
        return tuple(self.saved_tensors)

    def freeze(self) -> None:
        """Make the context read-only. Called once forward has returned."""
        if self._frozen:
            return
        self.saved_tensors = tuple(self.saved_tensors)
        self.saved_meta = MappingProxyType(self.saved_meta)
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def consume(self) -> None:
        """
        Mark this context as used by its one backward call.

        Raises
        ------
        InternalError
            If the context is not frozen yet, or was already consumed.
        """
        if not self._frozen:
            raise InternalError("backward invoked before forward completed")
        if self._consumed:
            raise InternalError("backward invoked twice for the same forward call")
        self._consumed = True
