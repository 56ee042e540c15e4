"""
Kernel registry: (operation name, device type) -> kernel callable.

Operators never import a backend directly. They ask the registry for the
kernel that serves their input's device at call time:

    kernel = registry.resolve("index_select", x.device)

The registry is an immutable mapping built once. `extended()` returns a new
registry rather than mutating the existing one. Every public operator takes
`registry=` (default: `default_registry()`); the backward context keeps that
registry, so backward kernels come from the same provider as forward ones:

    cuda_registry = default_registry().extended(cuda_entries)
    y = index_select_dim0(x, idx, registry=cuda_registry)

Registered operation names
--------------------------
- "pack_segments_forward", "pack_segments_backward"
- "sort_indices", "index_select", "index_add_with_unique_indices"
- "batched_unary_embeddings_forward", "batched_unary_embeddings_backward"
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple

from ...domain._errors import DeviceNotSupportedError
from ...domain.device._device import DeviceType
from ...domain.device._device_protocol import DeviceLike

KernelKey = Tuple[str, Any]

KERNEL_NAMES: Tuple[str, ...] = (
    "pack_segments_forward",
    "pack_segments_backward",
    "sort_indices",
    "index_select",
    "index_add_with_unique_indices",
    "batched_unary_embeddings_forward",
    "batched_unary_embeddings_backward",
)


class KernelRegistry:
    """
    Immutable (operation name, device type) -> kernel mapping.

    Parameters
    ----------
    table : Mapping[tuple[str, Any], Callable]
        Entries keyed by `(op_name, device_type)`. Copied on construction.
    """

    __slots__ = ("_table",)

    def __init__(self, table: Mapping[KernelKey, Callable[..., Any]]) -> None:
        self._table = MappingProxyType(dict(table))

    @classmethod
    def build(
        cls, entries: Iterable[Tuple[str, Any, Callable[..., Any]]]
    ) -> "KernelRegistry":
        """
        Build a registry from `(op_name, device_type, kernel)` triples.

        Raises
        ------
        ValueError
            If the same `(op_name, device_type)` pair is registered twice.
        """
        table: dict[KernelKey, Callable[..., Any]] = {}
        for name, device_type, kernel in entries:
            key = (name, device_type)
            if key in table:
                raise ValueError(f"kernel {name!r} registered twice for {device_type}")
            table[key] = kernel
        return cls(table)

    def extended(
        self, entries: Iterable[Tuple[str, Any, Callable[..., Any]]]
    ) -> "KernelRegistry":
        """Return a new registry with `entries` added to this one's."""
        extra = KernelRegistry.build(entries)
        overlap = set(self._table) & set(extra._table)
        if overlap:
            raise ValueError(f"kernels already registered: {sorted(map(str, overlap))}")
        return KernelRegistry({**self._table, **extra._table})

    @property
    def table(self) -> Mapping[KernelKey, Callable[..., Any]]:
        return self._table

    def resolve(self, name: str, device: DeviceLike) -> Callable[..., Any]:
        """
        Return the kernel for `name` on `device`'s device type.

        Raises
        ------
        DeviceNotSupportedError
            If no kernel is registered for that pair.
        """
        kernel = self._table.get((name, device.type))
        if kernel is None:
            raise DeviceNotSupportedError(op=name, device=str(device))
        return kernel

    def __contains__(self, key: object) -> bool:
        return key in self._table

    def __len__(self) -> int:
        return len(self._table)


def _build_default_registry() -> KernelRegistry:
    from . import sparse_cpu_ext as cpu

    return KernelRegistry.build(
        (name, DeviceType.CPU, getattr(cpu, name)) for name in KERNEL_NAMES
    )


_DEFAULT_REGISTRY: Optional[KernelRegistry] = None


def default_registry() -> KernelRegistry:
    """Return the process-wide registry of built-in kernels, building it on first use."""
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        _DEFAULT_REGISTRY = _build_default_registry()
    return _DEFAULT_REGISTRY
