from ._registry import KernelRegistry, KERNEL_NAMES, default_registry

__all__ = [KernelRegistry.__name__, "KERNEL_NAMES", default_registry.__name__]
