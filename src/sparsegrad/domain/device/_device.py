"""
Device descriptors used for tensor placement and kernel dispatch.

Two concepts live here:

- `DeviceType`: the *category* of a device ("cpu", "cuda"). Kernel
  registries are keyed on this value, since a kernel implementation serves
  every device of its category.
- `Device`: a concrete placement ("cpu", "cuda:0", ...). Device-residency
  checks compare `Device` instances, so two CUDA tensors on different
  ordinals are considered mismatched even though they share a kernel.
"""

from __future__ import annotations

from enum import Enum
from typing import Union
import re


class DeviceType(Enum):
    """
    Enumeration of supported device categories.

    Attributes
    ----------
    CPU : DeviceType
        Central Processing Unit.
    CUDA : DeviceType
        NVIDIA CUDA-enabled Graphics Processing Unit.
    """

    CPU = "cpu"
    CUDA = "cuda"


class Device:
    """
    Concrete computation device descriptor.

    Parameters
    ----------
    device : str
        Device identifier string. Must be either:
        - "cpu"
        - "cuda:<index>", where <index> is a non-negative integer

    Raises
    ------
    ValueError
        If the provided device string does not match the supported formats.

    Notes
    -----
    `__slots__` is used so descriptors stay small and hashable; they are used
    as dictionary keys by the kernel registry tests and by device checks.
    """

    __slots__ = ("type", "index")

    _CUDA_PATTERN = re.compile(r"^cuda:(\d+)$")

    def __init__(self, device: str):
        if device == "cpu":
            self.type = DeviceType.CPU
            self.index = None
        else:
            m = self._CUDA_PATTERN.match(device)
            if not m:
                raise ValueError(
                    f"Invalid device '{device}'. Expected 'cpu' or 'cuda:<index>'"
                )
            self.type = DeviceType.CUDA
            self.index = int(m.group(1))

    @classmethod
    def coerce(cls, device: Union["Device", str]) -> "Device":
        """
        Return `device` as a `Device`, parsing it first if it is a string.

        Parameters
        ----------
        device : Device | str
            Existing descriptor or a device string such as "cpu".

        Returns
        -------
        Device
            The normalized descriptor.

        Raises
        ------
        TypeError
            If `device` is neither a `Device` nor a string.
        """
        if isinstance(device, Device):
            return device
        if isinstance(device, str):
            return cls(device)
        raise TypeError(f"Expected Device or str, got {type(device)!r}")

    def __str__(self) -> str:
        return "cpu" if self.type is DeviceType.CPU else f"cuda:{self.index}"

    def __repr__(self) -> str:
        return f"Device('{self}')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Device):
            return NotImplemented
        return (self.type, self.index) == (other.type, other.index)

    def __hash__(self) -> int:
        return hash((self.type, self.index))

    def is_cpu(self) -> bool:
        """Return True if this device is a CPU."""
        return self.type is DeviceType.CPU

    def is_cuda(self) -> bool:
        """Return True if this device is a CUDA GPU."""
        return self.type is DeviceType.CUDA
