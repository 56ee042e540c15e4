"""
Structural contract for device descriptors.

Kernel dispatch and device-residency checks only need a device's category
and ordinal, so they type against `DeviceLike` instead of the concrete
`Device` class. Test doubles and future backends can satisfy the contract
without inheriting from anything.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class DeviceLike(Protocol):
    """
    Duck-typed device contract.

    Attributes
    ----------
    type : object
        Device category, used as the kernel registry key
        (a `DeviceType` member for the built-in `Device`).
    index : Optional[int]
        Device ordinal, or None for host devices.
    """

    type: object
    index: Optional[int]

    def is_cpu(self) -> bool: ...
    def is_cuda(self) -> bool: ...
    def __str__(self) -> str: ...
