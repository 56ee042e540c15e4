from ._errors import (
    InvalidArgumentError,
    DeviceNotSupportedError,
    DeviceMismatchError,
    InternalError,
)
from ._function import Function
from ._tensor import ITensor
from .device import Device, DeviceType, DeviceLike

__all__ = [
    InvalidArgumentError.__name__,
    DeviceNotSupportedError.__name__,
    DeviceMismatchError.__name__,
    InternalError.__name__,
    Function.__name__,
    ITensor.__name__,
    Device.__name__,
    DeviceType.__name__,
    DeviceLike.__name__,
]
