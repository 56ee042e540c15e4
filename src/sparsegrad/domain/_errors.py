"""
Exceptions raised by sparsegrad operators and runtime.

This module defines the error taxonomy shared by the autograd functions,
the kernel registry, and the CPU kernels. The split mirrors *who* is at
fault:

- `InvalidArgumentError`: the caller passed malformed data (wrong gradient
  arity, inconsistent lengths/offsets, out-of-range indices).
- `DeviceMismatchError`: cooperating tensors live on different devices.
- `DeviceNotSupportedError`: no kernel is registered for the requested
  operation on the tensor's device.
- `InternalError`: the forward/backward contract itself was violated
  (missing or overwritten saved state, backward run twice). Valid usage
  never triggers it.

Every check that raises one of these runs before a kernel writes any
output, so a failed call never leaves a partially-updated result behind.
"""


class InvalidArgumentError(ValueError):
    """
    Raised when an operator receives arguments that violate its contract.

    Attributes
    ----------
    op : str
        Name of the operation that rejected its arguments.
    """

    def __init__(self, op: str, message: str) -> None:
        super().__init__(f"{op}: {message}")
        self.op = op


class DeviceNotSupportedError(RuntimeError):
    """
    Raised when a tensor operation is requested on a device backend
    that has no registered kernel.

    Attributes
    ----------
    op : str
        The name of the operation that was attempted (e.g., "index_select").
    device : str
        String representation of the device on which the operation
        was attempted.
    """

    def __init__(self, op: str, device: str) -> None:
        """
        Initialize the DeviceNotSupportedError.

        Parameters
        ----------
        op : str
            The operation name that is not supported on the given device.
        device : str
            The device identifier (e.g., "cuda:0").
        """
        super().__init__(f"{op} is not implemented for device '{device}'.")
        self.op = op
        self.device = device


class DeviceMismatchError(RuntimeError):
    """
    Raised when an operation is attempted between tensors on different devices.

    This error is used to prevent undefined behavior when combining tensors
    that reside on incompatible devices (e.g., CPU tensor with CUDA tensor)
    without an explicit device transfer.
    """

    def __init__(self, device_a: str, device_b: str) -> None:
        """
        Initialize the DeviceMismatchError.

        Parameters
        ----------
        device_a : str
            Device identifier of the first operand.
        device_b : str
            Device identifier of the second operand.
        """
        super().__init__(f"Device mismatch: '{device_a}' vs '{device_b}'.")
        self.device_a = device_a
        self.device_b = device_b


class InternalError(RuntimeError):
    """
    Raised when the forward/backward bookkeeping contract is broken.

    Examples are reading a saved value that forward never stored, saving
    the same key twice, saving into a frozen context, or running backward
    twice for one forward call. These indicate a framework bug rather than
    a caller mistake.
    """
