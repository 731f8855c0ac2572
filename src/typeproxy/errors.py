"""Exception types raised by typeproxy.

All of them are caller-contract violations surfaced synchronously at the
call site.  Failures raised by a dispatch sink are never wrapped.
"""


class TypeProxyError(Exception):
    """Base class for typeproxy errors."""


class SinkUnavailable(TypeProxyError):
    """Raised when a call must be forwarded but no dispatch sink is attached."""


class InvalidDispatchArgument(TypeProxyError):
    """Raised when ``Dispatch`` is not given a single name → value mapping."""


class ContractError(TypeProxyError):
    """Raised when a class cannot be used as a contract."""
