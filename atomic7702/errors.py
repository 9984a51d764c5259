"""
Error taxonomy for delegation-aware dispatch.

None of these are recovered internally: every failure aborts the current
invocation and is reported to the operator by the command entry points.
"""


class DispatchError(Exception):
    """Base class for every failure surfaced by the dispatcher."""


class ConfigurationError(DispatchError):
    """Missing or malformed required input, detected before any I/O."""


class TransportError(DispatchError):
    """Network or RPC failure while talking to the node or the bundler."""


class BundlerRpcError(TransportError):
    """The bundler answered with a JSON-RPC error object."""

    def __init__(self, method: str, code: int | None, message: str, data=None):
        self.method = method
        self.code = code
        self.data = data
        super().__init__(f"{method} failed ({code}): {message}")


class ExecutionError(DispatchError):
    """The operation was included on-chain but its execution reverted."""

    def __init__(self, message: str, transaction_hash: str | None = None):
        self.transaction_hash = transaction_hash
        super().__init__(message)


class InclusionTimeoutError(DispatchError, TimeoutError):
    """Inclusion was not observed in time; the true outcome is unknown.

    The operation may still land later, so callers must not treat this as
    a failed submission.
    """

    def __init__(self, message: str, operation_hash: str | None = None):
        self.operation_hash = operation_hash
        super().__init__(message)
