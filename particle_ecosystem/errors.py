"""
Engine error taxonomy.

Configuration problems are fatal at ``init`` and leave the engine in its
previous state.  State errors are programmer errors (``tick`` before
``init``, input after ``dispose``) and never touch internal state.

Population saturation and numeric clamping are *not* errors: they are routine
per-frame conditions, counted in ``Diagnostics`` instead of raised.
"""


class EngineError(Exception):
    """Base class for everything the engine raises."""


class ConfigurationError(EngineError):
    """Raised at ``init`` when the config or seed is inconsistent."""


class InvalidStateError(EngineError):
    """Raised when an operation is called outside the RUNNING state."""

    def __init__(self, operation: str, state) -> None:
        super().__init__(f"cannot {operation}() while engine is {state.name}")
        self.operation = operation
        self.state = state
