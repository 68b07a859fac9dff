# trusslab/errors.py
"""Exceptions raised by the truss engine. All of them are recoverable rejections."""


class TrussError(Exception):
    """Base class for rejected truss operations."""
    pass


class DegenerateElement(TrussError, ValueError):
    """Raised when an element would connect a node to itself or to a coincident node."""
    pass


class InvalidReference(TrussError, KeyError):
    """Raised when an operation names a node, element or load that does not exist."""

    def __str__(self):
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""


class InvalidOperationState(TrussError, RuntimeError):
    """Raised when an operation is not allowed in the current simulation state."""
    pass
