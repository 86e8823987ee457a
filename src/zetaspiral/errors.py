"""
Error taxonomy for the spiral engines.

Domain and configuration errors are recoverable and returned to the
caller. Invariant violations indicate a bug and halt the computation.
"""


class ZetaSpiralError(Exception):
    """Base class for every error raised by zetaspiral."""


class DomainError(ZetaSpiralError, ArithmeticError):
    """The exponent produces a non-finite term or correction."""


class ConfigurationError(ZetaSpiralError, ValueError):
    """A tunable is outside its accepted range."""


class InvariantViolation(ZetaSpiralError, RuntimeError):
    """Internal consistency check failed (partitioning or chaining)."""


class ComputationCancelled(ZetaSpiralError):
    """The cancellation token was tripped or its deadline expired."""
