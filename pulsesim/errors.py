# errors.py - Error taxonomy for graph validation and simulation


class PulseSimError(Exception):
    """Base class for all simulator errors"""


class InvalidGraphError(PulseSimError, ValueError):
    """Malformed estimate, unresolved dependency or cyclic dependency"""


class InvalidParameterError(PulseSimError, ValueError):
    """Bad run parameter: trial count, percentile, scale factor, scenario name"""


class BrokenInvariantError(PulseSimError, RuntimeError):
    """Internal consistency check failed. Indicates a bug, not bad input."""
