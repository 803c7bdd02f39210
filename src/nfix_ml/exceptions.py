"""Exceptions raised by the neighbour classifier and its plumbing."""


class NfixError(Exception):
    """Base exception for nfix_ml."""


class BuildError(NfixError):
    """Raised when a descriptor cannot be computed for one compound."""

    def __init__(self, identity, reason: str):
        self.identity = identity
        self.reason = reason
        super().__init__(f"Cannot build descriptor for '{identity}': {reason}")


class InsufficientDataError(NfixError):
    """Raised when a labeled store is too small to leave one compound out."""


class NoNeighborFound(NfixError):
    """Raised when no candidate clears the similarity cutoff."""

    def __init__(self, identity, cutoff: float):
        self.identity = identity
        self.cutoff = cutoff
        super().__init__(f"No neighbour for '{identity}' at cutoff {cutoff}")


class ConfigError(NfixError):
    """Raised when a run configuration is invalid."""


class DataError(NfixError):
    """Raised when an input table lacks required columns."""

    def __init__(self, missing, available):
        self.missing = list(missing)
        self.available = list(available)
        super().__init__(f"Missing columns {self.missing}. Available columns: {self.available}")
