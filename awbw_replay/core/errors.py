"""
Exception types for the replay engine.
"""


class ReplayError(Exception):
    """Base class for all replay engine errors."""
    pass


class RegistrationError(ReplayError):
    """Raised when an action decoder is registered twice for the same code."""
    pass


class DecodeError(ReplayError):
    """Raised when a replay document or action fragment cannot be decoded."""
    pass


class NestedActionTypeError(DecodeError):
    """Raised when a nested action decodes to an unexpected variant."""
    pass


class VisionError(DecodeError):
    """Raised when the active viewer has no vision on combat data."""
    pass


class StorageError(ReplayError):
    """Raised when replay store operations fail."""
    pass


class EnrichmentError(ReplayError):
    """Raised when a username enrichment run exhausts its failure budget."""

    def __init__(self, message: str, result=None) -> None:
        super().__init__(message)
        self.result = result


class PlaybackError(ReplayError):
    """Raised when playback meets an inconsistent game state."""
    pass


class UnsupportedOperationError(ReplayError):
    """Raised for operations with no defined behaviour (e.g. undo)."""
    pass
