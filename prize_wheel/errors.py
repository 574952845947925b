"""Exceptions raised by the draw engine."""


class PrizeWheelError(Exception):
    """Base class for all prize wheel errors"""


class EmptyInventory(PrizeWheelError):
    """Raised when a draw is requested but every tier has run out of stock"""

    def __init__(self, message="All prizes have been drawn"):
        super().__init__(message)


class CorruptPersistedState(PrizeWheelError):
    """Raised when the stored inventory does not match the expected schema"""


class MediaReadFailure(PrizeWheelError):
    """Raised when an uploaded media file cannot be turned into a reference"""
