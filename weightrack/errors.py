from __future__ import annotations


class WeightTrackError(Exception):
    """Base class for errors raised by weightrack."""


class NetworkError(WeightTrackError):
    """The request never reached the server or no response came back."""


class ServerError(WeightTrackError):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class ValidationError(WeightTrackError):
    """A required form field is empty or cannot be parsed."""
