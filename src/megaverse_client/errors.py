"""
Custom exceptions for the Megaverse client.
"""


class MegaverseError(Exception):
    """Base error for the Megaverse client."""

    pass


class GoalFetchError(MegaverseError):
    """The goal endpoint answered with an error status or an unusable body."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class GoalParseError(MegaverseError, ValueError):
    """A goal map cell or shape could not be understood."""

    pass
