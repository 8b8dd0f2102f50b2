class FocusAreasError(Exception):
    """Base class for focus areas scoring errors."""


class UnknownScoringProfileError(FocusAreasError, KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown scoring profile: {self.name!r}"


class InvalidScoringProfileError(FocusAreasError, ValueError):
    pass


class BatchAbortedError(FocusAreasError):
    """The batch could not load its inputs and did not process any facility."""
