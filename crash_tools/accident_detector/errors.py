from typing import Optional


class AccidentDetectorError(Exception):
    """Base class for errors raised by the accident detector."""


class EmptyInputError(AccidentDetectorError, ValueError):
    def __init__(self, message: str = "No sensor data provided"):
        super().__init__(message)


class MalformedSampleError(AccidentDetectorError, ValueError):
    """A sample is missing a required field or carries a non-numeric value."""

    def __init__(self, field_name: str, reason: str, index: Optional[int] = None):
        self.field_name = field_name
        self.reason = reason
        self.index = index
        where = f"sample {index}: " if index is not None else ""
        super().__init__(f"{where}{field_name} {reason}")
