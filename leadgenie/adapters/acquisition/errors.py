# leadgenie/adapters/acquisition/errors.py
from __future__ import annotations


class AcquisitionError(Exception):
    """Base for every soft failure inside the acquisition pipeline."""


class LocationResolutionFailure(AcquisitionError):
    pass


class FetchFailure(AcquisitionError):
    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class InvalidPayload(AcquisitionError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"invalid payload: {reason}")
        self.reason = reason


class ParseFailure(AcquisitionError):
    pass
