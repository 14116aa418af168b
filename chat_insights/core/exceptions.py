"""
Exceptions raised by the analysis pipeline.

Every component that can fail raises one of these; nothing in the pipeline
reports failure by returning corrupt data.
"""
from typing import Optional


class AnalysisError(Exception):
    """Base exception for chat analysis errors."""


class ResponseFormatError(AnalysisError):
    """Provider payload is structurally unusable."""


class EmptyResponseError(ResponseFormatError):
    """Provider returned no content blocks."""


class UnexpectedFormatError(ResponseFormatError):
    """First content block is not a text block."""


class UnparseableResponseError(AnalysisError):
    """Model text could not be turned into a JSON object."""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


class ProviderError(AnalysisError):
    """The LLM provider call failed."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ProviderBusyError(ProviderError):
    """Provider is rate limiting or overloaded; retrying later may succeed."""
