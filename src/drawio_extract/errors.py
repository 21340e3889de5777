"""
Failure taxonomy for diagram extraction.

Whole-request failures raise a :class:`DiagramError` subclass.  Failures that
are local to one page (a payload that cannot be decompressed, a record with
missing attributes) never raise; they degrade that page's contribution.
"""

from __future__ import annotations


class DiagramError(Exception):
    """Base class for failures that abort an extraction request."""

    def __init__(self, message: str, *, operation: str = "", source: str = "") -> None:
        self.message = message
        self.operation = operation
        self.source = source
        super().__init__(message)


class SourceUnavailable(DiagramError):
    """The diagram source could not be read."""


class DocumentMalformed(DiagramError):
    """The top-level document is not a well-formed draw.io file."""


class PageNotFound(DiagramError):
    """A page filter matched no page of the document."""


class UnknownOperation(DiagramError):
    """The query façade was asked for an operation it does not implement."""
