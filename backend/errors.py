"""
Failure taxonomy for audits.

Provider failures are classified from the google.api_core exception type
when one is available. Message matching is only the fallback for errors that
arrive as plain text (wrapped exceptions, proxied error payloads).
"""
from __future__ import annotations
from typing import Optional

from google.api_core import exceptions as google_exceptions

from backend.models import AnalysisFailure, ErrorKind

ENTITY_NOT_FOUND = "requested entity was not found"


class AnalysisError(Exception):
    """The only error type that leaves the gateway; always carries a kind."""

    def __init__(self, kind: ErrorKind, message: str = "", reselect_credentials: bool = False):
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message or kind.value
        # Entity-not-found while a key is being (re)selected: prompt for a new
        # credential instead of surfacing MODEL_NOT_FOUND
        self.reselect_credentials = reselect_credentials

    def to_failure(self) -> AnalysisFailure:
        return AnalysisFailure(kind=self.kind, message=self.message)


def classify_message(text: Optional[str]) -> AnalysisError:
    """
    Map a free-text provider error onto the taxonomy.

    Precedence is fixed: quota, then credentials, then entity-not-found
    (credential reselection), then model-not-found, then generic. An
    "entity not found" message therefore never becomes a plain
    MODEL_NOT_FOUND even though it also contains "not found".
    """
    message = text or "Analysis failed."
    lowered = message.lower()

    if "429" in lowered or "quota" in lowered or "resource_exhausted" in lowered:
        return AnalysisError(ErrorKind.QUOTA_EXHAUSTED, message)
    if ("missing gemini_api_key" in lowered or "api key" in lowered or "api_key" in lowered
            or "unauthorized" in lowered or "permission" in lowered):
        return AnalysisError(ErrorKind.MISSING_OR_INVALID_API_KEY, message)
    if ENTITY_NOT_FOUND in lowered:
        return AnalysisError(ErrorKind.MODEL_NOT_FOUND, message, reselect_credentials=True)
    if "model" in lowered and "not found" in lowered:
        return AnalysisError(ErrorKind.MODEL_NOT_FOUND, message)
    return AnalysisError(ErrorKind.GENERIC, message)


def classify_exception(exc: BaseException) -> AnalysisError:
    if isinstance(exc, AnalysisError):
        return exc

    message = str(exc) or type(exc).__name__

    if isinstance(exc, google_exceptions.ResourceExhausted):
        return AnalysisError(ErrorKind.QUOTA_EXHAUSTED, message)
    if isinstance(exc, (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied)):
        return AnalysisError(ErrorKind.MISSING_OR_INVALID_API_KEY, message)
    if isinstance(exc, google_exceptions.NotFound):
        return AnalysisError(
            ErrorKind.MODEL_NOT_FOUND,
            message,
            reselect_credentials=ENTITY_NOT_FOUND in message.lower(),
        )

    return classify_message(message)


def is_not_found(error: AnalysisError) -> bool:
    """Whether retrying with another model alias could help."""
    return error.kind == ErrorKind.MODEL_NOT_FOUND
