import pytest
from google.api_core import exceptions as google_exceptions

from backend.errors import AnalysisError, classify_exception, classify_message, is_not_found
from backend.models import ErrorKind


@pytest.mark.parametrize("message,kind", [
    ("429 Resource has been exhausted (e.g. check quota).", ErrorKind.QUOTA_EXHAUSTED),
    ("RESOURCE_EXHAUSTED", ErrorKind.QUOTA_EXHAUSTED),
    ("API key not valid. Please pass a valid API key.", ErrorKind.MISSING_OR_INVALID_API_KEY),
    ("Missing GEMINI_API_KEY", ErrorKind.MISSING_OR_INVALID_API_KEY),
    ("401 Unauthorized", ErrorKind.MISSING_OR_INVALID_API_KEY),
    ("models/gemini-9 is not found for API version v1beta", ErrorKind.MODEL_NOT_FOUND),
    ("socket closed", ErrorKind.GENERIC),
])
def test_classify_message(message, kind):
    assert classify_message(message).kind == kind


def test_quota_wins_over_credentials():
    assert classify_message("quota exceeded for api key").kind == ErrorKind.QUOTA_EXHAUSTED


def test_credentials_win_over_entity_not_found():
    error = classify_message("Permission denied: Requested entity was not found.")
    assert error.kind == ErrorKind.MISSING_OR_INVALID_API_KEY
    assert error.reselect_credentials is False


def test_entity_not_found_requests_reselection():
    error = classify_message("Requested entity was not found.")
    assert error.kind == ErrorKind.MODEL_NOT_FOUND
    assert error.reselect_credentials is True


def test_plain_model_not_found_does_not_reselect():
    error = classify_message("model gemini-3-pro-preview not found")
    assert error.kind == ErrorKind.MODEL_NOT_FOUND
    assert error.reselect_credentials is False


def test_empty_message_is_generic():
    error = classify_message(None)
    assert error.kind == ErrorKind.GENERIC
    assert error.message == "Analysis failed."


@pytest.mark.parametrize("exc,kind", [
    (google_exceptions.ResourceExhausted("slow down"), ErrorKind.QUOTA_EXHAUSTED),
    (google_exceptions.Unauthenticated("bad credential"), ErrorKind.MISSING_OR_INVALID_API_KEY),
    (google_exceptions.PermissionDenied("no access"), ErrorKind.MISSING_OR_INVALID_API_KEY),
    (google_exceptions.NotFound("no such model"), ErrorKind.MODEL_NOT_FOUND),
    (RuntimeError("connection reset"), ErrorKind.GENERIC),
    (RuntimeError("quota exceeded"), ErrorKind.QUOTA_EXHAUSTED),
])
def test_classify_exception(exc, kind):
    assert classify_exception(exc).kind == kind


def test_not_found_exception_with_entity_message_reselects():
    error = classify_exception(google_exceptions.NotFound("Requested entity was not found."))
    assert error.reselect_credentials is True


def test_analysis_error_passes_through():
    original = AnalysisError(ErrorKind.GENERIC, "already classified")
    assert classify_exception(original) is original


def test_to_failure():
    failure = AnalysisError(ErrorKind.QUOTA_EXHAUSTED, "quota").to_failure()
    assert failure.kind == ErrorKind.QUOTA_EXHAUSTED
    assert failure.message == "quota"


def test_is_not_found():
    assert is_not_found(AnalysisError(ErrorKind.MODEL_NOT_FOUND))
    assert not is_not_found(AnalysisError(ErrorKind.GENERIC))
