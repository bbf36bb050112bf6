import pytest

from backend.errors import AnalysisError
from backend.models import AuditStatus, ErrorKind
from backend.normalizer import normalize_analysis
from backend.store import AuditInProgressError, ImageNotFoundError, ImageStore, NoAnalysisError

from tests.helpers import make_raw_payload


@pytest.fixture
def store():
    return ImageStore(default_model="gemini-3-pro-preview")


@pytest.fixture
def image(store, png_bytes):
    return store.add("home.png", "image/png", png_bytes)


def test_add_defaults(store, image):
    assert image.status == AuditStatus.IDLE
    assert image.model == "gemini-3-pro-preview"
    assert image.analysis is None
    assert image.id in store
    assert len(store) == 1


def test_images_keep_upload_order(store, png_bytes):
    first = store.add("a.png", "image/png", png_bytes)
    second = store.add("b.png", "image/png", png_bytes)
    assert [i.id for i in store.list_images()] == [first.id, second.id]


def test_unknown_image(store):
    with pytest.raises(ImageNotFoundError):
        store.get("missing")


def test_update_settings(store, image):
    store.update_settings(image.id, user_context="signup flow", model="gemini-3-flash-preview")
    assert image.user_context == "signup flow"
    assert image.model == "gemini-3-flash-preview"


def test_successful_audit_lifecycle(store, image):
    store.begin_audit(image.id)
    assert image.status == AuditStatus.LOADING
    assert image.is_loading is True

    analysis = normalize_analysis(make_raw_payload())
    store.complete_audit(image.id, analysis, "gemini-3-pro-preview")
    assert image.status == AuditStatus.READY
    assert image.analysis is analysis
    assert image.model_used == "gemini-3-pro-preview"


def test_second_audit_rejected_while_loading(store, image):
    store.begin_audit(image.id)
    with pytest.raises(AuditInProgressError):
        store.begin_audit(image.id)


def test_failure_keeps_previous_analysis(store, image):
    analysis = normalize_analysis(make_raw_payload())
    store.begin_audit(image.id)
    store.complete_audit(image.id, analysis)

    store.begin_audit(image.id)
    store.fail_audit(image.id, AnalysisError(ErrorKind.QUOTA_EXHAUSTED, "quota"))

    assert image.status == AuditStatus.ERROR
    assert image.error.kind == ErrorKind.QUOTA_EXHAUSTED
    assert image.analysis is analysis


def test_retry_after_error_clears_it(store, image):
    store.begin_audit(image.id)
    store.fail_audit(image.id, AnalysisError(ErrorKind.GENERIC, "boom"))
    store.begin_audit(image.id)
    assert image.status == AuditStatus.LOADING
    assert image.error is None


def test_entity_not_found_returns_to_idle(store, image):
    store.begin_audit(image.id)
    store.fail_audit(image.id, AnalysisError(ErrorKind.MODEL_NOT_FOUND, "Requested entity was not found.",
                                             reselect_credentials=True))
    assert image.status == AuditStatus.IDLE
    assert image.error is None
    assert image.credential_reselection_required is True


def test_images_do_not_share_state(store, png_bytes):
    a = store.add("a.png", "image/png", png_bytes)
    b = store.add("b.png", "image/png", png_bytes)
    store.begin_audit(a.id)
    assert b.status == AuditStatus.IDLE
    store.begin_audit(b.id)
    store.fail_audit(b.id, AnalysisError(ErrorKind.GENERIC, "boom"))
    assert a.status == AuditStatus.LOADING


def test_toggle_resolution_updates_analysis(store, image):
    store.begin_audit(image.id)
    store.complete_audit(image.id, normalize_analysis(make_raw_payload(score=4.0, observations_per_heuristic=4)))

    store.toggle_resolution(image.id, 1, 0)
    store.toggle_resolution(image.id, 1, 1)
    assert image.analysis.heuristics[1].score == pytest.approx(7.0)


def test_toggle_without_analysis(store, image):
    with pytest.raises(NoAnalysisError):
        store.toggle_resolution(image.id, 1, 0)


def test_remove(store, image):
    store.remove(image.id)
    assert image.id not in store
    with pytest.raises(ImageNotFoundError):
        store.remove(image.id)
