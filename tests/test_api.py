import base64
import json

import pytest
from fastapi.testclient import TestClient
from google.api_core import exceptions as google_exceptions

from backend.gateway import AnalysisGateway
from backend.main import create_app
from backend.store import ImageStore
from backend.ui_state import UIStateStore

from tests.helpers import FakeModelFactory, FakeResponse, make_raw_payload


def _ok(model_name, content_parts, generation_config):
    return FakeResponse(json.dumps(make_raw_payload(score=4.0, observations_per_heuristic=4)))


def _client(tmp_path, behaviour=_ok, api_key="test-key"):
    factory = FakeModelFactory(behaviour)
    app = create_app(
        gateway=AnalysisGateway(api_key=api_key, model_factory=factory),
        store=ImageStore(default_model="gemini-3-pro-preview"),
        ui_state=UIStateStore(tmp_path / "ui_state.json"),
    )
    return TestClient(app), app, factory


@pytest.fixture
def client(tmp_path):
    test_client, _, _ = _client(tmp_path)
    return test_client


def _upload(client, png_bytes, name="home.png", mime="image/png"):
    return client.post("/api/images", files=[("files", (name, png_bytes, mime))])


def test_heuristics_endpoint(client):
    data = client.get("/api/heuristics").json()
    assert [h["id"] for h in data["heuristics"]] == list(range(1, 11))
    assert data["heuristics"][4]["weight"] == 1.5
    assert [b["label"] for b in data["gradeBands"]] == ["PASS", "PARTIAL", "FAIL"]


def test_models_and_fun_fact(client):
    assert client.get("/api/models").json()["models"]
    assert client.get("/api/fun-fact").json()["funFact"].startswith("Did you know")


def test_analyze_proxy(client, png_bytes):
    body = {
        "base64Data": "data:image/png;base64," + base64.b64encode(png_bytes).decode(),
        "mimeType": "image/png",
        "model": "gemini-3-pro-preview",
    }
    response = client.post("/api/analyze", json=body)
    assert response.status_code == 200
    data = response.json()
    assert data["_modelUsed"] == "gemini-3-pro-preview"
    assert data["overallScore"] == 4.0
    assert set(data["heuristics"]) == {str(i) for i in range(1, 11)}
    assert data["heuristics"]["1"]["initialScore"] == 4.0


def test_analyze_proxy_missing_fields(client):
    response = client.post("/api/analyze", json={"mimeType": "image/png"})
    assert response.status_code == 400


@pytest.mark.parametrize("base64_data", ["data:image/png;base64", "data:image/png;base64,", "not base64!"])
def test_analyze_proxy_rejects_bad_image_data(client, base64_data):
    response = client.post("/api/analyze", json={
        "base64Data": base64_data, "mimeType": "image/png", "model": "gemini-3-pro-preview",
    })
    assert response.status_code == 400
    assert "error" in response.json()


def test_analyze_proxy_without_key(tmp_path, png_bytes):
    client, _, _ = _client(tmp_path, api_key="")
    response = client.post("/api/analyze", json={
        "base64Data": base64.b64encode(png_bytes).decode(), "mimeType": "image/png", "model": "m",
    })
    assert response.status_code == 400
    assert response.json()["errorKind"] == "MISSING_OR_INVALID_API_KEY"


def test_analyze_proxy_reports_error_kind(tmp_path, png_bytes):
    def quota(*args):
        raise google_exceptions.ResourceExhausted("quota exceeded")

    client, _, _ = _client(tmp_path, behaviour=quota)
    response = client.post("/api/analyze", json={
        "base64Data": base64.b64encode(png_bytes).decode(), "mimeType": "image/png", "model": "gemini-3-pro-preview",
    })
    assert response.status_code == 500
    assert response.json()["errorKind"] == "QUOTA_EXHAUSTED"


def test_upload_rejects_unsupported_type(client):
    response = _upload(client, b"GIF89a", name="anim.gif", mime="image/gif")
    assert response.status_code == 400


def test_upload_list_and_preview(client, png_bytes):
    image = _upload(client, png_bytes).json()["images"][0]
    assert image["status"] == "idle"
    assert image["isLoading"] is False
    assert image["model"] == "gemini-3-pro-preview"
    assert "data" not in image

    listing = client.get("/api/images").json()
    assert listing["count"] == 1

    preview = client.get(image["previewUrl"])
    assert preview.status_code == 200
    assert preview.content == png_bytes


def test_full_audit_and_review_flow(client, png_bytes):
    image_id = _upload(client, png_bytes).json()["images"][0]["id"]

    patched = client.patch(f"/api/images/{image_id}", json={"userContext": "pricing page"}).json()
    assert patched["userContext"] == "pricing page"

    audited = client.post(f"/api/images/{image_id}/analyze").json()
    assert audited["status"] == "ready"
    assert audited["modelUsed"] == "gemini-3-pro-preview"
    assert audited["analysis"]["heuristics"]["3"]["score"] == 4.0

    for index in (0, 1):
        reviewed = client.post(f"/api/images/{image_id}/toggle-resolution",
                               json={"heuristicId": 3, "observationIndex": index}).json()
    assert reviewed["analysis"]["heuristics"]["3"]["score"] == pytest.approx(7.0)
    assert reviewed["analysis"]["heuristics"]["3"]["initialScore"] == 4.0
    assert reviewed["analysis"]["overallScore"] > audited["analysis"]["overallScore"]

    report = client.get(f"/api/images/{image_id}/report").json()
    assert report["heuristics"][2]["status"] == "2/4 Resolved"

    overlay = client.get(f"/api/images/{image_id}/overlay", params={"heuristicId": 3})
    assert overlay.status_code == 200
    assert overlay.headers["content-type"] == "image/png"


def test_out_of_range_toggle_is_a_no_op(client, png_bytes):
    image_id = _upload(client, png_bytes).json()["images"][0]["id"]
    before = client.post(f"/api/images/{image_id}/analyze").json()["analysis"]
    after = client.post(f"/api/images/{image_id}/toggle-resolution",
                        json={"heuristicId": 3, "observationIndex": 99}).json()["analysis"]
    assert after == before


def test_toggle_requires_fields(client, png_bytes):
    image_id = _upload(client, png_bytes).json()["images"][0]["id"]
    response = client.post(f"/api/images/{image_id}/toggle-resolution", json={"heuristicId": 3})
    assert response.status_code == 400


def test_review_before_analysis_conflicts(client, png_bytes):
    image_id = _upload(client, png_bytes).json()["images"][0]["id"]
    toggle = client.post(f"/api/images/{image_id}/toggle-resolution",
                         json={"heuristicId": 1, "observationIndex": 0})
    assert toggle.status_code == 409
    assert client.get(f"/api/images/{image_id}/report").status_code == 409


def test_audit_already_in_progress(tmp_path, png_bytes):
    client, app, _ = _client(tmp_path)
    image_id = _upload(client, png_bytes).json()["images"][0]["id"]
    app.state.store.begin_audit(image_id)
    assert client.post(f"/api/images/{image_id}/analyze").status_code == 409


def test_failed_audit_sets_error(tmp_path, png_bytes):
    def quota(*args):
        raise google_exceptions.ResourceExhausted("quota exceeded")

    client, _, _ = _client(tmp_path, behaviour=quota)
    image_id = _upload(client, png_bytes).json()["images"][0]["id"]
    data = client.post(f"/api/images/{image_id}/analyze").json()
    assert data["status"] == "error"
    assert data["error"]["kind"] == "QUOTA_EXHAUSTED"
    assert data["analysis"] is None


def test_entity_not_found_requests_reselection(tmp_path, png_bytes):
    def missing(*args):
        raise google_exceptions.NotFound("Requested entity was not found.")

    client, _, _ = _client(tmp_path, behaviour=missing)
    image_id = _upload(client, png_bytes).json()["images"][0]["id"]
    data = client.post(f"/api/images/{image_id}/analyze").json()
    assert data["status"] == "idle"
    assert data["error"] is None
    assert data["credentialReselectionRequired"] is True


def test_delete_image(client, png_bytes):
    image_id = _upload(client, png_bytes).json()["images"][0]["id"]
    assert client.delete(f"/api/images/{image_id}").json()["count"] == 0
    assert client.get(f"/api/images/{image_id}").status_code == 404
    assert client.delete(f"/api/images/{image_id}").status_code == 404


def test_ui_state_round_trip(client):
    assert client.get("/api/ui-state", params={"sessionId": "s1"}).json()["theme"] == "dark"
    updated = client.put("/api/ui-state", params={"sessionId": "s1"},
                         json={"theme": "light", "analysisWidth": 9999}).json()
    assert updated["theme"] == "light"
    assert updated["analysisWidth"] == 800
    assert client.get("/api/ui-state", params={"sessionId": "s1"}).json()["theme"] == "light"


def test_ui_state_rejects_unknown_theme(client):
    response = client.put("/api/ui-state", json={"theme": "sepia"})
    assert response.status_code == 400


def test_ui_state_rejects_string_flag_without_partial_write(client):
    response = client.put("/api/ui-state", params={"sessionId": "s2"},
                          json={"analysisWidth": 600, "showSidebar": "false"})
    assert response.status_code == 400
    state = client.get("/api/ui-state", params={"sessionId": "s2"}).json()
    assert state["analysisWidth"] == 480
    assert state["showSidebar"] is False
