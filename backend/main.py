from __future__ import annotations
from typing import List, Dict, Any, Optional
import base64
import binascii

from fastapi import FastAPI, UploadFile, File, HTTPException, Query, Body, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from backend import config
from backend.errors import AnalysisError, classify_exception
from backend.gateway import AnalysisGateway
from backend.models import UploadedImage
from backend.overlays import render_overlay_png
from backend.report import build_report
from backend.rubric import GRADE_BANDS, NIELSEN_HEURISTICS, WEIGHT_DESCRIPTION, random_fun_fact
from backend.store import AuditInProgressError, ImageNotFoundError, ImageStore, NoAnalysisError
from backend.ui_state import UIStateStore


def create_app(
    gateway: Optional[AnalysisGateway] = None,
    store: Optional[ImageStore] = None,
    ui_state: Optional[UIStateStore] = None,
) -> FastAPI:
    app = FastAPI(title="Heuristic UX Auditor")

    # CORS configuration - allow requests from frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    app.state.gateway = gateway or AnalysisGateway()
    app.state.store = store or ImageStore()
    app.state.ui_state = ui_state or UIStateStore()

    _register_routes(app)
    return app


def _image_payload(image: UploadedImage) -> Dict[str, Any]:
    return image.model_dump(mode="json", by_alias=True)


def _get_image(request: Request, image_id: str) -> UploadedImage:
    try:
        return request.app.state.store.get(image_id)
    except ImageNotFoundError:
        raise HTTPException(status_code=404, detail=f"Image {image_id} not found")


def _register_routes(app: FastAPI) -> None:

    # ============================================================================
    # Rubric & reference data
    # ============================================================================

    @app.get("/api/heuristics")
    async def get_heuristics() -> Dict[str, Any]:
        return {
            "heuristics": [h.model_dump(by_alias=True) for h in NIELSEN_HEURISTICS],
            "weightDescription": WEIGHT_DESCRIPTION,
            "gradeBands": [
                {"label": label, "min": lower, "description": description}
                for label, lower, description in GRADE_BANDS
            ],
        }

    @app.get("/api/models")
    async def get_models() -> Dict[str, Any]:
        return {"models": config.AVAILABLE_MODELS, "defaultModel": config.DEFAULT_MODEL}

    @app.get("/api/fun-fact")
    async def get_fun_fact() -> Dict[str, Any]:
        return {"funFact": random_fun_fact()}

    # ============================================================================
    # Gateway proxy: one-shot analysis of a base64 image
    # ============================================================================

    @app.post("/api/analyze")
    async def analyze(request: Request, body: Dict[str, Any] = Body(default={})) -> Any:
        gateway: AnalysisGateway = request.app.state.gateway
        if not gateway.has_credentials:
            return JSONResponse(status_code=400, content={
                "error": "Missing GEMINI_API_KEY on server.",
                "errorKind": "MISSING_OR_INVALID_API_KEY",
            })

        base64_data = body.get("base64Data")
        mime_type = body.get("mimeType")
        model = body.get("model")
        user_context = body.get("userContext")
        if not isinstance(base64_data, str) or not base64_data or not mime_type or not model:
            return JSONResponse(status_code=400, content={
                "error": "Missing required fields: base64Data, mimeType, model",
            })

        # Remove data URL prefix if present
        if base64_data.startswith("data:image"):
            base64_data = base64_data.partition(",")[2]
        try:
            image_bytes = base64.b64decode(base64_data, validate=True)
        except (binascii.Error, ValueError):
            return JSONResponse(status_code=400, content={"error": "base64Data is not valid base64"})
        if not image_bytes:
            return JSONResponse(status_code=400, content={"error": "base64Data holds no image data"})

        try:
            analysis, model_used = await run_in_threadpool(
                gateway.request_analysis, image_bytes, mime_type, model, user_context
            )
        except AnalysisError as e:
            return JSONResponse(status_code=500, content={
                "error": e.message,
                "errorKind": e.kind.value,
                "reselectCredentials": e.reselect_credentials,
            })

        result = analysis.model_dump(mode="json", by_alias=True)
        result["_modelUsed"] = model_used
        return result

    # ============================================================================
    # Image working set
    # ============================================================================

    @app.post("/api/images")
    async def upload_images(request: Request, files: List[UploadFile] = File(...)) -> Dict[str, Any]:
        store: ImageStore = request.app.state.store
        created = []
        for file in files:
            mime_type = (file.content_type or "").lower()
            if mime_type not in config.ALLOWED_MIME_TYPES:
                raise HTTPException(
                    status_code=400,
                    detail=f"Unsupported file type for {file.filename}. Please upload PNG, JPG or WEBP.",
                )
            content = await file.read()
            if not content:
                raise HTTPException(status_code=400, detail=f"{file.filename} is empty.")
            created.append(store.add(file.filename or "screenshot", mime_type, content))
        return {"images": [_image_payload(img) for img in created]}

    @app.get("/api/images")
    async def list_images(request: Request) -> Dict[str, Any]:
        images = request.app.state.store.list_images()
        return {"images": [_image_payload(img) for img in images], "count": len(images)}

    @app.get("/api/images/{imageId}")
    async def get_image(request: Request, imageId: str) -> Dict[str, Any]:
        return _image_payload(_get_image(request, imageId))

    @app.get("/api/images/{imageId}/preview")
    async def get_image_preview(request: Request, imageId: str) -> Response:
        image = _get_image(request, imageId)
        return Response(content=image.data, media_type=image.mime_type)

    @app.patch("/api/images/{imageId}")
    async def update_image(request: Request, imageId: str, body: Dict[str, Any] = Body(default={})) -> Dict[str, Any]:
        _get_image(request, imageId)
        user_context = body.get("userContext")
        model = body.get("model")
        if user_context is not None and not isinstance(user_context, str):
            raise HTTPException(status_code=400, detail="userContext must be a string")
        if model is not None and not isinstance(model, str):
            raise HTTPException(status_code=400, detail="model must be a string")
        image = request.app.state.store.update_settings(imageId, user_context=user_context, model=model)
        return _image_payload(image)

    @app.delete("/api/images/{imageId}")
    async def delete_image(request: Request, imageId: str) -> Dict[str, Any]:
        try:
            request.app.state.store.remove(imageId)
        except ImageNotFoundError:
            raise HTTPException(status_code=404, detail=f"Image {imageId} not found")
        return {"status": "success", "imageId": imageId, "count": len(request.app.state.store)}

    # ============================================================================
    # Audit & review
    # ============================================================================

    @app.post("/api/images/{imageId}/analyze")
    async def analyze_image(request: Request, imageId: str) -> Dict[str, Any]:
        store: ImageStore = request.app.state.store
        gateway: AnalysisGateway = request.app.state.gateway
        try:
            image = store.begin_audit(imageId)
        except ImageNotFoundError:
            raise HTTPException(status_code=404, detail=f"Image {imageId} not found")
        except AuditInProgressError as e:
            raise HTTPException(status_code=409, detail=str(e))

        try:
            analysis, model_used = await run_in_threadpool(
                gateway.request_analysis, image.data, image.mime_type, image.model, image.user_context
            )
        except Exception as e:
            error = classify_exception(e)
            if not isinstance(e, AnalysisError):
                print(f"[ERROR] Unexpected failure auditing {imageId}: {type(e).__name__}: {e}")
            if imageId not in store:
                raise HTTPException(status_code=404, detail=f"Image {imageId} was removed during analysis")
            return _image_payload(store.fail_audit(imageId, error))

        if imageId not in store:
            raise HTTPException(status_code=404, detail=f"Image {imageId} was removed during analysis")
        return _image_payload(store.complete_audit(imageId, analysis, model_used))

    @app.post("/api/images/{imageId}/toggle-resolution")
    async def toggle_finding_resolution(request: Request, imageId: str, body: Dict[str, Any] = Body(default={})) -> Dict[str, Any]:
        heuristic_id = body.get("heuristicId")
        observation_index = body.get("observationIndex")
        if heuristic_id is None or observation_index is None:
            raise HTTPException(status_code=400, detail="heuristicId and observationIndex are required")
        try:
            heuristic_id = int(heuristic_id)
            observation_index = int(observation_index)
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail="heuristicId and observationIndex must be integers")

        try:
            image = request.app.state.store.toggle_resolution(imageId, heuristic_id, observation_index)
        except ImageNotFoundError:
            raise HTTPException(status_code=404, detail=f"Image {imageId} not found")
        except NoAnalysisError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return _image_payload(image)

    @app.get("/api/images/{imageId}/report")
    async def get_report(request: Request, imageId: str) -> Dict[str, Any]:
        image = _get_image(request, imageId)
        if image.analysis is None:
            raise HTTPException(status_code=409, detail="Run analysis first.")
        return build_report(image.analysis, model_used=image.model_used, file_name=image.file_name)

    @app.get("/api/images/{imageId}/overlay")
    async def get_overlay(
        request: Request,
        imageId: str,
        heuristicId: Optional[int] = Query(None),
        observationIndex: Optional[int] = Query(None),
    ) -> Response:
        image = _get_image(request, imageId)
        if image.analysis is None:
            raise HTTPException(status_code=409, detail="Run analysis first.")
        try:
            png = await run_in_threadpool(
                render_overlay_png, image.data, image.analysis, heuristicId, observationIndex
            )
        except OSError as e:
            raise HTTPException(status_code=500, detail=f"Failed to render overlay: {e}")
        return Response(content=png, media_type="image/png")

    # ============================================================================
    # UI state
    # ============================================================================

    @app.get("/api/ui-state")
    async def get_ui_state(request: Request, sessionId: str = Query("default")) -> Dict[str, Any]:
        return request.app.state.ui_state.get(sessionId).model_dump(by_alias=True)

    @app.put("/api/ui-state")
    async def put_ui_state(request: Request, sessionId: str = Query("default"),
                           body: Dict[str, Any] = Body(default={})) -> Dict[str, Any]:
        try:
            state = request.app.state.ui_state.update(sessionId, body)
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        return state.model_dump(by_alias=True)


app = create_app()
