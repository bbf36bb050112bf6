"""
Process-local working set of uploaded screenshots.

Each image runs its own audit state machine:

    IDLE/READY/ERROR --begin_audit--> LOADING --complete--> READY
                                              --fail------> ERROR (or IDLE on credential reselection)

Only one audit may be in flight per image; images never share state.
"""
from __future__ import annotations
from typing import Dict, List, Optional

from backend import config
from backend.errors import AnalysisError
from backend.models import AuditStatus, ScreenAnalysis, UploadedImage
from backend.scoring import toggle_resolution


class ImageNotFoundError(KeyError):
    pass


class AuditInProgressError(RuntimeError):
    pass


class NoAnalysisError(RuntimeError):
    pass


_AUDIT_START_STATES = (AuditStatus.IDLE, AuditStatus.READY, AuditStatus.ERROR)


def can_begin_audit(image: UploadedImage) -> bool:
    return image.status in _AUDIT_START_STATES


class ImageStore:
    def __init__(self, default_model: str = config.DEFAULT_MODEL):
        self.default_model = default_model
        # dicts keep insertion order, which is the upload order shown in the sidebar
        self._images: Dict[str, UploadedImage] = {}

    def __len__(self) -> int:
        return len(self._images)

    def __contains__(self, image_id: object) -> bool:
        return image_id in self._images

    def add(self, file_name: str, mime_type: str, data: bytes,
            user_context: str = "", model: Optional[str] = None) -> UploadedImage:
        image = UploadedImage(
            file_name=file_name,
            mime_type=mime_type,
            data=data,
            user_context=user_context,
            model=model or self.default_model,
        )
        self._images[image.id] = image
        print(f"[store] Added image {image.id} ({file_name})")
        return image

    def get(self, image_id: str) -> UploadedImage:
        try:
            return self._images[image_id]
        except KeyError:
            raise ImageNotFoundError(image_id) from None

    def list_images(self) -> List[UploadedImage]:
        return list(self._images.values())

    def remove(self, image_id: str) -> UploadedImage:
        image = self.get(image_id)
        del self._images[image_id]
        print(f"[store] Removed image {image_id}")
        return image

    def update_settings(self, image_id: str, user_context: Optional[str] = None,
                        model: Optional[str] = None) -> UploadedImage:
        image = self.get(image_id)
        if user_context is not None:
            image.user_context = user_context
        if model is not None:
            image.model = model
        return image

    # ------------------------------------------------------------------
    # Audit lifecycle
    # ------------------------------------------------------------------

    def begin_audit(self, image_id: str) -> UploadedImage:
        image = self.get(image_id)
        if not can_begin_audit(image):
            raise AuditInProgressError(f"Audit already in progress for image {image_id}")
        image.status = AuditStatus.LOADING
        image.error = None
        image.credential_reselection_required = False
        return image

    def complete_audit(self, image_id: str, analysis: ScreenAnalysis,
                       model_used: Optional[str] = None) -> UploadedImage:
        image = self.get(image_id)
        image.analysis = analysis
        image.error = None
        image.model_used = model_used
        image.status = AuditStatus.READY
        print(f"[store] Image {image_id} ready: overall {analysis.overall_score}")
        return image

    def fail_audit(self, image_id: str, error: AnalysisError) -> UploadedImage:
        image = self.get(image_id)
        if error.reselect_credentials:
            # Not surfaced as an error; the client reopens credential selection
            image.credential_reselection_required = True
            image.error = None
            image.status = AuditStatus.IDLE
            print(f"[store] Image {image_id} needs credential reselection")
            return image
        image.error = error.to_failure()
        image.status = AuditStatus.ERROR
        print(f"[store] Image {image_id} failed: {error.kind.value}")
        return image

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    def toggle_resolution(self, image_id: str, heuristic_id: int, observation_index: int) -> UploadedImage:
        image = self.get(image_id)
        if image.analysis is None:
            raise NoAnalysisError(f"Image {image_id} has no analysis to review")
        image.analysis = toggle_resolution(image.analysis, heuristic_id, observation_index)
        return image
