from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional, Tuple
import io

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from PIL import Image, UnidentifiedImageError

from backend import config
from backend.errors import AnalysisError, classify_exception, is_not_found
from backend.models import ErrorKind, ScreenAnalysis
from backend.normalizer import normalize_analysis
from backend.rubric import NIELSEN_HEURISTICS

FINISH_REASON_MAP = {
    0: "FINISH_REASON_UNSPECIFIED",
    2: "MAX_TOKENS",
    3: "SAFETY",
    4: "RECITATION",
    5: "OTHER",
}

# Messages that mean the model rejected the schema/config rather than the request
_SCHEMA_REJECTION_HINTS = ("thinking", "response_schema", "response schema", "invalid argument", "unsupported")


def build_prompt(user_context: Optional[str] = None) -> str:
    context_prompt = f'\n\n[USER-PROVIDED CONTEXT]: "{user_context}".' if user_context else ""
    return (
        "Perform a deep-dive heuristic evaluation of the provided screenshot using Jakob Nielsen's 10 principles.\n"
        "Be brutally honest. For each finding, provide the exact location of the UI element using normalized "
        f"coordinates [ymin, xmin, ymax, xmax] from 0 to 1000.{context_prompt}"
    )


def build_response_schema() -> Dict[str, Any]:
    properties: Dict[str, Any] = {}
    for h in NIELSEN_HEURISTICS:
        properties[f"heuristic_{h.id}"] = {
            "type": "OBJECT",
            "properties": {
                "score": {"type": "NUMBER", "description": f"Strict heuristic score (0-10) for {h.name}."},
                "observations": {
                    "type": "ARRAY",
                    "description": "Comprehensive list of all findings.",
                    "items": {
                        "type": "OBJECT",
                        "properties": {
                            "finding": {"type": "STRING", "description": "Detailed UI observation."},
                            "recommendation": {"type": "STRING", "description": "Actionable recommendation."},
                            "boundingBox": {
                                "type": "ARRAY",
                                "items": {"type": "NUMBER"},
                                "description": "Normalized bounding box [ymin, xmin, ymax, xmax] (0-1000) of the relevant UI element.",
                            },
                        },
                        "required": ["finding", "recommendation", "boundingBox"],
                    },
                },
            },
            "required": ["score", "observations"],
        }
    properties["summary"] = {"type": "STRING", "description": "Executive assessment."}
    return {
        "type": "OBJECT",
        "properties": properties,
        "required": [f"heuristic_{h.id}" for h in NIELSEN_HEURISTICS] + ["summary"],
    }


def max_output_tokens_for(model_name: str) -> int:
    return 8192 if "flash" in model_name else 16384


def model_attempts(model_name: str) -> List[str]:
    """Requested model first, then its stable alias if it has one."""
    attempts = [model_name]
    fallback = config.MODEL_FALLBACKS.get(model_name)
    if fallback and fallback not in attempts:
        attempts.append(fallback)
    return attempts


def prepare_image(image_bytes: bytes, max_width: int = config.MAX_IMAGE_WIDTH) -> Image.Image:
    """Decode the screenshot and downscale it to speed up processing."""
    try:
        pil_image = Image.open(io.BytesIO(image_bytes))
        pil_image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise AnalysisError(ErrorKind.GENERIC, f"Could not decode image: {e}") from e

    if pil_image.width > max_width:
        ratio = max_width / pil_image.width
        new_height = max(1, int(pil_image.height * ratio))
        pil_image = pil_image.resize((max_width, new_height), Image.Resampling.LANCZOS)
    return pil_image


def extract_response_text(response: Any) -> str:
    """
    Pull the text out of a generate_content response.

    Raises AnalysisError with the block/finish details when no text is present.
    """
    if response is None:
        raise AnalysisError(ErrorKind.GENERIC, "Empty response from AI service.")

    error_details: List[str] = []

    feedback = getattr(response, "prompt_feedback", None)
    block_reason = getattr(feedback, "block_reason", None) if feedback else None
    if block_reason:
        error_details.append(f"Prompt blocked: {block_reason}")

    candidates = getattr(response, "candidates", None) or []
    if candidates:
        finish_reason = getattr(candidates[0], "finish_reason", None)
        if finish_reason and finish_reason != 1:  # 1 = STOP (normal)
            reason = FINISH_REASON_MAP.get(finish_reason, f"Unknown ({finish_reason})")
            error_details.append(f"Finish reason: {reason}")

    text = None
    try:
        text = response.text
    except (ValueError, AttributeError) as e:
        error_details.append(f"response.text failed: {type(e).__name__}: {e}")

    if not text and candidates:
        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) or []
        parts_text = [part.text for part in parts if getattr(part, "text", None)]
        if parts_text:
            text = "\n".join(parts_text)

    if not text or not text.strip():
        error_msg = "Empty response from AI service."
        if error_details:
            error_msg += f" Details: {'; '.join(error_details)}"
        raise AnalysisError(ErrorKind.GENERIC, error_msg)

    if error_details:
        print(f"[WARN] Gemini response issues: {'; '.join(error_details)}")
    return text


class AnalysisGateway:
    """
    Sends one screenshot to Gemini and returns a normalized ScreenAnalysis.

    ``model_factory`` builds a model object with ``generate_content``; it
    defaults to ``genai.GenerativeModel`` and is replaced in tests.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_factory: Optional[Callable[[str], Any]] = None,
        max_image_width: int = config.MAX_IMAGE_WIDTH,
    ):
        self.api_key = api_key if api_key is not None else config.GEMINI_API_KEY
        self.model_factory = model_factory or genai.GenerativeModel
        self.max_image_width = max_image_width
        self._configured = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    def _ensure_configured(self) -> None:
        if not self.api_key:
            raise AnalysisError(
                ErrorKind.MISSING_OR_INVALID_API_KEY,
                "GEMINI_API_KEY not configured. Please set it in your environment.",
            )
        if not self._configured:
            genai.configure(api_key=self.api_key)
            self._configured = True

    def _generate(self, model_name: str, content_parts: List[Any]) -> Any:
        model = self.model_factory(f"models/{model_name}" if not model_name.startswith("models/") else model_name)
        generation_config = {
            "temperature": 0.2,
            "max_output_tokens": max_output_tokens_for(model_name),
            "response_mime_type": "application/json",
            "response_schema": build_response_schema(),
        }
        try:
            return model.generate_content(content_parts, generation_config=generation_config)
        except google_exceptions.InvalidArgument as e:
            if "api key" in str(e).lower():
                raise
            print(f"[WARN] {model_name} rejected structured output config, retrying without schema: {e}")
        except Exception as e:
            if not any(hint in str(e).lower() for hint in _SCHEMA_REJECTION_HINTS):
                raise
            print(f"[WARN] {model_name} rejected structured output config, retrying without schema: {e}")

        return model.generate_content(
            content_parts,
            generation_config={
                "temperature": 0.2,
                "max_output_tokens": max_output_tokens_for(model_name),
                "response_mime_type": "application/json",
            },
        )

    def _analyze_once(self, model_name: str, content_parts: List[Any]) -> ScreenAnalysis:
        try:
            response = self._generate(model_name, content_parts)
        except Exception as e:
            raise classify_exception(e) from e
        text = extract_response_text(response)
        return normalize_analysis(text)

    def request_analysis(
        self,
        image_bytes: bytes,
        mime_type: str,
        model_name: str,
        user_context: Optional[str] = None,
    ) -> Tuple[ScreenAnalysis, str]:
        """
        Audit one screenshot. Returns (analysis, model actually used).

        Every failure is raised as AnalysisError with a classified kind.
        """
        self._ensure_configured()
        if not image_bytes:
            raise AnalysisError(ErrorKind.GENERIC, "No image data provided for analysis.")

        pil_image = prepare_image(image_bytes, self.max_image_width)
        content_parts = [build_prompt(user_context), pil_image]

        last_error: Optional[AnalysisError] = None
        for attempt in model_attempts(model_name):
            print(f"[ai] Analyzing {mime_type} screenshot with {attempt}")
            try:
                analysis = self._analyze_once(attempt, content_parts)
            except AnalysisError as e:
                last_error = e
                print(f"[ERROR] {attempt} failed ({e.kind.value}): {e.message}")
                # Only a missing model is worth another alias; reselection waits until all fail
                if not is_not_found(e):
                    break
                continue
            print(f"[ai] Audit complete with {attempt}: overall {analysis.overall_score}")
            return analysis, attempt

        raise last_error or AnalysisError(ErrorKind.GENERIC, "Analysis failed.")
