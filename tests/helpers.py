from __future__ import annotations

import io
from typing import Any, Dict, List

from PIL import Image

from backend.rubric import HEURISTIC_IDS


def make_png(width: int = 200, height: int = 100, color=(240, 240, 240)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_raw_payload(score: float = 6.0, observations_per_heuristic: int = 2) -> Dict[str, Any]:
    """A provider-shaped payload using the flat heuristic_<id> keys."""
    payload: Dict[str, Any] = {"summary": "Solid layout with weak error handling."}
    for hid in HEURISTIC_IDS:
        payload[f"heuristic_{hid}"] = {
            "score": score,
            "observations": [
                {
                    "finding": f"Finding {i} for heuristic {hid}",
                    "recommendation": f"Fix {i}",
                    "boundingBox": [100, 100 + i * 50, 200, 300 + i * 50],
                }
                for i in range(observations_per_heuristic)
            ],
        }
    return payload


class FakeResponse:
    def __init__(self, text: str):
        self.text = text
        self.candidates: List[Any] = []
        self.prompt_feedback = None


class FakeModel:
    """Stands in for genai.GenerativeModel; records every call."""

    def __init__(self, name: str, behaviour):
        self.name = name
        self._behaviour = behaviour

    def generate_content(self, content_parts, generation_config=None):
        return self._behaviour(self.name, content_parts, generation_config)


class FakeModelFactory:
    def __init__(self, behaviour):
        self.behaviour = behaviour
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, name: str) -> FakeModel:
        def recorded(model_name, content_parts, generation_config):
            self.calls.append({"model": model_name, "config": generation_config, "parts": content_parts})
            return self.behaviour(model_name, content_parts, generation_config)
        return FakeModel(name, recorded)
