from __future__ import annotations
from typing import Dict, List
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

# Gemini credential; API_KEY is accepted for hosting setups that only expose that name
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")

AVAILABLE_MODELS: List[Dict[str, str]] = [
    {"id": "gemini-3-pro-preview", "name": "Gemini 3 Pro (Advanced)"},
    {"id": "gemini-3-flash-preview", "name": "Gemini 3 Flash (Fast & Efficient)"},
]
DEFAULT_MODEL = os.environ.get("DEFAULT_MODEL", AVAILABLE_MODELS[0]["id"])

# Preview labels are not enabled for every key/project; retry with a stable model
MODEL_FALLBACKS: Dict[str, str] = {
    "gemini-3-pro-preview": "gemini-1.5-pro",
    "gemini-3-flash-preview": "gemini-1.5-flash",
}

# Screenshots wider than this are downscaled before upload to Gemini
MAX_IMAGE_WIDTH = int(os.environ.get("MAX_IMAGE_WIDTH", "1200"))

OUTPUT_DIR = Path(os.environ.get("OUTPUT_DIR", str(BASE_DIR / "output_static")))
UI_STATE_PATH = Path(os.environ.get("UI_STATE_PATH", str(OUTPUT_DIR / "ui_state.json")))

_DEFAULT_ORIGINS = ",".join([
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
    "http://localhost:5174",  # Vite HMR port
])
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", _DEFAULT_ORIGINS).split(",") if o.strip()]

ALLOWED_MIME_TYPES = ("image/png", "image/jpeg", "image/jpg", "image/webp")
