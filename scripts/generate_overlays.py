from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from PIL import Image

BASE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BASE_DIR))

from backend import config  # noqa: E402
from backend.models import ScreenAnalysis  # noqa: E402
from backend.overlays import draw_overlay  # noqa: E402


def load_json(path: Path) -> Dict[str, Any]:
    """Load a saved audit record."""
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def resolve_screenshot_path(record: Dict[str, Any], screens_dir: Path, stem: str) -> Optional[Path]:
    raw_path = record.get("image_path")
    if isinstance(raw_path, str) and raw_path.strip():
        path = Path(raw_path)
        if not path.is_absolute():
            path = BASE_DIR / raw_path
        if path.exists():
            return path

    candidates = sorted(screens_dir.glob(f"{stem}.*"))
    return candidates[0] if candidates else None


def generate_overlays(analysis_dir: Path, screens_dir: Path, overlays_dir: Path) -> int:
    if not analysis_dir.exists():
        print(f"[WARN] Analysis dir missing: {analysis_dir}")
        return 0

    overlays_dir.mkdir(parents=True, exist_ok=True)
    written = 0

    for json_path in sorted(analysis_dir.glob("*.json")):
        record = load_json(json_path)
        raw_analysis = record.get("analysis")
        if not isinstance(raw_analysis, dict):
            print(f"[INFO] {json_path.name} contains no analysis, skipped.")
            continue
        analysis = ScreenAnalysis.model_validate(raw_analysis)

        screenshot_path = resolve_screenshot_path(record, screens_dir, json_path.stem)
        if not screenshot_path:
            print(f"[WARN] Screenshot not found for {json_path.stem}")
            continue

        overlay = draw_overlay(Image.open(screenshot_path), analysis)
        output_path = overlays_dir / f"{screenshot_path.stem}_overlay.png"
        overlay.save(output_path)
        print(f"[OK] Overlay saved: {output_path}")
        written += 1

    return written


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Draw finding boxes over audited screenshots.")
    parser.add_argument("--analysis", type=Path, default=config.OUTPUT_DIR / "analysis")
    parser.add_argument("--screens", type=Path, default=config.OUTPUT_DIR / "screens")
    parser.add_argument("--out", type=Path, default=config.OUTPUT_DIR / "overlays")
    args = parser.parse_args(argv)

    generate_overlays(args.analysis, args.screens, args.out)


if __name__ == "__main__":
    main()
