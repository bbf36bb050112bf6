from __future__ import annotations
import argparse
import json
import mimetypes
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

BASE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BASE_DIR))

from backend import config  # noqa: E402
from backend.errors import AnalysisError  # noqa: E402
from backend.gateway import AnalysisGateway  # noqa: E402
from backend.report import build_report  # noqa: E402

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp")


def find_screenshots(screens_dir: Path) -> List[Path]:
    return sorted(p for p in screens_dir.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)


def guess_mime_type(image_path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(image_path.name)
    return mime_type or "image/png"


def audit_screenshot(
    gateway: AnalysisGateway,
    image_path: Path,
    model: str,
    user_context: Optional[str] = None,
) -> Dict[str, Any]:
    """Audit one screenshot and return the saved record (analysis + report)."""
    print(f"[ai] Analyzing {image_path} (model={model})")
    analysis, model_used = gateway.request_analysis(
        image_path.read_bytes(),
        guess_mime_type(image_path),
        model,
        user_context,
    )
    return {
        "image_path": str(image_path),
        "model": model,
        "analysis": analysis.model_dump(mode="json", by_alias=True),
        "report": build_report(analysis, model_used=model_used, file_name=image_path.name),
    }


def audit_directory(
    gateway: AnalysisGateway,
    screens_dir: Path,
    analysis_dir: Path,
    model: str,
    user_context: Optional[str] = None,
    overwrite: bool = False,
) -> Dict[str, int]:
    analysis_dir.mkdir(parents=True, exist_ok=True)
    counts = {"audited": 0, "skipped": 0, "failed": 0}

    for img_path in find_screenshots(screens_dir):
        out_path = analysis_dir / f"{img_path.stem}.json"
        if out_path.exists() and not overwrite:
            print(f"[skip] Analysis already exists: {out_path}")
            counts["skipped"] += 1
            continue

        try:
            result = audit_screenshot(gateway, img_path, model, user_context)
        except AnalysisError as e:
            print(f"[error] Failed to analyze {img_path} ({e.kind.value}): {e.message}")
            counts["failed"] += 1
            continue

        out_path.write_text(json.dumps(result, indent=2, ensure_ascii=False), encoding="utf-8")
        print(f"[ai] Saved analysis to {out_path} (overall {result['analysis']['overallScore']})")
        counts["audited"] += 1

    return counts


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Audit a folder of screenshots against Nielsen's heuristics.")
    parser.add_argument("--screens", type=Path, default=config.OUTPUT_DIR / "screens")
    parser.add_argument("--out", type=Path, default=config.OUTPUT_DIR / "analysis")
    parser.add_argument("--model", default=config.DEFAULT_MODEL)
    parser.add_argument("--context", default=None, help="Extra context passed to the model")
    parser.add_argument("--overwrite", action="store_true")
    args = parser.parse_args(argv)

    if not config.GEMINI_API_KEY:
        raise SystemExit("Please set GEMINI_API_KEY in your environment.")
    if not args.screens.exists():
        raise SystemExit(f"Screens directory not found: {args.screens}")

    counts = audit_directory(
        AnalysisGateway(),
        args.screens,
        args.out,
        args.model,
        user_context=args.context,
        overwrite=args.overwrite,
    )
    print(f"[ai] Done: {counts['audited']} audited, {counts['skipped']} skipped, {counts['failed']} failed")


if __name__ == "__main__":
    main()
