from __future__ import annotations
import argparse
import shutil
import subprocess
import sys
from pathlib import Path


def main(argv=None) -> None:
    base_dir = Path(__file__).resolve().parent.parent

    parser = argparse.ArgumentParser(description="Audit every screenshot, then draw overlays.")
    parser.add_argument("--output", type=Path, default=base_dir / "output_static")
    parser.add_argument("--model", default=None)
    parser.add_argument("--clean", action="store_true", help="Remove previous analyses and overlays first")
    args = parser.parse_args(argv)

    screens_dir = args.output / "screens"
    analysis_dir = args.output / "analysis"
    overlays_dir = args.output / "overlays"

    if args.clean:
        print("=== [1] Cleaning previous analysis and overlays ===")
        for directory in (analysis_dir, overlays_dir):
            if directory.exists():
                print(f"  - Removing {directory}")
                shutil.rmtree(directory)

    print("=== [2] Running audit_screenshots.py (LLM heuristic analysis) ===")
    audit_cmd = [
        sys.executable, str(base_dir / "scripts" / "audit_screenshots.py"),
        "--screens", str(screens_dir),
        "--out", str(analysis_dir),
    ]
    if args.model:
        audit_cmd += ["--model", args.model]
    subprocess.run(audit_cmd, cwd=str(base_dir), check=True)

    print("=== [3] Running generate_overlays.py (draw bounding boxes + labels) ===")
    subprocess.run(
        [
            sys.executable, str(base_dir / "scripts" / "generate_overlays.py"),
            "--analysis", str(analysis_dir),
            "--screens", str(screens_dir),
            "--out", str(overlays_dir),
        ],
        cwd=str(base_dir),
        check=True,
    )

    print("\n✅ All done!")
    print(f" - Screenshots: {screens_dir}")
    print(f" - Analyses:    {analysis_dir}")
    print(f" - Overlays:    {overlays_dir}")


if __name__ == "__main__":
    main()
