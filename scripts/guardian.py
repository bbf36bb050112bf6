#!/usr/bin/env python
"""guardian.py

Runs the repository governance checks described in governance.yml:

- every critical code root exists and holds real Python files
- every Python file under those roots compiles
- every critical import (``module`` or ``module:attribute``) resolves
- every canonical file exists
"""

import compileall
import fnmatch
import importlib
import sys
from pathlib import Path
from typing import List

import yaml


def load_governance(root: Path) -> dict:
    cfg_path = root / "governance.yml"
    if not cfg_path.exists():
        print("guardian: governance.yml not found", file=sys.stderr)
        sys.exit(1)
    return yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}


def check_hollow_roots(repo_root: Path, cfg: dict) -> List[str]:
    allowlist = cfg.get("hollow_paths_allowlist", [])
    errors = []
    for rel in cfg.get("critical_code_roots", []):
        root = repo_root / rel
        if not root.exists():
            errors.append(f"Critical code root does not exist: {rel}")
            continue
        py_files = [p for p in root.rglob("*.py") if p.name != "__init__.py"]
        if not py_files and not any(fnmatch.fnmatch(rel, pattern) for pattern in allowlist):
            errors.append(f"Critical code root appears hollow (no .py files): {rel}")
    return errors


def check_syntax(repo_root: Path, cfg: dict) -> List[str]:
    errors = []
    for rel in cfg.get("critical_code_roots", []):
        root = repo_root / rel
        if root.exists() and not compileall.compile_dir(root, quiet=1):
            errors.append(f"One or more files under {rel} failed to compile")
    return errors


def check_imports(repo_root: Path, cfg: dict) -> List[str]:
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

    errors = []
    for item in cfg.get("critical_imports", []):
        mod_name, _, attr_name = item.partition(":")
        try:
            module = importlib.import_module(mod_name)
        except Exception as exc:
            errors.append(f"Failed to import module '{mod_name}': {exc}")
            continue
        if attr_name and not hasattr(module, attr_name):
            errors.append(f"Module '{mod_name}' is missing required attribute '{attr_name}'.")
    return errors


def check_canonical_files(repo_root: Path, cfg: dict) -> List[str]:
    return [
        f"Canonical file missing: {rel}"
        for rel in cfg.get("canonical_files", [])
        if not (repo_root / rel).exists()
    ]


CHECKS = [
    ("hollow_repo", check_hollow_roots),
    ("syntax", check_syntax),
    ("critical_import", check_imports),
    ("canon", check_canonical_files),
]


def run_checks(repo_root: Path) -> int:
    cfg = load_governance(repo_root)
    failed = 0
    for name, check in CHECKS:
        errors = check(repo_root, cfg)
        if errors:
            failed += 1
            print(f"{name}_guard: FAIL", file=sys.stderr)
            for msg in errors:
                print(" -", msg, file=sys.stderr)
        else:
            print(f"{name}_guard: OK")
    return failed


def main(argv=None) -> None:
    repo_root = Path(__file__).resolve().parents[1]
    if run_checks(repo_root):
        sys.exit(1)
    print("✅ guardian: All governance guards passed.")


if __name__ == "__main__":
    main()
