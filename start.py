#!/usr/bin/env python3
"""
Start script for the Heuristic UX Auditor backend
"""
import argparse
import os
import subprocess
import sys
from pathlib import Path


def venv_python(venv_path: Path) -> Path:
    if sys.platform == "win32":
        return venv_path / "Scripts" / "python.exe"
    return venv_path / "bin" / "python"


def check_and_install_dependencies() -> Path:
    """Create .venv and install the project if needed; return the python to use."""
    venv_path = Path(".venv")
    if not venv_path.exists() and "VIRTUAL_ENV" not in os.environ:
        print("🐍 Creating Python virtual environment...")
        subprocess.run([sys.executable, "-m", "venv", ".venv"], check=True)
        python = venv_python(venv_path)
        print("📦 Installing Python dependencies...")
        subprocess.run([str(python), "-m", "pip", "install", "--upgrade", "pip", "setuptools", "wheel"], check=True)
        subprocess.run([str(python), "-m", "pip", "install", "-e", "."], check=True)

    python = venv_python(venv_path) if venv_path.exists() else Path(sys.executable)

    # Check if fastapi is installed
    try:
        subprocess.run([str(python), "-c", "import fastapi"], check=True, capture_output=True)
    except subprocess.CalledProcessError:
        print("📦 Installing missing Python dependencies...")
        subprocess.run([str(python), "-m", "pip", "install", "-e", "."], check=True)
    return python


def start_server(python: Path, port: int, reload: bool) -> None:
    print("🚀 Starting Heuristic UX Auditor...")
    print(f"   Backend:  http://localhost:{port}")
    print("")
    print("Press Ctrl+C to stop the server")
    print("")

    cmd = [str(python), "-m", "uvicorn", "backend.main:app", "--host", "0.0.0.0", "--port", str(port)]
    if reload:
        cmd.append("--reload")
    backend = subprocess.Popen(cmd, cwd=Path.cwd())

    try:
        backend.wait()
    except KeyboardInterrupt:
        print("\n\n🛑 Stopping server...")
        backend.terminate()
        backend.wait()
        print("✅ Server stopped")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Start the backend server")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--no-reload", action="store_true")
    args = parser.parse_args()
    try:
        start_server(check_and_install_dependencies(), args.port, reload=not args.no_reload)
    except KeyboardInterrupt:
        print("\n\n✅ Exiting...")
        sys.exit(0)
    except Exception as e:
        print(f"\n❌ Error: {e}")
        sys.exit(1)
