#!/usr/bin/env python
"""
Run the INOX price API (FastAPI).

Usage:
    python scripts/run_api.py
"""
import subprocess
import sys
import os
from pathlib import Path


def main():
    project_root = Path(__file__).parent.parent
    os.chdir(project_root)

    # Ensure src is in python path
    env = os.environ.copy()
    src_path = str(project_root / "src")
    if "PYTHONPATH" in env:
        env["PYTHONPATH"] = f"{src_path}{os.pathsep}{env['PYTHONPATH']}"
    else:
        env["PYTHONPATH"] = src_path

    port = env.get("PORT", "4000")
    print(f"Starting INOX price API on http://localhost:{port} ...")
    try:
        subprocess.run([
            sys.executable, "-m", "uvicorn",
            "inox_pricing.api.main:app",
            "--host", "0.0.0.0",
            "--port", port,
            "--proxy-headers",
        ], env=env)
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()
