#!/usr/bin/env python
"""
Serve the INOX table configurator.

Usage:
    python scripts/run_app.py [--browser]

Port and log level come from UI_PORT and LOG_LEVEL (or .env).
"""
import os
import subprocess
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
src_path = project_root / 'src'
sys.path.insert(0, str(src_path))

from inox_pricing.config.settings import get_settings
from inox_pricing.ui.launch import streamlit_command


def main():
    settings = get_settings()
    cmd = streamlit_command(settings, headless='--browser' not in sys.argv[1:])

    env = os.environ.copy()
    env['PYTHONPATH'] = os.pathsep.join(filter(None, [str(src_path), env.get('PYTHONPATH')]))

    print(f"Starting INOX configurator on http://localhost:{settings.ui_port} ...")
    try:
        result = subprocess.run(cmd, cwd=str(project_root), env=env)
    except KeyboardInterrupt:
        print("\nConfigurator stopped.")
        return
    sys.exit(result.returncode)


if __name__ == "__main__":
    main()
