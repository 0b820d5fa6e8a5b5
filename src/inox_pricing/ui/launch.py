"""
Command line for serving the configurator with Streamlit.
"""
import sys
from pathlib import Path

from ..config.settings import Settings

APP_PATH = Path(__file__).with_name('app_streamlit.py')


def streamlit_command(settings: Settings, headless: bool = True) -> list[str]:
    """Build the ``streamlit run`` invocation from settings."""
    return [
        sys.executable, '-m', 'streamlit', 'run', str(APP_PATH),
        '--server.port', str(settings.ui_port),
        '--server.headless', 'true' if headless else 'false',
        '--logger.level', settings.log_level.lower(),
    ]
