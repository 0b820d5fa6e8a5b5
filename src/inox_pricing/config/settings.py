"""
Centralized settings and path configuration for the pricing service.

Values come from the environment; a ``.env`` file in the project root is
loaded first when present.
"""
import logging
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DEFAULT_PRICING_CONFIG = 'config/pricing.v1.json'


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists() or (parent / DEFAULT_PRICING_CONFIG).exists():
            return parent
    # Fallback to 4 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('true', '1', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name, '').strip()
    return int(value) if value else default


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Rule set (primary pricing path)
    pricing_config: Path
    pricing_config_label: str

    # Request layer
    api_key: str = ''
    cors_origins: tuple = ('*',)
    rate_limit_per_minute: int = 60

    # Spreadsheet pricing path
    sheets_source: Optional[str] = None
    sheets_cache_seconds: int = 30

    # Mail delivery (Mailjet)
    mailjet_public_key: str = ''
    mailjet_private_key: str = ''
    email_from: str = 'noreply@ampm.si'
    email_to: str = 'office-international@ampm.si'
    email_customer_copy: bool = True

    log_level: str = 'INFO'
    port: int = 4000
    ui_port: int = 8501

    @property
    def mail_configured(self) -> bool:
        return bool(self.mailjet_public_key and self.mailjet_private_key)

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the environment and the project structure."""
        root = project_root or get_project_root()
        load_dotenv(root / '.env')

        label = os.environ.get('PRICING_CONFIG') or DEFAULT_PRICING_CONFIG
        origins = os.environ.get('CORS_ORIGIN') or '*'

        return cls(
            project_root=root,
            pricing_config=(root / label).resolve(),
            pricing_config_label=label,
            api_key=os.environ.get('API_KEY', ''),
            cors_origins=tuple(o.strip() for o in origins.split(',') if o.strip()),
            rate_limit_per_minute=_env_int('RATE_LIMIT_PER_MINUTE', 60),
            sheets_source=os.environ.get('SHEETS_SOURCE') or None,
            sheets_cache_seconds=_env_int('SHEETS_CACHE_SECONDS', 30),
            mailjet_public_key=os.environ.get('MJ_APIKEY_PUBLIC', ''),
            mailjet_private_key=os.environ.get('MJ_APIKEY_PRIVATE', ''),
            email_from=os.environ.get('EMAIL_FROM') or 'noreply@ampm.si',
            email_to=os.environ.get('EMAIL_TO') or 'office-international@ampm.si',
            email_customer_copy=_env_bool('EMAIL_CUSTOMER_COPY', True),
            log_level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
            port=_env_int('PORT', 4000),
            ui_port=_env_int('UI_PORT', 8501),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings():
    """Forget the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None


def configure_logging(settings: Optional[Settings] = None):
    """Configure root logging from LOG_LEVEL."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
