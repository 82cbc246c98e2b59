# Configuration for RetailStack Sales Records
# Read from config.json; every key is optional

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_FILE = Path(__file__).resolve().parent.parent / 'config.json'


@dataclass
class AppConfig:
    server_url: Optional[str] = None
    api_key: Optional[str] = None
    commands_path: str = '/api/commands'
    request_timeout: int = 30
    fetch_limit: int = 1000
    refresh_interval: float = 300.0
    auto_refresh: bool = True
    debounce_delay: float = 0.3
    week_starts_on: str = 'sunday'
    paper_width: str = '80mm'
    currency: str = 'USD'
    timezone: str = 'UTC'
    printer: Dict[str, Any] = field(default_factory=lambda: {'mode': 'none'})
    download_dir: str = 'receipts'
    store_name: str = 'RetailStack'
    log_file: Optional[str] = None
    http_port: int = 8080

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppConfig':
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ', '.join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})


def load_config(path: Optional[Path] = None) -> AppConfig:
    config_path = Path(path) if path else CONFIG_FILE
    if config_path.exists():
        with open(config_path) as f:
            return AppConfig.from_dict(json.load(f))
    return AppConfig()
