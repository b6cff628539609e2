import json
import logging
import os
from typing import Optional

from pydantic import ValidationError

from models import AppConfig

logger = logging.getLogger("config-store")

CONFIG_KEY = "autodeploy_config"


class ConfigStore:
    """Single-record key/value store backed by one JSON file.

    The whole document is rewritten on every save; there is no merge with
    whatever was on disk before.
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[AppConfig]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                doc = json.load(f)
            raw = doc.get(CONFIG_KEY) if isinstance(doc, dict) else None
            if raw is None:
                return None
            return AppConfig(**raw)
        except (OSError, ValueError, TypeError, ValidationError):
            logger.exception("Ignoring unreadable saved config at %s", self.path)
            return None

    def save(self, config: AppConfig) -> None:
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump({CONFIG_KEY: config.model_dump()}, f, indent=2)
        os.replace(tmp, self.path)
        logger.info("Saved config for %s to %s", config.github_username or "<unknown>", self.path)
