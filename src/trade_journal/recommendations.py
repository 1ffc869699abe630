"""Daily recommendation feed.

The feed is an externally curated file, a top-level list of trade ideas in
JSON (``trades.json``) or YAML.  It is re-read on every call so a new day's
list shows up without restarting the service.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from .errors import MalformedInput
from .models import Recommendation
from .settings import settings


class RecommendationSource:
    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path or settings.recommendations_path)

    def _read_raw(self) -> list[Any]:
        if not self.path.exists():
            logger.warning("Recommendations file {} not found; serving an empty list", self.path)
            return []

        text = self.path.read_text(encoding="utf-8")
        try:
            if self.path.suffix.lower() in (".yaml", ".yml"):
                raw = yaml.safe_load(text) or []
            else:
                raw = json.loads(text) if text.strip() else []
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise MalformedInput(f"Unreadable recommendations file {self.path.name}") from exc

        if not isinstance(raw, list):
            raise MalformedInput(f"Recommendations file {self.path.name} must hold a list")
        return raw

    def load(self) -> list[Recommendation]:
        return [Recommendation.from_dict(item) for item in self._read_raw()]

    def get(self, recommendation_id: int) -> Recommendation | None:
        for rec in self.load():
            if rec.id == int(recommendation_id):
                return rec
        return None

    def count(self) -> int:
        return len(self._read_raw())
