"""Exporter Service Provider Interface."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .atomic import write_text_atomic


class BaseExporter(ABC):
    """Uniform contract for build artefacts serialised as one JSON document."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @abstractmethod
    def build_payload(self, *args: Any, **kwargs: Any) -> Any:
        """Return the JSON-serialisable document."""

    def export(self, *args: Any, **kwargs: Any) -> Path:
        payload = self.build_payload(*args, **kwargs)
        return write_text_atomic(self.path, json.dumps(payload, ensure_ascii=False, indent=2))


__all__ = ["BaseExporter"]
