"""JSON file persistence for the site configuration record."""
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from core.logging_config import get_logger
from domain.common.exceptions import ConfigNotFoundError, ConfigValidationError
from domain.deploy.config import SiteConfig, starter_config

logger = get_logger(__name__)


def _merge(base: dict, updates: dict) -> dict:
    """Recursively overlay ``updates`` on ``base``; keys only in base survive."""
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class JsonConfigStore:
    """Reads and atomically rewrites ``site.config.json``."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def _read_document(self) -> dict[str, Any]:
        if not self.exists():
            raise ConfigNotFoundError(str(self.path))
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigValidationError(
                [str(self.path)],
                message=f"Configuration file is not valid JSON: {self.path} (line {e.lineno})",
            ) from e
        if not isinstance(document, dict):
            raise ConfigValidationError(
                [str(self.path)],
                message=f"Configuration file must contain a JSON object: {self.path}",
            )
        return document

    def load(self) -> SiteConfig:
        document = self._read_document()
        try:
            return SiteConfig.model_validate(document)
        except ValidationError as e:
            fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            raise ConfigValidationError(fields, message=f"Invalid configuration: {', '.join(fields)}") from e

    def _write_document(self, document: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.write("\n")
            os.replace(tmp_name, self.path)
        except OSError:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def save(self, config: SiteConfig) -> None:
        """Write the record, keeping keys this tool does not model."""
        existing = self._read_document() if self.exists() else {}
        self._write_document(_merge(existing, config.to_document()))
        logger.info("config_saved", path=str(self.path))

    def set_distribution_id(self, distribution_id: str) -> SiteConfig:
        updated = self.load().with_distribution_id(distribution_id)
        self.save(updated)
        return updated

    def init(self, domain: str = "example.com", region: str = "us-east-1", overwrite: bool = False) -> SiteConfig:
        """Write a starter record; an existing file is kept unless ``overwrite``."""
        if self.exists() and not overwrite:
            logger.info("config_exists", path=str(self.path))
            return self.load()
        config = starter_config(domain, region)
        self._write_document(config.to_document())
        logger.info("config_created", path=str(self.path), domain=domain)
        return config
