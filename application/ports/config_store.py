"""Port for the persisted site configuration record."""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from domain.deploy.config import SiteConfig


@runtime_checkable
class ConfigStore(Protocol):
    def exists(self) -> bool: ...

    def load(self) -> SiteConfig: ...

    def save(self, config: SiteConfig) -> None: ...

    def set_distribution_id(self, distribution_id: str) -> SiteConfig: ...
