"""Re-apply cache-control headers to objects already in the bucket."""
from __future__ import annotations

from dataclasses import dataclass, field

from application.ports.cloud import CloudError, ObjectStore
from core.logging_config import get_logger
from domain.deploy.policy import DEFAULT_CACHE_POLICY, CachePolicy, resolve_file_policy

logger = get_logger(__name__)


@dataclass
class HeaderRefreshReport:
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class HeaderRefreshService:
    """Copies each object onto itself with the resolved cache-control.

    Content type and encoding already stored on the object are kept. A
    failure on one object is a warning; the remaining objects are still
    processed.
    """

    def __init__(self, store: ObjectStore, policy: CachePolicy = DEFAULT_CACHE_POLICY):
        self.store = store
        self.policy = policy

    async def run(self, prefix: str = "") -> HeaderRefreshReport:
        report = HeaderRefreshReport()
        keys = await self.store.list_keys(prefix)
        logger.info("header_refresh_started", objects=len(keys), prefix=prefix)

        for key in keys:
            resolved = resolve_file_policy(key, self.policy)
            try:
                head = await self.store.head(key)
                if head.cache_control == resolved.cache_control:
                    report.unchanged.append(key)
                    continue
                await self.store.replace_metadata(
                    key,
                    content_type=head.content_type or resolved.content_type,
                    cache_control=resolved.cache_control,
                    content_encoding=head.content_encoding,
                )
                report.updated.append(key)
            except CloudError as exc:
                logger.warning("cache_header_update_failed", key=key, error=str(exc))
                report.failed.append(key)

        logger.info(
            "header_refresh_completed",
            updated=len(report.updated),
            unchanged=len(report.unchanged),
            failed=len(report.failed),
        )
        return report
