"""Deployment orchestrator: validate, upload, prune, invalidate."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from application.ports.cloud import CdnClient, CloudError, IdentityClient, ObjectStore
from application.services.invalidation_service import CacheInvalidator, InvalidationOutcome
from application.services.preflight import ensure_build_output, verify_credentials
from application.services.upload_scheduler import (
    ProgressCallback,
    UploadScheduler,
    discover_tasks,
    is_excluded,
)
from application.services.uploader import ObjectUploader, Uploader
from core.config import UploadSettings
from core.logging_config import get_logger
from domain.common.exceptions import BuildOutputMissingError
from domain.deploy.config import DeployConfig
from domain.deploy.entities import BatchSummary
from domain.deploy.policy import CachePolicy

logger = get_logger(__name__)


@dataclass
class DeploymentReport:
    summary: BatchSummary
    invalidation: InvalidationOutcome
    live_url: str
    deleted_keys: list[str] = field(default_factory=list)
    prune_error: Optional[str] = None


class DeploymentService:
    """Top-level deploy flow.

    Preconditions (configuration, build output, credentials) are checked
    before any network write. Upload failures are fatal; pruning and
    invalidation failures are warnings since the new site is already live.
    """

    def __init__(
        self,
        config: DeployConfig,
        build_dir: Path,
        store: ObjectStore,
        cdn: CdnClient,
        identity: IdentityClient,
        upload_settings: Optional[UploadSettings] = None,
        placeholders: Sequence[str] = (),
        uploader: Optional[Uploader] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.config = config
        self.build_dir = build_dir
        self.store = store
        self.cdn = cdn
        self.identity = identity
        self.upload_settings = upload_settings or UploadSettings()
        self.placeholders = tuple(placeholders)
        self.uploader = uploader or ObjectUploader(
            store,
            gzip_level=self.upload_settings.gzip_level,
            gzip_suffix=self.upload_settings.gzip_suffix,
        )
        self.on_progress = on_progress
        self.invalidator = CacheInvalidator(cdn)

    async def run(self) -> DeploymentReport:
        self.config.ensure_deployable(self.placeholders)
        logger.info(
            "deploy_config_valid",
            bucket=self.config.bucket_name,
            region=self.config.region,
        )
        ensure_build_output(self.build_dir)
        await verify_credentials(self.identity, self.config.aws.profile)

        options = self.config.options
        tasks = discover_tasks(
            self.build_dir,
            CachePolicy.from_table(options.cache_control),
            options.exclude,
        )
        if not tasks:
            raise BuildOutputMissingError(str(self.build_dir), "contains no uploadable files")
        logger.info("upload_plan", files=len(tasks), bucket=self.config.bucket_name)

        scheduler = UploadScheduler(
            self.uploader,
            concurrency=self.upload_settings.concurrency,
            on_progress=self.on_progress,
        )
        summary = await scheduler.run(tasks)

        report = DeploymentReport(
            summary=summary,
            invalidation=InvalidationOutcome(),
            live_url=self.config.live_url,
        )
        if options.delete_removed:
            await self._prune(summary, report)

        report.invalidation = await self.invalidator.invalidate(self.config)
        logger.info(
            "deploy_completed",
            uploaded=summary.succeeded,
            compressed=summary.compressed,
            deleted=len(report.deleted_keys),
            url=report.live_url,
        )
        return report

    async def _prune(self, summary: BatchSummary, report: DeploymentReport) -> None:
        """Delete remote keys this build no longer produces."""
        keep = summary.uploaded_keys
        exclude = self.config.options.exclude
        try:
            remote = await self.store.list_keys()
            stale = [k for k in remote if k not in keep and not is_excluded(k, exclude)]
            if not stale:
                return
            batch_size = self.upload_settings.delete_batch_size
            for i in range(0, len(stale), batch_size):
                chunk = stale[i:i + batch_size]
                outcome = await self.store.delete_keys(chunk)
                report.deleted_keys.extend(k for k in chunk if outcome.get(k, False))
                failed = [k for k in chunk if not outcome.get(k, False)]
                if failed:
                    logger.warning("prune_delete_failed", keys=failed)
            logger.info("prune_completed", deleted=len(report.deleted_keys))
        except CloudError as exc:
            report.prune_error = str(exc)
            logger.warning("prune_failed", error=str(exc))
