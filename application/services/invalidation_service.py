"""CDN cache invalidation after a successful upload."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from application.ports.cloud import CdnClient, CloudError
from core.logging_config import get_logger
from domain.deploy.config import DeployConfig
from domain.deploy.entities import InvalidationRequest

logger = get_logger(__name__)


@dataclass
class InvalidationOutcome:
    request: Optional[InvalidationRequest] = None
    invalidation_id: Optional[str] = None
    skipped_reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def submitted(self) -> bool:
        return self.invalidation_id is not None


class CacheInvalidator:
    """Submits one invalidation request per deployment.

    Invalidation is an optimization: a missing distribution id, disabled
    auto-invalidation and API failures are all reported as warnings and
    never fail the deployment.
    """

    def __init__(self, cdn: CdnClient, caller_reference_prefix: str = "sitedeploy-deploy"):
        self.cdn = cdn
        self.caller_reference_prefix = caller_reference_prefix

    def build_request(self, config: DeployConfig) -> Optional[InvalidationRequest]:
        distribution_id = config.cloudfront.distribution_id
        if not distribution_id:
            return None
        return InvalidationRequest.build(
            distribution_id,
            config.cloudfront.invalidate_paths,
            prefix=self.caller_reference_prefix,
        )

    async def invalidate(self, config: DeployConfig, *, force: bool = False) -> InvalidationOutcome:
        if not config.cloudfront.distribution_id:
            logger.warning(
                "invalidation_skipped",
                reason="no CloudFront distribution id configured; run setup first",
            )
            return InvalidationOutcome(skipped_reason="no distribution id")

        if not force and config.cloudfront.auto_invalidate is False:
            logger.info("invalidation_skipped", reason="auto-invalidation disabled")
            return InvalidationOutcome(skipped_reason="auto-invalidation disabled")

        request = self.build_request(config)
        try:
            invalidation_id = await self.cdn.create_invalidation(
                request.distribution_id,
                list(request.paths),
                request.caller_reference,
            )
        except CloudError as exc:
            logger.warning(
                "invalidation_failed",
                distribution_id=request.distribution_id,
                error=str(exc),
            )
            return InvalidationOutcome(request=request, error=str(exc))

        logger.info(
            "invalidation_created",
            distribution_id=request.distribution_id,
            invalidation_id=invalidation_id,
            paths=list(request.paths),
        )
        return InvalidationOutcome(request=request, invalidation_id=invalidation_id)
