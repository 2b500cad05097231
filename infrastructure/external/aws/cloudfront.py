"""AWS CloudFront distributions and invalidations."""
from __future__ import annotations

from typing import Any, Optional

from application.ports.cloud import DistributionInfo, DistributionSpec, NotFoundError
from .base import AwsAdapter

ORIGIN_ID = "S3WebsiteOrigin"


def _cache_behavior(origin_id: str, default_ttl: int, max_ttl: int, path_pattern: Optional[str] = None) -> dict:
    behavior: dict[str, Any] = {
        "TargetOriginId": origin_id,
        "ViewerProtocolPolicy": "redirect-to-https",
        "TrustedSigners": {"Enabled": False, "Quantity": 0},
        "ForwardedValues": {"QueryString": False, "Cookies": {"Forward": "none"}},
        "MinTTL": 0,
        "DefaultTTL": default_ttl,
        "MaxTTL": max_ttl,
        "Compress": True,
    }
    if path_pattern is not None:
        behavior = {"PathPattern": path_pattern, **behavior}
    return behavior


def build_distribution_config(spec: DistributionSpec) -> dict:
    """DistributionConfig for a website-endpoint origin.

    The origin is the bucket website endpoint (HTTP only) so index and
    error documents apply. HTML gets a short TTL, ``/assets/*`` a long one,
    and 404s are served as the index document with status 200.
    """
    return {
        "CallerReference": spec.caller_reference,
        "Aliases": {"Quantity": len(spec.aliases), "Items": list(spec.aliases)},
        "DefaultRootObject": spec.index_document,
        "Comment": spec.comment,
        "Enabled": True,
        "Origins": {
            "Quantity": 1,
            "Items": [
                {
                    "Id": ORIGIN_ID,
                    "DomainName": spec.origin_domain,
                    "CustomOriginConfig": {
                        "HTTPPort": 80,
                        "HTTPSPort": 443,
                        "OriginProtocolPolicy": "http-only",
                    },
                }
            ],
        },
        "DefaultCacheBehavior": _cache_behavior(ORIGIN_ID, spec.default_ttl, spec.max_ttl),
        "CacheBehaviors": {
            "Quantity": 2,
            "Items": [
                _cache_behavior(ORIGIN_ID, spec.html_ttl, spec.html_max_ttl, "*.html"),
                _cache_behavior(ORIGIN_ID, spec.assets_ttl, spec.assets_ttl, "/assets/*"),
            ],
        },
        "CustomErrorResponses": {
            "Quantity": 1,
            "Items": [
                {
                    "ErrorCode": 404,
                    "ResponsePagePath": f"/{spec.index_document}",
                    "ResponseCode": "200",
                    "ErrorCachingMinTTL": spec.error_caching_min_ttl,
                }
            ],
        },
        "ViewerCertificate": {
            "ACMCertificateArn": spec.certificate_arn,
            "SSLSupportMethod": "sni-only",
            "MinimumProtocolVersion": spec.minimum_protocol_version,
        },
        "PriceClass": spec.price_class,
    }


def _to_info(distribution: dict) -> DistributionInfo:
    aliases = (
        distribution.get("Aliases")
        or distribution.get("DistributionConfig", {}).get("Aliases")
        or {}
    )
    return DistributionInfo(
        id=distribution["Id"],
        domain_name=distribution["DomainName"],
        status=distribution.get("Status"),
        aliases=list(aliases.get("Items", []) or []),
    )


class CloudFrontCdn(AwsAdapter):
    async def create_invalidation(
        self,
        distribution_id: str,
        paths: list[str],
        caller_reference: str,
    ) -> str:
        response = await self._call(
            "create_invalidation",
            DistributionId=distribution_id,
            InvalidationBatch={
                "Paths": {"Quantity": len(paths), "Items": list(paths)},
                "CallerReference": caller_reference,
            },
        )
        return response["Invalidation"]["Id"]

    async def get_distribution(self, distribution_id: str) -> Optional[DistributionInfo]:
        try:
            response = await self._call("get_distribution", Id=distribution_id)
        except NotFoundError:
            return None
        return _to_info(response["Distribution"])

    async def find_distribution_by_alias(self, alias: str) -> Optional[DistributionInfo]:
        summaries = await self._paginate(
            "list_distributions",
            lambda page: page.get("DistributionList", {}).get("Items", []) or [],
        )
        wanted = alias.lower()
        for summary in summaries:
            info = _to_info(summary)
            if wanted in (a.lower() for a in info.aliases):
                return info
        return None

    async def create_distribution(self, spec: DistributionSpec) -> DistributionInfo:
        response = await self._call(
            "create_distribution",
            DistributionConfig=build_distribution_config(spec),
        )
        return _to_info(response["Distribution"])
