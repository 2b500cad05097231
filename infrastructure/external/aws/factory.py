"""Assemble the AWS adapters for one site configuration."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.config import Settings, settings as default_settings
from core.logging_config import get_logger
from domain.deploy.config import DeployConfig
from .acm import AcmCertificates
from .cloudfront import CloudFrontCdn
from .route53 import Route53Dns
from .s3 import S3ObjectStore
from .session import build_client, build_session
from .sts import StsIdentity

logger = get_logger(__name__)


@dataclass
class AwsClients:
    store: S3ObjectStore
    cdn: CloudFrontCdn
    dns: Route53Dns
    certificates: AcmCertificates
    identity: StsIdentity


def build_aws_clients(config: DeployConfig, app_settings: Optional[Settings] = None) -> AwsClients:
    """Build adapters sharing one session.

    Buckets live in the configured region; certificates for the CDN always
    live in the certificate region. CloudFront, Route 53 and STS are global.
    """
    app_settings = app_settings or default_settings
    region = config.region or app_settings.bootstrap.default_region
    cert_region = app_settings.bootstrap.certificate_region
    session = build_session(config.aws, region)
    aws = app_settings.aws

    clients = AwsClients(
        store=S3ObjectStore(
            build_client(session, "s3", region, aws),
            config.bucket_name or "",
            default_region=app_settings.bootstrap.default_region,
        ),
        cdn=CloudFrontCdn(build_client(session, "cloudfront", cert_region, aws)),
        dns=Route53Dns(build_client(session, "route53", cert_region, aws)),
        certificates=AcmCertificates(build_client(session, "acm", cert_region, aws)),
        identity=StsIdentity(build_client(session, "sts", region, aws)),
    )
    logger.debug(
        "aws_clients_built",
        region=region,
        certificate_region=cert_region,
        profile=config.aws.profile,
        explicit_keys=config.aws.has_explicit_keys,
    )
    return clients
