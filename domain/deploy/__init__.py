"""Deployment domain exports."""
from .config import (
    AwsCredentialsConfig,
    BuildConfig,
    CloudFrontConfig,
    DeployConfig,
    DeployOptions,
    SiteConfig,
    starter_config,
)
from .entities import (
    BASELINE_INVALIDATION_PATHS,
    BatchSummary,
    BootstrapState,
    BootstrapStep,
    CertificateStatus,
    InvalidationRequest,
    UploadResult,
    UploadTask,
    ValidationRecord,
)
from .naming import is_subdomain, root_domain, site_domains
from .policy import CachePolicy, FilePolicy, resolve_file_policy

__all__ = [
    "AwsCredentialsConfig",
    "BuildConfig",
    "CloudFrontConfig",
    "DeployConfig",
    "DeployOptions",
    "SiteConfig",
    "starter_config",
    "BASELINE_INVALIDATION_PATHS",
    "BatchSummary",
    "BootstrapState",
    "BootstrapStep",
    "CertificateStatus",
    "InvalidationRequest",
    "UploadResult",
    "UploadTask",
    "ValidationRecord",
    "is_subdomain",
    "root_domain",
    "site_domains",
    "CachePolicy",
    "FilePolicy",
    "resolve_file_policy",
]
