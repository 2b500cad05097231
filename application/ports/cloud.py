"""Application-owned cloud ports (hexagonal architecture).

Defines the minimal calls the deployment and bootstrap use cases make
against object storage, the CDN, DNS, the certificate authority and the
identity service, so the application layer does not depend on boto3.
Adapters translate provider failures into the ``CloudError`` family below.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from domain.deploy.entities import ValidationRecord


class CloudError(Exception):
    """A cloud API call failed."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        status: Optional[int] = None,
        operation: str = "",
    ) -> None:
        self.code = code
        self.status = status
        self.operation = operation
        super().__init__(message)


class NotFoundError(CloudError):
    """Resource does not exist."""


class ConflictError(CloudError):
    """Change rejected because of conflicting existing state."""


class AlreadyExistsError(ConflictError):
    """Resource being created already exists."""


class PermissionDeniedError(CloudError):
    """Caller is not authenticated or not authorized."""


class TransientError(CloudError):
    """Transient error (network, rate limit, server error)."""


@dataclass
class ObjectHead:
    key: str
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None
    cache_control: Optional[str] = None


@dataclass
class HostedZone:
    id: str
    name: str
    name_servers: list[str] = field(default_factory=list)


@dataclass
class DomainValidation:
    domain: str
    record: Optional[ValidationRecord] = None


@dataclass
class CertificateDetails:
    arn: str
    domain_name: str
    status: str
    subject_alternative_names: list[str] = field(default_factory=list)
    validations: list[DomainValidation] = field(default_factory=list)

    @property
    def domains(self) -> set[str]:
        return {self.domain_name, *self.subject_alternative_names}

    def covers(self, required: list[str]) -> bool:
        return set(required) <= self.domains

    @property
    def records_ready(self) -> bool:
        """Every domain validation option exposes a resource record."""
        return bool(self.validations) and all(
            v.record is not None for v in self.validations
        )


@dataclass
class DistributionInfo:
    id: str
    domain_name: str
    status: Optional[str] = None
    aliases: list[str] = field(default_factory=list)


@dataclass
class DistributionSpec:
    """What the bootstrap needs from a new CDN distribution."""

    origin_domain: str
    aliases: list[str]
    certificate_arn: str
    caller_reference: str
    comment: str
    price_class: str = "PriceClass_100"
    minimum_protocol_version: str = "TLSv1.2_2021"
    default_ttl: int = 86400
    max_ttl: int = 31536000
    html_ttl: int = 3600
    html_max_ttl: int = 86400
    assets_ttl: int = 31536000
    error_caching_min_ttl: int = 300
    index_document: str = "index.html"


@runtime_checkable
class ObjectStore(Protocol):
    """A single bucket."""

    bucket: str

    async def put_file(
        self,
        path: Path,
        key: str,
        content_type: str,
        cache_control: str,
        content_encoding: Optional[str] = None,
    ) -> None: ...

    async def list_keys(self, prefix: str = "") -> list[str]: ...

    async def delete_keys(self, keys: list[str]) -> dict[str, bool]: ...

    async def head(self, key: str) -> ObjectHead: ...

    async def replace_metadata(
        self,
        key: str,
        content_type: str,
        cache_control: str,
        content_encoding: Optional[str] = None,
    ) -> None: ...

    async def bucket_exists(self) -> bool: ...

    async def create_bucket(self, region: str) -> None: ...

    async def disable_public_access_block(self) -> None: ...

    async def enable_versioning(self) -> None: ...

    async def website_configured(self) -> bool: ...

    async def configure_website(self, index_document: str, error_document: str) -> None: ...

    async def put_public_read_policy(self) -> None: ...


@runtime_checkable
class CdnClient(Protocol):
    async def create_invalidation(
        self,
        distribution_id: str,
        paths: list[str],
        caller_reference: str,
    ) -> str: ...

    async def get_distribution(self, distribution_id: str) -> Optional[DistributionInfo]: ...

    async def find_distribution_by_alias(self, alias: str) -> Optional[DistributionInfo]: ...

    async def create_distribution(self, spec: DistributionSpec) -> DistributionInfo: ...


@runtime_checkable
class DnsClient(Protocol):
    async def find_hosted_zone(self, name: str) -> Optional[HostedZone]: ...

    async def create_hosted_zone(self, name: str, caller_reference: str) -> HostedZone: ...

    async def upsert_record(
        self,
        zone_id: str,
        name: str,
        record_type: str,
        ttl: int,
        value: str,
    ) -> None: ...

    async def get_record_value(
        self,
        zone_id: str,
        name: str,
        record_type: str,
    ) -> Optional[str]: ...

    async def create_alias_record(
        self,
        zone_id: str,
        name: str,
        target_dns_name: str,
        target_zone_id: str,
    ) -> None: ...


@runtime_checkable
class CertificateClient(Protocol):
    async def list_certificates(self, statuses: list[str]) -> list[str]: ...

    async def describe_certificate(self, arn: str) -> CertificateDetails: ...

    async def request_certificate(
        self,
        domain_name: str,
        subject_alternative_names: list[str],
    ) -> str: ...


@runtime_checkable
class IdentityClient(Protocol):
    async def caller_identity(self) -> dict[str, str]: ...
