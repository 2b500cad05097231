"""Site configuration record (the ``site.config.json`` document).

Keys use the camelCase names of the configuration contract; attributes are
snake_case. Models are frozen: a run loads the record once and shares it
read-only across every upload task.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from domain.common.exceptions import ConfigValidationError
from domain.deploy.naming import website_endpoint


class _RecordModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )


class AwsCredentialsConfig(_RecordModel):
    profile: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None

    @property
    def has_explicit_keys(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)


class CloudFrontConfig(_RecordModel):
    distribution_id: Optional[str] = None
    auto_invalidate: bool = True
    invalidate_paths: list[str] = Field(default_factory=list)


class DeployOptions(_RecordModel):
    delete_removed: bool = False
    exclude: list[str] = Field(default_factory=list)
    # mime type, "type/*", "immutable", "text/html" or "default" -> directive
    cache_control: dict[str, str] = Field(default_factory=dict)


class DeployConfig(_RecordModel):
    bucket_name: Optional[str] = None
    region: Optional[str] = None
    domain: Optional[str] = None
    aws: AwsCredentialsConfig = Field(default_factory=AwsCredentialsConfig)
    cloudfront: CloudFrontConfig = Field(default_factory=CloudFrontConfig)
    options: DeployOptions = Field(default_factory=DeployOptions)

    def missing_fields(self, placeholders: list[str] | tuple[str, ...] = ()) -> list[str]:
        """Contract names of required fields that are empty or still placeholders."""
        missing: list[str] = []
        bucket = (self.bucket_name or "").strip()
        if not bucket or bucket in placeholders:
            missing.append("deploy.bucketName")
        if not (self.region or "").strip():
            missing.append("deploy.region")
        if not (self.domain or "").strip():
            missing.append("deploy.domain")
        return missing

    def ensure_deployable(self, placeholders: list[str] | tuple[str, ...] = ()) -> None:
        """Raise before any network action if bucket, region or domain is unusable."""
        missing = self.missing_fields(placeholders)
        if missing:
            raise ConfigValidationError(missing)

    @property
    def website_endpoint(self) -> str:
        return website_endpoint(self.bucket_name or "", self.region or "")

    @property
    def live_url(self) -> str:
        if self.cloudfront.distribution_id and self.domain:
            return f"https://{self.domain}"
        return f"http://{self.website_endpoint}"


class BuildConfig(_RecordModel):
    output_dir: str = "dist"
    base_url: str = "/"


class SiteConfig(_RecordModel):
    deploy: DeployConfig = Field(default_factory=DeployConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)

    def with_distribution_id(self, distribution_id: str) -> "SiteConfig":
        cloudfront = self.deploy.cloudfront.model_copy(
            update={"distribution_id": distribution_id}
        )
        deploy = self.deploy.model_copy(update={"cloudfront": cloudfront})
        return self.model_copy(update={"deploy": deploy})

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def starter_config(domain: str = "example.com", region: str = "us-east-1") -> SiteConfig:
    """Starter record written by ``sitedeploy init``."""
    return SiteConfig(
        deploy=DeployConfig(
            domain=domain,
            bucket_name=domain,
            region=region,
            aws=AwsCredentialsConfig(profile="default"),
            cloudfront=CloudFrontConfig(auto_invalidate=True),
            options=DeployOptions(
                delete_removed=True,
                cache_control={
                    "immutable": "public, max-age=31536000, immutable",
                    "text/html": "public, max-age=3600",
                    "image/*": "public, max-age=2592000",
                    "default": "public, max-age=86400",
                },
                exclude=[".DS_Store", "Thumbs.db", "*.log"],
            ),
        ),
        build=BuildConfig(),
    )
