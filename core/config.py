"""
配置文件 - 部署工具进程级配置管理

Site-specific values (bucket, domain, CDN distribution) live in the JSON
site configuration record, see ``domain.deploy.config``. This module only
holds knobs of the tool itself.
"""
from typing import Annotated, Literal

from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator


class UploadSettings(BaseModel):
    # Maximum simultaneous in-flight uploads (also the batch size)
    concurrency: int = 10
    gzip_level: int = 9
    gzip_suffix: str = ".gz"
    delete_batch_size: int = 1000


class BootstrapSettings(BaseModel):
    # ACM certificates used by CloudFront must live in us-east-1
    certificate_region: str = "us-east-1"
    default_region: str = "us-east-1"

    # Validation-record readiness poll
    records_poll_interval: float = 2.0
    records_poll_attempts: int = 30

    # Issuance poll (60 x 10s = 10 minutes)
    issuance_poll_interval: float = 10.0
    issuance_poll_attempts: int = 60

    validation_record_ttl: int = 300
    # Fixed hosted zone id for CloudFront alias targets
    cloudfront_hosted_zone_id: str = "Z2FDTNDATAQYW2"
    price_class: str = "PriceClass_100"
    minimum_protocol_version: str = "TLSv1.2_2021"
    caller_reference_prefix: str = "sitedeploy"


class AwsClientSettings(BaseModel):
    max_retry_attempts: int = 3
    connect_timeout: int = 10
    read_timeout: int = 60


class Settings(BaseSettings):
    """项目配置"""

    PROJECT_NAME: str = Field(default="sitedeploy")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    # auto: console renderer on a terminal, JSON lines when piped
    LOG_FORMAT: Literal["auto", "console", "json"] = Field(default="auto")
    LOG_LEVEL: str = Field(default="INFO")

    # Site configuration record and build output, relative to the working directory
    CONFIG_FILE: str = Field(default="site.config.json")
    BUILD_DIR: str = Field(default="dist")

    # Placeholder bucket names shipped in starter configs
    PLACEHOLDER_BUCKETS: Annotated[list[str], NoDecode] = Field(
        default=["your-website-bucket-name", "your-bucket-name"]
    )

    upload: UploadSettings = Field(default_factory=UploadSettings)
    bootstrap: BootstrapSettings = Field(default_factory=BootstrapSettings)
    aws: AwsClientSettings = Field(default_factory=AwsClientSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SITEDEPLOY_",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("PLACEHOLDER_BUCKETS", mode="before")
    @classmethod
    def _parse_placeholders(cls, v):
        """允许 JSON 字符串或逗号分隔字符串两种格式。"""
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                arr = json.loads(s)
                if isinstance(arr, list):
                    return arr
            return [item.strip() for item in s.split(",") if item.strip()]
        return v


settings = Settings()
