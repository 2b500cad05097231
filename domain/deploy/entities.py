"""Deployment value objects: upload tasks and results, invalidation
requests and the per-run bootstrap state."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

# Baseline CDN paths; "/*/" covers every clean-URL page directory
BASELINE_INVALIDATION_PATHS: tuple[str, ...] = (
    "/",
    "/index.html",
    "/*/",
    "/robots.txt",
    "/sitemap.xml",
)


@dataclass(frozen=True)
class UploadTask:
    """One discovered build file and how it will be transferred."""

    local_path: Path
    key: str
    content_type: str
    cache_control: str
    compress: bool


@dataclass(frozen=True)
class UploadResult:
    key: str
    success: bool
    compressed: bool = False
    error: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, task: UploadTask) -> "UploadResult":
        return cls(key=task.key, success=True, compressed=task.compress)

    @classmethod
    def failed(
        cls,
        task: UploadTask,
        error: str,
        status_code: Optional[int] = None,
    ) -> "UploadResult":
        return cls(
            key=task.key,
            success=False,
            compressed=False,
            error=error,
            status_code=status_code,
        )


@dataclass
class BatchSummary:
    """Aggregate of every upload attempted in a run."""

    total: int = 0
    results: list[UploadResult] = field(default_factory=list)

    def extend(self, results: Iterable[UploadResult]) -> None:
        self.results.extend(results)

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded

    @property
    def compressed(self) -> int:
        return sum(1 for r in self.results if r.success and r.compressed)

    @property
    def failures(self) -> list[UploadResult]:
        return [r for r in self.results if not r.success]

    @property
    def ok(self) -> bool:
        return self.failed == 0

    @property
    def uploaded_keys(self) -> set[str]:
        return {r.key for r in self.results if r.success}


@dataclass(frozen=True)
class InvalidationRequest:
    distribution_id: str
    paths: tuple[str, ...]
    caller_reference: str

    @classmethod
    def build(
        cls,
        distribution_id: str,
        custom_paths: Iterable[str] = (),
        prefix: str = "sitedeploy-deploy",
        now: Optional[float] = None,
    ) -> "InvalidationRequest":
        """Baseline paths unioned with custom ones, first occurrence wins."""
        paths = tuple(dict.fromkeys([*BASELINE_INVALIDATION_PATHS, *custom_paths]))
        millis = int((time.time() if now is None else now) * 1000)
        return cls(
            distribution_id=distribution_id,
            paths=paths,
            caller_reference=f"{prefix}-{millis}",
        )


class CertificateStatus(str, Enum):
    PENDING = "PENDING_VALIDATION"
    ISSUED = "ISSUED"
    FAILED = "FAILED"
    INACTIVE = "INACTIVE"
    EXPIRED = "EXPIRED"
    VALIDATION_TIMED_OUT = "VALIDATION_TIMED_OUT"
    REVOKED = "REVOKED"


class BootstrapStep(str, Enum):
    ZONE = "hosted-zone"
    BUCKET = "bucket"
    CERTIFICATE = "certificate"
    VALIDATION_RECORDS = "validation-records"
    CERTIFICATE_VALIDATION = "certificate-validation"
    DISTRIBUTION = "distribution"
    ALIAS_RECORDS = "alias-records"
    PERSIST = "persist"


@dataclass(frozen=True)
class ValidationRecord:
    domain: str
    name: str
    type: str
    value: str


@dataclass
class BootstrapState:
    """Derived from live cloud queries during one setup run; never cached."""

    domain: str
    bucket: str
    region: str
    domains: list[str] = field(default_factory=list)
    zone_domain: Optional[str] = None
    hosted_zone_id: Optional[str] = None
    zone_created: bool = False
    name_servers: list[str] = field(default_factory=list)
    bucket_created: bool = False
    certificate_arn: Optional[str] = None
    certificate_status: Optional[str] = None
    certificate_reused: bool = False
    validation_records: list[ValidationRecord] = field(default_factory=list)
    distribution_id: Optional[str] = None
    distribution_domain: Optional[str] = None
    distribution_created: bool = False
    alias_records: list[str] = field(default_factory=list)
    persisted: bool = False
    completed: list[BootstrapStep] = field(default_factory=list)

    def mark(self, step: BootstrapStep) -> None:
        if step not in self.completed:
            self.completed.append(step)
