"""领域层异常定义，供领域、应用与基础设施层使用。

Lower layers raise these; only the deployment orchestrator, the bootstrap
state machine and the CLI decide whether a failure halts the process.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from shared.codes import DeployCode

if TYPE_CHECKING:
    from domain.deploy.entities import BatchSummary


class DeployException(Exception):
    """部署异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "DeployError",
        details: Optional[dict] = None,
        hint: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.hint = hint
        super().__init__(self.message)


class ConfigNotFoundError(DeployException):
    def __init__(self, path: str):
        super().__init__(
            code=DeployCode.CONFIG_NOT_FOUND,
            message=f"Configuration file not found: {path}",
            error_type="ConfigNotFound",
            details={"path": path},
            hint="Run 'sitedeploy init' to create a starter configuration.",
        )


class ConfigValidationError(DeployException):
    def __init__(self, fields: list[str], message: Optional[str] = None):
        super().__init__(
            code=DeployCode.CONFIG_INVALID,
            message=message or f"Missing or placeholder configuration: {', '.join(fields)}",
            error_type="ConfigValidation",
            details={"fields": fields},
            hint="Set the listed deploy.* values in the site configuration file.",
        )


class BuildOutputMissingError(DeployException):
    def __init__(self, path: str, reason: str = "not found"):
        super().__init__(
            code=DeployCode.BUILD_OUTPUT_MISSING,
            message=f"Build output directory {reason}: {path}",
            error_type="BuildOutputMissing",
            details={"path": path, "reason": reason},
            hint="Build the site first so the output directory is populated.",
        )


class CredentialsError(DeployException):
    def __init__(self, profile: Optional[str] = None, reason: Optional[str] = None):
        target = f" for profile '{profile}'" if profile else ""
        hint = (
            f"Run: aws configure --profile {profile}"
            if profile
            else "Configure credentials via environment variables, a profile, or deploy.aws in the site config."
        )
        super().__init__(
            code=DeployCode.CREDENTIALS_INVALID,
            message=f"AWS credentials are not configured or invalid{target}",
            error_type="CredentialsInvalid",
            details={"profile": profile, "reason": reason},
            hint=hint,
        )


class UploadBatchError(DeployException):
    """A batch contained at least one failed upload; later batches were not run."""

    def __init__(self, summary: "BatchSummary", batch_index: int):
        self.summary = summary
        self.batch_index = batch_index
        failed = ", ".join(f.key for f in summary.failures[:5])
        super().__init__(
            code=DeployCode.UPLOAD_FAILED,
            message=(
                f"Upload failed in batch {batch_index + 1}: "
                f"{summary.failed} of {summary.attempted} attempted uploads failed ({failed})"
            ),
            error_type="UploadBatchFailed",
            details={
                "batch": batch_index + 1,
                "attempted": summary.attempted,
                "succeeded": summary.succeeded,
                "failures": [
                    {"key": f.key, "error": f.error} for f in summary.failures
                ],
            },
            hint="Re-run the deployment; object uploads overwrite idempotently.",
        )


class BootstrapError(DeployException):
    """An infrastructure bootstrap step failed; earlier resources are left in place."""

    def __init__(
        self,
        step: str,
        message: str,
        code: int = DeployCode.BOOTSTRAP_FAILED,
        error_type: str = "BootstrapFailed",
        details: Optional[dict] = None,
    ):
        self.step = step
        super().__init__(
            code=code,
            message=f"[{step}] {message}",
            error_type=error_type,
            details={"step": step, **(details or {})},
            hint="Fix the cause and re-run setup; completed steps are detected and skipped.",
        )


class CertificateValidationError(BootstrapError):
    def __init__(self, certificate_arn: str, status: str):
        super().__init__(
            step="certificate-validation",
            message=f"Certificate {certificate_arn} validation ended with status {status}",
            code=DeployCode.CERTIFICATE_FAILED,
            error_type="CertificateValidationFailed",
            details={"certificate_arn": certificate_arn, "status": status},
        )


class DnsRecordMismatchError(BootstrapError):
    def __init__(self, name: str, expected: str, found: Optional[str]):
        super().__init__(
            step="validation-records",
            message=(
                f"Validation record {name} exists with a different value. "
                f"Expected: {expected}, Found: {found}"
            ),
            code=DeployCode.DNS_RECORD_MISMATCH,
            error_type="DnsRecordMismatch",
            details={"name": name, "expected": expected, "found": found},
        )


class PollTimeoutError(BootstrapError):
    def __init__(self, step: str, what: str, attempts: int, interval: float):
        super().__init__(
            step=step,
            message=f"Timed out waiting for {what} after {attempts} attempts ({attempts * interval:g}s)",
            code=DeployCode.POLL_TIMEOUT,
            error_type="PollTimeout",
            details={"attempts": attempts, "interval": interval},
        )
