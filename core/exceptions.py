"""
异常到进程退出码的映射与诊断输出
"""
from typing import Optional

from application.ports.cloud import CloudError, PermissionDeniedError
from core.logging_config import get_logger
from domain.common.exceptions import DeployException
from shared.codes import DeployCode

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_BUILD_OUTPUT = 3
EXIT_CREDENTIALS = 4
EXIT_UPLOAD = 5
EXIT_BOOTSTRAP = 6
EXIT_INTERRUPTED = 130

_CODE_TO_EXIT = {
    DeployCode.SUCCESS: EXIT_OK,
    DeployCode.CONFIG_NOT_FOUND: EXIT_CONFIG,
    DeployCode.CONFIG_INVALID: EXIT_CONFIG,
    DeployCode.BUILD_OUTPUT_MISSING: EXIT_BUILD_OUTPUT,
    DeployCode.CREDENTIALS_INVALID: EXIT_CREDENTIALS,
    DeployCode.UPLOAD_FAILED: EXIT_UPLOAD,
    DeployCode.BOOTSTRAP_FAILED: EXIT_BOOTSTRAP,
    DeployCode.CERTIFICATE_FAILED: EXIT_BOOTSTRAP,
    DeployCode.DNS_RECORD_MISMATCH: EXIT_BOOTSTRAP,
    DeployCode.POLL_TIMEOUT: EXIT_BOOTSTRAP,
}


def exit_code_for(exc: BaseException) -> int:
    """根据异常类型映射进程退出码（默认1）。"""
    if isinstance(exc, DeployException):
        return _CODE_TO_EXIT.get(exc.code, EXIT_FAILURE)
    if isinstance(exc, PermissionDeniedError):
        return EXIT_CREDENTIALS
    if isinstance(exc, KeyboardInterrupt):
        return EXIT_INTERRUPTED
    return EXIT_FAILURE


def describe_error(exc: BaseException) -> tuple[str, Optional[str]]:
    """Human-readable message and optional remediation hint."""
    if isinstance(exc, DeployException):
        return exc.message, exc.hint
    if isinstance(exc, PermissionDeniedError):
        return str(exc), "Check the AWS credentials and IAM permissions for this operation."
    if isinstance(exc, CloudError):
        return str(exc), None
    return f"Unexpected error: {exc}", None


def log_failure(exc: BaseException, command: str) -> int:
    """记录失败并返回退出码。"""
    code = exit_code_for(exc)
    if isinstance(exc, DeployException):
        logger.error(
            "command_failed",
            command=command,
            error_type=exc.error_type,
            code=int(exc.code),
            message=exc.message,
            details=exc.details,
            exit_code=code,
        )
    elif isinstance(exc, CloudError):
        logger.error(
            "command_failed",
            command=command,
            error_type=type(exc).__name__,
            code=exc.code,
            operation=exc.operation,
            message=str(exc),
            exit_code=code,
        )
    else:
        logger.exception("command_crashed", command=command, exit_code=code)
    return code
