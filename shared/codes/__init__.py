"""
Shared error codes used across layers (Domain/Core/CLI).

Single source of truth so the domain exceptions and the exit-status
mapping in ``core.exceptions`` never drift apart.
"""
from enum import IntEnum


class DeployCode(IntEnum):
    """Unified deployment status codes."""

    # Success
    SUCCESS = 0

    # Precondition errors (1xxxx)
    CONFIG_NOT_FOUND = 10000
    CONFIG_INVALID = 10001
    BUILD_OUTPUT_MISSING = 10002
    CREDENTIALS_INVALID = 10003

    # Upload errors (2xxxx)
    UPLOAD_FAILED = 20000

    # Infrastructure bootstrap errors (3xxxx)
    BOOTSTRAP_FAILED = 30000
    CERTIFICATE_FAILED = 30001
    DNS_RECORD_MISMATCH = 30002
    POLL_TIMEOUT = 30003

    # Cloud/system errors (4xxxx)
    CLOUD_ERROR = 40000
    SYSTEM_ERROR = 40001


__all__ = ["DeployCode"]
