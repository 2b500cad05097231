"""Map botocore failures onto the application cloud error family."""
from __future__ import annotations

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)

from application.ports.cloud import (
    AlreadyExistsError,
    CloudError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    TransientError,
)

NOT_FOUND_CODES = frozenset({
    "404",
    "NoSuchKey",
    "NotFound",
    "NoSuchBucket",
    "NoSuchWebsiteConfiguration",
    "NoSuchHostedZone",
    "NoSuchDistribution",
    "ResourceNotFoundException",
})
ALREADY_EXISTS_CODES = frozenset({
    "BucketAlreadyOwnedByYou",
    "HostedZoneAlreadyExists",
    "CNAMEAlreadyExists",
    "DistributionAlreadyExists",
    "InvalidationBatchAlreadyExists",
})
CONFLICT_CODES = frozenset({
    "InvalidChangeBatch",
    "BucketAlreadyExists",
    "OperationAborted",
})
PERMISSION_CODES = frozenset({
    "403",
    "AccessDenied",
    "AccessDeniedException",
    "InvalidClientTokenId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "UnrecognizedClientException",
})
TRANSIENT_CODES = frozenset({
    "RequestTimeout",
    "SlowDown",
    "ServiceUnavailable",
    "Throttling",
    "ThrottlingException",
    "InternalError",
    "PriorRequestNotComplete",
})


def translate_error(e: Exception, operation: str) -> CloudError:
    """Build the cloud error matching a botocore exception."""
    if isinstance(e, ClientError):
        error = e.response.get("Error", {})
        code = str(error.get("Code", ""))
        message = error.get("Message") or str(e)
        status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        text = f"{operation} failed ({code}): {message}"
        kwargs = {"code": code, "status": status, "operation": operation}

        if code in NOT_FOUND_CODES:
            return NotFoundError(text, **kwargs)
        if code in ALREADY_EXISTS_CODES or "already exists" in message.lower():
            return AlreadyExistsError(text, **kwargs)
        if code in CONFLICT_CODES:
            return ConflictError(text, **kwargs)
        if code in PERMISSION_CODES:
            return PermissionDeniedError(text, **kwargs)
        if code in TRANSIENT_CODES:
            return TransientError(text, **kwargs)
        return CloudError(text, **kwargs)

    if isinstance(e, (NoCredentialsError, PartialCredentialsError)):
        return PermissionDeniedError(f"{operation} failed: {e}", code="NoCredentials", operation=operation)
    if isinstance(e, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)):
        return TransientError(f"{operation} failed: {e}", code="Connection", operation=operation)
    if isinstance(e, BotoCoreError):
        return CloudError(f"{operation} failed: {e}", code=type(e).__name__, operation=operation)
    return CloudError(f"{operation} failed: {e}", operation=operation)
