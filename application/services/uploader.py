"""Single-file upload: optional gzip, one atomic put, transient cleanup."""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from application.ports.cloud import CloudError, ObjectStore
from application.utils.compression import CompressionError, discard, gzip_file
from core.logging_config import get_logger
from domain.deploy.entities import UploadResult, UploadTask

logger = get_logger(__name__)


@runtime_checkable
class Uploader(Protocol):
    async def upload(self, task: UploadTask) -> UploadResult: ...


class ObjectUploader:
    """Uploads one :class:`UploadTask` and reports a structured outcome.

    Never raises for upload failures of any kind; they become a failed
    :class:`UploadResult` so the scheduler can decide what to do.
    """

    def __init__(self, store: ObjectStore, gzip_level: int = 9, gzip_suffix: str = ".gz"):
        self.store = store
        self.gzip_level = gzip_level
        self.gzip_suffix = gzip_suffix

    async def upload(self, task: UploadTask) -> UploadResult:
        body_path = task.local_path
        compressed_path = None
        try:
            if task.compress:
                compressed_path = await gzip_file(
                    task.local_path, level=self.gzip_level, suffix=self.gzip_suffix
                )
                body_path = compressed_path

            await self.store.put_file(
                body_path,
                task.key,
                content_type=task.content_type,
                cache_control=task.cache_control,
                content_encoding="gzip" if task.compress else None,
            )
            logger.debug(
                "object_uploaded",
                key=task.key,
                content_type=task.content_type,
                gzip=task.compress,
            )
            return UploadResult.ok(task)
        except CloudError as exc:
            logger.error(
                "object_upload_failed",
                key=task.key,
                code=exc.code,
                status=exc.status,
                error=str(exc),
            )
            return UploadResult.failed(task, str(exc), status_code=exc.status)
        except (CompressionError, OSError) as exc:
            logger.error("object_upload_failed", key=task.key, error=str(exc))
            return UploadResult.failed(task, str(exc))
        except Exception as exc:
            # Must not escape: the batch task group would cancel sibling uploads
            logger.exception("object_upload_crashed", key=task.key)
            return UploadResult.failed(task, f"{type(exc).__name__}: {exc}")
        finally:
            if compressed_path is not None:
                await discard(compressed_path)
