"""Build-tree enumeration and fail-fast batched uploads."""
from __future__ import annotations

import fnmatch
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

import anyio

from application.services.uploader import Uploader
from core.logging_config import get_logger
from domain.common.exceptions import UploadBatchError
from domain.deploy.entities import BatchSummary, UploadResult, UploadTask
from domain.deploy.policy import DEFAULT_CACHE_POLICY, CachePolicy, resolve_file_policy

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


def remote_key_for(path: Path, root: Path) -> str:
    """Path relative to the build root with forward slashes."""
    return path.relative_to(root).as_posix().replace("\\", "/")


def is_excluded(key: str, patterns: Iterable[str]) -> bool:
    name = key.rsplit("/", 1)[-1]
    return any(
        fnmatch.fnmatchcase(name, pattern) or fnmatch.fnmatchcase(key, pattern)
        for pattern in patterns
    )


def discover_tasks(
    root: Path,
    policy: CachePolicy = DEFAULT_CACHE_POLICY,
    exclude: Sequence[str] = (),
) -> list[UploadTask]:
    """One task per leaf file under ``root``, ordered by remote key."""
    root = root.resolve()
    tasks: list[UploadTask] = []
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        key = remote_key_for(path, root)
        if is_excluded(key, exclude):
            logger.debug("file_excluded", key=key)
            continue
        resolved = resolve_file_policy(key, policy)
        tasks.append(
            UploadTask(
                local_path=path,
                key=key,
                content_type=resolved.content_type,
                cache_control=resolved.cache_control,
                compress=resolved.compress,
            )
        )
    tasks.sort(key=lambda t: t.key)
    return tasks


class UploadScheduler:
    """Runs upload tasks in sequential batches of ``concurrency``.

    Every task in a batch is in flight at once; the next batch starts only
    after the whole batch has resolved. A batch with any failed upload stops
    the run: later batches are never attempted and :class:`UploadBatchError`
    carries the summary of everything attempted so far.
    """

    def __init__(
        self,
        uploader: Uploader,
        concurrency: int = 10,
        on_progress: Optional[ProgressCallback] = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.uploader = uploader
        self.concurrency = concurrency
        self.on_progress = on_progress

    def batches(self, tasks: Sequence[UploadTask]) -> list[Sequence[UploadTask]]:
        return [
            tasks[i:i + self.concurrency]
            for i in range(0, len(tasks), self.concurrency)
        ]

    async def _run_batch(self, batch: Sequence[UploadTask]) -> list[UploadResult]:
        results: list[Optional[UploadResult]] = [None] * len(batch)

        async def _one(index: int, task: UploadTask) -> None:
            try:
                results[index] = await self.uploader.upload(task)
            except Exception as exc:
                logger.exception("upload_task_crashed", key=task.key)
                results[index] = UploadResult.failed(task, f"{type(exc).__name__}: {exc}")

        async with anyio.create_task_group() as tg:
            for index, task in enumerate(batch):
                tg.start_soon(_one, index, task)

        return [r for r in results if r is not None]

    async def run(self, tasks: Sequence[UploadTask]) -> BatchSummary:
        summary = BatchSummary(total=len(tasks))
        logger.info(
            "upload_started",
            files=len(tasks),
            concurrency=self.concurrency,
        )

        for index, batch in enumerate(self.batches(tasks)):
            batch_results = await self._run_batch(batch)
            summary.extend(batch_results)

            if any(not r.success for r in batch_results):
                logger.error(
                    "upload_batch_failed",
                    batch=index + 1,
                    failed=[r.key for r in batch_results if not r.success],
                    attempted=summary.attempted,
                    total=summary.total,
                )
                raise UploadBatchError(summary, index)

            logger.info("upload_progress", uploaded=summary.attempted, total=summary.total)
            if self.on_progress is not None:
                self.on_progress(summary.attempted, summary.total)

        logger.info(
            "upload_completed",
            uploaded=summary.succeeded,
            compressed=summary.compressed,
        )
        return summary
