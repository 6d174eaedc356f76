"""
Directory upload orchestrator.

Uploads every file of a directory strictly one at a time from a work queue.
A file whose upload fails goes to the back of the queue, so every other
pending file gets its turn before the failed one is attempted again
(round-robin retry). Each file has a bounded number of attempts; files that
exhaust them are reported together once the queue drains.

Example usage:
    >>> from s3deploy.storage import ObjectStore
    >>> from s3deploy.ui import ConsoleUI
    >>> from s3deploy.uploader import upload_directory
    >>>
    >>> store = ObjectStore("my-site", region="us-east-1", prepend_path="v2")
    >>> report = upload_directory(store, ConsoleUI(), "dist/")
    >>> print(f"{len(report.uploaded)} files in {report.attempts} attempts")
"""

import time
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Deque, Dict, List, Optional, Union

from s3deploy.exceptions import UploadIncompleteError
from s3deploy.storage import ObjectStore
from s3deploy.ui import ProgressSink
from s3deploy.uploader.files import FileDescriptor, read_directory
from s3deploy.uploader.params import build_file_parameters, object_key
from s3deploy.uploader.uploader import UploadSuccess, upload_file
from s3deploy.utils.logging import get_logger, log_function_call
from s3deploy.utils.metrics import get_metrics
from s3deploy.utils.retry import RetryPolicy

logger = get_logger(__name__)


@dataclass
class DirectoryUploadReport:
    """
    Outcome of a directory upload.

    Attributes:
        uploaded: Successful results, in completion order
        failed: Files that exhausted their attempts
        attempts: Total put attempts made
        duration_seconds: Wall time of the whole upload
    """

    uploaded: List[UploadSuccess] = field(default_factory=list)
    failed: List[FileDescriptor] = field(default_factory=list)
    attempts: int = 0
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.failed

    @property
    def bytes_uploaded(self) -> int:
        return sum(result.file.size_bytes for result in self.uploaded)


@log_function_call
def upload_directory(
    store: ObjectStore,
    ui: ProgressSink,
    directory: Union[str, Path],
    retry_policy: Optional[RetryPolicy] = None,
) -> DirectoryUploadReport:
    """
    Upload every file under ``directory`` to the store's bucket.

    Object keys are ``store.prepend_path`` joined with each file's path
    relative to ``directory``. Files are visited in enumeration order; a
    failed file is appended to the back of the queue until it succeeds or
    uses up ``retry_policy.max_attempts``.

    Args:
        store: Target bucket handle (already validated)
        ui: Progress sink
        directory: Build output directory
        retry_policy: Per-file attempt budget and pacing (default: 5
            attempts, no delay)

    Returns:
        DirectoryUploadReport with every file uploaded

    Raises:
        FileSystemError: If the directory or a file cannot be read
        UploadIncompleteError: If any file exhausted its attempts; the
            other files have still been uploaded
    """
    policy = retry_policy or RetryPolicy()
    metrics = get_metrics()
    start_time = time.monotonic()

    files = read_directory(directory)
    queue: Deque[FileDescriptor] = deque(files)
    attempts: Dict[FileDescriptor, int] = {}
    report = DirectoryUploadReport()
    remaining = len(files)

    logger.info(
        f"Uploading {remaining} files from {directory} to s3://{store.bucket_path} "
        f"(max {policy.max_attempts} attempts per file)"
    )

    while queue:
        file = queue.popleft()
        previous_attempts = attempts.get(file, 0)

        delay = policy.delay_before(previous_attempts)
        if delay > 0:
            logger.debug(f"Waiting {delay:.2f}s before retrying {file.relative_path}")
            time.sleep(delay)

        params = build_file_parameters(
            file.full_path,
            size_bytes=file.size_bytes,
            key=object_key(store.prepend_path, file.relative_path),
        )

        result = upload_file(store, ui, file, params)()
        attempts[file] = previous_attempts + 1
        report.attempts += 1

        if result.success:
            report.uploaded.append(result)
            remaining -= 1
            continue

        ui.write_line(result.message, "error")

        if policy.should_retry(attempts[file]):
            metrics.record_retry()
            queue.append(file)
        else:
            ui.write_line(
                f"Giving up on {params.key} after {attempts[file]} attempts", "error"
            )
            logger.error(f"Upload abandoned: {params.key} ({result.message})")
            report.failed.append(file)

    report.duration_seconds = time.monotonic() - start_time

    if remaining:
        logger.error(
            f"Directory upload incomplete: {len(report.failed)} of {len(files)} files failed"
        )
        raise UploadIncompleteError(report.failed, report.attempts)

    ui.write_line(
        f"Uploaded {len(report.uploaded)} files to {store.bucket_path} "
        f"[{report.duration_seconds:.2f}s]",
        "success",
    )
    logger.info(
        f"Directory upload complete: {len(report.uploaded)} files, "
        f"{report.bytes_uploaded} bytes, {report.attempts} attempts"
    )
    return report
