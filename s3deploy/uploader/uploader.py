"""
Single-file S3 upload and bucket validation.

Provides the deferred single-file put used by the directory orchestrator and
the one-shot bucket pre-flight check. Upload outcomes are returned as values
(UploadSuccess / UploadFailure) so the orchestrator can make every retry
decision in one place; bucket validation failures are fatal and raised.

Example usage:
    >>> from s3deploy.storage import ObjectStore
    >>> from s3deploy.ui import ConsoleUI
    >>> from s3deploy.uploader import FileDescriptor, build_file_parameters, upload_file
    >>>
    >>> store = ObjectStore("my-site", region="us-east-1")
    >>> ui = ConsoleUI()
    >>> validate_bucket(store, ui)
    >>> file = FileDescriptor("index.html", "/srv/site/dist/index.html", 512)
    >>> attempt = upload_file(store, ui, file, build_file_parameters(file.full_path, key="index.html"))
    >>> result = attempt()  # nothing is sent until here
    >>> if result.success:
    ...     print(result.response["ETag"])
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Union

from botocore.exceptions import BotoCoreError, ClientError

from s3deploy.exceptions import BucketValidationError
from s3deploy.storage import ObjectStore, error_code
from s3deploy.ui import ProgressSink
from s3deploy.uploader.files import FileDescriptor
from s3deploy.uploader.params import UploadParameters
from s3deploy.utils.logging import get_logger, log_function_call
from s3deploy.utils.metrics import get_metrics

# Module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadSuccess:
    """
    A put that completed.

    Attributes:
        file: The file that was uploaded
        key: Object key written
        response: put_object response (ETag, VersionId, ...)
        duration_seconds: Time spent on the attempt
    """

    file: FileDescriptor
    key: str
    response: Dict[str, Any]
    duration_seconds: float
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class UploadFailure:
    """
    A put that failed.

    Attributes:
        file: The file whose upload failed
        key: Object key that was being written
        error: The exception raised by the attempt
        duration_seconds: Time spent on the attempt
    """

    file: FileDescriptor
    key: str
    error: BaseException
    duration_seconds: float
    success: bool = field(default=False, init=False)

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__


UploadResult = Union[UploadSuccess, UploadFailure]


def _elapsed(start_time: float) -> str:
    return f"[{time.monotonic() - start_time:.2f}s]"


def upload_file(
    store: ObjectStore,
    ui: ProgressSink,
    file: FileDescriptor,
    params: UploadParameters,
) -> Callable[[], UploadResult]:
    """
    Build one upload attempt without starting it.

    Calling the returned function opens the file, reports the start to
    ``ui``, performs ``put_object`` and reports completion or error with the
    elapsed time. Every error raised by the attempt is returned as an
    UploadFailure; the function itself never raises.

    Args:
        store: Target bucket handle
        ui: Progress sink
        file: File to upload
        params: Upload parameters for the file

    Returns:
        Zero-argument function performing the attempt
    """
    metrics = get_metrics()

    def attempt() -> UploadResult:
        start_time = time.monotonic()
        ui.start(f"Uploading {params.key} [{params.content_length}b]", ".")

        try:
            with open(file.full_path, "rb") as body:
                with metrics.track_upload():
                    response = store.put_object(**params.to_put_kwargs(body))
        except Exception as e:
            duration = time.monotonic() - start_time
            ui.stop()
            ui.write_line(f"Upload error: {params.key} {_elapsed(start_time)}", "error")
            logger.warning(
                f"Upload failed: s3://{store.bucket}/{params.key} "
                f"({type(e).__name__}: {e})"
            )
            metrics.record_upload_failure(error_code(e))
            return UploadFailure(file=file, key=params.key, error=e, duration_seconds=duration)

        duration = time.monotonic() - start_time
        ui.stop()
        ui.write_line(f"Upload complete: {params.key} {_elapsed(start_time)}", "success")
        logger.debug(
            f"Upload successful: s3://{store.bucket}/{params.key} "
            f"({params.content_length} bytes in {duration:.2f}s)"
        )
        metrics.record_upload_success(bytes_uploaded=params.content_length)
        return UploadSuccess(
            file=file,
            key=params.key,
            response=dict(response or {}),
            duration_seconds=duration,
        )

    return attempt


@log_function_call
def validate_bucket(store: ObjectStore, ui: ProgressSink) -> str:
    """
    Confirm the target bucket exists and adopt its region.

    Runs once before any upload. When the bucket lives in a different region
    than the one configured (or none was configured), the store's client is
    switched to the bucket's region.

    Args:
        store: Target bucket handle
        ui: Progress sink

    Returns:
        The bucket's region

    Raises:
        BucketValidationError: If the bucket cannot be located
    """
    ui.start("Verifying bucket", ".")

    try:
        location = store.get_bucket_location()
    except (ClientError, BotoCoreError) as e:
        ui.stop()
        ui.write_line(f"Error locating bucket: {store.bucket}", "error")
        get_metrics().record_s3_error("get_bucket_location", error_code(e))
        raise BucketValidationError(f"Cannot locate bucket {store.bucket}: {e}") from e

    ui.stop()
    ui.write_line(f"Bucket found: {store.bucket}", "success")
    return store.update_region(location.get("LocationConstraint"))
