"""
S3 upload pipeline.

Enumerates a build output directory, derives per-file upload parameters
(content type, cache policy, gzip detection), and uploads the files one at a
time with round-robin retry. Also provides the bucket pre-flight check.
"""

from .files import FileDescriptor, read_directory
from .params import (
    CACHE_CONTROL,
    DEFAULT_CONTENT_TYPE,
    PUBLIC_READ_ACL,
    UploadParameters,
    build_file_parameters,
    is_gzip_file,
    object_key,
)
from .uploader import (
    UploadFailure,
    UploadResult,
    UploadSuccess,
    upload_file,
    validate_bucket,
)
from .orchestrator import DirectoryUploadReport, upload_directory

__all__ = [
    "CACHE_CONTROL",
    "DEFAULT_CONTENT_TYPE",
    "PUBLIC_READ_ACL",
    "DirectoryUploadReport",
    "FileDescriptor",
    "UploadFailure",
    "UploadParameters",
    "UploadResult",
    "UploadSuccess",
    "build_file_parameters",
    "is_gzip_file",
    "object_key",
    "read_directory",
    "upload_directory",
    "upload_file",
    "validate_bucket",
]
