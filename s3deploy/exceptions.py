"""
Exception hierarchy for deploy operations.

Every fatal condition derives from DeployError so the CLI can map the whole
family to a single exit code. A failed single-file upload is NOT an
exception: it is returned as an UploadFailure result and requeued by the
orchestrator. Only when a file exhausts its attempts does the directory
upload raise UploadIncompleteError.
"""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from s3deploy.uploader.files import FileDescriptor


class DeployError(Exception):
    """Base class for all fatal deploy errors."""


class ConfigurationError(DeployError):
    """Deploy configuration is missing, malformed, or invalid."""

    def __init__(self, message: str, errors: Optional[List[object]] = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class FileSystemError(DeployError):
    """A directory or file could not be read."""


class BuildError(DeployError):
    """The build step returned a non-zero result."""

    def __init__(self, message: str, return_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.return_code = return_code


class HookError(DeployError):
    """A before/after hook step failed and was marked as fatal."""

    def __init__(self, message: str, command: str, return_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.command = command
        self.return_code = return_code


class BucketValidationError(DeployError):
    """The target bucket could not be located."""


class UploadIncompleteError(DeployError):
    """One or more files could not be uploaded within the retry budget."""

    def __init__(self, failed: List["FileDescriptor"], attempts: int) -> None:
        count = len(failed)
        noun = "file" if count == 1 else "files"
        super().__init__(f"Deploy failed: {count} {noun} could not be uploaded")
        self.failed = list(failed)
        self.attempts = attempts
