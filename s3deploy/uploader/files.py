"""
Directory enumeration for deploys.

Walks a build output directory and describes every regular file in it. The
result is materialized and sorted by relative path, so a deploy visits files
in the same order every time it runs against the same tree.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

from s3deploy.exceptions import FileSystemError
from s3deploy.utils.logging import get_logger, log_function_call

logger = get_logger(__name__)


@dataclass(frozen=True)
class FileDescriptor:
    """
    A file found under the deploy root.

    Attributes:
        relative_path: Path relative to the root, always ``/``-separated
        full_path: Absolute path on disk
        size_bytes: File size at enumeration time
    """

    relative_path: str
    full_path: str
    size_bytes: int


def _raise_walk_error(error: OSError) -> None:
    raise FileSystemError(f"Cannot read directory {error.filename}: {error.strerror}") from error


@log_function_call
def read_directory(root: Union[str, Path]) -> List[FileDescriptor]:
    """
    Describe every regular file under ``root``, recursively.

    Symlinked directories are not followed; broken symlinks and special files
    are skipped.

    Args:
        root: Directory to enumerate

    Returns:
        FileDescriptors sorted by relative path

    Raises:
        FileSystemError: If ``root`` does not exist, is not a directory, or
            any directory under it cannot be read

    Example:
        >>> files = read_directory("dist")
        >>> [f.relative_path for f in files]
        ['assets/app.css', 'assets/app.js', 'index.html']
    """
    root_path = Path(root).resolve()

    if not root_path.exists():
        raise FileSystemError(f"Directory not found: {root}")

    if not root_path.is_dir():
        raise FileSystemError(f"Path is not a directory: {root}")

    files: List[FileDescriptor] = []

    for dirpath, dirnames, filenames in os.walk(root_path, onerror=_raise_walk_error):
        dirnames.sort()
        for name in filenames:
            full_path = Path(dirpath) / name
            if not full_path.is_file():
                logger.debug(f"Skipping non-regular file: {full_path}")
                continue

            try:
                size = full_path.stat().st_size
            except OSError as e:
                raise FileSystemError(f"Cannot stat {full_path}: {e}") from e

            files.append(
                FileDescriptor(
                    relative_path=full_path.relative_to(root_path).as_posix(),
                    full_path=str(full_path),
                    size_bytes=size,
                )
            )

    files.sort(key=lambda f: f.relative_path)

    logger.info(
        f"Found {len(files)} files under {root_path} "
        f"({sum(f.size_bytes for f in files)} bytes)"
    )
    return files
