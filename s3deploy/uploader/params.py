"""
Per-file upload parameters.

Every object a deploy writes is public-read and cacheable for a year; the
content type comes from the file extension and the content encoding from the
file's bytes. A pre-compressed asset is detected by validating it as a gzip
stream, never by its name, so ``app.css`` holding gzip data is served with
``Content-Encoding: gzip`` and ``archive.gz`` holding plain text is not.
"""

import gzip
import mimetypes
import posixpath
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Union

from s3deploy.exceptions import FileSystemError

# Upload policy constants
CACHE_CONTROL = "max-age=31536000, public"
PUBLIC_READ_ACL = "public-read"
DEFAULT_CONTENT_TYPE = "text/plain"
GZIP_ENCODING = "gzip"

GZIP_MAGIC = b"\x1f\x8b"
READ_CHUNK_BYTES = 64 * 1024


@dataclass(frozen=True)
class UploadParameters:
    """
    Metadata for one put_object call.

    Attributes:
        key: Object key in the bucket
        content_type: MIME type
        content_length: Body size in bytes
        cache_control: Cache-Control header (one year, public)
        acl: Canned ACL (public-read)
        content_encoding: "gzip" for gzip-compressed bodies, else None
    """

    key: str
    content_type: str
    content_length: int
    cache_control: str = CACHE_CONTROL
    acl: str = PUBLIC_READ_ACL
    content_encoding: Optional[str] = None

    def to_put_kwargs(self, body: BinaryIO) -> Dict[str, Any]:
        """Keyword arguments for ``put_object`` (without ``Bucket``)."""
        kwargs: Dict[str, Any] = {
            "Key": self.key,
            "Body": body,
            "ACL": self.acl,
            "CacheControl": self.cache_control,
            "ContentType": self.content_type,
            "ContentLength": self.content_length,
        }
        if self.content_encoding:
            kwargs["ContentEncoding"] = self.content_encoding
        return kwargs


def object_key(prefix: Optional[str], relative_path: str) -> str:
    """
    Object key for a file: ``prefix/relative_path``.

    Example:
        >>> object_key("v2", "css/app.css")
        'v2/css/app.css'
        >>> object_key("", "css/app.css")
        'css/app.css'
    """
    prefix = (prefix or "").strip("/")
    if not prefix:
        return relative_path
    return posixpath.join(prefix, relative_path)


def guess_content_type(path: Union[str, Path]) -> str:
    content_type, _ = mimetypes.guess_type(str(path), strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


def is_gzip_file(path: Union[str, Path]) -> bool:
    """
    Whether the file's bytes form a valid gzip stream.

    Decompresses the whole file, so truncated or corrupt archives (bad CRC,
    bad length) are rejected the way ``gzip -t`` rejects them.

    Raises:
        FileSystemError: If the file cannot be opened or read
    """
    try:
        with open(path, "rb") as raw:
            if raw.read(len(GZIP_MAGIC)) != GZIP_MAGIC:
                return False
            raw.seek(0)
            with gzip.GzipFile(fileobj=raw, mode="rb") as stream:
                while stream.read(READ_CHUNK_BYTES):
                    pass
    except (gzip.BadGzipFile, EOFError, zlib.error):
        return False
    except OSError as e:
        raise FileSystemError(f"Cannot read {path}: {e}") from e
    return True


def build_file_parameters(
    full_path: Union[str, Path],
    size_bytes: Optional[int] = None,
    key: Optional[str] = None,
) -> UploadParameters:
    """
    Derive the upload parameters for a file.

    Args:
        full_path: Path of the file on disk
        size_bytes: Content length; read from disk when None
        key: Object key; defaults to the file's base name only

    Returns:
        UploadParameters

    Raises:
        FileSystemError: If the file cannot be read

    Example:
        >>> params = build_file_parameters("dist/css/app.css", key="v2/css/app.css")
        >>> params.content_type, params.cache_control
        ('text/css', 'max-age=31536000, public')
    """
    path = Path(full_path)

    if size_bytes is None:
        try:
            size_bytes = path.stat().st_size
        except OSError as e:
            raise FileSystemError(f"Cannot stat {path}: {e}") from e

    return UploadParameters(
        key=key if key else path.name,
        content_type=guess_content_type(path),
        content_length=size_bytes,
        content_encoding=GZIP_ENCODING if is_gzip_file(path) else None,
    )
