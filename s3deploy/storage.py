"""
S3 bucket handle shared by every upload of a deploy.

``ObjectStore`` owns the boto3 client together with the bucket name, working
region, object-key prefix and transfer timeouts. It is built once per deploy
and read by every upload attempt; the one mutation is ``update_region``,
called by bucket validation before any upload starts.
"""

from typing import Any, Callable, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from s3deploy.utils.config import DeployConfiguration
from s3deploy.utils.logging import get_logger

logger = get_logger(__name__)

# S3 reports us-east-1 as an empty LocationConstraint
DEFAULT_REGION = "us-east-1"

# Legacy LocationConstraint values
LEGACY_LOCATIONS = {"EU": "eu-west-1"}

ClientFactory = Callable[[Optional[str]], Any]


def normalize_location(location_constraint: Optional[str]) -> str:
    """
    Map a GetBucketLocation ``LocationConstraint`` to a region name.

    Example:
        >>> normalize_location(None)
        'us-east-1'
        >>> normalize_location("EU")
        'eu-west-1'
    """
    if not location_constraint:
        return DEFAULT_REGION
    return LEGACY_LOCATIONS.get(location_constraint, location_constraint)


def error_code(error: BaseException) -> str:
    """S3 error code of a ClientError, otherwise the exception type name."""
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "Unknown")
    return type(error).__name__


def create_s3_client(
    region: Optional[str] = None,
    aws_access_key_id: Optional[str] = None,
    aws_secret_access_key: Optional[str] = None,
    timeout_seconds: Optional[int] = None,
):
    """
    Create a boto3 S3 client.

    Credentials fall back to the standard boto3 chain (environment, shared
    credentials file, instance profile) when not given.

    Args:
        region: AWS region name
        aws_access_key_id: Optional AWS access key
        aws_secret_access_key: Optional AWS secret key
        timeout_seconds: Connect and read timeout for every request

    Returns:
        boto3 S3 client
    """
    client_kwargs: Dict[str, Any] = {}

    if aws_access_key_id and aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = aws_access_key_id
        client_kwargs["aws_secret_access_key"] = aws_secret_access_key

    if region is not None:
        client_kwargs["region_name"] = region

    if timeout_seconds is not None:
        client_kwargs["config"] = Config(
            connect_timeout=timeout_seconds,
            read_timeout=timeout_seconds,
        )

    return boto3.client("s3", **client_kwargs)


class ObjectStore:
    """
    The target bucket and the client used to reach it.

    Args:
        bucket: Bucket name
        region: Configured region (may be wrong or missing; corrected by
            bucket validation)
        prepend_path: Prefix applied to every object key
        client_factory: Builds a client for a region; defaults to
            ``create_s3_client`` with the given credentials and timeout

    Example:
        >>> store = ObjectStore("my-site", region="us-east-1", prepend_path="v2")
        >>> store.bucket_path
        'my-site/v2'
    """

    def __init__(
        self,
        bucket: str,
        region: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        prepend_path: str = "",
        timeout_seconds: Optional[int] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        if not bucket:
            raise ValueError("bucket is required")

        self.bucket = bucket
        self.region = region
        self.prepend_path = (prepend_path or "").strip("/")
        self.timeout_seconds = timeout_seconds

        if client_factory is None:
            def client_factory(client_region: Optional[str]) -> Any:
                return create_s3_client(
                    region=client_region,
                    aws_access_key_id=access_key,
                    aws_secret_access_key=secret_key,
                    timeout_seconds=timeout_seconds,
                )

        self._client_factory = client_factory
        self._client: Any = None

    @classmethod
    def from_config(cls, config: DeployConfiguration) -> "ObjectStore":
        return cls(
            bucket=config.bucket,
            region=config.region,
            access_key=config.access_key,
            secret_key=config.secret_key,
            prepend_path=config.prepend_path,
            timeout_seconds=config.timeout_seconds,
        )

    @property
    def bucket_path(self) -> str:
        """``bucket/prefix``, or just the bucket when there is no prefix."""
        if self.prepend_path:
            return f"{self.bucket}/{self.prepend_path}"
        return self.bucket

    @property
    def client(self) -> Any:
        """The S3 client for the current working region, created on first use."""
        if self._client is None:
            logger.debug(f"Creating S3 client (region={self.region})")
            self._client = self._client_factory(self.region)
        return self._client

    def update_region(self, location_constraint: Optional[str]) -> str:
        """
        Point the client at the bucket's actual region.

        Rebuilds the client when the bucket's region differs from the working
        region; a missing or misconfigured region is corrected here.

        Returns:
            The bucket's region
        """
        bucket_region = normalize_location(location_constraint)
        if bucket_region != self.region:
            logger.info(
                f"Bucket {self.bucket} is in {bucket_region}, "
                f"switching from {self.region or 'unset region'}"
            )
            self.region = bucket_region
            self._client = None
        return bucket_region

    def get_bucket_location(self) -> Dict[str, Any]:
        return self.client.get_bucket_location(Bucket=self.bucket)

    def put_object(self, **kwargs: Any) -> Dict[str, Any]:
        return self.client.put_object(Bucket=self.bucket, **kwargs)
