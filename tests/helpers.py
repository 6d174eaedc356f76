"""Test doubles shared across the test suite."""

from typing import Callable, Dict, List, Optional
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from s3deploy.storage import ObjectStore


class RecordingUI:
    """Progress sink that records every call instead of printing."""

    def __init__(self) -> None:
        self.events: List[tuple] = []

    def start(self, label: str, tick_char: str = ".") -> None:
        self.events.append(("start", label))

    def stop(self) -> None:
        self.events.append(("stop",))

    def write_line(self, message: str, style: str = "info") -> None:
        self.events.append(("line", style, message))

    def lines(self, style: Optional[str] = None) -> List[str]:
        return [
            event[2]
            for event in self.events
            if event[0] == "line" and (style is None or event[1] == style)
        ]

    def lines_starting(self, prefix: str) -> List[str]:
        return [line for line in self.lines() if line.startswith(prefix)]


def client_error(code: str = "InternalError", operation: str = "PutObject") -> ClientError:
    """Build a botocore ClientError the way the S3 client raises it."""
    return ClientError(
        {"Error": {"Code": code, "Message": f"{code} for test"}},
        operation,
    )


def make_store(
    client: Optional[MagicMock] = None,
    region: Optional[str] = "us-east-1",
    prepend_path: str = "",
    clients_by_region: Optional[Dict[str, MagicMock]] = None,
) -> ObjectStore:
    """ObjectStore whose client factory hands out mocks instead of boto3 clients."""
    if clients_by_region is not None:
        factory: Callable = lambda client_region: clients_by_region[client_region]
    else:
        shared = client if client is not None else MagicMock()
        factory = lambda client_region: shared
    return ObjectStore(
        "test-bucket",
        region=region,
        prepend_path=prepend_path,
        client_factory=factory,
    )
