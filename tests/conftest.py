import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from upload_provider.models import FileDescriptor  # noqa: E402


class FakeS3Client:
    """Stands in for a boto3 S3 client; records calls and close()."""

    def __init__(self, endpoint_url: str = "https://s3.us-east-1.amazonaws.com", error: Optional[Exception] = None):
        self.meta = SimpleNamespace(endpoint_url=endpoint_url)
        self.error = error
        self.calls: List[Dict[str, Any]] = []
        self.uploaded: Dict[str, bytes] = {}
        self.closed = 0

    def upload_fileobj(self, Fileobj, Bucket, Key, ExtraArgs=None):
        self.calls.append({"op": "upload_fileobj", "Bucket": Bucket, "Key": Key, "ExtraArgs": ExtraArgs})
        if self.error is not None:
            raise self.error
        self.uploaded[f"{Bucket}/{Key}"] = Fileobj.read()

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        self.calls.append({"op": "generate_presigned_url", "ClientMethod": ClientMethod, "Params": Params, "ExpiresIn": ExpiresIn})
        if self.error is not None:
            raise self.error
        return f"https://signed.example/{Params['Bucket']}/{Params['Key']}?X-Amz-Expires={ExpiresIn}"

    def delete_object(self, **kwargs):
        self.calls.append({"op": "delete_object", **kwargs})
        if self.error is not None:
            raise self.error
        return {"DeleteMarker": False, "ResponseMetadata": {"HTTPStatusCode": 204}}

    def close(self):
        self.closed += 1


class FakeSessionFactory:
    def __init__(self, **client_kwargs):
        self.client_kwargs = client_kwargs
        self.clients: List[FakeS3Client] = []

    def __call__(self) -> FakeS3Client:
        client = FakeS3Client(**self.client_kwargs)
        self.clients.append(client)
        return client


@pytest.fixture
def session_factory():
    return FakeSessionFactory()


@pytest.fixture
def make_file():
    def _make(**overrides) -> FileDescriptor:
        data = {
            "name": "cat.png",
            "hash": "cat_3f2a1b",
            "ext": ".png",
            "mime": "image/png",
            "size": 12.5,
            "buffer": b"\x89PNG fake bytes",
        }
        data.update(overrides)
        return FileDescriptor(**data)

    return _make


@pytest.fixture
def base_options():
    return {"s3_options": {"region": "us-east-1", "params": {"Bucket": "my-bucket"}}}
