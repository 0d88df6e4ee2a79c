from __future__ import annotations

import io
import logging
import re
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from upload_provider.bucket_url import is_url_from_bucket
from upload_provider.keys import derive_key
from upload_provider.models import FileDescriptor
from upload_provider.settings import StorageConfig
from upload_provider.storage import UploadProvider
from upload_provider.impl.s3_session import (
    SessionFactory,
    open_session,
    presign_get_object,
    upload_object,
)

logger = logging.getLogger(__name__)

# "http://", "https://", "s3://" ...
_PROTOCOL = re.compile(r"^\w*://")


def _has_protocol(url: str) -> bool:
    return bool(_PROTOCOL.match(url or ""))


def _body(file: FileDescriptor) -> Any:
    if file.stream is not None:
        return file.stream
    if file.buffer is not None:
        return io.BytesIO(file.buffer)
    raise ValueError(f"File {file.name!r} has neither a stream nor a buffer to upload")


class S3UploadProvider(UploadProvider):
    """
    S3 upload provider for the host's media library.

    Each operation opens its own short-lived client through `session_factory`
    and closes it before returning or re-raising. Credentials are whatever the
    factory's strategy was configured with at init time.
    """

    def __init__(self, config: StorageConfig, session_factory: SessionFactory):
        self.config = config
        self._session_factory = session_factory

    @property
    def bucket(self) -> str:
        return self.config.s3.bucket

    def _key(self, file: FileDescriptor) -> str:
        return derive_key(self.config.root_path, file)

    def _public_url(self, location: str, key: str) -> str:
        if self.config.base_url:
            return f"{self.config.base_url}/{key}"
        if _has_protocol(location):
            return location
        return f"https://{location}"

    def is_private(self) -> bool:
        return self.config.s3.acl == "private"

    def _upload(self, file: FileDescriptor, params: Optional[Dict[str, Any]] = None) -> None:
        key = self._key(file)
        body = _body(file)

        with open_session(self._session_factory) as client:
            try:
                result = upload_object(
                    client,
                    bucket=self.bucket,
                    key=key,
                    body=body,
                    acl=self.config.s3.acl,
                    content_type=file.mime,
                    extra_args=params,
                    force_path_style=self.config.s3.force_path_style,
                )
            except (ClientError, BotoCoreError):
                logger.warning("[S3] upload failed bucket=%s key=%s", self.bucket, key)
                raise

        file.url = self._public_url(result["Location"], key)
        file.provider_metadata = {"bucket": result["Bucket"], "key": result["Key"]}
        logger.info("[S3] uploaded bucket=%s key=%s", result["Bucket"], result["Key"])

    def upload(self, file: FileDescriptor, params: Optional[Dict[str, Any]] = None) -> None:
        self._upload(file, params)

    def upload_stream(self, file: FileDescriptor, params: Optional[Dict[str, Any]] = None) -> None:
        self._upload(file, params)

    def get_signed_url(self, file: FileDescriptor, params: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
        # Foreign (or CDN) URLs are handed back untouched, no client needed.
        if not is_url_from_bucket(file.url, self.bucket, self.config.base_url):
            return {"url": file.url}

        key = self._key(file)
        with open_session(self._session_factory) as client:
            try:
                url = presign_get_object(
                    client,
                    bucket=self.bucket,
                    key=key,
                    expires_in=self.config.s3.signed_url_expires,
                    params=params,
                )
            except (ClientError, BotoCoreError):
                logger.warning("[S3] presign failed bucket=%s key=%s", self.bucket, key)
                raise

        return {"url": url}

    def delete(self, file: FileDescriptor, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        key = self._key(file)
        request: Dict[str, Any] = {"Bucket": self.bucket, "Key": key}
        request.update(params or {})

        with open_session(self._session_factory) as client:
            try:
                resp = client.delete_object(**request)
            except (ClientError, BotoCoreError):
                logger.warning("[S3] delete failed bucket=%s key=%s", request["Bucket"], request["Key"])
                raise

        logger.info("[S3] deleted bucket=%s key=%s", request["Bucket"], request["Key"])
        return resp
