from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional
from urllib.parse import quote, urlsplit

import boto3
from botocore.config import Config
from botocore.session import Session as BotocoreSession

from upload_provider.credentials import CredentialStrategy
from upload_provider.settings import S3Options

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Any]


class S3SessionFactory:
    """
    Builds a fresh S3 client per call.

    Every client gets its own botocore session, configured by the credential
    strategy picked when the provider was initialised. Callers own the client
    and must close it (see open_session).
    """

    def __init__(self, options: S3Options, strategy: CredentialStrategy):
        self.options = options
        self.strategy = strategy

    def _config(self) -> Config:
        cfg = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path" if self.options.force_path_style else "virtual"},
        )
        user_cfg = self.options.client_options.get("config")
        if isinstance(user_cfg, Config):
            cfg = cfg.merge(user_cfg)
        return cfg

    def __call__(self) -> Any:
        core = BotocoreSession()
        self.strategy.configure(core)
        session = boto3.session.Session(botocore_session=core, region_name=self.options.region)

        kwargs: Dict[str, Any] = {k: v for k, v in self.options.client_options.items() if k != "config"}
        if self.options.endpoint_url:
            kwargs.setdefault("endpoint_url", self.options.endpoint_url)

        return session.client("s3", config=self._config(), **kwargs)


@contextmanager
def open_session(factory: SessionFactory) -> Iterator[Any]:
    client = factory()
    logger.debug("[S3] session opened")
    try:
        yield client
    finally:
        client.close()
        logger.debug("[S3] session closed")


def object_location(client: Any, bucket: str, key: str, force_path_style: bool = False) -> str:
    """
    Public URL of an object, shaped like the multipart helper's Location:
      virtual-hosted -> https://<bucket>.<endpoint host>/<key>
      path-style     -> https://<endpoint host>/<bucket>/<key>
    """
    endpoint = urlsplit(client.meta.endpoint_url)
    base_path = endpoint.path.rstrip("/")
    location_bucket = quote(bucket, safe="")
    location_key = "/".join(quote(segment, safe="") for segment in key.split("/"))

    if force_path_style:
        return f"{endpoint.scheme}://{endpoint.netloc}{base_path}/{location_bucket}/{location_key}"
    return f"{endpoint.scheme}://{location_bucket}.{endpoint.netloc}{base_path}/{location_key}"


def upload_object(
    client: Any,
    *,
    bucket: str,
    key: str,
    body: Any,
    acl: str,
    content_type: str,
    extra_args: Optional[Dict[str, Any]] = None,
    force_path_style: bool = False,
) -> Dict[str, str]:
    """
    Managed (multipart when large) upload through s3transfer.

    Caller params may override Bucket/Key and any allowed upload argument.
    """
    args: Dict[str, Any] = {"ACL": acl, "ContentType": content_type}
    args.update(extra_args or {})
    bucket = args.pop("Bucket", bucket)
    key = args.pop("Key", key)

    client.upload_fileobj(Fileobj=body, Bucket=bucket, Key=key, ExtraArgs=args)

    return {
        "Bucket": bucket,
        "Key": key,
        "Location": object_location(client, bucket, key, force_path_style),
    }


def presign_get_object(
    client: Any,
    *,
    bucket: str,
    key: str,
    expires_in: int,
    params: Optional[Dict[str, Any]] = None,
) -> str:
    request_params: Dict[str, Any] = {"Bucket": bucket, "Key": key}
    request_params.update(params or {})
    return client.generate_presigned_url(
        ClientMethod="get_object",
        Params=request_params,
        ExpiresIn=expires_in,
    )
