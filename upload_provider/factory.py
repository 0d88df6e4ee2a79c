from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from upload_provider.credentials import select_credential_strategy
from upload_provider.settings import load_options_from_env, load_storage_config
from upload_provider.impl.s3_session import S3SessionFactory, SessionFactory
from upload_provider.impl.storage_s3 import S3UploadProvider

logger = logging.getLogger(__name__)


def init(
    options: Mapping[str, Any],
    *,
    session_factory: Optional[SessionFactory] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> S3UploadProvider:
    """
    Host entry point: build a provider from the provider options.

    The credential strategy is chosen here, once, from `environ`
    (defaults to os.environ). `session_factory` replaces the boto3 client
    construction entirely.
    """
    config = load_storage_config(options)
    if session_factory is None:
        strategy = select_credential_strategy(config.s3.credentials, environ)
        session_factory = S3SessionFactory(config.s3, strategy)

    logger.info(
        "[S3] provider ready bucket=%s acl=%s root_path=%r base_url=%s",
        config.s3.bucket,
        config.s3.acl,
        config.root_path,
        config.base_url or "-",
    )
    return S3UploadProvider(config, session_factory)


_cached: Optional[S3UploadProvider] = None


def get_provider() -> S3UploadProvider:
    """Process-wide provider built from S3_* / AWS_* environment variables."""
    global _cached
    if _cached is None:
        _cached = init(load_options_from_env())
    return _cached


def reset_provider() -> None:
    global _cached
    _cached = None
