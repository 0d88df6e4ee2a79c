from __future__ import annotations

import inspect
import logging
import os
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional

import boto3

from upload_provider.credentials import Credentials, resolve_credentials
from upload_provider.errors import ConfigDeprecationWarning, StorageConfigError
from upload_provider.keys import normalize_root_path

logger = logging.getLogger(__name__)

DEFAULT_ACL = "public-read"
DEFAULT_SIGNED_URL_EXPIRES = 15 * 60

# cdn is accepted from older host configs but has no effect.
ROOT_OPTIONS = frozenset({"base_url", "root_path", "s3_options", "cdn"})

# s3_options keys consumed here; the rest must be boto3 Session.client() arguments.
_S3_OPTION_KEYS = frozenset(
    {
        "params",
        "credentials",
        "access_key_id",
        "secret_access_key",
        "region",
        "endpoint",
        "force_path_style",
    }
)

ROOT_LEVEL_DEPRECATION = (
    "S3 configuration options passed at root level of the provider options is deprecated "
    "and will be removed in a future release. Please wrap them inside the 's3_options' property."
)


def _env(name: str, default: str = "", environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    v = env.get(name)
    return default if v is None else str(v)


def _env_int(name: str, default: int, environ: Optional[Mapping[str, str]] = None) -> int:
    raw = _env(name, "", environ)
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    raw = str(value if value is not None else "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def _env_bool(name: str, default: bool, environ: Optional[Mapping[str, str]] = None) -> bool:
    return _parse_bool(_env(name, "", environ), default)


def _client_kwargs() -> FrozenSet[str]:
    params = inspect.signature(boto3.session.Session.client).parameters
    return frozenset(name for name in params if name not in ("self", "service_name"))


# ---------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class S3Options:
    """
    Bucket + client configuration.

    acl:
      - "public-read" (default) -> objects readable through their plain URL
      - "private"               -> the host asks for signed URLs
    """
    bucket: str
    acl: str = DEFAULT_ACL
    signed_url_expires: int = DEFAULT_SIGNED_URL_EXPIRES

    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    force_path_style: bool = False
    credentials: Optional[Credentials] = None

    # Raw passthrough to boto3 client construction (verify, use_ssl, config, ...)
    client_options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StorageConfig:
    s3: S3Options
    root_path: str = ""       # normalized: "" or ends with "/"
    base_url: Optional[str] = None

    @property
    def bucket(self) -> str:
        return self.s3.bucket


# ---------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------

def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise StorageConfigError(f"{what} must be a mapping, got {type(value).__name__}")
    return value


def _load_s3_options(merged: Mapping[str, Any], credentials: Optional[Credentials]) -> S3Options:
    params = _mapping(merged.get("params"), "s3_options.params")

    bucket = str(params.get("Bucket") or "").strip()
    if not bucket:
        raise StorageConfigError("s3_options.params.Bucket is required for the S3 upload provider")

    acl = str(params.get("ACL") or DEFAULT_ACL).strip()

    raw_expires = params.get("signed_url_expires", DEFAULT_SIGNED_URL_EXPIRES)
    try:
        signed_url_expires = int(raw_expires)
    except (TypeError, ValueError) as e:
        raise StorageConfigError(f"signed_url_expires must be an integer, got {raw_expires!r}") from e
    if signed_url_expires <= 0:
        raise StorageConfigError("signed_url_expires must be positive")

    region = (str(merged.get("region") or "")).strip() or None
    endpoint_url = (str(merged.get("endpoint") or "")).strip().rstrip("/") or None

    client_options = {k: v for k, v in merged.items() if k not in _S3_OPTION_KEYS}
    unsupported = sorted(set(client_options) - _client_kwargs())
    if unsupported:
        raise StorageConfigError(f"Unsupported S3 client options: {', '.join(unsupported)}")

    return S3Options(
        bucket=bucket,
        acl=acl,
        signed_url_expires=signed_url_expires,
        region=region,
        endpoint_url=endpoint_url,
        force_path_style=_parse_bool(merged.get("force_path_style"), False),
        credentials=credentials,
        client_options=client_options,
    )


def load_storage_config(options: Mapping[str, Any]) -> StorageConfig:
    """
    Migrate the provider option bag into a StorageConfig.

    Merge precedence (DO NOT break this):
      1) legacy root-level S3 keys (deprecated)  <-- win over s3_options
      2) s3_options
      3) defaults (ACL public-read, signed URL expiry 900s)
    """
    options = _mapping(options, "provider options")
    s3_options = _mapping(options.get("s3_options"), "s3_options")
    legacy = {k: v for k, v in options.items() if k not in ROOT_OPTIONS}

    if options.get("cdn"):
        logger.debug("[S3] cdn option is ignored, use base_url")

    if legacy:
        logger.warning("[S3] %s (keys=%s)", ROOT_LEVEL_DEPRECATION, sorted(legacy))
        warnings.warn(ROOT_LEVEL_DEPRECATION, ConfigDeprecationWarning, stacklevel=2)

    credentials = resolve_credentials({**legacy, "s3_options": s3_options})
    merged = {**s3_options, **legacy}

    base_url = (str(options.get("base_url") or "")).strip().rstrip("/") or None

    return StorageConfig(
        s3=_load_s3_options(merged, credentials),
        root_path=normalize_root_path(options.get("root_path")),
        base_url=base_url,
    )


def load_options_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Build provider options from the environment.

    Required env:
      - S3_BUCKET

    Optional env:
      - S3_ROOT_PATH (or S3_PREFIX)
      - S3_BASE_URL
      - S3_ACL (default public-read)
      - S3_PRESIGN_TTL_SECONDS (default 900)
      - S3_ENDPOINT, S3_FORCE_PATH_STYLE (MinIO and other S3-compatible stores)
      - AWS_REGION or AWS_DEFAULT_REGION
    """
    params: Dict[str, Any] = {
        "Bucket": _env("S3_BUCKET", "", environ).strip(),
        "ACL": _env("S3_ACL", "", environ).strip() or DEFAULT_ACL,
        "signed_url_expires": _env_int("S3_PRESIGN_TTL_SECONDS", DEFAULT_SIGNED_URL_EXPIRES, environ),
    }

    s3_options: Dict[str, Any] = {"params": params}

    region = (_env("AWS_REGION", "", environ) or _env("AWS_DEFAULT_REGION", "", environ)).strip()
    if region:
        s3_options["region"] = region

    endpoint = _env("S3_ENDPOINT", "", environ).strip()
    if endpoint:
        s3_options["endpoint"] = endpoint

    if _env_bool("S3_FORCE_PATH_STYLE", False, environ):
        s3_options["force_path_style"] = True

    options: Dict[str, Any] = {"s3_options": s3_options}

    root_path = (_env("S3_ROOT_PATH", "", environ) or _env("S3_PREFIX", "", environ)).strip()
    if root_path:
        options["root_path"] = root_path

    base_url = _env("S3_BASE_URL", "", environ).strip()
    if base_url:
        options["base_url"] = base_url

    return options
