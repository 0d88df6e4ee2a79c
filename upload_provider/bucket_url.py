from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import SplitResult, urlsplit

logger = logging.getLogger(__name__)

# <bucket>.s3.<region>.<domain>, s3.<region>.<domain> or s3-<region>.<domain>
ENDPOINT_PATTERN = re.compile(r"^(.+\.)?s3[.-]([a-z0-9-]+)\.")

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Resolved:
    bucket: str


@dataclass(frozen=True)
class Ambiguous:
    """Root-level URL on an S3 endpoint: no bucket can be read from it."""


@dataclass(frozen=True)
class ParseError:
    reason: str


BucketParse = Union[Resolved, Ambiguous, ParseError]


def _split(url: str) -> Optional[SplitResult]:
    try:
        parts = urlsplit((url or "").strip())
        _ = parts.port  # raises ValueError on a malformed port
    except ValueError:
        return None
    if not parts.scheme:
        return None
    return parts


def _host(parts: SplitResult) -> str:
    host = parts.hostname or ""
    port = parts.port
    if port is not None and _DEFAULT_PORTS.get(parts.scheme.lower()) != port:
        host = f"{host}:{port}"
    return host


def _pathname(parts: SplitResult) -> str:
    return parts.path or "/"


def parse_bucket_from_url(url: str) -> BucketParse:
    parts = _split(url)
    if parts is None:
        return ParseError(f"Invalid S3 url: {url}")

    if parts.scheme.lower() == "s3":
        bucket = parts.netloc.rpartition("@")[2]
        if not bucket:
            return ParseError(f"Invalid S3 url: no bucket: {url}")
        return Resolved(bucket)

    host = _host(parts)
    if not host:
        return ParseError(f"Invalid S3 url: no hostname: {url}")

    match = ENDPOINT_PATTERN.match(host)
    if match is None:
        return ParseError(f"Invalid S3 url: hostname does not appear to be a valid S3 endpoint: {url}")

    prefix = match.group(1)
    if prefix:
        return Resolved(prefix[:-1])

    # Path-style: the bucket is the first path segment.
    pathname = _pathname(parts)
    if pathname == "/":
        return Ambiguous()
    end = pathname.find("/", 1)
    bucket = pathname[1:] if end == -1 else pathname[1:end]
    if not bucket:
        return Ambiguous()
    return Resolved(bucket)


def is_url_from_bucket(url: str, bucket_name: str, base_url: Optional[str] = None) -> bool:
    """
    True when `url` points at an object of `bucket_name`.

    A configured base_url (CDN in front of the bucket) makes every URL count as
    foreign, so nothing gets re-signed. When the bucket cannot be read from the
    URL the check falls back to a host/path match instead of failing closed.
    """
    if base_url:
        return False

    parts = _split(url)
    if parts is None:
        logger.debug("[S3] not a parseable url, treating as foreign: %r", url)
        return False

    result = parse_bucket_from_url(url)
    if isinstance(result, Resolved):
        return result.bucket == bucket_name

    if isinstance(result, ParseError):
        logger.debug("[S3] %s", result.reason)

    return _host(parts).startswith(f"{bucket_name}.") or f"/{bucket_name}/" in _pathname(parts)
