# upload_provider/models.py
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# Host file descriptor
# =============================================================================
class FileDescriptor(BaseModel):
    """
    File record handed over by the host.

    The host owns every field except `url` and `provider_metadata`, which the
    provider sets after a successful upload. Payloads may use either
    snake_case or camelCase keys (e.g. sizeInBytes / size_in_bytes).
    """

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    name: str
    hash: str
    ext: Optional[str] = None
    mime: str
    size: float
    url: str = ""
    path: Optional[str] = None

    alternative_text: Optional[str] = None
    caption: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    formats: Optional[Dict[str, Any]] = None
    preview_url: Optional[str] = None
    size_in_bytes: Optional[int] = None
    provider: Optional[str] = None
    provider_metadata: Optional[Dict[str, Any]] = None

    # Upload bodies: a readable file object, or the raw bytes.
    stream: Optional[Any] = Field(default=None, exclude=True)
    buffer: Optional[bytes] = Field(default=None, exclude=True)
