from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from upload_provider.models import FileDescriptor


@runtime_checkable
class UploadProvider(Protocol):
    """
    Contract the host calls into.

    upload/upload_stream set file.url (and file.provider_metadata) in place.
    """

    def is_private(self) -> bool: ...

    def get_signed_url(self, file: FileDescriptor, params: Optional[Dict[str, Any]] = None) -> Dict[str, str]: ...

    def upload_stream(self, file: FileDescriptor, params: Optional[Dict[str, Any]] = None) -> None: ...

    def upload(self, file: FileDescriptor, params: Optional[Dict[str, Any]] = None) -> None: ...

    def delete(self, file: FileDescriptor, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]: ...
