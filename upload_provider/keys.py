from __future__ import annotations

from typing import Optional

from upload_provider.models import FileDescriptor


def normalize_root_path(root_path: Optional[str]) -> str:
    """
    "uploads"    -> "uploads/"
    "uploads///" -> "uploads/"
    "" / None / "/" -> ""
    """
    root = (root_path or "").rstrip("/")
    return f"{root}/" if root else ""


def derive_key(root_prefix: str, file: FileDescriptor) -> str:
    # root_prefix must already be normalized (see normalize_root_path)
    path = (file.path or "").rstrip("/")
    path_segment = f"{path}/" if path else ""
    return f"{root_prefix}{path_segment}{file.hash}{file.ext or ''}"
