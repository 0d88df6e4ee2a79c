from __future__ import annotations


class StorageConfigError(RuntimeError):
    """Raised when provider options cannot produce a usable S3 configuration."""


class ConfigDeprecationWarning(DeprecationWarning):
    """
    Emitted for option shapes that still work but will go away:
      - S3 options passed at the root of the provider options
      - access keys placed directly inside s3_options
    """
