from upload_provider.bucket_url import is_url_from_bucket, parse_bucket_from_url
from upload_provider.credentials import Credentials, resolve_credentials, select_credential_strategy
from upload_provider.errors import ConfigDeprecationWarning, StorageConfigError
from upload_provider.factory import get_provider, init, reset_provider
from upload_provider.keys import derive_key, normalize_root_path
from upload_provider.models import FileDescriptor
from upload_provider.settings import S3Options, StorageConfig, load_storage_config
from upload_provider.storage import UploadProvider
from upload_provider.impl.storage_s3 import S3UploadProvider

__all__ = [
    "ConfigDeprecationWarning",
    "Credentials",
    "FileDescriptor",
    "S3Options",
    "S3UploadProvider",
    "StorageConfig",
    "StorageConfigError",
    "UploadProvider",
    "derive_key",
    "get_provider",
    "init",
    "is_url_from_bucket",
    "load_storage_config",
    "normalize_root_path",
    "parse_bucket_from_url",
    "reset_provider",
    "resolve_credentials",
    "select_credential_strategy",
]
