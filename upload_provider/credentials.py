from __future__ import annotations

import logging
import os
import warnings
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from botocore.credentials import ContainerProvider, CredentialResolver
from botocore.session import Session as BotocoreSession

from upload_provider.errors import ConfigDeprecationWarning, StorageConfigError

logger = logging.getLogger(__name__)

ENV_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_ACCESS_SECRET = "AWS_ACCESS_SECRET"
ENV_CONTAINER_FULL_URI = "AWS_CONTAINER_CREDENTIALS_FULL_URI"
ENV_CONTAINER_TOKEN_FILE = "AWS_CONTAINER_AUTHORIZATION_TOKEN_FILE"

INLINE_CREDENTIALS_DEPRECATION = (
    "Credentials passed directly to s3_options is deprecated and will be removed in a "
    "future release. Please wrap them inside a credentials object."
)


@dataclass(frozen=True)
class Credentials:
    access_key_id: str
    secret_access_key: str
    session_token: Optional[str] = None

    def __repr__(self) -> str:
        return f"Credentials(access_key_id={self.access_key_id!r}, secret_access_key='***')"


def _pair(source: Mapping[str, Any]) -> Optional[Credentials]:
    access_key_id = source.get("access_key_id")
    secret_access_key = source.get("secret_access_key")
    if access_key_id and secret_access_key:
        return Credentials(access_key_id=str(access_key_id), secret_access_key=str(secret_access_key))
    return None


def _coerce(value: Any) -> Credentials:
    if isinstance(value, Credentials):
        return value
    if isinstance(value, Mapping):
        access_key_id = value.get("access_key_id")
        secret_access_key = value.get("secret_access_key")
        if not access_key_id or not secret_access_key:
            raise StorageConfigError("credentials needs access_key_id and secret_access_key")
        token = value.get("session_token")
        return Credentials(
            access_key_id=str(access_key_id),
            secret_access_key=str(secret_access_key),
            session_token=str(token) if token else None,
        )
    raise StorageConfigError(f"Unsupported credentials value: {type(value).__name__}")


def resolve_credentials(options: Mapping[str, Any]) -> Optional[Credentials]:
    """
    Static credential precedence (DO NOT reorder):
      1) top-level access_key_id + secret_access_key (legacy flat options)
      2) s3_options.access_key_id + s3_options.secret_access_key (deprecated)
      3) s3_options.credentials
      4) root-level credentials object (legacy flat options)
      5) None -> ambient discovery at session time
    """
    flat = _pair(options)
    if flat is not None:
        return flat

    s3_options = options.get("s3_options") or {}

    inline = _pair(s3_options)
    if inline is not None:
        logger.warning("[S3] %s", INLINE_CREDENTIALS_DEPRECATION)
        warnings.warn(INLINE_CREDENTIALS_DEPRECATION, ConfigDeprecationWarning, stacklevel=2)
        return inline

    nested = s3_options.get("credentials")
    if nested:
        return _coerce(nested)

    root = options.get("credentials")
    if root:
        return _coerce(root)

    return None


# ---------------------------------------------------------------------
# Session credential strategies
# ---------------------------------------------------------------------

@runtime_checkable
class CredentialStrategy(Protocol):
    """Configures credentials on a fresh botocore session."""

    name: str

    def configure(self, session: BotocoreSession) -> None: ...


@dataclass(frozen=True)
class StaticCredentials:
    credentials: Credentials
    name: str = "static"

    def configure(self, session: BotocoreSession) -> None:
        session.set_credentials(
            self.credentials.access_key_id,
            self.credentials.secret_access_key,
            self.credentials.session_token,
        )


@dataclass(frozen=True)
class ContainerCredentials:
    """Short-lived credentials from the container credentials endpoint."""

    full_uri: str
    token_file: Optional[str] = None
    name: str = "container"

    def configure(self, session: BotocoreSession) -> None:
        environ = {ENV_CONTAINER_FULL_URI: self.full_uri}
        if self.token_file:
            environ[ENV_CONTAINER_TOKEN_FILE] = self.token_file
        resolver = CredentialResolver(providers=[ContainerProvider(environ=environ)])
        session.register_component("credential_provider", resolver)


@dataclass(frozen=True)
class DefaultCredentialChain:
    name: str = "default"

    def configure(self, session: BotocoreSession) -> None:
        return None


def select_credential_strategy(
    static: Optional[Credentials],
    environ: Optional[Mapping[str, str]] = None,
) -> CredentialStrategy:
    """
    Picked once per provider:
      1) AWS_ACCESS_KEY_ID + AWS_ACCESS_SECRET from the environment (always wins)
      2) statically configured credentials
      3) container credentials endpoint (AWS_CONTAINER_CREDENTIALS_FULL_URI)
      4) botocore default chain
    """
    env = os.environ if environ is None else environ

    access_key_id = (env.get(ENV_ACCESS_KEY_ID) or "").strip()
    access_secret = (env.get(ENV_ACCESS_SECRET) or "").strip()
    if access_key_id and access_secret:
        strategy: CredentialStrategy = StaticCredentials(
            Credentials(access_key_id=access_key_id, secret_access_key=access_secret),
            name="environment",
        )
    elif static is not None:
        strategy = StaticCredentials(static)
    elif (env.get(ENV_CONTAINER_FULL_URI) or "").strip():
        strategy = ContainerCredentials(
            full_uri=env[ENV_CONTAINER_FULL_URI].strip(),
            token_file=(env.get(ENV_CONTAINER_TOKEN_FILE) or "").strip() or None,
        )
    else:
        strategy = DefaultCredentialChain()

    logger.info("[S3] credential strategy=%s", strategy.name)
    return strategy
