import pytest

from upload_provider import factory
from upload_provider.credentials import ContainerCredentials, StaticCredentials
from upload_provider.errors import StorageConfigError
from upload_provider.impl.s3_session import S3SessionFactory


@pytest.fixture(autouse=True)
def _reset_cached_provider():
    factory.reset_provider()
    yield
    factory.reset_provider()


def test_init_selects_strategy_once(base_options):
    env = {"AWS_ACCESS_KEY_ID": "ENV_ID", "AWS_ACCESS_SECRET": "ENV_SECRET"}
    provider = factory.init(base_options, environ=env)

    session_factory = provider._session_factory
    assert isinstance(session_factory, S3SessionFactory)
    assert isinstance(session_factory.strategy, StaticCredentials)
    assert session_factory.strategy.name == "environment"


def test_init_uses_static_credentials_without_env():
    options = {
        "s3_options": {
            "params": {"Bucket": "b"},
            "credentials": {"access_key_id": "ID", "secret_access_key": "SECRET"},
        }
    }
    provider = factory.init(options, environ={})
    assert provider._session_factory.strategy.name == "static"


def test_init_uses_container_endpoint():
    env = {"AWS_CONTAINER_CREDENTIALS_FULL_URI": "http://169.254.170.23/v1/credentials"}
    provider = factory.init({"s3_options": {"params": {"Bucket": "b"}}}, environ=env)
    assert isinstance(provider._session_factory.strategy, ContainerCredentials)


def test_init_requires_bucket():
    with pytest.raises(StorageConfigError):
        factory.init({"s3_options": {}}, environ={})


def test_get_provider_is_cached(monkeypatch):
    monkeypatch.setenv("S3_BUCKET", "env-bucket")
    monkeypatch.setenv("S3_ACL", "private")
    monkeypatch.delenv("AWS_ACCESS_KEY_ID", raising=False)
    monkeypatch.delenv("AWS_ACCESS_SECRET", raising=False)

    first = factory.get_provider()
    assert first is factory.get_provider()
    assert first.bucket == "env-bucket"
    assert first.is_private() is True


def test_get_provider_without_bucket_fails(monkeypatch):
    monkeypatch.delenv("S3_BUCKET", raising=False)
    with pytest.raises(StorageConfigError):
        factory.get_provider()
