import os

import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

# Fake credentials so boto3 never reaches for real ones
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

from users_api.core.config import Settings
from users_api.db.aws import create_s3_client, create_users_table
from users_api.main import create_app

REGION = "us-east-1"
TABLE_NAME = "users-test"
BUCKET_NAME = "avatars-test"


def build_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "development",
        "AWS_REGION": REGION,
        "TABLE_NAME": TABLE_NAME,
        "BUCKET_NAME": BUCKET_NAME,
        "DYNAMODB_ENDPOINT_URL": None,
        "S3_ENDPOINT_URL": None,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def make_settings():
    """Factory for Settings with test defaults; keyword overrides win."""
    return build_settings


@pytest.fixture
def settings():
    return build_settings()


@pytest.fixture
def aws():
    with mock_aws():
        yield


@pytest.fixture
def table(aws, settings):
    table = create_users_table(settings)
    table.meta.client.create_table(
        TableName=settings.TABLE_NAME,
        KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "id", "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )
    return table


@pytest.fixture
def s3_client(aws, settings):
    client = create_s3_client(settings)
    client.create_bucket(Bucket=settings.BUCKET_NAME)
    return client


@pytest.fixture
def app(settings, table, s3_client):
    return create_app(settings, table=table, s3_client=s3_client)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
