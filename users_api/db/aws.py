"""
users_api/db/aws.py

Purpose: AWS collaborator setup

- Builds the DynamoDB table handle and the S3 client from settings
- One botocore Config (timeouts, standard retries) shared by both
- Health check against the users table
- Handles are created once per application and passed in explicitly;
  nothing here is stored at module level
"""

from typing import Any

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from users_api.core.config import Settings
from users_api.core.logging import get_logger

logger = get_logger(__name__)


def build_client_config(settings: Settings) -> Config:
    """botocore config shared by the DynamoDB and S3 clients."""
    return Config(
        region_name=settings.AWS_REGION,
        connect_timeout=settings.AWS_CONNECT_TIMEOUT,
        read_timeout=settings.AWS_READ_TIMEOUT,
        retries={"max_attempts": settings.AWS_MAX_ATTEMPTS, "mode": "standard"},
    )


def create_users_table(settings: Settings, session: boto3.session.Session = None) -> Any:
    """
    Returns a boto3 DynamoDB Table resource for TABLE_NAME.

    No network call is made here; the table is only touched on first use.
    """
    session = session or boto3.session.Session()
    resource = session.resource(
        "dynamodb",
        region_name=settings.AWS_REGION,
        endpoint_url=settings.DYNAMODB_ENDPOINT_URL,
        config=build_client_config(settings),
    )
    logger.info(f"DynamoDB table handle ready: {settings.TABLE_NAME} ({settings.AWS_REGION})")
    return resource.Table(settings.TABLE_NAME)


def create_s3_client(settings: Settings, session: boto3.session.Session = None) -> Any:
    """
    Returns a boto3 S3 client that signs with SigV4, as presigned PUT URLs require.
    """
    session = session or boto3.session.Session()
    config = build_client_config(settings).merge(Config(signature_version="s3v4"))
    client = session.client(
        "s3",
        region_name=settings.AWS_REGION,
        endpoint_url=settings.S3_ENDPOINT_URL,
        config=config,
    )
    logger.info(f"S3 client ready for bucket: {settings.BUCKET_NAME}")
    return client


async def check_table_health(table: Any) -> bool:
    """
    Checks that the users table exists and is reachable.

    Returns:
        True if DescribeTable succeeds, False otherwise
    """
    try:
        await run_in_threadpool(table.meta.client.describe_table, TableName=table.name)
        return True

    except (ClientError, BotoCoreError) as e:
        logger.error(f"Table health check failed: {str(e)}")
        return False
