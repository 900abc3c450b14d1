"""
Local bootstrap script - users table and avatar bucket

Run once against AWS, DynamoDB Local or LocalStack:
    python scripts/init_db.py
    python scripts/init_db.py --with-bucket

Reads the same settings as the API (.env / environment).
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from botocore.exceptions import ClientError

from users_api.core.config import get_settings
from users_api.db.aws import create_s3_client, create_users_table

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


def create_table(settings) -> bool:
    """Create the users table (hash key: id) if it does not exist."""
    table = create_users_table(settings)
    client = table.meta.client

    try:
        client.describe_table(TableName=settings.TABLE_NAME)
        logger.info(f"Table '{settings.TABLE_NAME}' already exists")
        return True
    except ClientError as e:
        if e.response["Error"]["Code"] != "ResourceNotFoundException":
            logger.error(f"Could not describe table: {e}")
            return False

    logger.info(f"Creating table '{settings.TABLE_NAME}'...")
    client.create_table(
        TableName=settings.TABLE_NAME,
        KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "id", "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=settings.TABLE_NAME)
    logger.info("  Table created (PAY_PER_REQUEST, hash key 'id')")
    return True


def create_bucket(settings) -> bool:
    """Create the avatar bucket and allow browser PUTs from CORS_ORIGIN."""
    if not settings.BUCKET_NAME:
        logger.error("BUCKET_NAME must be set")
        return False

    s3 = create_s3_client(settings)
    kwargs = {"Bucket": settings.BUCKET_NAME}
    if settings.AWS_REGION != "us-east-1":
        kwargs["CreateBucketConfiguration"] = {"LocationConstraint": settings.AWS_REGION}

    try:
        s3.create_bucket(**kwargs)
        logger.info(f"Bucket '{settings.BUCKET_NAME}' created")
    except ClientError as e:
        if e.response["Error"]["Code"] not in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
            logger.error(f"Could not create bucket: {e}")
            return False
        logger.info(f"Bucket '{settings.BUCKET_NAME}' already exists")

    # Presigned PUTs from the browser need a CORS rule on the bucket
    s3.put_bucket_cors(
        Bucket=settings.BUCKET_NAME,
        CORSConfiguration={
            "CORSRules": [{
                "AllowedOrigins": settings.cors_origins,
                "AllowedMethods": ["PUT", "GET"],
                "AllowedHeaders": ["*"],
                "MaxAgeSeconds": 3000,
            }]
        },
    )
    logger.info("  Bucket CORS rule applied")
    return True


def main():
    parser = argparse.ArgumentParser(description="Create the users table and avatar bucket")
    parser.add_argument("--with-bucket", action="store_true", help="also create the S3 bucket")
    args = parser.parse_args()

    settings = get_settings()
    ok = create_table(settings)
    if args.with_bucket:
        ok = create_bucket(settings) and ok

    if ok:
        logger.info("Initialization complete")
    else:
        logger.error("Initialization failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
