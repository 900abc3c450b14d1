"""
users_api/services/user_service.py

Purpose: User record management

- Create, read, partially update and delete users in DynamoDB
- Every mutation is a single conditional write; no read-then-write
- Maps conditional-check failures to 409/404 and any other failure to 500
- boto3 is blocking, so each call runs in the threadpool
"""

from decimal import Decimal
from typing import Any, Dict, List

from botocore.exceptions import ClientError
from starlette.concurrency import run_in_threadpool

from users_api.core.exceptions import (
    ConflictError,
    ResourceNotFoundError,
    UnexpectedError,
    ValidationError,
)
from users_api.core.logging import get_logger, LogContext
from users_api.schemas.user import UserCreate, UserUpdate

logger = get_logger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def is_conditional_check_failure(error: Exception) -> bool:
    """True if DynamoDB rejected the write because its condition was false."""
    if not isinstance(error, ClientError):
        return False
    return error.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED


def from_dynamo(value: Any) -> Any:
    """
    Converts DynamoDB Decimals back to int/float, recursively.
    """
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


def build_update_expression(changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Builds UpdateItem arguments that SET only the supplied fields.

    Args:
        changes: field -> new value, at least one entry

    Returns:
        UpdateExpression, ConditionExpression and the attribute maps
    """
    names = {"#id": "id"}
    values = {}
    sets = []

    for field, value in changes.items():
        names[f"#{field}"] = field
        values[f":{field}"] = value
        sets.append(f"#{field} = :{field}")

    return {
        "UpdateExpression": f"SET {', '.join(sets)}",
        "ConditionExpression": "attribute_exists(#id)",
        "ExpressionAttributeNames": names,
        "ExpressionAttributeValues": values,
    }


class UserService:
    """
    User operations against one DynamoDB table.

    Args:
        table: boto3 DynamoDB Table resource (see users_api.db.aws)
        scan_limit: cap on items returned by list_users
    """

    def __init__(self, table: Any, scan_limit: int = 100):
        self.table = table
        self.scan_limit = scan_limit

    async def create_user(self, user: UserCreate) -> Dict[str, Any]:
        """
        Inserts a user only if no record with the same id exists.

        Raises:
            ConflictError: id already taken
            UnexpectedError: any other store or SDK failure
        """
        item = user.to_item()

        with LogContext(user_id=user.id):
            try:
                await run_in_threadpool(
                    self.table.put_item,
                    Item=item,
                    ConditionExpression="attribute_not_exists(#id)",
                    ExpressionAttributeNames={"#id": "id"},
                )
            except ClientError as e:
                if is_conditional_check_failure(e):
                    raise ConflictError("User with this id already exists") from e
                raise UnexpectedError(f"put_item failed: {e}") from e
            except Exception as e:
                raise UnexpectedError(f"put_item failed: {e}") from e

            logger.info("User created")

        return item

    async def list_users(self) -> List[Dict[str, Any]]:
        """
        Returns up to scan_limit users in store order. No cursor is exposed.
        """
        try:
            response = await run_in_threadpool(self.table.scan, Limit=self.scan_limit)
        except Exception as e:
            raise UnexpectedError(f"scan failed: {e}") from e

        items = response.get("Items", [])
        logger.debug(f"Scan returned {len(items)} users")
        return [from_dynamo(item) for item in items]

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        """
        Raises:
            ResourceNotFoundError: no user with this id
        """
        try:
            response = await run_in_threadpool(self.table.get_item, Key={"id": user_id})
        except Exception as e:
            raise UnexpectedError(f"get_item failed: {e}") from e

        item = response.get("Item")
        if not item:
            raise ResourceNotFoundError("Not found")

        return from_dynamo(item)

    async def update_user(self, user_id: str, patch: UserUpdate) -> Dict[str, Any]:
        """
        Applies the supplied fields to an existing user; absent fields are untouched.

        Returns:
            The full record after the update

        Raises:
            ValidationError: nothing to update
            ResourceNotFoundError: no user with this id
        """
        changes = patch.changes()
        if not changes:
            raise ValidationError("At least one field required")

        with LogContext(user_id=user_id):
            try:
                response = await run_in_threadpool(
                    self.table.update_item,
                    Key={"id": user_id},
                    ReturnValues="ALL_NEW",
                    **build_update_expression(changes),
                )
            except ClientError as e:
                if is_conditional_check_failure(e):
                    raise ResourceNotFoundError("User not found") from e
                raise UnexpectedError(f"update_item failed: {e}") from e
            except Exception as e:
                raise UnexpectedError(f"update_item failed: {e}") from e

            logger.info(f"User updated: {', '.join(changes)}")

        return from_dynamo(response.get("Attributes", {}))

    async def delete_user(self, user_id: str) -> None:
        """
        Deletes an existing user.

        Raises:
            ResourceNotFoundError: no user with this id
        """
        with LogContext(user_id=user_id):
            try:
                await run_in_threadpool(
                    self.table.delete_item,
                    Key={"id": user_id},
                    ConditionExpression="attribute_exists(#id)",
                    ExpressionAttributeNames={"#id": "id"},
                )
            except ClientError as e:
                if is_conditional_check_failure(e):
                    raise ResourceNotFoundError("User not found") from e
                raise UnexpectedError(f"delete_item failed: {e}") from e
            except Exception as e:
                raise UnexpectedError(f"delete_item failed: {e}") from e

            logger.info("User deleted")
