"""
users_api/schemas/user.py

Purpose: User request/response models

- UserCreate: full record, validated before the conditional insert
- UserUpdate: any non-empty subset of the mutable fields
- User / UserList: records as returned by the store
"""

from typing import Annotated, Any, Dict, List, Optional

from pydantic import AnyUrl, BaseModel, Field, TypeAdapter, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

NonEmptyStr = Annotated[str, Field(min_length=1, strict=True)]
# Largest integer a DynamoDB number holds exactly (38 significant digits)
MAX_DYNAMO_INT = 10**38 - 1

NonNegativeInt = Annotated[int, Field(ge=0, le=MAX_DYNAMO_INT, strict=True)]

UPDATABLE_FIELDS = ("name", "age", "avatar")

_url_adapter = TypeAdapter(AnyUrl)


def _check_url(value: Optional[str]) -> Optional[str]:
    """Validates a URL but keeps the caller's exact string."""
    if value is not None:
        try:
            _url_adapter.validate_python(value)
        except PydanticValidationError:
            raise ValueError("must be a well-formed URL") from None
    return value


class UserCreate(BaseModel):
    """Body of POST /users. Unknown fields are dropped."""

    id: NonEmptyStr
    name: NonEmptyStr
    age: NonNegativeInt
    avatar: Optional[Annotated[str, Field(strict=True)]] = None

    @field_validator("avatar", mode="before")
    @classmethod
    def avatar_not_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("avatar must be a URL string when provided")
        return v

    @field_validator("avatar")
    @classmethod
    def avatar_is_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v)

    def to_item(self) -> Dict[str, Any]:
        """Store item; avatar is omitted rather than stored as null."""
        return self.model_dump(exclude_none=True)


class UserUpdate(BaseModel):
    """Body of PUT /users/{id}. At least one field must be present."""

    name: Optional[NonEmptyStr] = None
    age: Optional[NonNegativeInt] = None
    avatar: Optional[Annotated[str, Field(strict=True)]] = None

    @field_validator("name", "age", "avatar", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        # Only runs for fields the caller sent; absent fields keep the default
        if v is None:
            raise ValueError("field may be omitted but not null")
        return v

    @field_validator("avatar")
    @classmethod
    def avatar_is_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v)

    @model_validator(mode="after")
    def at_least_one_field(self) -> "UserUpdate":
        if not self.changes():
            raise ValueError(f"At least one of {', '.join(UPDATABLE_FIELDS)} is required")
        return self

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller supplied."""
        return {
            field: getattr(self, field)
            for field in UPDATABLE_FIELDS
            if field in self.model_fields_set
        }


class User(BaseModel):
    id: str
    name: str
    age: int
    avatar: Optional[str] = None


class UserList(BaseModel):
    items: List[User]
