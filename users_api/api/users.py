"""
users_api/api/users.py

Purpose: User CRUD endpoints

- Request bodies are validated by the schemas before any store call
- Handlers are thin: one UserService call each
- Errors raised by the service are mapped by core.errors
"""

from fastapi import APIRouter, Depends, Response, status

from users_api.api.deps import get_user_service
from users_api.schemas.user import User, UserCreate, UserList, UserUpdate
from users_api.services.user_service import UserService

router = APIRouter(prefix="/users")


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=User,
    response_model_exclude_none=True,
)
async def create_user(user: UserCreate, users: UserService = Depends(get_user_service)):
    """Creates a user; 409 if the id is taken."""
    return await users.create_user(user)


@router.get("", response_model=UserList, response_model_exclude_none=True)
async def list_users(users: UserService = Depends(get_user_service)):
    """
    Lists up to 100 users. Unordered, no pagination.
    """
    return {"items": await users.list_users()}


@router.get("/{user_id}", response_model=User, response_model_exclude_none=True)
async def get_user(user_id: str, users: UserService = Depends(get_user_service)):
    return await users.get_user(user_id)


@router.put("/{user_id}", response_model=User, response_model_exclude_none=True)
async def update_user(
    user_id: str,
    patch: UserUpdate,
    users: UserService = Depends(get_user_service),
):
    """
    Partially updates a user. Returns the full record after the update.
    """
    return await users.update_user(user_id, patch)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str, users: UserService = Depends(get_user_service)):
    await users.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
