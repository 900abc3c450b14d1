"""
users_api/api/deps.py

Purpose: Route dependencies

- Hands the services built in create_app() to route handlers
- Tests can override these with app.dependency_overrides
"""

from fastapi import Request

from users_api.services.upload_service import UploadService
from users_api.services.user_service import UserService


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service
