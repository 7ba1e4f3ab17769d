"""
Auth Controller
"""
from typing import Dict

from fittrack.core.logger import get_logger
from fittrack.persistence import DataStores, Principal
from fittrack.schemas.auth_schemas import (
    LoginRequest, PasswordChangeRequest, ProfileUpdateRequest, RegisterRequest
)
from fittrack.services.user_service import UserService

logger = get_logger("auth_controller")


class AuthController:
    """Registration, login and the caller's own profile."""

    @staticmethod
    async def register(stores: DataStores, data: RegisterRequest) -> Dict:
        logger.info(f"📝 Registration attempt for {data.username}")
        return await UserService.register(stores, data)

    @staticmethod
    async def login(stores: DataStores, data: LoginRequest) -> Dict:
        return await UserService.login(stores, data)

    @staticmethod
    async def get_profile(stores: DataStores, principal: Principal) -> Dict:
        return {"user": await UserService.get_profile(stores, principal)}

    @staticmethod
    async def update_profile(stores: DataStores, principal: Principal, data: ProfileUpdateRequest) -> Dict:
        return await UserService.update_profile(stores, principal, data)

    @staticmethod
    async def change_password(stores: DataStores, principal: Principal, data: PasswordChangeRequest) -> Dict:
        return await UserService.change_password(stores, principal, data)

    @staticmethod
    async def delete_account(stores: DataStores, principal: Principal) -> Dict:
        return await UserService.delete_account(stores, principal)
