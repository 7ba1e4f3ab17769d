"""
Auth and Profile Routes
"""
from fastapi import APIRouter, Depends, status

from fittrack.api.v1.controllers.auth_controller import AuthController
from fittrack.middlewares.jwt_auth import get_principal
from fittrack.persistence import DataStores, Principal, get_stores
from fittrack.schemas.auth_schemas import (
    LoginRequest, PasswordChangeRequest, ProfileUpdateRequest, RegisterRequest
)

router = APIRouter(prefix="/auth", tags=["Auth"])
profile_router = APIRouter(prefix="/profile", tags=["Profile"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create the account in every active store.",
)
async def register(data: RegisterRequest, stores: DataStores = Depends(get_stores)):
    return await AuthController.register(stores, data)


@router.post("/login", summary="Login", description="Verify credentials and issue a JWT carrying both store ids.")
async def login(data: LoginRequest, stores: DataStores = Depends(get_stores)):
    return await AuthController.login(stores, data)


@profile_router.get("", summary="Get Profile")
async def get_profile(
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await AuthController.get_profile(stores, principal)


@profile_router.put("", summary="Update Profile")
async def update_profile(
    data: ProfileUpdateRequest,
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await AuthController.update_profile(stores, principal, data)


@profile_router.put("/password", summary="Change Password")
async def change_password(
    data: PasswordChangeRequest,
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await AuthController.change_password(stores, principal, data)


@profile_router.delete(
    "",
    summary="Delete Account",
    description="Delete the account together with its progress, plans and analyses.",
)
async def delete_account(
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await AuthController.delete_account(stores, principal)
