"""
Progress Routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from fittrack.api.v1.controllers.progress_controller import ProgressController
from fittrack.middlewares.jwt_auth import get_principal
from fittrack.persistence import DataStores, Principal, get_stores
from fittrack.schemas.progress_schemas import ProgressCreate, ProgressUpdate

router = APIRouter(prefix="/progress", tags=["Progress"])


@router.post("", status_code=status.HTTP_201_CREATED, summary="Add Progress Entry")
async def create_progress(
    data: ProgressCreate,
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await ProgressController.create(stores, principal, data)


@router.get("", summary="List Progress Entries", description="Paginated, oldest entry first.")
async def list_progress(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await ProgressController.list(stores, principal, page, limit)


@router.get("/{progress_id}", summary="Get Progress Entry")
async def get_progress(
    progress_id: str,
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await ProgressController.get(stores, principal, progress_id)


@router.put("/{progress_id}", summary="Update Progress Entry")
async def update_progress(
    progress_id: str,
    data: ProgressUpdate,
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await ProgressController.update(stores, principal, progress_id, data)


@router.delete("/{progress_id}", summary="Delete Progress Entry")
async def delete_progress(
    progress_id: str,
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await ProgressController.delete(stores, principal, progress_id)
