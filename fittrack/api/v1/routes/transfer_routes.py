"""
Import / Export Routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from fittrack.api.v1.controllers.transfer_controller import TransferController
from fittrack.enums import PlanKind
from fittrack.middlewares.jwt_auth import get_principal
from fittrack.persistence import DataStores, Principal, get_stores

router = APIRouter(tags=["Import / Export"])


@router.get("/plans/check-exists", summary="Check Plan Name")
async def check_plan_exists(
    name: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await TransferController.check_plan_exists(stores, principal, name, type)


@router.get("/plans/training/{plan_id}/export", summary="Export Training Plan")
async def export_training_plan(
    plan_id: str,
    format: str = Query("json"),
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await TransferController.export_plan(stores, principal, PlanKind.TRAINING, plan_id, format)


@router.get("/plans/diet/{plan_id}/export", summary="Export Diet Plan")
async def export_diet_plan(
    plan_id: str,
    format: str = Query("json"),
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await TransferController.export_plan(stores, principal, PlanKind.DIET, plan_id, format)


@router.post(
    "/plans/training/import",
    status_code=status.HTTP_201_CREATED,
    summary="Import Training Plan",
    description="Upload a .json, .xml or .yaml export. duplicateStrategy: prefix (default), reject or replace.",
)
async def import_training_plan(
    file: UploadFile = File(...),
    duplicateStrategy: Optional[str] = Form(None),
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await TransferController.import_plan(stores, principal, PlanKind.TRAINING, file, duplicateStrategy)


@router.post("/plans/diet/import", status_code=status.HTTP_201_CREATED, summary="Import Diet Plan")
async def import_diet_plan(
    file: UploadFile = File(...),
    duplicateStrategy: Optional[str] = Form(None),
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await TransferController.import_plan(stores, principal, PlanKind.DIET, file, duplicateStrategy)


@router.get("/analyses/{analysis_id}/export", summary="Export Analysis")
async def export_analysis(
    analysis_id: str,
    format: str = Query("json"),
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await TransferController.export_analysis(stores, principal, analysis_id, format)


@router.post("/analyses/import", status_code=status.HTTP_201_CREATED, summary="Import Analysis")
async def import_analysis(
    file: UploadFile = File(...),
    duplicateStrategy: Optional[str] = Form(None),
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await TransferController.import_analysis(stores, principal, file, duplicateStrategy)
