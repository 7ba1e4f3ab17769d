"""
Analytics Routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from fittrack.api.v1.controllers.analytics_controller import AnalyticsController
from fittrack.middlewares.jwt_auth import get_principal
from fittrack.persistence import DataStores, Principal, get_stores
from fittrack.schemas.analysis_schemas import AnalysisCreate, AnalysisRename
from fittrack.services.analytics_service import AnalyticsService, get_analytics_service

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get("/countries", summary="Available Countries", description="Countries covered by both the WHO and the World Bank.")
async def get_countries(
    analytics: AnalyticsService = Depends(get_analytics_service),
    _: Principal = Depends(get_principal),
):
    return await AnalyticsController.get_countries(analytics)


@router.get("/years", summary="Available Years")
async def get_years(
    countryCode: Optional[str] = Query(None),
    analysisType: Optional[str] = Query(None),
    analytics: AnalyticsService = Depends(get_analytics_service),
    _: Principal = Depends(get_principal),
):
    return await AnalyticsController.get_years(analytics, countryCode, analysisType)


@router.get("/types", summary="Analysis Types")
async def get_types(_: Principal = Depends(get_principal)):
    return AnalyticsController.get_types()


@router.post("/analyses", status_code=status.HTTP_201_CREATED, summary="Run and Save Analysis")
async def create_analysis(
    data: AnalysisCreate,
    stores: DataStores = Depends(get_stores),
    analytics: AnalyticsService = Depends(get_analytics_service),
    principal: Principal = Depends(get_principal),
):
    return await AnalyticsController.create_analysis(stores, analytics, principal, data)


@router.get("/analyses", summary="List Saved Analyses")
async def list_analyses(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await AnalyticsController.list_analyses(stores, principal, page, limit)


@router.get("/analyses/{analysis_id}", summary="Get Saved Analysis")
async def get_analysis(
    analysis_id: str,
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await AnalyticsController.get_analysis(stores, principal, analysis_id)


@router.put("/analyses/{analysis_id}", summary="Rename Saved Analysis")
async def rename_analysis(
    analysis_id: str,
    data: AnalysisRename,
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await AnalyticsController.rename_analysis(stores, principal, analysis_id, data)


@router.delete("/analyses/{analysis_id}", summary="Delete Saved Analysis")
async def delete_analysis(
    analysis_id: str,
    stores: DataStores = Depends(get_stores),
    principal: Principal = Depends(get_principal),
):
    return await AnalyticsController.delete_analysis(stores, principal, analysis_id)
