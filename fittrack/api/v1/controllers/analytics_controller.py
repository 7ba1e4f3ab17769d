"""
Analytics Controller
"""
from typing import Dict, Optional

from fittrack.core.logger import get_logger
from fittrack.exceptions.errors import ApplicationException, ExternalServiceError, ValidationError
from fittrack.persistence import DataStores, Principal
from fittrack.schemas.analysis_schemas import AnalysisCreate, AnalysisRename
from fittrack.services.analysis_service import AnalysisService
from fittrack.services.analytics_service import AnalyticsService

logger = get_logger("analytics_controller")


class AnalyticsController:
    """Statistics lookups and saved analyses."""

    @staticmethod
    async def get_countries(analytics: AnalyticsService) -> Dict:
        try:
            return {"success": True, "data": await analytics.get_available_countries()}
        except ApplicationException:
            raise
        except Exception as e:
            logger.error(f"❌ Failed to load countries: {e!r}")
            raise ExternalServiceError("Failed to load the list of countries")

    @staticmethod
    async def get_years(analytics: AnalyticsService, country_code: Optional[str], analysis_type: Optional[str]) -> Dict:
        if not country_code:
            raise ValidationError("Country code is required")
        if not analysis_type:
            raise ValidationError("Analysis type is required")
        try:
            data = await analytics.get_common_available_years(country_code.strip().upper(), analysis_type)
        except ApplicationException:
            raise
        except Exception as e:
            logger.error(f"❌ Failed to load available years for {country_code}: {e!r}")
            raise ExternalServiceError("Failed to load available years")
        return {"success": True, "data": data}

    @staticmethod
    def get_types() -> Dict:
        return {"success": True, "data": AnalyticsService.analysis_types()}

    @staticmethod
    async def create_analysis(stores: DataStores, analytics: AnalyticsService, principal: Principal, data: AnalysisCreate) -> Dict:
        return await AnalysisService.create(stores, analytics, principal, data)

    @staticmethod
    async def list_analyses(stores: DataStores, principal: Principal, page: Optional[int], limit: Optional[int]) -> Dict:
        return await AnalysisService.list(stores, principal, page, limit)

    @staticmethod
    async def get_analysis(stores: DataStores, principal: Principal, analysis_id: str) -> Dict:
        return {"analysis": await AnalysisService.get(stores, principal, analysis_id)}

    @staticmethod
    async def rename_analysis(stores: DataStores, principal: Principal, analysis_id: str, data: AnalysisRename) -> Dict:
        return await AnalysisService.rename(stores, principal, analysis_id, data)

    @staticmethod
    async def delete_analysis(stores: DataStores, principal: Principal, analysis_id: str) -> Dict:
        return await AnalysisService.delete(stores, principal, analysis_id)
