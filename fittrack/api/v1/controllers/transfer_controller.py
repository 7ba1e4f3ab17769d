"""
Import / Export Controller
"""
from typing import Dict, Optional

from fastapi import UploadFile
from fastapi.responses import Response

from fittrack.core.logger import get_logger
from fittrack.enums import DuplicateStrategy, PlanKind
from fittrack.exceptions.errors import ValidationError
from fittrack.persistence import DataStores, Principal
from fittrack.services.analysis_transfer_service import AnalysisTransferService
from fittrack.services.plan_service import PlanService
from fittrack.services.plan_transfer_service import PlanTransferService

logger = get_logger("transfer_controller")


def _attachment(content: str, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _strategy(value: Optional[str]) -> DuplicateStrategy:
    try:
        return DuplicateStrategy(value or DuplicateStrategy.PREFIX.value)
    except ValueError:
        raise ValidationError("duplicateStrategy must be one of: prefix, reject, replace")


def _plan_kind(value: Optional[str]) -> PlanKind:
    try:
        return PlanKind(value)
    except ValueError:
        raise ValidationError("type must be 'training' or 'diet'")


class TransferController:

    @staticmethod
    async def export_plan(stores: DataStores, principal: Principal, kind: PlanKind, plan_id: str, fmt: str) -> Response:
        return _attachment(*await PlanTransferService.export(stores, principal, kind, plan_id, fmt))

    @staticmethod
    async def import_plan(stores: DataStores, principal: Principal, kind: PlanKind, upload: UploadFile, strategy: Optional[str]) -> Dict:
        return await PlanTransferService.import_plan(stores, principal, kind, upload, _strategy(strategy))

    @staticmethod
    async def check_plan_exists(stores: DataStores, principal: Principal, name: Optional[str], kind: Optional[str]) -> Dict:
        return await PlanService.check_exists(stores, principal, _plan_kind(kind), name)

    @staticmethod
    async def export_analysis(stores: DataStores, principal: Principal, analysis_id: str, fmt: str) -> Response:
        return _attachment(*await AnalysisTransferService.export(stores, principal, analysis_id, fmt))

    @staticmethod
    async def import_analysis(stores: DataStores, principal: Principal, upload: UploadFile, strategy: Optional[str]) -> Dict:
        return await AnalysisTransferService.import_analysis(stores, principal, upload, _strategy(strategy))
