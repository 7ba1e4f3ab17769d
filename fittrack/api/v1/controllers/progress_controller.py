"""
Progress Controller
"""
from typing import Dict, Optional

from fittrack.persistence import DataStores, Principal
from fittrack.schemas.progress_schemas import ProgressCreate, ProgressUpdate
from fittrack.services.progress_service import ProgressService


class ProgressController:
    """Controller for body-weight and training-time entries."""

    @staticmethod
    async def create(stores: DataStores, principal: Principal, data: ProgressCreate) -> Dict:
        return await ProgressService.create(stores, principal, data)

    @staticmethod
    async def list(stores: DataStores, principal: Principal, page: Optional[int], limit: Optional[int]) -> Dict:
        return await ProgressService.list(stores, principal, page, limit)

    @staticmethod
    async def get(stores: DataStores, principal: Principal, progress_id: str) -> Dict:
        return {"progress": await ProgressService.get(stores, principal, progress_id)}

    @staticmethod
    async def update(stores: DataStores, principal: Principal, progress_id: str, data: ProgressUpdate) -> Dict:
        return await ProgressService.update(stores, principal, progress_id, data)

    @staticmethod
    async def delete(stores: DataStores, principal: Principal, progress_id: str) -> Dict:
        return await ProgressService.delete(stores, principal, progress_id)
