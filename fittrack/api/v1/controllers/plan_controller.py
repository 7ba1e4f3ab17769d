"""
Plan Controller

Training and diet plans share every operation; the plan kind selects the
gateways and labels.
"""
from typing import Dict

from pydantic import BaseModel

from fittrack.enums import PlanKind
from fittrack.persistence import DataStores, Principal
from fittrack.services.plan_service import PlanService


class PlanController:

    @staticmethod
    async def create(stores: DataStores, principal: Principal, kind: PlanKind, data: BaseModel) -> Dict:
        return await PlanService.create(stores, principal, kind, data)

    @staticmethod
    async def list(stores: DataStores, principal: Principal, kind: PlanKind) -> Dict:
        return await PlanService.list(stores, principal, kind)

    @staticmethod
    async def get(stores: DataStores, principal: Principal, kind: PlanKind, plan_id: str) -> Dict:
        return {"plan": await PlanService.get(stores, principal, kind, plan_id)}

    @staticmethod
    async def update(stores: DataStores, principal: Principal, kind: PlanKind, plan_id: str, data: BaseModel) -> Dict:
        return await PlanService.update(stores, principal, kind, plan_id, data)

    @staticmethod
    async def delete(stores: DataStores, principal: Principal, kind: PlanKind, plan_id: str) -> Dict:
        return await PlanService.delete(stores, principal, kind, plan_id)

    @staticmethod
    async def add_day(stores: DataStores, principal: Principal, kind: PlanKind, plan_id: str, data: BaseModel) -> Dict:
        return await PlanService.add_day(stores, principal, kind, plan_id, data)

    @staticmethod
    async def update_day(stores: DataStores, principal: Principal, kind: PlanKind, day_id: str, data: BaseModel) -> Dict:
        return await PlanService.update_day(stores, principal, kind, day_id, data)

    @staticmethod
    async def delete_day(stores: DataStores, principal: Principal, kind: PlanKind, day_id: str) -> Dict:
        return await PlanService.delete_day(stores, principal, kind, day_id)

    @staticmethod
    async def add_item(stores: DataStores, principal: Principal, kind: PlanKind, day_id: str, data: BaseModel) -> Dict:
        return await PlanService.add_item(stores, principal, kind, day_id, data)

    @staticmethod
    async def update_item(stores: DataStores, principal: Principal, kind: PlanKind, item_id: str, data: BaseModel) -> Dict:
        return await PlanService.update_item(stores, principal, kind, item_id, data)

    @staticmethod
    async def delete_item(stores: DataStores, principal: Principal, kind: PlanKind, item_id: str) -> Dict:
        return await PlanService.delete_item(stores, principal, kind, item_id)
