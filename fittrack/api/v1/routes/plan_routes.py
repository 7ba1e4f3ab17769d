"""
Training and Diet Plan Routes

Both plan kinds expose the same endpoints under their own path segments, so
the routers are built by one factory.
"""
from fastapi import APIRouter, Depends, status

from fittrack.api.v1.controllers.plan_controller import PlanController
from fittrack.enums import PlanKind
from fittrack.middlewares.jwt_auth import get_principal
from fittrack.persistence import DataStores, Principal, get_stores
from fittrack.schemas.plan_schemas import (
    DayUpdate, DietDayCreate, DietPlanCreate, ExerciseCreate, ExerciseUpdate,
    MealCreate, MealUpdate, PlanUpdate, TrainingDayCreate, TrainingPlanCreate
)


def build_plan_router(
    kind: PlanKind,
    plans_path: str,
    days_path: str,
    items_segment: str,
    items_path: str,
    plan_schema,
    day_schema,
    item_schema,
    item_update_schema,
    tag: str,
) -> APIRouter:
    router = APIRouter(tags=[tag])

    @router.post(plans_path, status_code=status.HTTP_201_CREATED, summary=f"Create {tag}")
    async def create_plan(
        data: plan_schema,
        stores: DataStores = Depends(get_stores),
        principal: Principal = Depends(get_principal),
    ):
        return await PlanController.create(stores, principal, kind, data)

    @router.get(plans_path, summary=f"List {tag}s")
    async def list_plans(
        stores: DataStores = Depends(get_stores),
        principal: Principal = Depends(get_principal),
    ):
        return await PlanController.list(stores, principal, kind)

    @router.get(plans_path + "/{plan_id}", summary=f"Get {tag}")
    async def get_plan(
        plan_id: str,
        stores: DataStores = Depends(get_stores),
        principal: Principal = Depends(get_principal),
    ):
        return await PlanController.get(stores, principal, kind, plan_id)

    @router.put(plans_path + "/{plan_id}", summary=f"Update {tag}")
    async def update_plan(
        plan_id: str,
        data: PlanUpdate,
        stores: DataStores = Depends(get_stores),
        principal: Principal = Depends(get_principal),
    ):
        return await PlanController.update(stores, principal, kind, plan_id, data)

    @router.delete(plans_path + "/{plan_id}", summary=f"Delete {tag}", description="Deletes the plan with all its days and items.")
    async def delete_plan(
        plan_id: str,
        stores: DataStores = Depends(get_stores),
        principal: Principal = Depends(get_principal),
    ):
        return await PlanController.delete(stores, principal, kind, plan_id)

    @router.post(plans_path + "/{plan_id}/days", status_code=status.HTTP_201_CREATED, summary="Add Day")
    async def add_day(
        plan_id: str,
        data: day_schema,
        stores: DataStores = Depends(get_stores),
        principal: Principal = Depends(get_principal),
    ):
        return await PlanController.add_day(stores, principal, kind, plan_id, data)

    @router.put(days_path + "/{day_id}", summary="Update Day")
    async def update_day(
        day_id: str,
        data: DayUpdate,
        stores: DataStores = Depends(get_stores),
        principal: Principal = Depends(get_principal),
    ):
        return await PlanController.update_day(stores, principal, kind, day_id, data)

    @router.delete(days_path + "/{day_id}", summary="Delete Day")
    async def delete_day(
        day_id: str,
        stores: DataStores = Depends(get_stores),
        principal: Principal = Depends(get_principal),
    ):
        return await PlanController.delete_day(stores, principal, kind, day_id)

    @router.post(days_path + "/{day_id}/" + items_segment, status_code=status.HTTP_201_CREATED, summary="Add Item")
    async def add_item(
        day_id: str,
        data: item_schema,
        stores: DataStores = Depends(get_stores),
        principal: Principal = Depends(get_principal),
    ):
        return await PlanController.add_item(stores, principal, kind, day_id, data)

    @router.put(items_path + "/{item_id}", summary="Update Item")
    async def update_item(
        item_id: str,
        data: item_update_schema,
        stores: DataStores = Depends(get_stores),
        principal: Principal = Depends(get_principal),
    ):
        return await PlanController.update_item(stores, principal, kind, item_id, data)

    @router.delete(items_path + "/{item_id}", summary="Delete Item")
    async def delete_item(
        item_id: str,
        stores: DataStores = Depends(get_stores),
        principal: Principal = Depends(get_principal),
    ):
        return await PlanController.delete_item(stores, principal, kind, item_id)

    return router


training_plan_router = build_plan_router(
    PlanKind.TRAINING,
    plans_path="/training-plans",
    days_path="/training-days",
    items_segment="exercises",
    items_path="/training-exercises",
    plan_schema=TrainingPlanCreate,
    day_schema=TrainingDayCreate,
    item_schema=ExerciseCreate,
    item_update_schema=ExerciseUpdate,
    tag="Training Plan",
)

diet_plan_router = build_plan_router(
    PlanKind.DIET,
    plans_path="/diet-plans",
    days_path="/diet-days",
    items_segment="meals",
    items_path="/diet-meals",
    plan_schema=DietPlanCreate,
    day_schema=DietDayCreate,
    item_schema=MealCreate,
    item_update_schema=MealUpdate,
    tag="Diet Plan",
)
