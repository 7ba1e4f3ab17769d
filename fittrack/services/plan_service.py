from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from fittrack.core.logger import get_logger
from fittrack.enums import OperationKind, PlanKind
from fittrack.exceptions.errors import ConflictError, NotFoundError, ValidationError
from fittrack.persistence import CorrelatedChild, CorrelatedIds, DataStores, Owner, Principal, resolve_owner
from fittrack.persistence.correlator import CorrelatedEntity, DAY, ITEM
from fittrack.repositories.plans import PLAN_ENTITIES, DuplicatePlanNameError
from fittrack.utils.time_utils import utc_now_ms

logger = get_logger("plan_service")

LABELS = {
    PlanKind.TRAINING: ("Training plan", "Training day", "Exercise"),
    PlanKind.DIET: ("Diet plan", "Diet day", "Meal"),
}


def split_plan(data: Dict[str, Any], items_key: str) -> Dict[str, Any]:
    """Request/import payload -> ({plan fields}, [day dicts with an ``items`` list])."""
    plan = {
        "name": data["name"],
        "description": data.get("description"),
        "isActive": data.get("isActive", True),
    }
    days = [
        {
            "dayOfWeek": day.get("dayOfWeek"),
            "name": day.get("name"),
            "order": day.get("order") or 0,
            "items": list(day.get(items_key) or day.get("items") or []),
        }
        for day in data.get("days") or []
    ]
    return {"plan": plan, "days": days}


class PlanService:
    """CRUD for training and diet plans and their nested days and items."""

    @staticmethod
    def entity(kind: PlanKind) -> CorrelatedEntity:
        return PLAN_ENTITIES[PlanKind(kind)]

    # Plans

    @staticmethod
    async def name_exists(stores: DataStores, owner: Owner, kind: PlanKind, name: str) -> bool:
        """Whether ``name`` is taken by one of the owner's plans in any active store."""
        entity = PlanService.entity(kind)
        if stores.mode.uses_document:
            found = await stores.document.fetch(
                lambda db: entity.document.find_by_name(db, owner.document_id, name),
                label=f"{entity.name} name check",
            )
            if found is not None:
                return True
        if stores.mode.uses_relational:
            found = await stores.relational.fetch(
                lambda session: entity.relational.find_by_name(session, owner.relational_id, name),
                kind=OperationKind.CORRELATION,
                label=f"{entity.name} name check",
            )
            if found is not None:
                return True
        return False

    @staticmethod
    async def create_from_payload(stores: DataStores, owner: Owner, kind: PlanKind, payload: Dict[str, Any]):
        """Dual-write a plan with all its days and items. Returns the DualWriteResult."""
        entity = PlanService.entity(kind)
        parts = split_plan(payload, entity.items_key)
        stamp = utc_now_ms()
        taken = []

        async def document_op(db):
            try:
                return await entity.document.create(db, owner.document_id, parts["plan"], parts["days"], stamp)
            except DuplicatePlanNameError:
                taken.append(parts["plan"]["name"])
                raise

        async def relational_op(session):
            # The document side runs first; once it lost the name the row must not be written either
            if taken:
                raise DuplicatePlanNameError(f"Plan '{parts['plan']['name']}' already exists")
            return await entity.relational.create(session, owner.relational_id, parts["plan"], parts["days"], stamp)

        result = await stores.coordinator.execute(
            document_op=document_op,
            relational_op=relational_op,
            kind=OperationKind.CREATE,
            label=f"create {entity.name}",
        )
        if not result.succeeded and any(
            isinstance(side.error, DuplicatePlanNameError) for side in (result.document, result.relational)
        ):
            # Lost a race with a concurrent create of the same name
            raise ConflictError(f"{LABELS[kind][0]} named '{payload['name']}' already exists")
        return result

    @staticmethod
    async def create(stores: DataStores, principal: Principal, kind: PlanKind, data: BaseModel) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        plan_label = LABELS[kind][0]
        if await PlanService.name_exists(stores, owner, kind, data.name):
            raise ConflictError(f"{plan_label} named '{data.name}' already exists")

        result = await PlanService.create_from_payload(stores, owner, kind, data.dict())
        result.raise_for_failure(f"Failed to save {plan_label.lower()}")
        return {
            "message": f"{plan_label} created",
            "plan": stores.merger.from_write(result),
            "stores": result.stores,
        }

    @staticmethod
    async def list(stores: DataStores, principal: Principal, kind: PlanKind) -> Dict[str, List[Dict[str, Any]]]:
        owner = resolve_owner(principal, stores.mode)
        return {"plans": await stores.merger.list_all(PlanService.entity(kind), owner)}

    @staticmethod
    async def resolve(stores: DataStores, owner: Owner, kind: PlanKind, plan_id: Any) -> CorrelatedIds:
        correlated = await stores.correlator.resolve(plan_id, PlanService.entity(kind), owner)
        if not correlated.found:
            raise NotFoundError(f"{LABELS[kind][0]} not found")
        return correlated

    @staticmethod
    async def get(stores: DataStores, principal: Principal, kind: PlanKind, plan_id: str) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        return stores.merger.single(await PlanService.resolve(stores, owner, kind, plan_id))

    @staticmethod
    async def update(stores: DataStores, principal: Principal, kind: PlanKind, plan_id: str, data: BaseModel) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        entity = PlanService.entity(kind)
        plan_label = LABELS[kind][0]
        correlated = await PlanService.resolve(stores, owner, kind, plan_id)

        changes = data.dict(exclude_unset=True)
        if not changes:
            raise ValidationError("No plan fields to update")
        current = correlated.document_record or correlated.relational_record or {}
        if "name" in changes and changes["name"] != current.get("name"):
            if await PlanService.name_exists(stores, owner, kind, changes["name"]):
                raise ConflictError(f"{plan_label} named '{changes['name']}' already exists")
        stamp = utc_now_ms()
        result = await stores.coordinator.execute(
            document_op=(
                (lambda db: entity.document.update(db, correlated.document_id, changes, stamp))
                if correlated.document_id else None
            ),
            relational_op=(
                (lambda session: entity.relational.update(session, correlated.relational_id, changes, stamp))
                if correlated.relational_id else None
            ),
            kind=OperationKind.UPDATE,
            label=f"update {entity.name}",
        )
        result.raise_for_failure(f"Failed to update {plan_label.lower()}", not_found=f"{plan_label} not found")
        return {
            "message": f"{plan_label} updated",
            "plan": stores.merger.from_write(result),
            "updated": result.stores,
        }

    @staticmethod
    async def delete_correlated(stores: DataStores, kind: PlanKind, correlated: CorrelatedIds):
        """Delete a plan and every day and item under it, independently in each store."""
        entity = PlanService.entity(kind)
        return await stores.coordinator.execute(
            document_op=(
                (lambda db: entity.document.delete(db, correlated.document_id))
                if correlated.document_id else None
            ),
            relational_op=(
                (lambda session: entity.relational.delete(session, correlated.relational_id))
                if correlated.relational_id else None
            ),
            kind=OperationKind.DELETE,
            label=f"delete {entity.name}",
        )

    @staticmethod
    async def delete(stores: DataStores, principal: Principal, kind: PlanKind, plan_id: str) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        plan_label = LABELS[kind][0]
        correlated = await PlanService.resolve(stores, owner, kind, plan_id)
        result = await PlanService.delete_correlated(stores, kind, correlated)
        result.raise_for_failure(f"Failed to delete {plan_label.lower()}", not_found=f"{plan_label} not found")
        return {"message": f"{plan_label} deleted", "deleted": result.stores}

    # Days

    @staticmethod
    async def resolve_child(stores: DataStores, owner: Owner, kind: PlanKind, child_id: Any, level: str) -> CorrelatedChild:
        child = await stores.correlator.resolve_child(child_id, level, PlanService.entity(kind), owner)
        if not child.found:
            raise NotFoundError(f"{LABELS[kind][1 if level == DAY else 2]} not found")
        return child

    @staticmethod
    async def add_day(stores: DataStores, principal: Principal, kind: PlanKind, plan_id: str, data: BaseModel) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        entity = PlanService.entity(kind)
        day_label = LABELS[kind][1]
        correlated = await PlanService.resolve(stores, owner, kind, plan_id)

        payload = data.dict()
        items = payload.pop(entity.items_key, [])
        result = await stores.coordinator.execute(
            document_op=(
                (lambda db: entity.document.add_day(db, correlated.document_id, payload, items))
                if correlated.document_id else None
            ),
            relational_op=(
                (lambda session: entity.relational.add_day(session, correlated.relational_id, payload, items))
                if correlated.relational_id else None
            ),
            kind=OperationKind.UPDATE,
            label=f"add {entity.name} day",
        )
        result.raise_for_failure(f"Failed to add {day_label.lower()}", not_found=f"{LABELS[kind][0]} not found")
        return {
            "message": f"{day_label} added",
            "day": stores.merger.from_write(result),
            "stores": result.stores,
        }

    @staticmethod
    async def update_day(stores: DataStores, principal: Principal, kind: PlanKind, day_id: str, data: BaseModel) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        entity = PlanService.entity(kind)
        day_label = LABELS[kind][1]
        child = await PlanService.resolve_child(stores, owner, kind, day_id, DAY)

        changes = data.dict(exclude_unset=True)
        if not changes:
            raise ValidationError("No day fields to update")
        result = await stores.coordinator.execute(
            document_op=(
                (lambda db: entity.document.update_day(db, child.plan.document_id, child.document_id, changes))
                if child.document_record else None
            ),
            relational_op=(
                (lambda session: entity.relational.update_day(session, child.relational_id, changes))
                if child.relational_record else None
            ),
            kind=OperationKind.UPDATE,
            label=f"update {entity.name} day",
        )
        result.raise_for_failure(f"Failed to update {day_label.lower()}", not_found=f"{day_label} not found")
        return {
            "message": f"{day_label} updated",
            "day": stores.merger.from_write(result),
            "updated": result.stores,
        }

    @staticmethod
    async def delete_day(stores: DataStores, principal: Principal, kind: PlanKind, day_id: str) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        entity = PlanService.entity(kind)
        day_label = LABELS[kind][1]
        child = await PlanService.resolve_child(stores, owner, kind, day_id, DAY)

        result = await stores.coordinator.execute(
            document_op=(
                (lambda db: entity.document.delete_day(db, child.plan.document_id, child.document_id))
                if child.document_record else None
            ),
            relational_op=(
                (lambda session: entity.relational.delete_day(session, child.relational_id))
                if child.relational_record else None
            ),
            kind=OperationKind.DELETE,
            label=f"delete {entity.name} day",
        )
        result.raise_for_failure(f"Failed to delete {day_label.lower()}", not_found=f"{day_label} not found")
        return {"message": f"{day_label} deleted", "deleted": result.stores}

    # Items

    @staticmethod
    async def add_item(stores: DataStores, principal: Principal, kind: PlanKind, day_id: str, data: BaseModel) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        entity = PlanService.entity(kind)
        item_label = LABELS[kind][2]
        day = await PlanService.resolve_child(stores, owner, kind, day_id, DAY)

        payload = data.dict()
        result = await stores.coordinator.execute(
            document_op=(
                (lambda db: entity.document.add_item(db, day.plan.document_id, day.document_id, payload))
                if day.document_record else None
            ),
            relational_op=(
                (lambda session: entity.relational.add_item(session, day.relational_id, payload))
                if day.relational_record else None
            ),
            kind=OperationKind.UPDATE,
            label=f"add {entity.name} item",
        )
        result.raise_for_failure(f"Failed to add {item_label.lower()}", not_found=f"{LABELS[kind][1]} not found")
        return {
            "message": f"{item_label} added",
            "item": stores.merger.from_write(result),
            "stores": result.stores,
        }

    @staticmethod
    async def update_item(stores: DataStores, principal: Principal, kind: PlanKind, item_id: str, data: BaseModel) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        entity = PlanService.entity(kind)
        item_label = LABELS[kind][2]
        item = await PlanService.resolve_child(stores, owner, kind, item_id, ITEM)

        changes = data.dict(exclude_unset=True)
        if not changes:
            raise ValidationError("No item fields to update")
        result = await stores.coordinator.execute(
            document_op=(
                (lambda db: entity.document.update_item(db, item.plan.document_id, item.document_id, changes))
                if item.document_record else None
            ),
            relational_op=(
                (lambda session: entity.relational.update_item(session, item.relational_id, changes))
                if item.relational_record else None
            ),
            kind=OperationKind.UPDATE,
            label=f"update {entity.name} item",
        )
        result.raise_for_failure(f"Failed to update {item_label.lower()}", not_found=f"{item_label} not found")
        return {
            "message": f"{item_label} updated",
            "item": stores.merger.from_write(result),
            "updated": result.stores,
        }

    @staticmethod
    async def delete_item(stores: DataStores, principal: Principal, kind: PlanKind, item_id: str) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        entity = PlanService.entity(kind)
        item_label = LABELS[kind][2]
        item = await PlanService.resolve_child(stores, owner, kind, item_id, ITEM)

        result = await stores.coordinator.execute(
            document_op=(
                (lambda db: entity.document.delete_item(db, item.plan.document_id, item.document_id))
                if item.document_record else None
            ),
            relational_op=(
                (lambda session: entity.relational.delete_item(session, item.relational_id))
                if item.relational_record else None
            ),
            kind=OperationKind.DELETE,
            label=f"delete {entity.name} item",
        )
        result.raise_for_failure(f"Failed to delete {item_label.lower()}", not_found=f"{item_label} not found")
        return {"message": f"{item_label} deleted", "deleted": result.stores}

    @staticmethod
    async def check_exists(stores: DataStores, principal: Principal, kind: PlanKind, name: Optional[str]) -> Dict[str, Any]:
        if not name or not name.strip():
            raise ValidationError("Plan name is required")
        owner = resolve_owner(principal, stores.mode)
        exists = await PlanService.name_exists(stores, owner, kind, name.strip())
        return {"exists": exists, "name": name.strip(), "type": PlanKind(kind).value}
