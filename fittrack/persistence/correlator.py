"""
Cross-store identity correlation.

The stores generate incompatible keys (ObjectId vs auto-increment int) and
neither persists the other's key. A caller-supplied id is routed by shape to
the store that issued it; in dual mode the counterpart in the other store is
then located by (owner, creation timestamp).
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId

from fittrack.core.logger import get_logger
from fittrack.enums import OperationKind, StoreMode, StoreName
from fittrack.persistence.adapters import DocumentStoreAdapter, RelationalStoreAdapter
from fittrack.persistence.identity import OBJECT_ID_PATTERN, Owner
from fittrack.repositories.base import DocumentGateway, RelationalGateway

logger = get_logger("identity_correlator")


@dataclass(frozen=True)
class CorrelatedEntity:
    """Gateway pair for one entity type."""
    name: str
    document: DocumentGateway
    relational: RelationalGateway
    # key of the item list inside each day, for entities with nested children
    items_key: Optional[str] = None


@dataclass
class CorrelatedIds:
    origin: Optional[StoreName] = None
    document_id: Optional[ObjectId] = None
    relational_id: Optional[int] = None
    document_record: Optional[Dict[str, Any]] = None
    relational_record: Optional[Dict[str, Any]] = None
    ambiguous: bool = False

    @property
    def found(self) -> bool:
        return self.document_record is not None or self.relational_record is not None

    @property
    def ids(self) -> Dict[str, Any]:
        return {
            StoreName.DOCUMENT.value: str(self.document_id) if self.document_id else None,
            StoreName.RELATIONAL.value: self.relational_id,
        }


def classify_id(entity_id: Any) -> Optional[StoreName]:
    """Which store issued ``entity_id``: 24 hex chars is a document key, digits a relational key."""
    if isinstance(entity_id, ObjectId):
        return StoreName.DOCUMENT
    if isinstance(entity_id, bool):
        return None
    if isinstance(entity_id, int):
        return StoreName.RELATIONAL
    text = str(entity_id).strip()
    if OBJECT_ID_PATTERN.match(text):
        return StoreName.DOCUMENT
    if text.isdigit():
        return StoreName.RELATIONAL
    return None


def pick_first(candidates: List[Dict[str, Any]], entity: str, stamp: Any) -> Tuple[Optional[Dict[str, Any]], bool]:
    """First candidate in store-id order; flags and logs ambiguity instead of failing."""
    if not candidates:
        return None, False
    if len(candidates) > 1:
        logger.warning(
            f"⚠️ Ambiguous {entity} correlation at {stamp}: {len(candidates)} candidates, "
            f"using id={candidates[0].get('id')}"
        )
        return candidates[0], True
    return candidates[0], False


class IdentityCorrelator:
    def __init__(
        self,
        mode: StoreMode,
        document: DocumentStoreAdapter,
        relational: RelationalStoreAdapter,
    ):
        self.mode = mode
        self.document = document
        self.relational = relational

    async def resolve(self, entity_id: Any, entity: CorrelatedEntity, owner: Owner) -> CorrelatedIds:
        origin = classify_id(entity_id)
        result = CorrelatedIds(origin=origin)

        if origin is StoreName.DOCUMENT and self.mode.uses_document:
            oid = entity_id if isinstance(entity_id, ObjectId) else ObjectId(str(entity_id).strip())
            record = await self.document.fetch(
                lambda db: entity.document.get(db, oid, owner.document_id),
                label=f"{entity.name} lookup",
            )
            if record is not None:
                result.document_id = oid
                result.document_record = record
                await self.attach_counterpart(result, entity, owner)

        elif origin is StoreName.RELATIONAL and self.mode.uses_relational:
            rel_id = int(entity_id)
            record = await self.relational.fetch(
                lambda session: entity.relational.get(session, rel_id, owner.relational_id),
                kind=OperationKind.READ,
                label=f"{entity.name} lookup",
            )
            if record is not None:
                result.relational_id = rel_id
                result.relational_record = record
                await self.attach_counterpart(result, entity, owner)

        return result

    async def attach_counterpart(self, result: CorrelatedIds, entity: CorrelatedEntity, owner: Owner) -> CorrelatedIds:
        """Fill in the other store's side of ``result``. Only done in dual mode."""
        if self.mode is not StoreMode.DUAL:
            return result

        if result.document_record is not None and result.relational_record is None:
            stamp = result.document_record.get(entity.document.correlation_field)
            candidates = await self.relational.fetch(
                lambda session: entity.relational.find_correlated(session, owner.relational_id, stamp),
                kind=OperationKind.CORRELATION,
                label=f"{entity.name} correlation",
                fallback=[],
            )
            match, result.ambiguous = pick_first(candidates, entity.name, stamp)
            if match is not None:
                result.relational_record = match
                result.relational_id = match["id"]

        elif result.relational_record is not None and result.document_record is None:
            stamp = result.relational_record.get(entity.relational.correlation_field)
            candidates = await self.document.fetch(
                lambda db: entity.document.find_correlated(db, owner.document_id, stamp),
                label=f"{entity.name} correlation",
                fallback=[],
            )
            match, result.ambiguous = pick_first(candidates, entity.name, stamp)
            if match is not None:
                result.document_record = match
                result.document_id = ObjectId(match["id"])

        return result

    async def resolve_child(self, child_id: Any, level: str, entity: CorrelatedEntity, owner: Owner) -> "CorrelatedChild":
        """
        Correlate a nested Day ("day") or Item ("item") through its plan.

        The child is found in the store that issued its id, the owning plan is
        correlated as usual, and the counterpart child is the one at the same
        position (day index, item index) in the other store's copy of the plan.
        """
        origin = classify_id(child_id)
        plan = CorrelatedIds(origin=origin)
        finder = "find_plan_with_day" if level == DAY else "find_plan_with_item"

        if origin is StoreName.DOCUMENT and self.mode.uses_document:
            oid = child_id if isinstance(child_id, ObjectId) else ObjectId(str(child_id).strip())
            record = await self.document.fetch(
                lambda db: getattr(entity.document, finder)(db, owner.document_id, oid),
                label=f"{entity.name} {level} lookup",
            )
            if record is not None:
                plan.document_id = ObjectId(record["id"])
                plan.document_record = record
                await self.attach_counterpart(plan, entity, owner)

        elif origin is StoreName.RELATIONAL and self.mode.uses_relational:
            rel_id = int(child_id)
            record = await self.relational.fetch(
                lambda session: getattr(entity.relational, finder)(session, owner.relational_id, rel_id),
                kind=OperationKind.READ,
                label=f"{entity.name} {level} lookup",
            )
            if record is not None:
                plan.relational_id = record["id"]
                plan.relational_record = record
                await self.attach_counterpart(plan, entity, owner)

        child = CorrelatedChild(level=level, plan=plan)
        origin_record = plan.document_record if origin is StoreName.DOCUMENT else plan.relational_record
        if origin_record is None:
            return child

        child.position = child_position(origin_record, child_id, level, entity.items_key)
        if child.position is None:
            return child
        child.document_record = child_at(plan.document_record, child.position, level, entity.items_key)
        child.relational_record = child_at(plan.relational_record, child.position, level, entity.items_key)
        return child


DAY = "day"
ITEM = "item"


@dataclass
class CorrelatedChild:
    level: str
    plan: CorrelatedIds
    position: Optional[Tuple[int, ...]] = None
    document_record: Optional[Dict[str, Any]] = None
    relational_record: Optional[Dict[str, Any]] = None

    @property
    def found(self) -> bool:
        return self.document_record is not None or self.relational_record is not None

    @property
    def document_id(self) -> Optional[ObjectId]:
        return ObjectId(self.document_record["id"]) if self.document_record else None

    @property
    def relational_id(self) -> Optional[int]:
        return self.relational_record["id"] if self.relational_record else None

    @property
    def ids(self) -> Dict[str, Any]:
        return {
            StoreName.DOCUMENT.value: self.document_record["id"] if self.document_record else None,
            StoreName.RELATIONAL.value: self.relational_id,
        }


def child_position(plan: Dict[str, Any], child_id: Any, level: str, items_key: str) -> Optional[Tuple[int, ...]]:
    """(day index,) or (day index, item index) of ``child_id`` within a normalized plan."""
    wanted = str(child_id).strip()
    for day_index, day in enumerate(plan.get("days", [])):
        if level == DAY:
            if str(day["id"]) == wanted:
                return (day_index,)
            continue
        for item_index, item in enumerate(day.get(items_key, [])):
            if str(item["id"]) == wanted:
                return day_index, item_index
    return None


def child_at(plan: Optional[Dict[str, Any]], position: Tuple[int, ...], level: str, items_key: str) -> Optional[Dict[str, Any]]:
    if plan is None:
        return None
    days = plan.get("days", [])
    if position[0] >= len(days):
        return None
    day = days[position[0]]
    if level == DAY:
        return day
    items = day.get(items_key, [])
    return items[position[1]] if position[1] < len(items) else None
