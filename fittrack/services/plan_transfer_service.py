import re
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Tuple

from bson import ObjectId
from fastapi import UploadFile
from pydantic import ValidationError as PydanticValidationError

from fittrack.core.logger import get_logger
from fittrack.enums import DuplicateStrategy, PlanKind, TransferFormat
from fittrack.exceptions.errors import ConflictError, ValidationError
from fittrack.persistence import CorrelatedIds, DataStores, Owner, Principal, resolve_owner
from fittrack.schemas.plan_schemas import DietPlanCreate, TrainingPlanCreate
from fittrack.services.plan_service import LABELS, PlanService
from fittrack.utils.file_utils import temporary_upload
from fittrack.utils.transfer_formats import (
    MEDIA_TYPES, PLAN_ROOT, detect_file_format, parse_import_file, serialize_to_format
)

logger = get_logger("plan_transfer_service")

PLAN_SCHEMAS = {
    PlanKind.TRAINING: TrainingPlanCreate,
    PlanKind.DIET: DietPlanCreate,
}

FILENAME_PREFIXES = {
    PlanKind.TRAINING: "training-plan",
    PlanKind.DIET: "diet-plan",
}

COPY_PREFIX = re.compile(r"^Kopia( \(\d+\))? - ")


async def unique_copy_name(name: str, exists: Callable[[str], Awaitable[bool]]) -> str:
    """'Kopia - <name>', then 'Kopia (2) - <name>', 'Kopia (3) - <name>'... until ``exists`` is False."""
    base = COPY_PREFIX.sub("", name)
    candidate = f"Kopia - {name}"
    counter = 1
    while await exists(candidate):
        counter += 1
        candidate = f"Kopia ({counter}) - {base}"
    return candidate


def _order_key(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def export_filename(kind: PlanKind, name: str, fmt: TransferFormat) -> str:
    slug = re.sub(r"\s+", "-", name or "plan")
    return f"{FILENAME_PREFIXES[kind]}-{slug}.{TransferFormat(fmt).value}"


class PlanTransferService:
    """Export plans to JSON/XML/YAML files and import them back."""

    @staticmethod
    def extract_plan_data(record: Dict[str, Any], kind: PlanKind) -> Dict[str, Any]:
        """Flatten a plan into {plan, days, items}; items point at their day through ``dayIndex``."""
        layout = PlanService.entity(kind).document.layout
        days = []
        items = []
        for index, day in enumerate(record.get("days") or []):
            days.append({
                "dayOfWeek": day.get("dayOfWeek"),
                "name": day.get("name"),
                "order": day.get("order", 0),
            })
            for item in day.get(layout.items_key) or []:
                entry = {"dayIndex": index}
                entry.update({key: item.get(key) for key in layout.item_fields})
                items.append(entry)

        return {
            "plan": {
                "name": record.get("name"),
                "description": record.get("description"),
                "isActive": record.get("isActive", True),
                "dateCreated": record.get("dateCreated"),
                "dateUpdated": record.get("dateUpdated"),
            },
            "days": days,
            "items": items,
        }

    @staticmethod
    def reconstruct_plan(import_data: Dict[str, Any], kind: PlanKind):
        """Rebuild a nested plan payload from the flat import structure and validate it."""
        items_key = PlanService.entity(kind).items_key
        info = import_data.get("plan") or {}

        grouped: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
        for item in import_data.get("items") or []:
            if not isinstance(item, dict):
                raise ValidationError("Invalid file structure: malformed item entry")
            try:
                day_index = int(item.get("dayIndex"))
            except (TypeError, ValueError):
                raise ValidationError("Invalid file structure: every item needs a numeric dayIndex")
            grouped[day_index].append({key: value for key, value in item.items() if key != "dayIndex"})

        days = []
        for index, day in enumerate(import_data.get("days") or []):
            if not isinstance(day, dict):
                raise ValidationError("Invalid file structure: malformed day entry")
            days.append({
                "dayOfWeek": day.get("dayOfWeek"),
                "name": day.get("name"),
                "order": day.get("order") or index,
                items_key: sorted(grouped.get(index, []), key=lambda entry: _order_key(entry.get("order"))),
            })

        payload = {
            "name": info.get("name"),
            "description": info.get("description"),
            # Imported plans are never activated automatically
            "isActive": False,
            "days": days,
        }
        try:
            return PLAN_SCHEMAS[PlanKind(kind)].parse_obj(payload)
        except PydanticValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationError(f"Invalid plan data: {location} {first.get('msg', '')}".strip())

    @staticmethod
    async def export(stores: DataStores, principal: Principal, kind: PlanKind, plan_id: str, fmt: str) -> Tuple[str, str, str]:
        """Returns (content, media type, download filename)."""
        try:
            fmt = TransferFormat(fmt)
        except ValueError:
            raise ValidationError("Unsupported format. Available formats: json, xml, yaml")

        plan = await PlanService.get(stores, principal, kind, plan_id)
        content = serialize_to_format(PlanTransferService.extract_plan_data(plan, kind), fmt, PLAN_ROOT)
        logger.info(f"📤 Exported {kind.value} plan {plan_id} as {fmt.value}")
        return content, MEDIA_TYPES[fmt], export_filename(kind, plan.get("name"), fmt)

    @staticmethod
    async def _existing(stores: DataStores, owner: Owner, kind: PlanKind, name: str) -> CorrelatedIds:
        """Ids of the plan called ``name`` in each active store."""
        entity = PlanService.entity(kind)
        existing = CorrelatedIds()
        if stores.mode.uses_document:
            existing.document_record = await stores.document.fetch(
                lambda db: entity.document.find_by_name(db, owner.document_id, name), label=f"{entity.name} by name"
            )
        if stores.mode.uses_relational:
            existing.relational_record = await stores.relational.fetch(
                lambda session: entity.relational.find_by_name(session, owner.relational_id, name),
                label=f"{entity.name} by name",
            )
        if existing.document_record:
            existing.document_id = ObjectId(existing.document_record["id"])
        if existing.relational_record:
            existing.relational_id = existing.relational_record["id"]
        return existing

    @staticmethod
    async def import_plan(
        stores: DataStores,
        principal: Principal,
        kind: PlanKind,
        upload: UploadFile,
        strategy: DuplicateStrategy = DuplicateStrategy.PREFIX,
    ) -> Dict[str, Any]:
        if upload is None or not upload.filename:
            raise ValidationError("No file uploaded")
        fmt = detect_file_format(upload.filename)
        if fmt is None:
            await upload.close()
            raise ValidationError("Cannot determine file format. Supported formats are JSON, XML and YAML")

        owner = resolve_owner(principal, stores.mode)
        plan_label = LABELS[kind][0]
        strategy = DuplicateStrategy(strategy or DuplicateStrategy.PREFIX)

        async with temporary_upload(upload) as path:
            import_data = parse_import_file(path, fmt, PLAN_ROOT)
            plan = PlanTransferService.reconstruct_plan(import_data, kind)

            if await PlanService.name_exists(stores, owner, kind, plan.name):
                if strategy is DuplicateStrategy.REJECT:
                    raise ConflictError(f"{plan_label} named '{plan.name}' already exists. Import rejected")
                if strategy is DuplicateStrategy.PREFIX:
                    plan.name = await unique_copy_name(
                        plan.name, lambda candidate: PlanService.name_exists(stores, owner, kind, candidate)
                    )
                else:
                    existing = await PlanTransferService._existing(stores, owner, kind, plan.name)
                    if existing.found:
                        replaced = await PlanService.delete_correlated(stores, kind, existing)
                        logger.info(f"♻️ Replacing {kind.value} plan '{plan.name}' ({replaced.describe()})")

            result = await PlanService.create_from_payload(stores, owner, kind, plan.dict())
            result.raise_for_failure(f"Failed to import {plan_label.lower()}")

        logger.info(f"📥 Imported {kind.value} plan '{plan.name}' into {result.describe()}")
        return {
            "message": f"{plan_label} imported into {result.describe()}",
            "plan": stores.merger.from_write(result),
            "stores": result.stores,
        }
