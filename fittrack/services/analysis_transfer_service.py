import re
from typing import Any, Dict, Tuple

from fastapi import UploadFile
from pydantic import ValidationError as PydanticValidationError

from fittrack.core.logger import get_logger
from fittrack.enums import AnalysisType, DuplicateStrategy, TransferFormat
from fittrack.exceptions.errors import ConflictError, ValidationError
from fittrack.persistence import DataStores, Owner, Principal, resolve_owner
from fittrack.schemas.analysis_schemas import AnalysisImport
from fittrack.services.analysis_service import AnalysisService
from fittrack.services.plan_transfer_service import unique_copy_name
from fittrack.utils.file_utils import temporary_upload
from fittrack.utils.transfer_formats import (
    ANALYSIS_ROOT, MEDIA_TYPES, detect_file_format, parse_import_file, serialize_to_format
)

logger = get_logger("analysis_transfer_service")


class AnalysisTransferService:

    @staticmethod
    def extract_analysis_data(record: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "analysis": {
                "name": record.get("name"),
                "analysisType": record.get("analysisType"),
                "title": record.get("title"),
                "description": record.get("description"),
                "country": record.get("country"),
                "period": record.get("period"),
                "correlation": record.get("correlation"),
                "result": record.get("result"),
                "createdAt": record.get("createdAt"),
            },
            "datasets": record.get("datasets") or {"years": [], "healthData": [], "economicData": []},
            "rawData": record.get("rawData") or [],
        }

    @staticmethod
    def reconstruct_analysis(import_data: Dict[str, Any]) -> AnalysisImport:
        info = import_data.get("analysis") or {}
        if not info.get("name") or not info.get("analysisType"):
            raise ValidationError("Invalid file structure")
        if info["analysisType"] not in {analysis_type.value for analysis_type in AnalysisType}:
            raise ValidationError(f"Invalid analysis type: {info['analysisType']}")
        try:
            return AnalysisImport.parse_obj(import_data)
        except PydanticValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationError(f"Invalid analysis data: {location} {first.get('msg', '')}".strip())

    @staticmethod
    async def export(stores: DataStores, principal: Principal, analysis_id: str, fmt: str) -> Tuple[str, str, str]:
        try:
            fmt = TransferFormat(fmt)
        except ValueError:
            raise ValidationError("Unsupported format. Available formats: json, xml, yaml")

        analysis = await AnalysisService.get(stores, principal, analysis_id)
        content = serialize_to_format(AnalysisTransferService.extract_analysis_data(analysis), fmt, ANALYSIS_ROOT)
        slug = re.sub(r"\s+", "-", analysis.get("name") or "analysis")
        filename = f"analysis-{slug}.{fmt.value}"
        logger.info(f"📤 Exported analysis {analysis_id} as {fmt.value}")
        return content, MEDIA_TYPES[fmt], filename

    @staticmethod
    async def _name_taken(stores: DataStores, owner: Owner, name: str) -> bool:
        return (await AnalysisService.find_by_name(stores, owner, name)).found

    @staticmethod
    async def import_analysis(
        stores: DataStores,
        principal: Principal,
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
        strategy = DuplicateStrategy(strategy or DuplicateStrategy.PREFIX)

        async with temporary_upload(upload) as path:
            imported = AnalysisTransferService.reconstruct_analysis(parse_import_file(path, fmt, ANALYSIS_ROOT))
            info = imported.analysis
            name = info.name

            existing = await AnalysisService.find_by_name(stores, owner, name)
            if existing.found:
                if strategy is DuplicateStrategy.REJECT:
                    raise ConflictError(f"Analysis named '{name}' already exists. Import rejected")
                if strategy is DuplicateStrategy.PREFIX:
                    name = await unique_copy_name(
                        name, lambda candidate: AnalysisTransferService._name_taken(stores, owner, candidate)
                    )
                else:
                    replaced = await AnalysisService.delete_correlated(stores, existing)
                    logger.info(f"♻️ Replacing analysis '{name}' ({replaced.describe()})")

            data = imported.dict()
            stored = dict(data["analysis"], name=name)
            stored["datasets"] = data["datasets"]
            stored["rawData"] = data["rawData"]
            result = await AnalysisService.save(stores, owner, stored)
            result.raise_for_failure("Failed to import analysis")

        logger.info(f"📥 Imported analysis '{name}' into {result.describe()}")
        return {
            "message": f"Analysis imported into {result.describe()}",
            "analysis": stores.merger.from_write(result),
            "stores": result.stores,
        }
