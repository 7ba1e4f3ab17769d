from typing import Optional

from fittrack.core.logger import get_logger
from fittrack.enums import OperationKind, StoreMode, StoreName
from fittrack.persistence.adapters import (
    DocumentOperation,
    DocumentStoreAdapter,
    RelationalOperation,
    RelationalStoreAdapter,
)
from fittrack.persistence.results import DualWriteResult, StoreResult

logger = get_logger("dual_write")


class DualWriteCoordinator:
    """
    Routes one logical write to the stores enabled by ``mode``.

    In dual mode the document store runs first, then the relational store.
    The two are independent: a failure on one side neither stops nor undoes
    the other, and each side gets exactly one attempt. Pass ``None`` for a
    side whose target record does not exist; it is reported as not attempted.
    """

    def __init__(
        self,
        mode: StoreMode,
        document: DocumentStoreAdapter,
        relational: RelationalStoreAdapter,
    ):
        self.mode = mode
        self.document = document
        self.relational = relational

    async def execute(
        self,
        document_op: Optional[DocumentOperation] = None,
        relational_op: Optional[RelationalOperation] = None,
        kind: OperationKind = OperationKind.UPDATE,
        label: str = "write",
    ) -> DualWriteResult:
        document_result = StoreResult.skipped(StoreName.DOCUMENT)
        relational_result = StoreResult.skipped(StoreName.RELATIONAL)

        if self.mode.uses_document and document_op is not None:
            document_result = await self.document.run(document_op, label)

        if self.mode.uses_relational and relational_op is not None:
            relational_result = await self.relational.run(relational_op, kind, label)

        result = DualWriteResult(document=document_result, relational=relational_result, label=label)

        if not result.succeeded:
            logger.error(f"❌ {label}: no store accepted the write (mode={self.mode.value})")
        elif result.partial:
            logger.warning(f"⚠️ {label}: partial write, accepted by {result.describe()} only")
        else:
            logger.info(f"✅ {label}: accepted by {result.describe()}")
        return result
