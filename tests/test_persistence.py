"""
Dual-store plumbing: adapters, write coordination, identity resolution,
cross-store correlation and read merging.
"""
from types import SimpleNamespace

import pytest
from bson import ObjectId
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from fittrack.enums import IsolationLevel, OperationKind, StoreMode, StoreName
from fittrack.exceptions.errors import NotFoundError, ResolutionError, StoreOperationError
from fittrack.models import Progress
from fittrack.persistence import (
    ISOLATION_POLICY, DualWriteResult, Pagination, Principal, RelationalStoreAdapter, StoreResult,
    classify_id, resolve_document_user_id, resolve_owner, resolve_relational_user_id,
)
from fittrack.repositories.progress import PROGRESS_ENTITY
from fittrack.schemas.progress_schemas import ProgressCreate
from fittrack.services.progress_service import ProgressService
from fittrack.utils.time_utils import utc_now_ms


async def count_progress_rows(stores) -> int:
    return await stores.relational.fetch(
        lambda session: _scalar(session, select(func.count(Progress.id))),
        fallback=0,
    )


async def _scalar(session, statement):
    return (await session.execute(statement)).scalar()


async def _boom(_):
    raise RuntimeError("store is down")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class TestDualWriteResult:

    def test_partial_success_is_success(self):
        result = DualWriteResult(
            document=StoreResult.ok(StoreName.DOCUMENT, {"id": "abc"}),
            relational=StoreResult.failed(StoreName.RELATIONAL, RuntimeError("down")),
        )
        assert result.succeeded
        assert result.partial
        assert result.stores == {"mongo": True, "mysql": False}
        assert result.describe() == "mongo"

    def test_false_and_none_values_are_not_success(self):
        assert not StoreResult.ok(StoreName.DOCUMENT, False).succeeded
        assert not StoreResult.ok(StoreName.DOCUMENT, None).succeeded
        assert not StoreResult.skipped(StoreName.RELATIONAL).succeeded

    def test_raise_for_failure_reports_vanished_target_as_not_found(self):
        result = DualWriteResult(
            document=StoreResult.ok(StoreName.DOCUMENT, None),
            relational=StoreResult.skipped(StoreName.RELATIONAL),
        )
        with pytest.raises(NotFoundError):
            result.raise_for_failure("boom", not_found="Gone")

    def test_raise_for_failure_after_errors_is_a_store_error(self):
        result = DualWriteResult(
            document=StoreResult.failed(StoreName.DOCUMENT, RuntimeError("x")),
            relational=StoreResult.failed(StoreName.RELATIONAL, RuntimeError("y")),
        )
        with pytest.raises(StoreOperationError) as excinfo:
            result.raise_for_failure("Failed to save", not_found="Gone")
        assert excinfo.value.status_code == 500
        assert result.describe() == "none"


# ---------------------------------------------------------------------------
# Adapters and coordinator
# ---------------------------------------------------------------------------

class TestAdapters:

    def test_isolation_policy(self, stores):
        assert ISOLATION_POLICY[OperationKind.CREATE] is IsolationLevel.SERIALIZABLE
        assert ISOLATION_POLICY[OperationKind.DELETE] is IsolationLevel.SERIALIZABLE
        assert ISOLATION_POLICY[OperationKind.LIST] is IsolationLevel.READ_COMMITTED
        assert ISOLATION_POLICY[OperationKind.SIMPLE_WRITE] is IsolationLevel.READ_COMMITTED
        assert stores.relational.isolation_for(OperationKind.UPDATE) is IsolationLevel.REPEATABLE_READ

    async def test_document_errors_are_absorbed(self, stores):
        result = await stores.document.run(_boom, "explode")
        assert result.attempted
        assert isinstance(result.error, RuntimeError)
        assert await stores.document.fetch(_boom, fallback=[]) == []

    async def test_relational_failure_rolls_back(self, stores, principal):
        owner = resolve_owner(principal, stores.mode)

        async def write_then_fail(session):
            await PROGRESS_ENTITY.relational.create(
                session, owner.relational_id, {"weight": 70.0, "trainingTime": 30}, utc_now_ms()
            )
            raise RuntimeError("constraint violated after insert")

        result = await stores.relational.run(write_then_fail, OperationKind.CREATE, "failing insert")

        assert not result.succeeded
        assert isinstance(result.error, RuntimeError)
        assert await count_progress_rows(stores) == 0

    @pytest.mark.parametrize("kind, expected", [
        (OperationKind.CREATE, "SERIALIZABLE"),
        (OperationKind.DELETE, "SERIALIZABLE"),
        (OperationKind.LIST, "READ COMMITTED"),
        (OperationKind.SIMPLE_WRITE, "READ COMMITTED"),
        (OperationKind.READ, "REPEATABLE READ"),
        (OperationKind.UPDATE, "REPEATABLE READ"),
    ])
    def test_mysql_connection_gets_declared_level(self, stores, kind, expected):
        mysql_session = SimpleNamespace(bind=SimpleNamespace(dialect=SimpleNamespace(name="mysql")))

        level = stores.relational.isolation_for(kind)

        assert RelationalStoreAdapter._driver_level(mysql_session, level) == expected

    async def test_each_operation_kind_sets_its_level_on_the_connection(self, stores, monkeypatch):
        requested, applied = [], []
        driver_level = RelationalStoreAdapter._driver_level
        open_connection = AsyncSession.connection

        def record_level(session, level):
            requested.append(level)
            return driver_level(session, level)

        async def record_connection(self, *args, **kwargs):
            if "execution_options" in kwargs:
                applied.append(kwargs["execution_options"]["isolation_level"])
            return await open_connection(self, *args, **kwargs)

        monkeypatch.setattr(RelationalStoreAdapter, "_driver_level", staticmethod(record_level))
        monkeypatch.setattr(AsyncSession, "connection", record_connection)

        for kind in OperationKind:
            await stores.relational.run(lambda session: _scalar(session, select(1)), kind)

        assert requested == [ISOLATION_POLICY[kind] for kind in OperationKind]
        # SQLite runs every transaction serializable
        assert applied == ["SERIALIZABLE"] * len(OperationKind)


class TestCoordinator:

    async def test_dual_write_reaches_both_stores(self, stores, principal):
        response = await ProgressService.create(stores, principal, ProgressCreate(weight=70.5, trainingTime=45))

        assert response["stores"] == {"mongo": True, "mysql": True}
        assert response["progress"]["weight"] == 70.5
        assert response["progress"]["mysqlId"] is not None
        assert await count_progress_rows(stores) == 1

    async def test_one_store_failing_does_not_stop_the_other(self, stores):
        async def relational_write(session):
            return {"id": 7}

        result = await stores.coordinator.execute(
            document_op=_boom,
            relational_op=relational_write,
            kind=OperationKind.SIMPLE_WRITE,
            label="half write",
        )
        assert result.succeeded
        assert result.partial
        assert result.stores == {"mongo": False, "mysql": True}

    async def test_missing_side_is_not_attempted(self, stores):
        async def document_write(db):
            return {"id": "x"}

        result = await stores.coordinator.execute(document_op=document_write, relational_op=None)
        assert result.document.attempted
        assert not result.relational.attempted
        assert not result.partial

    async def test_single_store_mode_skips_the_other_store(self, make_stores):
        calls = []

        async def document_write(db):
            calls.append("mongo")
            return {"id": "x"}

        async def relational_write(session):
            calls.append("mysql")
            return {"id": 1}

        stores = make_stores(StoreMode.RELATIONAL_ONLY)
        result = await stores.coordinator.execute(document_write, relational_write)
        assert calls == ["mysql"]
        assert result.stores == {"mongo": False, "mysql": True}


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

class TestIdentity:

    def test_relational_id_precedence(self):
        principal = Principal(mysql_id=5, sql_id=6, numeric_id=7, current_user={"id": 8})
        assert resolve_relational_user_id(principal) == 5

        principal = Principal(sql_id="6", numeric_id=7)
        assert resolve_relational_user_id(principal) == 6

        principal = Principal(numeric_id="abc", current_user={"id": 8})
        assert resolve_relational_user_id(principal) == 8

    def test_unresolvable_relational_id(self):
        with pytest.raises(ResolutionError) as excinfo:
            resolve_relational_user_id(Principal(id="64b7f0c2a1b2c3d4e5f60718", username="anna"))
        assert excinfo.value.status_code == 401

    def test_document_id_from_token_subject(self):
        oid = ObjectId()
        assert resolve_document_user_id(Principal(id=str(oid))) == oid
        with pytest.raises(ResolutionError):
            resolve_document_user_id(Principal(id="12"))

    def test_owner_only_resolves_active_stores(self):
        principal = Principal(id=str(ObjectId()))
        owner = resolve_owner(principal, StoreMode.DOCUMENT_ONLY)
        assert owner.relational_id is None
        with pytest.raises(ResolutionError):
            resolve_owner(principal, StoreMode.DUAL)

    @pytest.mark.parametrize("value, expected", [
        ("64b7f0c2a1b2c3d4e5f60718", StoreName.DOCUMENT),
        ("42", StoreName.RELATIONAL),
        (42, StoreName.RELATIONAL),
        ("not-an-id", None),
        (True, None),
    ])
    def test_classify_id(self, value, expected):
        assert classify_id(value) is expected


# ---------------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------------

class TestCorrelator:

    async def test_resolves_counterpart_from_either_side(self, stores, principal):
        created = await ProgressService.create(stores, principal, ProgressCreate(weight=71, trainingTime=20))
        mongo_id = created["progress"]["id"]
        mysql_id = created["progress"]["mysqlId"]
        owner = resolve_owner(principal, stores.mode)

        by_mongo = await stores.correlator.resolve(mongo_id, PROGRESS_ENTITY, owner)
        assert by_mongo.relational_id == mysql_id
        assert not by_mongo.ambiguous

        by_mysql = await stores.correlator.resolve(str(mysql_id), PROGRESS_ENTITY, owner)
        assert str(by_mysql.document_id) == mongo_id
        assert by_mysql.origin is StoreName.RELATIONAL

    async def test_ambiguous_match_picks_first_and_flags(self, stores, principal):
        owner = resolve_owner(principal, stores.mode)
        stamp = utc_now_ms()
        data = {"weight": 70.0, "trainingTime": 10}

        document = await stores.document.fetch(
            lambda db: PROGRESS_ENTITY.document.create(db, owner.document_id, data, stamp)
        )
        first = await stores.relational.fetch(
            lambda session: PROGRESS_ENTITY.relational.create(session, owner.relational_id, data, stamp),
            kind=OperationKind.CREATE,
        )
        await stores.relational.fetch(
            lambda session: PROGRESS_ENTITY.relational.create(session, owner.relational_id, data, stamp),
            kind=OperationKind.CREATE,
        )

        correlated = await stores.correlator.resolve(document["id"], PROGRESS_ENTITY, owner)
        assert correlated.ambiguous
        assert correlated.relational_id == first["id"]

    async def test_unknown_id_shape_finds_nothing(self, stores, principal):
        owner = resolve_owner(principal, stores.mode)
        correlated = await stores.correlator.resolve("latest", PROGRESS_ENTITY, owner)
        assert not correlated.found

    async def test_other_users_records_are_invisible(self, stores, principal, register_user):
        created = await ProgressService.create(stores, principal, ProgressCreate(weight=71, trainingTime=20))
        _, intruder = await register_user("mallory")

        with pytest.raises(NotFoundError):
            await ProgressService.get(stores, intruder, created["progress"]["id"])
        with pytest.raises(NotFoundError):
            await ProgressService.get(stores, intruder, str(created["progress"]["mysqlId"]))

    async def test_delete_of_document_only_record(self, stores, principal):
        owner = resolve_owner(principal, stores.mode)
        orphan = await stores.document.fetch(
            lambda db: PROGRESS_ENTITY.document.create(
                db, owner.document_id, {"weight": 69.0, "trainingTime": 15}, utc_now_ms()
            )
        )

        response = await ProgressService.delete(stores, principal, orphan["id"])

        assert response["deleted"] == {"mongo": True, "mysql": False}


# ---------------------------------------------------------------------------
# Read merging
# ---------------------------------------------------------------------------

class TestReadMerger:

    def test_pagination_defaults(self):
        assert Pagination.from_query(None, None) == Pagination(page=1, limit=10)
        assert Pagination.from_query(0, -5) == Pagination(page=1, limit=10)
        assert Pagination(page=3, limit=10).skip == 20
        assert Pagination(page=1, limit=10).page_info(0)["pages"] == 0

    async def test_pages_come_from_one_store_without_duplicates(self, stores, principal):
        for index in range(25):
            await ProgressService.create(
                stores, principal, ProgressCreate(weight=60 + index, trainingTime=index)
            )

        middle = await ProgressService.list(stores, principal, page=2, limit=10)

        assert middle["pagination"] == {"page": 2, "limit": 10, "total": 25, "pages": 3}
        assert [entry["weight"] for entry in middle["progress"]] == [70 + index for index in range(10)]

        page = await ProgressService.list(stores, principal, page=3, limit=10)

        assert page["pagination"] == {"page": 3, "limit": 10, "total": 25, "pages": 3}
        assert len(page["progress"]) == 5
        assert all(isinstance(entry["id"], str) for entry in page["progress"])

    async def test_relational_store_is_authoritative_in_relational_only_mode(self, make_stores, stores, principal):
        await ProgressService.create(stores, principal, ProgressCreate(weight=80, trainingTime=10))
        relational_only = make_stores(StoreMode.RELATIONAL_ONLY)

        page = await ProgressService.list(relational_only, principal)

        assert page["pagination"]["total"] == 1
        assert isinstance(page["progress"][0]["id"], int)

    async def test_single_read_carries_peer_id(self, stores, principal):
        created = await ProgressService.create(stores, principal, ProgressCreate(weight=66, trainingTime=30))

        entry = await ProgressService.get(stores, principal, str(created["progress"]["mysqlId"]))

        assert entry["id"] == created["progress"]["id"]
        assert entry["mysqlId"] == created["progress"]["mysqlId"]
