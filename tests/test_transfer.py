"""
Plan and analysis import/export: file codecs, copy naming, duplicate
strategies and cleanup of spooled uploads.
"""
import io
import json
import os

import pytest
import yaml
from starlette.datastructures import UploadFile

from fittrack.core.config import settings
from fittrack.enums import PlanKind, TransferFormat
from fittrack.exceptions.errors import ApplicationException, ValidationError
from fittrack.services.plan_transfer_service import PlanTransferService, export_filename, unique_copy_name
from fittrack.utils.file_utils import temporary_upload
from fittrack.utils.transfer_formats import (
    ANALYSIS_ROOT, PLAN_ROOT, detect_file_format, parse_import_content, serialize_to_format,
)

PLAN_EXPORT = {
    "plan": {"name": "Push", "description": "Chest and triceps", "isActive": True},
    "days": [
        {"dayOfWeek": "Monday", "name": "Heavy", "order": 0},
        {"dayOfWeek": "Thursday", "name": "Volume", "order": 1},
    ],
    "items": [
        {"dayIndex": 0, "exerciseId": "0025", "exerciseName": "Bench press", "sets": 5, "reps": 5, "order": 0},
        {"dayIndex": 1, "exerciseId": "1457", "exerciseName": "Dips", "sets": 3, "reps": 12, "order": 1},
        {"dayIndex": 1, "exerciseId": "0047", "exerciseName": "Incline press", "sets": 4, "reps": 10, "order": 0},
    ],
}


def uploaded_files():
    return os.listdir(settings.UPLOADS_DIR) if os.path.isdir(settings.UPLOADS_DIR) else []


def plan_file(name="Push", filename="push.json", content=None):
    data = dict(PLAN_EXPORT, plan=dict(PLAN_EXPORT["plan"], name=name))
    return {"file": (filename, content if content is not None else json.dumps(data), "application/json")}


# ---------------------------------------------------------------------------
# Codecs
# ---------------------------------------------------------------------------

class TestFormats:

    @pytest.mark.parametrize("filename, expected", [
        ("plan.JSON", TransferFormat.JSON),
        ("plan.yml", TransferFormat.YAML),
        ("plan.yaml", TransferFormat.YAML),
        ("plan.xml", TransferFormat.XML),
        ("plan.csv", None),
        (None, None),
    ])
    def test_detect_file_format(self, filename, expected):
        assert detect_file_format(filename) is expected

    def test_plan_survives_xml(self):
        text = serialize_to_format(PLAN_EXPORT, TransferFormat.XML, PLAN_ROOT)
        assert text.startswith("<?xml")

        parsed = parse_import_content(text, TransferFormat.XML, PLAN_ROOT)
        plan = PlanTransferService.reconstruct_plan(parsed, PlanKind.TRAINING)

        assert plan.name == "Push"
        assert [day.dayOfWeek for day in plan.days] == ["Monday", "Thursday"]
        assert [item.exerciseName for item in plan.days[1].exercises] == ["Incline press", "Dips"]
        assert plan.days[0].exercises[0].sets == 5

    def test_single_entry_xml_lists_stay_lists(self):
        export = dict(PLAN_EXPORT, days=PLAN_EXPORT["days"][:1], items=PLAN_EXPORT["items"][:1])
        parsed = parse_import_content(serialize_to_format(export, TransferFormat.XML, PLAN_ROOT), TransferFormat.XML, PLAN_ROOT)
        assert len(parsed["days"]) == 1
        assert len(parsed["items"]) == 1

    def test_analysis_survives_yaml(self):
        export = {
            "analysis": {
                "name": "Poland",
                "analysisType": "obesity_vs_health_expenditure",
                "country": {"code": "POL", "name": "Poland"},
                "period": {"start": 2015, "end": 2018},
                "correlation": {"value": 0.28, "interpretation": "Very weak positive correlation"},
            },
            "datasets": {"years": [2015, 2016], "healthData": [20.0, 21.0], "economicData": [6.3, 6.4]},
            "rawData": [{"year": 2015, "healthValue": 20.0, "economicValue": 6.3}],
        }
        text = serialize_to_format(export, TransferFormat.YAML, ANALYSIS_ROOT)
        assert yaml.safe_load(text)["analysis"]["country"]["code"] == "POL"
        assert parse_import_content(text, TransferFormat.YAML, ANALYSIS_ROOT) == export

    @pytest.mark.parametrize("fmt, text", [
        (TransferFormat.JSON, "{not json"),
        (TransferFormat.YAML, "plan: [unclosed"),
        (TransferFormat.XML, "<plan><planInfo>"),
        (TransferFormat.XML, "<analysis><analysisInfo/></analysis>"),
        (TransferFormat.JSON, json.dumps({"plan": {"name": "x"}, "days": "monday"})),
        (TransferFormat.JSON, json.dumps(["plan"])),
    ])
    def test_malformed_files_are_validation_errors(self, fmt, text):
        with pytest.raises(ValidationError):
            parse_import_content(text, fmt, PLAN_ROOT)


class TestReconstruction:

    def test_imported_plans_are_inactive(self):
        plan = PlanTransferService.reconstruct_plan(PLAN_EXPORT, PlanKind.TRAINING)
        assert plan.isActive is False

    def test_items_need_a_numeric_day_index(self):
        broken = dict(PLAN_EXPORT, items=[{"exerciseId": "1"}])
        with pytest.raises(ValidationError):
            PlanTransferService.reconstruct_plan(broken, PlanKind.TRAINING)

    def test_schema_violations_are_validation_errors(self):
        broken = dict(PLAN_EXPORT, plan={"name": ""})
        with pytest.raises(ValidationError):
            PlanTransferService.reconstruct_plan(broken, PlanKind.TRAINING)

    def test_extract_flattens_items_with_day_index(self):
        record = {
            "name": "Cut",
            "days": [
                {"dayOfWeek": "Monday", "order": 0, "meals": [{"recipeId": "9", "title": "Oats", "order": 0}]},
            ],
        }
        flat = PlanTransferService.extract_plan_data(record, PlanKind.DIET)
        assert flat["items"][0]["dayIndex"] == 0
        assert flat["items"][0]["title"] == "Oats"
        assert flat["plan"]["name"] == "Cut"


class TestNaming:

    async def test_copy_names_count_up(self):
        taken = {"Push", "Kopia - Push", "Kopia (2) - Push"}

        async def exists(name):
            return name in taken

        assert await unique_copy_name("Push", exists) == "Kopia (3) - Push"

    async def test_copy_of_a_copy_keeps_base_name(self):
        taken = {"Kopia - Push", "Kopia - Kopia - Push"}

        async def exists(name):
            return name in taken

        assert await unique_copy_name("Kopia - Push", exists) == "Kopia (2) - Push"

    def test_export_filename(self):
        assert export_filename(PlanKind.TRAINING, "Push  Day A", TransferFormat.YAML) == "training-plan-Push-Day-A.yaml"
        assert export_filename(PlanKind.DIET, "Cut", TransferFormat.XML) == "diet-plan-Cut.xml"


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------

class TestTemporaryUpload:

    async def test_file_removed_after_success(self):
        upload = UploadFile(file=io.BytesIO(b'{"a": 1}'), filename="plan.json")
        async with temporary_upload(upload) as path:
            assert os.path.exists(path)
            with open(path, encoding="utf-8") as handle:
                assert handle.read() == '{"a": 1}'
        assert not os.path.exists(path)

    async def test_file_removed_after_error(self):
        upload = UploadFile(file=io.BytesIO(b"data"), filename="../../etc/plan.json")
        with pytest.raises(RuntimeError):
            async with temporary_upload(upload) as path:
                assert os.path.dirname(path) == str(settings.UPLOADS_DIR).rstrip("/")
                raise RuntimeError("import crashed")
        assert not os.path.exists(path)

    async def test_oversized_upload_is_rejected(self, tmp_path):
        upload = UploadFile(file=io.BytesIO(b"x" * 64), filename="big.json")
        with pytest.raises(ApplicationException) as excinfo:
            async with temporary_upload(upload, uploads_dir=str(tmp_path), max_size=10):
                pass
        assert excinfo.value.status_code == 413
        assert os.listdir(tmp_path) == []


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

class TestPlanImportApi:

    async def test_import_with_taken_name_gets_copy_prefix(self, client, auth_headers):
        first = await client.post("/api/v1/plans/training/import", files=plan_file(), headers=auth_headers)
        assert first.status_code == 201
        assert first.json()["plan"]["name"] == "Push"

        second = await client.post("/api/v1/plans/training/import", files=plan_file(), headers=auth_headers)
        assert second.status_code == 201
        body = second.json()
        assert body["plan"]["name"] == "Kopia - Push"
        assert body["plan"]["isActive"] is False
        assert body["stores"] == {"mongo": True, "mysql": True}

        exists = await client.get(
            "/api/v1/plans/check-exists", params={"name": "Kopia - Push", "type": "training"}, headers=auth_headers
        )
        assert exists.json() == {"exists": True, "name": "Kopia - Push", "type": "training"}
        assert uploaded_files() == []

    async def test_reject_strategy_conflicts(self, client, auth_headers):
        await client.post("/api/v1/plans/training/import", files=plan_file(), headers=auth_headers)

        response = await client.post(
            "/api/v1/plans/training/import", files=plan_file(),
            data={"duplicateStrategy": "reject"}, headers=auth_headers,
        )

        assert response.status_code == 409
        assert "already exists" in response.json()["error"]
        assert uploaded_files() == []

    async def test_replace_strategy_swaps_the_plan(self, client, auth_headers):
        await client.post("/api/v1/plans/training/import", files=plan_file(), headers=auth_headers)
        smaller = dict(PLAN_EXPORT, days=PLAN_EXPORT["days"][:1], items=PLAN_EXPORT["items"][:1])

        response = await client.post(
            "/api/v1/plans/training/import",
            files={"file": ("push.json", json.dumps(smaller), "application/json")},
            data={"duplicateStrategy": "replace"}, headers=auth_headers,
        )

        assert response.status_code == 201
        plans = (await client.get("/api/v1/training-plans", headers=auth_headers)).json()["plans"]
        assert [plan["name"] for plan in plans] == ["Push"]
        assert len(plans[0]["days"]) == 1

    async def test_unknown_strategy_and_format(self, client, auth_headers):
        bad_strategy = await client.post(
            "/api/v1/plans/training/import", files=plan_file(),
            data={"duplicateStrategy": "merge"}, headers=auth_headers,
        )
        assert bad_strategy.status_code == 400

        bad_format = await client.post(
            "/api/v1/plans/diet/import", files=plan_file(filename="plan.csv"), headers=auth_headers
        )
        assert bad_format.status_code == 400
        assert uploaded_files() == []

    async def test_malformed_file_leaves_nothing_behind(self, client, auth_headers):
        response = await client.post(
            "/api/v1/plans/training/import", files=plan_file(content="{broken"), headers=auth_headers
        )
        assert response.status_code == 400
        assert uploaded_files() == []
        plans = (await client.get("/api/v1/training-plans", headers=auth_headers)).json()["plans"]
        assert plans == []

    async def test_export_then_import_elsewhere(self, client, auth_headers):
        imported = (await client.post(
            "/api/v1/plans/training/import", files=plan_file(name="Push Day"), headers=auth_headers
        )).json()["plan"]

        exported = await client.get(
            f"/api/v1/plans/training/{imported['mysqlId']}/export", params={"format": "xml"}, headers=auth_headers
        )

        assert exported.status_code == 200
        assert exported.headers["content-type"].startswith("application/xml")
        assert 'filename="training-plan-Push-Day.xml"' in exported.headers["content-disposition"]

        again = await client.post(
            "/api/v1/plans/training/import",
            files={"file": ("export.xml", exported.content, "application/xml")},
            headers=auth_headers,
        )
        assert again.status_code == 201
        assert again.json()["plan"]["name"] == "Kopia - Push Day"
        assert len(again.json()["plan"]["days"]) == 2

    async def test_export_rejects_unknown_format(self, client, auth_headers):
        imported = (await client.post(
            "/api/v1/plans/training/import", files=plan_file(), headers=auth_headers
        )).json()["plan"]

        response = await client.get(
            f"/api/v1/plans/training/{imported['id']}/export", params={"format": "csv"}, headers=auth_headers
        )
        assert response.status_code == 400

    async def test_check_exists_needs_a_valid_type(self, client, auth_headers):
        response = await client.get(
            "/api/v1/plans/check-exists", params={"name": "Push", "type": "cardio"}, headers=auth_headers
        )
        assert response.status_code == 400


class TestAnalysisTransferApi:

    async def create_analysis(self, client, auth_headers, name="Poland 2015-2018"):
        response = await client.post("/api/v1/analytics/analyses", headers=auth_headers, json={
            "name": name,
            "analysisType": "obesity_vs_health_expenditure",
            "countryCode": "pol",
            "countryName": "Poland",
            "yearStart": 2015,
            "yearEnd": 2018,
        })
        assert response.status_code == 201
        return response.json()["analysis"]

    async def test_round_trip_through_json(self, client, auth_headers):
        analysis = await self.create_analysis(client, auth_headers)

        exported = await client.get(f"/api/v1/analyses/{analysis['id']}/export", headers=auth_headers)
        assert exported.status_code == 200
        assert 'filename="analysis-Poland-2015-2018.json"' in exported.headers["content-disposition"]
        payload = exported.json()
        assert payload["datasets"]["years"] == [2015, 2016, 2017, 2018]

        imported = await client.post(
            "/api/v1/analyses/import",
            files={"file": ("analysis.json", exported.content, "application/json")},
            headers=auth_headers,
        )
        assert imported.status_code == 201
        body = imported.json()["analysis"]
        assert body["name"] == "Kopia - Poland 2015-2018"
        assert body["rawData"] == payload["rawData"]

    async def test_xml_import_with_reject(self, client, auth_headers):
        analysis = await self.create_analysis(client, auth_headers)
        exported = await client.get(
            f"/api/v1/analyses/{analysis['id']}/export", params={"format": "xml"}, headers=auth_headers
        )

        rejected = await client.post(
            "/api/v1/analyses/import",
            files={"file": ("analysis.xml", exported.content, "application/xml")},
            data={"duplicateStrategy": "reject"},
            headers=auth_headers,
        )
        assert rejected.status_code == 409
        assert uploaded_files() == []

    async def test_invalid_analysis_type(self, client, auth_headers):
        document = {
            "analysis": {"name": "x", "analysisType": "happiness_vs_weather"},
            "datasets": {"years": [], "healthData": [], "economicData": []},
            "rawData": [],
        }
        response = await client.post(
            "/api/v1/analyses/import",
            files={"file": ("a.json", json.dumps(document), "application/json")},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "Invalid analysis type" in response.json()["error"]
