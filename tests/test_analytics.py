"""
Health/economy analytics against faked WHO and World Bank endpoints.
"""
import httpx
import pytest

from fittrack.enums import AnalysisType
from fittrack.exceptions.errors import ExternalServiceError, ValidationError
from fittrack.services.analytics_service import NO_DATA_RESULT, AnalyticsService
from fittrack.services.who_api_service import WHOApiService
from fittrack.services.world_bank_api_service import WorldBankApiService

from conftest import WHO_BASE, WORLD_BANK_BASE, who_record


class TestCorrelation:

    def test_perfect_positive_and_negative(self):
        assert AnalyticsService.calculate_correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
        assert AnalyticsService.calculate_correlation([1, 2, 3], [6, 4, 2]) == pytest.approx(-1.0)

    def test_constant_series_has_no_correlation(self):
        assert AnalyticsService.calculate_correlation([1, 2, 3], [5, 5, 5]) == 0.0

    def test_empty_or_mismatched_series(self):
        assert AnalyticsService.calculate_correlation([], []) is None
        assert AnalyticsService.calculate_correlation([1, 2], [1]) is None

    def test_single_point_has_no_correlation(self):
        assert AnalyticsService.calculate_correlation([3.5], [7.0]) == 0.0

    def test_partial_correlation_is_a_plain_float(self):
        r = AnalyticsService.calculate_correlation([1, 2, 3, 4, 5], [2, 4, 5, 4, 5])

        # 6 / sqrt(10 * 6)
        assert r == pytest.approx(0.7745966692)
        assert type(r) is float

    @pytest.mark.parametrize("value, expected", [
        (0.95, "Very strong positive correlation"),
        (-0.75, "Strong negative correlation"),
        (0.5, "Moderate positive correlation"),
        (-0.31, "Weak negative correlation"),
        (0.1, "Very weak positive correlation"),
        (0.0, "No correlation"),
        (None, "Not enough data to calculate the correlation"),
    ])
    def test_interpretation(self, value, expected):
        assert AnalyticsService.interpret_correlation(value) == expected


class TestMerge:

    def test_only_both_sexes_adult_records_are_joined(self):
        health = [
            who_record(2015, 20.0),
            who_record(2016, 21.0),
            who_record(2016, 50.0, sex="SEX_FMLE"),
            who_record(2017, 22.0, age="AGEGROUP_YEARS30-69"),
            who_record(2018, 23.0),
        ]
        economy = [
            {"year": "2015", "value": 5.0},
            {"year": "2016", "value": 5.5},
            {"year": "2017", "value": 6.0},
            {"year": "2019", "value": 7.0},
        ]

        merged = AnalyticsService.merge_datasets(health, economy)

        assert merged["commonYears"] == [2015, 2016, 2017]
        assert merged["mergedData"][1] == {"year": 2016, "healthValue": 21.0, "economicValue": 5.5}
        assert merged["correlation"] == pytest.approx(1.0)

    def test_single_common_year_has_no_correlation(self):
        merged = AnalyticsService.merge_datasets([who_record(2015, 20.0)], [{"year": "2015", "value": 5.0}])
        assert len(merged["mergedData"]) == 1
        assert merged["correlation"] is None

    def test_narrative_needs_data(self):
        assert AnalyticsService.generate_result(AnalysisType.GDP_VS_PHYSICAL_ACTIVITY, None, []) == NO_DATA_RESULT

    def test_narrative_describes_trend(self):
        merged = [
            {"year": 2015, "healthValue": 30.0, "economicValue": 10.0},
            {"year": 2020, "healthValue": 25.0, "economicValue": 15.0},
        ]
        text = AnalyticsService.generate_result(AnalysisType.GDP_VS_PHYSICAL_ACTIVITY, -1.0, merged)
        assert text.startswith("Insufficient physical activity fell while GDP per capita rose")

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            AnalyticsService.definition("happiness_vs_weather")


class TestProviders:

    async def test_perform_analysis(self, analytics):
        result = await analytics.perform_analysis(AnalysisType.OBESITY_VS_HEALTH_EXPENDITURE, "POL", 2015, 2018)

        assert result["datasets"]["years"] == [2015, 2016, 2017, 2018]
        assert result["datasets"]["healthData"] == [20.0, 21.0, 22.5, 23.0]
        assert result["correlation"] == pytest.approx(0.2845, abs=1e-3)
        assert result["correlationInterpretation"] == "Very weak positive correlation"
        assert result["period"] == "2015-2018"

    async def test_countries_known_to_both_providers(self, analytics):
        countries = await analytics.get_available_countries()
        assert [country["code"] for country in countries] == ["POL", "DEU"]
        assert countries[0]["region"] == "Europe & Central Asia"

    async def test_common_years(self, analytics):
        years = await analytics.get_common_available_years("POL", "diabetes_vs_gini_index")
        assert years == {"minYear": 2015, "maxYear": 2018, "availableYears": [2015, 2016, 2017, 2018]}

    async def test_who_request_shape(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"value": []})

        client = WHOApiService(base_url=WHO_BASE, transport=httpx.MockTransport(handler))
        assert await client.get_health_indicator("NCD_BMI_30A", "POL", 2000, 2010) == []

        request = seen[0]
        assert request.url.path == "/api/NCD_BMI_30A"
        assert request.url.params["$filter"] == "SpatialDim eq 'POL' and TimeDim ge 2000 and TimeDim le 2010"

    async def test_world_bank_null_records_slot(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[{"message": "no data"}, None]))
        client = WorldBankApiService(base_url=WORLD_BANK_BASE, transport=transport)
        assert await client.get_economic_indicator("NY.GDP.PCAP.CD", "POL", 2000, 2001) == []

    async def test_provider_errors_become_bad_gateway(self, statistics_transport):
        client = WHOApiService(base_url=WHO_BASE, transport=statistics_transport)
        with pytest.raises(ExternalServiceError) as excinfo:
            await client.get_json("BROKEN")
        assert excinfo.value.status_code == 502

    async def test_unreachable_provider(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = WorldBankApiService(base_url=WORLD_BANK_BASE, transport=httpx.MockTransport(handler))
        with pytest.raises(ExternalServiceError):
            await client.get_countries()


class TestAnalyticsApi:

    async def test_requires_authentication(self, client):
        response = await client.get("/api/v1/analytics/types")
        assert response.status_code == 401

    async def test_types(self, client, auth_headers):
        response = await client.get("/api/v1/analytics/types", headers=auth_headers)
        body = response.json()
        assert body["success"] is True
        assert {entry["id"] for entry in body["data"]} == {member.value for member in AnalysisType}

    async def test_years_need_both_parameters(self, client, auth_headers):
        response = await client.get("/api/v1/analytics/years", params={"countryCode": "POL"}, headers=auth_headers)
        assert response.status_code == 400

    async def test_saved_analysis_lifecycle(self, client, auth_headers):
        created = await client.post("/api/v1/analytics/analyses", headers=auth_headers, json={
            "name": "Obesity PL",
            "analysisType": "obesity_vs_health_expenditure",
            "countryCode": "POL",
            "countryName": "Poland",
            "yearStart": 2015,
            "yearEnd": 2018,
        })
        assert created.status_code == 201
        analysis = created.json()["analysis"]
        assert created.json()["stores"] == {"mongo": True, "mysql": True}
        assert analysis["country"] == {"code": "POL", "name": "Poland"}

        listing = (await client.get("/api/v1/analytics/analyses", headers=auth_headers)).json()
        assert listing["pagination"]["total"] == 1

        renamed = await client.put(
            f"/api/v1/analytics/analyses/{analysis['mysqlId']}", json={"name": "Obesity Poland"}, headers=auth_headers
        )
        assert renamed.json()["analysis"]["name"] == "Obesity Poland"
        assert renamed.json()["updated"] == {"mongo": True, "mysql": True}

        deleted = await client.delete(f"/api/v1/analytics/analyses/{analysis['id']}", headers=auth_headers)
        assert deleted.json()["deleted"] == {"mongo": True, "mysql": True}

        missing = await client.get(f"/api/v1/analytics/analyses/{analysis['id']}", headers=auth_headers)
        assert missing.status_code == 404

    async def test_invalid_period(self, client, auth_headers):
        response = await client.post("/api/v1/analytics/analyses", headers=auth_headers, json={
            "name": "Backwards",
            "analysisType": "obesity_vs_health_expenditure",
            "countryCode": "POL",
            "countryName": "Poland",
            "yearStart": 2018,
            "yearEnd": 2015,
        })
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request data"
