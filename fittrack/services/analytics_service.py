"""
Health vs economy correlation analyses.

Each analysis type pairs one WHO indicator with one World Bank indicator.
Observations are joined on year, and the Pearson coefficient over the common
years is reported with a strength label and a short narrative chosen by the
coefficient's sign and by how both series moved between the first and last
common year.
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
from fastapi import Request

from fittrack.core.logger import get_logger
from fittrack.enums import AnalysisType
from fittrack.exceptions.errors import ValidationError
from fittrack.services import who_api_service as who
from fittrack.services import world_bank_api_service as wb
from fittrack.services.who_api_service import WHOApiService
from fittrack.services.world_bank_api_service import WorldBankApiService

logger = get_logger("analytics_service")

WHO_SEX = "SEX_BTSX"
WHO_AGE_GROUPS = ("AGEGROUP_YEARS18-PLUS", "AGEGROUP_YEARS30-69")

BOTH_INCREASE = "both_increase"
BOTH_DECREASE = "both_decrease"
HEALTH_UP_ECONOMY_DOWN = "health_increase_economic_decrease"
HEALTH_DOWN_ECONOMY_UP = "health_decrease_economic_increase"

NO_DATA_RESULT = "Not enough data to interpret the results."


@dataclass(frozen=True)
class AnalysisDefinition:
    who_indicator: str
    world_bank_indicator: str
    name: str
    question: str
    title: str
    description: str
    # health measure, economic measure, used in the narrative
    health_label: str
    economic_label: str


ANALYSES = {
    AnalysisType.OBESITY_VS_HEALTH_EXPENDITURE: AnalysisDefinition(
        who_indicator=who.OBESITY,
        world_bank_indicator=wb.HEALTH_EXPENDITURE,
        name="Obesity vs health expenditure",
        question="Do countries that spend more on health care have lower obesity rates?",
        title="Adult obesity prevalence (BMI >= 30, age-standardized) vs current health expenditure (% of GDP)",
        description="Relationship between the prevalence of obesity among adults and the share of GDP spent on health care",
        health_label="obesity prevalence",
        economic_label="health expenditure",
    ),
    AnalysisType.GDP_VS_PHYSICAL_ACTIVITY: AnalysisDefinition(
        who_indicator=who.INSUFFICIENT_ACTIVITY,
        world_bank_indicator=wb.GDP_PER_CAPITA,
        name="GDP per capita vs physical activity",
        question="Does a wealthier society exercise more?",
        title="GDP per capita vs prevalence of insufficient physical activity (age-standardized)",
        description="Relationship between GDP per capita and the share of adults with insufficient physical activity",
        health_label="insufficient physical activity",
        economic_label="GDP per capita",
    ),
    AnalysisType.DEATH_PROBABILITY_VS_URBANIZATION: AnalysisDefinition(
        who_indicator=who.NCD_MORTALITY,
        world_bank_indicator=wb.URBAN_POPULATION,
        name="Death probability vs urbanization",
        question="Are cardiovascular and other chronic diseases deadlier in more urbanized countries?",
        title="Probability of dying aged 30-70 from noncommunicable diseases vs urban population share",
        description=(
            "Relationship between the probability of dying between 30 and 70 from cardiovascular disease, "
            "cancer, diabetes or chronic respiratory disease and the share of the population living in cities"
        ),
        health_label="NCD mortality",
        economic_label="urbanization",
    ),
    AnalysisType.DIABETES_VS_GINI_INDEX: AnalysisDefinition(
        who_indicator=who.RAISED_GLUCOSE,
        world_bank_indicator=wb.GINI_INDEX,
        name="Diabetes vs income inequality",
        question="Is greater income inequality associated with more lifestyle diseases?",
        title="Income inequality (Gini index) vs raised blood glucose prevalence (age-standardized)",
        description="Relationship between the Gini index and the share of adults with raised fasting blood glucose (>= 7.0 mmol/L)",
        health_label="diabetes prevalence",
        economic_label="income inequality",
    ),
}

# (negative correlation?, scenario) -> narrative; {health} and {economic} name the two measures
_NARRATIVES = {
    (True, BOTH_INCREASE): (
        "Both {health} and {economic} rose, but with a negative correlation: {health} grew more slowly "
        "in years where {economic} was higher, which points to a dampening but insufficient effect."
    ),
    (True, BOTH_DECREASE): (
        "Both {health} and {economic} fell, with a negative correlation: {health} dropped faster in years "
        "where {economic} was lower, suggesting other factors dominate."
    ),
    (True, HEALTH_UP_ECONOMY_DOWN): (
        "{Health} rose while {economic} fell. The negative correlation suggests that lower {economic} "
        "goes together with a worsening of {health}."
    ),
    (True, HEALTH_DOWN_ECONOMY_UP): (
        "{Health} fell while {economic} rose. The negative correlation suggests that higher {economic} "
        "goes together with an improvement in {health}."
    ),
    (False, BOTH_INCREASE): (
        "Both {health} and {economic} rose together. The positive correlation suggests that {economic} "
        "grows alongside {health}, possibly as a response to it rather than a cause."
    ),
    (False, BOTH_DECREASE): (
        "Both {health} and {economic} fell together. The positive correlation suggests the two measures "
        "share common socio-economic drivers."
    ),
    (False, HEALTH_UP_ECONOMY_DOWN): (
        "{Health} rose while {economic} fell, despite a positive correlation over the period, which "
        "suggests the relationship changed direction within the selected years."
    ),
    (False, HEALTH_DOWN_ECONOMY_UP): (
        "{Health} fell while {economic} rose, despite a positive correlation over the period, which "
        "suggests other factors drove the improvement."
    ),
}


def _as_float(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def _as_year(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip()[:4])
    except (TypeError, ValueError):
        return None


def trend_scenario(merged: List[Dict[str, Any]]) -> str:
    first, last = merged[0], merged[-1]
    health_up = last["healthValue"] > first["healthValue"]
    economy_up = last["economicValue"] > first["economicValue"]
    if health_up and economy_up:
        return BOTH_INCREASE
    if not health_up and not economy_up:
        return BOTH_DECREASE
    return HEALTH_UP_ECONOMY_DOWN if health_up else HEALTH_DOWN_ECONOMY_UP


class AnalyticsService:
    def __init__(self, who_client: Optional[WHOApiService] = None, world_bank_client: Optional[WorldBankApiService] = None):
        self.who = who_client or WHOApiService()
        self.world_bank = world_bank_client or WorldBankApiService()

    @staticmethod
    def definition(analysis_type: Any) -> AnalysisDefinition:
        try:
            return ANALYSES[AnalysisType(analysis_type)]
        except ValueError:
            raise ValidationError(f"Unknown analysis type: {analysis_type}")

    # Pure computations

    @staticmethod
    def calculate_correlation(x: List[float], y: List[float]) -> Optional[float]:
        """Pearson coefficient; None for empty or mismatched series, 0 when either series is constant."""
        if not x or not y or len(x) != len(y):
            return None
        xs = np.array(x, dtype=float)
        ys = np.array(y, dtype=float)
        if len(xs) < 2 or np.all(xs == xs[0]) or np.all(ys == ys[0]):
            return 0.0
        r = np.corrcoef(xs, ys)[0, 1]
        return 0.0 if np.isnan(r) else float(r)

    @staticmethod
    def merge_datasets(health_data: List[Dict[str, Any]], economic_data: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Join WHO and World Bank observations on year.

        Only WHO records for both sexes and the adult age groups are used.
        Later records for the same year win.
        """
        health = {}
        for record in health_data or []:
            if record.get("Dim1") != WHO_SEX or record.get("Dim2") not in WHO_AGE_GROUPS:
                continue
            year = _as_year(record.get("TimeDim", record.get("year")))
            value = _as_float(record.get("NumericValue", record.get("value")))
            if year is not None and value is not None:
                health[year] = value

        economy = {}
        for record in economic_data or []:
            year = _as_year(record.get("year"))
            value = _as_float(record.get("value"))
            if year is not None and value is not None:
                economy[year] = value

        common_years = sorted(year for year in health if year in economy)
        merged = [
            {"year": year, "healthValue": health[year], "economicValue": economy[year]}
            for year in common_years
        ]
        correlation = None
        if len(merged) >= 2:
            correlation = AnalyticsService.calculate_correlation(
                [point["healthValue"] for point in merged],
                [point["economicValue"] for point in merged],
            )
        return {"mergedData": merged, "correlation": correlation, "commonYears": common_years}

    @staticmethod
    def interpret_correlation(correlation: Optional[float]) -> str:
        if correlation is None:
            return "Not enough data to calculate the correlation"
        strength = abs(correlation)
        if strength >= 0.9:
            label = "Very strong"
        elif strength >= 0.7:
            label = "Strong"
        elif strength >= 0.5:
            label = "Moderate"
        elif strength >= 0.3:
            label = "Weak"
        elif strength > 0:
            label = "Very weak"
        else:
            return "No correlation"
        return f"{label} {'positive' if correlation > 0 else 'negative'} correlation"

    @staticmethod
    def generate_result(analysis_type: Any, correlation: Optional[float], merged: List[Dict[str, Any]]) -> str:
        if correlation is None or not merged:
            return NO_DATA_RESULT
        definition = AnalyticsService.definition(analysis_type)
        template = _NARRATIVES[(correlation < 0, trend_scenario(merged))]
        return template.format(
            health=definition.health_label,
            Health=definition.health_label[0].upper() + definition.health_label[1:],
            economic=definition.economic_label,
        )

    # Provider-backed operations

    async def get_available_countries(self) -> List[Dict[str, Any]]:
        """Countries known to both providers, in World Bank order."""
        who_codes = {country["code"] for country in await self.who.get_countries()}
        return [
            {"code": country["code"], "name": country["name"], "region": country.get("region")}
            for country in await self.world_bank.get_countries()
            if country["code"] in who_codes
        ]

    async def get_common_available_years(self, country_code: str, analysis_type: Any) -> Dict[str, Any]:
        definition = self.definition(analysis_type)
        who_years = await self.who.get_available_years(definition.who_indicator, country_code)
        bank_years = set(await self.world_bank.get_available_years(definition.world_bank_indicator, country_code))
        common = sorted(year for year in set(who_years) if year in bank_years)
        if not common:
            return {"minYear": None, "maxYear": None, "availableYears": []}
        return {"minYear": common[0], "maxYear": common[-1], "availableYears": common}

    @staticmethod
    def analysis_types() -> List[Dict[str, str]]:
        return [
            {"id": analysis_type.value, "name": definition.name, "description": definition.question}
            for analysis_type, definition in ANALYSES.items()
        ]

    async def perform_analysis(self, analysis_type: Any, country_code: str, year_start: int, year_end: int) -> Dict[str, Any]:
        definition = self.definition(analysis_type)
        health_data = await self.who.get_health_indicator(definition.who_indicator, country_code, year_start, year_end)
        economic_data = await self.world_bank.get_economic_indicator(
            definition.world_bank_indicator, country_code, year_start, year_end
        )
        analysis = self.merge_datasets(health_data, economic_data)
        merged = analysis["mergedData"]
        logger.info(
            f"📊 {AnalysisType(analysis_type).value} for {country_code} {year_start}-{year_end}: "
            f"{len(merged)} common years, r={analysis['correlation']}"
        )
        return {
            "title": definition.title,
            "description": definition.description,
            "analysisType": AnalysisType(analysis_type).value,
            "country": country_code,
            "period": f"{year_start}-{year_end}",
            "correlation": analysis["correlation"],
            "correlationInterpretation": self.interpret_correlation(analysis["correlation"]),
            "result": self.generate_result(analysis_type, analysis["correlation"], merged),
            "datasets": {
                "years": analysis["commonYears"],
                "healthData": [point["healthValue"] for point in merged],
                "economicData": [point["economicValue"] for point in merged],
            },
            "rawData": merged,
        }


def get_analytics_service(request: Request) -> AnalyticsService:
    """FastAPI dependency returning the service built at startup."""
    return request.app.state.analytics
