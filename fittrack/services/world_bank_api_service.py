from typing import Any, Dict, List, Optional

import httpx

from fittrack.core.config import settings
from fittrack.services.statistics_client import StatisticsClient

HEALTH_EXPENDITURE = "SH.XPD.CHEX.GD.ZS"
GDP_PER_CAPITA = "NY.GDP.PCAP.CD"
URBAN_POPULATION = "SP.URB.TOTL.IN.ZS"
GINI_INDEX = "SI.POV.GINI"


def _records(data: Any) -> List[Dict[str, Any]]:
    # Responses are [paging metadata, records]; the records slot is null when nothing matches
    if isinstance(data, list) and len(data) > 1 and isinstance(data[1], list):
        return data[1]
    return []


class WorldBankApiService(StatisticsClient):
    """World Bank Indicators API (v2) client."""

    provider = "World Bank"

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: Optional[float] = None):
        super().__init__(base_url or settings.WORLD_BANK_API_BASE_URL, transport=transport, timeout=timeout)

    async def get_economic_indicator(self, indicator: str, country_code: str, year_start: int, year_end: int) -> List[Dict[str, Any]]:
        async def load():
            data = await self.get_json(f"country/{country_code}/indicator/{indicator}", params={
                "date": f"{year_start}:{year_end}",
                "format": "json",
                "per_page": 100,
            })
            return [
                {
                    "year": item.get("date"),
                    "value": item.get("value"),
                    "country": (item.get("country") or {}).get("value"),
                }
                for item in _records(data)
            ]

        return await self.cached(("indicator", indicator, country_code, year_start, year_end), load)

    async def get_countries(self) -> List[Dict[str, Any]]:
        async def load():
            data = await self.get_json("country", params={"format": "json", "per_page": 300})
            return [
                {
                    "code": country.get("id"),
                    "name": country.get("name"),
                    "region": (country.get("region") or {}).get("value"),
                }
                for country in _records(data)
            ]

        return await self.cached(("countries",), load)

    async def get_available_years(self, indicator: str, country_code: str) -> List[int]:
        """Years with a non-null observation."""
        async def load():
            data = await self.get_json(f"country/{country_code}/indicator/{indicator}", params={
                "format": "json",
                "per_page": 100,
            })
            years = set()
            for item in _records(data):
                if item.get("value") is None:
                    continue
                try:
                    years.add(int(item.get("date")))
                except (TypeError, ValueError):
                    continue
            return sorted(years)

        return await self.cached(("years", indicator, country_code), load)
