from typing import Any, Dict, List, Optional

import httpx

from fittrack.core.config import settings
from fittrack.services.statistics_client import StatisticsClient

# Global Health Observatory indicator codes
OBESITY = "NCD_BMI_30A"
INSUFFICIENT_ACTIVITY = "NCD_PAA"
NCD_MORTALITY = "NCDMORT3070"
RAISED_GLUCOSE = "NCD_GLUC_04"


class WHOApiService(StatisticsClient):
    """WHO Global Health Observatory (OData) client."""

    provider = "WHO"

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: Optional[float] = None):
        super().__init__(base_url or settings.WHO_API_BASE_URL, transport=transport, timeout=timeout)

    async def get_health_indicator(self, indicator: str, country_code: str, year_start: int, year_end: int) -> List[Dict[str, Any]]:
        """Raw observation records of ``indicator`` for one country, oldest year first."""
        async def load():
            data = await self.get_json(indicator, params={
                "$filter": f"SpatialDim eq '{country_code}' and TimeDim ge {year_start} and TimeDim le {year_end}",
                "$orderby": "TimeDim asc",
            })
            return list((data or {}).get("value") or [])

        return await self.cached(("indicator", indicator, country_code, year_start, year_end), load)

    async def get_countries(self) -> List[Dict[str, str]]:
        async def load():
            data = await self.get_json("DIMENSION/COUNTRY/DimensionValues")
            return [
                {"code": country.get("Code"), "name": country.get("Title")}
                for country in (data or {}).get("value") or []
            ]

        return await self.cached(("countries",), load)

    async def get_available_years(self, indicator: str, country_code: str) -> List[int]:
        async def load():
            data = await self.get_json(indicator, params={
                "$filter": f"SpatialDim eq '{country_code}'",
                "$select": "TimeDim",
            })
            years = set()
            for record in (data or {}).get("value") or []:
                try:
                    years.add(int(record.get("TimeDim")))
                except (TypeError, ValueError):
                    continue
            return sorted(years)

        return await self.cached(("years", indicator, country_code), load)
