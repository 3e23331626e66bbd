"""
External service endpoint constants and query selectors.

This module contains all external endpoint paths and the fixed selector sets
sent to them. Centralizing these values makes it easy to swap out endpoints
or update API versions.
"""


class SoilGridsEndpoints:
    """ISRIC SoilGrids endpoint paths."""

    PROPERTIES_QUERY = "/soilgrids/v2.0/properties/query"


class PowerEndpoints:
    """NASA POWER endpoint paths."""

    DAILY_POINT = "/api/temporal/daily/point"


class GeminiEndpoints:
    """Gemini endpoint paths."""

    GENERATE_CONTENT = "/v1beta/models/{model}:generateContent"

    @classmethod
    def generate_content(cls, model: str) -> str:
        """
        Get the generateContent endpoint for a model.

        Args:
            model: Gemini model name

        Returns:
            Formatted endpoint path
        """
        return cls.GENERATE_CONTENT.format(model=model)


class FeatureSelectors:
    """Overpass tag selectors requested for every shape."""

    ELEMENT_TYPES = ("way", "relation")

    TAGS = (
        "[building]",
        '[natural="wood"]',
        '[leisure="park"]',
        '[natural="water"]',
        '["landuse"="residential"]',
        '["landuse"="commercial"]',
        '["landuse"="industrial"]',
    )


class SoilSelectors:
    """Property, depth and statistic selectors for soil point queries."""

    PROPERTIES = ("phh2o", "soc", "clay", "sand", "silt", "nitrogen", "cec")
    DEPTHS = ("0-5cm", "5-15cm", "15-30cm", "30-60cm")
    VALUES = ("mean", "Q0.05", "Q0.95")


class WeatherSelectors:
    """Daily parameters requested from the weather service."""

    PARAMETERS = (
        "T2M",
        "T2M_MAX",
        "T2M_MIN",
        "PRECTOTCORR",
        "RH2M",
        "WS2M",
        "ALLSKY_SFC_SW_DWN",
        "GWETROOT",
    )
    COMMUNITY = "AG"
    FORMAT = "JSON"
    DATE_FORMAT = "%Y%m%d"


# API Configuration Constants
class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"

    # Timeouts (in seconds)
    LONG_TIMEOUT = 60.0

    # Upstream status reported for transport failures
    TRANSPORT_ERROR_STATUS = 502
