from immomatch.schemas.client import BuyerCriteriaBase, BuyerCriteriaInput, ClientResponse
from immomatch.schemas.property import PropertyBase, PropertyInput, PropertyResponse
from immomatch.schemas.shared_property import (
    AgencyEntry, SharedPropertyResponse, SharedPropertyUpdate, SharedPropertyListResponse
)
from immomatch.schemas.matching import (
    EvaluateMatchRequest, EvaluateMatchResponse, MatchedPropertyResponse, ClientMatchesResponse,
    CachedMatchResponse, ClientCacheResponse
)
from immomatch.schemas.deduplication import DeduplicationScanResult, DeduplicationStatus
from immomatch.schemas.search_area import (
    InvalidSearchArea, FeatureArea, CircleArea, PointArea, PolygonZone, PointZone, parse_search_area
)

__all__ = [
    "BuyerCriteriaBase", "BuyerCriteriaInput", "ClientResponse",
    "PropertyBase", "PropertyInput", "PropertyResponse",
    "AgencyEntry", "SharedPropertyResponse", "SharedPropertyUpdate", "SharedPropertyListResponse",
    "EvaluateMatchRequest", "EvaluateMatchResponse", "MatchedPropertyResponse", "ClientMatchesResponse",
    "CachedMatchResponse", "ClientCacheResponse",
    "DeduplicationScanResult", "DeduplicationStatus",
    "InvalidSearchArea", "FeatureArea", "CircleArea", "PointArea", "PolygonZone", "PointZone",
    "parse_search_area",
]
