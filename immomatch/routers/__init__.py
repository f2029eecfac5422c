from immomatch.routers.properties import router as properties_router
from immomatch.routers.matching import router as matching_router
from immomatch.routers.shared_properties import router as shared_properties_router
from immomatch.routers.deduplication import router as deduplication_router

__all__ = ["properties_router", "matching_router", "shared_properties_router", "deduplication_router"]
