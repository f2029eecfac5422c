import logging
from fastapi import FastAPI

from immomatch.config import get_settings
from immomatch.database import engine, Base
from immomatch.routers import (
    properties_router, matching_router, shared_properties_router, deduplication_router
)

settings = get_settings()

log_level = logging.DEBUG if settings.debug else logging.INFO
logging.basicConfig(
    level=log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.app_name,
    description="Подбор объектов для покупателей и дедупликация объявлений с порталов",
    version="1.0.0"
)

app.include_router(properties_router)
app.include_router(matching_router)
app.include_router(shared_properties_router)
app.include_router(deduplication_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
