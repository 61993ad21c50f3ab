from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from ancillary_engine.api import router as api_router
from ancillary_engine.catalog import CatalogError, load_catalog
from ancillary_engine.config import LOG_LEVEL
import logging

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("ancillary")

app = FastAPI(
    title="Ancillary Engine",
    version="0.1.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event():
    # Catalog is loaded once per process and never mutated afterwards.
    try:
        services = load_catalog()
    except CatalogError as e:
        logger.error(f"Ancillary catalog failed to load: {e}")
        raise
    logger.info(f"Ancillary engine started (catalog: {len(services)} services)")


@app.on_event("shutdown")
def shutdown_event():
    logger.info("Ancillary engine stopped")


app.include_router(api_router, prefix="/api")
