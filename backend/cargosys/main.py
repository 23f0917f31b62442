"""
CargoSys Tracking - FastAPI Backend

`app` is built by create_app() at import time; uvicorn serves
`cargosys.main:app`.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cargosys.api.payloads import SERVICE_NAME, SERVICE_VERSION, health_payload, service_info
from cargosys.api.track import router as track_router, folder_router
from cargosys.services.repository import configured_data_folder, get_repository, init_repository


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


API_DESCRIPTION = """
Cold-chain shipment tracking.

Any tracking code resolves to a series: a recorded CSV from the data folder
when one exists, otherwise deterministic synthetic telemetry.

- `GET /track/{code}`: full series
- `GET /track/{code}/view`: chart points, incidents and hot/cold route segments
- `GET /track/{code}/csv`: export of a time window
- `GET|POST /folder`: inspect or switch the recorded-data folder
"""


def attach_recorded_folder() -> None:
    """Point the repository at the configured folder unless one is already set."""
    if get_repository().data_folder is not None:
        return

    folder = configured_data_folder()
    if not folder.exists():
        logger.info(f"No recorded data at {folder}; serving simulated series only")
        return
    init_repository(folder)
    logger.info(f"Serving recorded series from {folder}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{SERVICE_NAME} {SERVICE_VERSION} starting")
    attach_recorded_folder()
    yield
    logger.info(f"{SERVICE_NAME} stopped")


def create_app() -> FastAPI:
    """Build the FastAPI app with CORS and every router mounted."""
    api = FastAPI(
        title=SERVICE_NAME,
        description=API_DESCRIPTION,
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    # Content-Disposition carries the CSV filename
    api.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )
    api.include_router(track_router)
    api.include_router(folder_router)

    @api.get("/")
    async def root():
        return service_info()

    @api.get("/health")
    async def health_check():
        return health_payload(get_repository())

    return api


app = create_app()
