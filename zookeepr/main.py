"""FastAPI application for the Zookeepr API."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import uvicorn
from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from . import database
from .database import InvalidRecordError, JsonCollectionStore, PersistenceError, QueryValue
from .logging_config import setup_logging
from .models import Animal, ErrorResponse, Zookeeper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Application configuration."""

    animals_file: Path
    zookeepers_file: Path
    public_dir: Path
    log_level: str
    log_file: Optional[str]
    host: str
    port: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings loaded from environment variables."""

    project_root = Path(__file__).resolve().parents[1]
    data_dir = project_root / "data"
    return Settings(
        animals_file=Path(os.getenv("ZOOKEEPR_ANIMALS_FILE", str(data_dir / "animals.json"))),
        zookeepers_file=Path(os.getenv("ZOOKEEPR_ZOOKEEPERS_FILE", str(data_dir / "zookeepers.json"))),
        public_dir=Path(os.getenv("ZOOKEEPR_PUBLIC_DIR", str(project_root / "public"))),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE") or None,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "3001")),
    )


@lru_cache(maxsize=1)
def get_animal_store() -> JsonCollectionStore:
    """Return the process-wide animal store, loading it on first use."""

    return JsonCollectionStore.load(get_settings().animals_file, "animals")


@lru_cache(maxsize=1)
def get_zookeeper_store() -> JsonCollectionStore:
    """Return the process-wide zookeeper store, loading it on first use."""

    return JsonCollectionStore.load(get_settings().zookeepers_file, "zookeepers")


def collapse_items(items: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """Fold repeated keys into lists; a ``key[]`` name always yields a list."""

    values: Dict[str, List[Any]] = {}
    forced: Set[str] = set()
    for key, value in items:
        if key.endswith("[]"):
            key = key[:-2]
            forced.add(key)
        values.setdefault(key, []).append(value)
    return {key: found if key in forced or len(found) > 1 else found[0] for key, found in values.items()}


def query_mapping(request: Request) -> Dict[str, QueryValue]:
    """Collapse the query string into single values, or lists for repeated keys."""

    return collapse_items(request.query_params.multi_items())


async def candidate_body(request: Request) -> Any:
    """Return the submitted record from a JSON or urlencoded body.

    An empty or unparsable body yields ``None`` so the validator rejects it
    with the usual 400 message.
    """

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        return collapse_items(form.multi_items())
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError:
        logger.info("Discarding unparsable request body on %s", request.url.path)
        return None


app = FastAPI(title="Zookeepr API", version="1.0.0")


@app.on_event("startup")
def on_startup() -> None:
    """Configure logging and load both collections."""

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    get_animal_store()
    get_zookeeper_store()


@app.exception_handler(InvalidRecordError)
def handle_invalid_record(request: Request, exc: InvalidRecordError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
def handle_persistence_error(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Unable to save the record."},
    )


# Trailing-slash variants are registered alongside each API route so the
# page fallback below never swallows them.
@app.get("/api/animals", response_model=List[Animal], response_model_exclude_unset=True)
@app.get("/api/animals/", response_model=List[Animal], response_model_exclude_unset=True, include_in_schema=False)
def list_animals(
    query: Dict[str, QueryValue] = Depends(query_mapping),
    store: JsonCollectionStore = Depends(get_animal_store),
) -> List[Dict[str, Any]]:
    """Return animals matching the query string."""

    return database.list_animals(store, query)


@app.get(
    "/api/animals/{animal_id}",
    response_model=Animal,
    response_model_exclude_unset=True,
    responses={404: {"description": "Animal not found"}},
)
@app.get("/api/animals/{animal_id}/", response_model=Animal, response_model_exclude_unset=True, include_in_schema=False)
def get_animal(animal_id: str, store: JsonCollectionStore = Depends(get_animal_store)) -> Any:
    """Return a single animal by id."""

    animal = database.get_animal_by_id(store, animal_id)
    if animal is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return animal


@app.post(
    "/api/animals",
    response_model=Animal,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
@app.post(
    "/api/animals/",
    response_model=Animal,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    include_in_schema=False,
)
def create_animal(
    candidate: Any = Depends(candidate_body),
    store: JsonCollectionStore = Depends(get_animal_store),
) -> Dict[str, Any]:
    """Validate and store a new animal."""

    return database.create_animal(store, candidate)


@app.get("/api/zookeepers", response_model=List[Zookeeper], response_model_exclude_unset=True)
@app.get(
    "/api/zookeepers/",
    response_model=List[Zookeeper],
    response_model_exclude_unset=True,
    include_in_schema=False,
)
def list_zookeepers(
    query: Dict[str, QueryValue] = Depends(query_mapping),
    store: JsonCollectionStore = Depends(get_zookeeper_store),
) -> List[Dict[str, Any]]:
    """Return zookeepers matching the query string."""

    return database.list_zookeepers(store, query)


@app.get(
    "/api/zookeepers/{zookeeper_id}",
    response_model=Zookeeper,
    response_model_exclude_unset=True,
    responses={404: {"description": "Zookeeper not found"}},
)
@app.get(
    "/api/zookeepers/{zookeeper_id}/",
    response_model=Zookeeper,
    response_model_exclude_unset=True,
    include_in_schema=False,
)
def get_zookeeper(zookeeper_id: str, store: JsonCollectionStore = Depends(get_zookeeper_store)) -> Any:
    """Return a single zookeeper by id."""

    zookeeper = database.get_zookeeper_by_id(store, zookeeper_id)
    if zookeeper is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return zookeeper


@app.post(
    "/api/zookeepers",
    response_model=Zookeeper,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
@app.post(
    "/api/zookeepers/",
    response_model=Zookeeper,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    include_in_schema=False,
)
def create_zookeeper(
    candidate: Any = Depends(candidate_body),
    store: JsonCollectionStore = Depends(get_zookeeper_store),
) -> Dict[str, Any]:
    """Validate and store a new zookeeper."""

    return database.create_zookeeper(store, candidate)


def _page(name: str) -> FileResponse:
    return FileResponse(get_settings().public_dir / name, media_type="text/html")


@app.get("/", include_in_schema=False)
def index_page() -> FileResponse:
    return _page("index.html")


@app.get("/animals", include_in_schema=False)
def animals_page() -> FileResponse:
    return _page("animals.html")


@app.get("/zookeepers", include_in_schema=False)
def zookeepers_page() -> FileResponse:
    return _page("zookeepers.html")


app.mount(
    "/assets",
    StaticFiles(directory=get_settings().public_dir / "assets", check_dir=False),
    name="assets",
)


# Registered last so every route and mount above takes precedence.
@app.get("/{full_path:path}", include_in_schema=False)
def fallback_page(full_path: str) -> FileResponse:
    return _page("index.html")


def run() -> None:
    """Serve the application with Uvicorn using the configured host and port."""

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    logger.info("API server now on port %s!", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)
