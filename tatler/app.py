from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Literal

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import DEFAULT_APP_CONFIG, setup_logging
from .db.client import connect, get_collection
from .db.config import DEFAULT_DATABASE_CONFIG
from .restaurants.errors import RestaurantError
from .restaurants.models import (
    CommentCreate,
    HealthResponse,
    MessageResponse,
    Pagination,
    RatingCreate,
    RestaurantCreate,
    RestaurantListResponse,
    RestaurantOut,
    RestaurantResponse,
    RestaurantUpdate,
    SearchResponse,
)
from .restaurants.repository import RestaurantRepository
from .restaurants.service import RestaurantService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(DEFAULT_APP_CONFIG)
    client = connect(DEFAULT_DATABASE_CONFIG)
    repository = RestaurantRepository(get_collection(client, DEFAULT_DATABASE_CONFIG))
    repository.ensure_indexes()
    app.state.restaurant_service = RestaurantService(repository)
    try:
        yield
    finally:
        client.close()
        logger.info("MongoDB connection closed")


app = FastAPI(title="Tatler Restaurants API", version=DEFAULT_APP_CONFIG.version, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=DEFAULT_APP_CONFIG.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_restaurant_service(request: Request) -> RestaurantService:
    return request.app.state.restaurant_service


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info("%s %s -> %d", request.method, request.url.path, response.status_code)
    return response


# ── Error handling ───────────────────────────────────────────────────────


@app.exception_handler(RestaurantError)
async def restaurant_error_handler(request: Request, exc: RestaurantError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Validation Error", "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        content = {"success": False, "message": "Route not found", "path": request.url.path}
    else:
        content = {"success": False, "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal Server Error"},
    )


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(version=DEFAULT_APP_CONFIG.version, timestamp=datetime.now(timezone.utc))


# ── Restaurant endpoints ─────────────────────────────────────────────────


@app.get("/restaurants", response_model=RestaurantListResponse)
def list_restaurants(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    cuisine: str | None = None,
    borough: str | None = None,
    sort_by: Literal["rating", "name"] | None = Query(None, alias="sortBy"),
    service: RestaurantService = Depends(get_restaurant_service),
) -> RestaurantListResponse:
    documents, pagination = service.list_restaurants(
        page=page, limit=limit, cuisine=cuisine, borough=borough, sort_by=sort_by,
    )
    return RestaurantListResponse(
        data=[RestaurantOut.from_document(d) for d in documents],
        pagination=Pagination(**pagination),
    )


# Registered before /restaurants/{restaurant_id} so "search" is not taken as an id.
@app.get("/restaurants/search", response_model=SearchResponse)
def search_restaurants(
    q: str | None = None,
    service: RestaurantService = Depends(get_restaurant_service),
) -> SearchResponse:
    documents = service.search(q)
    return SearchResponse(
        count=len(documents),
        data=[RestaurantOut.from_document(d) for d in documents],
    )


@app.get("/restaurants/{restaurant_id}", response_model=RestaurantResponse)
def get_restaurant(
    restaurant_id: str,
    service: RestaurantService = Depends(get_restaurant_service),
) -> RestaurantResponse:
    document = service.get_restaurant(restaurant_id)
    return RestaurantResponse(data=RestaurantOut.from_document(document))


@app.post("/restaurants", response_model=RestaurantResponse, status_code=201)
def create_restaurant(
    body: RestaurantCreate,
    service: RestaurantService = Depends(get_restaurant_service),
) -> RestaurantResponse:
    document = service.create_restaurant(body.model_dump(exclude_none=True))
    return RestaurantResponse(
        message="Restaurant created successfully",
        data=RestaurantOut.from_document(document),
    )


@app.put("/restaurants/{restaurant_id}", response_model=RestaurantResponse)
def update_restaurant(
    restaurant_id: str,
    body: RestaurantUpdate,
    service: RestaurantService = Depends(get_restaurant_service),
) -> RestaurantResponse:
    document = service.update_restaurant(restaurant_id, body.model_dump(exclude_unset=True))
    return RestaurantResponse(
        message="Restaurant updated successfully",
        data=RestaurantOut.from_document(document),
    )


@app.delete("/restaurants/{restaurant_id}", response_model=MessageResponse)
def delete_restaurant(
    restaurant_id: str,
    service: RestaurantService = Depends(get_restaurant_service),
) -> MessageResponse:
    service.delete_restaurant(restaurant_id)
    return MessageResponse(message="Restaurant deleted successfully")


@app.post("/restaurants/{restaurant_id}/comments", response_model=RestaurantResponse, status_code=201)
def add_comment(
    restaurant_id: str,
    body: CommentCreate,
    service: RestaurantService = Depends(get_restaurant_service),
) -> RestaurantResponse:
    document = service.add_comment(
        restaurant_id, body.comment, user_id=body.user_id, rating=body.rating,
    )
    return RestaurantResponse(
        message="Comment added successfully",
        data=RestaurantOut.from_document(document),
    )


@app.post("/restaurants/{restaurant_id}/ratings", response_model=RestaurantResponse, status_code=201)
def add_rating(
    restaurant_id: str,
    body: RatingCreate,
    service: RestaurantService = Depends(get_restaurant_service),
) -> RestaurantResponse:
    document = service.add_rating(restaurant_id, body.score, grade=body.grade)
    return RestaurantResponse(
        message="Rating added successfully",
        data=RestaurantOut.from_document(document),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=DEFAULT_APP_CONFIG.host, port=DEFAULT_APP_CONFIG.port)
