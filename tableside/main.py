"""
FastAPI Application Entry Point

Tableside contactless ordering API.

Endpoints:
    - GET    /api/menu                 List menu items (public)
    - POST   /api/menu                 Create menu item (staff/admin)
    - GET    /api/menu/{id}            Get menu item (public)
    - PUT    /api/menu/{id}            Update menu item (staff/admin)
    - DELETE /api/menu/{id}            Delete menu item (admin)
    - POST   /api/menu/{id}/rate       Rate menu item (authenticated)
    - GET    /api/orders               List orders (staff/admin)
    - POST   /api/orders               Place order (authenticated)
    - GET    /api/orders/myorders      Caller's orders (authenticated)
    - GET    /api/orders/{id}          Get order (owner or staff/admin)
    - PUT    /api/orders/{id}          Edit pending order (owner or staff/admin)
    - DELETE /api/orders/{id}          Delete order (admin)
    - PUT    /api/orders/{id}/status   Change order status (staff/admin)
    - GET    /health                   System health check

Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from tableside.core.config import get_settings, setup_logging
from tableside.core.errors import AppError, ValidationFailed
from tableside.database import engine, get_db, init_db
from tableside.schemas import (
    DeletedEnvelope,
    ErrorResponse,
    HealthResponse,
    MenuItemCreate,
    MenuItemEnvelope,
    MenuItemListEnvelope,
    MenuItemResponse,
    MenuItemUpdate,
    OrderCreate,
    OrderEnvelope,
    OrderListEnvelope,
    OrderResponse,
    OrderStatusUpdate,
    OrderUpdate,
    Pagination,
    RatingCreate,
)
from tableside.services import menu as menu_service
from tableside.services.access import Principal, get_principal
from tableside.services.orders import OrderService, get_order_service
from tableside.services.ratings import rate_menu_item

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Status transitions: {settings.status_transition_policy.value}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Contactless restaurant ordering: menu, ratings and order lifecycle.",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify the database is reachable."""
    db_status = "healthy"
    try:
        await db.execute(select(1))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    return HealthResponse(
        status="operational" if db_status == "healthy" else "degraded",
        database=db_status,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get(
    "/api/menu",
    response_model=MenuItemListEnvelope,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
    summary="List Menu Items",
)
async def list_menu_items(
    category: Optional[str] = Query(None),
    is_vegetarian: Optional[str] = Query(None),
    is_available: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="Comma-separated fields, '-' for descending"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
) -> MenuItemListEnvelope:
    """Public, paginated menu listing sorted by name unless told otherwise."""
    items, total = await menu_service.list_menu_items(
        db,
        category=category,
        is_vegetarian=is_vegetarian,
        is_available=is_available,
        sort=sort,
        page=page,
        limit=limit,
    )
    return MenuItemListEnvelope(
        count=len(items),
        pagination=Pagination(page=page, limit=limit, total=total),
        data=[MenuItemResponse.model_validate(item) for item in items],
    )


@app.post(
    "/api/menu",
    response_model=MenuItemEnvelope,
    responses=ERROR_RESPONSES,
    status_code=201,
    tags=["Menu"],
    summary="Create Menu Item",
)
async def create_menu_item(
    payload: MenuItemCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> MenuItemEnvelope:
    menu_item = await menu_service.create_menu_item(db, principal, payload)
    return MenuItemEnvelope(data=MenuItemResponse.model_validate(menu_item))


@app.get(
    "/api/menu/{item_id}",
    response_model=MenuItemEnvelope,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def get_menu_item(
    item_id: str,
    db: AsyncSession = Depends(get_db),
) -> MenuItemEnvelope:
    menu_item = await menu_service.get_menu_item(db, item_id)
    return MenuItemEnvelope(data=MenuItemResponse.model_validate(menu_item))


@app.put(
    "/api/menu/{item_id}",
    response_model=MenuItemEnvelope,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def update_menu_item(
    item_id: str,
    patch: MenuItemUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> MenuItemEnvelope:
    menu_item = await menu_service.update_menu_item(db, item_id, principal, patch)
    return MenuItemEnvelope(data=MenuItemResponse.model_validate(menu_item))


@app.delete(
    "/api/menu/{item_id}",
    response_model=DeletedEnvelope,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def delete_menu_item(
    item_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> DeletedEnvelope:
    await menu_service.delete_menu_item(db, item_id, principal)
    return DeletedEnvelope()


@app.post(
    "/api/menu/{item_id}/rate",
    response_model=MenuItemEnvelope,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
    summary="Rate Menu Item",
)
async def rate_item(
    item_id: str,
    payload: RatingCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> MenuItemEnvelope:
    """Add or replace the caller's rating and return the item with its new average."""
    menu_item = await rate_menu_item(db, item_id, principal, payload.rating, payload.review)
    return MenuItemEnvelope(data=MenuItemResponse.model_validate(menu_item))


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.get(
    "/api/orders",
    response_model=OrderListEnvelope,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    status: Optional[str] = Query(None),
    order_type: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="Comma-separated fields, '-' for descending"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    principal: Principal = Depends(get_principal),
    service: OrderService = Depends(get_order_service),
    db: AsyncSession = Depends(get_db),
) -> OrderListEnvelope:
    """Retrieve paginated list of orders, newest first by default."""
    orders, total = await service.list_orders(
        db,
        principal,
        status=status,
        order_type=order_type,
        payment_status=payment_status,
        sort=sort,
        page=page,
        limit=limit,
    )
    return OrderListEnvelope(
        count=len(orders),
        pagination=Pagination(page=page, limit=limit, total=total),
        data=[OrderResponse.model_validate(order) for order in orders],
    )


@app.post(
    "/api/orders",
    response_model=OrderEnvelope,
    responses=ERROR_RESPONSES,
    status_code=201,
    tags=["Orders"],
    summary="Place Order",
)
async def create_order(
    payload: OrderCreate,
    principal: Principal = Depends(get_principal),
    service: OrderService = Depends(get_order_service),
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """
    Place an order for the calling user.

    Prices and names are copied from the menu at this moment and
    never change afterwards.
    """
    order = await service.create_order(db, principal, payload)
    return OrderEnvelope(data=OrderResponse.model_validate(order))


@app.get(
    "/api/orders/myorders",
    response_model=OrderListEnvelope,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def list_my_orders(
    principal: Principal = Depends(get_principal),
    service: OrderService = Depends(get_order_service),
    db: AsyncSession = Depends(get_db),
) -> OrderListEnvelope:
    orders = await service.list_my_orders(db, principal)
    return OrderListEnvelope(
        count=len(orders),
        data=[OrderResponse.model_validate(order) for order in orders],
    )


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderEnvelope,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    principal: Principal = Depends(get_principal),
    service: OrderService = Depends(get_order_service),
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """Get a specific order by ID."""
    order = await service.get_order(db, order_id, principal)
    return OrderEnvelope(data=OrderResponse.model_validate(order))


@app.put(
    "/api/orders/{order_id}",
    response_model=OrderEnvelope,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def update_order(
    order_id: str,
    patch: OrderUpdate,
    principal: Principal = Depends(get_principal),
    service: OrderService = Depends(get_order_service),
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """Edit an order that is still pending."""
    order = await service.update_order_fields(db, order_id, principal, patch)
    return OrderEnvelope(data=OrderResponse.model_validate(order))


@app.delete(
    "/api/orders/{order_id}",
    response_model=DeletedEnvelope,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def delete_order(
    order_id: str,
    principal: Principal = Depends(get_principal),
    service: OrderService = Depends(get_order_service),
    db: AsyncSession = Depends(get_db),
) -> DeletedEnvelope:
    await service.delete_order(db, order_id, principal)
    return DeletedEnvelope()


@app.put(
    "/api/orders/{order_id}/status",
    response_model=OrderEnvelope,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Change Order Status",
)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    principal: Principal = Depends(get_principal),
    service: OrderService = Depends(get_order_service),
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """Move an order along its lifecycle; each change is added to its history."""
    order = await service.transition_order_status(
        db, order_id, principal, payload.status, payload.note
    )
    return OrderEnvelope(data=OrderResponse.model_validate(order))


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Translate domain errors into the uniform error body."""
    details = f" {exc.context}" if exc.context else ""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}{details}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}{details}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests as ValidationFailed."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())[1:])
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    failure = ValidationFailed("; ".join(messages) or None)
    return JSONResponse(status_code=failure.status_code, content=failure.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes and methods use the same error body."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {"status": exc.status_code, "message": str(exc.detail)},
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "status": 500,
                "message": str(exc) if settings.debug else "An unexpected error occurred",
            },
        },
    )


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(
        "tableside.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    run()
