# storefront/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.api.middleware import SessionCartMiddleware
from storefront.api.routers import admin, auth, cart, health, me, orders, products, webhooks
from storefront.data.database import init_db
from storefront.domain.errors import StorefrontError, join_messages
from storefront.domain.schemas import ActionResult
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database")
    init_db()
    yield


def _validation_messages(exc: RequestValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        msg = str(err.get("msg", ""))
        if msg.startswith("Value error, "):
            messages.append(msg[len("Value error, "):])
        else:
            field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
            messages.append(f"{field}: {msg}" if field else msg)
    return messages


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def handle_storefront_error(request: Request, exc: StorefrontError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        result = ActionResult(success=False, message=exc.message, redirect_to=exc.redirect_to)
        return JSONResponse(status_code=exc.status_code, content=result.model_dump())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        result = ActionResult(success=False, message=join_messages(_validation_messages(exc)))
        return JSONResponse(status_code=422, content=result.model_dump())

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        result = ActionResult(success=False, message="Something went wrong")
        return JSONResponse(status_code=500, content=result.model_dump())


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(SessionCartMiddleware)
    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(products.router)
    app.include_router(cart.router)
    app.include_router(me.router)
    app.include_router(orders.router)
    app.include_router(webhooks.router)
    app.include_router(admin.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
