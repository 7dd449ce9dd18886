import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse

from checkout.config import Settings
from checkout.database import Database
from checkout.logging_config import REQUEST_ID_CTX, configure_logging
from checkout.orders import OrderLifecycleService
from checkout.paypal_service import PayPalClient
from checkout.routes import router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    paypal: Optional[PayPalClient] = None,
) -> FastAPI:
    """Build the checkout app.

    Anything not injected is built from the environment at start-up and torn
    down at shutdown; injected collaborators are left to their owner.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or Settings.from_env()
        configure_logging(cfg.log_level)

        db = database or Database(cfg.database_url)
        db.create_all()
        client = paypal or PayPalClient(
            base_url=cfg.paypal_base_url,
            client_id=cfg.paypal_client_id,
            secret=cfg.paypal_secret,
            brand_name=cfg.brand_name,
            timeout=cfg.paypal_timeout,
        )
        app.state.service = OrderLifecycleService(db, client, cfg.return_url, cfg.cancel_url)
        logger.info("checkout service started")
        try:
            yield
        finally:
            if paypal is None:
                client.close()
            if database is None:
                db.dispose()

    app = FastAPI(title="Checkout Payment Service", lifespan=lifespan)
    app.include_router(router)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        # Malformed requests are reported like any other checkout failure.
        detail = "; ".join(
            ".".join(str(part) for part in err.get("loc", ())) + ": " + err.get("msg", "")
            for err in exc.errors()
        )
        logger.info("request rejected", extra={"path": request.url.path, "error": detail})
        return PlainTextResponse("Error: " + detail, status_code=500)

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = REQUEST_ID_CTX.set(rid)
        try:
            response = await call_next(request)
        finally:
            logger.info("request handled", extra={"path": request.url.path, "method": request.method})
            REQUEST_ID_CTX.reset(token)
        response.headers["X-Request-ID"] = rid
        return response

    return app


app = create_app()
