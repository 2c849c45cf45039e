import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from core.database import init_db
from core.errors import register_exception_handlers
from core.logging import configure_logging, correlation_id_var
from core.settings import get_settings
from modules.audit.router import router as audit_router
from modules.control_orders.router import router as control_orders_router
from modules.customer_orders.router import router as customer_orders_router
from modules.orchestration.router import router as orchestration_router
from modules.production_orders.router import router as production_orders_router
from modules.reports.router import router as reports_router
from modules.supply_orders.router import router as supply_orders_router
from modules.warehouse_orders.router import router as warehouse_orders_router
from modules.workstation_orders.router import router as workstation_orders_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(title=settings.app_name)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID") or uuid.uuid4().hex
        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    register_exception_handlers(app)

    app.include_router(customer_orders_router)
    app.include_router(warehouse_orders_router)
    app.include_router(production_orders_router)
    app.include_router(control_orders_router)
    app.include_router(workstation_orders_router)
    app.include_router(supply_orders_router)
    app.include_router(orchestration_router)
    app.include_router(audit_router)
    app.include_router(reports_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("Database initialised")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8000)
