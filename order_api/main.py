import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from order_api import config
from order_api.database import make_engine
from order_api.errors import PersistenceError
from order_api.routers import orders
from order_api.store import OrderStore, SQLOrderStore
from common.tracing import setup_telemetry # common 모듈 임포트

# 로거 설정
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    store = app.state.store
    if isinstance(store, SQLOrderStore):
        logger.info("Creating database tables for Order API...")
        try:
            store.create_tables()
            logger.info("Order API database tables created successfully.")
        except PersistenceError as e:
            # 스토어를 준비하지 못하면 요청을 받기 전에 종료합니다.
            logger.error(f"Error creating Order API database tables: {e}")
            raise
    yield
    if app.state.owns_store and isinstance(store, SQLOrderStore):
        store.close()
    logger.info("Order API shut down gracefully.")

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # 잘못된 요청 본문은 422 대신 400 으로 응답합니다.
    messages = []
    for err in exc.errors():
        message = str(err.get("msg"))
        ctx_error = (err.get("ctx") or {}).get("error")
        if ctx_error:
            message = f"{message}: {ctx_error}"
        messages.append(message)
    message = "; ".join(messages) if messages else str(exc)
    return JSONResponse(status_code=400, content={"detail": message})

def create_app(store: Optional[OrderStore] = None, enable_telemetry: bool = config.OTEL_ENABLED) -> FastAPI:
    app = FastAPI(lifespan=lifespan)

    app.state.owns_store = store is None
    if store is None:
        logger.info(f"Connecting order store to {config.DATABASE_URL}")
        store = SQLOrderStore(make_engine(config.DATABASE_URL))
    app.state.store = store

    if enable_telemetry:
        logger.info("Setting up OpenTelemetry...")
        setup_telemetry(
            app,
            engine=getattr(store, "engine", None),
            service_name=config.OTEL_SERVICE_NAME,
            endpoint=config.OTEL_EXPORTER_OTLP_ENDPOINT,
        )
        logger.info("OpenTelemetry setup complete.")

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(orders.router)

    @app.get("/")
    def health_check():
        return {"status": "ok", "message": "Order service is running."}

    return app

app = create_app()

def run():
    uvicorn.run("order_api.main:app", host=config.HOST, port=config.PORT)

if __name__ == "__main__":
    run()
