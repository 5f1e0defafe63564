from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from src.api.v1.middleware.error_handler import ErrorHandlerMiddleware
from src.api.v1.middleware.logging_middleware import LoggingMiddleware
from src.api.v1.router import v1_router
from src.config import settings
from src.dependencies import build_services
from src.utils.logging import setup_logging, get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(debug=settings.debug)
    logger = get_logger("startup")
    logger.info("Starting file delivery service", version="0.1.0")

    build_services(app, settings)

    yield

    logger.info("Shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        title="File Delivery Service",
        description="Download delivery with offload or in-process streaming",
        version="0.1.0",
        lifespan=lifespan,
    )

    # The last middleware added wraps all the others.
    # 1. GZip (innermost -- in-process downloads opt out via Content-Encoding)
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    # 2. Error handler (converts delivery errors raised by the handlers)
    app.add_middleware(ErrorHandlerMiddleware)
    # 3. Request/response logger (outermost -- times the whole request)
    app.add_middleware(LoggingMiddleware, offload_header=settings.offload_header)

    app.include_router(v1_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("src.main:app", host=settings.host, port=settings.port)
