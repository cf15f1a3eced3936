from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
import os
import time
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from database import init_db
from routes import router as api_router
from routes.responses import respond, validation_failure
from utils.result import Result

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Create logs directory if it doesn't exist
os.makedirs(settings.log_dir, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format=LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file
log_file_path = os.path.join(settings.log_dir, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path)
file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
logging.getLogger().addHandler(file_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    os.makedirs(settings.upload_dir, exist_ok=True)
    init_db()
    logger.info("Excel Visualizer API started", extra={"upload_dir": settings.upload_dir})
    yield


# Initialize FastAPI app with metadata
app = FastAPI(
    title="Excel Visualizer API",
    description="API for uploading Excel files, analysing their columns and building 2D/3D charts",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration of every request."""
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} in {duration:.3f}s",
        extra={"method": request.method, "path": request.url.path, "status_code": response.status_code}
    )
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning("Request validation failed", extra={"path": request.url.path, "errors": exc.errors()})
    return validation_failure(exc.errors())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return respond(Result.fail(str(exc.detail), status_code=exc.status_code))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", extra={"error": str(exc)})
    message = f"Server error: {str(exc)}" if settings.is_development else "Server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=jsonable_encoder(Result.server_error(message).to_dict())
    )


app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health():
    """
    Health check endpoint.

    Returns:
        dict: {"status": "ok", "service": "excel-visualizer-api"}
    """
    return {"status": "ok", "service": "excel-visualizer-api"}


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Excel Visualizer API in development mode.")
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
