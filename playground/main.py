from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from playground.api.routes.chat import router as chat_router
from playground.core.config import settings
from playground.core.logging import get_logger, log_shutdown_info, log_startup_info
from playground.models.response import HealthCheckResponse
from playground.rag.vector_store import get_vector_search_client

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_startup_info()
    logger.info("Application startup completed")
    yield
    log_shutdown_info()


app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Error bodies are {"output": message} on every route."""
    return JSONResponse(status_code=exc.status_code, content={"output": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors (400, not 422)."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    logger.warning(f"Rejected request to {request.url.path}: {message}")
    return JSONResponse(status_code=400, content={"output": message})


@app.get("/health", response_model=HealthCheckResponse)
def health():
    """Health check endpoint: reports vector store reachability."""
    try:
        vector_store = get_vector_search_client().health()
        status = "ok"
    except Exception as e:
        logger.warning(f"Vector store health check failed: {e}")
        vector_store = {"error": str(e)}
        status = "degraded"

    return {
        "status": status,
        "vector_store": vector_store,
        "model_name": settings.LLM_MODEL_NAME,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "playground.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
    )
