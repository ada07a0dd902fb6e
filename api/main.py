# api/main.py
from dotenv import load_dotenv
import os

env = os.getenv("APP_ENV", "local")
if env == "local":
    load_dotenv(".env.local")
else:
    load_dotenv(".env")

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.middleware.rate_limit import RateLimitMiddleware
from api.routers import health, relay
from services.llm_factory import LLMFactory

logger = logging.getLogger(__name__)

INVALID_REQUEST_MESSAGE = "درخواست نامعتبر است. لطفاً ورودی‌ها را بررسی کنید."


@asynccontextmanager
async def lifespan(app: FastAPI):
    provider = LLMFactory.get_provider()
    logger.info(f"🚀 Starting Thesis Assistant relay ({env}) with provider '{provider}'")
    yield
    logger.info("🛑 Shutting down Thesis Assistant relay")


app = FastAPI(
    title="Thesis Assistant Relay API",
    version="1.0.0",
    description="Stateless relay endpoints between the thesis assistant client and the LLM provider.",
    lifespan=lifespan
)


# Every error leaves the API as {"error": "..."}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": INVALID_REQUEST_MESSAGE})


# CORS Configuration
origins = []
if env == "local":
    origins = ["http://localhost:3000", "http://localhost:5173"]  # Common dev ports
else:
    origins_str = os.getenv("ALLOWED_ORIGINS", "")
    origins = [origin.strip() for origin in origins_str.split(",") if origin.strip()]

app.middleware("http")(RateLimitMiddleware(int(os.getenv("RATE_LIMIT_PER_MINUTE", "30"))))
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(health.router)
app.include_router(relay.router, prefix="/api", tags=["Relay"])


@app.get("/")
async def root():
    return {"message": "Thesis Assistant Relay Running Successfully 🚀"}
