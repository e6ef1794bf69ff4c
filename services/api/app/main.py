# Household Kitchen API Main Entry Point
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from .settings import settings
from .core.errors import DomainError
from .db import SessionLocal
from .routers.ready import router as ready_router
from .routers.auth import router as auth_router
from .routers.dishes import router as dishes_router
from .routers.cart import router as cart_router
from .routers.orders import router as orders_router
from .routers.reviews import router as reviews_router
from .routers.stats import router as stats_router
from .routers.admin import router as admin_router
from .routers.dev import router as dev_router
from .services import admin as admin_service
from .services.seed import init_db, seed_household

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger("kitchen")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.seed_on_startup:
        init_db()
        db = SessionLocal()()
        try:
            seed_household(db)
            admin_service.get_or_create_admin_password(db)
        finally:
            db.close()
    yield


# Rate limiter (per-IP)
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])

app = FastAPI(title="Household Kitchen API", version="0.1.0", lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ready_router, prefix="/api", tags=["ready"])
app.include_router(auth_router, prefix="/api", tags=["auth"])
app.include_router(dishes_router, prefix="/api", tags=["dishes"])
app.include_router(cart_router, prefix="/api", tags=["cart"])
app.include_router(orders_router, prefix="/api", tags=["orders"])
app.include_router(reviews_router, prefix="/api", tags=["reviews"])
app.include_router(stats_router, prefix="/api", tags=["stats"])
app.include_router(admin_router, prefix="/api", tags=["admin"])
app.include_router(dev_router, prefix="/api", tags=["dev"])
