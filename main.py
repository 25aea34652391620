from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from app.api.v1.api import api_router
from app.config import CORS_ORIGINS, SEED_DEMO_DATA, SEED_PRODUCTS, SEED_PRODUCT_BATCHES
from app.database import engine, Base, SessionLocal
from app.models import Product, ProductBatch  # noqa: F401  (register tables on Base)
from app.services.seed_service import seed_demo_data

app = FastAPI(
    title="Offline Sync Server",
    description="Pull/push reconciliation for offline-first clients",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies/params are a client error (400), like invalid records."""
    return JSONResponse(
        status_code=400,
        content={"detail": {
            "code": "VALIDATION_ERROR",
            "message": "Malformed request",
            "errors": jsonable_encoder(exc.errors()),
        }},
    )


@app.on_event("startup")
def on_startup():
    """Create database tables on startup, optionally seed demo data."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    if SEED_DEMO_DATA:
        db = SessionLocal()
        try:
            seed_demo_data(db, products=SEED_PRODUCTS, product_batches=SEED_PRODUCT_BATCHES)
        finally:
            db.close()


app.include_router(api_router)


@app.get("/")
def health_check():
    return {"status": "ok"}
