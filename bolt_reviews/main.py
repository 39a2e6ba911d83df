import os
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bolt_reviews.database import init_database
from bolt_reviews.errors import register_exception_handlers

from bolt_reviews.routes import (
    health,
    products,
    reviews,
    reviews_csv,
    setup,
    storefront,
    webhooks,
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "https://admin.shopify.com").split(",")
    if origin.strip()
]


app = FastAPI(title="Bolt Reviews API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# ── Health ─────────────────────────────────────────────────────────
app.include_router(health.router,       prefix="/api")

# ── Admin (embedded app, session token) ────────────────────────────
# reviews_csv has /reviews/export, /reviews/template; keep it ahead of reviews
app.include_router(reviews_csv.router,  prefix="/api")
app.include_router(reviews.router,      prefix="/api")
app.include_router(products.router,     prefix="/api")
app.include_router(setup.router,        prefix="/api")

# ── Storefront (app proxy) & Shopify webhooks ──────────────────────
app.include_router(storefront.router)
app.include_router(webhooks.router)


@app.on_event("startup")
def startup():
    init_database()
    logger.info("Bolt Reviews API started | cors=%s", ",".join(CORS_ORIGINS))
