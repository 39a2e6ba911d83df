from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bolt_reviews.database import get_db
from bolt_reviews.models import Product, Review, Settings

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Database round trip plus table counts.
    Used by the hosting platform's health probe.
    """
    try:
        db.execute(text("SELECT 1"))
        counts = {
            "products": db.query(Product).count(),
            "reviews": db.query(Review).count(),
            "settings": db.query(Settings).count(),
        }
    except SQLAlchemyError as e:
        return JSONResponse(
            status_code=500,
            content={
                "status": "unhealthy",
                "database": "disconnected",
                "error": str(e),
                "timestamp": _now(),
            },
        )

    return {
        "status": "healthy",
        "database": "connected",
        "timestamp": _now(),
        "counts": counts,
    }


@router.get("/ping")
def ping():
    return {"ping": "pong"}
