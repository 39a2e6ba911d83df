import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bolt_reviews.database import get_db
from bolt_reviews.dependencies import AdminSession, authenticate_admin, get_catalog_client
from bolt_reviews.errors import PersistenceFailure, UpstreamFailure
from bolt_reviews.services.catalog import sync_products

router = APIRouter(prefix="/products", tags=["products"])

logger = logging.getLogger(__name__)


# =====================================================
# ADMIN: SYNC PRODUCTS FROM SHOPIFY
# =====================================================
@router.post("/sync")
def sync_catalog(
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
    catalog=Depends(get_catalog_client),
):
    try:
        result = sync_products(db, session.shop, catalog)
    except UpstreamFailure as e:
        db.rollback()
        raise UpstreamFailure("Failed to sync products", e.details or e.message)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Product sync failed | shop=%s", session.shop)
        raise PersistenceFailure("Failed to sync products", str(e))

    return {
        "success": True,
        "message": (
            f"Successfully synced {result.created} new products "
            f"and updated {result.updated} existing products"
        ),
        **result.as_dict(),
    }
