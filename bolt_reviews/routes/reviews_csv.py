import uuid
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bolt_reviews.database import get_db
from bolt_reviews.dependencies import AdminSession, authenticate_admin
from bolt_reviews.errors import PersistenceFailure, ValidationError
from bolt_reviews.services.review_csv import export_reviews, import_reviews, template_csv

router = APIRouter(prefix="/reviews", tags=["reviews-csv"])

logger = logging.getLogger(__name__)


def csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# =====================================================
# ADMIN: EXPORT
# =====================================================
@router.get("/export")
def export_csv(
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
    product_id: Optional[uuid.UUID] = Query(None, alias="productId"),
):
    try:
        content, filename = export_reviews(db, session.shop, product_id)
    except SQLAlchemyError as e:
        logger.exception("Review export failed | shop=%s", session.shop)
        raise PersistenceFailure("Failed to export reviews", str(e))

    return csv_response(content, filename)


# =====================================================
# ADMIN: IMPORT
# =====================================================
@router.post("/import")
async def import_csv(
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
):
    if file is None:
        raise ValidationError("No file provided")

    if not (file.filename or "").lower().endswith(".csv"):
        raise ValidationError("Invalid file type. Please upload a CSV file.")

    raw = await file.read()
    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV file must be UTF-8 encoded")

    try:
        result = import_reviews(db, session.shop, content)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Review import failed | shop=%s", session.shop)
        raise PersistenceFailure("Failed to import reviews", str(e))

    return {
        "success": True,
        "message": (
            f"Import complete. Imported {result['imported']} reviews, "
            f"skipped {result['skipped']}."
        ),
        **result,
    }


# =====================================================
# ADMIN: IMPORT TEMPLATE
# =====================================================
@router.get("/template")
def download_template():
    return csv_response(template_csv(), "reviews-import-template.csv")
