# backend/eventasap/api/api_vendor.py

from fastapi import APIRouter, Depends, Query
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session
from typing import Any, Optional

from ..crud import crud_user
from ..schemas.booking import Pagination
from ..schemas.vendor import VendorListResponse, VendorResponse
from .dependencies import get_db

router = APIRouter(tags=["vendors"], default_response_class=ORJSONResponse)


@router.get("/vendors", response_model=VendorListResponse)
def list_vendors(
    search: Optional[str] = Query(None, max_length=100, description="Match business name, description or name"),
    category: Optional[str] = Query(None, max_length=50),
    city: Optional[str] = Query(None, max_length=100),
    skip: int = Query(0, ge=0),
    limit: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db),
) -> Any:
    """Public vendor directory; clients pick the ``vendor_id`` to book from here."""
    vendors, total = crud_user.search_vendors(
        db, search=search, category=category, city=city, skip=skip, limit=limit
    )
    return VendorListResponse(
        vendors=[VendorResponse.model_validate(v) for v in vendors],
        pagination=Pagination(skip=skip, limit=limit, total=total),
    )
