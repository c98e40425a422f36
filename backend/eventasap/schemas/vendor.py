from pydantic import BaseModel
from typing import List, Optional

from .booking import Pagination


class VendorResponse(BaseModel):
    id: int
    display_name: str
    business_name: Optional[str] = None
    category: Optional[str] = None
    city: Optional[str] = None
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class VendorListResponse(BaseModel):
    vendors: List[VendorResponse]
    pagination: Pagination
