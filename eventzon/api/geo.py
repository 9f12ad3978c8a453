"""
Cameroon reference data used by event forms.
"""

from typing import List, Optional

from fastapi import APIRouter, Query

from ..reference_data import get_cities, get_regions
from ..schemas.common import City, Region

router = APIRouter(prefix="/cameroon", tags=["reference"])


@router.get("/regions", response_model=List[Region])
async def list_regions():
    return get_regions()


@router.get("/cities", response_model=List[City])
async def list_cities(
    region: Optional[str] = Query(None, description="Only cities of this region")
):
    return get_cities(region)
