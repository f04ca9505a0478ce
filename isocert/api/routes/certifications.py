from fastapi import APIRouter, Depends, HTTPException, Query, Request, status as http_status

from isocert.schemas.certifications import SearchResponse
from isocert.services.search import CertificationSearchService

router = APIRouter()


def get_search_service(request: Request) -> CertificationSearchService:
    service = getattr(request.app.state, "search_service", None)
    if service is None:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail="search service not ready")
    return service


@router.get("/search", response_model=SearchResponse)
async def search_certifications(
    company_name: str = Query(alias="companyName", min_length=1, max_length=255),
    service: CertificationSearchService = Depends(get_search_service),
) -> SearchResponse:
    return await service.search(company_name)
