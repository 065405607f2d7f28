"""Enrich a quote with local office costs."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.schemas.quote import LocalOfficeEnrichRequest
from app.schemas.reconciliation import ErrorResponse
from app.services.errors import ConversionError
from app.services.pricing.local_office import enrich_quote_with_local_office

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/local-office/enrich", responses={502: {"model": ErrorResponse}})
async def enrich(req: LocalOfficeEnrichRequest):
    try:
        quote = await enrich_quote_with_local_office(
            req.quote,
            currency=req.currency,
            country_name=req.country_name,
            local_office_info=req.local_office_info,
        )
    except ConversionError as e:
        logger.warning(f"Local office enrichment conversion failed: {e}")
        return JSONResponse(content={"error": str(e), "stage": "conversion"}, status_code=502)
    return quote.model_dump(by_alias=True, mode="json")
