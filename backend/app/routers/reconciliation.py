"""Declared vs recomputed totals across providers."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.schemas.reconciliation import ErrorResponse, ReconciliationRequest
from app.services.errors import ConversionError
from app.services.pricing.reconciliation import reconciliation_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/reconciliation", responses={500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}})
async def reconcile(req: ReconciliationRequest):
    """Reconcile enhanced quotes in the target currency.

    ``useLLM`` adds recommendations from one LLM call; if that call fails the
    local-only result is returned instead.
    """
    try:
        result = await reconciliation_service.run(req)
    except ConversionError as e:
        logger.warning(f"Reconciliation conversion failed: {e}")
        return JSONResponse(content={"error": str(e), "stage": "conversion"}, status_code=502)
    except Exception as e:
        logger.error(f"Reconciliation failed: {e}", exc_info=True)
        return JSONResponse(content={"error": "Reconciliation failed"}, status_code=500)
    return result.to_dict()
