"""Cost categorization endpoint."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.schemas.reconciliation import CategorizeCostsRequest, ErrorResponse
from app.services.cost_categorizer import categorize_cost_items
from app.services.errors import LLMError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/categorize-costs", responses={502: {"model": ErrorResponse}})
async def categorize_costs(req: CategorizeCostsRequest):
    try:
        categorized = await categorize_cost_items(req.provider, req.country, req.currency, req.cost_items)
    except LLMError as e:
        logger.warning(f"Cost categorization failed for {req.provider}: {e}")
        return JSONResponse(content={"error": str(e), "stage": "llm"}, status_code=502)
    return categorized.model_dump(by_alias=True)
