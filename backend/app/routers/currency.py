"""Currency converter router."""

from fastapi import APIRouter, HTTPException

from app.schemas.reconciliation import CurrencyConvertRequest
from app.services.currency_converter import currency_converter

router = APIRouter()


@router.post("/currency-converter")
async def convert(req: CurrencyConvertRequest):
    result = await currency_converter.convert(req.amount, req.source_currency, req.target_currency)
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error)
    return result.to_dict()
