"""Comparable monthly price per raw provider quote."""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from app.schemas.enhancement import EnhancedQuote
from app.schemas.quote import ProviderPriceRequest
from app.services.pricing.extractors import extract_all_prices

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/provider-prices")
async def provider_prices(req: ProviderPriceRequest):
    """Extract prices; unextractable providers come back as null."""
    enhancements = {}
    for provider, raw in (req.enhancements or {}).items():
        try:
            enhancements[provider.lower()] = EnhancedQuote.model_validate(raw)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=f"Invalid enhancement for {provider}: {e}")

    quotes = {provider.lower(): raw for provider, raw in req.quotes.items()}
    # Providers with only an enhancement are priced from it
    for provider in enhancements:
        quotes.setdefault(provider, None)

    prices = extract_all_prices(quotes, enhancements, req.contract_months)
    return {
        "prices": prices,
        "contractMonths": req.contract_months,
        "excluded": sorted(p for p, price in prices.items() if price is None),
    }
