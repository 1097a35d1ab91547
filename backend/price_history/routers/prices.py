# backend/price_history/routers/prices.py
"""
Stored price and corporate action endpoints.

Read-only views over the files written by the sync. Symbols are portfolio
symbols such as `NASDAQ:AAPL` or `2330:TWSE`.
"""

import logging

from fastapi import APIRouter, Depends, Query

from price_history.dependencies import (
    get_corporate_action_store,
    get_metadata_store,
    get_price_store,
)
from price_history.schemas.prices import (
    DividendResponse,
    PriceRecordResponse,
    PriceSeriesResponse,
    ProviderMetadataResponse,
    SplitResponse,
)
from price_history.services.exceptions import PriceHistoryNotFoundError
from price_history.services.storage import (
    CorporateActionStore,
    PriceStore,
    ProviderMetadataStore,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/prices",
    tags=["Prices"],
)


def _normalize(symbol: str) -> str:
    return symbol.strip().upper()


@router.get(
    "",
    response_model=list[str],
    summary="Symbols with stored prices",
)
def list_symbols(store: PriceStore = Depends(get_price_store)) -> list[str]:
    return store.list_symbols()


@router.get(
    "/{symbol}",
    response_model=PriceSeriesResponse,
    summary="Stored daily history",
)
def get_series(
        symbol: str,
        limit: int | None = Query(default=None, ge=1, description="Only the newest N records"),
        store: PriceStore = Depends(get_price_store),
) -> PriceSeriesResponse:
    """
    The symbol's stored history, newest first.

    Raises **404** if nothing is stored for the symbol.
    """
    symbol = _normalize(symbol)
    series = store.load_series(symbol)
    if limit:
        series = series[:limit]
    return PriceSeriesResponse(
        symbol=symbol,
        count=len(series),
        prices=[PriceRecordResponse.model_validate(record) for record in series],
    )


@router.get(
    "/{symbol}/latest",
    response_model=PriceRecordResponse,
    summary="Newest stored price",
)
def get_latest(symbol: str, store: PriceStore = Depends(get_price_store)) -> PriceRecordResponse:
    symbol = _normalize(symbol)
    record = store.latest_price(symbol)
    if record is None:
        raise PriceHistoryNotFoundError(symbol)
    return PriceRecordResponse.model_validate(record)


@router.get(
    "/{symbol}/dividends",
    response_model=list[DividendResponse],
    summary="Stored dividends, newest first",
)
def get_dividends(
        symbol: str,
        store: CorporateActionStore = Depends(get_corporate_action_store),
) -> list[DividendResponse]:
    return [DividendResponse.model_validate(d) for d in store.load_dividends(_normalize(symbol))]


@router.get(
    "/{symbol}/splits",
    response_model=list[SplitResponse],
    summary="Stored splits, oldest first",
)
def get_splits(
        symbol: str,
        store: CorporateActionStore = Depends(get_corporate_action_store),
) -> list[SplitResponse]:
    return [SplitResponse.model_validate(s) for s in store.load_splits(_normalize(symbol))]


@router.get(
    "/{symbol}/meta",
    response_model=ProviderMetadataResponse,
    summary="Provider metadata from the last fetch",
)
def get_metadata(
        symbol: str,
        store: ProviderMetadataStore = Depends(get_metadata_store),
) -> ProviderMetadataResponse:
    """Raises **404** if the symbol has never been fetched."""
    symbol = _normalize(symbol)
    meta = store.load(symbol)
    if meta is None:
        raise PriceHistoryNotFoundError(symbol)
    return ProviderMetadataResponse(symbol=symbol, meta=meta)
