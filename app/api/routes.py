from fastapi import APIRouter, Query, Request

from app.services.quote_gateway import QuoteGatewayService

router = APIRouter()


def _service(request: Request) -> QuoteGatewayService:
    return request.app.state.quote_gateway_service


@router.get('/quotes/ticker')
async def get_ticker(
    request: Request,
    indian: bool = True,
    include_global: bool = Query(default=True, alias='global'),
    limit: int = 15,
):
    return await _service(request).ticker(include_indian=indian, include_global=include_global, limit=limit)


@router.get('/quotes/indian')
async def get_indian_quotes(request: Request, limit: int = 12):
    return await _service(request).market_quotes('indian', limit=limit)


@router.get('/quotes/global')
async def get_global_quotes(request: Request, limit: int = 12):
    return await _service(request).market_quotes('global', limit=limit)


@router.get('/quotes/search/{query}')
def search_quotes(query: str, request: Request, market: str | None = None):
    return _service(request).search(query, market)


@router.get('/quotes/{symbol}')
async def get_quote_detail(symbol: str, request: Request):
    return await _service(request).detail(symbol)


@router.get('/markets/status')
def get_market_status(request: Request):
    return _service(request).market_status()


@router.get('/health')
def get_health(request: Request):
    return _service(request).health()
