from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.routes import router
from app.config.settings import Settings, get_settings
from app.errors import QuoteRequestValidationError, QuoteServiceError
from app.integrations.alpha_vantage import AlphaVantageQuoteProvider
from app.integrations.fmp import FmpQuoteProvider
from app.integrations.twelve_data import TwelveDataQuoteProvider
from app.integrations.yahoo_chart import YahooChartQuoteProvider
from app.services.provider_chain import ProviderChainResolver
from app.services.quote_cache import QuoteCache
from app.services.quote_gateway import QuoteGatewayService
from app.services.synthetic import SyntheticQuoteGenerator


def build_quote_gateway_service(settings: Settings) -> QuoteGatewayService:
    cache = QuoteCache(
        default_ttl=settings.QUOTE_CACHE_TTL_SEC,
        max_entries=settings.QUOTE_CACHE_MAX_ENTRIES,
    )
    http_opts = {
        "timeout": settings.PROVIDER_TIMEOUT_SEC,
        "retry_attempts": settings.PROVIDER_RETRY_ATTEMPTS,
    }
    # priority order: first enabled provider to answer wins
    providers = [
        FmpQuoteProvider(settings.FMP_API_KEY, **http_opts),
        TwelveDataQuoteProvider(settings.TWELVE_DATA_API_KEY, **http_opts),
        AlphaVantageQuoteProvider(settings.ALPHA_VANTAGE_API_KEY, **http_opts),
        YahooChartQuoteProvider(
            enabled=settings.YAHOO_FINANCE_ENABLED,
            proxies=settings.YAHOO_PROXY_URLS,
            retry_attempts=settings.PROVIDER_RETRY_ATTEMPTS,
        ),
    ]
    resolver = ProviderChainResolver(
        providers,
        SyntheticQuoteGenerator(),
        quote_cache=cache,
        quote_ttl_sec=settings.QUOTE_CACHE_TTL_SEC,
    )
    return QuoteGatewayService(
        quote_cache=cache,
        resolver=resolver,
        quote_ttl_sec=settings.QUOTE_CACHE_TTL_SEC,
        search_ttl_sec=settings.SEARCH_CACHE_TTL_SEC,
        indian_share=settings.INDIAN_SHARE_RATIO,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    providers = app.state.quote_gateway_service.resolver.providers
    client = httpx.AsyncClient()
    for provider in providers:
        provider.client = client
    enabled = ",".join(p.name for p in providers if p.enabled) or "none"
    print(f"[APP][http_client_open] providers={len(providers)} enabled={enabled}", flush=True)

    try:
        yield
    finally:
        for provider in providers:
            provider.client = None
        await client.aclose()
        print("[APP][http_client_close]", flush=True)


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


app = FastAPI(title="Market Quote Gateway", version="0.1.0", lifespan=lifespan)
app.include_router(router)


@app.exception_handler(QuoteRequestValidationError)
async def _quote_request_error(request: Request, exc: QuoteRequestValidationError):
    return _error_response(400, "INVALID_REQUEST", exc.message)


@app.exception_handler(RequestValidationError)
async def _query_parse_error(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return _error_response(400, "INVALID_REQUEST", details)


@app.exception_handler(QuoteServiceError)
async def _quote_service_error(request: Request, exc: QuoteServiceError):
    print(f"[APP][internal_error] path={request.url.path} error={exc}", flush=True)
    return _error_response(500, "INTERNAL_ERROR", str(exc))


@app.exception_handler(Exception)
async def _unexpected_error(request: Request, exc: Exception):
    print(
        f"[APP][internal_error] path={request.url.path} error_type={type(exc).__name__} error={exc}",
        flush=True,
    )
    return _error_response(500, "INTERNAL_ERROR", "unexpected server error")


app.state.get_settings = get_settings
app.state.quote_gateway_service = build_quote_gateway_service(get_settings())
