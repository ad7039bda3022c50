"""FastAPI app: resolution, pricing and admin rule editing."""

from __future__ import annotations

from contextlib import asynccontextmanager

import duckdb
import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ticketrules import __version__
from ticketrules.api import routes_hospitality, routes_legacy, routes_markup
from ticketrules.api.deps import get_resolver, get_session
from ticketrules.api.schemas import (
    ErrorResponse,
    HealthResponse,
    QuoteRequest,
    QuotesRequest,
    QuotesResponse,
    RateResponse,
    ResolveResponse,
    ScopeBody,
)
from ticketrules.config import Settings, get_settings
from ticketrules.currency import FrankfurterRateProvider, RateCache, RateProvider
from ticketrules.editor import BatchRuleEditor
from ticketrules.errors import BatchApplyError, InvalidRequestError, NotFoundError, PricingError
from ticketrules.pricing import ListingItem, PriceQuote, PricingSession, SessionRegistry
from ticketrules.pricing.composer import normalize_currency
from ticketrules.resolver import Resolver
from ticketrules.storage import RuleStore

log = structlog.get_logger(__name__)


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


def _status_for(exc: PricingError) -> int:
    if isinstance(exc, InvalidRequestError):
        return 422
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, BatchApplyError):
        return 409
    return 502


def create_app(
    settings: Settings | None = None,
    *,
    store: RuleStore | None = None,
    rate_provider: RateProvider | None = None,
) -> FastAPI:
    """Build the app. Store and rate provider are created from settings unless injected."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        rule_store = store or RuleStore.from_settings(settings)
        provider = rate_provider or FrankfurterRateProvider(
            settings.currency_api_base, timeout=settings.rate_http_timeout_sec
        )
        resolver = Resolver(rule_store)

        def new_session(session_id: str) -> PricingSession:
            return PricingSession(
                resolver,
                RateCache(provider, fetch_timeout=settings.rate_fetch_timeout_sec),
                reference_currency=settings.reference_currency,
                default_display_currency=settings.default_display_currency,
                session_id=session_id,
                max_quotes=settings.max_quotes,
            )

        app.state.settings = settings
        app.state.store = rule_store
        app.state.resolver = resolver
        app.state.editor = BatchRuleEditor(rule_store)
        app.state.sessions = SessionRegistry(new_session, max_sessions=settings.max_sessions)
        log.info("api_started", db_path=settings.db_path, reference_currency=settings.reference_currency)

        yield

        if rate_provider is None:
            await provider.aclose()
        if store is None:
            rule_store.close()

    app = FastAPI(
        title="TicketRules API",
        version=__version__,
        lifespan=lifespan,
        responses={code: {"model": ErrorResponse} for code in (404, 409, 422, 503)},
    )
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.exception_handler(PricingError)
    async def pricing_error(request: Request, exc: PricingError) -> JSONResponse:
        return _error_json(exc.code, str(exc), _status_for(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        parts = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
            parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
        return _error_json("invalid_request", "; ".join(parts) or "invalid request", 422)

    @app.exception_handler(duckdb.Error)
    async def store_error(request: Request, exc: duckdb.Error) -> JSONResponse:
        log.error("store_error", path=request.url.path, error=str(exc))
        return _error_json("store_error", "rule store unavailable", 503)

    app.include_router(routes_markup.router)
    app.include_router(routes_hospitality.assignments)
    app.include_router(routes_hospitality.catalogue)
    app.include_router(routes_legacy.router)

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/resolve", response_model=ResolveResponse)
    def resolve(body: ScopeBody, resolver: Resolver = Depends(get_resolver)) -> ResolveResponse:
        """Effective markup and hospitality bundle for one ticket scope."""
        resolution = resolver.resolve(body.to_scope())
        return ResolveResponse(
            markup=resolution.markup,
            hospitalities=resolution.hospitalities,
            message=resolution.markup_message,
        )

    @app.post("/quote", response_model=PriceQuote)
    async def quote(body: QuoteRequest, session: PricingSession = Depends(get_session)) -> PriceQuote:
        return await session.quote(body.to_scope(), body.face_value, body.ticket_currency, body.display_currency)

    @app.post("/quotes", response_model=QuotesResponse)
    async def quotes(body: QuotesRequest, session: PricingSession = Depends(get_session)) -> QuotesResponse:
        """Storefront listing. Tickets whose rules cannot be read are shown at face value."""
        items = [
            ListingItem(scope=i.to_scope(), face_value=i.face_value, ticket_currency=i.ticket_currency)
            for i in body.items
        ]
        priced = await session.quote_listing(items, body.display_currency)
        return QuotesResponse(quotes=priced, session=session.session_id)

    @app.get("/rates/{base}/{target}", response_model=RateResponse)
    async def rate(base: str, target: str, session: PricingSession = Depends(get_session)) -> RateResponse:
        base, target = normalize_currency(base), normalize_currency(target)
        value = await session.rates.get_rate(base, target)
        return RateResponse(base=base, target=target, rate=value, available=value is not None)

    return app


app = create_app()


def run_api(settings: Settings | None = None, *, host: str = "127.0.0.1", port: int = 8000) -> None:
    import uvicorn

    uvicorn.run(create_app(settings or get_settings()), host=host, port=port, reload=False)
