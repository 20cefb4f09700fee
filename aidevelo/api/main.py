from __future__ import annotations

import logging
import time
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Union

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aidevelo.api.schemas import (
    CatalogOut,
    ConversationAnalysisOut,
    ChatMessageOut,
    ChatReplyOut,
    ContactCreatedOut,
    ContactOut,
    ContactRequest,
    CreateSessionRequest,
    DiscountTierOut,
    Envelope,
    ErrorResponse,
    HealthResponse,
    LeadOut,
    LeadRequest,
    MessageStoredOut,
    ModuleOut,
    PostMessageRequest,
    QuoteOut,
    QuoteRequest,
    SessionOut,
)
from aidevelo.chat.models import ChatMessage, ChatSession
from aidevelo.chat.service import ChatService
from aidevelo.core import config
from aidevelo.core.errors import AideveloError, RateLimitError
from aidevelo.core.rate_limit import InMemoryRateLimiter, RateLimiter
from aidevelo.core.storage import MemoryStorage, Storage, build_storage
from aidevelo.generation.generator import ChatResponder, OpenAIResponder
from aidevelo.lead.scoring import score_contact
from aidevelo.pricing.calc import calculate_pricing, format_discount_percent, format_price
from aidevelo.pricing.catalog import DISCOUNT_TIERS, MODULES, Module

logger = logging.getLogger("aidevelo.api")


# --- Mapping helpers ---
def _module_out(m: Module) -> ModuleOut:
    return ModuleOut(id=m.id, name=m.name, price=m.price, highlights=list(m.highlights), description=m.description)


def _session_out(s: ChatSession) -> SessionOut:
    return SessionOut(**asdict(s))


def _message_out(m: ChatMessage) -> ChatMessageOut:
    return ChatMessageOut(**{**asdict(m), "sender": m.sender.value})


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _field_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    out = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        out.append({"field": ".".join(loc), "message": err.get("msg", "invalid")})
    return out


# --- Dependencies ---
def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def create_app(
    storage: Optional[Storage] = None,
    responder: Optional[ChatResponder] = None,
    rate_limiter: Optional[RateLimiter] = None,
    **service_options: Any,
) -> FastAPI:
    if storage is None:
        storage = build_storage(config.USE_DB, config.DB_URL)
        if isinstance(storage, MemoryStorage) and config.SEED_DEMO_DATA:
            from aidevelo.seed import seed_demo

            demo = seed_demo(storage)
            logger.info("Seeded demo chat agent config %s", demo.id)

    app = FastAPI(title="AIDevelo API", version="1.0.0",
                  docs_url="/docs", redoc_url=None, openapi_url="/openapi.json")

    app.state.storage = storage
    app.state.chat_service = ChatService(
        storage=storage,
        responder=responder or OpenAIResponder(),
        rate_limiter=rate_limiter or InMemoryRateLimiter(),
        **service_options,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOWED_ORIGINS or ["*"], allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"], allow_headers=["*"],
    )

    # --- Request log ---
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            ms = (time.perf_counter() - start) * 1000
            logger.info("%s %s %s in %dms", request.method, request.url.path, response.status_code, ms)
        return response

    # --- Error mapping ---
    @app.exception_handler(RequestValidationError)
    async def on_request_validation(_request: Request, exc: RequestValidationError) -> JSONResponse:
        body = ErrorResponse(message="Validation error", errors=_field_errors(exc))
        return JSONResponse(status_code=400, content=body.model_dump(by_alias=True, exclude_none=True))

    @app.exception_handler(AideveloError)
    async def on_app_error(_request: Request, exc: AideveloError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc, exc_info=exc)
            message = exc.public_message
        else:
            message = exc.message
        body = ErrorResponse(message=message, errors=getattr(exc, "errors", None) or None)
        headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimitError) else None
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(by_alias=True, exclude_none=True), headers=headers)

    @app.exception_handler(Exception)
    async def on_unexpected(_request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error: %s", type(exc).__name__, exc_info=exc)
        body = ErrorResponse(message="Internal server error")
        return JSONResponse(status_code=500, content=body.model_dump(by_alias=True, exclude_none=True))

    # --- Health ---
    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(ok=True)

    # --- Pricing ---
    @app.get("/api/pricing/modules", response_model=Envelope[CatalogOut])
    def pricing_modules() -> Envelope[CatalogOut]:
        catalog = CatalogOut(
            modules=[_module_out(m) for m in MODULES],
            discount_tiers=[
                DiscountTierOut(module_count=t.module_count, discount_percent=t.discount_percent)
                for t in DISCOUNT_TIERS
            ],
        )
        return Envelope[CatalogOut](data=catalog)

    @app.post("/api/pricing/quote", response_model=Envelope[QuoteOut])
    def pricing_quote(req: QuoteRequest) -> Envelope[QuoteOut]:
        quote = calculate_pricing(req.module_ids)
        return Envelope[QuoteOut](data=QuoteOut(
            subtotal=quote.subtotal,
            discount_percent=quote.discount_percent,
            discount_amount=quote.discount_amount,
            total=quote.total,
            selected_modules=[_module_out(m) for m in quote.selected_modules],
            formatted_subtotal=format_price(quote.subtotal),
            formatted_discount=format_price(quote.discount_amount),
            formatted_total=format_price(quote.total),
            formatted_discount_percent=format_discount_percent(quote.discount_percent),
        ))

    # --- Chat ---
    @app.post("/api/chat/sessions", response_model=Envelope[SessionOut], status_code=201)
    def create_chat_session(
        req: CreateSessionRequest,
        request: Request,
        service: ChatService = Depends(get_chat_service),
    ) -> Envelope[SessionOut]:
        session = service.create_session(
            agent_config_id=req.agent_config_id,
            visitor_id=req.visitor_id,
            visitor_email=req.visitor_email,
            visitor_name=req.visitor_name,
            client_ip=_client_ip(request),
        )
        return Envelope[SessionOut](data=_session_out(session))

    @app.post(
        "/api/chat/messages",
        response_model=Union[Envelope[ChatReplyOut], Envelope[MessageStoredOut]],
        response_model_exclude_none=True,
    )
    def post_chat_message(
        req: PostMessageRequest,
        request: Request,
        service: ChatService = Depends(get_chat_service),
    ) -> Union[Envelope[ChatReplyOut], Envelope[MessageStoredOut]]:
        if req.sender == "agent":
            service.store_agent_message(req.session_id, req.message, client_ip=_client_ip(request))
            return Envelope[MessageStoredOut](data=MessageStoredOut())

        reply = service.handle_visitor_message(req.session_id, req.message, client_ip=_client_ip(request))
        return Envelope[ChatReplyOut](data=ChatReplyOut(
            message=reply.message,
            is_action_required=reply.is_action_required,
            action_type=reply.action_type,
            action_data=reply.action_data,
            session_id=req.session_id,
        ))

    @app.get("/api/chat/sessions/{session_id}/messages", response_model=Envelope[List[ChatMessageOut]])
    def chat_transcript(
        session_id: str,
        service: ChatService = Depends(get_chat_service),
    ) -> Envelope[List[ChatMessageOut]]:
        return Envelope[List[ChatMessageOut]](data=[_message_out(m) for m in service.get_history(session_id)])

    @app.post("/api/chat/sessions/{session_id}/end", response_model=Envelope[SessionOut])
    def end_chat_session(
        session_id: str,
        service: ChatService = Depends(get_chat_service),
    ) -> Envelope[SessionOut]:
        return Envelope[SessionOut](data=_session_out(service.end_session(session_id)))

    @app.get("/api/chat/sessions/{session_id}/analysis", response_model=Envelope[ConversationAnalysisOut])
    def chat_analysis(
        session_id: str,
        service: ChatService = Depends(get_chat_service),
    ) -> Envelope[ConversationAnalysisOut]:
        return Envelope[ConversationAnalysisOut](data=ConversationAnalysisOut(**asdict(service.analyze_session(session_id))))

    # --- Leads / contacts ---
    @app.post("/api/leads", response_model=Envelope[LeadOut], status_code=201)
    def create_lead(req: LeadRequest, storage: Storage = Depends(get_storage)) -> Envelope[LeadOut]:
        lead = storage.create_lead(**req.model_dump())
        logger.info("Lead created for %s", lead.company)
        return Envelope[LeadOut](data=LeadOut(**asdict(lead)))

    @app.get("/api/leads", response_model=Envelope[List[LeadOut]])
    def list_leads(storage: Storage = Depends(get_storage)) -> Envelope[List[LeadOut]]:
        return Envelope[List[LeadOut]](data=[LeadOut(**asdict(x)) for x in storage.get_leads()])

    @app.post("/api/contacts", response_model=Envelope[ContactCreatedOut], status_code=201)
    def create_contact(req: ContactRequest, storage: Storage = Depends(get_storage)) -> Envelope[ContactCreatedOut]:
        fields = req.model_dump()
        fields["lead_score"] = score_contact(
            budget=req.budget,
            timeline=req.timeline,
            employee_count=req.employee_count,
            interested_modules=req.interested_modules,
        )
        contact = storage.create_contact(**fields)
        logger.info("Contact created (lead score %s)", contact.lead_score)
        return Envelope[ContactCreatedOut](data=ContactCreatedOut(
            id=contact.id, lead_score=contact.lead_score, status=contact.status,
        ))

    @app.get("/api/contacts", response_model=Envelope[List[ContactOut]])
    def list_contacts(storage: Storage = Depends(get_storage)) -> Envelope[List[ContactOut]]:
        return Envelope[List[ContactOut]](data=[ContactOut(**asdict(x)) for x in storage.get_contacts()])

    return app


config.configure_logging()
app = create_app()
