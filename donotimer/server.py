from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, ORJSONResponse
from fastapi.templating import Jinja2Templates

from .admin import AdminMutator, config_view
from .config import Settings
from .errors import CountdownError, ValidationError
from .helpers import Clock, configure_logging, now_ms, to_iso
from .infra.sql import make_async_engine
from .model import CountdownState, UpdateSerializer
from .model.store import StateStore, create_schema, new_store
from .query import QueryFacade
from .signing import WebhookVerifier
from .webhook import WebhookProcessor

logger = logging.getLogger(__name__)

templates = Jinja2Templates(
    directory=str(Path(__file__).parent / "templates")
)


# ----------------------------
# Wiring
# ----------------------------
def _wire(app: FastAPI, store: StateStore) -> None:
    settings: Settings = app.state.settings
    clock: Clock = app.state.clock
    serializer = UpdateSerializer(store)
    app.state.store = store
    app.state.processor = WebhookProcessor(store, serializer, clock=clock)
    app.state.mutator = AdminMutator(store, serializer,
                                     settings.admin_password)
    app.state.facade = QueryFacade(store, clock=clock,
                                   display_timezone=settings.display_timezone)


async def _open_store(settings: Settings) -> StateStore:
    def defaults() -> CountdownState:
        return CountdownState.initial(
            settings.initial_target_at,
            settings.rp_per_unit,
            settings.seconds_per_unit,
        )

    if settings.backend == "redis":
        r = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=2.0,
            socket_connect_timeout=2.0,
            retry_on_timeout=True,
        )
        return new_store("redis", defaults=defaults, r=r,
                         key=settings.state_key)
    if settings.backend == "sql":
        engine, gated = make_async_engine(settings.database_url)
        async with engine.begin() as conn:
            await create_schema(conn)
        return new_store("sql", defaults=defaults, engine=engine,
                         gated=gated)
    return new_store(settings.backend, defaults=defaults,
                     path=settings.state_file)


def _component(request: Request, name: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise RuntimeError(f"{name} not initialized")
    return component


def get_processor(request: Request) -> WebhookProcessor:
    return _component(request, "processor")


def get_mutator(request: Request) -> AdminMutator:
    return _component(request, "mutator")


def get_facade(request: Request) -> QueryFacade:
    return _component(request, "facade")


def bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def create_app(settings: Optional[Settings] = None,
               store: Optional[StateStore] = None,
               clock: Clock = now_ms) -> FastAPI:
    """Build the app.

    With `store` given the components are wired immediately (tests);
    otherwise the configured backend is opened on startup.
    """
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="donotimer",
        default_response_class=ORJSONResponse,
    )
    app.state.settings = settings
    app.state.clock = clock
    app.state.verifier = WebhookVerifier(settings.webhook_secret)
    if store is not None:
        _wire(app, store)

    # ---
    # startup / shutdown
    # ---
    @app.on_event("startup")
    async def _store_start():
        if getattr(app.state, "store", None) is not None:
            return
        configure_logging(settings.log_level)
        _wire(app, await _open_store(settings))
        logger.info("donotimer starting up: backend=%s target=%s",
                    settings.backend, to_iso(settings.initial_target_at))

    @app.on_event("shutdown")
    async def _store_stop():
        s = getattr(app.state, "store", None)
        if s is not None:
            await s.close()
            app.state.store = None

    # ----------------------------
    # Error mapping
    # ----------------------------
    @app.exception_handler(CountdownError)
    async def _countdown_error(request: Request, exc: CountdownError):
        body = {"error": exc.message}
        if isinstance(exc, ValidationError) and exc.field_errors:
            body["fields"] = exc.field_errors
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method,
                         request.url.path, exc.message)
        return ORJSONResponse(body, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def _internal_error(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method,
                         request.url.path)
        return ORJSONResponse({"error": "Internal server error"},
                              status_code=500)

    # ----------------------------
    # API: countdown snapshot (polled every second)
    # ----------------------------
    @app.get("/api/countdown")
    async def get_countdown(facade: QueryFacade = Depends(get_facade)):
        return await facade.snapshot()

    # ----------------------------
    # API: admin
    # ----------------------------
    @app.post("/api/admin/login")
    async def admin_login(request: Request,
                          mutator: AdminMutator = Depends(get_mutator)):
        body = await _json_body(request)
        password = body.get("password")
        token = mutator.login(password if isinstance(password, str)
                              else None)
        return {"success": True, "token": token}

    @app.get("/api/admin")
    async def admin_get(request: Request,
                        mutator: AdminMutator = Depends(get_mutator)):
        return await mutator.read_config(bearer_token(request))

    @app.patch("/api/admin")
    async def admin_patch(request: Request,
                          mutator: AdminMutator = Depends(get_mutator)):
        credential = bearer_token(request)
        mutator.authorize(credential)
        body = await _json_body(request)
        updated = await mutator.apply(credential, body)
        return {"message": "State updated", **config_view(updated)}

    # ----------------------------
    # Webhook endpoint (donation platform)
    # ----------------------------
    @app.api_route("/api/webhook", methods=["POST", "PUT", "PATCH"])
    async def donation_webhook(
        request: Request,
        processor: WebhookProcessor = Depends(get_processor),
    ):
        payload = await request.body()
        event = app.state.verifier.verify_webhook(payload,
                                                  dict(request.headers))
        result = await processor.process(event)
        return result.to_response()

    @app.get("/healthz")
    async def healthz():
        s = getattr(app.state, "store", None)
        return {"ok": s is not None,
                "backend": s.backend if s is not None else None}

    # ----------------------------
    # Pages (presentation only; they poll /api/countdown)
    # ----------------------------
    @app.get("/", response_class=HTMLResponse)
    async def landing_page(request: Request):
        return templates.TemplateResponse(
            request, "landing.html", {"site_name": "donotimer"}
        )

    @app.get("/countdown", response_class=HTMLResponse)
    async def countdown_page(request: Request):
        return templates.TemplateResponse(
            request, "countdown.html", {"site_name": "donotimer"}
        )

    @app.get("/overlay", response_class=HTMLResponse)
    async def overlay_page(request: Request):
        return templates.TemplateResponse(request, "overlay.html")

    @app.get("/admin", response_class=HTMLResponse)
    async def admin_page(request: Request):
        return templates.TemplateResponse(
            request, "admin.html", {"site_name": "donotimer"}
        )

    return app
