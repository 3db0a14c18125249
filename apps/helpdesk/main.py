import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from apps.helpdesk.api.routes import ping, reference, tickets, users
from apps.helpdesk.core.config import Settings, get_settings
from apps.helpdesk.core.errors import ConflictError, ForbiddenError, HelpdeskError, NotFoundError, ValidationError
from apps.helpdesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from apps.helpdesk.identity import ReferenceDataProvider, ReferenceRepository
from apps.helpdesk.tickets import TicketRepository, TicketService
from apps.helpdesk.users import PasswordHasher, UserRepository, UserService
from packages.db.session import create_engine, create_session_factory, ensure_schema

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: tuple[tuple[type[HelpdeskError], int], ...] = (
    (ValidationError, 400),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def attach_services(
    app: FastAPI,
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> None:
    """Build the service graph on top of ``session_factory`` and expose it on ``app.state``."""

    reference_provider = ReferenceDataProvider(ReferenceRepository(session_factory))
    user_repository = UserRepository(session_factory)
    hasher = PasswordHasher(scheme=settings.password_hash_scheme, rounds=settings.password_hash_rounds)

    app.state.reference_provider = reference_provider
    app.state.user_service = UserService(user_repository, reference_provider, hasher=hasher)
    app.state.ticket_service = TicketService(
        TicketRepository(session_factory),
        reference_provider,
        user_repository,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    app_logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = app_logger
    app.state.tracer_provider = tracer_provider
    app.state.ticket_service = None
    app.state.user_service = None
    app.state.reference_provider = None

    db_engine = create_engine(settings.database_dsn, echo=settings.database_echo)
    try:
        await ensure_schema(db_engine)
        session_factory = create_session_factory(db_engine)
        if settings.seed_reference_data:
            inserted = await ReferenceRepository(session_factory).seed_roles()
            if inserted:
                app_logger.info("Seeded %d roles", inserted)
        attach_services(app, session_factory, settings)
        app.state.db_engine = db_engine
    except Exception:
        app_logger.exception("Database initialisation failed; services stay unavailable")
    try:
        yield
    finally:
        await db_engine.dispose()
        shutdown_tracer(tracer_provider)


async def handle_helpdesk_error(request: Request, exc: HelpdeskError) -> JSONResponse:
    status_code = next((code for error_type, code in ERROR_STATUS_CODES if isinstance(exc, error_type)), 500)
    if status_code == 500:
        logger.error("Unmapped helpdesk error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_exception_handler(HelpdeskError, handle_helpdesk_error)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    app.include_router(users.router)
    app.include_router(reference.router)
    return app


app = create_app()
