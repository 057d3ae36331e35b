"""
Helpdesk SLA - Main Application
================================

SLA tracking engine for the IT support ticketing dashboard.

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services, cached dashboard view and DTOs
- Domain: Entities, value objects, SLA calculator and fleet aggregator
- Infrastructure: Ticket store adapters, policy loader, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from helpdesk.config import settings
from helpdesk.core import DomainException, ResourceNotFoundException

# Infrastructure
from helpdesk.infrastructure import database

# SLA Module
from helpdesk.sla.application import ITicketRepository, SLAService, SLADashboardView
from helpdesk.sla.domain import FleetAggregator
from helpdesk.sla.infrastructure import (
    InMemoryTicketRepository,
    SLARefreshScheduler,
    SQLAlchemyTicketRepository,
    YAMLPolicyProvider,
)
from helpdesk.sla.interfaces import sla_router
from helpdesk.sla.interfaces.controllers import get_dashboard_timezone

# Shared
from helpdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    domain_exception_handler,
    global_exception_handler,
    not_found_exception_handler,
)
from helpdesk.shared.clock import Clock, utc_now
from helpdesk.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


def create_app(
    ticket_repository: Optional[ITicketRepository] = None,
    clock: Clock = utc_now,
    enable_scheduler: bool = True
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        ticket_repository: store to read from when no database is
            configured (defaults to an empty in-memory store)
        clock: source of "now" for every SLA evaluation
        enable_scheduler: start the background refresh/reload jobs
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """
        Application lifespan manager.

        STARTUP:
        1. Setup structured logging
        2. Load the SLA policy (once, immutable afterwards)
        3. Connect the ticket store
        4. Build and prime the cached dashboard view
        5. Start the refresh scheduler

        SHUTDOWN:
        1. Stop the scheduler (last published view stays intact)
        2. Close database connections
        """
        setup_logging(settings.log_level, settings.environment)
        logger.info("Starting Helpdesk SLA service", extra={
            "version": settings.app_version,
            "environment": settings.environment
        })

        policy_provider = YAMLPolicyProvider(settings.sla_policy_path)
        policy = policy_provider.get_policy()

        if settings.database_url:
            logger.info("Initializing database")
            database.init_database()
        else:
            logger.info("No database configured, serving the in-memory ticket store")

        aggregator = FleetAggregator(
            policy,
            trend_window_days=settings.trend_window_days,
            tz=get_dashboard_timezone(),
        )
        view = SLADashboardView(aggregator, clock=clock)

        app.state.settings = settings
        app.state.clock = clock
        app.state.policy_provider = policy_provider
        app.state.ticket_repository = (
            ticket_repository if ticket_repository is not None else InMemoryTicketRepository()
        )
        app.state.dashboard_view = view

        async def reload_job():
            """Fetch a fresh ticket batch for the cached view."""
            if database.is_initialized():
                async with database.get_session_context() as session:
                    repo = SQLAlchemyTicketRepository(session, policy)
                    await SLAService(repo, policy_provider, clock=clock).reload_view(view)
            else:
                repo = app.state.ticket_repository
                await SLAService(repo, policy_provider, clock=clock).reload_view(view)

        async def refresh_job():
            """Recompute time-dependent SLA fields; no store access."""
            await view.refresh()

        try:
            await reload_job()
            await refresh_job()
        except Exception as e:
            logger.warning(f"Initial dashboard load failed - running in degraded mode: {e}")

        scheduler = SLARefreshScheduler(interval_seconds=settings.sla_refresh_interval)
        if enable_scheduler:
            scheduler.add_job(
                reload_job,
                SLARefreshScheduler.RELOAD_JOB_ID,
                "SLA Ticket Reload",
                interval_seconds=settings.ticket_reload_interval,
            )
            await scheduler.start(refresh_job)
        app.state.scheduler = scheduler

        logger.info("Helpdesk SLA service started successfully")

        yield  # Application runs here

        logger.info("Shutting down Helpdesk SLA service")
        await scheduler.stop()
        await database.close_database()
        logger.info("Helpdesk SLA service shutdown complete")

    app = FastAPI(
        title="Helpdesk SLA API",
        description="""
    ## IT Support SLA Tracking

    Read-only SLA views over the helpdesk ticket store.

    **Endpoints:**
    - `GET /sla/dashboard/metrics` - Live fleet metrics (compliance, breaches, trend)
    - `GET /sla/dashboard` - Last state of the periodically refreshed view
    - `GET /sla/tickets` - Tickets with SLA status, filterable by urgency
    - `GET /sla/tickets/{id}` - One ticket's SLA status
    - `GET /sla/policy` - Active SLA policy

    **SLA Policy (resolution time):**

    | Priority | Hours |
    |----------|-------|
    | Critical | 8     |
    | High     | 24    |
    | Medium   | 72    |
    | Low      | 120   |

    **Urgency:** `safe` above 25% of the allotted time left, `warning` at
    25% or less, `critical` at 10% or less, `breached` once the deadline has
    passed. Resolved tickets are evaluated at their resolution time.
    """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # === Custom Middleware (from shared) ===
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ResourceNotFoundException, not_found_exception_handler)
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(sla_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Health check endpoint for load balancers and orchestrators.

        Reports store mode, scheduler state and dashboard freshness.
        """
        scheduler = getattr(request.app.state, "scheduler", None)
        view = getattr(request.app.state, "dashboard_view", None)
        state = view.state if view is not None else None

        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": {
                "ticket_store": "database" if database.is_initialized() else "in_memory",
                "sla_scheduler": "running" if scheduler and scheduler.is_running else "stopped",
                "dashboard_view": state.computed_at.isoformat() if state else "not_computed",
                "dashboard_tickets": view.ticket_count if view is not None else 0,
            }
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Helpdesk SLA",
            "version": settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
            "modules": {
                "sla": {
                    "prefix": "/sla",
                    "endpoints": [
                        "GET /sla/dashboard/metrics - Live dashboard metrics",
                        "GET /sla/dashboard - Cached dashboard view",
                        "GET /sla/tickets - Tickets with SLA status",
                        "GET /sla/tickets/{id} - Ticket SLA status",
                        "GET /sla/policy - Active SLA policy"
                    ]
                }
            }
        }

    return app


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
