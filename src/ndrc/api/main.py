"""NDRC FastAPI application factory.

create_app() is the single place where the pipeline is wired: config, clock,
id generator, audit sink, the two outbound clients, the orchestrator and the
CaseService. Tests replace any of them through the factory arguments.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from ndrc import NDRC_VERSION
from ndrc.api.errors import (
    NdrcHttpError,
    generic_exception_handler,
    http_exception_handler,
    ndrc_http_error_handler,
    request_validation_error_handler,
)
from ndrc.api.middleware.correlation_id import CorrelationIdMiddleware
from ndrc.api.routes.cases import router as cases_router
from ndrc.api.routes.health import router as health_router
from ndrc.audit.emitter import AuditEmitter
from ndrc.audit.sink import AuditSink, get_audit_sink
from ndrc.config import ServiceConfig, load_service_config
from ndrc.connectors.eis import CaseSubmissionClient
from ndrc.connectors.file_transfer import FileTransferClient, FileTransferPort
from ndrc.observability.tracing import configure_tracing, instrument_app
from ndrc.services.cases import CaseService
from ndrc.services.correlation import Clock, IdGenerator, SystemClock, UuidGenerator
from ndrc.services.file_transfer import FileTransferOrchestrator

logger = logging.getLogger(__name__)


def create_app(
    config: ServiceConfig | None = None,
    audit_sink: AuditSink | None = None,
    eis_http_client: httpx.AsyncClient | None = None,
    file_transfer_client: FileTransferPort | None = None,
    file_transfer_http_client: httpx.AsyncClient | None = None,
    clock: Clock | None = None,
    id_generator: IdGenerator | None = None,
) -> FastAPI:
    """Create and configure the NDRC case service application.

    Args:
        config: Service configuration. If None, loaded from the environment.
        audit_sink: Audit sink. If None, built from config.
        eis_http_client: httpx client for EIS (e.g. with a MockTransport).
        file_transfer_client: Complete replacement for the file-transfer client.
        file_transfer_http_client: httpx client for the file-transfer service.
        clock: Time source for transfer timestamps and the EIS date header.
        id_generator: Source of correlation ids when the caller supplies none.

    Returns:
        Configured FastAPI application instance.
    """
    config = config or load_service_config()
    clock = clock or SystemClock()
    id_generator = id_generator or UuidGenerator()
    audit_sink = audit_sink or get_audit_sink(config)

    app = FastAPI(
        title="NDRC Case Service",
        description="National Duty Repayment Center - create and amend duty repayment cases",
        version=NDRC_VERSION,
    )

    if configure_tracing():
        instrument_app(app)

    eis_client = CaseSubmissionClient(
        base_url=config.eis_base_url,
        token=config.eis_token,
        environment=config.eis_environment,
        timeout_seconds=config.eis_timeout_seconds,
        max_retries=config.eis_max_retries,
        http_client=eis_http_client,
        clock=clock,
    )
    transfer_client = file_transfer_client or FileTransferClient(
        base_url=config.file_transfer_base_url,
        timeout_seconds=config.file_transfer_timeout_seconds,
        http_client=file_transfer_http_client,
    )
    orchestrator = FileTransferOrchestrator(
        client=transfer_client,
        clock=clock,
        timeout_seconds=config.file_transfer_timeout_seconds,
        max_concurrency=config.file_transfer_max_concurrency,
    )

    app.state.config = config
    app.state.audit_sink = audit_sink
    app.state.clock = clock
    app.state.case_service = CaseService(
        submission_client=eis_client,
        orchestrator=orchestrator,
        audit_emitter=AuditEmitter(audit_sink, audit_source=config.app_name),
    )

    app.add_middleware(CorrelationIdMiddleware, id_generator=id_generator)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        """Close the outbound clients this app created."""
        await eis_client.aclose()
        if isinstance(transfer_client, FileTransferClient):
            await transfer_client.aclose()

    app.add_exception_handler(NdrcHttpError, ndrc_http_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    app.include_router(cases_router)

    logger.info(
        "NDRC case service configured: eis=%s file_transfer=%s",
        config.eis_base_url,
        config.file_transfer_base_url,
    )
    return app
