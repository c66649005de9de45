"""VitalFuse MCP server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from vitalfuse.core.audit.logger import AuditLogger
from vitalfuse.core.config.settings import Settings, get_settings
from vitalfuse.core.llm.client import InferenceClient
from vitalfuse.core.llm.provider import create_provider
from vitalfuse.core.llm.retry import RetryPolicy
from vitalfuse.core.storage.database import BiosignalDatabase
from vitalfuse.core.storage.documents import DocumentStore, InMemoryDocumentStore
from vitalfuse.core.storage.encryption import DocumentEncryptor, EncryptionError
from vitalfuse.core.storage.repository import EncryptedDocumentRepository
from vitalfuse.domains.biosignal.integration.engine import IntegrationEngine
from vitalfuse.domains.biosignal.prompts.integration_prompts import register_integration_prompts
from vitalfuse.domains.biosignal.storage.timeseries_store import (
    METADATA_COLLECTION,
    TimeSeriesStore,
)
from vitalfuse.domains.biosignal.tools.integration_tools import register_integration_tools
from vitalfuse.domains.biosignal.tools.session_tools import register_session_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "VitalFuse Biosignal"
SERVER_VERSION = "0.1.0"


def build_inference_client(settings: Settings) -> InferenceClient | None:
    """Inference client for the configured provider, or None for offline mode."""
    if settings.llm_provider == "mock":
        logger.info("LLM_PROVIDER=mock; integration uses the deterministic offline generator")
        return None

    if settings.llm_provider == "anthropic":
        api_key, model = settings.anthropic_api_key, settings.anthropic_model
    elif settings.llm_provider == "openai":
        api_key, model = settings.openai_api_key, settings.openai_model
    else:  # pragma: no cover
        raise ValueError(f"Unknown LLM provider: {settings.llm_provider!r}")

    if not api_key:
        logger.warning(
            "No API key configured for provider '%s'; integration runs offline",
            settings.llm_provider,
        )
        return None

    provider = create_provider(provider_name=settings.llm_provider, api_key=api_key, model=model)
    return InferenceClient(
        provider,
        provider_name=settings.llm_provider,
        retry_policy=RetryPolicy(
            max_attempts=settings.inference_max_attempts,
            base_delay_ms=settings.inference_backoff_base_ms,
            max_delay_ms=settings.inference_backoff_cap_ms,
        ),
        max_tokens=settings.inference_max_tokens,
        temperature=settings.inference_temperature,
    )


def create_app(
    *,
    document_store_override: DocumentStore | None = None,
    inference_client_override: InferenceClient | None = None,
    audit_logger_override: AuditLogger | None = None,
) -> FastMCP:
    """Create and configure the VitalFuse MCP server.

    1. Creates the FastMCP server instance
    2. Creates the inference client (or none, for offline mode)
    3. Initializes storage: encrypted SQLite when ENCRYPTION_KEY is set,
       otherwise a process-local in-memory store
    4. Registers all tools and prompts
    """
    settings = get_settings()

    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "VitalFuse biosignal server. Stores processed EEG/PPG/accelerometer "
            "measurement sessions, summarizes them statistically, and combines "
            "EEG and PPG sub-analyses into one integrated health report."
        ),
    )

    # --- Inference ---
    if inference_client_override is not None:
        inference_client = inference_client_override
    else:
        inference_client = build_inference_client(settings)

    engine = IntegrationEngine(inference_client, engine_version=settings.engine_version)

    # --- Storage + audit ---
    audit_logger = audit_logger_override
    storage_backend = "custom"
    if document_store_override is not None:
        document_store: DocumentStore = document_store_override
    else:
        document_store = InMemoryDocumentStore()
        storage_backend = "memory"
        if settings.encryption_key:
            try:
                encryptor = DocumentEncryptor(settings.encryption_key)
                db = BiosignalDatabase(settings.db_path)
                db.initialize()
                document_store = EncryptedDocumentRepository(db, encryptor)
                storage_backend = "sqlite"
                if audit_logger is None:
                    audit_logger = AuditLogger(db)
                counts = db.table_counts()
                logger.info(
                    "Session store initialized: %s (%d documents, %d audit events)",
                    settings.db_path,
                    counts["documents"],
                    counts["audit_log"],
                )
            except EncryptionError as exc:
                logger.error("Failed to initialize encrypted storage: %s", exc)
                logger.warning("Continuing with in-memory storage; sessions will not persist")
        else:
            logger.info(
                "No ENCRYPTION_KEY configured; sessions are kept in memory only. "
                "Set ENCRYPTION_KEY to enable the encrypted session store."
            )

    store = TimeSeriesStore(document_store, downsample_length=settings.analysis_downsample_length)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "engine_version": engine.engine_version,
            "inference": engine.provider_name or "offline",
            "storage_backend": storage_backend,
            "audit_enabled": audit_logger is not None,
        }
        count = getattr(document_store, "count", None)
        if callable(count):
            status["sessions_stored"] = count(METADATA_COLLECTION)
        return status

    register_session_tools(
        server, store, audit_logger, default_privacy_mode=settings.default_privacy_mode
    )
    register_integration_tools(
        server, engine, store, audit_logger, default_privacy_mode=settings.default_privacy_mode
    )
    logger.info("Biosignal tools registered (inference=%s)", engine.provider_name or "offline")

    register_integration_prompts(server)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
