"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends, Request

from tenantguard.integrations.directory_client import DirectoryApiClient
from tenantguard.rules.registry import CatalogRegistry
from tenantguard.services.diagnostics.analyzer import DiagnosticAnalyzer
from tenantguard.services.remediation.store import SessionStore


def get_directory(request: Request) -> DirectoryApiClient:
    """Return the directory API client created in the app lifespan."""
    return request.app.state.directory


def get_registry(request: Request) -> CatalogRegistry:
    return request.app.state.registry


def get_analyzer(request: Request) -> DiagnosticAnalyzer:
    """Analyzer whose remediations write through the app's directory client."""
    return DiagnosticAnalyzer(performer=request.app.state.directory.perform_action)


def get_sessions(request: Request) -> SessionStore:
    """In-process remediation sessions keyed by session id."""
    return request.app.state.sessions


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


# Type aliases for dependency injection
Directory = Annotated[DirectoryApiClient, Depends(get_directory)]
Registry = Annotated[CatalogRegistry, Depends(get_registry)]
Analyzer = Annotated[DiagnosticAnalyzer, Depends(get_analyzer)]
Sessions = Annotated[SessionStore, Depends(get_sessions)]
TraceId = Annotated[str, Depends(get_trace_id)]
