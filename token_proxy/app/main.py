"""
FastAPI Token Proxy Application Factory
=======================================

This is the main entry point for the reverse proxy that sits between clients
holding a static key and an upstream that only accepts Entra ID tokens.

Architecture:
    Client → Token Proxy (this service) → Upstream (e.g. Azure OpenAI)

Routers:
    - /{path} : every method and path, forwarded to TARGET_URL

Environment Variables:
    - TARGET_URL: Upstream base URL (required)
    - EXPECTED_KEY: Shared secret required in api-key / x-api-key (optional)
    - AZURE_OPENAI_SCOPE: Token scope (default: https://cognitiveservices.azure.com/.default)
    - PORT: Listen port (default: 8081)
    - HOST: Bind address (default: 0.0.0.0)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Console script:
        token-proxy

    Uvicorn:
        uvicorn --factory token_proxy.app.main:create_app --host 0.0.0.0 --port 8081 \\
            --no-server-header --no-date-header

    Upstream Date and Server headers are relayed as-is, so uvicorn must not
    add its own.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from azure.core.credentials_async import AsyncTokenCredential
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from .config import Settings, get_settings
from .errors import ProxyError
from .identity.credentials import create_credential
from .identity.token_cache import TokenCache
from .proxy.routes import proxy_route

logger = logging.getLogger(__name__)


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    # Azure SDK logs every token request at INFO
    logging.getLogger("azure").setLevel(max(logging.WARNING, logging.getLogger().level))


class AppState:
    """
    Process-wide resources shared by all requests.

    Built once by create_app and read-only afterwards; the token cache is the
    only part that changes while serving.
    """

    def __init__(
        self,
        settings: Settings,
        credential: AsyncTokenCredential,
        token_cache: TokenCache,
        upstream_client: httpx.AsyncClient,
    ):
        self.settings = settings
        self.credential = credential
        self.token_cache = token_cache
        self.upstream_client = upstream_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup logs the listener and target; shutdown closes the upstream client
    and the credential's own HTTP session.
    """
    state: AppState = app.state.app_state
    settings = state.settings

    logger.info(f"proxy listening on :{settings.PORT} -> {settings.TARGET_URL}")

    yield

    logger.info("Shutting down token proxy")

    await state.upstream_client.aclose()
    try:
        await state.credential.close()
    except Exception as e:
        logger.error(f"Error closing credential: {e}")
    state.token_cache.clear()

    logger.info("Token proxy shutdown complete")


def create_upstream_client(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Shared client for all upstream calls; no read timeout so SSE streams can idle."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(None, connect=settings.UPSTREAM_CONNECT_TIMEOUT_SECONDS),
        follow_redirects=False,
        transport=transport,
    )


def create_app(
    settings: Optional[Settings] = None,
    credential: Optional[AsyncTokenCredential] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Application factory function.

    Creates the credential, token cache and upstream client up front so
    a broken configuration fails before the server binds.

    Args:
        settings: Settings to use instead of the environment
        credential: Credential to use instead of DefaultAzureCredential
        transport: httpx transport for the upstream client

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    if credential is None:
        credential = create_credential(settings)

    state = AppState(
        settings=settings,
        credential=credential,
        token_cache=TokenCache(
            credential,
            settings.AZURE_OPENAI_SCOPE,
            refresh_margin=settings.TOKEN_REFRESH_MARGIN_SECONDS,
        ),
        upstream_client=create_upstream_client(settings, transport),
    )

    app = FastAPI(
        title="Token Proxy",
        description="Reverse proxy that injects Entra ID bearer tokens",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.app_state = state

    # Starlette route without a method list: every method reaches the proxy
    app.router.routes.append(proxy_route)

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError) -> PlainTextResponse:
        """
        Turn a ProxyError into its synthetic response.

        The client gets the fixed message only; the detail goes to the log.
        """
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(f"{request.method} {request.url.path} -> {exc.status_code} {exc.message}: {exc.detail}")
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns a generic 500.
        """
        logger.error(
            f"Unhandled exception: {exc}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )
        return PlainTextResponse("internal error", status_code=500)

    return app


def main() -> None:
    """
    Console entry point: load settings from the environment and serve.
    """
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        server_header=False,
        date_header=False,
    )


if __name__ == "__main__":
    main()
