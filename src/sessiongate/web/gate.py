"""Request gate: every inbound request passes through here before routing."""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from sessiongate.app import App
from sessiongate.core.modules.access.models import REJECTION_MESSAGES, GateState, RejectionCode
from sessiongate.errors import StorageError
from sessiongate.utils import now
from sessiongate.web.error_handlers import create_json_error_response

logger = structlog.get_logger(__name__)

ALLOWED_METHODS = "GET, POST, PUT, DELETE, OPTIONS"


class AccessGateMiddleware(BaseHTTPMiddleware):
    """Rejects protected requests without a live session, forwards the rest.

    Preflight requests are answered here and never reach the session checks.
    Handlers behind the gate find the caller in request.state.user.
    """

    def __init__(self, app: ASGIApp, app_instance: App) -> None:
        super().__init__(app)
        self._app = app_instance
        config = app_instance.config
        self._identity_header = config.identity_header
        self._token_header = config.token_header
        self._cors_origins = config.cors_origins
        self._allowed_headers = f"Content-Type, Authorization, {config.identity_header}, {config.token_header}"

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path

        if request.method == "OPTIONS":
            logger.debug("gate_preflight", path=path)
            return self._add_cors_headers(request, Response(status_code=200))

        try:
            decision = await self._app.evaluate_request(
                path,
                request.headers.get(self._identity_header),
                request.headers.get(self._token_header),
            )
        except StorageError:
            logger.exception("gate_storage_failure", path=path)
            response = create_json_error_response(500, "An unexpected error occurred.", "SERVER_ERROR")
            return self._add_cors_headers(request, response)

        if not decision.allowed:
            code = decision.code or RejectionCode.UNAUTHORIZED
            response = create_json_error_response(401, REJECTION_MESSAGES[code], code.value, path=path)
            return self._add_cors_headers(request, response)

        if decision.state is GateState.PROTECTED_VALID and decision.user is not None:
            request.state.user = decision.user
            request.state.session_expires_at = decision.expires_at
            request.state.gate_processed = True
            logger.debug("gate_passed", path=path, user_id=str(decision.user.id))

            response = await self._forward(request, call_next)
            response.headers["x-gate-processed"] = "true"
            response.headers["x-gate-timestamp"] = now().isoformat()
            response.headers["x-gate-username"] = decision.user.username
            response.headers["x-session-expires"] = decision.expires_at.isoformat() if decision.expires_at else ""
            return response

        return await self._forward(request, call_next)

    async def _forward(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("handler_failure", path=request.url.path)
            response = create_json_error_response(500, "An unexpected error occurred.", "SERVER_ERROR")
        return self._add_cors_headers(request, response)

    def _add_cors_headers(self, request: Request, response: Response) -> Response:
        if "*" in self._cors_origins:
            allow_origin = "*"
        else:
            origin = request.headers.get("origin", "")
            allow_origin = origin if origin in self._cors_origins else ""
        if allow_origin:
            response.headers["Access-Control-Allow-Origin"] = allow_origin
            if allow_origin != "*":
                response.headers["Vary"] = "Origin"
        response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        response.headers["Access-Control-Allow-Headers"] = self._allowed_headers
        return response
