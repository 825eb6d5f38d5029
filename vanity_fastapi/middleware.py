from __future__ import annotations

from typing import Any, Callable

import structlog
from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.responses import RedirectResponse

from vanity_fastapi.config import get_settings
from vanity_fastapi.context import VanityContext, bind_context, reset_context
from vanity_fastapi.observability.logging import get_logger
from vanity_fastapi.services.identity import IdentityStrategy, identity_cookie_header
from vanity_fastapi.services.overrides import apply_overrides, strip_query_param
from vanity_fastapi.services.playground import get_playground


class VanityMiddleware:
    """Installs the experimentation context around each HTTP request.

    Also handles the ``_vanity`` override parameter on GET requests and
    writes the identity cookie when identity resolution asked for one.
    """

    def __init__(self, app: Callable[..., Any], identity: IdentityStrategy | None = None) -> None:
        self.app = app
        self.identity = identity

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        settings = get_settings()
        request = Request(scope, receive)
        context = VanityContext(request=request, settings=settings, strategy=self.identity)
        request.state.vanity = context

        async def send_wrapper(message: dict[str, Any]) -> None:
            if message.get("type") == "http.response.start" and context.issued_cookie is not None:
                headers = MutableHeaders(scope=message)
                headers.append(
                    "set-cookie",
                    identity_cookie_header(settings.cookie_name, context.issued_cookie, settings.cookie_days),
                )
            await send(message)

        previous_identity = structlog.contextvars.get_contextvars().get("vanity_identity")
        token = bind_context(context)
        try:
            if settings.reload_experiments:
                get_playground().reload()
                get_logger().debug("vanity_reloaded")

            if request.method == "GET" and settings.query_param in request.query_params:
                fingerprints = request.query_params.getlist(settings.query_param)
                chosen = apply_overrides(get_playground(), fingerprints)
                get_logger().info(
                    "vanity_override_applied",
                    fingerprints=fingerprints,
                    chosen=[experiment_id for experiment_id, _ in chosen],
                )
                response = RedirectResponse(url=strip_query_param(request.url, settings.query_param), status_code=302)
                await response(scope, receive, send_wrapper)
                return

            await self.app(scope, receive, send_wrapper)
        finally:
            reset_context(token)
            if previous_identity is None:
                structlog.contextvars.unbind_contextvars("vanity_identity")
            else:
                structlog.contextvars.bind_contextvars(vanity_identity=previous_identity)
