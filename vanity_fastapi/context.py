"""Request-scoped experimentation context.

Each HTTP request gets its own ``VanityContext``. It travels explicitly on
``request.state.vanity`` and, for the playground engine which has no access to
the request, through a ``ContextVar``. Context variables are local to the
running task, so concurrent requests never observe each other's context.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass, field

import structlog
from fastapi import Request
from starlette.requests import HTTPConnection

from vanity_fastapi.config import Settings
from vanity_fastapi.observability.logging import get_logger
from vanity_fastapi.services.identity import IdentityStrategy, resolve_identity


@dataclass
class VanityContext:
    request: HTTPConnection
    settings: Settings
    strategy: IdentityStrategy | None = None
    issued_cookie: str | None = field(default=None, init=False)
    _identity: str | None = field(default=None, init=False, repr=False)

    @property
    def identity(self) -> str:
        if self._identity is None:
            identity, cookie_value = resolve_identity(self.request, self.strategy, self.settings.cookie_name)
            self._identity = identity
            self.issued_cookie = cookie_value
            structlog.contextvars.bind_contextvars(vanity_identity=identity)
            if cookie_value is not None and cookie_value != self.request.cookies.get(self.settings.cookie_name):
                get_logger().info("vanity_identity_issued")
        return self._identity


_current: contextvars.ContextVar[VanityContext | None] = contextvars.ContextVar("vanity_context", default=None)


def current_context() -> VanityContext | None:
    return _current.get()


def bind_context(context: VanityContext | None) -> contextvars.Token:
    return _current.set(context)


def reset_context(token: contextvars.Token) -> None:
    _current.reset(token)


def get_vanity_context(request: Request) -> VanityContext:
    context = getattr(request.state, "vanity", None)
    if context is None:
        raise RuntimeError("VanityMiddleware is not installed; call use_vanity(app)")
    return context


def vanity_identity(request: Request) -> str:
    return get_vanity_context(request).identity
