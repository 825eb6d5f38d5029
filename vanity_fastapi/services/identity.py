from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol

from starlette.requests import HTTPConnection
from starlette.responses import Response


class IdentityStrategy(Protocol):
    def identify(self, request: HTTPConnection) -> str | None: ...


class NamedAccessorIdentity:
    """Identity taken from the ``id`` of the object named ``name``.

    The object is read from ``request.state.<name>`` (a callable attribute is
    called first). When it is not there and a ``loader`` was registered, the
    loader is called with the request and its result is stored on
    ``request.state`` for the handler to reuse.

    The ``_vanity`` override runs in the middleware, before route
    dependencies. Identities needed there must come from an outer
    middleware or from the loader; state set by a dependency or the handler
    is only seen later in the request.
    """

    def __init__(self, name: str, loader: Callable[[HTTPConnection], Any] | None = None) -> None:
        self.name = name
        self.loader = loader

    def identify(self, request: HTTPConnection) -> str | None:
        obj = getattr(request.state, self.name, None)
        if callable(obj):
            obj = obj()
        if obj is None and self.loader is not None:
            obj = self.loader(request)
            if obj is not None:
                setattr(request.state, self.name, obj)
        if obj is None:
            return None
        return str(obj.id)


class ClosureIdentity:
    def __init__(self, fn: Callable[[HTTPConnection], Any]) -> None:
        self.fn = fn

    def identify(self, request: HTTPConnection) -> str | None:
        value = self.fn(request)
        if value is None:
            return None
        return str(value)


def identity_strategy(
    accessor: str | Callable[[HTTPConnection], Any] | None,
    loader: Callable[[HTTPConnection], Any] | None = None,
) -> IdentityStrategy | None:
    if loader is not None and not isinstance(accessor, str):
        raise TypeError("A loader needs a named accessor")
    if accessor is None:
        return None
    if isinstance(accessor, str):
        return NamedAccessorIdentity(accessor, loader)
    if callable(accessor):
        return ClosureIdentity(accessor)
    raise TypeError(f"Unsupported identity accessor: {accessor!r}")


def generate_identity() -> str:
    return secrets.token_hex(16)


def resolve_identity(
    request: HTTPConnection,
    strategy: IdentityStrategy | None,
    cookie_name: str,
) -> tuple[str, str | None]:
    """Return ``(identity, cookie_value)``.

    ``cookie_value`` is only set when the identity comes from the cookie path,
    in which case the caller must (re)issue the cookie.
    """

    if strategy is not None:
        identity = strategy.identify(request)
        if identity is not None:
            return identity, None

    identity = request.cookies.get(cookie_name) or generate_identity()
    return identity, identity


def identity_cookie_header(name: str, value: str, days: int, now: datetime | None = None) -> str:
    """``Set-Cookie`` value for the identity cookie, built by Starlette."""

    now = now or datetime.now(timezone.utc)
    response = Response()
    response.set_cookie(
        name,
        value,
        max_age=days * 24 * 60 * 60,
        expires=now + timedelta(days=days),
        path="/",
        samesite="lax",
    )
    return response.headers["set-cookie"]
