"""Wire the experimentation playground into a FastAPI application.

1) Enable it, optionally naming where the visitor's identity comes from::

    app = FastAPI()
    use_vanity(app, "current_user", playground=playground)

   ``"current_user"`` is read from ``request.state`` and its ``id`` becomes
   the identity. Route dependencies run after the middleware, too late for
   ``?_vanity=`` overrides, so register a loader the middleware can call::

    use_vanity(app, "current_user", loader=load_current_user)

   A callable works too::

    use_vanity(app, lambda request: request.path_params.get("project_id"))

   Without an accessor, or when it yields ``None``, a random identity is kept
   in the ``vanity_id`` cookie.

2) Present alternatives, in a handler or a template::

    Get started for only ${{ ab_test("pricing") }} a month!

3) Mount the dashboard::

    from vanity_fastapi.api.dashboard import router as dashboard_router

    app.include_router(dashboard_router)
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Callable

from fastapi import FastAPI
from starlette.requests import HTTPConnection

from vanity_fastapi.config import get_settings
from vanity_fastapi.middleware import VanityMiddleware
from vanity_fastapi.observability.logging import configure_logging
from vanity_fastapi.services.identity import identity_strategy
from vanity_fastapi.services.playground import Playground, boot_playground, get_playground, set_playground


def startup() -> None:
    settings = get_settings()
    if settings.log_json:
        configure_logging()
    boot_playground(get_playground(), settings)


def use_vanity(
    app: FastAPI,
    accessor: str | Callable[[HTTPConnection], Any] | None = None,
    *,
    playground: Playground | None = None,
    loader: Callable[[HTTPConnection], Any] | None = None,
) -> FastAPI:
    if playground is not None:
        set_playground(playground)

    app.add_middleware(VanityMiddleware, identity=identity_strategy(accessor, loader))

    previous_lifespan = app.router.lifespan_context

    @asynccontextmanager
    async def lifespan(app_: Any) -> AsyncIterator[Any]:
        startup()
        async with previous_lifespan(app_) as state:
            yield state

    app.router.lifespan_context = lifespan
    return app
