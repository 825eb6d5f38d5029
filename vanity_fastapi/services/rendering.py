from __future__ import annotations

from typing import Any, Protocol

from starlette.requests import Request
from starlette.responses import Response
from starlette.templating import Jinja2Templates

from vanity_fastapi.config import get_settings
from vanity_fastapi.helpers import install_template_helpers


class TemplateRenderer(Protocol):
    def render(self, request: Request, name: str, **context: Any) -> Response: ...


class JinjaRenderer:
    """Renders the dashboard templates (``report.html``, ``experiment.html``)."""

    def __init__(self, directory: str | None = None) -> None:
        self.templates = install_template_helpers(
            Jinja2Templates(directory=directory or get_settings().templates_dir)
        )

    def render(self, request: Request, name: str, **context: Any) -> Response:
        def choose_url(experiment_id: str, alt_index: int) -> str:
            return str(request.url_for("vanity_choose_experiment", experiment_id=experiment_id, alt_id=str(alt_index)))

        return self.templates.TemplateResponse(
            request,
            f"{name}.html",
            {"choose_url": choose_url, **context},
        )


_renderer: TemplateRenderer | None = None


def set_renderer(renderer: TemplateRenderer | None) -> None:
    global _renderer
    _renderer = renderer


def get_renderer() -> TemplateRenderer:
    global _renderer
    if _renderer is None:
        _renderer = JinjaRenderer()
    return _renderer
