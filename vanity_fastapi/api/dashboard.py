from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path, Request
from fastapi.responses import HTMLResponse, Response

from vanity_fastapi.services.playground import Playground, get_playground
from vanity_fastapi.services.rendering import TemplateRenderer, get_renderer

router = APIRouter(prefix="/vanity", tags=["vanity"])


@router.get("", name="vanity", response_class=HTMLResponse)
def index(
    request: Request,
    playground: Playground = Depends(get_playground),
    renderer: TemplateRenderer = Depends(get_renderer),
) -> Response:
    return renderer.render(request, "report", experiments=playground.experiments)


@router.get("/choose/{experiment_id}/{alt_id}", name="vanity_choose_experiment", response_class=HTMLResponse)
def chooses(
    request: Request,
    experiment_id: str,
    alt_id: int = Path(ge=0),
    playground: Playground = Depends(get_playground),
    renderer: TemplateRenderer = Depends(get_renderer),
) -> Response:
    experiment = playground.experiment(experiment_id)
    alternatives = getattr(experiment, "alternatives", None)
    if alternatives is None:
        raise HTTPException(status_code=404, detail="Experiment has no alternatives")
    try:
        alternative = alternatives[alt_id]
    except IndexError as exc:
        raise HTTPException(status_code=404, detail="Alternative not found") from exc

    experiment.chooses(alternative.value)
    return renderer.render(request, "experiment", experiment_id=experiment_id, experiment=experiment)
