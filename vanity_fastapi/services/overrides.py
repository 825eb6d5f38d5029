from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from starlette.datastructures import URL

from vanity_fastapi.services.playground import Playground


def apply_overrides(playground: Playground, fingerprints: Iterable[str]) -> list[tuple[str, Any]]:
    """Force the alternatives named by ``fingerprints``.

    Each fingerprint, repeats included, is consumed by the first alternative
    it matches, and at most one alternative is forced per experiment.
    Fingerprints that match nothing are ignored.
    """

    pending = list(fingerprints)
    chosen: list[tuple[str, Any]] = []
    if not pending:
        return chosen

    for experiment_id, experiment in playground.experiments.items():
        alternatives = getattr(experiment, "alternatives", None)
        if alternatives is not None:
            for alternative in alternatives:
                fingerprint = experiment.fingerprint(alternative)
                if fingerprint in pending:
                    pending = [p for p in pending if p != fingerprint]
                    experiment.chooses(alternative.value)
                    chosen.append((experiment_id, alternative.value))
                    break
        if not pending:
            break

    return chosen


def strip_query_param(url: URL, name: str) -> str:
    """Path and query of ``url`` without ``name``; other parameters keep their order."""

    stripped = url.remove_query_params(name)
    if stripped.query:
        return f"{stripped.path}?{stripped.query}"
    return stripped.path
