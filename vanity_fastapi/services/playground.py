from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol

import yaml

from vanity_fastapi.config import Settings
from vanity_fastapi.observability.logging import get_logger


class Alternative(Protocol):
    value: Any


class Experiment(Protocol):
    """An experiment as exposed by the playground.

    Only A/B tests carry ``alternatives``; other experiment kinds may omit it.
    """

    alternatives: Sequence[Alternative]

    def fingerprint(self, alternative: Alternative) -> str: ...

    def choose(self) -> Any: ...

    def chooses(self, value: Any) -> Any: ...


class Playground(Protocol):
    logger: Any
    load_path: str
    connected: bool
    redis: Any

    @property
    def experiments(self) -> Mapping[str, Experiment]: ...

    def experiment(self, name: str) -> Experiment: ...

    def load(self) -> Any: ...

    def reload(self) -> Any: ...


_playground: Playground | None = None


def set_playground(playground: Playground | None) -> None:
    global _playground
    _playground = playground


def get_playground() -> Playground:
    if _playground is None:
        raise RuntimeError("No playground configured; call set_playground() or use_vanity(playground=...)")
    return _playground


def _resolve_load_path(load_path: str, root: Path) -> str:
    path = Path(load_path)
    if path.is_absolute():
        return str(path)
    return str(root / path)


def _read_redis_config(path: Path, env: str) -> Any | None:
    with path.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    if not isinstance(payload, dict):
        return None
    return payload.get(env)


def boot_playground(playground: Playground, settings: Settings) -> None:
    """Prepare the playground once the application has loaded.

    Relative load paths are resolved against ``settings.root``. When the
    playground has no connection yet, the entry for ``settings.env`` in the
    redis YAML file (if the file exists) becomes its connection spec.
    """

    log = get_logger()

    if getattr(playground, "logger", None) is None:
        playground.logger = log

    playground.load_path = _resolve_load_path(playground.load_path, settings.root_path)
    playground.load()

    config_file = settings.redis_config_path
    if not playground.connected and config_file.exists():
        config = _read_redis_config(config_file, settings.env)
        if config:
            playground.redis = config

    log.info(
        "vanity_booted",
        load_path=playground.load_path,
        env=settings.env,
        connected=bool(playground.connected),
    )
