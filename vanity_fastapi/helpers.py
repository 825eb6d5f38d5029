from __future__ import annotations

from typing import Any, Callable

from starlette.templating import Jinja2Templates

from vanity_fastapi.services.playground import get_playground


def ab_test(name: str, caller: Callable[[Any], Any] | None = None) -> Any:
    """Return the alternative value the playground shows for experiment ``name``.

    Usable from handlers and templates alike::

        {% if ab_test("banner") %}100% less complexity!{% endif %}
        {{ ab_test("greeting") }} {{ user.name }}
        {% call(count) ab_test("features") %}{{ count }} features to choose from!{% endcall %}

    In the ``call`` form Jinja passes the block as ``caller``, which is
    rendered with the chosen value.
    """

    value = get_playground().experiment(name).choose()
    if caller is not None:
        return caller(value)
    return value


def install_template_helpers(templates: Jinja2Templates) -> Jinja2Templates:
    templates.env.globals["ab_test"] = ab_test
    return templates
