"""
Render a parsed document back to feature-file text.

The output is normalized (two-space indentation, aligned tables) and parses
back to a structurally equal tree. Layout lives in the Jinja2 templates
below. Table alignment (with cell escaping) and doc-string fencing are
exposed to them as filters.
"""

from typing import List, Optional

from jinja2 import DictLoader, Environment, StrictUndefined

from .models import (
    Background,
    DocString,
    Feature,
    GherkinDocument,
    Rule,
    Scenario,
    Step,
    TableRow,
)

INDENT = "  "

MACROS_TEMPLATE = """\
{% macro tags(items, level) %}
{% if items %}
{{ pad(level) }}{{ items|join(' ', attribute='name') }}
{% endif %}
{% endmacro %}

{% macro header(element, level) %}
{{ (pad(level) ~ element.keyword ~ ': ' ~ element.name)|rstrip }}
{% for line in element.description|lines %}
{{ (pad(level + 1) ~ line)|rstrip }}
{% endfor %}
{% endmacro %}

{% macro step(item, level) %}
{{ (pad(level) ~ item.keyword ~ ' ' ~ item.text)|rstrip }}
{% if item.data_table is not none %}
{% for line in item.data_table.rows|table(level + 1) %}
{{ line }}
{% endfor %}
{% endif %}
{% if item.doc_string is not none %}
{% for line in item.doc_string|doc_string(level + 1) %}
{{ line }}
{% endfor %}
{% endif %}
{% endmacro %}

{% macro background(element, level) %}
{{ header(element, level) -}}
{% for item in element.steps %}
{{ step(item, level + 1) -}}
{% endfor %}
{% endmacro %}

{% macro examples(element, level) %}
{{ tags(element.tags, level) -}}
{{ header(element, level) -}}
{% set rows = ([element.table_header] if element.table_header else []) + element.table_body %}
{% for line in rows|table(level + 1) %}
{{ line }}
{% endfor %}
{% endmacro %}

{% macro scenario(element, level) %}
{{ tags(element.tags, level) -}}
{{ header(element, level) -}}
{% for item in element.steps %}
{{ step(item, level + 1) -}}
{% endfor %}
{% for block in element.examples %}

{{ examples(block, level + 1) -}}
{% endfor %}
{% endmacro %}

{% macro rule(element, level) %}
{{ tags(element.tags, level) -}}
{{ header(element, level) -}}
{% for item in element.children %}

{% if item is background %}
{{ background(item, level + 1) -}}
{% else %}
{{ scenario(item, level + 1) -}}
{% endif %}
{% endfor %}
{% endmacro %}

{% macro child(element, level) %}
{% if element is rule %}
{{ rule(element, level) -}}
{% elif element is background %}
{{ background(element, level) -}}
{% else %}
{{ scenario(element, level) -}}
{% endif %}
{% endmacro %}
"""

FEATURE_TEMPLATE = """\
{% import 'macros.feature' as m %}
{% if feature.language != 'en' %}
# language: {{ feature.language }}
{% endif %}
{{ m.tags(feature.tags, 0) -}}
{{ m.header(feature, 0) -}}
{% for item in feature.children %}

{{ m.child(item, 1) -}}
{% endfor %}
"""


def format_document(document: GherkinDocument) -> str:
    if document.feature is None:
        return ""
    return format_feature(document.feature)


def format_feature(feature: Feature) -> str:
    return _environment.get_template("feature.feature").render(feature=feature)


def format_scenario(scenario: Scenario, level: int = 0) -> str:
    return str(_macros().scenario(scenario, level))


def format_background(background: Background, level: int = 0) -> str:
    return str(_macros().background(background, level))


def format_step(step: Step, level: int = 0) -> str:
    return str(_macros().step(step, level)).rstrip("\n")


def format_table(rows: List[TableRow], level: int = 0) -> List[str]:
    """Aligned table lines with cell content escaped"""
    escaped = [[_escape_cell(cell) for cell in row.cells] for row in rows]
    width = max((len(row) for row in escaped), default=0)
    sizes = [
        max((len(row[i]) for row in escaped if i < len(row)), default=0)
        for i in range(width)
    ]
    prefix = INDENT * level
    lines = []
    for row in escaped:
        cells = [cell.ljust(sizes[i]) for i, cell in enumerate(row)]
        lines.append(f"{prefix}| {' | '.join(cells)} |")
    return lines


def _escape_cell(value: str) -> str:
    return value.replace("\\", "\\\\").replace("|", "\\|").replace("\n", "\\n")


def _doc_string(doc_string: DocString, level: int) -> List[str]:
    prefix = INDENT * level
    delimiter = doc_string.delimiter
    escaped_delimiter = "\\" + "\\".join(delimiter)
    media_type: Optional[str] = doc_string.media_type

    lines = [f"{prefix}{delimiter}{media_type or ''}"]
    content_lines = doc_string.content.split("\n") if doc_string.content else []
    for line in content_lines:
        lines.append(f"{prefix}{line.replace(delimiter, escaped_delimiter)}" if line else "")
    lines.append(f"{prefix}{delimiter}")
    return lines


def _lines(text: str) -> List[str]:
    return text.split("\n") if text else []


def _build_environment() -> Environment:
    # Plain text output: no autoescape, block tags own their whole line.
    env = Environment(
        loader=DictLoader({"macros.feature": MACROS_TEMPLATE, "feature.feature": FEATURE_TEMPLATE}),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
    env.globals["pad"] = lambda level: INDENT * level
    env.filters["rstrip"] = str.rstrip
    env.filters["lines"] = _lines
    env.filters["table"] = format_table
    env.filters["doc_string"] = _doc_string
    env.tests["rule"] = lambda node: isinstance(node, Rule)
    env.tests["background"] = lambda node: isinstance(node, Background)
    return env


_environment = _build_environment()


def _macros():
    return _environment.get_template("macros.feature").module
