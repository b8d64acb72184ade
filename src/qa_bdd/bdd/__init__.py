from .models import (
    GherkinDocument,
    Feature,
    Rule,
    Background,
    Scenario,
    Examples,
    Step,
    StepKeywordType,
    DataTable,
    DocString,
    TableRow,
    Tag,
    Comment,
    Diagnostic,
    resolve_keyword_types,
)
from .languages import Dialect, register_language, get_dialect, supported_languages
from .parser import GherkinParser, parse_feature, parse_feature_file
from .formatter import format_document, format_feature, format_scenario, format_step
from .tag_expressions import (
    TagExpression,
    TagFilter,
    parse_tag_expression,
    evaluate_tag_expression,
    matches_tags,
    tags_match,
)

__all__ = [
    "GherkinDocument",
    "Feature",
    "Rule",
    "Background",
    "Scenario",
    "Examples",
    "Step",
    "StepKeywordType",
    "DataTable",
    "DocString",
    "TableRow",
    "Tag",
    "Comment",
    "Diagnostic",
    "resolve_keyword_types",
    "Dialect",
    "register_language",
    "get_dialect",
    "supported_languages",
    "GherkinParser",
    "parse_feature",
    "parse_feature_file",
    "format_document",
    "format_feature",
    "format_scenario",
    "format_step",
    "TagExpression",
    "TagFilter",
    "parse_tag_expression",
    "evaluate_tag_expression",
    "matches_tags",
    "tags_match",
]
