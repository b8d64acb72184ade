"""
QA BDD - Gherkin parsing, tag filtering and scenario execution
"""

__version__ = "0.1.0"
__author__ = "QA BDD Contributors"

from .core import QAModule, ModuleInfo, ExecutionResult, ConfigManager, configure_logging
from .bdd import GherkinParser, parse_feature, parse_feature_file, parse_tag_expression, TagFilter
from .executor import (
    TestExecutor,
    ExecutorConfig,
    StepDefinitionRegistry,
    HookRegistry,
    RunResult,
    Status,
    ReportCollector,
    pending,
)

__all__ = [
    "QAModule",
    "ModuleInfo",
    "ExecutionResult",
    "ConfigManager",
    "configure_logging",
    "GherkinParser",
    "parse_feature",
    "parse_feature_file",
    "parse_tag_expression",
    "TagFilter",
    "TestExecutor",
    "ExecutorConfig",
    "StepDefinitionRegistry",
    "HookRegistry",
    "RunResult",
    "Status",
    "ReportCollector",
    "pending",
]
