from .base import (
    QAModule,
    ModuleStatus,
    ModuleInfo,
    ExecutionResult,
)
from .config import ConfigManager, configure_logging
from .exceptions import (
    QABddError,
    ConfigurationError,
    TagExpressionError,
    GherkinParseError,
    StepDefinitionError,
    DuplicateStepDefinitionError,
    HookDefinitionError,
    ExecutionTimeoutError,
    StepTimeoutError,
    HookTimeoutError,
    PendingStepError,
    UndefinedStepError,
)

__all__ = [
    # Base classes
    "QAModule",
    "ModuleStatus",
    "ModuleInfo",
    "ExecutionResult",

    # Configuration
    "ConfigManager",
    "configure_logging",

    # Exceptions
    "QABddError",
    "ConfigurationError",
    "TagExpressionError",
    "GherkinParseError",
    "StepDefinitionError",
    "DuplicateStepDefinitionError",
    "HookDefinitionError",
    "ExecutionTimeoutError",
    "StepTimeoutError",
    "HookTimeoutError",
    "PendingStepError",
    "UndefinedStepError",
]
