from typing import List, Optional, Sequence


class QABddError(Exception):
    """Base exception for QA BDD"""
    pass


class ConfigurationError(QABddError):
    """Configuration-related errors"""
    pass


class TagExpressionError(QABddError):
    """Malformed tag expression"""
    pass


class GherkinParseError(QABddError):
    """Raised by strict parsing when the document produced diagnostics"""

    def __init__(self, message: str, diagnostics: Optional[Sequence] = None):
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])


class StepDefinitionError(QABddError):
    """Invalid step definition or parameter type"""
    pass


class DuplicateStepDefinitionError(StepDefinitionError):
    """Same compiled pattern registered twice for the same role"""
    pass


class HookDefinitionError(QABddError):
    """Invalid hook registration"""
    pass


class ExecutionTimeoutError(QABddError):
    """A step or hook did not complete in time"""

    def __init__(self, message: str, timeout: float):
        super().__init__(message)
        self.timeout = timeout


class StepTimeoutError(ExecutionTimeoutError):
    pass


class HookTimeoutError(ExecutionTimeoutError):
    pass


class PendingStepError(QABddError):
    """Marks a step as not implemented yet"""

    def __init__(self):
        super().__init__("PENDING")


class UndefinedStepError(QABddError):
    """No step definition matched the step text"""

    def __init__(self, keyword: str, text: str, suggestions: Optional[List[str]] = None):
        self.keyword = keyword
        self.text = text
        self.suggestions = list(suggestions or [])
        message = f'Undefined step: "{keyword} {text}"'
        if self.suggestions:
            lines = "\n".join(f"  - {s}" for s in self.suggestions)
            message += f"\n\nDid you mean:\n{lines}"
        super().__init__(message)
