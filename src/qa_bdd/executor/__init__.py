from .executor import (
    TestExecutor,
    ExecutorConfig,
    ExecutionListener,
    expand_examples,
    expand_placeholders,
    expand_step,
    pending,
)
from .step_definitions import (
    StepDefinitionRegistry,
    StepDefinition,
    StepMatch,
    StepRole,
    ParameterType,
    edit_distance,
)
from .hooks import HookRegistry, HookDefinition, HookContext, HookScope
from .results import (
    Status,
    Attachment,
    StepResult,
    ScenarioResult,
    FeatureResult,
    RunResult,
    StatusCounts,
    Summary,
    compute_summary,
)
from .world import World, default_world_factory
from .report_collector import ReportCollector

__all__ = [
    'TestExecutor',
    'ExecutorConfig',
    'ExecutionListener',
    'expand_examples',
    'expand_placeholders',
    'expand_step',
    'pending',
    'StepDefinitionRegistry',
    'StepDefinition',
    'StepMatch',
    'StepRole',
    'ParameterType',
    'edit_distance',
    'HookRegistry',
    'HookDefinition',
    'HookContext',
    'HookScope',
    'Status',
    'Attachment',
    'StepResult',
    'ScenarioResult',
    'FeatureResult',
    'RunResult',
    'StatusCounts',
    'Summary',
    'compute_summary',
    'World',
    'default_world_factory',
    'ReportCollector',
]

# Module metadata
__version__ = '0.1.0'
__author__ = 'QA-BDD Team'
__description__ = 'Execution engine - run Gherkin documents against step definitions'
