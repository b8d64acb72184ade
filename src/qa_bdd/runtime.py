"""
Process-wide default registries.

Library code should pass registries explicitly; this module exists for step
files that register through plain decorators:

    from qa_bdd.runtime import given, before

    @given('I am on {string}')
    async def on_page(world, url):
        ...

Call ``reset()`` between independent runs (for example in a test fixture).
"""

from typing import Any, Dict, Optional, Union

from .bdd.parser import GherkinParser
from .core.config import ConfigManager, configure_logging
from .executor.executor import ExecutorConfig, TestExecutor
from .executor.hooks import HookRegistry
from .executor.report_collector import ReportCollector
from .executor.step_definitions import StepDefinitionRegistry

step_registry = StepDefinitionRegistry()
hook_registry = HookRegistry()

given = step_registry.given
when = step_registry.when
then = step_registry.then
step = step_registry.step
define_parameter_type = step_registry.define_parameter_type

before = hook_registry.before
after = hook_registry.after
before_all = hook_registry.before_all
after_all = hook_registry.after_all
before_feature = hook_registry.before_feature
after_feature = hook_registry.after_feature
before_step = hook_registry.before_step
after_step = hook_registry.after_step


def reset() -> None:
    """Drop everything registered on the default registries"""
    step_registry.clear()
    hook_registry.clear()


def create_executor(
        config: Optional[Union[Dict[str, Any], ExecutorConfig]] = None,
        manager: Optional[ConfigManager] = None,
        **kwargs,
) -> TestExecutor:
    """
    TestExecutor wired to the default registries.

    Settings not passed explicitly come from ``manager`` (a ConfigManager over
    the usual config file locations by default): ``general.log_level`` sets up
    logging, the ``parser`` section builds the parser and the ``executor``
    section is used when ``config`` is None.
    """
    manager = manager or ConfigManager()
    configure_logging(manager.get('general.log_level', 'INFO'))

    if config is None:
        config = ExecutorConfig.from_config_manager(manager)
    if kwargs.get('parser') is None:
        kwargs['parser'] = GherkinParser.from_config_manager(manager)

    return TestExecutor(config, step_registry=step_registry, hook_registry=hook_registry, **kwargs)


def create_report_collector(manager: Optional[ConfigManager] = None) -> ReportCollector:
    """ReportCollector configured from the ``reporter`` section"""
    return ReportCollector.from_config_manager(manager)
