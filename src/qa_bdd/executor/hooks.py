"""
Lifecycle hooks with tag scoping.

Hooks are registered per scope, optionally restricted by a tag expression,
and run in ascending priority (registration order breaks ties).

Example:
    hooks = HookRegistry()

    @hooks.before('@login')
    async def open_login(context):
        await context.world.page.goto('/login')

    @hooks.after
    def report(context):
        print(context.scenario_name, context.result)
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from ..bdd.tag_expressions import TagFilter
from ..core.exceptions import HookDefinitionError, HookTimeoutError
from .timeouts import run_with_timeout

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 1000
DEFAULT_HOOK_TIMEOUT = 30.0


class HookScope(Enum):
    BEFORE_ALL = "beforeAll"
    AFTER_ALL = "afterAll"
    BEFORE_FEATURE = "beforeFeature"
    AFTER_FEATURE = "afterFeature"
    BEFORE_SCENARIO = "beforeScenario"
    AFTER_SCENARIO = "afterScenario"
    BEFORE_STEP = "beforeStep"
    AFTER_STEP = "afterStep"

    @classmethod
    def coerce(cls, value: Union["HookScope", str]) -> "HookScope":
        if isinstance(value, cls):
            return value
        for scope in cls:
            if value in (scope.value, scope.name, scope.name.lower()):
                return scope
        raise HookDefinitionError(f"Unknown hook scope: {value!r}")


@dataclass
class HookContext:
    """What a hook gets to see; fields not relevant to the scope stay None"""
    world: Any = None
    feature_name: Optional[str] = None
    feature_tags: Optional[List[str]] = None
    scenario_name: Optional[str] = None
    scenario_tags: Optional[List[str]] = None
    step_text: Optional[str] = None
    step_keyword: Optional[str] = None
    error: Optional[BaseException] = None
    result: Optional[str] = None

    @property
    def tags(self) -> List[str]:
        """Tags used for hook selection: scenario tags, else feature tags"""
        if self.scenario_tags is not None:
            return self.scenario_tags
        return self.feature_tags or []


@dataclass
class HookDefinition:
    scope: HookScope
    function: Callable
    tag_filter: Optional[str] = None
    name: Optional[str] = None
    priority: int = DEFAULT_PRIORITY
    timeout: Optional[float] = None
    compiled_filter: Optional[TagFilter] = field(default=None, repr=False, compare=False)

    @property
    def display_name(self) -> str:
        return self.name or f"{self.scope.value} hook"

    def applies_to(self, tags: Iterable[str]) -> bool:
        if not self.tag_filter:
            return True
        tags = list(tags)
        if not tags:
            return False
        return self.compiled_filter.matches(tags)


class HookRegistry:
    """Holds hooks for every lifecycle scope"""

    def __init__(self):
        self.hooks: List[HookDefinition] = []

    def register(
            self,
            scope: Union[HookScope, str],
            function_or_tag: Union[Callable, str],
            function: Optional[Callable] = None,
            name: Optional[str] = None,
            priority: int = DEFAULT_PRIORITY,
            timeout: Optional[float] = None,
    ) -> HookDefinition:
        """
        Register a hook.

        Called either as ``register(scope, fn)`` or
        ``register(scope, '@smoke', fn)``. The tag filter is parsed here, so a
        malformed expression fails at registration.

        Args:
            scope: Lifecycle scope
            function_or_tag: The hook, or a tag expression when ``function`` follows
            function: The hook when a tag expression was given first
            name: Shown in logs and timeout errors
            priority: Lower runs first
            timeout: Seconds; None defers to the executor's hook timeout
        """
        scope = HookScope.coerce(scope)
        tag_filter = None
        if isinstance(function_or_tag, str):
            tag_filter = function_or_tag
            if function is None:
                raise HookDefinitionError(
                    f'Hook registered with tag filter "{tag_filter}" but no function provided'
                )
        else:
            function = function_or_tag

        if not callable(function):
            raise HookDefinitionError(f"Hook for {scope.value} is not callable: {function!r}")

        hook = HookDefinition(
            scope=scope,
            function=function,
            tag_filter=tag_filter,
            name=name,
            priority=priority,
            timeout=timeout,
            compiled_filter=TagFilter(tag_filter) if tag_filter else None,
        )
        self.hooks.append(hook)
        logger.debug(f"Registered {hook.display_name} (priority={priority}, tags={tag_filter})")
        return hook

    def _decorator(self, scope: HookScope, tag_filter_or_function=None, **options):
        if callable(tag_filter_or_function):
            self.register(scope, tag_filter_or_function, **options)
            return tag_filter_or_function

        def decorator(func):
            if tag_filter_or_function:
                self.register(scope, tag_filter_or_function, func, **options)
            else:
                self.register(scope, func, **options)
            return func

        return decorator

    def before_all(self, function=None, **options):
        return self._decorator(HookScope.BEFORE_ALL, function, **options)

    def after_all(self, function=None, **options):
        return self._decorator(HookScope.AFTER_ALL, function, **options)

    def before_feature(self, tag_filter=None, **options):
        return self._decorator(HookScope.BEFORE_FEATURE, tag_filter, **options)

    def after_feature(self, tag_filter=None, **options):
        return self._decorator(HookScope.AFTER_FEATURE, tag_filter, **options)

    def before_scenario(self, tag_filter=None, **options):
        """Runs before each scenario; usable bare or as ``@before_scenario('@tag')``"""
        return self._decorator(HookScope.BEFORE_SCENARIO, tag_filter, **options)

    def after_scenario(self, tag_filter=None, **options):
        return self._decorator(HookScope.AFTER_SCENARIO, tag_filter, **options)

    def before_step(self, tag_filter=None, **options):
        return self._decorator(HookScope.BEFORE_STEP, tag_filter, **options)

    def after_step(self, tag_filter=None, **options):
        return self._decorator(HookScope.AFTER_STEP, tag_filter, **options)

    before = before_scenario
    after = after_scenario

    def get_hooks(self, scope: Union[HookScope, str], tags: Optional[Iterable[str]] = None) -> List[HookDefinition]:
        """Hooks of one scope whose filter accepts the tags, by ascending priority"""
        scope = HookScope.coerce(scope)
        tags = list(tags or [])
        selected = [hook for hook in self.hooks if hook.scope is scope and hook.applies_to(tags)]
        return sorted(selected, key=lambda hook: hook.priority)

    async def run_hooks(
            self,
            scope: Union[HookScope, str],
            context: HookContext,
            default_timeout: float = DEFAULT_HOOK_TIMEOUT,
            cancel_on_timeout: bool = False,
    ) -> None:
        """
        Run every applicable hook in order, one at a time.

        The first hook that raises (or times out) stops the sequence and the
        error propagates to the caller.
        """
        for hook in self.get_hooks(scope, context.tags):
            timeout = hook.timeout if hook.timeout is not None else default_timeout
            logger.debug(f"Running {hook.display_name}")
            await run_with_timeout(
                hook.function,
                context,
                timeout=timeout,
                description=hook.display_name,
                error_class=HookTimeoutError,
                cancel_on_timeout=cancel_on_timeout,
            )

    def list_hooks(self) -> List[Dict[str, Any]]:
        return [
            {
                'scope': hook.scope.value,
                'name': hook.display_name,
                'tag_filter': hook.tag_filter,
                'priority': hook.priority,
                'timeout': hook.timeout,
                'function': getattr(hook.function, '__name__', repr(hook.function)),
            }
            for hook in self.hooks
        ]

    def clear(self):
        """Remove every hook"""
        self.hooks.clear()

    def __len__(self) -> int:
        return len(self.hooks)
