import asyncio
import inspect
import re
import time
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..bdd.models import (
    Background,
    DataTable,
    Examples,
    Feature,
    GherkinDocument,
    Rule,
    Scenario,
    Step,
    StepKeywordType,
    TableRow,
    resolve_keyword_types,
)
from ..bdd.parser import GherkinParser, parse_feature_file
from ..bdd.tag_expressions import TagFilter
from ..core.base import ExecutionResult, ModuleInfo, ModuleStatus, QAModule
from ..core.config import ConfigManager
from ..core.exceptions import ConfigurationError, PendingStepError, StepTimeoutError, UndefinedStepError
from .hooks import HookContext, HookRegistry, HookScope
from .results import (
    Attachment,
    FeatureResult,
    RunResult,
    ScenarioResult,
    Status,
    StepResult,
    compute_summary,
)
from .step_definitions import StepDefinitionRegistry, StepRole
from .timeouts import run_with_timeout
from .world import default_world_factory

logger = logging.getLogger(__name__)

PENDING = "PENDING"


@dataclass
class ExecutorConfig:
    """Configuration for Test Executor"""
    step_timeout: float = 30.0
    hook_timeout: float = 30.0
    tag_filter: Optional[str] = None
    fail_fast: bool = False
    keep_going: bool = False
    slow_mo: float = 0
    cancel_on_timeout: bool = False
    suggestion_limit: int = 3

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutorConfig":
        """Build from a mapping; unknown keys are ignored"""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    @classmethod
    def from_config_manager(cls, manager: Optional[ConfigManager] = None) -> "ExecutorConfig":
        """Read the ``executor`` section of a ConfigManager"""
        manager = manager or ConfigManager()
        return cls.from_dict(manager.get_module_config('executor') or {})


class ExecutionListener:
    """Receives progress callbacks; override what you need"""

    def feature_started(self, feature: Feature) -> None:
        pass

    def feature_finished(self, result: FeatureResult) -> None:
        pass

    def scenario_started(self, scenario: Scenario, feature_name: str) -> None:
        pass

    def scenario_finished(self, result: ScenarioResult, feature_name: str) -> None:
        pass

    def step_started(self, step: Step) -> None:
        pass

    def step_finished(self, result: StepResult) -> None:
        pass


def expand_placeholders(text: str, values: Dict[str, str]) -> str:
    """Replace ``<column>`` with the row value in one pass; unknown names stay as written"""
    if not values or not text:
        return text
    names = sorted(values, key=len, reverse=True)
    pattern = re.compile('<(' + '|'.join(re.escape(name) for name in names) + ')>')
    return pattern.sub(lambda found: values[found.group(1)], text)


def expand_step(step: Step, values: Dict[str, str]) -> Step:
    """Copy of the step with placeholders filled in text, table cells and doc string"""
    data_table = step.data_table
    if data_table is not None:
        data_table = DataTable([
            TableRow([expand_placeholders(cell, values) for cell in row.cells], row.line)
            for row in data_table.rows
        ])
    doc_string = step.doc_string
    if doc_string is not None:
        doc_string = replace(doc_string, content=expand_placeholders(doc_string.content, values))
    return replace(
        step,
        text=expand_placeholders(step.text, values),
        data_table=data_table,
        doc_string=doc_string,
    )


def expand_examples(scenario: Scenario, examples: Examples) -> List[Tuple[int, Dict[str, str], Scenario]]:
    """
    One concrete scenario per body row of an Examples block.

    Returns (row index within the block, column values, scenario) triples. The
    expanded scenarios carry no Examples of their own.
    """
    expanded = []
    if examples.table_header is None:
        return expanded
    for index, row in enumerate(examples.table_body):
        values = examples.row_values(row)
        expanded.append((index, values, replace(
            scenario,
            name=expand_placeholders(scenario.name, values),
            steps=[expand_step(step, values) for step in scenario.steps],
            examples=[],
        )))
    return expanded


def scenario_status(steps: Sequence[StepResult], hook_error: Optional[BaseException] = None) -> Status:
    if hook_error is not None or any(step.status is Status.FAILED for step in steps):
        return Status.FAILED
    if any(step.status in (Status.UNDEFINED, Status.PENDING) for step in steps):
        return Status.PENDING
    if all(step.status is Status.SKIPPED for step in steps):
        return Status.SKIPPED
    return Status.PASSED


def feature_status(scenarios: Sequence[ScenarioResult], hook_error: Optional[BaseException] = None) -> Status:
    if hook_error is not None or any(s.status is Status.FAILED for s in scenarios):
        return Status.FAILED
    if all(s.status is Status.SKIPPED for s in scenarios):
        return Status.SKIPPED
    return Status.PASSED


class TestExecutor(QAModule):
    """
    Runs parsed feature documents against registered step definitions.

    The executor walks each document, filters scenarios by tag expression,
    expands outlines, fires lifecycle hooks and records a result for every
    step. Ordinary test failures never raise out of ``run``; they are statuses
    in the returned RunResult.

    Example:
        steps = StepDefinitionRegistry()

        @steps.given('I have {int} items')
        def have_items(world, count):
            world.ctx['items'] = count

        executor = TestExecutor({'step_timeout': 5}, step_registry=steps)
        result = executor.execute({'feature_text': text}).data
    """

    __test__ = False

    def __init__(
            self,
            config: Optional[Union[Dict[str, Any], ExecutorConfig]] = None,
            step_registry: Optional[StepDefinitionRegistry] = None,
            hook_registry: Optional[HookRegistry] = None,
            world_factory: Optional[Callable[[], Any]] = None,
            listeners: Optional[Iterable[ExecutionListener]] = None,
            parser: Optional[GherkinParser] = None,
    ):
        self.step_registry = step_registry if step_registry is not None else StepDefinitionRegistry()
        self.hook_registry = hook_registry if hook_registry is not None else HookRegistry()
        self.world_factory = world_factory or default_world_factory
        self.listeners: List[ExecutionListener] = list(listeners or [])
        self.parser = parser or GherkinParser()
        self._tag_filter: Optional[TagFilter] = None
        super().__init__(config)

    def _initialize(self) -> None:
        """Normalize configuration and compile the tag filter"""
        try:
            if isinstance(self.config, dict):
                self.config = ExecutorConfig.from_dict(self.config)
            elif self.config is None:
                self.config = ExecutorConfig()

            if not self.validate():
                raise ConfigurationError(f"Invalid executor configuration: {self.config}")

            # Malformed filters fail here, before anything runs
            self._tag_filter = TagFilter(self.config.tag_filter) if self.config.tag_filter else None

            self.status = ModuleStatus.READY
            self.logger.debug(f"Test Executor ready with {len(self.step_registry)} step definitions")

        except Exception as e:
            self.logger.error(f"Failed to initialize Test Executor: {e}")
            self.status = ModuleStatus.ERROR
            raise

    def add_listener(self, listener: ExecutionListener) -> None:
        self.listeners.append(listener)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run(self, documents: Iterable[GherkinDocument]) -> RunResult:
        """
        Execute documents in order.

        beforeAll hooks run first; afterAll hooks always run, even when
        beforeAll failed (in which case no feature is executed).
        """
        start = time.monotonic()
        feature_results: List[FeatureResult] = []
        hook_error: Optional[BaseException] = None
        self.status = ModuleStatus.RUNNING

        try:
            try:
                await self._run_hooks(HookScope.BEFORE_ALL, HookContext())
            except Exception as e:
                hook_error = e
                self.logger.error(f"beforeAll hook failed, no features will run: {e}")
            else:
                for document in documents:
                    if document.feature is None:
                        logger.warning(f"No feature in {document.uri or '<text>'}, skipping")
                        continue

                    feature_result = await self._run_feature(document.feature, document.uri)
                    feature_results.append(feature_result)

                    if self.config.fail_fast and feature_result.status is Status.FAILED:
                        logger.info("Fail fast: not running further features")
                        break
        finally:
            try:
                await self._run_hooks(HookScope.AFTER_ALL, HookContext())
            except Exception as e:
                self.logger.error(f"afterAll hook failed: {e}")
                if hook_error is None:
                    hook_error = e
            self.status = ModuleStatus.READY

        features = tuple(feature_results)
        return RunResult(
            features=features,
            summary=compute_summary(features),
            duration=time.monotonic() - start,
            hook_error=hook_error,
        )

    async def run_document(self, document: GherkinDocument) -> RunResult:
        return await self.run([document])

    async def run_text(self, text: str, uri: Optional[str] = None) -> RunResult:
        """Parse feature-file text and run it"""
        return await self.run([self.parser.parse(text, uri=uri)])

    def execute(self, input_data: Any) -> ExecutionResult:
        """
        Run synchronously.

        Args:
            input_data: A GherkinDocument, a list of them, or a dict with one of
                'documents', 'feature_text' (plus optional 'uri'),
                'feature_path' or 'feature_paths'

        Returns:
            ExecutionResult whose data is the RunResult
        """
        self.ensure_ready()
        documents = self._collect_documents(input_data)
        run_result = asyncio.run(self.run(documents))
        return ExecutionResult(
            success=run_result.success,
            data=run_result,
            error=str(run_result.hook_error) if run_result.hook_error else None,
            duration=run_result.duration,
            metadata={'summary': run_result.summary.to_dict()},
        )

    def _collect_documents(self, input_data: Any) -> List[GherkinDocument]:
        if isinstance(input_data, GherkinDocument):
            return [input_data]
        if isinstance(input_data, (list, tuple)):
            return list(input_data)
        if not isinstance(input_data, dict):
            raise ConfigurationError(f"Unsupported input for execute(): {type(input_data).__name__}")

        if 'documents' in input_data:
            return list(input_data['documents'])
        if 'feature_text' in input_data:
            return [self.parser.parse(input_data['feature_text'], uri=input_data.get('uri'))]

        paths = input_data.get('feature_paths') or []
        if input_data.get('feature_path'):
            paths = [input_data['feature_path'], *paths]
        if not paths:
            raise ConfigurationError("execute() needs 'documents', 'feature_text', 'feature_path' or 'feature_paths'")

        documents = []
        for path in paths:
            path = Path(path)
            if not path.exists():
                raise FileNotFoundError(f"Feature file not found: {path}")
            documents.append(parse_feature_file(
                path, strict=self.parser.strict, language=self.parser.default_language
            ))
        return documents

    # ------------------------------------------------------------------
    # Features and rules
    # ------------------------------------------------------------------

    async def _run_feature(self, feature: Feature, uri: Optional[str] = None) -> FeatureResult:
        start = time.monotonic()
        feature_tags = [tag.name for tag in feature.tags]
        scenario_results: List[ScenarioResult] = []
        hook_error: Optional[BaseException] = None
        context = HookContext(feature_name=feature.name, feature_tags=feature_tags)

        self._notify('feature_started', feature)
        logger.info(f"Feature: {feature.name}")

        try:
            await self._run_hooks(HookScope.BEFORE_FEATURE, context)
        except Exception as e:
            hook_error = e
            self.logger.error(f"beforeFeature hook failed for '{feature.name}': {e}")

        try:
            if hook_error is not None:
                scenario_results = self._skip_feature(feature, feature_tags)
            else:
                background = feature.background.steps if feature.background else []
                for child in feature.children:
                    if isinstance(child, Background):
                        continue
                    if isinstance(child, Rule):
                        results = await self._run_rule(child, feature_tags, background, feature.name)
                    else:
                        results = await self._run_scenario_or_outline(child, feature_tags, background, feature.name)
                    scenario_results.extend(results)
                    if self._should_stop(results):
                        break
        finally:
            try:
                await self._run_hooks(HookScope.AFTER_FEATURE, context)
            except Exception as e:
                self.logger.error(f"afterFeature hook failed for '{feature.name}': {e}")
                if hook_error is None:
                    hook_error = e

        scenarios = tuple(scenario_results)
        result = FeatureResult(
            name=feature.name,
            status=feature_status(scenarios, hook_error),
            scenarios=scenarios,
            tags=tuple(feature_tags),
            duration=time.monotonic() - start,
            uri=uri,
            hook_error=hook_error,
        )
        self._notify('feature_finished', result)
        return result

    async def _run_rule(self, rule: Rule, feature_tags: List[str], background: List[Step],
                        feature_name: str) -> List[ScenarioResult]:
        rule_tags = feature_tags + [tag.name for tag in rule.tags]
        if rule.background:
            background = background + rule.background.steps

        results: List[ScenarioResult] = []
        for scenario in rule.scenarios:
            scenario_results = await self._run_scenario_or_outline(scenario, rule_tags, background, feature_name)
            results.extend(scenario_results)
            if self._should_stop(scenario_results):
                break
        return results

    def _skip_feature(self, feature: Feature, feature_tags: List[str]) -> List[ScenarioResult]:
        skipped = []
        for child in feature.children:
            if isinstance(child, Rule):
                rule_tags = feature_tags + [tag.name for tag in child.tags]
                skipped.extend(_skipped_scenario(s, rule_tags + s.tag_names) for s in child.scenarios)
            elif isinstance(child, Scenario):
                skipped.append(_skipped_scenario(child, feature_tags + child.tag_names))
        return skipped

    # ------------------------------------------------------------------
    # Scenarios
    # ------------------------------------------------------------------

    async def _run_scenario_or_outline(self, scenario: Scenario, parent_tags: List[str],
                                       background: List[Step], feature_name: str) -> List[ScenarioResult]:
        tags = parent_tags + scenario.tag_names

        if scenario.examples:
            return await self._run_outline(scenario, tags, background, feature_name)

        if not self._selected(tags):
            logger.debug(f"Skipping '{scenario.name}': tags {tags} do not match filter")
            return [_skipped_scenario(scenario, tags)]

        return [await self._run_scenario(scenario, tags, background, feature_name)]

    async def _run_outline(self, scenario: Scenario, tags: List[str],
                           background: List[Step], feature_name: str) -> List[ScenarioResult]:
        results: List[ScenarioResult] = []

        for examples in scenario.examples:
            examples_tags = tags + [tag.name for tag in examples.tags]
            if not self._selected(examples_tags):
                logger.debug(f"Skipping examples '{examples.name}' of '{scenario.name}'")
                continue

            for index, values, expanded in expand_examples(scenario, examples):
                result = await self._run_scenario(
                    expanded, examples_tags, background, feature_name,
                    example_index=index, example_values=values,
                )
                results.append(result)
                if self._should_stop([result]):
                    return results

        if not results:
            return [_skipped_scenario(scenario, tags)]
        return results

    async def _run_scenario(
            self,
            scenario: Scenario,
            tags: List[str],
            background: List[Step],
            feature_name: str,
            example_index: Optional[int] = None,
            example_values: Optional[Dict[str, str]] = None,
    ) -> ScenarioResult:
        start = time.monotonic()
        hook_error: Optional[BaseException] = None
        world = None

        self._notify('scenario_started', scenario, feature_name)
        logger.info(f"Scenario: {scenario.name}")

        try:
            world = await self._create_world()
        except Exception as e:
            hook_error = e
            self.logger.error(f"Could not create world for '{scenario.name}': {e}")

        context = HookContext(
            world=world,
            feature_name=feature_name,
            scenario_name=scenario.name,
            scenario_tags=list(tags),
        )

        if hook_error is None:
            try:
                await self._run_hooks(HookScope.BEFORE_SCENARIO, context)
            except Exception as e:
                hook_error = e
                self.logger.error(f"beforeScenario hook failed for '{scenario.name}': {e}")

        halted = hook_error is not None and not self.config.keep_going
        step_results: List[StepResult] = []

        for step, keyword_type in resolve_keyword_types(list(background) + list(scenario.steps)):
            if halted:
                step_results.append(StepResult(step.keyword, step.text, Status.SKIPPED, line=step.line))
                continue

            result = await self._run_step(step, keyword_type, world, tags)
            step_results.append(result)

            if result.status is Status.PASSED and self.config.slow_mo > 0:
                await asyncio.sleep(self.config.slow_mo)

            if result.status in (Status.FAILED, Status.UNDEFINED) and not self.config.keep_going:
                halted = True

        # Output from afterScenario hooks belongs to no step.
        _bind_output(world, [], [])

        status = scenario_status(step_results, hook_error)
        context.result = status.value

        try:
            await self._run_hooks(HookScope.AFTER_SCENARIO, context)
        except Exception as e:
            self.logger.error(f"afterScenario hook failed for '{scenario.name}': {e}")
            if hook_error is None:
                hook_error = e
                status = Status.FAILED

        result = ScenarioResult(
            name=scenario.name,
            status=status,
            steps=tuple(step_results),
            tags=tuple(tags),
            duration=time.monotonic() - start,
            line=scenario.line,
            example_index=example_index,
            example_values=example_values,
            hook_error=hook_error,
        )
        logger.info(f"Scenario '{scenario.name}' {status.value}")
        self._notify('scenario_finished', result, feature_name)
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _run_step(self, step: Step, keyword_type: StepKeywordType, world: Any,
                        tags: List[str]) -> StepResult:
        start = time.monotonic()
        attachments: List[Attachment] = []
        logs: List[str] = []
        _bind_output(world, attachments, logs)

        context = HookContext(
            world=world,
            scenario_tags=list(tags),
            step_text=step.text,
            step_keyword=step.keyword,
        )
        suggestions: Tuple[str, ...] = ()
        self._notify('step_started', step)

        try:
            await self._run_hooks(HookScope.BEFORE_STEP, context)
        except Exception as e:
            self.logger.error(f"beforeStep hook failed for '{step.text}': {e}")
            status, error = Status.FAILED, e
        else:
            status, error, suggestions = await self._invoke_step(step, StepRole.for_keyword_type(keyword_type),
                                                                 world, tags)

        context.error = error
        try:
            await self._run_hooks(HookScope.AFTER_STEP, context)
        except Exception as e:
            logger.warning(f"afterStep hook failed for '{step.text}' (ignored): {e}")

        result = StepResult(
            keyword=step.keyword,
            text=step.text,
            status=status,
            duration=time.monotonic() - start,
            line=step.line,
            error=None if status is Status.PENDING else error,
            suggestions=suggestions,
            attachments=tuple(attachments),
            logs=tuple(logs),
        )
        self._notify('step_finished', result)
        return result

    async def _invoke_step(self, step: Step, role: StepRole, world: Any,
                           tags: List[str]) -> Tuple[Status, Optional[BaseException], Tuple[str, ...]]:
        match = self.step_registry.match(step.text, role, tags)

        if match is None:
            suggestions = tuple(
                definition.readable_pattern
                for definition in self.step_registry.suggest(step.text, self.config.suggestion_limit)
            )
            error = UndefinedStepError(step.keyword, step.text, list(suggestions))
            logger.warning(str(error))
            return Status.UNDEFINED, error, suggestions

        args = list(match.args)
        if step.data_table is not None:
            args.append(step.data_table)
        if step.doc_string is not None:
            args.append(step.doc_string.content)

        try:
            await run_with_timeout(
                match.definition.invoke,
                world,
                *args,
                timeout=self.config.step_timeout,
                description=f'Step "{step.keyword} {step.text}"',
                error_class=StepTimeoutError,
                cancel_on_timeout=self.config.cancel_on_timeout,
            )
        except Exception as e:
            if str(e) == PENDING:
                logger.info(f"Pending: {step.keyword} {step.text}")
                return Status.PENDING, e, ()
            self.logger.error(f"Step failed: {step.keyword} {step.text}: {e}")
            return Status.FAILED, e, ()

        return Status.PASSED, None, ()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _run_hooks(self, scope: HookScope, context: HookContext) -> None:
        await self.hook_registry.run_hooks(
            scope,
            context,
            default_timeout=self.config.hook_timeout,
            cancel_on_timeout=self.config.cancel_on_timeout,
        )

    async def _create_world(self) -> Any:
        world = self.world_factory()
        if inspect.isawaitable(world):
            world = await world
        return world

    def _selected(self, tags: Iterable[str]) -> bool:
        return self._tag_filter is None or self._tag_filter.matches(tags)

    def _should_stop(self, results: Iterable[ScenarioResult]) -> bool:
        return self.config.fail_fast and any(r.status is Status.FAILED for r in results)

    def _notify(self, event: str, *args: Any) -> None:
        for listener in self.listeners:
            getattr(listener, event)(*args)

    def validate(self) -> bool:
        """Validate executor configuration"""
        config = self.config
        if config.step_timeout is not None and config.step_timeout < 0:
            self.logger.error(f"step_timeout must not be negative: {config.step_timeout}")
            return False
        if config.hook_timeout is not None and config.hook_timeout < 0:
            self.logger.error(f"hook_timeout must not be negative: {config.hook_timeout}")
            return False
        if config.slow_mo < 0:
            self.logger.error(f"slow_mo must not be negative: {config.slow_mo}")
            return False
        if config.suggestion_limit < 0:
            self.logger.error(f"suggestion_limit must not be negative: {config.suggestion_limit}")
            return False
        return True

    def get_info(self) -> ModuleInfo:
        """Get module information"""
        return ModuleInfo(
            name="Test Executor",
            version="0.1.0",
            description="Runs Gherkin feature documents against registered step definitions",
            author="QA-BDD Team",
            dependencies=["pyyaml", "jinja2"],
            optional_dependencies=[],
        )


def pending() -> None:
    """Call from a step to mark it as not implemented yet"""
    raise PendingStepError()


def _skipped_scenario(scenario: Scenario, tags: List[str]) -> ScenarioResult:
    return ScenarioResult(
        name=scenario.name,
        status=Status.SKIPPED,
        tags=tuple(tags),
        line=scenario.line,
    )


def _bind_output(world: Any, attachments: List[Attachment], logs: List[str]) -> None:
    """Point world.attach / world.log at the current step's buffers"""
    if world is None:
        return

    def attach(data: Any, media_type: str = "text/plain") -> None:
        attachments.append(Attachment(data, media_type))

    def log(message: Any) -> None:
        logs.append(str(message))

    try:
        world.attach = attach
        world.log = log
    except AttributeError:
        logger.debug(f"World of type {type(world).__name__} does not accept attach/log")
