import asyncio
from unittest.mock import Mock

import pytest
import yaml

from qa_bdd.bdd.models import DataTable
from qa_bdd.bdd.parser import GherkinParser
from qa_bdd.core.base import ModuleStatus
from qa_bdd.core.config import ConfigManager
from qa_bdd.core.exceptions import ConfigurationError, StepTimeoutError, TagExpressionError, UndefinedStepError
from qa_bdd.executor import (
    ExecutionListener,
    ExecutorConfig,
    Status,
    TestExecutor,
    World,
    expand_placeholders,
    pending,
)

LOGIN_FEATURE = '''Feature: Login
  Scenario: valid login
    Given I am on "https://x.test/login"
    When I log in as "alice"
    Then I see "Welcome"
'''


def make_executor(steps, hooks=None, **config):
    return TestExecutor(config, step_registry=steps, hook_registry=hooks)


def statuses(scenario_result):
    return [step.status for step in scenario_result.steps]


class TestExecutorConfig:
    """Test ExecutorConfig and executor setup"""

    def test_default_config(self):
        """Test default configuration values"""
        config = ExecutorConfig()
        assert config.step_timeout == 30.0
        assert config.hook_timeout == 30.0
        assert config.tag_filter is None
        assert config.fail_fast is False
        assert config.keep_going is False

    def test_dict_config(self, steps):
        """A dict config is normalized into ExecutorConfig"""
        executor = make_executor(steps, step_timeout=5, unknown_key=1)
        assert isinstance(executor.config, ExecutorConfig)
        assert executor.config.step_timeout == 5
        assert executor.status == ModuleStatus.READY

    def test_from_config_manager(self, tmp_path):
        """The executor section of a config file is read"""
        path = tmp_path / "qa-bdd.yaml"
        path.write_text(yaml.dump({'executor': {'tag_filter': '@smoke', 'fail_fast': True}}))

        config = ExecutorConfig.from_config_manager(ConfigManager(path))
        assert config.tag_filter == '@smoke'
        assert config.fail_fast is True
        assert config.step_timeout == 30.0

    def test_invalid_config(self, steps):
        """Negative timeouts are rejected"""
        with pytest.raises(ConfigurationError):
            make_executor(steps, step_timeout=-1)

    def test_malformed_tag_filter_fails_before_running(self, steps):
        """A bad tag filter fails at construction"""
        with pytest.raises(TagExpressionError):
            make_executor(steps, tag_filter='@a and (')

    def test_get_info(self, steps):
        """Module info names the executor and its dependencies"""
        info = make_executor(steps).get_info()
        assert info.name == "Test Executor"
        assert "jinja2" in info.dependencies


class TestScenarioExecution:
    """Test running plain scenarios and outlines"""

    @pytest.mark.asyncio
    async def test_login_scenario(self, steps):
        """Sync and async steps share the world"""
        visited = []

        @steps.given('I am on {string}')
        def on_page(world, url):
            visited.append(url)

        @steps.when('I log in as {string}')
        async def log_in(world, user):
            await asyncio.sleep(0)
            world.set('user', user)

        @steps.then('I see {string}')
        def see(world, text):
            assert world.get('user') == 'alice'

        result = await make_executor(steps).run_text(LOGIN_FEATURE, uri="login.feature")

        assert result.success
        assert visited == ["https://x.test/login"]
        assert result.summary.scenarios.total == 1
        assert result.summary.scenarios.passed == 1
        assert result.summary.steps.total == 3
        assert result.summary.steps.passed == 3
        assert result.features[0].uri == "login.feature"

    @pytest.mark.asyncio
    async def test_outline_expands_each_row(self, steps):
        """Each Examples row runs as its own scenario"""
        seen = []

        @steps.given('user {word} aged {int}')
        def user(world, name, age):
            seen.append((name, age))

        text = '''Feature: Users
  Scenario Outline: greet <name>
    Given user <name> aged <age>

    Examples:
      | name  | age |
      | alice | 30  |
      | bob   | 41  |
'''
        scenarios = (await make_executor(steps).run_text(text)).features[0].scenarios

        assert seen == [("alice", 30), ("bob", 41)]
        assert [s.example_index for s in scenarios] == [0, 1]
        assert scenarios[0].name == "greet alice"
        assert scenarios[1].steps[0].text == "user bob aged 41"
        assert scenarios[1].example_values == {'name': 'bob', 'age': '41'}

    @pytest.mark.asyncio
    async def test_and_inherits_previous_role(self, steps):
        """And matches definitions of the previous role"""
        steps.given('a')(lambda world: None)
        steps.when('b')(lambda world: None)
        steps.when('c')(lambda world: None)

        text = "Feature: f\n  Scenario: s\n    Given a\n    When b\n    And c\n"
        scenario = (await make_executor(steps).run_text(text)).features[0].scenarios[0]

        assert scenario.status is Status.PASSED

    @pytest.mark.asyncio
    async def test_and_does_not_match_other_role(self, steps):
        """And is not matched against other roles"""
        steps.given('a')(lambda world: None)
        steps.then('c')(lambda world: None)

        text = "Feature: f\n  Scenario: s\n    Given a\n    And c\n"
        scenario = (await make_executor(steps).run_text(text)).features[0].scenarios[0]

        assert statuses(scenario) == [Status.PASSED, Status.UNDEFINED]

    @pytest.mark.asyncio
    async def test_background_role_carries_into_scenario(self, steps):
        """The last Background role carries into the scenario"""
        calls = []
        steps.given('a')(lambda world: calls.append('a'))
        steps.when('b')(lambda world: calls.append('b'))
        steps.when('c')(lambda world: calls.append('c'))

        text = '''Feature: f
  Background:
    Given a
    When b

  Scenario: s
    And c
'''
        scenario = (await make_executor(steps).run_text(text)).features[0].scenarios[0]

        assert scenario.status is Status.PASSED
        assert calls == ['a', 'b', 'c']
        assert [step.text for step in scenario.steps] == ['a', 'b', 'c']

    @pytest.mark.asyncio
    async def test_rule_background_follows_feature_background(self, steps):
        """Feature background runs before rule background"""
        calls = []
        steps.step('{word}')(lambda world, word: calls.append(word))

        text = '''Feature: f
  Background:
    Given feature

  Rule: r
    Background:
      Given rule

    Scenario: s
      Given scenario
'''
        result = await make_executor(steps).run_text(text)

        assert result.success
        assert calls == ['feature', 'rule', 'scenario']

    @pytest.mark.asyncio
    async def test_step_arguments(self, steps):
        """Tables and doc strings are passed after captured arguments"""
        received = {}

        @steps.given('the users:')
        def users(world, table):
            received['table'] = table

        @steps.given('the body:')
        def body(world, content):
            received['body'] = content

        @steps.given('{int} extra users:')
        def extra(world, count, table):
            received['extra'] = (count, table.as_dicts())

        text = '''Feature: f
  Scenario: s
    Given the users:
      | name  |
      | alice |
    And the body:
      """
      hello
      """
    And 2 extra users:
      | name |
      | bob  |
'''
        result = await make_executor(steps).run_text(text)

        assert result.success
        assert isinstance(received['table'], DataTable)
        assert received['table'].as_dicts() == [{'name': 'alice'}]
        assert received['body'] == "hello"
        assert received['extra'] == (2, [{'name': 'bob'}])

    @pytest.mark.asyncio
    async def test_outline_expands_step_arguments(self, steps):
        """Placeholders in tables and doc strings take the row's values"""
        received = {}

        @steps.given('the table:')
        def table(world, data):
            received['table'] = data.raw()

        @steps.given('the greeting:')
        def greeting(world, content):
            received['greeting'] = content

        text = '''Feature: f
  Scenario Outline: o
    Given the table:
      | <name> |
    And the greeting:
      """
      hi <name>
      """

    Examples:
      | name |
      | bob  |
'''
        result = await make_executor(steps).run_text(text)

        assert result.success
        assert received['table'] == [['bob']]
        assert received['greeting'] == 'hi bob'

    @pytest.mark.asyncio
    async def test_fresh_world_per_scenario(self, steps):
        """Each scenario gets a new world"""
        seen = []

        @steps.given('I remember')
        def remember(world):
            seen.append(world.get('count', 0))
            world.set('count', 1)

        text = "Feature: f\n  Scenario: one\n    Given I remember\n  Scenario: two\n    Given I remember\n"
        await make_executor(steps).run_text(text)

        assert seen == [0, 0]

    @pytest.mark.asyncio
    async def test_async_world_factory(self, steps):
        """Awaitable world factories are awaited"""
        async def factory():
            world = World()
            world.set('base_url', 'https://x.test')
            return world

        seen = []
        steps.given('a step')(lambda world: seen.append(world.get('base_url')))

        executor = TestExecutor(step_registry=steps, world_factory=factory)
        await executor.run_text("Feature: f\n  Scenario: s\n    Given a step\n")

        assert seen == ['https://x.test']

    @pytest.mark.asyncio
    async def test_attachments_and_logs(self, steps):
        """Output lands on the step that produced it"""
        @steps.given('a screenshot')
        def screenshot(world):
            world.log("taking screenshot")
            world.attach(b"\x89PNG", "image/png")

        steps.then('nothing')(lambda world: None)

        text = "Feature: f\n  Scenario: s\n    Given a screenshot\n    Then nothing\n"
        scenario = (await make_executor(steps).run_text(text)).features[0].scenarios[0]

        first, second = scenario.steps
        assert first.logs == ("taking screenshot",)
        assert first.attachments[0].media_type == "image/png"
        assert second.logs == ()
        assert second.attachments == ()

    @pytest.mark.asyncio
    async def test_document_without_feature(self, steps):
        """A document with no feature runs nothing"""
        result = await make_executor(steps).run_text("# nothing here\n")
        assert result.features == ()
        assert result.success


class TestStepOutcomes:
    """Test undefined, pending, failing and slow steps"""

    @pytest.mark.asyncio
    async def test_undefined_step_with_suggestions(self, steps):
        """Undefined steps carry close matches"""
        steps.given('I am on the home page')(lambda world: None)
        steps.then('I see {string}')(lambda world, text: None)

        text = '''Feature: f
  Scenario: s
    Given I am on the homepage
    Then I see "x"
'''
        result = await make_executor(steps).run_text(text)
        scenario = result.features[0].scenarios[0]

        assert statuses(scenario) == [Status.UNDEFINED, Status.SKIPPED]
        assert 'I am on the home page' in scenario.steps[0].suggestions
        assert isinstance(scenario.steps[0].error, UndefinedStepError)
        assert scenario.status is Status.PENDING
        assert result.summary.scenarios.pending == 1
        assert result.summary.steps.undefined == 1

    @pytest.mark.asyncio
    async def test_pending_does_not_halt(self, steps):
        """A pending step lets the rest run"""
        ran = []

        @steps.given('a todo')
        def todo(world):
            pending()

        steps.then('a check')(lambda world: ran.append(True))

        text = "Feature: f\n  Scenario: s\n    Given a todo\n    Then a check\n"
        scenario = (await make_executor(steps).run_text(text)).features[0].scenarios[0]

        assert statuses(scenario) == [Status.PENDING, Status.PASSED]
        assert scenario.steps[0].error is None
        assert scenario.status is Status.PENDING
        assert ran == [True]

    @pytest.mark.asyncio
    async def test_failure_skips_remaining_steps(self, steps):
        """A failed step skips the rest"""
        ran = []
        steps.given('ok')(lambda world: None)

        @steps.when('it breaks')
        def breaks(world):
            raise AssertionError("expected 200, got 500")

        steps.then('later')(lambda world: ran.append(True))

        text = "Feature: f\n  Scenario: s\n    Given ok\n    When it breaks\n    Then later\n"
        result = await make_executor(steps).run_text(text)
        scenario = result.features[0].scenarios[0]

        assert statuses(scenario) == [Status.PASSED, Status.FAILED, Status.SKIPPED]
        assert isinstance(scenario.steps[1].error, AssertionError)
        assert scenario.failed_steps[0].text == "it breaks"
        assert ran == []
        assert result.features[0].status is Status.FAILED
        assert not result.success

    @pytest.mark.asyncio
    async def test_keep_going(self, steps):
        """keep_going runs steps after a failure"""
        ran = []

        @steps.when('it breaks')
        def breaks(world):
            raise RuntimeError("boom")

        steps.then('later')(lambda world: ran.append(True))

        text = "Feature: f\n  Scenario: s\n    When it breaks\n    Then later\n"
        scenario = (await make_executor(steps, keep_going=True).run_text(text)).features[0].scenarios[0]

        assert statuses(scenario) == [Status.FAILED, Status.PASSED]
        assert scenario.status is Status.FAILED
        assert ran == [True]

    @pytest.mark.asyncio
    async def test_step_timeout(self, steps):
        """A slow async step fails with a timeout"""
        @steps.when('it hangs')
        async def hangs(world):
            await asyncio.sleep(1)

        text = "Feature: f\n  Scenario: s\n    When it hangs\n"
        executor = make_executor(steps, step_timeout=0.05, cancel_on_timeout=True)
        step = (await executor.run_text(text)).features[0].scenarios[0].steps[0]

        assert step.status is Status.FAILED
        assert isinstance(step.error, StepTimeoutError)
        assert "timed out after 0.05s" in str(step.error)

    @pytest.mark.asyncio
    async def test_tag_scoped_definition(self, steps):
        """Tag-scoped definitions match only tagged scenarios"""
        steps.given('the service', tag_scope='@api')(lambda world: None)

        text = '''Feature: f
  @api
  Scenario: api
    Given the service

  @ui
  Scenario: ui
    Given the service
'''
        api, ui = (await make_executor(steps).run_text(text)).features[0].scenarios

        assert api.status is Status.PASSED
        assert statuses(ui) == [Status.UNDEFINED]


class TestTagFiltering:
    """Test scenario selection"""

    @pytest.mark.asyncio
    async def test_unselected_scenarios_are_skipped(self, steps):
        """Scenarios outside the filter are skipped without steps"""
        ran = []
        steps.given('{word}')(lambda world, word: ran.append(word))

        text = '''Feature: f
  @smoke
  Scenario: fast
    Given fast

  Scenario: slow
    Given slow
'''
        result = await make_executor(steps, tag_filter='@smoke').run_text(text)
        fast, slow = result.features[0].scenarios

        assert ran == ['fast']
        assert fast.status is Status.PASSED
        assert slow.status is Status.SKIPPED
        assert slow.steps == ()
        assert result.summary.scenarios.skipped == 1

    @pytest.mark.asyncio
    async def test_feature_tags_are_inherited(self, steps):
        """Scenarios inherit feature tags for filtering"""
        steps.given('x')(lambda world: None)

        text = "@smoke\nFeature: f\n  Scenario: s\n    Given x\n"
        scenario = (await make_executor(steps, tag_filter='@smoke').run_text(text)).features[0].scenarios[0]

        assert scenario.status is Status.PASSED
        assert scenario.tags == ('@smoke',)

    @pytest.mark.asyncio
    async def test_examples_are_filtered_per_block(self, steps):
        """Examples tags take part in filtering"""
        steps.given('n {int}')(lambda world, n: None)

        text = '''Feature: f
  Scenario Outline: o
    Given n <n>

    @fast
    Examples:
      | n |
      | 1 |

    @slow
    Examples:
      | n |
      | 2 |
'''
        scenarios = (await make_executor(steps, tag_filter='not @slow').run_text(text)).features[0].scenarios

        assert len(scenarios) == 1
        assert scenarios[0].example_values == {'n': '1'}
        assert scenarios[0].tags == ('@fast',)

    @pytest.mark.asyncio
    async def test_fully_filtered_outline_is_one_skip(self, steps):
        """An outline with no selected rows is one skipped result"""
        text = '''Feature: f
  Scenario Outline: o
    Given n <n>

    Examples:
      | n |
      | 1 |
      | 2 |
'''
        scenarios = (await make_executor(steps, tag_filter='@nothing').run_text(text)).features[0].scenarios

        assert len(scenarios) == 1
        assert scenarios[0].status is Status.SKIPPED
        assert scenarios[0].name == 'o'


class TestHooks:
    """Test lifecycle hooks during a run"""

    @pytest.mark.asyncio
    async def test_order(self, steps, hooks):
        """Hooks run in lifecycle order around the step"""
        calls = []
        steps.given('x')(lambda world: calls.append('step'))

        hooks.before_all(lambda context: calls.append('beforeAll'))
        hooks.before_feature(lambda context: calls.append(f'beforeFeature {context.feature_name}'))
        hooks.before(lambda context: calls.append(f'before {context.scenario_name}'))
        hooks.before_step(lambda context: calls.append(f'beforeStep {context.step_text}'))
        hooks.after_step(lambda context: calls.append('afterStep'))
        hooks.after(lambda context: calls.append(f'after {context.result}'))
        hooks.after_feature(lambda context: calls.append('afterFeature'))
        hooks.after_all(lambda context: calls.append('afterAll'))

        await make_executor(steps, hooks).run_text("Feature: f\n  Scenario: s\n    Given x\n")

        assert calls == [
            'beforeAll', 'beforeFeature f', 'before s', 'beforeStep x', 'step', 'afterStep',
            'after passed', 'afterFeature', 'afterAll',
        ]

    @pytest.mark.asyncio
    async def test_tagged_before_hook(self, steps, hooks):
        """Tagged hooks run only for matching scenarios"""
        seen = []
        steps.given('x')(lambda world: None)
        hooks.before('@smoke')(lambda context: seen.append(context.scenario_name))

        text = '''Feature: f
  @cart
  Scenario: cart only
    Given x

  @smoke @cart
  Scenario: smoke cart
    Given x
'''
        await make_executor(steps, hooks).run_text(text)

        assert seen == ['smoke cart']

    @pytest.mark.asyncio
    async def test_hook_sees_world(self, steps, hooks):
        """Hooks get the scenario's world"""
        steps.given('x')(lambda world: world.set('from_step', True))
        seen = []
        hooks.after(lambda context: seen.append(context.world.get('from_step')))

        await make_executor(steps, hooks).run_text("Feature: f\n  Scenario: s\n    Given x\n")

        assert seen == [True]

    @pytest.mark.asyncio
    async def test_after_hook_output_stays_off_steps(self, steps, hooks):
        """Attachments and logs from afterScenario do not land on the last step"""
        steps.given('x')(lambda world: world.log("from step"))

        @hooks.after
        def late(context):
            context.world.attach(b"late", "text/plain")
            context.world.log("late")

        scenario = (await make_executor(steps, hooks).run_text(
            "Feature: f\n  Scenario: s\n    Given x\n")).features[0].scenarios[0]

        assert scenario.status is Status.PASSED
        assert scenario.steps[0].logs == ("from step",)
        assert scenario.steps[0].attachments == ()

    @pytest.mark.asyncio
    async def test_before_scenario_failure_skips_steps(self, steps, hooks):
        """A failing before hook skips every step"""
        ran = []
        after = Mock()
        steps.given('x')(lambda world: ran.append(True))

        @hooks.before
        def broken(context):
            raise RuntimeError("no database")

        hooks.after(after)

        text = "Feature: f\n  Background:\n    Given x\n  Scenario: s\n    Given x\n"
        scenario = (await make_executor(steps, hooks).run_text(text)).features[0].scenarios[0]

        assert ran == []
        assert statuses(scenario) == [Status.SKIPPED, Status.SKIPPED]
        assert scenario.status is Status.FAILED
        assert str(scenario.hook_error) == "no database"
        after.assert_called_once()

    @pytest.mark.asyncio
    async def test_after_scenario_failure_fails_passing_scenario(self, steps, hooks):
        """A failing after hook fails the scenario"""
        steps.given('x')(lambda world: None)

        @hooks.after
        def broken(context):
            raise RuntimeError("cleanup failed")

        scenario = (await make_executor(steps, hooks).run_text(
            "Feature: f\n  Scenario: s\n    Given x\n")).features[0].scenarios[0]

        assert statuses(scenario) == [Status.PASSED]
        assert scenario.status is Status.FAILED
        assert str(scenario.hook_error) == "cleanup failed"

    @pytest.mark.asyncio
    async def test_after_step_errors_are_ignored(self, steps, hooks):
        """afterStep errors do not change the outcome"""
        steps.given('x')(lambda world: None)

        @hooks.after_step
        def broken(context):
            raise RuntimeError("screenshot failed")

        result = await make_executor(steps, hooks).run_text("Feature: f\n  Scenario: s\n    Given x\n")

        assert result.success
        assert statuses(result.features[0].scenarios[0]) == [Status.PASSED]

    @pytest.mark.asyncio
    async def test_before_all_failure(self, steps, hooks):
        """A failing beforeAll runs no features"""
        ran = []
        after_all = Mock()
        steps.given('x')(lambda world: ran.append(True))

        @hooks.before_all
        def broken(context):
            raise RuntimeError("no browser")

        hooks.after_all(after_all)

        result = await make_executor(steps, hooks).run_text("Feature: f\n  Scenario: s\n    Given x\n")

        assert result.features == ()
        assert ran == []
        assert str(result.hook_error) == "no browser"
        assert not result.success
        after_all.assert_called_once()

    @pytest.mark.asyncio
    async def test_before_feature_failure(self, steps, hooks):
        """A failing beforeFeature skips its scenarios"""
        ran = []
        steps.given('x')(lambda world: ran.append(True))

        @hooks.before_feature
        def broken(context):
            raise RuntimeError("no fixtures")

        text = '''Feature: f
  Scenario: one
    Given x

  Rule: r
    Scenario: two
      Given x
'''
        feature = (await make_executor(steps, hooks).run_text(text)).features[0]

        assert ran == []
        assert [s.status for s in feature.scenarios] == [Status.SKIPPED, Status.SKIPPED]
        assert feature.status is Status.FAILED
        assert str(feature.hook_error) == "no fixtures"

    @pytest.mark.asyncio
    async def test_hook_timeout(self, steps, hooks):
        """A slow hook fails with a timeout"""
        steps.given('x')(lambda world: None)

        @hooks.before(timeout=0.05)
        async def slow(context):
            await asyncio.sleep(1)

        executor = make_executor(steps, hooks, cancel_on_timeout=True)
        scenario = (await executor.run_text("Feature: f\n  Scenario: s\n    Given x\n")).features[0].scenarios[0]

        assert scenario.status is Status.FAILED
        assert "timed out" in str(scenario.hook_error)


class TestRunControl:
    """Test fail-fast, listeners and the synchronous entry point"""

    @pytest.mark.asyncio
    async def test_fail_fast(self, steps):
        """The run stops after the first failed scenario"""
        ran = []

        @steps.given('broken')
        def broken(world):
            raise RuntimeError("boom")

        steps.given('fine')(lambda world: ran.append(True))

        parser = GherkinParser()
        first = parser.parse("Feature: one\n  Scenario: a\n    Given broken\n  Scenario: b\n    Given fine\n")
        second = parser.parse("Feature: two\n  Scenario: c\n    Given fine\n")

        result = await make_executor(steps, fail_fast=True).run([first, second])

        assert ran == []
        assert len(result.features) == 1
        assert len(result.features[0].scenarios) == 1

    @pytest.mark.asyncio
    async def test_listener_events(self, steps):
        """Listeners get events in order"""
        events = []

        class Recorder(ExecutionListener):
            def feature_started(self, feature):
                events.append(('feature_started', feature.name))

            def scenario_started(self, scenario, feature_name):
                events.append(('scenario_started', scenario.name, feature_name))

            def step_finished(self, result):
                events.append(('step_finished', result.status))

            def feature_finished(self, result):
                events.append(('feature_finished', result.status))

        steps.given('x')(lambda world: None)
        executor = TestExecutor(step_registry=steps, listeners=[Recorder()])
        await executor.run_text("Feature: f\n  Scenario: s\n    Given x\n")

        assert events == [
            ('feature_started', 'f'),
            ('scenario_started', 's', 'f'),
            ('step_finished', Status.PASSED),
            ('feature_finished', Status.PASSED),
        ]

    def test_execute_feature_text(self, steps):
        """execute() runs feature text synchronously"""
        steps.given('x')(lambda world: None)

        result = make_executor(steps).execute({'feature_text': "Feature: f\n  Scenario: s\n    Given x\n"})

        assert result.success
        assert result.error is None
        assert result.metadata['summary']['scenarios']['passed'] == 1
        assert result.to_dict()['data']['summary']['steps']['passed'] == 1

    def test_execute_feature_path(self, steps, tmp_path):
        """execute() reads a feature file"""
        steps.given('x')(lambda world: None)
        path = tmp_path / "f.feature"
        path.write_text("Feature: f\n  Scenario: s\n    Given x\n", encoding="utf-8")

        result = make_executor(steps).execute({'feature_path': str(path)})

        assert result.success
        assert result.data.features[0].uri == str(path)

    def test_execute_missing_file(self, steps, tmp_path):
        """A missing feature file raises"""
        with pytest.raises(FileNotFoundError):
            make_executor(steps).execute({'feature_path': tmp_path / "missing.feature"})

    def test_execute_unsupported_input(self, steps):
        """Input without features is a configuration error"""
        with pytest.raises(ConfigurationError):
            make_executor(steps).execute(42)
        with pytest.raises(ConfigurationError):
            make_executor(steps).execute({})

    def test_execute_reports_hook_error(self, steps, hooks):
        """A run-level hook error fills ExecutionResult.error"""
        @hooks.before_all
        def broken(context):
            raise RuntimeError("no browser")

        result = make_executor(steps, hooks).execute({'feature_text': "Feature: f\n"})

        assert not result.success
        assert result.error == "no browser"


class TestPlaceholders:
    """Test outline placeholder substitution"""

    def test_single_pass(self):
        """Substituted values are not substituted again"""
        values = {'a': '<b>', 'b': 'x'}
        assert expand_placeholders("<a> and <b>", values) == "<b> and x"

    def test_unknown_names_stay(self):
        """Unknown placeholders are kept verbatim"""
        assert expand_placeholders("<a> <missing>", {'a': '1'}) == "1 <missing>"

    def test_longest_name_first(self):
        """Longer names win over their prefixes"""
        assert expand_placeholders("<ab>", {'a': '1', 'ab': '2'}) == "2"


class TestModuleContract:
    """Test the QAModule lifecycle"""

    def test_execute_requires_ready(self, steps):
        """execute() refuses a module in ERROR"""
        executor = make_executor(steps)
        executor.status = ModuleStatus.ERROR

        with pytest.raises(ConfigurationError, match="failed to initialize"):
            executor.execute({'feature_text': "Feature: f\n"})

    @pytest.mark.asyncio
    async def test_status_returns_to_ready_after_run(self, steps):
        """The module is READY again after a run"""
        executor = make_executor(steps)
        await executor.run_text("Feature: f\n")
        assert executor.is_ready()
