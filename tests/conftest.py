import pytest

from qa_bdd import runtime
from qa_bdd.executor import HookRegistry, StepDefinitionRegistry


@pytest.fixture
def steps():
    """Empty step registry"""
    return StepDefinitionRegistry()


@pytest.fixture
def hooks():
    """Empty hook registry"""
    return HookRegistry()


@pytest.fixture(autouse=True)
def reset_default_registries():
    """Keep the process-wide registries clean between tests"""
    runtime.reset()
    yield
    runtime.reset()
