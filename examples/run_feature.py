import asyncio
from pathlib import Path

from qa_bdd.bdd.parser import parse_feature_file
from qa_bdd.core.config import configure_logging
from qa_bdd.executor import ExecutionListener, pending
from qa_bdd.runtime import before, create_executor, create_report_collector, given, then, when

FEATURES = Path(__file__).parent / "features"


@given('an empty cart')
def empty_cart(world):
    world.set('cart', [])


@when('I add {int} {string} at {float} each')
def add_items(world, count, item, price):
    world.get('cart').append((item, count * price))
    world.log(f"added {count} {item}")


@when('I apply the coupon:')
def apply_coupon(world, code):
    pending()


@then('the cart total is {float}')
async def check_total(world, expected):
    await asyncio.sleep(0)
    total = sum(amount for _, amount in world.get('cart'))
    assert abs(total - expected) < 1e-9, f"expected {expected}, got {total}"


@before('@smoke')
def announce(context):
    print(f"  (smoke) {context.scenario_name}")


class ConsoleListener(ExecutionListener):
    """Prints one line per scenario"""

    def scenario_finished(self, result, feature_name):
        print(f"{result.status.value:>8}  {feature_name} / {result.name}")


async def main():
    """Example of running a feature file programmatically"""
    configure_logging("WARNING")

    executor = create_executor({'tag_filter': 'not @wip', 'step_timeout': 5}, listeners=[ConsoleListener()])
    document = parse_feature_file(FEATURES / "cart.feature")
    result = await executor.run([document])

    scenarios = result.summary.scenarios
    print(f"\nScenarios: {scenarios.total} total, {scenarios.passed} passed, "
          f"{scenarios.failed} failed, {scenarios.skipped} skipped")

    reports = create_report_collector().generate_reports(result)
    print(f"Reports written: {', '.join(reports)}")


if __name__ == "__main__":
    asyncio.run(main())
