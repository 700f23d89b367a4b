import logging
import time
from dataclasses import dataclass, field

from django.db import transaction

from verification.scenarios import GROUPS, GROUPS_BY_NAME, ScenarioFailure, scenarios_for

logger = logging.getLogger(__name__)


@dataclass
class ScenarioResult:
    group: str
    name: str
    passed: bool
    detail: str = ""
    elapsed_ms: float = 0.0


@dataclass
class GroupReport:
    name: str
    description: str
    critical: bool
    results: list = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(result.passed for result in self.results)

    @property
    def failures(self) -> list:
        return [result for result in self.results if not result.passed]


@dataclass
class SuiteReport:
    seed: int
    groups: list = field(default_factory=list)

    @property
    def critical_failures(self) -> list:
        return [failure for group in self.groups if group.critical for failure in group.failures]

    @property
    def passed(self) -> bool:
        return not self.critical_failures

    @property
    def total(self) -> int:
        return sum(len(group.results) for group in self.groups)


def _run_isolated(func, world) -> None:
    # Scenario writes (consent flips, rejected pairings) never reach the next scenario.
    with transaction.atomic():
        func(world)
        transaction.set_rollback(True)


def run_scenario(item, world, *, isolated: bool = True) -> ScenarioResult:
    start = time.perf_counter()
    try:
        if isolated:
            _run_isolated(item.func, world)
        else:
            item.func(world)
    except ScenarioFailure as exc:
        passed, detail = False, str(exc)
    except Exception as exc:
        logger.exception("Scenario %s.%s raised.", item.group, item.name)
        passed, detail = False, f"{type(exc).__name__}: {exc}"
    else:
        passed, detail = True, ""
    return ScenarioResult(
        group=item.group,
        name=item.name,
        passed=passed,
        detail=detail,
        elapsed_ms=(time.perf_counter() - start) * 1000,
    )


def run_suite(world, *, groups=None, fail_fast: bool = False) -> SuiteReport:
    """Run the selected groups one after another against an already built world.

    Groups share fixtures, so they are never run in parallel. With ``fail_fast`` the
    run stops after the first critical group that fails.
    """

    selected = [GROUPS_BY_NAME[name] for name in groups] if groups else list(GROUPS)
    report = SuiteReport(seed=world.seed)
    for group in selected:
        group_report = GroupReport(name=group.name, description=group.description, critical=group.critical)
        for item in scenarios_for(group.name):
            group_report.results.append(run_scenario(item, world, isolated=group.isolated))
        report.groups.append(group_report)
        logger.info(
            "Scenario group %s: %s (%s/%s)",
            group.name,
            "PASS" if group_report.passed else "FAIL",
            len(group_report.results) - len(group_report.failures),
            len(group_report.results),
        )
        if fail_fast and group.critical and not group_report.passed:
            break
    return report
