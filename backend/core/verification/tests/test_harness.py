from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, TransactionTestCase

from members.models import Member, Pairing
from tenancy.context import Subject
from verification.fixtures import build_world
from verification.runner import GroupReport, ScenarioResult, SuiteReport, run_suite
from verification.scenarios import (
    GROUP_EDGE_CASES,
    GROUP_PERFORMANCE,
    GROUPS,
    Scenario,
    ScenarioFailure,
    scenarios_for,
)

COMMAND = "verification.management.commands.verify_isolation"


def failure_summary(report):
    return "; ".join(
        f"{result.group}.{result.name}: {result.detail}"
        for group in report.groups
        for result in group.failures
    )


class HarnessWorldTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.world = build_world(seed=11)

    def test_world_volume_and_personas(self):
        self.assertGreaterEqual(len(self.world.all_members), 50)
        self.assertGreaterEqual(len(self.world.all_pairings), 25)
        self.assertFalse(Pairing.objects.get(pk=self.world.pairings["eve_frank"].pk).is_active)
        self.assertFalse(Member.objects.get(pk=self.world.member("grace").pk).is_active)
        self.assertNotIn(Subject(self.world.member("grace").pk), self.world.active_subjects)
        self.assertIn(None, self.world.malformed_subject_ids)

    def test_every_group_has_scenarios(self):
        for group in GROUPS:
            self.assertTrue(scenarios_for(group.name), group.name)

    def test_functional_groups_pass(self):
        groups = [group.name for group in GROUPS if group.name != GROUP_PERFORMANCE]
        report = run_suite(self.world, groups=groups)
        self.assertEqual([group.name for group in report.groups], groups)
        self.assertTrue(report.passed, failure_summary(report))
        for group in report.groups:
            self.assertTrue(group.passed, failure_summary(report))

    def test_scenarios_do_not_leak_writes(self):
        run_suite(self.world, groups=["consent_controls", GROUP_EDGE_CASES])
        response = self.world.fresh_response("alice")
        self.assertFalse(response.sharing_consent)
        self.assertEqual(response.version, 1)
        self.assertTrue(self.world.fresh_invite("henry").is_pending())
        self.assertFalse(Pairing.objects.filter(member_a=self.world.member("henry"), is_active=True).exists())


class SuiteReportTests(TestCase):
    def test_only_critical_failures_fail_the_suite(self):
        failing = ScenarioResult(group="edge_cases", name="x", passed=False, detail="boom")
        report = SuiteReport(
            seed=1,
            groups=[
                GroupReport(name="tenant_isolation", description="", critical=True, results=[
                    ScenarioResult(group="tenant_isolation", name="ok", passed=True),
                ]),
                GroupReport(name="edge_cases", description="", critical=False, results=[failing]),
            ],
        )
        self.assertTrue(report.passed)
        self.assertEqual(report.critical_failures, [])

        report.groups[0].results.append(
            ScenarioResult(group="tenant_isolation", name="leak", passed=False, detail="leak")
        )
        self.assertFalse(report.passed)
        self.assertEqual(len(report.critical_failures), 1)

    def test_fail_fast_stops_after_critical_group(self):
        def always_fails(world):
            raise ScenarioFailure("forced")

        world = mock.Mock(seed=3)
        forced = [Scenario(group="setup_validation", name="forced", func=always_fails)]
        with mock.patch("verification.runner.scenarios_for", side_effect=lambda name: forced if name == "setup_validation" else []):
            report = run_suite(world, groups=["setup_validation", "tenant_isolation"], fail_fast=True)
        self.assertEqual([group.name for group in report.groups], ["setup_validation"])
        self.assertFalse(report.passed)
        self.assertEqual(report.critical_failures[0].detail, "forced")

    def test_unexpected_errors_are_failures(self):
        def explodes(world):
            raise RuntimeError("db down")

        forced = [Scenario(group="edge_cases", name="explodes", func=explodes)]
        with mock.patch("verification.runner.scenarios_for", return_value=forced):
            with self.assertLogs("verification.runner", level="ERROR"):
                report = run_suite(mock.Mock(seed=3), groups=["edge_cases"])
        self.assertEqual(report.groups[0].failures[0].detail, "RuntimeError: db down")
        self.assertTrue(report.passed)


@mock.patch(f"{COMMAND}.teardown_databases")
@mock.patch(f"{COMMAND}.setup_databases", return_value=[])
class VerifyIsolationCommandTests(TestCase):
    def test_reports_groups_and_succeeds(self, _setup, _teardown):
        out = StringIO()
        call_command("verify_isolation", "--skip-performance", "--seed", "5", stdout=out)
        output = out.getvalue()
        self.assertIn("[PASS] tenant_isolation (critical)", output)
        self.assertIn("[PASS] edge_cases (non-critical)", output)
        self.assertNotIn(GROUP_PERFORMANCE, output)
        self.assertIn("Isolation verified", output)
        _teardown.assert_called_once()

    def test_single_group(self, _setup, _teardown):
        out = StringIO()
        call_command("verify_isolation", "--group", "anonymous_access", "--seed", "6", stdout=out)
        self.assertIn("[PASS] anonymous_access (critical)", out.getvalue())
        self.assertNotIn("tenant_isolation", out.getvalue())

    def test_critical_failure_exits_non_zero(self, _setup, _teardown):
        failing = SuiteReport(
            seed=1,
            groups=[
                GroupReport(name="join_leakage", description="", critical=True, results=[
                    ScenarioResult(group="join_leakage", name="leak", passed=False, detail="foreign row"),
                ]),
            ],
        )
        out = StringIO()
        with mock.patch(f"{COMMAND}.build_world"), mock.patch(f"{COMMAND}.run_suite", return_value=failing):
            with self.assertRaises(CommandError) as ctx:
                call_command("verify_isolation", stdout=out)
        self.assertEqual(ctx.exception.returncode, 1)
        self.assertIn("[FAIL] join_leakage (critical)", out.getvalue())
        self.assertIn("foreign row", out.getvalue())
        _teardown.assert_called_once()


class PerformanceBudgetTests(TransactionTestCase):
    def test_performance_group_within_budgets(self):
        world = build_world(seed=13)
        report = run_suite(world, groups=[GROUP_PERFORMANCE])
        self.assertTrue(report.groups[0].passed, failure_summary(report))
