import logging

from django.core.management.base import BaseCommand, CommandError
from django.test.utils import setup_databases, teardown_databases

from verification.fixtures import DEFAULT_SEED, build_world
from verification.runner import run_suite
from verification.scenarios import GROUP_PERFORMANCE, GROUPS


class Command(BaseCommand):
    help = (
        "Prove cross-pairing isolation: build a throwaway database with synthetic "
        "tenants and run every scenario group sequentially. Exits non-zero when a "
        "critical scenario fails."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--group",
            dest="groups",
            action="append",
            choices=[group.name for group in GROUPS],
            help="Run only this scenario group. Repeatable.",
        )
        parser.add_argument(
            "--skip-performance",
            action="store_true",
            help="Skip the latency and residue budgets.",
        )
        parser.add_argument(
            "--fail-fast",
            action="store_true",
            help="Stop after the first failing critical group.",
        )
        parser.add_argument(
            "--seed",
            type=int,
            default=DEFAULT_SEED,
            help="Seed for the synthetic fixtures.",
        )

    def handle(self, *args, **options):
        verbosity = options.get("verbosity", 1)
        groups = options.get("groups") or [group.name for group in GROUPS]
        if options.get("skip_performance"):
            groups = [name for name in groups if name != GROUP_PERFORMANCE]
        if not groups:
            raise CommandError("No scenario group selected.")

        # Thousands of expected denials; keep them out of the report unless asked.
        audit_logger = logging.getLogger("tenancy.audit")
        previous_level = audit_logger.level
        if verbosity < 3:
            audit_logger.setLevel(logging.WARNING)

        old_config = setup_databases(verbosity=max(verbosity - 1, 0), interactive=False, aliases={"default"})
        try:
            world = build_world(seed=options["seed"])
            self.stdout.write(
                f"Fixtures: seed={world.seed} members={len(world.all_members)} "
                f"pairings={len(world.all_pairings)}"
            )
            report = run_suite(world, groups=groups, fail_fast=options.get("fail_fast", False))
        finally:
            teardown_databases(old_config, verbosity=max(verbosity - 1, 0))
            audit_logger.setLevel(previous_level)

        for group in report.groups:
            label = "critical" if group.critical else "non-critical"
            summary = f"{len(group.results) - len(group.failures)}/{len(group.results)}"
            if group.passed:
                self.stdout.write(self.style.SUCCESS(f"[PASS] {group.name} ({label}) {summary}"))
            elif group.critical:
                self.stdout.write(self.style.ERROR(f"[FAIL] {group.name} ({label}) {summary}"))
            else:
                self.stdout.write(self.style.WARNING(f"[FAIL] {group.name} ({label}) {summary}"))

            for result in group.results:
                if not result.passed:
                    self.stdout.write(f"    - {result.name}: {result.detail}")
                elif verbosity >= 2:
                    self.stdout.write(f"    + {result.name} ({result.elapsed_ms:.1f}ms)")

        critical_failures = report.critical_failures
        if critical_failures:
            raise CommandError(
                f"{len(critical_failures)} critical isolation scenario(s) failed; do not ship.",
                returncode=1,
            )
        self.stdout.write(self.style.SUCCESS(f"Isolation verified: {report.total} scenarios run."))
