import subprocess
from unittest.mock import MagicMock

import pytest

from sequencer.errors import FactNotFound, StepActionFailed, UnresolvedPlaceholder
from sequencer.facts import Fact, FactProber
from sequencer.step_executor import (
    FailurePolicy,
    Report,
    Step,
    StepExecutor,
    StepOutcome,
)


def failing_action():
    raise subprocess.CalledProcessError(
        1, ["mysql"], stderr="ERROR 1045 (28000): Access denied"
    )


@pytest.fixture
def executor(mock_logger):
    return StepExecutor(FactProber(logger=mock_logger), logger=mock_logger)


def test_steps_run_in_declared_order(executor):
    calls = []
    steps = [
        Step(name=name, action=lambda name=name: calls.append(name))
        for name in ("install", "configure", "restart")
    ]

    report = executor.run(steps)

    assert calls == ["install", "configure", "restart"]
    assert [entry.name for entry in report] == calls
    assert report.ok


def test_fatal_failure_stops_the_run(executor):
    third = MagicMock()
    steps = [
        Step(name="first", action=failing_action),
        Step(name="second", action=MagicMock()),
        Step(name="third", action=third),
    ]

    with pytest.raises(StepActionFailed) as excinfo:
        executor.run(steps)

    error = excinfo.value
    assert error.step == "first"
    assert "Access denied" in error.detail
    assert isinstance(error.cause, subprocess.CalledProcessError)
    assert len(error.report) == 1
    assert error.report.outcome_of("first") == StepOutcome.FAILED
    third.assert_not_called()


def test_warn_failure_continues(executor):
    steps = [
        Step(name="install", action=MagicMock()),
        Step(
            name="set-permissions",
            action=failing_action,
            policy=FailurePolicy.WARN,
        ),
        Step(name="restart", action=MagicMock()),
    ]

    report = executor.run(steps)

    assert len(report) == 3
    assert [entry.outcome for entry in report] == [
        StepOutcome.APPLIED,
        StepOutcome.FAILED,
        StepOutcome.APPLIED,
    ]
    assert not report.ok
    assert report.failed[0].name == "set-permissions"


def test_second_run_skips_every_step(executor):
    state = set()

    def make_step(name):
        return Step(
            name=name,
            action=lambda: state.add(name),
            check=lambda: name in state,
        )

    steps = [make_step("a"), make_step("b")]

    first = executor.run(steps)
    second = executor.run(steps)

    assert [entry.outcome for entry in first] == [StepOutcome.APPLIED] * 2
    assert [entry.outcome for entry in second] == [StepOutcome.SKIPPED] * 2


def test_check_that_holds_skips_action(executor):
    action = MagicMock()

    report = executor.run([Step(name="a", action=action, check=lambda: True)])

    action.assert_not_called()
    assert report.outcome_of("a") == StepOutcome.SKIPPED


def test_failing_check_is_a_step_failure(executor):
    def check():
        raise OSError("permission denied")

    with pytest.raises(StepActionFailed) as excinfo:
        executor.run([Step(name="a", action=MagicMock(), check=check)])

    assert excinfo.value.detail == "permission denied"


def test_action_returning_false_fails(executor):
    report = executor.run(
        [Step(name="a", action=lambda: False, policy=FailurePolicy.WARN)]
    )

    assert report.failed[0].detail == "action reported failure"


def test_benign_failure_is_recorded_as_skipped(executor):
    def import_schema():
        raise StepActionFailed(
            "import-schema", "ERROR 1050 (42S01): Table 'radcheck' already exists"
        )

    report = executor.run(
        [
            Step(
                name="import-schema",
                action=import_schema,
                benign=lambda failure: "1050" in failure.detail,
            )
        ]
    )

    entry = report.entries[0]
    assert entry.outcome == StepOutcome.SKIPPED
    assert entry.detail.startswith("benign failure:")


def test_validate_rejects_duplicate_names(executor):
    steps = [Step(name="a", action=MagicMock()), Step(name="a", action=MagicMock())]

    with pytest.raises(ValueError):
        executor.run(steps)


def test_validate_rejects_unregistered_facts(executor):
    action = MagicMock()

    with pytest.raises(ValueError):
        executor.run([Step(name="a", action=action, facts=("php_version",))])
    action.assert_not_called()


def test_facts_are_probed_before_check(executor):
    executor.prober.register(Fact("php_version", lambda: "8.2"))
    seen = {}

    def check():
        seen["probed"] = executor.prober.is_probed("php_version")
        return False

    executor.run(
        [
            Step(
                name="write-site",
                action=MagicMock(),
                check=check,
                facts=("php_version",),
            )
        ]
    )

    assert seen == {"probed": True}


def test_missing_fact_stops_the_run(executor):
    executor.prober.register(Fact("php_version", lambda: None))
    first = MagicMock()
    second = MagicMock()

    with pytest.raises(FactNotFound):
        executor.run(
            [
                Step(name="install", action=first),
                Step(name="write-site", action=second, facts=("php_version",)),
            ]
        )

    first.assert_called_once()
    second.assert_not_called()


def test_unresolved_placeholder_propagates(executor):
    def render():
        raise UnresolvedPlaceholder("sql_module.conf", ["db_host"])

    with pytest.raises(UnresolvedPlaceholder):
        executor.run([Step(name="write", action=render, policy=FailurePolicy.WARN)])


def test_report_summary_lines():
    report = Report()
    report.record("install", StepOutcome.APPLIED)
    report.record("chown", StepOutcome.FAILED, "not permitted")

    lines = report.summary_lines()

    assert lines[0].startswith("  1. install")
    assert lines[0].endswith("applied")
    assert lines[1].endswith("failed  (not permitted)")


def test_step_label():
    assert Step(name="a", action=MagicMock()).label == "a"
    assert (
        Step(name="a", action=MagicMock(), description="Do A").label
        == "Do A (a)"
    )
