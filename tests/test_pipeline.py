"""Tests for the pipeline module."""

import sys

import pytest

from modelgen.errors import PipelineError
from modelgen.pipeline import (
    Pipeline,
    PipelineEnvironment,
    PipelineState,
    StepSpec,
    default_steps,
    run_pipeline,
    run_step,
)


class TestPipelineStateMachine:
    """Test sequential, fail-fast execution with injected runners."""

    def test_initial_state(self, steps, environment, runner):
        pipeline = Pipeline(steps, environment, runner)
        assert pipeline.state is PipelineState.NOT_STARTED
        assert pipeline.step_index is None

    def test_all_steps_succeed(self, steps, environment, runner):
        pipeline = Pipeline(steps, environment, runner)
        pipeline.run()
        assert pipeline.state is PipelineState.SUCCEEDED
        assert runner.step_names == ["db migrate", "db entities"]

    def test_steps_inherit_environment(self, steps, environment, runner):
        run_pipeline(steps, environment, runner)
        assert all(env is environment for _, env in runner.calls)

    def test_first_failure_stops_pipeline(self, steps, environment, make_runner):
        runner = make_runner(fail={"db migrate"})
        pipeline = Pipeline(steps, environment, runner)
        with pytest.raises(PipelineError) as exc_info:
            pipeline.run()
        assert runner.step_names == ["db migrate"]
        assert pipeline.state is PipelineState.FAILED
        assert pipeline.step_index == 0
        assert pipeline.details == "db migrate exploded"
        assert exc_info.value.step_name == "db migrate"
        assert exc_info.value.details == "db migrate exploded"

    def test_later_failure_keeps_earlier_steps(self, steps, environment, make_runner):
        runner = make_runner(fail={"db entities"})
        pipeline = Pipeline(steps, environment, runner)
        with pytest.raises(PipelineError, match="failed to run db entities"):
            pipeline.run()
        assert runner.step_names == ["db migrate", "db entities"]
        assert pipeline.step_index == 1

    def test_error_message(self):
        err = PipelineError("db migrate", "no such table")
        assert str(err) == "failed to run db migrate. error details: `no such table`"

    def test_no_steps(self, environment, runner):
        pipeline = Pipeline([], environment, runner)
        pipeline.run()
        assert pipeline.state is PipelineState.SUCCEEDED
        assert runner.calls == []

    def test_single_use(self, steps, environment, runner):
        pipeline = Pipeline(steps, environment, runner)
        pipeline.run()
        with pytest.raises(RuntimeError, match="already succeeded"):
            pipeline.run()
        assert len(runner.calls) == 2


class TestRunStep:
    """Test the subprocess-backed step runner."""

    def test_success_captures_output(self, environment):
        step = StepSpec("echo", (sys.executable, "-c", "print('migrated')"))
        result = run_step(step, environment)
        assert result.succeeded
        assert result.step_name == "echo"
        assert result.combined_output == "migrated"

    def test_stderr_folded_into_output(self, environment):
        code = "import sys; print('out'); sys.stdout.flush(); print('err', file=sys.stderr)"
        result = run_step(StepSpec("both", (sys.executable, "-c", code)), environment)
        assert "out" in result.combined_output
        assert "err" in result.combined_output

    def test_nonzero_exit_fails(self, environment):
        code = "import sys; print('boom'); sys.exit(3)"
        result = run_step(StepSpec("fail", (sys.executable, "-c", code)), environment)
        assert not result.succeeded
        assert result.combined_output == "exit status 3: boom"

    def test_runs_in_working_directory(self, environment, project):
        code = "import os; print(os.getcwd())"
        result = run_step(StepSpec("cwd", (sys.executable, "-c", code)), environment)
        assert result.combined_output == str(project.resolve())

    def test_uses_given_environment(self, project):
        environment = PipelineEnvironment(cwd=project, env={"MODELGEN_TEST": "42"})
        code = "import os; print(os.environ.get('MODELGEN_TEST'))"
        result = run_step(StepSpec("env", (sys.executable, "-c", code)), environment)
        assert result.combined_output == "42"

    def test_missing_command(self, environment):
        result = run_step(StepSpec("missing", ("modelgen-no-such-command-xyz",)), environment)
        assert not result.succeeded
        assert result.combined_output


class TestPipelineEnvironment:
    """Test environment capture."""

    def test_capture(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("MODELGEN_CAPTURE", "yes")
        environment = PipelineEnvironment.capture()
        assert environment.cwd.resolve() == tmp_path.resolve()
        assert environment.env["MODELGEN_CAPTURE"] == "yes"

    def test_capture_is_a_snapshot(self, monkeypatch):
        environment = PipelineEnvironment.capture()
        monkeypatch.setenv("MODELGEN_LATER", "1")
        assert "MODELGEN_LATER" not in environment.env


class TestDefaultSteps:
    """Test the standard post-generation steps."""

    def test_order_and_commands(self):
        steps = default_steps(["saas", "db", "migrate"], ["saas", "db", "entities"])
        assert steps == [
            StepSpec("db migrate", ("saas", "db", "migrate")),
            StepSpec("db entities", ("saas", "db", "entities")),
        ]
