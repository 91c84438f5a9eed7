"""
Unit tests for the lock-state machine.

Uses a scripted runner so exit codes and output can be dictated per command.
"""

from pathlib import Path

import pytest

from protolock_gate.errors import ConfigurationError
from protolock_gate.lockstate import (
    FAILURE_MESSAGE,
    Command,
    CommandInvocation,
    LockState,
    LockStateMachine,
    ResultKind,
    lock_state,
    parse_options,
)


@pytest.fixture
def lock_dir(tmp_path: Path) -> Path:
    path = tmp_path / "proto"
    path.mkdir()
    return path


def lock(lock_dir: Path) -> None:
    (lock_dir / "proto.lock").write_text("{}", encoding="utf-8")


class TestInitialization:
    def test_no_lock_runs_init(self, lock_dir, scripted_runner):
        runner = scripted_runner()
        result = LockStateMachine(runner).check(lock_dir, lock_dir, "/bin/protolock")

        assert result.kind is ResultKind.INITIALIZED
        assert runner.commands == ["init"]
        argv = runner.calls[0]["argv"]
        assert argv[:2] == ["/bin/protolock", "init"]
        assert f"--lockdir={lock_dir}" in argv
        assert f"--protoroot={lock_dir}" in argv

    def test_init_failure_is_an_error(self, lock_dir, scripted_runner):
        runner = scripted_runner(init=(1, ["cannot parse test.proto"]))
        result = LockStateMachine(runner).check(lock_dir, lock_dir, "protolock")

        assert result.kind is ResultKind.ERROR
        assert not result.ok
        assert "init" in result.cause
        assert result.diagnostics == ["cannot parse test.proto"]

    def test_init_never_receives_plugins(self, lock_dir, scripted_runner):
        runner = scripted_runner()
        LockStateMachine(runner).check(
            lock_dir, lock_dir, "protolock", plugin_names=["sample"]
        )
        assert not any(a.startswith("--plugins") for a in runner.calls[0]["argv"])


class TestVerification:
    def test_clean_status_commits_baseline(self, lock_dir, scripted_runner):
        lock(lock_dir)
        runner = scripted_runner()
        result = LockStateMachine(runner).check(lock_dir, lock_dir, "protolock")

        assert result.kind is ResultKind.PASSED
        assert runner.commands == ["status", "commit"]

    def test_failed_status_skips_commit(self, lock_dir, scripted_runner):
        lock(lock_dir)
        diagnostics = [
            'CONFLICT: "M" field: "a" has changed type, current: int32, updated: string',
            'CONFLICT: "M" is missing ID: 2, which had been reserved',
        ]
        runner = scripted_runner(status=(1, diagnostics))
        result = LockStateMachine(runner).check(lock_dir, lock_dir, "protolock")

        assert result.kind is ResultKind.FAILED
        assert result.message == FAILURE_MESSAGE
        assert result.diagnostics == diagnostics
        assert runner.commands == ["status"]

    def test_commit_failure_is_an_error(self, lock_dir, scripted_runner):
        lock(lock_dir)
        runner = scripted_runner(commit=(3, []))
        result = LockStateMachine(runner).check(lock_dir, lock_dir, "protolock")

        assert result.kind is ResultKind.ERROR
        assert "could not persist baseline" in result.cause

    def test_plugins_only_passed_to_status(self, lock_dir, scripted_runner):
        lock(lock_dir)
        runner = scripted_runner()
        LockStateMachine(runner).check(
            lock_dir, lock_dir, "protolock", plugin_names=["one", "two.exe"]
        )

        status_argv, commit_argv = (call["argv"] for call in runner.calls)
        assert status_argv[2] == "--plugins=one,two.exe"
        assert not any(a.startswith("--plugins") for a in commit_argv)

    def test_output_is_forwarded_in_order(self, lock_dir, scripted_runner):
        lock(lock_dir)
        runner = scripted_runner(status=(1, ["first", "second", "third"]))
        seen = []
        LockStateMachine(runner).check(lock_dir, lock_dir, "protolock", sink=seen.append)
        assert seen == ["first", "second", "third"]


class TestEnvironmentAndOptions:
    def test_environment_is_only_path(self, lock_dir, scripted_runner):
        runner = scripted_runner()
        LockStateMachine(runner).check(
            lock_dir, lock_dir, "protolock", path_env="/usr/bin:/plugins"
        )
        assert runner.calls[0]["env"] == {"PATH": "/usr/bin:/plugins"}

    def test_extra_options_appended_to_every_call(self, lock_dir, scripted_runner):
        lock(lock_dir)
        runner = scripted_runner()
        LockStateMachine(runner).check(
            lock_dir, lock_dir, "protolock", extra_options="--ignore 'a b.proto'"
        )
        for call in runner.calls:
            assert call["argv"][-2:] == ["--ignore", "a b.proto"]

    @pytest.mark.parametrize(
        "options", ["--lockdir=/tmp/x", "--strict --lockdir /tmp/x", "-lockdir=x"]
    )
    def test_lockdir_override_rejected_before_running(
        self, lock_dir, scripted_runner, options
    ):
        runner = scripted_runner()
        with pytest.raises(ConfigurationError):
            LockStateMachine(runner).check(
                lock_dir, lock_dir, "protolock", extra_options=options
            )
        assert runner.calls == []

    def test_unbalanced_quotes_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_options("--ignore 'unterminated")

    def test_parse_options_accepts_sequences(self):
        assert parse_options(["--a", "b"]) == ["--a", "b"]
        assert parse_options(None) == []


def test_lock_state_follows_lock_file(lock_dir):
    assert lock_state(lock_dir) is LockState.NO_LOCK
    lock(lock_dir)
    assert lock_state(lock_dir) is LockState.LOCKED


def test_invocation_renders_argument_vector(tmp_path):
    invocation = CommandInvocation(
        command=Command.STATUS,
        lock_dir=tmp_path / "lock",
        proto_root=tmp_path / "proto",
        plugin_names=["p"],
        options=["--debug"],
        path_env="/bin",
    )
    assert invocation.argv("protolock") == [
        "protolock",
        "status",
        "--plugins=p",
        f"--lockdir={tmp_path / 'lock'}",
        f"--protoroot={tmp_path / 'proto'}",
        "--debug",
    ]
    assert invocation.env() == {"PATH": "/bin"}
