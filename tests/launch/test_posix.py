"""Tests for the POSIX fork + exec launch protocol.

These launch real children: the running Python interpreter (``-I -c``)
and the ``env`` utility.  The error-report pipe is what makes a missing
program a synchronous ``None`` instead of a child that exits with 127.
"""

import json
import os
import shutil
import sys
from pathlib import Path

import pytest

from py_spell.handle import NullDevice
from py_spell.launch import LaunchRequest, spawn
from py_spell.launch.posix import EXEC_FAILURE_CODE
from py_spell.spell import Spell
from py_spell.stdio import Stdio

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX launch protocol")

PRINT_ARGS = "import json, sys; print(json.dumps(sys.argv[1:]))"
PROC_FD = Path("/proc/self/fd")


def _python(code: str) -> Spell:
    """Return a Spell running *code* in a fresh interpreter."""
    return Spell(sys.executable).args("-I", "-c", code)


def _open_fds() -> set[str]:
    """Return the names of this process's open descriptors."""
    return set(os.listdir(PROC_FD))


class TestArguments:
    """Verify arguments reach the child exactly."""

    @pytest.mark.parametrize(
        "args",
        [
            [],
            ["Hello", "World"],
            ["with space", "", "'quoted'", '"double"', "back\\slash"],
            ["안녕하세요", "--flag=value", "*", "$HOME"],
        ],
    )
    def test_arguments_round_trip(self, args: list[str]) -> None:
        """The child sees exactly the configured sequence, in order."""
        output = _python(PRINT_ARGS).args(args).cast_output()
        assert output is not None
        assert json.loads(output.stdout) == args

    def test_argument_count_as_exit_code(self) -> None:
        """No arguments are added or dropped."""
        count = "import sys; sys.exit(len(sys.argv) - 1)"
        for args, expected in [((), 0), (("1",), 1), (tuple("1234567"), 7)]:
            status = _python(count).args(args).cast_status()
            assert status is not None
            assert status.code == expected
            assert status.success is (expected == 0)

    def test_program_is_argument_zero(self) -> None:
        """The program name is passed as argv[0]."""
        output = _python("import sys; print(sys.orig_argv[0])").arg("x").cast_output()
        assert output is not None
        assert output.collect_stdout().strip() == sys.executable


class TestLaunchFailure:
    """Verify failed launches return None and leak nothing."""

    def test_missing_program_every_operation(self) -> None:
        """cast, cast_status and cast_output all report failure as None."""
        spell = Spell("i_do_not_exist_py_spell")
        assert spell.cast() is None
        assert spell.cast_status() is None
        assert spell.cast_output() is None

    def test_not_executable(self, tmp_path: Path) -> None:
        """A file without execute permission cannot be launched."""
        script = tmp_path / "script.sh"
        script.write_text("#!/bin/sh\nexit 0\n")
        script.chmod(0o644)
        assert Spell(str(script)).cast() is None

    def test_missing_working_directory(self, tmp_path: Path) -> None:
        """A working directory that does not exist fails the launch."""
        spell = _python("pass").current_dir(tmp_path / "missing")
        assert spell.cast_status() is None

    @pytest.mark.skipif(not PROC_FD.is_dir(), reason="needs /proc/self/fd")
    def test_failure_leaks_no_descriptors(self) -> None:
        """Every handle opened for the attempt is closed again."""
        NullDevice.fileno()
        before = _open_fds()
        spell = Spell("i_do_not_exist_py_spell").set_stdin(Stdio.NULL).set_stdout(Stdio.PIPED)
        assert spell.cast() is None
        assert spell.cast_output() is None
        assert _open_fds() == before

    @pytest.mark.skipif(not PROC_FD.is_dir(), reason="needs /proc/self/fd")
    def test_success_keeps_only_piped_ends(self) -> None:
        """After wait and close, nothing from the launch is left open."""
        NullDevice.fileno()
        before = _open_fds()
        output = _python("print('hi')").set_stdin(Stdio.NULL).cast_output()
        assert output is not None
        assert _open_fds() == before

    def test_exit_code_127_is_not_a_launch_failure(self) -> None:
        """A program that exits with 127 itself still launched fine."""
        status = _python(f"import sys; sys.exit({EXEC_FAILURE_CODE})").cast_status()
        assert status is not None
        assert status.code == EXEC_FAILURE_CODE

    def test_spawn_rejects_unresolved_policy(self, tmp_path: Path) -> None:
        """DEFAULT must never reach the backend."""
        request = LaunchRequest(
            program=sys.executable,
            args=("-c", "pass"),
            env=None,
            cwd=tmp_path,
            stdin=Stdio.DEFAULT,
            stdout=Stdio.NULL,
            stderr=Stdio.NULL,
        )
        with pytest.raises(ValueError, match="Unresolved"):
            spawn(request)


class TestEnvironment:
    """Verify the three environment states reach the child."""

    def test_untouched_inherits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without env calls the child sees our environment at launch."""
        monkeypatch.setenv("PY_SPELL_TEST_VAR", "inherited")
        code = "import os; print(os.environ.get('PY_SPELL_TEST_VAR'))"
        output = _python(code).cast_output()
        assert output is not None
        assert output.stdout == b"inherited\n"

    def test_modified_adds_to_inherited(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """env() adds on top of a copy of our environment."""
        monkeypatch.setenv("PY_SPELL_A", "1")
        code = "import os; print(os.environ.get('PY_SPELL_A'), os.environ.get('foo'))"
        output = _python(code).env("foo", "bar").cast_output()
        assert output is not None
        assert output.stdout == b"1 bar\n"

    def test_env_remove_hides_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """env_remove() keeps a variable from the child."""
        monkeypatch.setenv("PY_SPELL_A", "1")
        code = "import os; print(os.environ.get('PY_SPELL_A'))"
        output = _python(code).env_remove("PY_SPELL_A").cast_output()
        assert output is not None
        assert output.stdout == b"None\n"

    def test_cleared_has_exactly_configured(self) -> None:
        """env_clear() then env(k, v) gives a child with only k=v."""
        env_program = shutil.which("env")
        if env_program is None:
            pytest.skip("no env utility")
        output = Spell(env_program).env_clear().env("k", "v").cast_output()
        assert output is not None
        assert output.stdout == b"k=v\n"

    def test_cleared_program_still_found(self) -> None:
        """A cleared environment still finds programs on the default path."""
        if shutil.which("env", path=os.defpath) is None:
            pytest.skip("env not on the default path")
        output = Spell("env").env_clear().cast_output()
        assert output is not None
        assert output.stdout == b""


class TestWorkingDirectory:
    """Verify the child starts in the configured directory."""

    def test_child_runs_in_directory(self, tmp_path: Path) -> None:
        """os.getcwd() in the child is the configured directory."""
        output = _python("import os; print(os.getcwd())").current_dir(tmp_path).cast_output()
        assert output is not None
        assert output.collect_stdout().strip() == str(tmp_path.resolve())

    def test_builder_is_reusable(self, tmp_path: Path) -> None:
        """Casting twice starts two independent children."""
        spell = _python("import os; print(os.getpid())").current_dir(tmp_path)
        first = spell.cast_output()
        second = spell.cast_output()
        assert first is not None
        assert second is not None
        assert first.stdout != second.stdout


class TestLargeOutput:
    """Verify output bigger than a pipe buffer is collected in full."""

    SIZE = 200_000

    def test_stdout_larger_than_pipe(self) -> None:
        """cast_output drains stdout while the child is still writing."""
        output = _python(f"import sys; sys.stdout.write('x' * {self.SIZE})").cast_output()
        assert output is not None
        assert output.status.success
        assert output.stdout == b"x" * self.SIZE

    def test_both_streams_larger_than_pipe(self) -> None:
        """A child filling stderr first does not stall on an unread stdout."""
        code = (
            "import sys; "
            f"sys.stderr.write('e' * {self.SIZE}); sys.stderr.flush(); "
            f"sys.stdout.write('o' * {self.SIZE})"
        )
        output = _python(code).cast_output()
        assert output is not None
        assert output.stdout == b"o" * self.SIZE
        assert output.stderr == b"e" * self.SIZE
