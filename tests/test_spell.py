"""Tests for the Spell builder's configuration surface.

Configuration is pure in-memory state; these tests never launch
anything.  The three environment states (untouched, modified, cleared)
are part of the contract, so each gets its own checks.
"""

from pathlib import Path

import pytest

from py_spell.env import Environment
from py_spell.spell import Spell
from py_spell.stdio import Stdio


class TestArguments:
    """Verify argument accumulation."""

    def test_starts_without_arguments(self) -> None:
        """A new Spell has only a program."""
        spell = Spell("prog")
        assert spell.program == "prog"
        assert spell.get_args() == []

    def test_setters_chain(self) -> None:
        """Every setter returns the same builder."""
        spell = Spell("prog")
        assert spell.arg("a") is spell
        assert spell.args("b", "c") is spell
        assert spell.env_clear() is spell
        assert spell.set_stdout(Stdio.NULL) is spell

    def test_arg_appends_in_order(self) -> None:
        """Arguments keep their order."""
        spell = Spell("prog").arg("one").arg("two")
        assert spell.get_args() == ["one", "two"]

    def test_args_variadic_and_iterable(self) -> None:
        """args() accepts separate strings or one iterable."""
        spell = Spell("prog").args("Hello", "World").args(["foo", "bar"])
        assert spell.get_args() == ["Hello", "World", "foo", "bar"]

    def test_get_args_is_mutable(self) -> None:
        """Editing the returned list edits the configuration."""
        spell = Spell("prog").arg("one").arg("two")
        for i, arg in enumerate(spell.get_args()):
            spell.get_args()[i] = arg.capitalize()
        assert spell.get_args() == ["One", "Two"]


class TestEnvironmentStates:
    """Verify untouched / modified / cleared environments."""

    def test_untouched_inherits(self) -> None:
        """With no environment calls nothing is configured."""
        spell = Spell("prog")
        assert spell._env is None
        assert dict(spell.configured_envs) == {}

    def test_env_copies_os_environment_first(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The first env() call starts from our environment."""
        monkeypatch.setenv("PY_SPELL_TEST_VAR", "bar")
        spell = Spell("prog").env("foo", "bar")
        envs = spell.configured_envs
        assert envs["foo"] == "bar"
        assert envs["PY_SPELL_TEST_VAR"] == "bar"

    def test_env_remove_copies_os_environment_first(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """env_remove() materialises, then removes."""
        monkeypatch.setenv("PY_SPELL_A", "1")
        monkeypatch.setenv("PY_SPELL_B", "2")
        spell = Spell("prog").env_remove("PY_SPELL_A")
        assert "PY_SPELL_A" not in spell.configured_envs
        assert spell.configured_envs["PY_SPELL_B"] == "2"

    def test_env_clear_first_is_blank(self) -> None:
        """env_clear() before anything else gives an empty set."""
        spell = Spell("prog").env_clear().env("k", "v")
        assert dict(spell.configured_envs) == {"k": "v"}

    def test_env_clear_after_env_empties(self) -> None:
        """env_clear() after other changes wipes them too."""
        spell = Spell("prog").env("k", "v").env_clear()
        assert dict(spell.configured_envs) == {}
        assert spell._env is not None

    def test_envs_sets_many(self) -> None:
        """envs() accepts a mapping or pairs."""
        spell = Spell("prog").env_clear().envs({"a": "1"}).envs([("b", "2")])
        assert dict(spell.configured_envs) == {"a": "1", "b": "2"}

    def test_get_envs_is_mutable(self) -> None:
        """Changes through get_envs() are used by later casts."""
        spell = Spell("prog").env_clear()
        env = spell.get_envs()
        env.set("one", "1")
        env.set("a", "2")
        env.set("a", "1")
        assert isinstance(env, Environment)
        assert dict(spell.configured_envs) == {"one": "1", "a": "1"}

    def test_get_envs_materialises_but_view_does_not(self) -> None:
        """Reading the view leaves an untouched Spell untouched."""
        viewed = Spell("prog")
        assert "PATH" not in viewed.configured_envs
        assert viewed._env is None
        edited = Spell("prog")
        assert edited.get_envs().get("PATH") is not None

    def test_snapshot_taken_at_first_change(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Later changes to os.environ do not reach a modified Spell."""
        spell = Spell("prog").env("k", "v")
        monkeypatch.setenv("PY_SPELL_LATE", "1")
        assert "PY_SPELL_LATE" not in spell.configured_envs

    def test_view_is_read_only(self) -> None:
        """The view cannot be written to."""
        spell = Spell("prog").env_clear()
        with pytest.raises(TypeError):
            spell.configured_envs["k"] = "v"  # type: ignore[index]


class TestWorkingDirectory:
    """Verify working directory resolution."""

    def test_defaults_to_cwd(self) -> None:
        """The default is the current directory."""
        assert Spell("prog").get_current_dir() == Path.cwd().resolve()

    def test_absolute_path(self, tmp_path: Path) -> None:
        """An absolute path is stored resolved."""
        spell = Spell("prog").current_dir(tmp_path)
        assert spell.get_current_dir() == tmp_path.resolve()

    def test_relative_path_uses_configured_dir(self, tmp_path: Path) -> None:
        """Relative paths resolve against the Spell's directory, not ours."""
        (tmp_path / "sub").mkdir()
        spell = Spell("prog").current_dir(tmp_path).current_dir("sub")
        assert spell.get_current_dir() == (tmp_path / "sub").resolve()

    def test_dot_dot_is_collapsed(self, tmp_path: Path) -> None:
        """The stored path is canonical even if it does not exist."""
        spell = Spell("prog").current_dir(tmp_path).current_dir("missing/../other")
        assert spell.get_current_dir() == tmp_path.resolve() / "other"


class TestStreams:
    """Verify stdio setters."""

    def test_accepts_strings(self) -> None:
        """Policies may be given by name."""
        spell = Spell("prog").set_stdin("null")
        assert spell._stdin is Stdio.NULL

    def test_rejects_unknown_policy(self) -> None:
        """An unknown policy name is an error."""
        with pytest.raises(ValueError, match="sideways"):
            Spell("prog").set_stdout("sideways")


class TestFromString:
    """Verify the tokenizing constructor."""

    def test_program_and_arguments(self) -> None:
        """The first token is the program."""
        spell = Spell.from_string("echo 'Hello World'")
        assert spell.program == "echo"
        assert spell.get_args() == ["Hello World"]

    def test_quotes_join_without_adding(self) -> None:
        """a'b c'd is the single argument 'ab cd'."""
        assert Spell.from_string("echo a'b c'd").get_args() == ["ab cd"]

    def test_empty_line(self) -> None:
        """An empty line gives an empty program name."""
        spell = Spell.from_string("")
        assert spell.program == ""
        assert spell.get_args() == []

    def test_repr(self) -> None:
        """The repr names the program and arguments."""
        assert repr(Spell.from_string("ls -l")) == "Spell('ls', args=['-l'])"
