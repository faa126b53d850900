"""Tests for the exec and open hooks, including the default process runner."""

import os
import shutil

import pytest

from just_sh import Shell
from just_sh.interpreter import ExitCode

from helpers import (
    DEFAULT_ENV,
    RecordingExec,
    assign,
    call,
    dq,
    echo,
    param,
    pipe,
    redir,
    run,
    script,
    stmt,
    subst,
    word,
)

needs_sh = pytest.mark.skipif(shutil.which("sh") is None, reason="sh not available")
needs_cat = pytest.mark.skipif(shutil.which("cat") is None, reason="cat not available")


def real_shell(**kwargs):
    kwargs.setdefault("env", {"PATH": os.environ.get("PATH", "/usr/bin:/bin"), "HOME": "/tmp"})
    return Shell(**kwargs)


def status():
    return echo(word(param("?")))


class TestExecHook:
    """Test what the exec hook receives and how its outcome is used."""

    @pytest.mark.asyncio
    async def test_temporary_assignments_reach_the_environment(self):
        recorder = RecordingExec({"prog": ("", 0)})
        await run(
            call("prog", "arg", assigns=[assign("FOO", "bar")]),
            call("prog"),
            exec_handler=recorder,
        )
        (name, args, env, _), (_, _, second_env, _) = recorder.calls
        assert (name, args) == ("prog", ["arg"])
        assert env["FOO"] == "bar"
        assert "FOO" not in second_env

    @pytest.mark.asyncio
    async def test_exec_gets_working_directory(self, tmp_path):
        recorder = RecordingExec({"prog": ("", 0)})
        await run(call("prog"), cwd=str(tmp_path), exec_handler=recorder)
        assert recorder.calls[0][3] == str(tmp_path)

    @pytest.mark.asyncio
    async def test_exit_code_is_passed_through(self):
        recorder = RecordingExec({"prog": ("out\n", 3)})
        result = await run(call("prog"), status(), exec_handler=recorder)
        assert result.stdout == "out\n3\n"

    @pytest.mark.asyncio
    async def test_not_found(self):
        result = await run(call("nope"), status())
        assert result.stdout == "127\n"
        assert result.stderr == "nope: command not found\n"

    @pytest.mark.asyncio
    async def test_exit_code_exception_is_a_status(self):
        async def handler(hctx, name, args):
            raise ExitCode(5)

        result = await run(call("x"), status(), exec_handler=handler)
        assert result.stdout == "5\n"
        assert result.error is None

    @pytest.mark.asyncio
    async def test_other_exceptions_are_fatal(self):
        async def handler(hctx, name, args):
            raise RuntimeError("handler blew up")

        result = await run(call("x"), echo("unreached"), exec_handler=handler)
        assert result.exit_code == 1
        assert result.stdout == ""
        assert isinstance(result.error, RuntimeError)
        assert "handler blew up" in result.stderr


class TestOpenHook:
    """Test the open hook."""

    @pytest.mark.asyncio
    async def test_path_errors_are_not_fatal(self):
        async def opener(hctx, path, flags, mode):
            raise PermissionError(13, "Permission denied", path)

        result = await run(stmt(echo("x"), redir(">", "f")), status(), open_handler=opener)
        assert result.stdout == "1\n"
        assert "f: Permission denied" in result.stderr

    @pytest.mark.asyncio
    async def test_other_errors_are_fatal(self):
        async def opener(hctx, path, flags, mode):
            raise ValueError("no files here")

        result = await run(stmt(echo("x"), redir(">", "f")), echo("after"), open_handler=opener)
        assert isinstance(result.error, ValueError)
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_path_is_resolved_against_cwd(self, tmp_path):
        seen = []

        async def opener(hctx, path, flags, mode):
            seen.append(path)
            raise FileNotFoundError(2, "No such file or directory", path)

        await run(stmt(call("true"), redir("<", "in")), cwd=str(tmp_path), open_handler=opener)
        assert seen == [os.path.join(str(tmp_path), "in")]


class TestDefaultExec:
    """Test running real programs."""

    @needs_sh
    @pytest.mark.asyncio
    async def test_exit_status(self):
        result = await real_shell().exec(call("sh", "-c", "exit 3"))
        assert result.exit_code == 3

    @needs_sh
    @pytest.mark.asyncio
    async def test_environment_and_directory(self, tmp_path):
        shell = real_shell(cwd=str(tmp_path))
        result = await shell.exec(
            call("sh", "-c", 'echo "$FOO"; pwd', assigns=[assign("FOO", "bar")])
        )
        assert result.stdout == f"bar\n{tmp_path}\n"

    @needs_cat
    @pytest.mark.asyncio
    async def test_pipes_through_a_process(self):
        result = await real_shell().exec(pipe(echo("through cat"), call("cat")))
        assert result.stdout == "through cat\n"

    @needs_cat
    @pytest.mark.asyncio
    async def test_reads_stdin(self):
        result = await real_shell().exec(call("cat"), stdin="input text\n")
        assert result.stdout == "input text\n"

    @needs_sh
    @pytest.mark.asyncio
    async def test_process_output_feeds_substitution(self):
        result = await real_shell().exec(
            script(echo(word(dq("[", subst(call("sh", "-c", "echo hi")), "]"))))
        )
        assert result.stdout == "[hi]\n"

    @pytest.mark.asyncio
    async def test_missing_program(self, tmp_path):
        result = await real_shell(env={"PATH": str(tmp_path)}).exec(call("definitely-missing"))
        assert result.exit_code == 127
        assert result.stderr == "definitely-missing: command not found\n"

    @pytest.mark.asyncio
    async def test_non_executable_file(self, tmp_path):
        (tmp_path / "data").write_text("not a program")
        shell = real_shell(cwd=str(tmp_path), env=dict(DEFAULT_ENV))
        result = await shell.exec(call("./data"))
        assert result.exit_code == 126
        assert "permission denied" in result.stderr
