"""Tests for pipelines, background jobs and command substitution."""

import asyncio

import pytest

from just_sh.ast import SubshellNode

from helpers import (
    RecordingExec,
    assign,
    call,
    dq,
    echo,
    for_,
    param,
    pipe,
    run,
    stmt,
    stmts,
    subst,
    while_,
    word,
)


def status():
    return echo(word(param("?")))


def read_loop(prefix):
    return while_([call("read", "-r", "line")], echo(prefix, word(param("line"))))


class TestPipelines:
    """Test | and |&."""

    @pytest.mark.asyncio
    async def test_right_side_status_wins(self):
        result = await run(pipe(call("false"), call("true")), status())
        assert result.stdout == "0\n"
        assert result.error is None
        result = await run(pipe(call("true"), call("false")), status())
        assert result.stdout == "1\n"

    @pytest.mark.asyncio
    async def test_data_flows_left_to_right(self):
        result = await run(pipe(echo("hello"), call("read", "line")), echo(word(param("line"))))
        assert result.stdout == "hello\n"

    @pytest.mark.asyncio
    async def test_multi_stage(self):
        gen = RecordingExec({"gen": ("a\nb\n", 0)})
        result = await run(
            pipe(pipe(call("gen"), read_loop("got")), read_loop(">")),
            exec_handler=gen,
        )
        assert result.stdout == "> got a\n> got b\n"

    @pytest.mark.asyncio
    async def test_stderr_pipe(self):
        result = await run(
            pipe(call("missing-program"), call("read", "-r", "line"), op="|&"),
            echo(word(dq(param("line")))),
        )
        assert result.stdout == "missing-program: command not found\n"
        assert result.stderr == ""

    @pytest.mark.asyncio
    async def test_left_side_changes_do_not_leak(self):
        result = await run(
            pipe(call(assigns=[assign("x", "left")]), call("true")),
            echo(word(dq("[", param("x"), "]"))),
        )
        assert result.stdout == "[]\n"

    @pytest.mark.asyncio
    async def test_reader_exiting_early_is_not_an_error(self):
        writer = for_("i", [str(n) for n in range(200)], echo("line", word(param("i"))))
        result = await run(pipe(writer, call("true")), status())
        assert result.stdout == "0\n"
        assert result.error is None

    @pytest.mark.asyncio
    async def test_exit_in_left_side_only_ends_that_side(self):
        result = await run(pipe(call("exit", "4"), call("true")), echo("still running"))
        assert result.stdout == "still running\n"
        assert result.exit_code == 0


class TestBackground:
    """Test background statements and wait."""

    @pytest.mark.asyncio
    async def test_wait_joins_jobs(self):
        result = await run(
            stmt(echo("job"), background=True),
            call("wait"),
            echo("done"),
        )
        assert result.stdout == "job\ndone\n"

    @pytest.mark.asyncio
    async def test_wait_returns_last_job_status(self):
        result = await run(stmt(call("false"), background=True), call("wait"), status())
        assert result.stdout == "1\n"

    @pytest.mark.asyncio
    async def test_spawning_is_success(self):
        result = await run(stmt(call("false"), background=True), status(), call("wait"))
        assert result.stdout.startswith("0\n")

    @pytest.mark.asyncio
    async def test_run_joins_outstanding_jobs(self):
        result = await run(stmt(echo("late"), background=True))
        assert result.stdout == "late\n"

    @pytest.mark.asyncio
    async def test_job_variables_are_private(self):
        result = await run(
            stmt(call(assigns=[assign("x", "job")]), background=True),
            call("wait"),
            echo(word(dq("[", param("x"), "]"))),
        )
        assert result.stdout == "[]\n"

    @pytest.mark.asyncio
    async def test_wait_with_arguments(self):
        result = await run(call("wait", "%1"), status())
        assert result.stdout == "2\n"


class TestCommandSubstitution:
    """Test $(...)."""

    @pytest.mark.asyncio
    async def test_trailing_newlines_are_removed(self):
        result = await run(echo(word(dq("[", subst(echo("-n", "a\n\n")), "]"))))
        assert result.stdout == "[a]\n"

    @pytest.mark.asyncio
    async def test_unquoted_output_is_split(self):
        result = await run(
            for_("w", [word(subst(echo("one  two")))], echo(word(dq("<", param("w"), ">"))))
        )
        assert result.stdout == "<one>\n<two>\n"

    @pytest.mark.asyncio
    async def test_changes_do_not_leak(self):
        result = await run(
            echo(word(subst(call(assigns=[assign("x", "inner")]), echo("out")))),
            echo(word(dq("[", param("x"), "]"))),
        )
        assert result.stdout == "out\n[]\n"

    @pytest.mark.asyncio
    async def test_exit_inside_substitution(self):
        result = await run(
            call(assigns=[assign("v", word(subst(echo("partial"), call("exit", "3"))))]),
            status(),
            echo(word(param("v"))),
        )
        assert result.stdout == "3\npartial\n"

    @pytest.mark.asyncio
    async def test_subshell_output_is_captured(self):
        inner = SubshellNode(stmts(echo("from"), echo("subshell")))
        result = await run(echo(word(dq(subst(inner)))))
        assert result.stdout == "from\nsubshell\n"


class TestLargePipelines:
    """Test pipelines carrying more than one pipe buffer."""

    @pytest.mark.asyncio
    async def test_exec_hook_reads_all_of_stdin(self):
        async def count_bytes(hctx, name, args):
            data = await hctx.stdin.read()
            await hctx.stdout.write(f"{len(data)}\n")
            return 0

        text = "y" * (70 * 1024)
        result = await asyncio.wait_for(
            run(pipe(echo(text), call("wc")), exec_handler=count_bytes),
            timeout=5,
        )
        assert result.stdout == f"{len(text) + 1}\n"
