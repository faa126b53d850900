"""Tests for control flow: if, loops, case, functions and subshells."""

import pytest

from just_sh.ast import CaseItemNode, CaseNode, CStyleForNode, DeclareNode, SubshellNode

from helpers import (
    RecordingExec,
    and_,
    arith_cmd,
    assign,
    binop,
    call,
    echo,
    for_,
    func,
    if_,
    or_,
    param,
    run,
    stmt,
    stmts,
    unop,
    while_,
    word,
)


def status():
    return echo(word(param("?")))


def local(*assigns):
    return DeclareNode(variant="local", assignments=tuple(assigns))


class TestIf:
    """Test if/else."""

    @pytest.mark.asyncio
    async def test_then_branch(self):
        result = await run(if_([call("true")], [echo("yes")], [echo("no")]))
        assert result.stdout == "yes\n"

    @pytest.mark.asyncio
    async def test_else_branch(self):
        result = await run(if_([call("false")], [echo("yes")], [echo("no")]))
        assert result.stdout == "no\n"

    @pytest.mark.asyncio
    async def test_failed_condition_without_else_is_success(self):
        result = await run(if_([call("false")], [echo("yes")]), status())
        assert result.stdout == "0\n"

    @pytest.mark.asyncio
    async def test_elif_chain(self):
        chain = if_(
            [call("false")],
            [echo("first")],
            [if_([call("true")], [echo("second")], [echo("third")])],
        )
        result = await run(chain)
        assert result.stdout == "second\n"


class TestWhile:
    """Test while and until loops."""

    @pytest.mark.asyncio
    async def test_while_counts(self):
        result = await run(
            call(assigns=[assign("x", "0")]),
            while_(
                [arith_cmd(binop("<", "x", "3"))],
                echo(word(param("x"))),
                arith_cmd(unop("++", "x", postfix=True)),
            ),
        )
        assert result.stdout == "0\n1\n2\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_until_runs_while_condition_fails(self):
        result = await run(
            call(assigns=[assign("x", "0")]),
            while_(
                [arith_cmd(binop(">=", "x", "2"))],
                echo(word(param("x"))),
                arith_cmd(binop("+=", "x", "1")),
                until=True,
            ),
        )
        assert result.stdout == "0\n1\n"

    @pytest.mark.asyncio
    async def test_loop_that_never_runs_is_success(self):
        result = await run(while_([call("false")], echo("never")), status())
        assert result.stdout == "0\n"


class TestFor:
    """Test for loops."""

    @pytest.mark.asyncio
    async def test_iterates_over_words(self):
        result = await run(for_("i", ["a", "b", "c"], echo(word(param("i")))))
        assert result.stdout == "a\nb\nc\n"

    @pytest.mark.asyncio
    async def test_no_word_list_iterates_positional_params(self):
        result = await run(for_("arg", None, echo(word(param("arg")))), args=["one", "two"])
        assert result.stdout == "one\ntwo\n"

    @pytest.mark.asyncio
    async def test_variable_keeps_last_value(self):
        result = await run(for_("i", ["1", "2"], call(":")), echo(word(param("i"))))
        assert result.stdout == "2\n"

    @pytest.mark.asyncio
    async def test_invalid_variable_name(self):
        result = await run(for_("1x", ["a"], echo("never")))
        assert result.exit_code == 1
        assert "not a valid identifier" in result.stderr

    @pytest.mark.asyncio
    async def test_c_style_for(self):
        loop = CStyleForNode(
            init=binop("=", "i", "0"),
            condition=binop("<", "i", "3"),
            update=unop("++", "i", postfix=True),
            body=stmts(echo(word(param("i")))),
        )
        result = await run(loop)
        assert result.stdout == "0\n1\n2\n"
        assert result.exit_code == 0


class TestBreakContinue:
    """Test break and continue."""

    @pytest.mark.asyncio
    async def test_break_leaves_innermost_loop(self):
        inner = for_("j", ["a", "b"], echo(word(param("i"), param("j"))), call("break"))
        result = await run(for_("i", ["1", "2"], inner))
        assert result.stdout == "1a\n2a\n"

    @pytest.mark.asyncio
    async def test_break_two_leaves_both_loops(self):
        inner = for_("j", ["a", "b"], echo(word(param("i"), param("j"))), call("break", "2"))
        result = await run(for_("i", ["1", "2"], inner), echo("done"))
        assert result.stdout == "1a\ndone\n"

    @pytest.mark.asyncio
    async def test_continue_skips_rest_of_body(self):
        body = [
            if_([call("test", word(param("i")), "=", "2")], [call("continue")]),
            echo(word(param("i"))),
        ]
        result = await run(for_("i", ["1", "2", "3"], *body))
        assert result.stdout == "1\n3\n"

    @pytest.mark.asyncio
    async def test_continue_two_resumes_outer_loop(self):
        inner = for_("j", ["a", "b"], echo(word(param("i"), param("j"))), call("continue", "2"))
        result = await run(for_("i", ["1", "2"], inner, echo("unreached")))
        assert result.stdout == "1a\n2a\n"

    @pytest.mark.asyncio
    async def test_break_outside_loop(self):
        result = await run(call("break"), echo("after"))
        assert result.stdout == "after\n"
        assert "only meaningful in a `for', `while', or `until' loop" in result.stderr

    @pytest.mark.asyncio
    async def test_break_with_bad_count(self):
        result = await run(for_("i", ["1"], call("break", "0"), status()))
        assert result.stdout == "1\n"
        assert "break: 0: loop count out of range" in result.stderr


class TestCase:
    """Test case statements."""

    def make_case(self, subject):
        return CaseNode(
            word(subject),
            (
                CaseItemNode((word("*.py"),), stmts(echo("python"))),
                CaseItemNode((word("*.txt"), word("*.md")), stmts(echo("text"))),
                CaseItemNode((word("*"),), stmts(echo("other"))),
            ),
        )

    @pytest.mark.asyncio
    async def test_first_match_wins(self):
        result = await run(self.make_case("notes.md"))
        assert result.stdout == "text\n"

    @pytest.mark.asyncio
    async def test_fallback_pattern(self):
        result = await run(self.make_case("image.png"))
        assert result.stdout == "other\n"

    @pytest.mark.asyncio
    async def test_no_match_is_success(self):
        node = CaseNode(word("x"), (CaseItemNode((word("y"),), stmts(echo("y"))),))
        result = await run(call("false"), node, status())
        assert result.stdout == "0\n"


class TestFunctions:
    """Test function definitions and calls."""

    @pytest.mark.asyncio
    async def test_function_gets_its_own_params(self):
        result = await run(
            func("show", echo(word(param("#")), word(param("1")))),
            call("show", "a", "b"),
            echo(word(param("1"))),
            args=["outer"],
        )
        assert result.stdout == "2 a\nouter\n"

    @pytest.mark.asyncio
    async def test_return_sets_status(self):
        result = await run(
            func("f", call("return", "3"), echo("unreached")),
            call("f"),
            status(),
        )
        assert result.stdout == "3\n"

    @pytest.mark.asyncio
    async def test_return_outside_function(self):
        result = await run(call("return"), status())
        assert result.stdout == "1\n"
        assert "can only `return' from a function" in result.stderr

    @pytest.mark.asyncio
    async def test_function_shadows_builtin(self):
        result = await run(func("echo", call("builtin", "echo", "wrapped")), echo("x"))
        assert result.stdout == "wrapped\n"

    @pytest.mark.asyncio
    async def test_local_is_restored_after_call(self):
        result = await run(
            call(assigns=[assign("x", "outer")]),
            func("f", local(assign("x", "inner")), echo(word(param("x")))),
            call("f"),
            echo(word(param("x"))),
        )
        assert result.stdout == "inner\nouter\n"

    @pytest.mark.asyncio
    async def test_local_of_inherited_variable_is_restored(self):
        recorder = RecordingExec({"show": ("", 0)})
        result = await run(
            func("f", local(assign("HOME", "inner")), call("show")),
            call("f"),
            echo(word(param("HOME"))),
            call("show"),
            exec_handler=recorder,
        )
        assert result.stdout == "/home/user\n"
        assert recorder.calls[0][2]["HOME"] == "inner"
        assert recorder.calls[1][2]["HOME"] == "/home/user"

    @pytest.mark.asyncio
    async def test_local_of_unset_name_is_removed(self):
        result = await run(
            func("f", local(assign("tmp", "v"))),
            call("f"),
            echo(word("[", param("tmp"), "]")),
        )
        assert result.stdout == "[]\n"

    @pytest.mark.asyncio
    async def test_local_outside_function(self):
        result = await run(local(assign("x", "1")), status())
        assert result.stdout == "1\n"
        assert "local: can only be used in a function" in result.stderr

    @pytest.mark.asyncio
    async def test_global_write_inside_function_persists(self):
        result = await run(
            func("f", call(assigns=[assign("g", "set")])),
            call("f"),
            echo(word(param("g"))),
        )
        assert result.stdout == "set\n"


class TestLists:
    """Test &&, || and negation."""

    @pytest.mark.asyncio
    async def test_and_or_chain(self):
        result = await run(or_(and_(call("false"), echo("no")), echo("yes")))
        assert result.stdout == "yes\n"

    @pytest.mark.asyncio
    async def test_and_runs_right_on_success(self):
        result = await run(and_(call("true"), echo("ran")))
        assert result.stdout == "ran\n"

    @pytest.mark.asyncio
    async def test_negation(self):
        result = await run(stmt(call("false"), negated=True), status())
        assert result.stdout == "0\n"


class TestSubshell:
    """Test ( ... ) subshells."""

    @pytest.mark.asyncio
    async def test_variables_do_not_leak(self):
        result = await run(
            SubshellNode(stmts(call(assigns=[assign("x", "inner")]))),
            echo(word("[", param("x"), "]")),
        )
        assert result.stdout == "[]\n"

    @pytest.mark.asyncio
    async def test_exit_only_ends_subshell(self):
        result = await run(
            SubshellNode(stmts(call("exit", "3"), echo("unreached"))),
            status(),
        )
        assert result.stdout == "3\n"
        assert result.exit_code == 0


class TestErrexit:
    """Test set -e."""

    @pytest.mark.asyncio
    async def test_failing_command_stops_script(self):
        result = await run(call("set", "-e"), call("false"), echo("unreached"))
        assert result.stdout == ""
        assert result.exit_code == 1

    @pytest.mark.asyncio
    async def test_condition_does_not_trigger_errexit(self):
        result = await run(
            call("set", "-e"),
            if_([call("false")], [echo("then")]),
            while_([call("false")], echo("body")),
            echo("ok"),
        )
        assert result.stdout == "ok\n"

    @pytest.mark.asyncio
    async def test_negated_failure_does_not_trigger_errexit(self):
        result = await run(call("set", "-e"), stmt(call("true"), negated=True), echo("ok"))
        assert result.stdout == "ok\n"
