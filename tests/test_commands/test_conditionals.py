"""Tests for [[ ... ]] conditional commands."""

import os

import pytest

from just_sh.ast import ConditionalCommandNode, TestBinary, TestGroup, TestUnary

from helpers import assign, call, dq, echo, param, run, word


def cond(expr):
    return ConditionalCommandNode(expr)


def binary(op, left, right):
    return TestBinary(op, word(left) if isinstance(left, str) else left,
                      word(right) if isinstance(right, str) else right)


def unary(op, operand):
    return TestUnary(op, word(operand) if isinstance(operand, str) else operand)


def status():
    return echo(word(param("?")))


async def check(expr, **kwargs):
    result = await run(cond(expr), status(), **kwargs)
    return result.stdout.strip()


class TestStrings:
    """Test string comparison and pattern matching."""

    @pytest.mark.asyncio
    async def test_pattern_match(self):
        assert await check(binary("==", "report.txt", "*.txt")) == "0"
        assert await check(binary("==", "report.txt", "*.py")) == "1"
        assert await check(binary("!=", "report.txt", "*.py")) == "0"

    @pytest.mark.asyncio
    async def test_quoted_pattern_is_literal(self):
        assert await check(binary("==", "*.txt", word(dq("*.txt")))) == "0"
        assert await check(binary("==", "a.txt", word(dq("*.txt")))) == "1"

    @pytest.mark.asyncio
    async def test_empty_and_non_empty(self):
        assert await check(unary("-z", word(dq()))) == "0"
        assert await check(unary("-n", "x")) == "0"
        assert await check(word(dq())) == "1"

    @pytest.mark.asyncio
    async def test_ordering(self):
        assert await check(binary("<", "apple", "banana")) == "0"
        assert await check(binary(">", "apple", "banana")) == "1"


class TestRegex:
    """Test =~ and BASH_REMATCH."""

    @pytest.mark.asyncio
    async def test_match_sets_rematch(self):
        result = await run(
            cond(binary("=~", "key=value", "^([a-z]+)=([a-z]+)$")),
            echo(word(param("BASH_REMATCH", index="1")), word(param("BASH_REMATCH", index="2"))),
        )
        assert result.stdout == "key value\n"

    @pytest.mark.asyncio
    async def test_no_match(self):
        assert await check(binary("=~", "abc", "^x")) == "1"

    @pytest.mark.asyncio
    async def test_invalid_regex_is_status_two(self):
        assert await check(binary("=~", "abc", "(")) == "2"


class TestNumbersAndLogic:
    """Test arithmetic comparison and logical operators."""

    @pytest.mark.asyncio
    async def test_numeric_operands_are_arithmetic(self):
        result = await run(
            call(assigns=[assign("n", "5")]),
            cond(binary("-gt", "n", "3")),
            status(),
            cond(binary("-eq", "n", "6")),
            status(),
        )
        assert result.stdout == "0\n1\n"

    @pytest.mark.asyncio
    async def test_and_or_not(self):
        assert await check(binary("&&", unary("-n", "a"), unary("-z", "b"))) == "1"
        assert await check(binary("||", unary("-n", "a"), unary("-z", "b"))) == "0"
        assert await check(unary("!", TestGroup(unary("-n", "a")))) == "1"

    @pytest.mark.asyncio
    async def test_variable_set(self):
        result = await run(
            call(assigns=[assign("v", "")]),
            cond(unary("-v", "v")),
            status(),
            cond(unary("-v", "nope")),
            status(),
        )
        assert result.stdout == "0\n1\n"

    @pytest.mark.asyncio
    async def test_unknown_operator_is_status_two(self):
        result = await run(cond(binary("-zz", "a", "b")), status())
        assert result.stdout == "2\n"
        assert "conditional binary operator expected" in result.stderr


class TestFiles:
    """Test file operators."""

    @pytest.mark.asyncio
    async def test_file_kinds(self, tmp_path):
        (tmp_path / "file").write_text("x")
        (tmp_path / "empty").write_text("")
        (tmp_path / "dir").mkdir()
        cwd = str(tmp_path)
        assert await check(unary("-f", "file"), cwd=cwd) == "0"
        assert await check(unary("-d", "file"), cwd=cwd) == "1"
        assert await check(unary("-d", "dir"), cwd=cwd) == "0"
        assert await check(unary("-s", "empty"), cwd=cwd) == "1"
        assert await check(unary("-e", "missing"), cwd=cwd) == "1"

    @pytest.mark.asyncio
    async def test_newer_than(self, tmp_path):
        (tmp_path / "old").write_text("")
        (tmp_path / "new").write_text("")
        os.utime(tmp_path / "old", (1000, 1000))
        os.utime(tmp_path / "new", (2000, 2000))
        cwd = str(tmp_path)
        assert await check(binary("-nt", "new", "old"), cwd=cwd) == "0"
        assert await check(binary("-ot", "new", "old"), cwd=cwd) == "1"
        assert await check(binary("-nt", "new", "missing"), cwd=cwd) == "0"
        assert await check(binary("-ef", "new", "new"), cwd=cwd) == "0"
