"""Tests for pubseq.output.console module."""

from __future__ import annotations

import pytest

from pubseq.output.console import ConsoleProtocol, MockConsole, RichConsole, Style


class TestStyle:
    def test_str(self) -> None:
        assert str(Style.SUCCESS) == "success"
        assert str(Style.HEADER) == "header"


class TestMockConsole:
    def test_prefixes(self) -> None:
        console = MockConsole()
        console.success("done")
        console.error("failed")
        console.warning("careful")
        console.info("fyi")

        assert console.messages == ["OK done", "error: failed", "warning: careful", "info: fyi"]

    def test_header_and_newline(self) -> None:
        console = MockConsole()
        console.header("[1/3] lib0@0.2.0 -> crates-io")
        console.newline()

        assert console.outputs[0].style == Style.HEADER
        assert console.outputs[1].message == ""

    def test_table(self) -> None:
        console = MockConsole()
        console.table(
            "Release summary",
            ["#", "package"],
            [["1", "lib0"], ["2", "yrs"]],
            [Style.SUCCESS, Style.ERROR],
        )

        assert console.messages == ["Release summary", "# | package", "1 | lib0", "2 | yrs"]
        assert console.outputs[2].style == Style.SUCCESS
        assert console.outputs[3].style == Style.ERROR

    def test_helpers(self) -> None:
        console = MockConsole()
        console.print("publish: cargo /tmp/lib0", Style.DIM)
        console.warning("retrying")

        assert console.has_warning()
        assert not console.has_error()
        assert len(console.find("cargo")) == 1
        assert console.count(Style.DIM) == 1
        assert "retrying" in console.text

        console.clear()
        assert console.outputs == []

    def test_satisfies_protocol(self) -> None:
        def use(console: ConsoleProtocol) -> None:
            console.print("x")

        use(MockConsole())


class TestRichConsole:
    def test_brackets_are_not_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.print("error[E0433]: failed to resolve [bold]")

        out = capsys.readouterr().out
        assert "[E0433]" in out
        assert "[bold]" in out

    def test_prefixed_lines(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.error("boom")
        console.success("published")

        out = capsys.readouterr().out
        assert "error: boom" in out
        assert "OK published" in out

    def test_table(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.table("Units", ["package"], [["lib0"]], [Style.SUCCESS])

        out = capsys.readouterr().out
        assert "Units" in out
        assert "lib0" in out
