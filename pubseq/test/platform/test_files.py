from __future__ import annotations

from pathlib import Path

from pubseq.platform.files import atomic_write_text


def test_atomic_write_creates_parents(tmp_path: Path) -> None:
    target = tmp_path / "out" / "report.json"
    atomic_write_text(target, "{}\n")

    assert target.read_text(encoding="utf-8") == "{}\n"


def test_atomic_write_replaces_and_leaves_no_temp(tmp_path: Path) -> None:
    target = tmp_path / "report.json"
    target.write_text("old", encoding="utf-8")

    atomic_write_text(target, "new")

    assert target.read_text(encoding="utf-8") == "new"
    assert [p.name for p in tmp_path.iterdir()] == ["report.json"]
