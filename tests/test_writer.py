"""Tests for sdking.writer -- atomic, contained artifact writes."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from sdking.exceptions import OutputError
from sdking.models import GeneratedArtifact
from sdking.writer import write_artifacts


def _artifact(path: str, content: str = "x = 1\n") -> GeneratedArtifact:
    return GeneratedArtifact(path=path, content=content)


class TestWriteArtifacts:
    def test_writes_nested_paths(self, tmp_path: Path, quiet_output) -> None:
        out = tmp_path / "sdk"
        paths = write_artifacts(
            [
                _artifact("__init__.py", "from .config import sdk_config\n"),
                _artifact("routes/pet/by_petId/__init__.py", "def get():\n    pass\n"),
            ],
            out,
        )
        assert paths == [
            out.resolve() / "__init__.py",
            out.resolve() / "routes" / "pet" / "by_petId" / "__init__.py",
        ]
        assert (out / "__init__.py").read_text() == "from .config import sdk_config\n"
        assert (out / "routes/pet/by_petId/__init__.py").read_text() == "def get():\n    pass\n"

    def test_overwrites_existing_files(self, tmp_path: Path, quiet_output) -> None:
        (tmp_path / "config.py").write_text("old\n")
        write_artifacts([_artifact("config.py", "new\n")], tmp_path)
        assert (tmp_path / "config.py").read_text() == "new\n"

    def test_no_temp_files_left(self, tmp_path: Path, quiet_output) -> None:
        write_artifacts([_artifact(f"m{index}.py") for index in range(10)], tmp_path, jobs=3)
        assert sorted(p.name for p in tmp_path.iterdir()) == sorted(f"m{index}.py" for index in range(10))

    def test_single_job(self, tmp_path: Path, quiet_output) -> None:
        write_artifacts([_artifact("a.py"), _artifact("b.py")], tmp_path, jobs=1)
        assert (tmp_path / "a.py").exists()
        assert (tmp_path / "b.py").exists()

    def test_file_mode_follows_umask(self, tmp_path: Path, quiet_output) -> None:
        previous = os.umask(0o022)
        try:
            (path,) = write_artifacts([_artifact("a.py")], tmp_path)
        finally:
            os.umask(previous)
        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    def test_escaping_path_rejected_before_writing(self, tmp_path: Path, quiet_output) -> None:
        out = tmp_path / "sdk"
        with pytest.raises(OutputError, match="escapes the output directory"):
            write_artifacts([_artifact("ok.py"), _artifact("../evil.py")], out)
        assert not out.exists()
        assert not (tmp_path / "evil.py").exists()

    def test_output_dir_is_root_path(self, tmp_path: Path, quiet_output) -> None:
        with pytest.raises(OutputError):
            write_artifacts([_artifact(".")], tmp_path)

    def test_output_is_a_file(self, tmp_path: Path, quiet_output) -> None:
        blocker = tmp_path / "sdk"
        blocker.write_text("not a directory")
        with pytest.raises(OutputError, match="Cannot write to"):
            write_artifacts([_artifact("a.py")], blocker)

    def test_empty(self, tmp_path: Path, quiet_output) -> None:
        assert write_artifacts([], tmp_path / "sdk") == []
        assert (tmp_path / "sdk").is_dir()
