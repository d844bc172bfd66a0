#!/usr/bin/env python3
"""
Tests for the command line interface and volume discovery
"""

import os
import signal
import tempfile

import pytest

from pathdedup.cli.main import format_size, main, parse_size
from pathdedup.core.config import ConfigurationError
from pathdedup.core.grouper import DuplicateGroup
from pathdedup.core.volumes import build_volume_table, discover_volumes, natural_sort_key
from tests.utils import make_volumes, write_file


def test_dry_run_prints_report_and_summary(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        disk1, disk2 = make_volumes(temp_dir, "disk1", "disk2")
        write_file(disk1.root, "movies/X.mkv", b"movie")
        write_file(disk2.root, "movies/X.mkv", b"movie")
        write_file(disk1.root, "movies/Y.mkv", b"other")

        code = main(["--volumes", disk1.root, disk2.root, "--dry-run", "--workers", "1", "-q"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Duplicate found: /movies/X.mkv (size=5) exists on disk1 and disk2" in out
        assert "Files checked: 2" in out
        assert "Duplicate groups found: 1" in out
        assert "Mode: DRY RUN (no files were deleted)" in out
        assert "Files deleted" not in out
        assert os.path.exists(disk2.path_for("movies/X.mkv"))


def test_deletion_mode_leaves_one_copy(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        disk1, disk2 = make_volumes(temp_dir, "disk1", "disk2")
        write_file(disk1.root, "a/b.txt", b"payload")
        write_file(disk2.root, "a/b.txt", b"payload")

        code = main(["--volumes", disk1.root, disk2.root, "--workers", "2"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Files deleted: 1" in out
        assert "Mode: DELETION" in out
        copies = [v for v in (disk1, disk2) if os.path.exists(v.path_for("a/b.txt"))]
        assert len(copies) == 1


def test_auto_detected_disks_use_first_as_reference(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        make_volumes(temp_dir, "disk10", "disk2", "disk1", "cache")
        write_file(os.path.join(temp_dir, "disk1"), "x.bin", b"x")
        write_file(os.path.join(temp_dir, "disk10"), "x.bin", b"x")

        code = main(["--mount-root", temp_dir, "--dry-run", "--workers", "1"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Found 3 disks:" in out
        assert "exists on disk1 and disk10" in out


def test_no_disks_is_fatal():
    with tempfile.TemporaryDirectory() as temp_dir:
        assert main(["--mount-root", temp_dir, "--dry-run"]) == 1


def test_single_disk_is_fatal():
    with tempfile.TemporaryDirectory() as temp_dir:
        make_volumes(temp_dir, "disk1")
        assert main(["--mount-root", temp_dir, "--dry-run"]) == 1


def test_missing_reference_volume_is_fatal():
    with tempfile.TemporaryDirectory() as temp_dir:
        (disk2,) = make_volumes(temp_dir, "disk2")
        missing = os.path.join(temp_dir, "disk1")
        assert main(["--volumes", missing, disk2.root, "--dry-run"]) == 1


def test_bad_options_are_fatal():
    with tempfile.TemporaryDirectory() as temp_dir:
        disk1, disk2 = make_volumes(temp_dir, "disk1", "disk2")
        assert main(["--volumes", disk1.root, disk2.root, "--sample-limit", "0"]) == 1


def test_test_mode_samples_reference_files(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        disk1, disk2 = make_volumes(temp_dir, "disk1", "disk2")
        for i in range(3):
            write_file(disk1.root, f"f{i}", b"x")

        code = main(["--volumes", disk1.root, disk2.root, "--test", "--sample-limit", "2", "--dry-run"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Files checked: 2" in out


def test_discover_volumes_sorts_naturally():
    with tempfile.TemporaryDirectory() as temp_dir:
        make_volumes(temp_dir, "disk10", "disk2", "disk1", "disks", "cache")
        write_file(temp_dir, "disk3", b"not a directory")

        names = [v.name for v in discover_volumes(temp_dir)]

        assert names == ["disk1", "disk2", "disk10"]


def test_discover_volumes_requires_matches():
    with tempfile.TemporaryDirectory() as temp_dir:
        with pytest.raises(ConfigurationError):
            discover_volumes(temp_dir)


def test_volume_table_rejects_name_clash_and_drops_repeats():
    with tempfile.TemporaryDirectory() as temp_dir:
        first = os.path.join(temp_dir, "a", "disk1")
        second = os.path.join(temp_dir, "b", "disk1")

        with pytest.raises(ConfigurationError):
            build_volume_table([first, second])

        table = build_volume_table([first, first + os.sep])
        assert [v.name for v in table] == ["disk1"]


def test_natural_sort_key():
    assert sorted(["disk10", "disk9", "disk1"], key=natural_sort_key) == ["disk1", "disk9", "disk10"]


def test_parse_and_format_size():
    assert parse_size("1MB") == 1024 ** 2
    assert parse_size("512 kb") == 512 * 1024
    assert parse_size("4096") == 4096
    assert format_size(5 * 1024 ** 2) == "5.0 MB"
    assert format_size(100) == "100.0 B"


def test_termination_signal_stops_cleanly_with_status_130(capsys, monkeypatch):
    describe = DuplicateGroup.describe

    def describe_then_signal(group):
        handler = signal.getsignal(signal.SIGTERM)
        handler(signal.SIGTERM, None)
        return describe(group)

    monkeypatch.setattr(DuplicateGroup, "describe", describe_then_signal)
    previous = signal.getsignal(signal.SIGTERM)

    with tempfile.TemporaryDirectory() as temp_dir:
        disk1, disk2 = make_volumes(temp_dir, "disk1", "disk2")
        for name in ("a.bin", "b.bin", "c.bin"):
            write_file(disk1.root, name, name.encode())
            write_file(disk2.root, name, name.encode())

        code = main(["--volumes", disk1.root, disk2.root, "--dry-run", "--workers", "1"])

    out = capsys.readouterr().out
    assert code == 130
    assert "Duplicate found: /a.bin" in out
    assert "Duplicate found: /b.bin" not in out
    assert "=== SUMMARY ===" in out
    assert "Files checked: 1" in out
    assert "Run was interrupted before all files were checked" in out
    assert "Fast path-aware scan completed!" not in out
    assert signal.getsignal(signal.SIGTERM) is previous
