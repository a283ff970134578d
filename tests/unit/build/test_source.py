"""Tests for FFmpeg source acquisition."""

from unittest.mock import patch

import pytest

from ffsys.build.source import acquire_source, clone_command, release_branch
from ffsys.errors import AcquisitionError


def test_release_branch():
    assert release_branch("7.1") == "release/7.1"


def test_clone_command(make_env):
    env = make_env(ffmpeg_version=(7, 1), source_url="https://example.org/ffmpeg.git")
    assert clone_command(env) == [
        "git",
        "clone",
        "--depth=1",
        "-b",
        "release/7.1",
        "https://example.org/ffmpeg.git",
        "ffmpeg-7.1",
    ]


def test_clone_command_windows_host(make_env):
    env = make_env(host_os="windows")
    assert clone_command(env)[:3] == ["git", "-c", "core.autocrlf=false"]


@patch("ffsys.build.source.run_checked")
def test_acquire_replaces_previous_checkout(mock_run, make_env):
    env = make_env()
    env.source_dir.mkdir(parents=True)
    (env.source_dir / "half-cloned").touch()

    assert acquire_source(env) == env.source_dir

    assert not env.source_dir.exists()
    cmd, error_cls, _what = mock_run.call_args[0]
    assert cmd == clone_command(env)
    assert error_cls is AcquisitionError
    assert mock_run.call_args[1]["cwd"] == env.out_dir


@patch("ffsys.build.source.run_checked")
def test_acquire_creates_out_dir(mock_run, make_env):
    env = make_env()
    acquire_source(env)
    assert env.out_dir.is_dir()


@patch("ffsys.build.source.run_checked")
def test_clone_failure_propagates(mock_run, make_env):
    mock_run.side_effect = AcquisitionError("FFmpeg source checkout", ["git", "clone"], returncode=128)
    with pytest.raises(AcquisitionError, match="exit code 128"):
        acquire_source(make_env())
