"""Tests for locating FFmpeg headers and libraries."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from ffsys.build.build_context import BuildConfiguration
from ffsys.build.driver import Installation
from ffsys.discovery import (
    discover_pkg_config,
    discover_prebuilt,
    discover_vcpkg,
    from_installation,
    pkg_config_packages,
    prebuilt_lib_dir,
    query_pkg_config,
    vcpkg_triplet,
)
from ffsys.errors import DiscoveryError


def test_from_installation(tmp_path):
    installation = Installation(
        prefix=tmp_path,
        include_dir=tmp_path / "include",
        lib_dir=tmp_path / "lib",
        source_dir=tmp_path / "src",
        built=True,
    )
    location = from_installation(installation)
    assert location.source == "build"
    assert location.include_paths == (tmp_path / "include",)
    assert location.lib_dirs == (tmp_path / "lib",)
    assert location.installation is installation


class TestPrebuilt:
    def test_arch_specific_lib_dir(self, tmp_path):
        (tmp_path / "lib" / "arm64").mkdir(parents=True)
        assert prebuilt_lib_dir(tmp_path, "aarch64") == tmp_path / "lib" / "arm64"

    def test_plain_lib_dir(self, tmp_path):
        assert prebuilt_lib_dir(tmp_path, "x86_64") == tmp_path / "lib"
        assert prebuilt_lib_dir(tmp_path, "riscv64") == tmp_path / "lib"

    def test_discover(self, make_env, tmp_path):
        root = tmp_path / "ffmpeg"
        (root / "lib" / "amd64").mkdir(parents=True)
        location = discover_prebuilt(make_env(prebuilt_dir=root))

        assert location.source == "prebuilt"
        assert location.include_paths == (root / "include",)
        assert location.lib_dirs == (root / "lib" / "amd64",)

    def test_missing_root(self, make_env, tmp_path):
        with pytest.raises(DiscoveryError, match="does not exist"):
            discover_prebuilt(make_env(prebuilt_dir=tmp_path / "nope"))

    def test_unset(self, make_env):
        with pytest.raises(DiscoveryError, match="FFMPEG_DIR is not set"):
            discover_prebuilt(make_env())


MSVC = "x86_64-pc-windows-msvc"


@pytest.fixture
def msvc_env(make_env):
    def factory(**overrides):
        return make_env(target=MSVC, target_os="windows", target_env="msvc", **overrides)

    return factory


def install_vcpkg_ffmpeg(root, triplet):
    installed = root / "installed" / triplet
    (installed / "include" / "libavutil").mkdir(parents=True)
    (installed / "include" / "libavutil" / "avutil.h").write_text("")
    return installed


class TestVcpkg:
    def test_triplet(self, msvc_env):
        assert vcpkg_triplet(msvc_env()) == "x64-windows"
        assert vcpkg_triplet(msvc_env(features={"static"})) == "x64-windows-static-md"
        assert vcpkg_triplet(msvc_env(target_arch="aarch64")) == "arm64-windows"
        assert vcpkg_triplet(msvc_env(vcpkg_triplet="x64-windows-static")) == "x64-windows-static"
        assert vcpkg_triplet(msvc_env(target_arch="riscv64")) is None

    def test_discover(self, msvc_env, tmp_path):
        installed = install_vcpkg_ffmpeg(tmp_path / "vcpkg", "x64-windows")

        location = discover_vcpkg(msvc_env(vcpkg_root=tmp_path / "vcpkg"))

        assert location.source == "vcpkg"
        assert location.include_paths == (installed / "include",)
        assert location.lib_dirs == (installed / "lib",)

    def test_only_for_msvc_targets(self, make_env, tmp_path):
        install_vcpkg_ffmpeg(tmp_path / "vcpkg", "x64-windows")
        assert discover_vcpkg(make_env(vcpkg_root=tmp_path / "vcpkg")) is None

    def test_not_configured(self, msvc_env, console):
        assert discover_vcpkg(msvc_env()) is None
        assert "VCPKG_ROOT is not set" in console.getvalue()

    def test_wrong_triplet_installed(self, msvc_env, tmp_path, console):
        install_vcpkg_ffmpeg(tmp_path / "vcpkg", "x64-windows")
        assert discover_vcpkg(msvc_env(vcpkg_root=tmp_path / "vcpkg", features={"static"})) is None
        assert "Could not find ffmpeg with vcpkg" in console.getvalue()


class TestPkgConfig:
    def test_packages(self, make_env):
        config = BuildConfiguration.from_environment(make_env(features={"avformat", "avcodec", "swscale"}))
        assert pkg_config_packages(config) == ["libavutil", "libavformat", "libswscale", "libavcodec"]

    @patch("ffsys.discovery.safe_run")
    def test_query(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="-I/usr/include/ffmpeg -L/usr/lib -lavutil\n", stderr="")

        assert query_pkg_config("libavutil", static=True) == ["-I/usr/include/ffmpeg", "-L/usr/lib", "-lavutil"]
        assert mock_run.call_args[0][0] == ["pkg-config", "--static", "--cflags-only-I", "--libs", "libavutil"]

    @patch("ffsys.discovery.safe_run")
    def test_unknown_package(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="Package libavcodec was not found")
        with pytest.raises(DiscoveryError, match="could not find libavcodec"):
            query_pkg_config("libavcodec", static=False)

    @patch("ffsys.discovery.safe_run", side_effect=FileNotFoundError("pkg-config"))
    def test_pkg_config_missing(self, mock_run):
        with pytest.raises(DiscoveryError, match="could not be started"):
            query_pkg_config("libavutil", static=False)

    @patch("ffsys.discovery.query_pkg_config")
    def test_discover_merges_packages(self, mock_query, make_env):
        mock_query.side_effect = lambda package, static: {
            "libavutil": ["-I/usr/include/ffmpeg", "-L/usr/lib", "-lavutil"],
            "libavcodec": ["-I/usr/include/ffmpeg", "-L/usr/lib", "-lavcodec", "-lavutil", "-lm"],
        }[package]
        env = make_env()
        config = BuildConfiguration.from_environment(env)

        location = discover_pkg_config(env, config)

        assert location.source == "pkg-config"
        assert location.include_paths == (Path("/usr/include/ffmpeg"),)
        assert location.lib_dirs == (Path("/usr/lib"),)
        assert location.libraries == ("avutil", "avcodec", "m")
        assert location.installation is None
