"""Tests for platform, sysroot and cross prefix resolution."""

from pathlib import Path
from unittest.mock import patch

import pytest

from ffsys.config import BuildEnvironment
from ffsys.errors import PlatformResolutionError
from ffsys.platform.resolver import SysrootSpec, describe_platform, find_sysroot, resolve_platform

ANDROID = "aarch64-linux-android"
IOS = "aarch64-apple-ios"
ARM_LINUX = "aarch64-unknown-linux-gnu"


@pytest.fixture
def android_env(make_env):
    def factory(**overrides):
        values = dict(
            target=ANDROID,
            target_os="android",
            target_arch="aarch64",
            target_env="android",
            features={"build"},
            target_cc="/ndk/bin/aarch64-linux-android21-clang",
        )
        values.update(overrides)
        return make_env(**values)

    return factory


class TestDescribePlatform:
    def test_native(self, make_env):
        platform = describe_platform(make_env())
        assert not platform.is_cross
        assert platform.os == "linux"
        assert platform.host_os == "linux"
        assert not platform.is_apple
        assert not platform.is_msvc

    def test_cross_apple(self, make_env):
        platform = describe_platform(make_env(target=IOS, target_os="ios", target_arch="aarch64", target_env=""))
        assert platform.is_cross
        assert platform.is_apple

    def test_msvc(self, make_env):
        platform = describe_platform(
            make_env(target="x86_64-pc-windows-msvc", target_os="windows", target_env="msvc")
        )
        assert platform.is_msvc


class TestNativeResolution:
    def test_no_sysroot_no_prefix(self, make_env):
        resolved = resolve_platform(make_env(features={"build"}))
        assert not resolved.is_cross
        assert resolved.sysroot is None
        assert resolved.target_compiler is None
        assert resolved.cross_prefix is None

    def test_native_never_needs_sysroot(self, make_env):
        env = make_env(features={"build"}, sysroot_override="/opt/sysroot")
        assert find_sysroot(env, describe_platform(env)) is None


class TestSysroot:
    def test_override_used_verbatim(self, make_env):
        env = make_env(target=IOS, target_os="ios", target_arch="aarch64", features={"build"}, sysroot_override="/sdk")
        with patch("ffsys.platform.resolver.xcrun_sdk_path") as mock_xcrun:
            sysroot = find_sysroot(env, describe_platform(env))
        assert sysroot == SysrootSpec(path=Path("/sdk"), source="override")
        mock_xcrun.assert_not_called()

    def test_not_needed_without_source_build(self, android_env):
        env = android_env(features=set())
        assert find_sysroot(env, describe_platform(env)) is None

    def test_ios_uses_xcrun(self, make_env, tmp_path):
        env = make_env(target=IOS, target_os="ios", target_arch="aarch64", features={"build"})
        with patch("ffsys.platform.resolver.xcrun_sdk_path", return_value=tmp_path) as mock_xcrun:
            sysroot = find_sysroot(env, describe_platform(env))
        mock_xcrun.assert_called_once_with("iphoneos")
        assert sysroot == SysrootSpec(path=tmp_path, source="xcrun")

    def test_ios_without_xcode_fails(self, make_env):
        env = make_env(target=IOS, target_os="ios", target_arch="aarch64", features={"build"})
        error = PlatformResolutionError("Failed to run xcrun to get the iphoneos sysroot")
        with patch("ffsys.platform.resolver.xcrun_sdk_path", side_effect=error):
            with pytest.raises(PlatformResolutionError, match="xcrun"):
                resolve_platform(env)

    def test_android_requires_ndk_sysroot(self, android_env):
        with pytest.raises(PlatformResolutionError, match="Missing android sysroot path"):
            resolve_platform(android_env())

    def test_android_missing_sysroot_names_cargo_ndk_variable(self, android_env):
        with pytest.raises(PlatformResolutionError, match="CARGO_NDK_SYSROOT_PATH"):
            resolve_platform(android_env())

    def test_android_from_cargo_ndk_environment(self, tmp_path):
        sysroot = tmp_path / "sysroot"
        sysroot.mkdir()
        clang = tmp_path / "aarch64-linux-android21-clang"
        clang.write_text("")
        env = BuildEnvironment.from_environ(
            {
                "FFSYS_HOST": "x86_64-unknown-linux-gnu",
                "FFSYS_TARGET": ANDROID,
                "FFSYS_FEATURES": "build",
                "FFSYS_OUT_DIR": str(tmp_path / "out"),
                f"CC_{ANDROID}": str(clang),
                "CARGO_NDK_SYSROOT_PATH": str(sysroot),
            }
        )

        resolved = resolve_platform(env)

        assert resolved.sysroot == SysrootSpec(path=sysroot, source="ndk")
        assert resolved.target_compiler.path == str(clang)
        assert resolved.cross_prefix is None

    def test_android_sysroot_must_exist(self, android_env, tmp_path):
        missing = tmp_path / "ndk" / "sysroot"
        with pytest.raises(PlatformResolutionError, match="does not exist") as exc_info:
            resolve_platform(android_env(ndk_sysroot=str(missing)))
        assert str(missing) in str(exc_info.value)

    def test_android_sysroot(self, android_env, tmp_path):
        resolved = resolve_platform(android_env(ndk_sysroot=str(tmp_path)))
        assert resolved.sysroot == SysrootSpec(path=tmp_path, source="ndk")
        assert resolved.target_compiler.path == "/ndk/bin/aarch64-linux-android21-clang"
        assert resolved.cross_prefix is None

    def test_other_targets_warn(self, make_env, console):
        env = make_env(target=ARM_LINUX, target_arch="aarch64", features={"build"})
        with patch("ffsys.platform.toolchain.shutil.which", return_value=None):
            resolved = resolve_platform(env)
        assert resolved.sysroot is None
        assert "Detected cross compilation but sysroot not provided" in console.getvalue()

    def test_no_warning_without_source_build(self, make_env, console):
        env = make_env(target=ARM_LINUX, target_arch="aarch64")
        with patch("ffsys.platform.toolchain.shutil.which", return_value=None):
            resolve_platform(env)
        assert "WARNING" not in console.getvalue()


class TestCrossPrefix:
    def test_prefix_from_gnu_cross_compiler(self, make_env):
        env = make_env(target=ARM_LINUX, target_arch="aarch64", features={"build"})
        with patch("ffsys.platform.toolchain.shutil.which", return_value="/usr/bin/aarch64-linux-gnu-gcc"):
            resolved = resolve_platform(env)
        assert resolved.target_compiler.path == "/usr/bin/aarch64-linux-gnu-gcc"
        assert resolved.cross_prefix == "aarch64-linux-gnu-"

    def test_prefix_from_explicit_compiler(self, make_env):
        env = make_env(target=ARM_LINUX, target_arch="aarch64", target_cc="/opt/wrs/aarch64-wrs-linux-wr-gcc")
        assert resolve_platform(env).cross_prefix == "aarch64-wrs-linux-"

    def test_no_prefix_for_plain_cc(self, make_env):
        env = make_env(target=IOS, target_os="ios", target_arch="aarch64", target_env="", sysroot_override="/sdk")
        resolved = resolve_platform(env)
        assert resolved.target_compiler.path == "cc"
        assert resolved.cross_prefix is None
