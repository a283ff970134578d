"""Tests for the FFmpeg configure argument list."""

from pathlib import Path
from unittest.mock import patch

import pytest

from ffsys.build.build_context import BuildConfiguration
from ffsys.build.configure import (
    NATIVE_TUNING_FLAG,
    QUIET_FLAG,
    ConfigureCommandBuilder,
    build_configure_flags,
    switch,
)
from ffsys.errors import PlatformResolutionError
from ffsys.platform.resolver import ResolvedPlatform, SysrootSpec, describe_platform, resolve_platform
from ffsys.platform.toolchain import Compiler

ANDROID = "x86_64-linux-android"


def builder_for(env, platform=None, supported=False):
    platform = platform or resolve_platform(env)
    config = BuildConfiguration.from_environment(env)
    return ConfigureCommandBuilder(env, platform, config, flag_checker=lambda compiler, flag: supported)


def test_switch():
    assert switch(True, "gpl") == "--enable-gpl"
    assert switch(False, "avdevice") == "--disable-avdevice"


def test_native_release_flags(make_env):
    env = make_env(features={"build"})

    assert builder_for(env).flags() == [
        f"--prefix={env.install_prefix}",
        NATIVE_TUNING_FLAG,
        "--disable-debug",
        "--enable-stripping",
        "--extra-cflags=-O3 -ffast-math -funroll-loops",
        "--extra-ldflags=-flto",
        "--enable-static",
        "--disable-shared",
        "--enable-pthreads",
        "--enable-pic",
        "--disable-autodetect",
        "--disable-programs",
        "--disable-doc",
        "--disable-gpl",
        "--disable-version3",
        "--disable-nonfree",
        "--disable-avcodec",
        "--disable-avdevice",
        "--disable-avfilter",
        "--disable-avformat",
        "--disable-swresample",
        "--disable-swscale",
        QUIET_FLAG,
    ]


def test_feature_selection(make_env):
    env = make_env(features={"build", "avcodec", "build_license_gpl", "build_lib_x264", "build_lib_openssl"})
    flags = builder_for(env).flags()

    assert "--enable-gpl" in flags
    assert "--enable-avcodec" in flags
    assert "--disable-avformat" in flags
    assert flags.index("--enable-openssl") < flags.index("--enable-libx264")
    assert flags[-1] == QUIET_FLAG


def test_debug_profile(make_env):
    flags = builder_for(make_env(features={"build"}, debug=True)).flags()
    assert "--enable-debug" in flags
    assert "--disable-stripping" in flags
    assert "--extra-ldflags=-flto" not in flags


class TestCrossFlags:
    @pytest.fixture
    def arm_env(self, make_env):
        return make_env(
            target="aarch64-unknown-linux-gnu",
            target_arch="aarch64",
            features={"build"},
            target_cc="/usr/bin/aarch64-linux-gnu-gcc",
        )

    def test_cross_compile_switches(self, arm_env):
        flags = builder_for(arm_env, supported=True).flags()

        assert NATIVE_TUNING_FLAG not in flags
        start = flags.index("--enable-cross-compile")
        assert flags[start : start + 6] == [
            "--enable-cross-compile",
            "--extra-cflags=--target=aarch64-unknown-linux-gnu",
            "--extra-ldflags=--target=aarch64-unknown-linux-gnu",
            "--arch=aarch64",
            "--target-os=linux",
            "--cross-prefix=aarch64-linux-gnu-",
        ]

    def test_target_flag_only_when_supported(self, arm_env):
        flags = builder_for(arm_env, supported=False).flags()
        assert "--extra-cflags=--target=aarch64-unknown-linux-gnu" not in flags
        assert "--arch=aarch64" in flags


class TestIos:
    @pytest.fixture
    def ios_env(self, make_env):
        return make_env(
            target="aarch64-apple-ios",
            target_os="ios",
            target_arch="aarch64",
            target_env="",
            features={"build", "build_audiotoolbox", "build_videotoolbox"},
            sysroot_override="/sdk/iPhoneOS.sdk",
        )

    def test_ios_flags(self, ios_env):
        with patch("ffsys.build.configure.xcrun_find_tool", return_value="/Xcode/usr/bin/clang"):
            flags = builder_for(ios_env).flags()

        assert "--target-os=darwin" in flags
        assert "--sysroot=/sdk/iPhoneOS.sdk" in flags
        assert "--cc=/Xcode/usr/bin/clang" in flags
        assert "--enable-audiotoolbox" in flags
        assert "--enable-videotoolbox" in flags
        assert flags.count("--extra-cflags=-mios-version-min=11.0") == 2

    def test_ios_requires_sysroot(self, ios_env):
        platform = ResolvedPlatform(platform=describe_platform(ios_env))
        with pytest.raises(PlatformResolutionError, match="sysroot is required for ios"):
            builder_for(ios_env, platform).flags()


class TestAndroid:
    @pytest.fixture
    def ndk(self, tmp_path):
        bin_dir = tmp_path / "ndk" / "bin"
        bin_dir.mkdir(parents=True)
        for name in ("x86_64-linux-android21-clang", "llvm-nm", "llvm-strip"):
            (bin_dir / name).touch()
        return bin_dir

    def android_env(self, make_env, **overrides):
        values = dict(
            target=ANDROID,
            target_os="android",
            target_arch="x86_64",
            target_env="android",
            features={"build"},
        )
        values.update(overrides)
        return make_env(**values)

    def test_android_flags(self, make_env, ndk):
        cc = str(ndk / "x86_64-linux-android21-clang")
        env = self.android_env(make_env, target_cc=cc, target_cflags="--sysroot=/ndk/sysroot")
        platform = ResolvedPlatform(platform=describe_platform(env), target_compiler=Compiler(cc))

        flags = builder_for(env, platform).flags()

        assert "--target-os=android" in flags
        assert not any(flag.startswith("--cross-prefix") for flag in flags)
        start = flags.index(f"--cc={cc}")
        assert flags[start : start + 7] == [
            f"--cc={cc}",
            f"--nm={(ndk / 'llvm-nm').resolve()}",
            f"--strip={(ndk / 'llvm-strip').resolve()}",
            "--extra-cflags=--sysroot=/ndk/sysroot",
            "--extra-ldflags=--sysroot=/ndk/sysroot",
            "--disable-asm",
            "--extra-cflags=-fPIC",
        ]

    def test_arm_keeps_asm(self, make_env, ndk):
        cc = str(ndk / "x86_64-linux-android21-clang")
        env = self.android_env(make_env, target="aarch64-linux-android", target_arch="aarch64", target_cc=cc)
        platform = ResolvedPlatform(platform=describe_platform(env))
        assert "--disable-asm" not in builder_for(env, platform).flags()

    def test_missing_compiler(self, make_env):
        env = self.android_env(make_env)
        platform = ResolvedPlatform(platform=describe_platform(env))
        with pytest.raises(PlatformResolutionError, match=f"Missing CC_{ANDROID}"):
            builder_for(env, platform).flags()

    def test_compiler_must_exist(self, make_env, tmp_path):
        env = self.android_env(make_env, target_cc=str(tmp_path / "missing-clang"))
        platform = ResolvedPlatform(platform=describe_platform(env))
        with pytest.raises(PlatformResolutionError, match="Android CC path does not exist"):
            builder_for(env, platform).flags()


class TestHardware:
    def test_cuda_path(self, make_env):
        env = make_env(features={"build", "build_nvidia"}, cuda_path="/opt/cuda")
        flags = builder_for(env).flags()

        assert "--enable-cuda-nvcc" in flags
        assert "--enable-libnpp" in flags
        assert flags.index("--cuda-path=/opt/cuda") > flags.index("--enable-cuda-llvm")

    def test_unsupported_backend_dropped(self, make_env):
        flags = builder_for(make_env(features={"build", "build_videotoolbox", "build_mediacodec"})).flags()
        assert "--enable-videotoolbox" not in flags
        assert "--enable-mediacodec" not in flags


class TestCommand:
    def test_unix_host(self, make_env, tmp_path):
        env = make_env(features={"build"})
        argv = builder_for(env).command(tmp_path / "ffmpeg-8.0")
        assert argv[0] == str(tmp_path / "ffmpeg-8.0" / "configure")
        assert argv[1] == f"--prefix={env.install_prefix}"

    def test_windows_msvc_host(self, make_env):
        env = make_env(
            host="x86_64-pc-windows-msvc",
            target="x86_64-pc-windows-msvc",
            target_os="windows",
            target_env="msvc",
            host_os="windows",
            features={"build"},
        )
        builder = builder_for(env)
        argv = builder.command(Path("src"))

        assert argv[:3] == ["sh", str(Path("src") / "configure"), "--toolchain=msvc"]
        assert "--enable-pthreads" not in argv
        assert "--extra-ldflags=-flto" not in argv


def test_build_configure_flags(make_env):
    env = make_env(features={"build", "avformat"})
    flags = build_configure_flags(env, resolve_platform(env))
    assert "--enable-avformat" in flags
