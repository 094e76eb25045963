"""
test_recipes — recipe registry and tool argument lists.

Pure-Python: no filesystem, no subprocess.
"""
import pytest

from cross_shadow.policy.recipes import (
    RECIPES,
    BuildProfile,
    TargetRequiredError,
    UnexpectedTargetError,
    UnknownRecipeError,
    build_argv,
    get_recipe,
    iter_recipes,
)


class TestRegistry:

    def test_exactly_four_recipes(self):
        assert [r.name for r in iter_recipes()] == [
            "cross",
            "cross-release",
            "cross-target",
            "cross-release-target",
        ]
        assert len(RECIPES) == 4

    def test_profiles_and_target_flags(self):
        assert get_recipe("cross").profile == BuildProfile.DEFAULT
        assert get_recipe("cross-release").profile == BuildProfile.RELEASE
        assert get_recipe("cross-target").takes_target is True
        assert get_recipe("cross-release-target").takes_target is True
        assert get_recipe("cross").takes_target is False

    def test_unknown_recipe(self):
        with pytest.raises(UnknownRecipeError, match="cross-debug"):
            get_recipe("cross-debug")

    def test_output_dir_names(self):
        assert BuildProfile.DEFAULT.output_dir_name == "debug"
        assert BuildProfile.RELEASE.output_dir_name == "release"


class TestBuildArgv:

    def test_default(self):
        assert build_argv(get_recipe("cross")) == ["cross", "build"]

    def test_release(self):
        assert build_argv(get_recipe("cross-release")) == ["cross", "build", "--release"]

    def test_target(self):
        argv = build_argv(get_recipe("cross-target"), "aarch64-unknown-linux-gnu")
        assert argv == ["cross", "build", "--target", "aarch64-unknown-linux-gnu"]

    def test_release_target_flag_order(self):
        argv = build_argv(get_recipe("cross-release-target"), "armv7-unknown-linux-gnueabihf")
        assert argv == [
            "cross", "build", "--release", "--target", "armv7-unknown-linux-gnueabihf",
        ]

    def test_custom_tool(self):
        argv = build_argv(get_recipe("cross"), tool="/opt/bin/cross")
        assert argv[0] == "/opt/bin/cross"

    @pytest.mark.parametrize("target", [
        "  spaced target  ",
        "weird;$(rm -rf ~)`x`",
        "'quoted\"",
        "custom/targets/my-board.json",
    ])
    def test_target_passed_verbatim(self, target):
        argv = build_argv(get_recipe("cross-target"), target)
        assert argv[-1] == target
        assert argv.count(target) == 1

    @pytest.mark.parametrize("name", ["cross-target", "cross-release-target"])
    def test_target_required(self, name):
        with pytest.raises(TargetRequiredError):
            build_argv(get_recipe(name))
        with pytest.raises(TargetRequiredError):
            build_argv(get_recipe(name), "")

    @pytest.mark.parametrize("name", ["cross", "cross-release"])
    def test_unexpected_target(self, name):
        with pytest.raises(UnexpectedTargetError):
            build_argv(get_recipe(name), "aarch64-unknown-linux-gnu")
