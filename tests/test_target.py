"""Tests for mobkit.target -- the registry and the cargo helper."""

from __future__ import annotations

import pytest

from mobkit.env import Environment
from mobkit.exceptions import TargetInvalidError
from mobkit.models import NoiseLevel, Profile, ProjectConfig
from mobkit.target import OperationContext, Target, TargetRegistry

from conftest import CargoTarget, ScriptedRunner

A = CargoTarget("a", "a-unknown-none", "arch-a")
B = CargoTarget("b", "b-unknown-none", "arch-b")
C = CargoTarget("c", "c-unknown-none", "arch-c")


@pytest.fixture
def registry() -> TargetRegistry:
    return TargetRegistry([A, B, C], default="b")


class TestTargetRegistry:
    def test_order_and_default(self, registry: TargetRegistry) -> None:
        assert registry.names() == ["a", "b", "c"]
        assert list(registry) == [A, B, C]
        assert len(registry) == 3
        assert registry.default is B
        assert "a" in registry and "z" not in registry

    def test_duplicate_names_rejected(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            TargetRegistry([A, A], default="a")

    def test_unknown_default_rejected(self) -> None:
        with pytest.raises(ValueError, match="Default"):
            TargetRegistry([A], default="b")

    def test_resolve_preserves_order(self, registry: TargetRegistry) -> None:
        assert registry.resolve(["c", "a"]) == [C, A]

    def test_resolved_name_is_the_selector(self, registry: TargetRegistry) -> None:
        assert [t.name for t in registry.resolve(["b"])] == ["b"]

    def test_resolve_empty(self, registry: TargetRegistry) -> None:
        assert registry.resolve([]) == []

    def test_wildcard_expands_in_registry_order(self, registry: TargetRegistry) -> None:
        assert registry.resolve(["all"]) == [A, B, C]

    def test_duplicates_keep_first_position(self, registry: TargetRegistry) -> None:
        assert registry.resolve(["c", "all", "c"]) == [C, A, B]

    def test_unknown_selector_names_it(self, registry: TargetRegistry) -> None:
        with pytest.raises(TargetInvalidError) as exc_info:
            registry.resolve(["a", "mips", "zz"])
        assert exc_info.value.name == "mips"
        assert exc_info.value.possible == ["a", "b", "c"]

    def test_lookup_is_exact(self, registry: TargetRegistry) -> None:
        with pytest.raises(TargetInvalidError):
            registry.resolve(["A"])
        assert registry.get("A") is None

    def test_for_arch(self, registry: TargetRegistry) -> None:
        assert registry.for_arch("arch-c") is C
        assert registry.for_arch("arch") is None


class TestCargo:
    def _ctx(self, project: ProjectConfig, runner: ScriptedRunner, loud: bool = False) -> OperationContext:
        env = Environment(platform="Test", tools={"cargo": "/opt/bin/cargo"}, vars={"PATH": "/opt/bin"})
        noise = NoiseLevel.LOUD if loud else NoiseLevel.POLITE
        return OperationContext(env=env, runner=runner, project=project, noise_level=noise)

    def test_check_runs_in_project_root(
        self, project: ProjectConfig, scripted_runner: ScriptedRunner
    ) -> None:
        A.check(self._ctx(project, scripted_runner))
        call = scripted_runner.calls[0]
        assert call.command == ["/opt/bin/cargo", "check", "--lib", "--target", "a-unknown-none"]
        assert call.cwd == str(project.root)
        assert call.env == {"PATH": "/opt/bin"}

    def test_release_and_loud_flags(
        self, project: ProjectConfig, scripted_runner: ScriptedRunner
    ) -> None:
        A.cargo(self._ctx(project, scripted_runner, loud=True), "build", Profile.RELEASE)
        assert scripted_runner.commands[0][-2:] == ["-v", "--release"]

    def test_operations_are_abstract(self) -> None:
        with pytest.raises(TypeError):
            Target("a", "a-unknown-none", "arch-a")
