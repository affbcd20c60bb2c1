"""Build targets and the per-platform target registry.

A :class:`Target` is one buildable unit: a Rust target triple plus the
architecture it produces code for. Platform plugins subclass it to add
their toolchain specifics and implement the per-target operations
(``check``, ``build``, ``compile_lib``).

Each plugin owns one immutable :class:`TargetRegistry`, built at import
time. Lookups are exact: selectors are never case-folded or fuzzily
matched, and :meth:`TargetRegistry.resolve` rejects the first unknown
selector instead of skipping it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Optional, Sequence

from mobkit.env import Environment
from mobkit.exceptions import TargetInvalidError
from mobkit.models import NoiseLevel, Profile, ProjectConfig
from mobkit.runner import CommandResult, CommandRunner

logger = logging.getLogger(__name__)

WILDCARD = "all"
"""Selector that expands to every registered target, in registry order."""


@dataclass(frozen=True)
class OperationContext:
    """Everything a target operation may use, passed explicitly.

    Attributes:
        env: The validated environment (shared, read-only).
        runner: Runner for toolchain commands.
        project: The loaded project configuration.
        noise_level: Toolchain verbosity.
    """

    env: Environment
    runner: CommandRunner
    project: ProjectConfig
    noise_level: NoiseLevel = NoiseLevel.POLITE


@dataclass(frozen=True)
class Target(ABC):
    """A registry-resolved buildable unit.

    Platform subclasses implement the three operations.

    Attributes:
        name: Stable identifier used on the command line.
        triple: Rust target triple passed to ``cargo --target``.
        arch: Architecture name as the platform's tools spell it.
    """

    name: str
    triple: str
    arch: str

    def __str__(self) -> str:
        return self.name

    # -- operations -------------------------------------------------------

    @abstractmethod
    def check(self, ctx: OperationContext) -> None:
        """Statically validate the project for this target (no artifact)."""
        ...

    @abstractmethod
    def build(self, ctx: OperationContext, profile: Profile) -> None:
        """Produce an installable artifact for this target."""
        ...

    @abstractmethod
    def compile_lib(self, ctx: OperationContext, profile: Profile) -> None:
        """Build only the Rust library for this target."""
        ...

    # -- helpers ----------------------------------------------------------

    def cargo_env(self, ctx: OperationContext) -> Mapping[str, str]:
        """Extra environment variables ``cargo`` needs for this target."""
        return {}

    def cargo(
        self,
        ctx: OperationContext,
        subcommand: str,
        profile: Optional[Profile] = None,
    ) -> CommandResult:
        """Run ``cargo <subcommand>`` for this target in the project root."""
        command = [
            ctx.env.tool("cargo"),
            subcommand,
            "--lib",
            "--target",
            self.triple,
            *ctx.noise_level.cargo_args,
        ]
        if profile is not None:
            command.extend(profile.cargo_args)
        return ctx.runner.run(
            command,
            cwd=ctx.project.root,
            env=ctx.env.child_env(self.cargo_env(ctx)),
            stream=ctx.noise_level.is_loud,
        )


class TargetRegistry:
    """Immutable, ordered set of targets for one platform.

    Args:
        targets: Targets in display/dispatch order. Names must be unique.
        default: Name of the target used when nothing else selects one.

    Raises:
        ValueError: On duplicate names or an unknown default.
    """

    def __init__(self, targets: Iterable[Target], default: str) -> None:
        registry: dict[str, Target] = {}
        for target in targets:
            if target.name in registry:
                raise ValueError(f"Duplicate target name {target.name!r}")
            registry[target.name] = target
        if default not in registry:
            raise ValueError(f"Default target {default!r} is not registered")
        self._targets = registry
        self._default = default

    def __iter__(self) -> Iterator[Target]:
        return iter(self._targets.values())

    def __len__(self) -> int:
        return len(self._targets)

    def __contains__(self, name: object) -> bool:
        return name in self._targets

    @property
    def default(self) -> Target:
        return self._targets[self._default]

    def names(self) -> list[str]:
        return list(self._targets)

    def get(self, name: str) -> Optional[Target]:
        return self._targets.get(name)

    def for_arch(self, arch: str) -> Optional[Target]:
        """Return the first target whose ``arch`` equals *arch* exactly."""
        for target in self._targets.values():
            if target.arch == arch:
                return target
        return None

    def resolve(self, selectors: Sequence[str]) -> list[Target]:
        """Resolve *selectors* into targets, preserving order.

        ``all`` expands to every registered target. A target selected more
        than once is kept at its first position. An empty sequence yields an
        empty list; choosing a fallback is the dispatcher's job.

        Raises:
            TargetInvalidError: For the first selector that is not
                registered, before anything else is resolved further.
        """
        resolved: list[Target] = []
        for selector in selectors:
            if selector == WILDCARD:
                candidates = list(self._targets.values())
            else:
                target = self._targets.get(selector)
                if target is None:
                    raise TargetInvalidError(selector, self.names())
                candidates = [target]
            for target in candidates:
                if target not in resolved:
                    resolved.append(target)
        return resolved
