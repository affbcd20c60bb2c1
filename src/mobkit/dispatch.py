"""Multi-target dispatch with fail-fast, per-target failure attribution.

:func:`call_for_targets` is the single place where an operation fans out
over several targets:

1. All selectors are resolved before anything runs, so an invalid selector
   means no operation is attempted at all.
2. An empty selection falls back to a device-derived target when a
   fallback is supplied and finds one, otherwise to the registry default.
   It never means "all targets".
3. Targets run one after another in selection order. The first failure
   stops the dispatch; later targets are not attempted and artifacts
   already produced by earlier targets are left in place.
4. Any failure is attributed to its target: errors that are not already an
   :class:`~mobkit.exceptions.OperationError` are wrapped in the
   operation's error type, chained to the original.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from mobkit.exceptions import MobkitError, OperationError
from mobkit.target import Target, TargetRegistry

logger = logging.getLogger(__name__)

Operation = Callable[[Target], None]
Fallback = Callable[[], Optional[Target]]


def resolve_targets(
    registry: TargetRegistry,
    selectors: Sequence[str],
    fallback: Optional[Fallback] = None,
) -> list[Target]:
    """Resolve *selectors*, applying the fallback rules for an empty selection.

    Raises:
        TargetInvalidError: For the first unknown selector.
    """
    targets = registry.resolve(selectors)
    if targets:
        return targets
    if fallback is not None:
        derived = fallback()
        if derived is not None:
            logger.info("Using target %s of the connected device", derived.name)
            return [derived]
    logger.info("Falling back on default target (%s)", registry.default.name)
    return [registry.default]


def call_for_target(
    target: Target,
    operation: Operation,
    *,
    error: type[OperationError],
    device: Optional[str] = None,
) -> None:
    """Run *operation* for one target, attributing any failure to it.

    Raises:
        OperationError: The operation's own error, or *error* wrapping a
            toolchain, configuration or I/O failure.
    """
    try:
        operation(target)
    except OperationError:
        raise
    except (MobkitError, OSError) as exc:
        raise error(target.name, exc, device=device) from exc


def call_for_targets(
    registry: TargetRegistry,
    selectors: Sequence[str],
    operation: Operation,
    *,
    error: type[OperationError],
    fallback: Optional[Fallback] = None,
) -> list[Target]:
    """Run *operation* for every selected target, stopping at the first failure.

    Args:
        registry: The platform's target registry.
        selectors: Target names as given on the command line.
        operation: Called once per target, in order.
        error: Wrapper type for failures that do not name their target.
        fallback: Supplies a device-derived target for an empty selection.

    Returns:
        The targets whose operation completed, in order.

    Raises:
        TargetInvalidError: If a selector is unknown (nothing has run).
        OperationError: The first target failure, attributed to its target.
    """
    targets = resolve_targets(registry, selectors, fallback)
    completed: list[Target] = []
    for target in targets:
        logger.debug("Dispatching to target %s", target.name)
        call_for_target(target, operation, error=error)
        completed.append(target)
    return completed
