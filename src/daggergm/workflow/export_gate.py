"""Export gate: an adventure may be exported only when every scene is confirmed."""

from __future__ import annotations

from typing import Any

from daggergm.core.exceptions import InvalidStateTransitionError
from daggergm.models.adventure import Adventure
from daggergm.models.enums import SceneState
from daggergm.models.results import ExportCheck


def can_export(adventure: Adventure) -> ExportCheck:
    """Check whether an adventure is ready for export.

    Returns:
        ``allowed`` is True iff the adventure has scenes and all of them
        are confirmed; otherwise ``blocking_scenes`` lists the ids of the
        unconfirmed scenes in scene order.
    """
    blocking = [scene.id for scene in adventure.scenes if scene.state != SceneState.CONFIRMED]
    allowed = bool(adventure.scenes) and not blocking
    return ExportCheck(allowed=allowed, blocking_scenes=blocking)


def export_tree(adventure: Adventure) -> dict[str, Any]:
    """Full adventure tree handed to the rendering layer.

    Raises:
        InvalidStateTransitionError: If some scene is not confirmed.
    """
    check = can_export(adventure)
    if not check.allowed:
        raise InvalidStateTransitionError(
            "Adventure cannot be exported until every scene is confirmed",
            expected_states=[str(SceneState.CONFIRMED)],
            details={"blocking_scenes": check.blocking_scenes},
        )
    return adventure.model_dump(
        mode="json",
        exclude={"scaffold_regens_used", "expansion_regens_used", "version"},
    )


__all__ = [
    "can_export",
    "export_tree",
]
