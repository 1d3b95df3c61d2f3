"""Regeneration budget, confirmation state machine and export gate.

The caller-facing ``AdventureActions`` lives in ``daggergm.workflow.actions``.
"""

from daggergm.workflow.budget import RegenerationBudget
from daggergm.workflow.confirmation import (
    apply_expansion,
    clear_expansion,
    confirm,
    edit_expansion,
    require_expansion,
    require_unconfirmed,
    scene_state,
    unconfirm,
)
from daggergm.workflow.export_gate import can_export, export_tree

__all__ = [
    "RegenerationBudget",
    "scene_state",
    "require_unconfirmed",
    "require_expansion",
    "apply_expansion",
    "confirm",
    "unconfirm",
    "edit_expansion",
    "clear_expansion",
    "can_export",
    "export_tree",
]
