"""Tests for the scene confirmation state machine."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from daggergm.core.exceptions import InvalidStateTransitionError, NotExpandedError
from daggergm.models import ExpansionEdit, Scene, SceneExpansion, SceneState, SceneType
from daggergm.models.adventure import SceneEnvironment
from daggergm.workflow.confirmation import (
    apply_expansion,
    clear_expansion,
    confirm,
    edit_expansion,
    require_expansion,
    scene_state,
    unconfirm,
)


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def scene() -> Scene:
    return Scene(title="The Grove", type=SceneType.EXPLORATION, order_index=0)


@pytest.fixture
def expansion() -> SceneExpansion:
    return SceneExpansion(
        descriptions=("One.", "Two.", "Three."),
        narration="Go.",
        environment=SceneEnvironment(
            content_entity_id="env-1",
            display_name="Blighted Grove",
            custom_description="Fog.",
        ),
    )


@pytest.fixture
def expanded(scene: Scene, expansion: SceneExpansion) -> Scene:
    return apply_expansion(scene, expansion)


class TestTransitions:
    """Tests for expand, confirm and unconfirm."""

    def test_states(self, scene: Scene, expanded: Scene) -> None:
        """Test the derived state follows the expansion."""
        assert scene_state(scene) == SceneState.NOT_EXPANDED
        assert scene_state(expanded) == SceneState.EXPANDED
        assert scene_state(confirm(expanded, now=NOW)) == SceneState.CONFIRMED

    def test_confirm_sets_timestamp(self, expanded: Scene) -> None:
        """Test confirmation records when it happened."""
        confirmed = confirm(expanded, now=NOW)

        assert confirmed.expansion is not None
        assert confirmed.expansion.confirmed is True
        assert confirmed.expansion.confirmed_at == NOW

    def test_confirm_is_idempotent(self, expanded: Scene) -> None:
        """Test confirming twice keeps the first timestamp."""
        confirmed = confirm(expanded, now=NOW)

        assert confirm(confirmed) == confirmed

    def test_confirm_requires_expansion(self, scene: Scene) -> None:
        """Test an unexpanded scene cannot be confirmed."""
        with pytest.raises(NotExpandedError):
            confirm(scene)

    def test_unconfirm(self, expanded: Scene) -> None:
        """Test unconfirm returns to expanded and clears the timestamp."""
        reopened = unconfirm(confirm(expanded, now=NOW))

        assert reopened.state == SceneState.EXPANDED
        assert reopened.expansion is not None
        assert reopened.expansion.confirmed_at is None

    def test_unconfirm_noop(self, scene: Scene, expanded: Scene) -> None:
        """Test unconfirming a scene that is not confirmed changes nothing."""
        assert unconfirm(scene) == scene
        assert unconfirm(expanded) == expanded

    def test_apply_never_confirms(self, scene: Scene, expansion: SceneExpansion) -> None:
        """Test a stored expansion always starts unconfirmed."""
        preconfirmed = expansion.evolve(confirmed=True, confirmed_at=NOW)

        assert apply_expansion(scene, preconfirmed).state == SceneState.EXPANDED

    def test_confirmed_scene_is_frozen(self, expanded: Scene, expansion: SceneExpansion) -> None:
        """Test regenerate, clear and edit all refuse a confirmed scene."""
        confirmed = confirm(expanded, now=NOW)

        with pytest.raises(InvalidStateTransitionError):
            apply_expansion(confirmed, expansion)
        with pytest.raises(InvalidStateTransitionError):
            clear_expansion(confirmed)
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            edit_expansion(confirmed, ExpansionEdit(narration="New"))
        assert exc_info.value.details["current_state"] == "confirmed"

    def test_require_expansion(self, scene: Scene, expanded: Scene) -> None:
        """Test require_expansion returns or raises."""
        assert require_expansion(expanded) is expanded.expansion
        with pytest.raises(NotExpandedError):
            require_expansion(scene)


class TestEditExpansion:
    """Tests for manual edits."""

    def test_edit_fields(self, expanded: Scene) -> None:
        """Test descriptions, narration and environment text are replaced."""
        edit = ExpansionEdit(
            descriptions=("A.", "B.", "C.", "D."),
            narration="  ",
            environment_description="Smoke.",
        )

        edited = edit_expansion(expanded, edit)

        assert edited.expansion is not None
        assert edited.expansion.descriptions == ("A.", "B.", "C.", "D.")
        assert edited.expansion.narration is None
        assert edited.expansion.environment is not None
        assert edited.expansion.environment.custom_description == "Smoke."
        assert edited.state == SceneState.EXPANDED

    def test_empty_edit(self, expanded: Scene) -> None:
        """Test an edit with no fields changes nothing."""
        assert edit_expansion(expanded, ExpansionEdit()) == expanded

    def test_edit_requires_expansion(self, scene: Scene) -> None:
        """Test unexpanded scenes cannot be edited."""
        with pytest.raises(NotExpandedError):
            edit_expansion(scene, ExpansionEdit(narration="Hi"))

    def test_clear_expansion(self, expanded: Scene) -> None:
        """Test clearing returns the scene to not_expanded."""
        assert clear_expansion(expanded).state == SceneState.NOT_EXPANDED
