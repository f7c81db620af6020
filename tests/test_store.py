"""
Unit tests for the panel store and data model.

Tests cover:
- Epoch tokens and stale-write rejection
- Panel updates and listener notification
- Story construction from scripts and YAML export
"""

import pytest
import yaml

from conftest import make_script
from mangagenius.pipeline import ComicStory, Panel, PanelStatus, PanelStore


def _story(panel_count: int = 4, prompt: str = "cat lawyer") -> ComicStory:
    return ComicStory.from_script(make_script(prompt, panel_count))


class TestComicStory:
    """Tests for ComicStory construction and export."""

    def test_from_script_starts_every_panel_pending(self):
        story = _story(6)

        assert story.title == "Title for cat lawyer"
        assert [panel.id for panel in story.panels] == [1, 2, 3, 4, 5, 6]
        assert all(panel.status is PanelStatus.PENDING for panel in story.panels)
        assert all(panel.image_data is None for panel in story.panels)
        assert all(panel.error is None for panel in story.panels)

    def test_to_yaml_omits_image_bytes(self):
        story = ComicStory(
            title="Robot & Flower",
            panels=(
                Panel(id=1, visual_prompt="robot", image_data=b"png", status=PanelStatus.COMPLETED),
                Panel(id=2, visual_prompt="flower", status=PanelStatus.FAILED, error="boom"),
            ),
        )

        data = yaml.safe_load(story.to_yaml())

        assert data["title"] == "Robot & Flower"
        assert data["panels"][0]["status"] == "completed"
        assert "image_data" not in data["panels"][0]
        assert data["panels"][1] == {
            "id": 2,
            "visual_prompt": "flower",
            "dialogue": "",
            "caption": "",
            "status": "failed",
            "error": "boom",
        }

    def test_panel_status_values_are_strings(self):
        assert [status.value for status in PanelStatus] == ["pending", "generating", "completed", "failed"]


class TestPanelStore:
    """Tests for PanelStore."""

    def test_replace_issues_new_epoch(self):
        store = PanelStore()
        first = store.replace(_story())
        second = store.replace(_story(prompt="robot"))

        assert second > first
        assert store.is_current(second)
        assert not store.is_current(first)
        assert store.title == "Title for robot"

    def test_panels_keep_story_order(self):
        store = PanelStore()
        store.replace(_story(8))

        assert [panel.id for panel in store.panels()] == list(range(1, 9))

    def test_update_replaces_only_target_panel(self):
        store = PanelStore()
        epoch = store.replace(_story())
        untouched = store.get(2)

        updated = store.update(1, epoch=epoch, status=PanelStatus.GENERATING)

        assert updated is not None
        assert updated.status is PanelStatus.GENERATING
        assert store.get(1) is updated
        assert store.get(2) is untouched

    def test_stale_epoch_write_is_discarded(self):
        store = PanelStore()
        old_epoch = store.replace(_story(prompt="old"))
        store.replace(_story(prompt="new"))

        result = store.update(1, epoch=old_epoch, status=PanelStatus.COMPLETED, image_data=b"late")

        assert result is None
        assert store.get(1).status is PanelStatus.PENDING
        assert store.get(1).visual_prompt == "new scene 1"

    def test_unknown_panel_is_ignored(self):
        store = PanelStore()
        epoch = store.replace(_story())

        assert store.update(99, epoch=epoch, status=PanelStatus.FAILED) is None

    def test_update_rejects_script_fields(self):
        store = PanelStore()
        epoch = store.replace(_story())

        with pytest.raises(ValueError, match="visual_prompt"):
            store.update(1, epoch=epoch, visual_prompt="rewritten")

    def test_clear_empties_store_and_invalidates_epoch(self):
        store = PanelStore()
        epoch = store.replace(_story())

        cleared = store.clear()

        assert store.panels() == ()
        assert store.title == ""
        assert not store.is_current(epoch)
        assert store.is_current(cleared)

    def test_listeners_receive_committed_updates(self):
        store = PanelStore()
        epoch = store.replace(_story())
        seen = []
        unsubscribe = store.subscribe(seen.append)

        store.update(3, epoch=epoch, status=PanelStatus.GENERATING)
        store.update(3, epoch=epoch - 1, status=PanelStatus.FAILED)
        unsubscribe()
        store.update(4, epoch=epoch, status=PanelStatus.GENERATING)

        assert [(panel.id, panel.status) for panel in seen] == [(3, PanelStatus.GENERATING)]

    def test_snapshot_reflects_current_state(self):
        store = PanelStore()
        epoch = store.replace(_story())
        store.update(1, epoch=epoch, status=PanelStatus.COMPLETED, image_data=b"png")

        snapshot = store.snapshot()

        assert snapshot.title == "Title for cat lawyer"
        assert snapshot.panels[0].image_data == b"png"
        assert snapshot.panels[1].status is PanelStatus.PENDING

    def test_failing_listener_does_not_block_write_or_other_listeners(self, caplog):
        store = PanelStore()
        epoch = store.replace(_story())
        seen = []

        def broken(_panel):
            raise RuntimeError("ui bug")

        store.subscribe(broken)
        store.subscribe(seen.append)

        with caplog.at_level("ERROR", logger="mangagenius.pipeline.store"):
            updated = store.update(2, epoch=epoch, status=PanelStatus.GENERATING)

        assert updated is not None
        assert store.get(2).status is PanelStatus.GENERATING
        assert seen == [updated]
        assert "Panel listener failed for panel 2" in caplog.text
