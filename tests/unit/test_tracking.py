"""Unit tests for tracked read-only views."""

import pytest

from treewatch import (
    FrozenStateError,
    TrackedMapping,
    TrackedSequence,
    Tracker,
    ViewKey,
    freeze,
    wrap,
)
from treewatch.tracking import CONTAINS, ITER, LEN


@pytest.fixture
def tracker(form_state):
    return Tracker(freeze(form_state))


@pytest.mark.unit
@pytest.mark.tracking
class TestRecordedReads:
    """What a read adds to the access record."""

    def test_scalar_reads_record_full_path(self, tracker):
        view = tracker.root
        assert view["items"][0]["v"] == "x"
        assert view["profile"]["address"]["city"] == "Oslo"
        assert tracker.accessed == [("items", 0, "v"), ("profile", "address", "city")]

    def test_container_reads_record_nothing(self, tracker):
        """Intermediate containers become views, not dependencies."""
        profile = tracker.root["profile"]
        assert isinstance(profile, TrackedMapping)
        assert isinstance(tracker.root["items"], TrackedSequence)
        assert tracker.accessed == []

    def test_repeated_reads_are_listed_once(self, tracker):
        view = tracker.root
        view["name"]
        view["name"]
        assert tracker.accessed == [("name",)]
        assert tracker.paths == [("name",), ("name",)]

    def test_len_and_iteration_record_view_keys(self, tracker):
        items = tracker.root["items"]
        assert len(items) == 1
        assert [item["id"] for item in items] == [1]

        assert tracker.accessed == [("items", LEN), ("items", ITER), ("items", 0, "id")]

    def test_mapping_iteration_and_membership(self, tracker):
        profile = tracker.root["profile"]
        assert [key for key in profile] == ["address", "age"]
        assert "email" not in profile
        assert tracker.accessed == [("profile", ITER), ("profile", "email")]

    def test_sequence_membership_records_contains_key(self, tracker):
        items = tracker.root["items"]
        assert {"id": 1, "v": "x"} in items
        assert tracker.accessed == [("items", CONTAINS)]

    def test_method_access_records_method_name(self, tracker):
        """Calling a list method depends on the whole list."""
        items = tracker.root["items"]
        items.copy()
        assert tracker.accessed == [("items", ViewKey("copy"))]

    def test_missing_key_is_recorded_then_raises(self, tracker):
        view = tracker.root
        with pytest.raises(KeyError):
            view["profile"]["email"]
        with pytest.raises(IndexError):
            view["items"][3]
        assert tracker.accessed == [("profile", "email"), ("items", 3)]

    def test_get_records_missing_key(self, tracker):
        assert tracker.root["profile"].get("email", "none") == "none"
        assert tracker.accessed == [("profile", "email")]

    def test_negative_index_records_normalized_path(self, tracker):
        assert tracker.root["items"][-1]["id"] == 1
        assert tracker.accessed == [("items", 0, "id")]

    def test_non_integer_index_raises_type_error(self, tracker):
        with pytest.raises(TypeError):
            tracker.root["items"]["0"]

    def test_on_access_sees_every_read(self, form_state):
        seen = []
        view = wrap(freeze(form_state), on_access=seen.append)
        view["name"]
        view["name"]
        assert seen == [("name",), ("name",)]

    def test_base_path_views_a_subtree(self, form_state):
        tracker = Tracker(freeze(form_state), base_path=["profile", "address"])
        assert tracker.root["zip"] == "0150"
        assert tracker.accessed == [("profile", "address", "zip")]

    def test_nested_views_are_reused(self, tracker):
        assert tracker.root["profile"] is tracker.root["profile"]


@pytest.mark.unit
@pytest.mark.tracking
class TestReadOnlyViews:
    """Tracked views refuse every write."""

    @pytest.mark.parametrize(
        "write",
        [
            lambda view: view.__setitem__("name", "b"),
            lambda view: view.__delitem__("name"),
            lambda view: view.update({"name": "b"}),
            lambda view: view.pop("name"),
            lambda view: view["items"].append(1),
            lambda view: view["items"].sort(),
            lambda view: setattr(view, "name", "b"),
        ],
    )
    def test_writes_raise_frozen_state_error(self, tracker, write):
        with pytest.raises(FrozenStateError):
            write(tracker.root)

    def test_augmented_assignment_raises(self, tracker):
        items = tracker.root["items"]
        with pytest.raises(FrozenStateError):
            items += [1]

    def test_frozen_state_error_is_a_type_error(self, tracker):
        with pytest.raises(TypeError):
            tracker.root["name"] = "b"


@pytest.mark.unit
@pytest.mark.tracking
class TestUnwrap:
    """Recovering real values and paths from views."""

    def test_identifier_key_returns_value_and_path(self, form_state):
        marker = object()
        snapshot = freeze(form_state)
        tracker = Tracker(snapshot, identifier=marker)

        value, path = tracker.root["profile"][marker]

        assert value is snapshot["profile"]
        assert path == ("profile",)
        assert tracker.accessed == []

    def test_unwrap_plain_values_pass_through(self, tracker):
        assert tracker.unwrap(5) == (5, None)

    def test_unwrap_can_record_the_view_path(self, tracker):
        items = tracker.root["items"]
        value, path = tracker.unwrap(items, record=True)
        assert value == [{"id": 1, "v": "x"}]
        assert path == ("items",)
        assert tracker.accessed == [("items",)]

    def test_views_compare_equal_to_plain_data(self, tracker):
        assert tracker.root["items"] == [{"id": 1, "v": "x"}]
        assert tracker.root["profile"]["address"] == {"city": "Oslo", "zip": "0150"}
