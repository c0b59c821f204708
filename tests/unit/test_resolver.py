"""Unit tests for mapping patches to notify paths and callbacks."""

import pytest

from treewatch import (
    NotificationResolver,
    NotifyPath,
    Patch,
    PatchOp,
    SubscriptionRegistry,
    ViewKey,
    freeze,
)


@pytest.fixture
def registry():
    return SubscriptionRegistry()


@pytest.fixture
def resolver(registry):
    return NotificationResolver(registry)


@pytest.fixture
def snapshot(form_state):
    return freeze(form_state)


@pytest.mark.unit
@pytest.mark.resolver
class TestNotifyPaths:
    """Which paths a patch makes stale."""

    def test_scalar_leaf_in_mapping_notifies_itself(self, resolver, snapshot):
        patches = [Patch(PatchOp.REPLACE, ("profile", "address", "city"), "Bergen")]
        assert resolver.compute_notify_paths(patches, snapshot) == [
            NotifyPath(("profile", "address", "city"))
        ]

    def test_container_value_in_mapping_widens_to_parent(self, resolver, snapshot):
        patches = [Patch(PatchOp.REPLACE, ("profile", "address"), {"city": "Bergen"})]
        assert resolver.compute_notify_paths(patches, snapshot) == [
            NotifyPath(("profile",))
        ]

    def test_list_element_notifies_parent_exactly_and_element_deep(
        self, resolver, snapshot
    ):
        patches = [Patch(PatchOp.REPLACE, ("items", 0), {"id": 1, "v": "y"})]
        assert resolver.compute_notify_paths(patches, snapshot) == [
            NotifyPath(("items",), deep=False),
            NotifyPath(("items", 0)),
        ]

    def test_list_element_includes_registered_derived_keys(
        self, resolver, registry, recorder, snapshot
    ):
        registry.register([("items", "map"), ("items", ViewKey("__len__"))], recorder)
        patches = [Patch(PatchOp.ADD, ("items", 1), {"id": 2})]

        paths = resolver.compute_notify_paths(patches, snapshot)

        assert NotifyPath(("items", "map"), deep=False) in paths
        assert NotifyPath(("items", ViewKey("__len__")), deep=False) in paths

    def test_missing_parent_widens_to_parent(self, resolver, snapshot):
        patches = [Patch(PatchOp.REMOVE, ("gone", "key"))]
        paths = resolver.compute_notify_paths(patches, snapshot)
        assert paths == [NotifyPath(("gone",))]

    def test_root_patch_notifies_everything(self, resolver, snapshot):
        patches = [Patch(PatchOp.REPLACE, (), {"x": 1})]
        assert resolver.compute_notify_paths(patches, snapshot) == [NotifyPath(())]

    def test_key_added_to_mapping_stales_its_views(
        self, resolver, registry, recorder, snapshot
    ):
        registry.register(
            [("profile", ViewKey("__iter__")), ("profile", "age")], recorder
        )
        patches = [Patch(PatchOp.ADD, ("profile", "email"), "a@example.com")]

        paths = resolver.compute_notify_paths(patches, snapshot)

        assert paths == [
            NotifyPath(("profile", ViewKey("__iter__")), deep=False),
            NotifyPath(("profile", "email")),
        ]

    def test_deep_entry_wins_over_exact(self, resolver):
        """rows/0 is first needed exactly, then as a replaced element."""
        snapshot = freeze({"rows": [[3]]})
        patches = [
            Patch(PatchOp.REMOVE, ("rows", 0, 1)),
            Patch(PatchOp.REPLACE, ("rows", 0), [3]),
        ]
        assert resolver.compute_notify_paths(patches, snapshot) == [
            NotifyPath(("rows", 0), deep=True),
            NotifyPath(("rows", 0, 1)),
            NotifyPath(("rows",), deep=False),
        ]


@pytest.mark.unit
@pytest.mark.resolver
class TestResolveCallbacks:
    """Notify paths turned into callbacks."""

    def test_callbacks_below_a_scalar_are_stale(
        self, resolver, registry, recorder, snapshot
    ):
        registry.register([("name", "first")], recorder)
        patches = [Patch(PatchOp.REPLACE, ("name",), "b")]
        assert resolver.resolve_callbacks(patches, snapshot) == [recorder]

    def test_sibling_elements_are_not_notified(
        self, resolver, registry, make_recorder, snapshot
    ):
        first, second = make_recorder(), make_recorder()
        registry.register([("items", 0, "v")], first)
        registry.register([("items", 1, "v")], second)
        patches = [Patch(PatchOp.REPLACE, ("items", 0, "v"), "y")]

        assert resolver.resolve_callbacks(patches, snapshot) == [first]

    def test_callback_on_many_paths_runs_once(
        self, resolver, registry, recorder, snapshot
    ):
        registry.register([("name",), ("profile", "age"), ("profile",)], recorder)
        patches = [
            Patch(PatchOp.REPLACE, ("name",), "b"),
            Patch(PatchOp.REPLACE, ("profile", "age"), 31),
        ]
        assert resolver.resolve_callbacks(patches, snapshot) == [recorder]

    def test_parent_observer_is_not_notified_for_scalar_leaf(
        self, resolver, registry, recorder, snapshot
    ):
        registry.register([("profile",)], recorder)
        patches = [Patch(PatchOp.REPLACE, ("profile", "age"), 31)]
        assert resolver.resolve_callbacks(patches, snapshot) == []

    def test_order_follows_discovery(self, resolver, registry, make_recorder, snapshot):
        first, second = make_recorder(), make_recorder()
        registry.register([("profile", "age")], second)
        registry.register([("name",)], first)
        patches = [
            Patch(PatchOp.REPLACE, ("name",), "b"),
            Patch(PatchOp.REPLACE, ("profile", "age"), 31),
        ]
        assert resolver.resolve_callbacks(patches, snapshot) == [first, second]

    def test_method_reads_of_an_ancestor_are_stale_after_any_edit_below(
        self, resolver, registry, make_recorder, snapshot
    ):
        """``profile.copy()`` depends on every value inside ``profile``."""
        copied, counted = make_recorder(), make_recorder()
        registry.register([("profile", ViewKey("copy"))], copied)
        registry.register([("profile", ViewKey("__len__"))], counted)
        patches = [Patch(PatchOp.REPLACE, ("profile", "address", "city"), "Bergen")]

        assert resolver.compute_notify_paths(patches, snapshot) == [
            NotifyPath(("profile", "address", "city")),
            NotifyPath(("profile", ViewKey("copy")), deep=False),
        ]
        assert resolver.resolve_callbacks(patches, snapshot) == [copied]

    def test_method_keys_under_an_ancestor_list_are_notified(
        self, resolver, registry, recorder, snapshot
    ):
        registry.register([("items", "map")], recorder)
        patches = [Patch(PatchOp.REPLACE, ("items", 0, "v"), "y")]
        assert resolver.resolve_callbacks(patches, snapshot) == [recorder]
