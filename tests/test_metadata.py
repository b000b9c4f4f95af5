"""Tests for marker discovery and per-(type, context) metadata resolution."""
from dataclasses import dataclass

import pytest

from statetracker import (
    AmbiguousKeyError,
    describe,
    resolve_type_metadata,
    trackable,
    tracked,
    tracking_key,
)


class TestContextIsolation:
    """Markers tagged for one context are invisible to the others."""

    def test_property_marker_scoped_to_context(self):
        @dataclass
        class Window:
            width: int = tracked(0, context="A")
            height: int = tracked(0)

        assert resolve_type_metadata(Window, "A").property_names == ("width",)
        assert resolve_type_metadata(Window, "B").property_names == ()

    def test_none_context_is_its_own_partition(self):
        @dataclass
        class Window:
            width: int = tracked(0, context="A")
            height: int = tracked(0)

        assert resolve_type_metadata(Window, None).property_names == ("height",)

    def test_class_marker_scoped_to_context(self):
        @trackable(context="session")
        @dataclass
        class Page:
            counter: int = 0
            title: str = ""

        assert resolve_type_metadata(Page, "session").property_names == ("counter", "title")
        assert resolve_type_metadata(Page, "settings").property_names == ()
        assert resolve_type_metadata(Page, None).property_names == ()


class TestTrackability:
    """Property markers win over the class marker."""

    def test_unmarked_properties_not_tracked(self):
        @dataclass
        class Plain:
            value: int = 0

        assert resolve_type_metadata(Plain).property_names == ()

    def test_bare_class_decorator_tracks_all_members(self):
        @trackable
        @dataclass
        class Prefs:
            theme: str = "dark"
            font_size: int = 12

        assert resolve_type_metadata(Prefs).property_names == ("theme", "font_size")

    def test_property_marker_overrides_class_marker(self):
        @trackable()
        @dataclass
        class Prefs:
            theme: str = "dark"
            scratch: str = tracked("", trackable=False)

        assert resolve_type_metadata(Prefs).property_names == ("theme",)

    def test_private_and_classvar_members_ignored(self):
        from typing import ClassVar

        @trackable
        @dataclass
        class Prefs:
            VERSION: ClassVar[int] = 2
            theme: str = "dark"
            _cache: dict = None

        assert resolve_type_metadata(Prefs).property_names == ("theme",)

    def test_property_objects_are_discovered(self):
        @trackable
        class Window:
            def __init__(self):
                self._left = 0

            @property
            def left(self):
                return self._left

            @left.setter
            def left(self, value):
                self._left = value

            @trackable(trackable=False)
            @property
            def area(self):
                return 0

        assert resolve_type_metadata(Window).property_names == ("left",)

    def test_marker_on_property_survives_setter(self):
        class Window:
            @trackable(context="layout")
            @property
            def top(self):
                return 0

            @top.setter
            def top(self, value):
                pass

        assert resolve_type_metadata(Window, "layout").property_names == ("top",)

    def test_class_marker_inherited_by_subclass(self):
        @trackable(context="settings")
        @dataclass
        class Base:
            a: int = 0

        @dataclass
        class Child(Base):
            b: int = 0

        assert resolve_type_metadata(Child, "settings").property_names == ("a", "b")

    def test_duplicate_marker_for_same_context_rejected(self):
        with pytest.raises(ValueError):
            @trackable(context="A")
            @trackable(context="A", trackable=False)
            class Twice:
                pass


class TestKeyProperty:
    """The identity key is resolved once and never tracked itself."""

    def test_key_property_excluded_from_tracked_set(self):
        @dataclass
        class User:
            id: str = tracked("", key=True)
            name: str = tracked("")

        metadata = resolve_type_metadata(User)
        assert metadata.key_property_name == "id"
        assert metadata.property_names == ("name",)

    def test_key_excluded_even_when_marked_trackable(self):
        @trackable
        class Document:
            def __init__(self, doc_id):
                self._id = doc_id

            @trackable()
            @tracking_key
            @property
            def id(self):
                return self._id

            @property
            def title(self):
                return ""

        metadata = resolve_type_metadata(Document)
        assert metadata.key_property_name == "id"
        assert "id" not in metadata.property_names
        assert metadata.property_names == ("title",)

    def test_no_key_property(self):
        @dataclass
        class Counter:
            value: int = tracked(0)

        assert resolve_type_metadata(Counter).key_property_name is None

    def test_more_than_one_key_is_ambiguous(self):
        @dataclass
        class Broken:
            a: str = tracked("", key=True)
            b: str = tracked("", key=True)

        with pytest.raises(AmbiguousKeyError) as exc_info:
            resolve_type_metadata(Broken)
        assert exc_info.value.key_names == ("a", "b")


class TestDescribe:
    """Explicit registration behaves like decorator markers."""

    def test_describe_registers_key_and_properties(self):
        class Widget:
            def __init__(self):
                self.uid = "w1"
                self.width = 10
                self.height = 20

        describe(Widget).key("uid").trackable("width", "height", context="layout")

        metadata = resolve_type_metadata(Widget, "layout")
        assert metadata.key_property_name == "uid"
        assert metadata.property_names == ("width", "height")
        assert resolve_type_metadata(Widget).property_names == ()

    def test_describe_takes_precedence_over_decorators(self):
        @dataclass
        class Prefs:
            theme: str = tracked("dark")

        describe(Prefs).not_trackable("theme")

        assert resolve_type_metadata(Prefs).property_names == ()

    def test_describe_all_trackable(self):
        @dataclass
        class Prefs:
            theme: str = "dark"

        describe(Prefs).all_trackable(context="settings")

        assert resolve_type_metadata(Prefs, "settings").property_names == ("theme",)

    def test_describe_returns_same_builder(self):
        class Widget:
            pass

        assert describe(Widget) is describe(Widget)


class TestMetadataCache:
    """Resolution happens at most once per (type, context)."""

    def test_same_pair_returns_cached_instance(self):
        @dataclass
        class User:
            name: str = tracked("")

        assert resolve_type_metadata(User, "x") is resolve_type_metadata(User, "x")
        assert resolve_type_metadata(User, "x") is not resolve_type_metadata(User, "y")

    def test_registration_after_resolution_not_picked_up(self):
        @dataclass
        class User:
            name: str = tracked("")
            age: int = 0

        first = resolve_type_metadata(User)
        describe(User).trackable("age")

        assert resolve_type_metadata(User) is first
        assert first.property_names == ("name",)
