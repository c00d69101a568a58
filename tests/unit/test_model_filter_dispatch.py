"""
Unit tests for input dispatch on ModelFilter.
"""

import pytest
from django.http import QueryDict

from model_filter import ModelFilter, QueryBuilder
from tests.model_filters import CategoryFilter, PostFilter
from tests.models import Category, Post

pytestmark = pytest.mark.unit


class RecordingFilter(ModelFilter):
    relations = {"posts": []}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    def setup(self):
        self.calls.append(("setup", None))

    def user(self, value):
        self.calls.append(("user", value))

    def userId(self, value):
        self.calls.append(("userId", value))

    def createdAt(self, value):
        self.calls.append(("createdAt", value))

    def created_at(self, value):
        self.calls.append(("created_at", value))

    def title(self, value):
        self.calls.append(("title", value))

    def quickSetup(self, value):
        self.calls.append(("quickSetup", value))

    def postsSetup(self, query):
        self.calls.append(("postsSetup", query))


def make_filter(input=None, filter_class=RecordingFilter, **kwargs):
    return filter_class(Post.objects.all(), input, **kwargs)


def dispatched(model_filter):
    return [call for call in model_filter.calls if call[0] != "setup"]


class TestInputSanitizing:
    def test_empty_values_are_removed(self):
        model_filter = make_filter({"title": "", "user_id": None, "tags": [], "extra": {}})

        assert model_filter.input() == {}

    def test_empty_input_applies_no_predicates(self):
        model_filter = make_filter({"title": "", "created_at": None, "user_id": []})

        builder = model_filter.handle()

        assert dispatched(model_filter) == []
        assert builder.queryset.query.where.children == []

    def test_falsy_but_meaningful_values_are_kept(self):
        model_filter = make_filter({"title": 0, "user_id": False})

        assert model_filter.input() == {"title": 0, "user_id": False}

    def test_allowed_empty_filters_keeps_everything(self):
        class PermissiveFilter(RecordingFilter):
            allowed_empty_filters = True

        model_filter = make_filter({"title": "", "user_id": None}, PermissiveFilter)
        model_filter.handle()

        assert model_filter.input() == {"title": "", "user_id": None}
        assert dispatched(model_filter) == [("title", ""), ("user", None)]

    def test_query_dict_input(self):
        data = QueryDict("title=ann&user_id=3&user_id=4&created_at=")

        model_filter = make_filter(data)

        assert model_filter.input() == {"title": "ann", "user_id": ["3", "4"]}


class TestDispatch:
    def test_setup_runs_before_input_filters(self):
        model_filter = make_filter({"title": "ann"})

        model_filter.handle()

        assert model_filter.calls == [("setup", None), ("title", "ann")]

    def test_id_suffix_dropped_by_default(self):
        model_filter = make_filter({"user_id": 7})

        model_filter.handle()

        assert dispatched(model_filter) == [("user", 7)]

    def test_id_suffix_kept_when_disabled(self):
        model_filter = make_filter({"user_id": 7})

        assert model_filter.drop_id_suffix(False) is False
        model_filter.handle()

        assert dispatched(model_filter) == [("userId", 7)]

    def test_camel_cased_method(self):
        model_filter = make_filter({"created_at": "2024-01-01"})

        model_filter.handle()

        assert dispatched(model_filter) == [("createdAt", "2024-01-01")]

    def test_snake_cased_method_when_camel_casing_disabled(self):
        model_filter = make_filter({"created_at": "2024-01-01"})

        model_filter.convert_to_camel_cased_methods(False)
        model_filter.handle()

        assert dispatched(model_filter) == [("created_at", "2024-01-01")]

    def test_input_order_is_preserved(self):
        model_filter = make_filter({"title": "a", "created_at": "b", "user_id": "c"})

        model_filter.handle()

        assert [name for name, _ in dispatched(model_filter)] == ["title", "createdAt", "user"]

    def test_unknown_keys_are_skipped(self):
        model_filter = make_filter({"nope": 1, "page": 2, "title": "x"})

        model_filter.handle()

        assert dispatched(model_filter) == [("title", "x")]

    def test_base_class_methods_are_not_reachable_from_input(self):
        model_filter = make_filter({"push": "x", "handle": "y", "where": "z", "input": "w"})

        model_filter.handle()

        assert dispatched(model_filter) == []
        for name in ("push", "handle", "where", "input", "filter_relations"):
            assert not model_filter.method_is_callable(name)

    def test_hooks_are_not_reachable_from_input(self):
        model_filter = make_filter({"setup": 1, "posts_setup": 2})

        model_filter.handle()

        assert dispatched(model_filter) == []
        assert not model_filter.method_is_callable("setup")
        assert not model_filter.method_is_callable("postsSetup")

    def test_setup_suffix_alone_does_not_make_a_hook(self):
        model_filter = make_filter({"quick_setup": "yes"})

        model_filter.handle()

        assert dispatched(model_filter) == [("quickSetup", "yes")]

    def test_registry_is_built_per_class(self):
        assert set(RecordingFilter._filter_methods) == {
            "user",
            "userId",
            "createdAt",
            "created_at",
            "title",
            "quickSetup",
        }
        assert set(RecordingFilter._relation_setup_hooks) == {"postsSetup"}
        assert RecordingFilter._setup_hook is not None
        assert ModelFilter._filter_methods == {}

    def test_inherited_filter_methods_are_registered(self):
        class ChildFilter(RecordingFilter):
            def status(self, value):
                self.calls.append(("status", value))

        model_filter = make_filter({"status": "live", "title": "t"}, ChildFilter)
        model_filter.handle()

        assert dispatched(model_filter) == [("status", "live"), ("title", "t")]

    def test_handle_is_not_idempotent(self):
        model_filter = make_filter({"title": "ann"})

        model_filter.handle()
        model_filter.handle()

        assert dispatched(model_filter) == [("title", "ann"), ("title", "ann")]

    def test_handle_returns_the_builder(self):
        model_filter = make_filter({})

        assert model_filter.handle() is model_filter.query
        assert isinstance(model_filter.get_query(), QueryBuilder)


class TestBlacklist:
    def test_blacklisted_method_is_never_invoked(self):
        model_filter = make_filter({"title": "ann"})

        model_filter.blacklist_method("title")
        model_filter.handle()

        assert model_filter.method_is_blacklisted("title")
        assert dispatched(model_filter) == []

    def test_whitelisting_re_enables_dispatch(self):
        model_filter = make_filter({"title": "ann"})
        model_filter.blacklist_method("title")
        model_filter.handle()

        model_filter.whitelist_method("title")
        model_filter.handle()

        assert dispatched(model_filter) == [("title", "ann")]

    def test_class_level_blacklist(self):
        class GuardedFilter(RecordingFilter):
            blacklist = ["user"]

        model_filter = make_filter({"user_id": 1, "title": "x"}, GuardedFilter)
        model_filter.handle()

        assert dispatched(model_filter) == [("title", "x")]
        assert GuardedFilter.blacklist == ["user"]


class TestInputAccess:
    def test_input_accessors(self):
        model_filter = make_filter({"title": "ann"})

        assert model_filter.input("title") == "ann"
        assert model_filter.input("missing") is None
        assert model_filter.input("missing", "fallback") == "fallback"

    def test_push_single_value_and_mapping(self):
        model_filter = make_filter({"title": "ann"})

        model_filter.push("user_id", 5)
        model_filter.push({"created_at": "today", "title": "bob"})

        assert model_filter.input() == {"title": "bob", "user_id": 5, "created_at": "today"}

    def test_pushed_input_is_dispatched(self):
        model_filter = make_filter({})

        model_filter.push("user_id", 5)
        model_filter.handle()

        assert dispatched(model_filter) == [("user", 5)]


class TestOptions:
    def test_option_accessors_read_without_argument(self):
        model_filter = make_filter({})

        assert model_filter.drop_id_suffix() is True
        assert model_filter.convert_to_camel_cased_methods() is True
        assert model_filter.relations_enabled() is True

    def test_relations_toggles(self):
        model_filter = make_filter({}, relations_enabled=False)
        assert model_filter.relations_enabled() is False

        assert model_filter.enable_relations() is model_filter
        assert model_filter.relations_enabled() is True

        model_filter.disable_relations()
        assert model_filter.relations_enabled() is False

        assert model_filter.relations_enabled(True) is True


class TestQueryProxy:
    def test_builder_results_return_the_filter(self):
        model_filter = make_filter({})

        assert model_filter.where_not_null("published_at") is model_filter
        assert model_filter.where("status", "live") is model_filter

    def test_other_results_pass_through(self):
        model_filter = make_filter({})

        assert model_filter.get_model() is Post
        assert model_filter.prefix == ""

    def test_missing_builder_attribute_raises(self):
        model_filter = make_filter({})

        with pytest.raises(AttributeError):
            model_filter.definitely_not_a_builder_method()

    def test_accepts_an_existing_builder(self):
        builder = QueryBuilder(Post.objects.all())

        model_filter = RecordingFilter(builder, {})

        assert model_filter.query is builder


class TestRelationInput:
    def test_related_filter_input_only_contains_declared_keys(self):
        class ScopedFilter(ModelFilter):
            relations = {"posts": ["title", "status"]}

        model_filter = ScopedFilter(Category.objects.all(), {"title": "foo", "unrelated": "x"})

        assert model_filter.get_related_filter_input("posts") == {"title": "foo"}

    def test_related_filter_input_renames_aliased_keys(self):
        model_filter = PostFilter(
            Post.objects.all(), {"author_email": "a@example.com", "comment": "hi"}
        )

        assert model_filter.get_related_filter_input("author") == {"email": "a@example.com"}
        assert model_filter.get_related_filter_input("comments") == {"body": "hi"}
        assert model_filter.get_related_filter_input("unknown") == {}

    def test_mixed_relation_declaration(self):
        class MixedFilter(ModelFilter):
            relations = {"posts": ["title", {"post_status": "status"}]}

        model_filter = MixedFilter(
            Category.objects.all(), {"title": "t", "post_status": "live", "status": "x"}
        )

        assert model_filter.get_related_filter_input("posts") == {"title": "t", "status": "live"}

    def test_all_relations_merge_local_callbacks_and_input(self):
        model_filter = CategoryFilter(Category.objects.all(), {"title": "foo"})

        def callback(query):
            return query.where("status", "live")

        model_filter.add_related("posts", callback)
        model_filter.related("tags", "name", "django")

        relations = model_filter.get_all_relations()

        assert list(relations) == ["posts", "tags"]
        assert relations["posts"] == [callback, ("title", "foo")]
        assert len(relations["tags"]) == 1
        assert model_filter.get_all_relations() is relations
        assert model_filter.get_relation_constraints("posts") == relations["posts"]
        assert model_filter.get_relation_constraints("missing") == []

    def test_relation_introspection(self):
        model_filter = CategoryFilter(Category.objects.all(), {"title": "foo"})
        model_filter.related("tags", "name", "=", "django")

        assert model_filter.relation_uses_filter("posts")
        assert not model_filter.relation_is_local("posts")
        assert model_filter.relation_is_local("tags")
        assert model_filter.relation_is_filterable("tags")
        assert not model_filter.relation_is_filterable("authors")

    def test_related_requires_a_value(self):
        model_filter = CategoryFilter(Category.objects.all(), {})

        with pytest.raises(TypeError):
            model_filter.related("posts", "title")
