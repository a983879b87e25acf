"""Tests for populate planning over the content type schema graph."""

from typing import Any
from unittest.mock import MagicMock

from aumos_content_history.core.populate import PopulateGraphPlanner, merge_populate
from aumos_content_history.core.schema import (
    EntityTypeSchema,
    FieldKind,
    FieldSchema,
    InMemorySchemaRegistry,
)
from aumos_content_history.settings import DEFAULT_OMIT_FIELDS
from tests.conftest import ARTICLE, AUTHOR

EXPECTED_ARTICLE_PLAN: dict[str, Any] = {
    "author": {"populate": {"articles": True, "avatar": True}},
    "seo": True,
    "blocks": {
        "on": {
            "blocks.quote": True,
            "blocks.gallery": {"populate": {"images": True, "related": True}},
        }
    },
    "cover": True,
}


def _depth(plan: Any) -> int:
    """Nesting depth of a plan, counting populate/on wrappers as one level."""
    if plan is True:
        return 0
    depths = [0]
    for value in plan.values():
        if isinstance(value, dict) and "populate" in value:
            depths.append(1 + _depth(value["populate"]))
        elif isinstance(value, dict) and "on" in value:
            depths.append(1 + max((_depth(variant) for variant in value["on"].values()), default=0))
        elif isinstance(value, dict):
            depths.append(1 + _depth(value))
        else:
            depths.append(1)
    return max(depths)


def _relation(name: str, target: str) -> FieldSchema:
    return FieldSchema(name=name, kind=FieldKind.RELATION, target=target)


class TestPopulateGraphPlanner:
    """Tests for PopulateGraphPlanner.plan()."""

    def test_article_plan(self, schema_registry: InMemorySchemaRegistry) -> None:
        """Relations, components, dynamic zones and media are all planned."""
        planner = PopulateGraphPlanner(schema_registry, omit_fields=DEFAULT_OMIT_FIELDS)

        assert planner.plan(ARTICLE) == EXPECTED_ARTICLE_PLAN

    def test_cycle_terminates_with_bounded_depth(self, schema_registry: InMemorySchemaRegistry) -> None:
        """article -> author -> article is cut at the back edge."""
        planner = PopulateGraphPlanner(schema_registry)

        article_plan = planner.plan(ARTICLE)
        author_plan = planner.plan(AUTHOR)

        # The back edge is a one-level inclusion, not a recursion
        assert article_plan["author"]["populate"]["articles"] is True
        assert author_plan["articles"]["populate"]["author"] is True
        distinct_types = 6
        assert _depth(article_plan) <= distinct_types + 1
        assert _depth(author_plan) <= distinct_types + 1

    def test_self_relation(self) -> None:
        """A type related to itself expands one level."""
        registry = InMemorySchemaRegistry(
            [EntityTypeSchema(uid="api::category.category", fields=(_relation("parent", "api::category.category"),))]
        )

        assert PopulateGraphPlanner(registry).plan("api::category.category") == {"parent": True}

    def test_sibling_branches_revisit_shared_type(self) -> None:
        """A type reached from two siblings is expanded in both, not treated as a cycle."""
        registry = InMemorySchemaRegistry(
            [
                EntityTypeSchema(
                    uid="api::page.page",
                    fields=(_relation("primaryTag", "api::tag.tag"), _relation("secondaryTag", "api::tag.tag")),
                ),
                EntityTypeSchema(uid="api::tag.tag", fields=(_relation("category", "api::category.category"),)),
                EntityTypeSchema(uid="api::category.category", fields=(FieldSchema(name="label"),)),
            ]
        )

        plan = PopulateGraphPlanner(registry).plan("api::page.page")

        assert plan == {
            "primaryTag": {"populate": {"category": True}},
            "secondaryTag": {"populate": {"category": True}},
        }

    def test_omitted_fields_not_planned(self, schema_registry: InMemorySchemaRegistry) -> None:
        """Fields in the omit-set contribute nothing to the plan."""
        with_omit = PopulateGraphPlanner(schema_registry, omit_fields={"updatedBy", "cover"}).plan(ARTICLE)
        without_omit = PopulateGraphPlanner(schema_registry).plan(ARTICLE)

        assert "updatedBy" not in with_omit
        assert "cover" not in with_omit
        assert without_omit["updatedBy"] is True

    def test_unknown_type_plans_full_populate(self, schema_registry: InMemorySchemaRegistry) -> None:
        """A type missing from the registry falls back to True."""
        assert PopulateGraphPlanner(schema_registry).plan("api::missing.missing") is True

    def test_scalar_only_type_plans_true(self, schema_registry: InMemorySchemaRegistry) -> None:
        """A type with nothing to expand yields True."""
        assert PopulateGraphPlanner(schema_registry).plan("shared.seo") is True

    def test_relation_to_unknown_type_is_included(self) -> None:
        """A relation whose target has no schema is still expanded one level."""
        registry = InMemorySchemaRegistry(
            [EntityTypeSchema(uid="api::post.post", fields=(_relation("owner", "plugin::users.user"),))]
        )

        assert PopulateGraphPlanner(registry).plan("api::post.post") == {"owner": True}

    def test_plan_is_deterministic(self, schema_registry: InMemorySchemaRegistry) -> None:
        """Identical inputs yield identical plans."""
        first = PopulateGraphPlanner(schema_registry, omit_fields=DEFAULT_OMIT_FIELDS).plan(ARTICLE)
        second = PopulateGraphPlanner(schema_registry, omit_fields=DEFAULT_OMIT_FIELDS).plan(ARTICLE)

        assert first == second

    def test_cached_plans_are_isolated(self, schema_registry: InMemorySchemaRegistry) -> None:
        """Mutating a returned plan never affects later or unrelated plans."""
        planner = PopulateGraphPlanner(schema_registry, omit_fields=DEFAULT_OMIT_FIELDS, cache=True)

        first = planner.plan(ARTICLE)
        author_before = planner.plan(AUTHOR)
        first["author"]["populate"]["injected"] = True
        first["extra"] = True

        assert planner.plan(ARTICLE) == EXPECTED_ARTICLE_PLAN
        assert planner.plan(AUTHOR) == author_before

    def test_cache_reads_registry_once(self) -> None:
        """With caching on, the registry is consulted only for the first plan."""
        registry = MagicMock()
        registry.get_schema.return_value = EntityTypeSchema(uid="api::tag.tag", fields=(FieldSchema(name="name"),))
        planner = PopulateGraphPlanner(registry, cache=True)

        planner.plan("api::tag.tag")
        planner.plan("api::tag.tag")
        assert registry.get_schema.call_count == 1

        planner.invalidate()
        planner.plan("api::tag.tag")
        assert registry.get_schema.call_count == 2

    def test_changed_schema_needs_invalidate(self) -> None:
        """A schema change is picked up by a caching planner only after invalidate()."""
        tag = "api::tag.tag"
        registry = MagicMock()
        registry.get_schema.return_value = EntityTypeSchema(uid=tag, fields=(FieldSchema(name="name"),))
        planner = PopulateGraphPlanner(registry, cache=True)
        assert planner.plan(tag) is True

        registry.get_schema.return_value = EntityTypeSchema(
            uid=tag,
            fields=(FieldSchema(name="name"), FieldSchema(name="icon", kind=FieldKind.MEDIA)),
        )
        assert planner.plan(tag) is True

        planner.invalidate()
        assert planner.plan(tag) == {"icon": True}


class TestEntityTypeSchema:
    """Tests for parsing content type attribute definitions."""

    def test_from_attributes(self) -> None:
        """Attribute types map to field kinds; incomplete definitions degrade to scalar."""
        schema = EntityTypeSchema.from_attributes(
            "api::article.article",
            {
                "title": {"type": "string"},
                "author": {"type": "relation", "target": AUTHOR},
                "broken": {"type": "relation"},
                "seo": {"type": "component", "component": "shared.seo"},
                "blocks": {"type": "dynamiczone", "components": ["blocks.quote"]},
                "cover": {"type": "media"},
            },
        )

        kinds = {field.name: field.kind for field in schema.fields}
        assert kinds == {
            "title": FieldKind.SCALAR,
            "author": FieldKind.RELATION,
            "broken": FieldKind.SCALAR,
            "seo": FieldKind.COMPONENT,
            "blocks": FieldKind.DYNAMIC_ZONE,
            "cover": FieldKind.MEDIA,
        }
        assert schema.fields[3].target == "shared.seo"
        assert schema.fields[4].components == ("blocks.quote",)


class TestMergePopulate:
    """Tests for merge_populate()."""

    def test_no_request_uses_plan(self) -> None:
        assert merge_populate(None, {"author": True}) == {"author": True}

    def test_true_plan_keeps_request(self) -> None:
        assert merge_populate("*", True) == "*"
        assert merge_populate(["author"], True) == ["author"]

    def test_dict_request_merged_plan_wins(self) -> None:
        merged = merge_populate({"author": True, "tags": True}, {"author": {"populate": {"avatar": True}}})

        assert merged == {"author": {"populate": {"avatar": True}}, "tags": True}

    def test_list_request_merged(self) -> None:
        assert merge_populate(["tags", "author"], {"author": {"populate": {"avatar": True}}}) == {
            "tags": True,
            "author": {"populate": {"avatar": True}},
        }

    def test_string_request_replaced_by_plan(self) -> None:
        assert merge_populate("*", {"author": True}) == {"author": True}
