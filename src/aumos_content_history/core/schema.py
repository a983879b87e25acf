"""Content type schema model consumed by the populate planner.

The schema registry itself belongs to the host content platform; this module
only defines the read-only shape the planner walks and a dict-backed registry
for hosts that load content type definitions from files.

Field kinds:
- scalar       — plain value, never expanded
- relation     — link to another content type (target)
- component    — nested, embedded type (target)
- dynamiczone  — polymorphic zone; each entry is one of several component types
- media        — reference to an uploaded file, expanded but never recursed into
"""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FieldKind(str, Enum):
    """How a content type field participates in population."""

    SCALAR = "scalar"
    RELATION = "relation"
    COMPONENT = "component"
    DYNAMIC_ZONE = "dynamiczone"
    MEDIA = "media"


class FieldSchema(BaseModel):
    """A single field of a content type.

    Attributes:
        name: Attribute name as it appears on documents.
        kind: Field kind.
        target: Related or nested type uid (relation and component only).
        components: Candidate component uids (dynamiczone only).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: FieldKind = FieldKind.SCALAR
    target: str | None = None
    components: tuple[str, ...] = ()


class EntityTypeSchema(BaseModel):
    """Read-only description of a content type's fields.

    Attributes:
        uid: Content type identifier, e.g. "api::article.article".
        fields: Fields in declaration order.
    """

    model_config = ConfigDict(frozen=True)

    uid: str
    fields: tuple[FieldSchema, ...] = Field(default=())

    @classmethod
    def from_attributes(cls, uid: str, attributes: Mapping[str, Mapping[str, Any]]) -> "EntityTypeSchema":
        """Build a schema from a content type definition's attribute mapping.

        Relations without a target, components without a component uid and
        dynamic zones without candidates degrade to scalar fields. Unknown
        attribute types are scalar.

        Args:
            uid: The content type identifier.
            attributes: {field name: {"type": ..., "target"/"component"/"components": ...}}.

        Returns:
            The parsed EntityTypeSchema.
        """
        fields: list[FieldSchema] = []
        for name, attribute in attributes.items():
            attribute_type = attribute.get("type")
            if attribute_type == "relation" and attribute.get("target"):
                fields.append(FieldSchema(name=name, kind=FieldKind.RELATION, target=attribute["target"]))
            elif attribute_type == "component" and attribute.get("component"):
                fields.append(FieldSchema(name=name, kind=FieldKind.COMPONENT, target=attribute["component"]))
            elif attribute_type == "dynamiczone" and attribute.get("components"):
                fields.append(
                    FieldSchema(
                        name=name,
                        kind=FieldKind.DYNAMIC_ZONE,
                        components=tuple(attribute["components"]),
                    )
                )
            elif attribute_type == "media":
                fields.append(FieldSchema(name=name, kind=FieldKind.MEDIA))
            else:
                fields.append(FieldSchema(name=name))
        return cls(uid=uid, fields=tuple(fields))


class InMemorySchemaRegistry:
    """Dict-backed schema registry, fixed at construction.

    Args:
        schemas: The schemas to serve.
    """

    def __init__(self, schemas: Iterable[EntityTypeSchema] = ()) -> None:
        self._schemas: dict[str, EntityTypeSchema] = {schema.uid: schema for schema in schemas}

    @classmethod
    def from_definitions(cls, definitions: Mapping[str, Mapping[str, Mapping[str, Any]]]) -> "InMemorySchemaRegistry":
        """Build a registry from {uid: attributes} content type definitions."""
        return cls(EntityTypeSchema.from_attributes(uid, attributes) for uid, attributes in definitions.items())

    def get_schema(self, uid: str) -> EntityTypeSchema | None:
        """Return the schema for uid, or None if the type is unknown."""
        return self._schemas.get(uid)
