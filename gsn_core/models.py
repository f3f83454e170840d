"""
Core data models for GSN argument diagrams.

These models define the snapshot consumed by the validator and the layout
engine:
- Elements typed by GSN kind (Goal, Strategy, Context, ...)
- Relations between elements (`supported-by` or `in-context-of`)
- A Diagram container, also used as the value type of module lookups

Field Naming Convention:
- Relations use `source` and `target`
- Element and relation types live in `kind`
- For compatibility with the editor's saved data, `type`, `from`/`to`,
  `nodes`/`links`, `moduleId` and the `solid`/`dashed` link types are
  accepted on input and converted
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field, model_validator
import uuid


class ElementKind(str, Enum):
    """GSN element kinds."""
    GOAL = "Goal"
    STRATEGY = "Strategy"
    CONTEXT = "Context"
    EVIDENCE = "Evidence"
    ASSUMPTION = "Assumption"
    JUSTIFICATION = "Justification"
    UNDEVELOPED = "Undeveloped"
    MODULE = "Module"


class RelationKind(str, Enum):
    """Relation kinds between elements."""
    SUPPORTED_BY = "supported-by"    # Hierarchical, drawn solid
    IN_CONTEXT_OF = "in-context-of"  # Satellite, drawn dashed


# Kinds placed beside the element pointing at them, never below it
SATELLITE_KINDS = frozenset({
    ElementKind.CONTEXT,
    ElementKind.ASSUMPTION,
    ElementKind.JUSTIFICATION,
})

# Kinds that close an argument branch
TERMINAL_KINDS = frozenset({
    ElementKind.EVIDENCE,
    ElementKind.UNDEVELOPED,
    ElementKind.MODULE,
})

# Link types used by the editor's saved data
_LEGACY_RELATION_KINDS = {
    "solid": RelationKind.SUPPORTED_BY.value,
    "dashed": RelationKind.IN_CONTEXT_OF.value,
    "SupportedBy": RelationKind.SUPPORTED_BY.value,
    "InContextOf": RelationKind.IN_CONTEXT_OF.value,
}


def is_satellite_kind(kind: ElementKind) -> bool:
    """Check whether an element kind is laid out as a satellite."""
    return kind in SATELLITE_KINDS


def generate_element_id() -> str:
    """Generate a unique element ID."""
    return f"el{uuid.uuid4().hex[:8]}"


def generate_relation_id() -> str:
    """Generate a unique relation ID."""
    return f"rel{uuid.uuid4().hex[:8]}"


class Position(BaseModel):
    """Centre point of an element on the canvas."""
    x: float = 0
    y: float = 0


class Size(BaseModel):
    """Width and height of an element."""
    width: float = 180
    height: float = 120


class Element(BaseModel):
    """A typed node in the argument graph."""
    id: str = Field(default_factory=generate_element_id)
    kind: ElementKind
    content: str = ""
    label: Optional[str] = None
    module_ref: Optional[str] = None  # Nested diagram (Module kind only)
    size: Size = Field(default_factory=Size)
    position: Position = Field(default_factory=Position)

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert the editor's 'type'/'moduleId' fields to 'kind'/'module_ref'."""
        if isinstance(data, dict):
            data = dict(data)
            if 'type' in data and 'kind' not in data:
                data['kind'] = data.pop('type')
            if 'moduleId' in data and 'module_ref' not in data:
                data['module_ref'] = data.pop('moduleId')
        return data

    @property
    def width(self) -> float:
        return self.size.width

    @property
    def height(self) -> float:
        return self.size.height

    @property
    def is_satellite(self) -> bool:
        return is_satellite_kind(self.kind)

    def display_name(self) -> str:
        """Label shown in diagnostics (falls back to a short id)."""
        return self.label or self.id[:8]

    def bounds(self) -> tuple[float, float, float, float]:
        """Get the bounding box (left, top, right, bottom)."""
        half_w = self.size.width / 2
        half_h = self.size.height / 2
        return (
            self.position.x - half_w,
            self.position.y - half_h,
            self.position.x + half_w,
            self.position.y + half_h,
        )


class Relation(BaseModel):
    """
    A directed relation between two elements.

    Uses `source` and `target` as canonical field names.
    Accepts `from`/`to` and the editor's `type` field on input.
    """
    id: str = Field(default_factory=generate_relation_id)
    source: str  # Source element ID
    target: str  # Target element ID
    kind: RelationKind = RelationKind.SUPPORTED_BY

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to'/'type' fields to 'source'/'target'/'kind'."""
        if isinstance(data, dict):
            data = dict(data)
            if 'from' in data and 'source' not in data:
                data['source'] = data.pop('from')
            if 'to' in data and 'target' not in data:
                data['target'] = data.pop('to')
            if 'type' in data and 'kind' not in data:
                data['kind'] = data.pop('type')
            kind = data.get('kind')
            if isinstance(kind, str) and kind in _LEGACY_RELATION_KINDS:
                data['kind'] = _LEGACY_RELATION_KINDS[kind]
        return data

    @property
    def is_supported_by(self) -> bool:
        return self.kind == RelationKind.SUPPORTED_BY


class Diagram(BaseModel):
    """
    A diagram snapshot.

    This is what the service and CLI receive, and what a module lookup
    resolves a Module element's reference to.
    """
    id: str = Field(default_factory=lambda: f"diagram-{uuid.uuid4().hex[:8]}")
    title: str = "Untitled Diagram"
    elements: list[Element] = Field(default_factory=list)
    relations: list[Relation] = Field(default_factory=list)

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Accept the editor's 'nodes'/'links' lists."""
        if isinstance(data, dict):
            data = dict(data)
            if 'nodes' in data and 'elements' not in data:
                data['elements'] = data.pop('nodes')
            if 'links' in data and 'relations' not in data:
                data['relations'] = data.pop('links')
            metadata = data.get('metadata')
            if 'id' not in data and isinstance(metadata, dict) and metadata.get('id'):
                data['id'] = metadata['id']
        return data

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return self.model_dump(mode="json")

    def top_level_goal(self) -> Optional[Element]:
        """First Goal with no incoming supported-by relation."""
        supported = {r.target for r in self.relations if r.is_supported_by}
        for element in self.elements:
            if element.kind == ElementKind.GOAL and element.id not in supported:
                return element
        return None
