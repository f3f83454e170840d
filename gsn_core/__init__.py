"""
GSN Core - Shared models, structural validation and automatic layout.

This module provides the functionality used by the service, the CLI and the
MCP tools, ensuring a single source of truth for argument diagram logic.
Both engines are pure functions over a diagram snapshot.
"""

from .models import (
    # Enums
    ElementKind,
    RelationKind,
    SATELLITE_KINDS,
    TERMINAL_KINDS,
    # Core models
    Position,
    Size,
    Element,
    Relation,
    Diagram,
    is_satellite_kind,
)

from .config import LayoutConfig, KindBounds, Settings, get_settings
from .validation import (
    validate_diagram,
    validation_summary,
    Diagnostic,
    DiagnosticCode,
    IssueSeverity,
    ValidationResult,
)
from .sizing import strip_markup, estimate_text_width, measure_element, size_for_text
from .layout import auto_layout

__all__ = [
    # Enums
    "ElementKind",
    "RelationKind",
    "SATELLITE_KINDS",
    "TERMINAL_KINDS",
    # Models
    "Position",
    "Size",
    "Element",
    "Relation",
    "Diagram",
    "is_satellite_kind",
    # Configuration
    "LayoutConfig",
    "KindBounds",
    "Settings",
    "get_settings",
    # Validation
    "validate_diagram",
    "validation_summary",
    "Diagnostic",
    "DiagnosticCode",
    "IssueSeverity",
    "ValidationResult",
    # Sizing
    "strip_markup",
    "estimate_text_width",
    "measure_element",
    "size_for_text",
    # Layout
    "auto_layout",
]
