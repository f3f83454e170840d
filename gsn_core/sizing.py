"""
Content-driven element sizing.

Element boxes are sized from their text: markup is stripped, the text width
is estimated glyph by glyph (full-width CJK glyphs count wider than ASCII),
and the box is shaped towards the golden ratio while leaving room for the
wrapped text. Each kind family has its own size limits.
"""

import html
import math
import re
import unicodedata
from collections.abc import Mapping
from typing import TYPE_CHECKING, Optional

from .config import DEFAULT_LAYOUT_CONFIG, GOLDEN_RATIO, LayoutConfig
from .models import ElementKind, Size

if TYPE_CHECKING:
    from .models import Diagram, Element


# Kinds drawn as ellipses; their text box must fit inside the curve
ELLIPSE_KINDS = frozenset({
    ElementKind.EVIDENCE,
    ElementKind.ASSUMPTION,
    ElementKind.JUSTIFICATION,
})

_BREAK_TAG = re.compile(r"<br\s*/?>|</(?:p|div|li|h[1-6]|tr|blockquote)\s*>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]*>")
_MD_LINK = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_MD_EMPHASIS = re.compile(r"(\*\*|__|~~|`)")
_MD_SINGLE_EMPHASIS = re.compile(r"(?<![\w*])[*_]([^*_\n]+)[*_](?![\w*])")
_MD_LINE_PREFIX = re.compile(r"^\s*(?:#{1,6}\s+|[-*+]\s+|>\s*|\d+\.\s+)")
_SPACES = re.compile(r"[ \t ]+")


def strip_markup(content: str) -> str:
    """
    Reduce rich content to the plain text that will be displayed.

    Handles the HTML produced by the editor and light Markdown. Block-level
    tags and <br> become line breaks.
    """
    if not content:
        return ""

    text = _BREAK_TAG.sub("\n", content)
    text = _TAG.sub("", text)
    text = html.unescape(text)
    text = _MD_LINK.sub(r"\1", text)
    text = _MD_EMPHASIS.sub("", text)
    text = _MD_SINGLE_EMPHASIS.sub(r"\1", text)

    lines = []
    for line in text.splitlines():
        line = _MD_LINE_PREFIX.sub("", line)
        line = _SPACES.sub(" ", line).strip()
        lines.append(line)

    # Drop leading/trailing blank lines
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


def char_width(char: str, config: LayoutConfig = DEFAULT_LAYOUT_CONFIG) -> float:
    """Estimated rendered width of a single glyph."""
    if unicodedata.combining(char):
        return 0.0
    if unicodedata.east_asian_width(char) in ("W", "F"):
        return config.wide_char_width
    return config.narrow_char_width


def estimate_text_width(text: str, config: LayoutConfig = DEFAULT_LAYOUT_CONFIG) -> float:
    """Estimated width of a single unwrapped line of text."""
    return sum(char_width(c, config) for c in text)


def resolve_display_text(
    element: "Element",
    module_lookup: Optional[Mapping[str, "Diagram"]] = None,
) -> str:
    """
    Get the plain text an element displays.

    A Module shows the top-level goal of its nested diagram when the lookup
    can resolve it, and its own content otherwise.
    """
    if element.kind == ElementKind.MODULE and element.module_ref and module_lookup:
        nested = module_lookup.get(element.module_ref)
        if nested is not None:
            goal = nested.top_level_goal()
            if goal is not None:
                return strip_markup(goal.content)
    return strip_markup(element.content)


def _wrapped_line_count(line_widths: list[float], available: float) -> int:
    return sum(max(1, math.ceil(w / available)) for w in line_widths)


def size_for_text(
    text: str,
    kind: ElementKind,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> Size:
    """
    Compute the box size for plain text shown in an element of `kind`.

    Args:
        text: Plain text (markup already stripped)
        kind: Element kind, selects shape and size limits
        config: Layout tunables

    Returns:
        A new Size with integral width and height
    """
    bounds = config.bounds_for(kind)

    if kind == ElementKind.UNDEVELOPED:
        # Diamond: the inscribed text square is half the diagonal
        if not text:
            side = bounds.min_width
        else:
            area = estimate_text_width(text.replace("\n", ""), config) * config.line_height
            side = 2 * math.sqrt(area) + config.padding_x
        side = min(bounds.clamp_width(side), bounds.clamp_height(side))
        side = math.ceil(side)
        return Size(width=side, height=side)

    if not text:
        height = bounds.min_height
        return Size(width=round(bounds.clamp_width(height * GOLDEN_RATIO)), height=height)

    factor = config.ellipse_factor if kind in ELLIPSE_KINDS else 1.0
    extra_top = config.module_tab_height if kind == ElementKind.MODULE else 0.0
    line_widths = [estimate_text_width(line, config) for line in text.split("\n")]
    total = sum(line_widths)

    def needed_height(box_width: float) -> float:
        available = max((box_width - config.padding_x) / factor, config.wide_char_width)
        lines = _wrapped_line_count(line_widths, available)
        return lines * config.line_height * factor + config.padding_y + extra_top

    # Text area shaped to the golden ratio
    inner_width = math.sqrt(total * config.line_height * GOLDEN_RATIO)
    width = bounds.clamp_width(inner_width * factor + config.padding_x)
    height = max(needed_height(width), width / GOLDEN_RATIO)

    if height > bounds.max_height and width < bounds.max_width:
        width = bounds.max_width
        height = max(needed_height(width), width / GOLDEN_RATIO)

    height = bounds.clamp_height(height)
    return Size(width=math.ceil(width), height=math.ceil(height))


def measure_element(
    element: "Element",
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
    module_lookup: Optional[Mapping[str, "Diagram"]] = None,
) -> Size:
    """Compute a fresh size for an element from its displayed content."""
    return size_for_text(resolve_display_text(element, module_lookup), element.kind, config)
