"""
Configuration for the layout engine and the service.

`LayoutConfig` holds the layout tunables and is passed explicitly to
`auto_layout`; `Settings` holds runtime settings for the HTTP service, the
MCP server and the CLI, loaded from the environment (prefix `GSN_`) and `.env`
by `get_settings()` the first time an entry point asks for them.
"""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import ElementKind, SATELLITE_KINDS


GOLDEN_RATIO = 1.618


class KindBounds(BaseModel):
    """Size limits for one family of element kinds."""
    min_width: float
    max_width: float
    min_height: float
    max_height: float

    def clamp_width(self, width: float) -> float:
        return min(max(width, self.min_width), self.max_width)

    def clamp_height(self, height: float) -> float:
        return min(max(height, self.min_height), self.max_height)


# Goal, Strategy, Evidence, Module
DEFAULT_HIERARCHICAL_BOUNDS = KindBounds(min_width=120, max_width=400, min_height=80, max_height=300)
# Context, Assumption, Justification
DEFAULT_SATELLITE_BOUNDS = KindBounds(min_width=90, max_width=280, min_height=60, max_height=200)
# Undeveloped (diamond, always square)
DEFAULT_UNDEVELOPED_BOUNDS = KindBounds(min_width=60, max_width=160, min_height=60, max_height=160)


class LayoutConfig(BaseModel):
    """Tunables for sizing and placement. All lengths are in pixels."""

    # Placement
    sibling_gap: float = 40            # Minimum gap between neighbouring subtrees
    level_gap: float = 80              # Gap between depth rows
    tree_gap: float = 120              # Gap between packed trees
    satellite_gap: float = 30          # Gap between an element and its satellites
    satellite_stack_gap: float = 24    # Gap between stacked satellites
    overlap_margin: float = 10         # Padding added to each box for overlap checks
    overlap_iterations: int = Field(default=50, ge=0)
    start_x: float = 100
    start_y: float = 100

    # Text measurement
    narrow_char_width: float = 8.0     # ASCII / half-width glyphs
    wide_char_width: float = 15.0      # CJK / full-width glyphs
    line_height: float = 20.0
    padding_x: float = 20              # Horizontal text padding (both sides)
    padding_y: float = 20              # Vertical text padding (both sides)
    module_tab_height: float = 30      # Folder tab drawn above module content
    ellipse_factor: float = 1.3        # Text box inflation for ellipse shapes

    hierarchical_bounds: KindBounds = Field(default_factory=lambda: DEFAULT_HIERARCHICAL_BOUNDS.model_copy())
    satellite_bounds: KindBounds = Field(default_factory=lambda: DEFAULT_SATELLITE_BOUNDS.model_copy())
    undeveloped_bounds: KindBounds = Field(default_factory=lambda: DEFAULT_UNDEVELOPED_BOUNDS.model_copy())

    def bounds_for(self, kind: ElementKind) -> KindBounds:
        """Get the size limits for an element kind."""
        if kind == ElementKind.UNDEVELOPED:
            return self.undeveloped_bounds
        if kind in SATELLITE_KINDS:
            return self.satellite_bounds
        return self.hierarchical_bounds


DEFAULT_LAYOUT_CONFIG = LayoutConfig()


class Settings(BaseSettings):
    """Runtime settings loaded from .env and environment variables."""

    model_config = SettingsConfigDict(env_prefix="GSN_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    host: str = "127.0.0.1"
    port: int = 8765
    cors_origins: list[str] = Field(default_factory=lambda: [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ])
    log_level: str = "INFO"
    log_file: str | None = None
    api_base: str = "http://127.0.0.1:8765/api"
    request_timeout: float = 30.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load the runtime settings on first use and reuse them afterwards."""
    return Settings()
