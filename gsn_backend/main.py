"""
GSN Engine Service - FastAPI Application

Exposes the validator and the layout engine over HTTP for the editor and
for exporters that want a diagnostics report. It provides:
- Structural validation of a diagram snapshot
- Automatic layout of a diagram snapshot
- Enumerations of element and relation kinds for the frontend

The service keeps no state: every request carries its own snapshot.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from gsn_core import (
    Diagram, ElementKind, LayoutConfig, RelationKind,
    auto_layout, get_settings, validate_diagram, validation_summary,
)
from gsn_core.logging_config import setup_logging

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    setup_logging(settings.log_level, settings.log_file)
    logger.info("GSN engine service starting")
    yield
    logger.info("GSN engine service stopped")


# --- FastAPI App ---

app = FastAPI(
    title="GSN Engine API",
    description="Structural validation and automatic layout for GSN diagrams",
    version="1.0.0",
    lifespan=lifespan
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


# --- Enums for Frontend ---

@app.get("/api/enums/kinds")
async def get_kinds():
    """Get available element and relation kinds."""
    return {
        "elements": [k.value for k in ElementKind],
        "relations": [k.value for k in RelationKind],
    }


# --- Validation ---

@app.post("/api/diagram/validate")
async def validate(diagram: Diagram):
    """
    Validate a diagram snapshot for structural issues.

    Returns the validation result (errors and warnings) and a summary.
    """
    result = validate_diagram(diagram.elements, diagram.relations)
    logger.debug("Validated diagram %s: %s", diagram.id, result.codes())
    return {
        "success": True,
        "result": result.to_dict(),
        "summary": validation_summary(result),
    }


# --- Layout ---

class AutoLayoutRequest(BaseModel):
    diagram: Diagram
    modules: dict[str, Diagram] = Field(default_factory=dict)  # module_ref -> nested diagram
    config: Optional[LayoutConfig] = None


@app.post("/api/layout/auto")
async def layout(request: AutoLayoutRequest):
    """Compute sizes and positions for every element of a diagram snapshot."""
    diagram = request.diagram
    elements = auto_layout(
        diagram.elements,
        diagram.relations,
        module_lookup=request.modules,
        config=request.config,
    )
    logger.debug("Laid out diagram %s (%d elements)", diagram.id, len(elements))
    return {
        "success": True,
        "elements": [e.model_dump(mode="json") for e in elements],
    }


# --- Run with uvicorn ---

def run():
    """Entry point for the `gsn-server` script."""
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
