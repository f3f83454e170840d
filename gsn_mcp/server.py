#!/usr/bin/env python3
"""
GSN Engine MCP Server

Provides MCP tools for AI agents to check and arrange GSN diagrams.
Each tool forwards a diagram snapshot to the engine service and returns
its JSON answer.
"""

import json
import logging
from typing import Optional

import httpx
from mcp.server.fastmcp import FastMCP

from gsn_core import get_settings

logger = logging.getLogger(__name__)

# Create MCP server
mcp = FastMCP("gsn-engine")


# --- HTTP Client Helper ---

def api_request(method: str, endpoint: str, client: Optional[httpx.Client] = None, **kwargs) -> dict:
    """Make a request to the engine service."""
    settings = get_settings()
    url = f"{settings.api_base}{endpoint}"
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=settings.request_timeout)
    try:
        if method == "GET":
            response = client.get(url, params=kwargs.get("params"))
        elif method == "POST":
            response = client.post(url, json=kwargs.get("json"), params=kwargs.get("params"))
        else:
            raise ValueError(f"Unknown method: {method}")

        if response.status_code >= 400:
            try:
                error = response.json().get("detail", "Unknown error")
            except ValueError:
                error = response.text or "Unknown error"
            logger.warning("%s %s failed with %d", method, endpoint, response.status_code)
            raise Exception(f"API error: {error}")

        return response.json()
    finally:
        if owns_client:
            client.close()


def _load_json(text: str, what: str):
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"{what} is not valid JSON: {e}") from e


# ============================================================================
# ENGINE TOOLS
# ============================================================================

@mcp.tool()
def gsn_list_kinds() -> str:
    """
    List the GSN element kinds and relation kinds the engine understands.
    """
    result = api_request("GET", "/enums/kinds")
    return json.dumps(result, indent=2)


@mcp.tool()
def gsn_validate(diagram_json: str) -> str:
    """
    Check a GSN diagram for structural issues.

    Args:
        diagram_json: Diagram snapshot as JSON ({"elements": [...], "relations": [...]};
            the editor's {"nodes": [...], "links": [...]} format is accepted too)

    Returns errors and warnings such as:
    - NO_ROOT_GOAL / MULTIPLE_ROOT_GOALS
    - CYCLIC_REFERENCE
    - ORPHAN_NODES
    - UNDEVELOPED_GOALS
    - NO_EVIDENCE_PATH
    - SINGLE_CHILD_STRATEGY
    """
    diagram = _load_json(diagram_json, "diagram_json")
    result = api_request("POST", "/diagram/validate", json=diagram)
    return json.dumps(result, indent=2)


@mcp.tool()
def gsn_auto_layout(diagram_json: str, modules_json: Optional[str] = None) -> str:
    """
    Compute sizes and positions for every element of a GSN diagram.

    Args:
        diagram_json: Diagram snapshot as JSON
        modules_json: Optional JSON object mapping module references to nested
            diagrams; Module elements are then sized from the nested top goal

    Returns the elements with new `size` and `position` (centre) values.
    Apply them to the diagram to rearrange it.
    """
    payload = {"diagram": _load_json(diagram_json, "diagram_json")}
    if modules_json:
        payload["modules"] = _load_json(modules_json, "modules_json")
    result = api_request("POST", "/layout/auto", json=payload)
    return json.dumps(result, indent=2)


# ============================================================================
# MAIN
# ============================================================================

def main():
    """Entry point for the `gsn-mcp` script."""
    mcp.run()


if __name__ == "__main__":
    main()
