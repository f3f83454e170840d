#!/usr/bin/env python3
"""GSN engine CLI - validate and lay out diagram snapshots stored as JSON."""

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from .config import LayoutConfig, get_settings
from .layout import auto_layout
from .logging_config import setup_logging
from .models import Diagram
from .validation import validate_diagram, validation_summary

logger = logging.getLogger(__name__)


def _json_out(data, exit_code: int = 0):
    print(json.dumps(data, ensure_ascii=False))
    sys.exit(exit_code)


def _read_json(path: str):
    """Read JSON from a file path, or from stdin when path is '-'."""
    try:
        if path == "-":
            return json.load(sys.stdin)
        with open(Path(path), encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        _json_out({"success": False, "error": f"File not found: {path}"}, 1)
    except json.JSONDecodeError as e:
        _json_out({"success": False, "error": f"Invalid JSON in {path}: {e}"}, 1)


def _load_input(path: str, diagram_id: str | None) -> tuple[Diagram, dict[str, Diagram]]:
    """
    Load a diagram and the nested diagrams it can refer to.

    Accepts a bare diagram, or a project file holding a `modules` mapping
    (the editor's export format), from which `diagram_id` (default: the
    project's current diagram, else "root") is selected.
    """
    data = _read_json(path)
    if not isinstance(data, dict):
        _json_out({"success": False, "error": "Expected a JSON object"}, 1)

    try:
        modules = {
            key: Diagram.model_validate(value)
            for key, value in (data.get("modules") or {}).items()
        }
        if modules and "elements" not in data and "nodes" not in data:
            selected = diagram_id or data.get("currentDiagramId") or "root"
            if selected not in modules:
                _json_out({"success": False, "error": f"Diagram not found in project: {selected}"}, 1)
            diagram = modules[selected]
        else:
            diagram = Diagram.model_validate(data)
    except ValidationError as e:
        _json_out({"success": False, "error": "Invalid diagram", "details": json.loads(e.json(include_url=False))}, 1)

    return diagram, modules


# ── Commands ─────────────────────────────────────────────────────────────────

def cmd_validate(args):
    diagram, _ = _load_input(args.file, args.diagram_id)
    result = validate_diagram(diagram.elements, diagram.relations)
    _json_out({
        "success": True,
        "result": result.to_dict(),
        "summary": validation_summary(result),
    }, 0 if result.is_valid else 1)


def cmd_layout(args):
    diagram, modules = _load_input(args.file, args.diagram_id)
    if args.modules:
        extra = _read_json(args.modules)
        try:
            modules.update({k: Diagram.model_validate(v) for k, v in extra.items()})
        except (ValidationError, AttributeError) as e:
            _json_out({"success": False, "error": f"Invalid modules file: {e}"}, 1)

    config = None
    if args.config:
        try:
            config = LayoutConfig.model_validate(_read_json(args.config))
        except ValidationError as e:
            _json_out({"success": False, "error": "Invalid layout config", "details": json.loads(e.json(include_url=False))}, 1)

    elements = auto_layout(diagram.elements, diagram.relations, module_lookup=modules, config=config)
    laid_out = diagram.model_copy(update={"elements": elements})

    if args.output:
        Path(args.output).write_text(json.dumps(laid_out.to_json_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info("Wrote %d elements to %s", len(elements), args.output)
        _json_out({"success": True, "file_path": args.output, "elements": len(elements)})

    _json_out({"success": True, "diagram": laid_out.to_json_dict()})


# ── Main ─────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gsn", description="GSN diagram validation and layout")
    parser.add_argument("--log-level", default=None, help="Defaults to GSN_LOG_LEVEL or INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("validate", help="Report structural errors and warnings")
    p.add_argument("file", help="Diagram or project JSON file ('-' for stdin)")
    p.add_argument("--diagram-id", default=None)

    p = sub.add_parser("layout", help="Compute sizes and positions")
    p.add_argument("file", help="Diagram or project JSON file ('-' for stdin)")
    p.add_argument("--diagram-id", default=None)
    p.add_argument("--modules", default=None, help="JSON object of nested diagrams by module reference")
    p.add_argument("--config", default=None, help="JSON layout configuration")
    p.add_argument("--output", default=None, help="Write the laid-out diagram here instead of stdout")

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(args.log_level or settings.log_level, settings.log_file)

    cmd_map = {
        "validate": cmd_validate,
        "layout": cmd_layout,
    }
    cmd_map[args.command](args)


if __name__ == "__main__":
    main()
