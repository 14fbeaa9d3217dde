"""relation-canvas MCP server: arrange, render and pick on a workspace graph."""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Optional

import yaml
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .controller import CanvasController
from .layout import LayoutOptions, LayoutStrategy
from .parser import parse_yaml, workspace_to_yaml
from .themes import THEMES

logger = logging.getLogger(__name__)


# --- Constants ---
OUTPUT_DIR = Path(os.environ.get("CANVAS_OUTPUT_DIR", Path.home() / ".relation-canvas"))
DEFAULT_WIDTH = 1600
DEFAULT_HEIGHT = 1000

LAYOUT_DESCRIPTIONS = {
    LayoutStrategy.FORCE: "Force-directed: repulsion between all persons, springs along connections.",
    LayoutStrategy.HIERARCHICAL: "BFS layers from a root person (lowest score, most connections).",
    LayoutStrategy.CLUSTER: "Connected components, each in concentric rings around its hub.",
    LayoutStrategy.SCORE_RADIAL: "Distance from the centre grows with score; score 1 in the middle.",
    LayoutStrategy.COMPACT: "Pull the current arrangement together and remove overlaps.",
    LayoutStrategy.INFLUENCE: "Layers by distance to a target person, target on top (needs target_id).",
}

server = Server("relation-canvas")


def _ensure_output_dir():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)


_WORKSPACE_PROPERTY = {
    "type": "string",
    "description": (
        "YAML workspace. Either the full format (root key 'workspace') or the "
        "simplified roster format:\n"
        "persons:\n"
        "  - id: ceo\n"
        "    name: Dana Reyes\n"
        "    score: 1\n"
        "    connects: [cto]\n"
        "  - id: cto\n"
        "    name: Sam Ortiz\n"
    ),
}

_LAYOUT_PROPERTIES = {
    "layout": {
        "type": "string",
        "enum": [s.value for s in LayoutStrategy],
        "description": "Layout strategy to apply before the operation.",
    },
    "seed": {"type": "integer", "description": "Seed for random initial placement.", "default": 0},
    "root_id": {"type": "string", "description": "Root person for the hierarchical layout."},
    "target_id": {"type": "string", "description": "Target person for the influence layout."},
}

_VIEW_PROPERTIES = {
    "width": {"type": "integer", "description": "Viewport width in pixels.", "default": DEFAULT_WIDTH},
    "height": {"type": "integer", "description": "Viewport height in pixels.", "default": DEFAULT_HEIGHT},
    "fit": {
        "type": "boolean",
        "description": "Zoom to fit all visible persons (otherwise use the stored view).",
        "default": True,
    },
}


# --- Tool definitions ---

@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="arrange_workspace",
            description=(
                "Apply an automatic layout to a workspace and return the arranged "
                "workspace as YAML (full format)."
            ),
            inputSchema={
                "type": "object",
                "properties": {"workspace_yaml": _WORKSPACE_PROPERTY, **_LAYOUT_PROPERTIES},
                "required": ["workspace_yaml", "layout"],
            },
        ),
        Tool(
            name="render_workspace",
            description=(
                "Render a workspace (optionally after a layout) to PNG. "
                "Returns the path to the rendered file."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace_yaml": _WORKSPACE_PROPERTY,
                    **_LAYOUT_PROPERTIES,
                    **_VIEW_PROPERTIES,
                    "theme": {"type": "string", "enum": list(THEMES), "default": "dark"},
                    "filename": {
                        "type": "string",
                        "description": "Output filename (without extension). Default: auto-generated.",
                    },
                },
                "required": ["workspace_yaml"],
            },
        ),
        Tool(
            name="list_layouts",
            description="List the available layout strategies.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="pick_connection",
            description=(
                "Render a workspace and report which connection (if any) lies under "
                "a screen pixel, using the colour-keyed hit-test surface."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace_yaml": _WORKSPACE_PROPERTY,
                    **_LAYOUT_PROPERTIES,
                    **_VIEW_PROPERTIES,
                    "x": {"type": "number", "description": "Screen x in pixels."},
                    "y": {"type": "number", "description": "Screen y in pixels."},
                },
                "required": ["workspace_yaml", "x", "y"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    if name == "arrange_workspace":
        return await _arrange_workspace(arguments)
    elif name == "render_workspace":
        return await _render_workspace(arguments)
    elif name == "list_layouts":
        return await _list_layouts(arguments)
    elif name == "pick_connection":
        return await _pick_connection(arguments)
    else:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]


def _controller(args: dict, theme: str = "dark") -> CanvasController:
    """Parse, optionally arrange, and optionally fit.  Raises ValueError on bad input."""
    workspace = parse_yaml(args["workspace_yaml"])
    controller = CanvasController(
        workspace,
        viewport_width=int(args.get("width", DEFAULT_WIDTH)),
        viewport_height=int(args.get("height", DEFAULT_HEIGHT)),
        theme=theme,
    )
    layout: Optional[str] = args.get("layout")
    if layout:
        options = LayoutOptions(
            seed=args.get("seed", 0),
            root_id=args.get("root_id"),
            target_id=args.get("target_id"),
        )
        controller.arrange(layout, options, fit=False)
    if args.get("fit", True):
        controller.zoom_to_fit()
    return controller


async def _arrange_workspace(args: dict) -> list[TextContent]:
    """Arrange a workspace and return it as YAML."""
    try:
        controller = _controller({**args, "fit": False})
    except (ValueError, yaml.YAMLError) as e:
        return [TextContent(type="text", text=f"Failed to arrange workspace: {e}")]

    snapshot = controller.state.snapshot()
    logger.info(f"Arranged {len(snapshot.persons)} persons with '{args.get('layout')}'")
    return [TextContent(type="text", text=workspace_to_yaml(snapshot))]


async def _render_workspace(args: dict) -> list[TextContent]:
    """Render a workspace to PNG."""
    _ensure_output_dir()
    theme = args.get("theme", "dark")
    filename = args.get("filename", str(uuid.uuid4())[:8])
    output_path = str(OUTPUT_DIR / f"{filename}.png")

    try:
        controller = _controller(args, theme=theme)
        controller.redraw()
        controller.renderer.to_png(output_path)
    except (ValueError, yaml.YAMLError) as e:
        return [TextContent(type="text", text=f"Rendering failed: {e}")]

    state = controller.state
    return [TextContent(
        type="text",
        text=json.dumps({
            "status": "success",
            "path": output_path,
            "persons": len(state.visible_persons),
            "connections": len(state.connections),
            "groups": len(state.groups),
            "layout": args.get("layout"),
            "scale": round(controller.transform.scale, 3),
        }),
    )]


async def _list_layouts(args: dict) -> list[TextContent]:
    layouts = [
        {"name": strategy.value, "description": description}
        for strategy, description in LAYOUT_DESCRIPTIONS.items()
    ]
    return [TextContent(type="text", text=json.dumps({"layouts": layouts}))]


async def _pick_connection(args: dict) -> list[TextContent]:
    """Hit-test one screen pixel against the rendered connections."""
    try:
        controller = _controller(args)
        controller.redraw()
    except (ValueError, yaml.YAMLError) as e:
        return [TextContent(type="text", text=f"Pick failed: {e}")]

    conn_id = controller.renderer.connection_at(float(args["x"]), float(args["y"]))
    result = {"connection_id": conn_id}
    if conn_id is not None:
        conn = controller.state.get_connection(conn_id)
        result.update({"from_id": conn.from_id, "to_id": conn.to_id})
    return [TextContent(type="text", text=json.dumps(result))]


def main():
    """Entry point for the MCP server."""
    import asyncio

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    asyncio.run(_run())


async def _run():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    main()
