"""
Layered (Sugiyama-style) layout for control flow graphs.

Pipeline:
1. Adjacency (edges to unknown block ids are ignored)
2. Layer assignment (longest path from roots, memoised, with a cycle guard)
3. Crossing reduction (single barycenter pass, stable)
4. Block sizing from measured text
5. Coordinate assignment (layers centred, then shifted so min x is 0)

Back edges (edges whose target layer is at or above the source layer) are
derived afterwards for the renderer; they do not affect placement.
"""

import logging
from dataclasses import asdict, dataclass, fields
from typing import Callable

from . import text_metrics
from .cfg_builder import Cfg, CfgBlock

logger = logging.getLogger(__name__)

MeasureText = Callable[[str, str], float]

FIT_PADDING = 60
MIN_ZOOM = 0.1
MAX_ZOOM = 3.0


@dataclass(slots=True)
class LayoutConfig:
    """Block sizing and spacing, in layout units (pixels)."""

    font: str = text_metrics.BLOCK_FONT
    small_font: str = text_metrics.BLOCK_FONT_SMALL
    padding_x: float = 16
    padding_y: float = 10
    min_width: float = 100
    max_width: float = 280
    gap_x: float = 60
    gap_y: float = 56
    line_height: float = 16
    label_line_height: float = 14

    @classmethod
    def from_dict(cls, data: dict | None) -> "LayoutConfig":
        """Build a config from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(slots=True)
class LayoutBlock:
    """A CFG block with its position. ``row`` is the layer, ``column`` the
    index within the layer after reordering."""

    block: CfgBlock
    x: float
    y: float
    width: float
    height: float
    column: int
    row: int

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.right and self.y <= y <= self.bottom

    def to_dict(self) -> dict:
        return {
            "id": self.block.id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "column": self.column,
            "row": self.row,
            "block": self.block.to_dict(),
        }


# =============================================================================
# 1. Adjacency
# =============================================================================


def build_adjacency(cfg: Cfg) -> tuple[dict[str, list[str]], dict[str, list[str]]]:
    """Successor and predecessor lists, restricted to ids present in ``cfg.blocks``."""
    successors: dict[str, list[str]] = {b.id: [] for b in cfg.blocks}
    predecessors: dict[str, list[str]] = {b.id: [] for b in cfg.blocks}
    for edge in cfg.edges:
        if edge.from_id in successors and edge.to_id in predecessors:
            successors[edge.from_id].append(edge.to_id)
            predecessors[edge.to_id].append(edge.from_id)
    return successors, predecessors


# =============================================================================
# 2. Layer assignment
# =============================================================================


def assign_layers(cfg: Cfg) -> dict[str, int]:
    """Assign each block layer = 1 + max(predecessor layers), 0 for roots.

    Resolution is memoised depth-first over predecessors, starting from each
    block in construction order. A block revisited while still on the active
    path reports layer 0 to its caller. Inside cycles this under-places
    blocks; back-edge classification is defined relative to exactly this
    result, so it must not be replaced with cycle-aware layering.

    Uses an explicit stack instead of recursion (same visiting order).
    """
    _, predecessors = build_adjacency(cfg)
    return _assign_layers([b.id for b in cfg.blocks], predecessors)


def _assign_layers(order: list[str], predecessors: dict[str, list[str]]) -> dict[str, int]:
    layer: dict[str, int] = {}
    visited: set[str] = set()

    for root in order:
        if root in layer:
            continue
        visited.add(root)
        # Frames: [block id, next predecessor index, max predecessor layer so far]
        stack: list[list] = [[root, 0, -1]]
        while stack:
            frame = stack[-1]
            node, index, best = frame
            preds = predecessors[node]
            if index < len(preds):
                frame[1] = index + 1
                pred = preds[index]
                if pred in layer:
                    frame[2] = max(best, layer[pred])
                elif pred in visited:
                    # On the active path: cycle
                    frame[2] = max(best, 0)
                else:
                    visited.add(pred)
                    stack.append([pred, 0, -1])
                continue

            stack.pop()
            layer[node] = best + 1
            if stack:
                stack[-1][2] = max(stack[-1][2], layer[node])

    return layer


# =============================================================================
# 3. Crossing reduction
# =============================================================================


def _group_by_layer(blocks: list[CfgBlock], layer: dict[str, int]) -> dict[int, list[CfgBlock]]:
    layers: dict[int, list[CfgBlock]] = {}
    for block in blocks:
        layers.setdefault(layer.get(block.id, 0), []).append(block)
    return layers


def _order_layers(
    layers: dict[int, list[CfgBlock]], predecessors: dict[str, list[str]]
) -> list[int]:
    """Reorder each layer by the barycenter of its predecessors in the layer
    above. One top-down pass; the sort is stable, so ties keep construction
    order. Returns the sorted layer keys."""
    keys = sorted(layers)
    for prev_key, key in zip(keys, keys[1:]):
        prev_pos = {b.id: i for i, b in enumerate(layers[prev_key])}

        def barycenter(block: CfgBlock) -> float:
            preds = predecessors.get(block.id) or []
            if not preds:
                return 0.0
            # Predecessors outside the layer above count as position 0
            return sum(prev_pos.get(p, 0) for p in preds) / len(preds)

        layers[key].sort(key=barycenter)
    return keys


# =============================================================================
# 4. Sizing
# =============================================================================


def block_dimensions(
    block: CfgBlock, measure_text: MeasureText, config: LayoutConfig
) -> tuple[float, float]:
    """Width and height of a block from its label and statement lines."""
    widths = [measure_text(block.label, config.font)]
    widths.extend(measure_text(s, config.small_font) for s in block.statements)
    text_width = max(widths)
    width = min(config.max_width, max(config.min_width, text_width + config.padding_x * 2))

    statements_height = 0.0
    if block.statements:
        statements_height = len(block.statements) * config.line_height + 4
    height = config.padding_y * 2 + config.label_line_height + statements_height
    return width, height


# =============================================================================
# 5. Coordinates
# =============================================================================


def layout_cfg(
    cfg: Cfg,
    measure_text: MeasureText | None = None,
    config: LayoutConfig | None = None,
) -> list[LayoutBlock]:
    """Compute a layered layout for a CFG.

    Args:
        cfg: Graph to lay out (not modified).
        measure_text: ``(text, font) -> width``; defaults to a monospace
            estimate.
        config: Sizing and spacing; defaults to ``LayoutConfig()``.

    Returns:
        One LayoutBlock per block, ordered by layer then column. Empty for an
        empty graph.
    """
    if not cfg.blocks:
        return []
    config = config or LayoutConfig()
    measure = measure_text or text_metrics.measure_text

    _, predecessors = build_adjacency(cfg)
    layer = _assign_layers([b.id for b in cfg.blocks], predecessors)
    layers = _group_by_layer(cfg.blocks, layer)
    keys = _order_layers(layers, predecessors)

    placed: list[LayoutBlock] = []
    current_y = 0.0
    for key in keys:
        blocks = layers[key]
        dims = [block_dimensions(b, measure, config) for b in blocks]
        max_height = max(h for _, h in dims)
        total_width = sum(w for w, _ in dims) + (len(blocks) - 1) * config.gap_x

        current_x = -total_width / 2
        for column, (block, (width, height)) in enumerate(zip(blocks, dims)):
            placed.append(
                LayoutBlock(
                    block=block,
                    x=current_x,
                    y=current_y,
                    width=width,
                    height=height,
                    column=column,
                    row=key,
                )
            )
            current_x += width + config.gap_x
        current_y += max_height + config.gap_y

    min_x = min(lb.x for lb in placed)
    for lb in placed:
        lb.x -= min_x

    logger.debug(f"Laid out {len(placed)} blocks in {len(keys)} layers")
    return placed


# =============================================================================
# Derived queries for renderers and interaction layers
# =============================================================================


def find_back_edges(cfg: Cfg, layout_blocks: list[LayoutBlock]) -> set[str]:
    """Keys ("<from>-><to>") of edges whose target row is at or above the source row."""
    by_id = {lb.block.id: lb for lb in layout_blocks}
    back_edges = set()
    for edge in cfg.edges:
        source = by_id.get(edge.from_id)
        target = by_id.get(edge.to_id)
        if source is not None and target is not None and target.row <= source.row:
            back_edges.add(edge.key)
    logger.debug(f"Classified {len(back_edges)} of {len(cfg.edges)} edges as back edges")
    return back_edges


def hit_test(layout_blocks: list[LayoutBlock], x: float, y: float) -> LayoutBlock | None:
    """Block under a world-space point. Later (topmost drawn) blocks win."""
    for lb in reversed(layout_blocks):
        if lb.contains(x, y):
            return lb
    return None


def layout_bounds(layout_blocks: list[LayoutBlock]) -> tuple[float, float]:
    """(width, height) extent of the layout, measured from the origin."""
    width = 0.0
    height = 0.0
    for lb in layout_blocks:
        width = max(width, lb.right)
        height = max(height, lb.bottom)
    return width, height


@dataclass(slots=True)
class Camera:
    """Pan/zoom transform: screen = world * zoom + (x, y)."""

    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0

    def screen_to_world(self, sx: float, sy: float) -> tuple[float, float]:
        return (sx - self.x) / self.zoom, (sy - self.y) / self.zoom

    def world_to_screen(self, wx: float, wy: float) -> tuple[float, float]:
        return wx * self.zoom + self.x, wy * self.zoom + self.y

    def zoomed_at(self, sx: float, sy: float, factor: float) -> "Camera":
        """Camera zoomed by ``factor`` keeping screen point (sx, sy) fixed."""
        zoom = min(MAX_ZOOM, max(MIN_ZOOM, self.zoom * factor))
        wx, wy = self.screen_to_world(sx, sy)
        return Camera(x=sx - wx * zoom, y=sy - wy * zoom, zoom=zoom)


def fit_to_view(
    bounds: tuple[float, float],
    viewport_width: float,
    viewport_height: float,
    padding: float = FIT_PADDING,
) -> Camera:
    """Camera that fits ``bounds`` in the viewport, never zooming past 1:1.

    The layout is centred horizontally and pinned ``padding`` from the top.
    """
    if viewport_width <= 0 or viewport_height <= 0:
        return Camera()
    width, height = bounds
    scale_x = (viewport_width - padding * 2) / max(1.0, width)
    scale_y = (viewport_height - padding * 2) / max(1.0, height)
    zoom = min(1.0, scale_x, scale_y)
    return Camera(x=(viewport_width - width * zoom) / 2, y=padding, zoom=zoom)
