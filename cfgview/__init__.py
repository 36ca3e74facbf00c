"""cfgview - language-agnostic control flow graphs and layered layouts."""

__version__ = "0.1.0"

from .cfg_builder import Cfg, CfgBlock, CfgBuilder, CfgEdge, FlowFragment, build_cfg
from .layout import (
    Camera,
    LayoutBlock,
    LayoutConfig,
    assign_layers,
    find_back_edges,
    fit_to_view,
    hit_test,
    layout_bounds,
    layout_cfg,
)
from .node_kinds import DEFAULT_KINDS, KindTable
from .syntax import AstNode, Position

__all__ = [
    "__version__",
    "AstNode",
    "Camera",
    "Cfg",
    "CfgBlock",
    "CfgBuilder",
    "CfgEdge",
    "DEFAULT_KINDS",
    "FlowFragment",
    "KindTable",
    "LayoutBlock",
    "LayoutConfig",
    "Position",
    "assign_layers",
    "build_cfg",
    "find_back_edges",
    "fit_to_view",
    "hit_test",
    "layout_bounds",
    "layout_cfg",
]
