from .layout_tree import run_layout_tree_grower

__all__ = [
    "run_layout_tree_grower",
]
