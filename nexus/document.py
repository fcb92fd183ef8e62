"""
Process-wide presentation state: the root class list and style variables
that the rendering layer reads.
"""

import os
from typing import Dict, Set


class DocumentRoot:
    """Stand-in for the page's root element."""

    def __init__(self):
        self.class_list: Set[str] = set()
        self.style: Dict[str, str] = {}

    def add_class(self, name: str):
        self.class_list.add(name)

    def remove_class(self, *names: str):
        for name in names:
            self.class_list.discard(name)

    def set_property(self, name: str, value: str):
        self.style[name] = value

    def to_dict(self) -> dict:
        return {"classes": sorted(self.class_list), "style": dict(self.style)}


def system_color_scheme() -> str:
    """Platform color-scheme preference, read at call time."""
    scheme = os.getenv("NEXUS_COLOR_SCHEME", "dark").strip().lower()
    return scheme if scheme in ("light", "dark") else "dark"
