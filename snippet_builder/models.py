"""
Data models for pages and positionable widgets (snippets / nav buttons).
"""

import time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class WidgetKind(str, Enum):
    SNIPPET = "snippet"
    NAV_BUTTON = "nav_button"


class Position(BaseModel):
    """Top-left anchored pixel position inside the page container."""
    x: int = 0
    y: int = 0


class Size(BaseModel):
    width: int = 300
    height: int = 200


class NavButtonContent(BaseModel):
    """Payload of a navigation button."""
    target_page_id: str
    label: str = ""
    style: str = Field(default="btn-primary", description="CSS class of the rendered button")


class Widget(BaseModel):
    """A positionable unit on a page."""
    id: str
    kind: WidgetKind = WidgetKind.SNIPPET
    position: Position = Field(default_factory=Position)
    size: Optional[Size] = Field(default=None, description="Snippets only; nav buttons have an intrinsic size")
    html: Optional[str] = Field(default=None, description="Snippet payload")
    nav: Optional[NavButtonContent] = Field(default=None, description="Nav button payload")
    name: str = Field(default="", description="Display label for snippets")

    @property
    def is_resizable(self) -> bool:
        return self.kind == WidgetKind.SNIPPET


class PageSummary(BaseModel):
    """Public identity of a page, as exposed to embedded content."""
    id: str
    name: str


class Page(BaseModel):
    """A stored page: an unordered collection of widgets plus flags."""
    id: str
    name: str
    widgets: List[Widget] = Field(default_factory=list)
    is_default: bool = False
    is_public: bool = True
    updated_at: float = Field(default_factory=time.time)

    def index_of(self, widget_id: str) -> int:
        for i, w in enumerate(self.widgets):
            if w.id == widget_id:
                return i
        return -1

    def find(self, widget_id: str) -> Optional[Widget]:
        idx = self.index_of(widget_id)
        return self.widgets[idx] if idx >= 0 else None

    def summary(self) -> PageSummary:
        return PageSummary(id=self.id, name=self.name)
