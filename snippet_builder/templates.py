"""
Snippet template gallery shown in the admin "add snippet" menu.
"""

from typing import Dict

from pydantic import BaseModel

from snippet_builder.models import Size


class SnippetTemplate(BaseModel):
    key: str
    name: str
    html: str
    default_size: Size


SNIPPET_TEMPLATES: Dict[str, SnippetTemplate] = {
    t.key: t
    for t in [
        SnippetTemplate(
            key="blank",
            name="Blank Snippet",
            html='<div class="custom-snippet"></div>',
            default_size=Size(width=300, height=200),
        ),
        SnippetTemplate(
            key="nav-menu",
            name="Navigation Menu",
            html='<div class="navigation-menu"><div class="nav-buttons"></div></div>',
            default_size=Size(width=600, height=80),
        ),
        SnippetTemplate(
            key="nav-button",
            name="Navigation Button",
            html='<div class="nav-button-container"><button class="btn btn-primary nav-button">Go to Home</button></div>',
            default_size=Size(width=150, height=60),
        ),
        SnippetTemplate(
            key="globe",
            name="3D Globe",
            html='<div class="globe-container" style="width: 100%; height: 100%;"></div>',
            default_size=Size(width=600, height=400),
        ),
        SnippetTemplate(
            key="ai-chat",
            name="AI Chat",
            html='<div class="ai-chat"><div class="chat-messages"></div><div class="chat-input"></div></div>',
            default_size=Size(width=400, height=500),
        ),
    ]
}


def get_template(key: str) -> SnippetTemplate:
    """Raises KeyError for unknown template keys."""
    return SNIPPET_TEMPLATES[key]
