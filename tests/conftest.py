import time
from typing import Dict, List
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from snippet_builder.config_loader import EditorSettings
from snippet_builder.interaction import ContainerRect
from snippet_builder.models import NavButtonContent, Page, PageSummary, Position, Size, Widget, WidgetKind
from snippet_builder.optimistic_store import OptimisticStore
from snippet_builder.page_client import PageStoreError


class FakePageClient:
    """In-memory stand-in for PageStoreClient that records every PUT."""

    def __init__(self, pages: List[Page]):
        self.pages: Dict[str, Page] = {p.id: p.model_copy(deep=True) for p in pages}
        self.fail = False
        self.calls: List[tuple[str, List[Widget]]] = []

    async def get_page(self, page_id: str) -> Page:
        if page_id not in self.pages:
            raise PageStoreError("Page store returned 404", status_code=404)
        return self.pages[page_id].model_copy(deep=True)

    async def list_pages(self) -> List[PageSummary]:
        return [p.summary() for p in self.pages.values()]

    async def update_page_widgets(self, page_id: str, widgets: List[Widget]) -> Page:
        self.calls.append((page_id, [w.model_copy(deep=True) for w in widgets]))
        if self.fail:
            raise PageStoreError("Page store returned 500", status_code=500)
        page = self.pages[page_id]
        page.widgets = [w.model_copy(deep=True) for w in widgets]
        page.updated_at = time.time()
        return page.model_copy(deep=True)

    def last_widget(self, widget_id: str) -> Widget:
        _, widgets = self.calls[-1]
        return next(w for w in widgets if w.id == widget_id)


def make_snippet(widget_id: str, x: int = 0, y: int = 0, width: int = 400, height: int = 300) -> Widget:
    return Widget(
        id=widget_id,
        kind=WidgetKind.SNIPPET,
        position=Position(x=x, y=y),
        size=Size(width=width, height=height),
        html="<p>hi</p>",
    )


def make_nav_button(widget_id: str, target: str = "about", x: int = 20, y: int = 20) -> Widget:
    return Widget(
        id=widget_id,
        kind=WidgetKind.NAV_BUTTON,
        position=Position(x=x, y=y),
        nav=NavButtonContent(target_page_id=target, label="Go to About"),
    )


@pytest.fixture
def home_page() -> Page:
    return Page(
        id="home",
        name="Home",
        is_default=True,
        widgets=[make_snippet("a"), make_snippet("b", x=500, y=400), make_nav_button("nav1")],
    )


@pytest.fixture
def client(home_page) -> FakePageClient:
    return FakePageClient([home_page, Page(id="about", name="About")])


@pytest.fixture
def settings() -> EditorSettings:
    return EditorSettings(debounce_delay=0.02)


@pytest.fixture
def container() -> ContainerRect:
    return ContainerRect(left=0, top=0, width=1000, height=800)


@pytest.fixture
def callbacks():
    return MagicMock(name="render"), MagicMock(name="error")


@pytest_asyncio.fixture
async def store(client, callbacks) -> OptimisticStore:
    on_render, on_error = callbacks
    return await OptimisticStore.load(client, "home", on_render=on_render, on_error=on_error)
