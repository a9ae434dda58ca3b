import asyncio

import pytest

from pdfrecon_lib.config import AppConfig, RenderConfig
from pdfrecon_lib.exceptions import RenderCancelledError
from pdfrecon_lib.models import GlyphRun, Viewport

PDF_BYTES = b"%PDF-1.4\n% fake document for engine fakes\n"


class FakeRenderTask:
    """Mimics engine.RenderTask. Behaviour: 'ok', 'hang', 'error' or 'queued'."""

    QUEUE_DELAY = 0.6
    RUN_TIME = 0.6

    def __init__(self, surface, behaviour, page_num, events):
        loop = asyncio.get_running_loop()
        self.promise = loop.create_future()
        self.page_num = page_num
        self.events = events
        self.cancel_calls = 0
        self.started = loop.create_future()
        if behaviour == "queued":
            # Waits behind an earlier job on the worker, then takes RUN_TIME to render.
            loop.call_later(self.QUEUE_DELAY, self._start_queued, surface)
            return
        self.started.set_result(None)
        if behaviour == "ok":
            surface.width, surface.height = 10, 20
            self.promise.set_result(surface)
        elif behaviour == "error":
            self.promise.set_exception(RuntimeError(f"engine exploded on page {page_num}"))

    def _start_queued(self, surface):
        if self.promise.done():
            return
        self.started.set_result(None)
        asyncio.get_running_loop().call_later(self.RUN_TIME, self._finish, surface)

    def _finish(self, surface):
        if not self.promise.done():
            surface.width, surface.height = 10, 20
            self.promise.set_result(surface)

    def cancel(self):
        self.cancel_calls += 1
        self.events.append(("cancel", self.page_num))
        if not self.promise.done():
            self.promise.set_exception(RenderCancelledError(self.page_num))

    async def wait_started(self, timeout):
        done, _ = await asyncio.wait(
            {self.started, self.promise}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
        return bool(done)

    async def wait_settled(self, timeout):
        done, _ = await asyncio.wait({self.promise}, timeout=timeout)
        if done and not self.promise.cancelled():
            self.promise.exception()
        return bool(done)


class FakePage:
    def __init__(self, document, page_num, runs=(), images=(), height=800.0, behaviour="ok"):
        self.document = document
        self.page_num = page_num
        self.runs = list(runs)
        self.images = list(images)
        self.height = height
        self.behaviour = behaviour
        self.tasks = []

    async def get_text_content(self):
        return list(self.runs)

    def get_viewport(self, scale=1.0):
        return Viewport(600.0 * scale, self.height * scale, scale)

    async def get_images(self):
        return list(self.images)

    def render(self, surface, viewport):
        task = FakeRenderTask(surface, self.behaviour, self.page_num, self.document.events)
        self.tasks.append(task)
        return task

    def cleanup(self):
        self.document.events.append(("cleanup", self.page_num))


class FakeDocument:
    def __init__(self, num_pages=1, info=None, outline=None):
        self.events = []
        self.destroy_calls = 0
        self.info = info or {}
        self.outline_entries = outline or []
        self.failing_pages = set()
        self.pages = {n: FakePage(self, n) for n in range(1, num_pages + 1)}

    @property
    def num_pages(self):
        return len(self.pages)

    async def get_page(self, page_num):
        self.events.append(("acquire", page_num))
        if page_num not in self.pages:
            raise IndexError(f"Page {page_num} out of range 1..{self.num_pages}")
        if page_num in self.failing_pages:
            raise IndexError(f"page {page_num} is broken")
        return self.pages[page_num]

    async def metadata(self):
        return dict(self.info)

    async def outline(self):
        return list(self.outline_entries)

    def destroy(self):
        self.destroy_calls += 1


class FakeEngine:
    def __init__(self, document):
        self.document = document
        self.opened = []

    async def open(self, data):
        self.opened.append(data)
        return self.document


class FakeSurface:
    def __init__(self, width, height):
        self.width, self.height = int(width), int(height)
        self.released = False

    def to_jpeg(self, quality):
        return b"\xff\xd8fake-jpeg\xff\xd9"

    def release(self):
        self.released = True
        self.width = self.height = 0


def run(text, x, y_bottom, width=None, font_size=11.0):
    """Builds a GlyphRun; width defaults to a rough per-character estimate."""
    if width is None:
        width = len(text) * font_size * 0.5
    return GlyphRun(text, float(x), float(y_bottom), float(width), float(font_size))


@pytest.fixture
def fake_document():
    return FakeDocument(num_pages=3)


@pytest.fixture
def fast_config():
    """AppConfig with deadlines short enough for tests."""
    config = AppConfig()
    config.render = RenderConfig(
        first_page_timeout=0.5,
        page_timeout=0.2,
        cancel_grace=0.2,
        yield_every=10,
        yield_pause=0.0,
    )
    return config
