# --- pdfrecon_lib/renderer.py ---
"""
pdfrecon_lib/renderer.py: Contains the PageRenderPipeline, which rasterizes
pages strictly one after another.

Each page goes through: acquire -> allocate surface -> render under a deadline
-> encode -> cleanup. Page failures (acquisition, render errors, timeouts) are
recorded against the page and never stop the loop. Cleanup of the page and its
surface always runs before the next page is acquired.
"""
import asyncio
import base64
import gc
import logging

from .config import RenderConfig
from .engine import RasterSurface
from .exceptions import PageRenderError, RenderTimeoutError
from .models import PageRenderResult, RenderResult

log = logging.getLogger("pdfrecon")
log_render = logging.getLogger("pdfrecon.render")


class PageRenderPipeline:
    """
    Renders a range of pages of an opened document to JPEG.

    Args:
        config (RenderConfig): Scale, quality, deadlines and pacing.
        progress (ProgressChannel): Optional; receives an event after each page.
        token (CancellationToken): Optional; checked before each page.
        surface_factory: Callable (width, height) -> surface. Defaults to
            RasterSurface.
    """

    def __init__(
        self, config: RenderConfig = None, progress=None, token=None, surface_factory=None
    ):
        self.config = config or RenderConfig()
        self.progress = progress
        self.token = token
        self.surface_factory = surface_factory or RasterSurface

    async def render(self, document, pages=None, scale=None) -> RenderResult:
        """Renders every requested page, returning a result that covers all of them."""
        scale = scale or self.config.scale
        if pages is None:
            pages = range(1, document.num_pages + 1)
        page_nums = sorted(pages)
        total = len(page_nums)
        log.info("--- Rendering %d pages at scale %.2f ---", total, scale)

        cfg = self.config
        images, cancelled = [], False
        for index, page_num in enumerate(page_nums):
            if self.token is not None and self.token.cancelled:
                log.warning("Rendering cancelled before page %d.", page_num)
                cancelled = True
                break
            timeout = cfg.first_page_timeout if index == 0 else cfg.page_timeout
            result = await self.render_page(document, page_num, scale, timeout)
            images.append(result)
            self._emit_progress(index + 1, total)

            done = index + 1
            if cfg.yield_every and done % cfg.yield_every == 0 and done < total:
                log_render.debug("Pausing after %d pages.", done)
                gc.collect()
                await asyncio.sleep(cfg.yield_pause)

        failed = sum(1 for r in images if not r.ok)
        log.info("Rendered %d pages (%d failed).", len(images) - failed, failed)
        return RenderResult(
            success=True, images=images, total_pages=document.num_pages, cancelled=cancelled
        )

    async def render_page(self, document, page_num, scale, timeout) -> PageRenderResult:
        """Renders one page. Never raises for page-local failures."""
        page = surface = task = None
        try:
            page = await self._acquire(document, page_num)
            viewport = page.get_viewport(scale)
            surface = self.surface_factory(viewport.width, viewport.height)
            task = page.render(surface, viewport)
            await self._await_render(task, page_num, timeout)

            jpeg = await asyncio.to_thread(surface.to_jpeg, self.config.jpeg_quality)
            log_render.debug(
                "Page %d rendered (%dx%d, %d bytes).",
                page_num,
                surface.width,
                surface.height,
                len(jpeg),
            )
            return PageRenderResult(
                page_num=page_num,
                base64=base64.b64encode(jpeg).decode("ascii"),
                width=surface.width,
                height=surface.height,
            )
        except asyncio.CancelledError:
            if task is not None:
                task.cancel()
            raise
        except Exception as e:
            log.error("Page %d render failed: %s", page_num, e)
            if task is not None:
                await self._cancel_task(task, page_num)
            return PageRenderResult(page_num=page_num, error=str(e))
        finally:
            if page is not None:
                page.cleanup()
            if surface is not None:
                surface.release()
            log_render.debug("Page %d cleaned up.", page_num)

    async def _acquire(self, document, page_num):
        try:
            return await document.get_page(page_num)
        except (IndexError, ValueError, OSError) as e:
            raise PageRenderError(page_num, f"failed to load page {page_num}: {e}") from e

    async def _await_render(self, task, page_num, timeout):
        # The deadline runs from when the worker starts the job, not from when
        # it was queued behind an abandoned render of an earlier page.
        if not await task.wait_started(timeout):
            log_render.warning("Render of page %d never started on the worker.", page_num)
            raise RenderTimeoutError(page_num, timeout)
        try:
            await asyncio.wait_for(asyncio.shield(task.promise), timeout)
        except asyncio.TimeoutError as e:
            raise RenderTimeoutError(page_num, timeout) from e

    async def _cancel_task(self, task, page_num):
        """Cancels a render and waits, within the grace period, for it to stop."""
        task.cancel()
        if not await task.wait_settled(self.config.cancel_grace):
            log_render.warning(
                "Render of page %d did not acknowledge cancellation within %gs.",
                page_num,
                self.config.cancel_grace,
            )

    def _emit_progress(self, current, total):
        if self.progress is None:
            return
        try:
            self.progress.emit(current, total)
        except Exception as e:
            log_render.debug("Progress update failed: %s", e)
