#!/usr/bin/env python3
"""
pdfrecon: Rebuilds the logical structure of a PDF, or renders its pages.

By default the tool infers headings, paragraphs and images from glyph geometry
and writes the result as JSON. With --render it rasterizes each page to JPEG
instead, one page at a time, each under its own deadline.
"""

import argparse
import asyncio
import base64
import json
import logging
import os
import signal
import sys
import time

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TextColumn,
    TimeElapsedColumn,
)

from core.log_utils import ContextFilter, setup_logging
from pdfrecon_lib.api import extract_pdf, parse_page_selection, render_pdf_pages
from pdfrecon_lib.config import load_config
from pdfrecon_lib.exceptions import PdfReconError
from pdfrecon_lib.progress import CancellationToken, ProgressChannel
from pdfrecon_lib.sources import name_from_identifier

log = logging.getLogger("pdfrecon")


# --- CUSTOM ARGPARSE FORMATTER ---
class CustomHelpFormatter(
    argparse.ArgumentDefaultsHelpFormatter, argparse.RawTextHelpFormatter
):
    """
    A custom argparse formatter that combines showing default values with
    preserving newline formatting in help text.
    """

    pass


class Application:
    """Orchestrates extraction or rendering based on command-line arguments."""

    def __init__(self, args):
        self.args = args
        self.config = None
        self.token = CancellationToken()
        self.context = ContextFilter()
        self.console = Console(stderr=True)
        self.stats = {}

    def run(self):
        """Main entry point for the application logic."""
        self.stats["start_time"] = time.monotonic()
        setup_logging(
            project_name="pdfrecon",
            level=logging.INFO if self.args.verbose else logging.WARNING,
            color_logs=self.args.color_logs,
            debug_topics=self.args.debug_topics,
            log_file=self.args.log_file,
            context_filter=self.context,
        )
        self.context.set_context(name_from_identifier(self.args.source))
        self.config = load_config(self.args.config)
        if self.args.scale:
            self.config.render.scale = self.args.scale

        pages = parse_page_selection(self.args.pages)
        if self.args.render:
            asyncio.run(self._run_render(pages))
        else:
            asyncio.run(self._run_extract(pages))
        self._display_epilogue()

    async def _run_extract(self, pages):
        log.info("--- Running in Extraction Mode ---")
        result = await extract_pdf(
            self.args.source, config=self.config, pages=pages, token=self.token
        )
        self.stats["items"] = len(result.content)
        output = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
        if self.args.output_file:
            with open(self.args.output_file, "w", encoding="utf-8") as f:
                f.write(output)
            log.info("Structured content written to %s", self.args.output_file)
        else:
            print(output)

    async def _run_render(self, pages):
        log.info("--- Running in Render Mode ---")
        os.makedirs(self.args.render, exist_ok=True)
        channel = ProgressChannel()
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self._on_interrupt)
        except (NotImplementedError, RuntimeError):
            log.debug("Signal handlers unavailable; Ctrl+C aborts immediately.")

        columns = (
            TextColumn("[bold sky_blue2]Rendering"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
        )
        try:
            with Progress(*columns, console=self.console, transient=True) as progress:
                bar = progress.add_task("render", total=None)

                async def follow():
                    async for event in channel.events():
                        progress.update(bar, completed=event.current, total=event.total)

                follower = asyncio.create_task(follow())
                try:
                    result = await render_pdf_pages(
                        self.args.source,
                        config=self.config,
                        pages=pages,
                        progress=channel,
                        token=self.token,
                    )
                finally:
                    channel.close()
                    await follower
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except (NotImplementedError, RuntimeError):
                pass

        self._write_render_output(result)

    def _on_interrupt(self):
        if self.token.cancelled:
            raise KeyboardInterrupt
        log.warning("Interrupt received. Finishing the current page, then stopping.")
        self.token.cancel()

    def _write_render_output(self, result):
        """Writes page_NNN.jpg files and a render.json manifest."""
        out_dir = self.args.render
        manifest = {
            "success": result.success,
            "totalPages": result.total_pages,
            "cancelled": result.cancelled,
            "images": [],
        }
        for image in result.images:
            if not image.ok:
                manifest["images"].append(image.to_dict())
                continue
            filename = f"page_{image.page_num:03d}.jpg"
            with open(os.path.join(out_dir, filename), "wb") as f:
                f.write(base64.b64decode(image.base64))
            manifest["images"].append(
                {
                    "pageNum": image.page_num,
                    "file": filename,
                    "width": image.width,
                    "height": image.height,
                }
            )
        with open(os.path.join(out_dir, "render.json"), "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2)

        failed = sum(1 for image in result.images if not image.ok)
        self.stats["rendered"] = len(result.images) - failed
        self.stats["failed"] = failed
        if result.cancelled:
            log.warning("Rendering was cancelled; partial results written.")
        log.info("Wrote %d page images to %s", len(result.images) - failed, out_dir)

    def _display_epilogue(self):
        duration = time.monotonic() - self.stats["start_time"]
        if self.args.render:
            summary = (
                f"Rendered {self.stats.get('rendered', 0)} pages "
                f"({self.stats.get('failed', 0)} failed) in {duration:.1f}s."
            )
        else:
            summary = f"Extracted {self.stats.get('items', 0)} items in {duration:.1f}s."
        self.console.print(f"[grey74]{summary}[/grey74]")

    @staticmethod
    def parse_arguments(args=None):
        """Parses command-line arguments for the script."""
        examples = [
            "\nExamples:",
            "  python pdfrecon.py document.pdf -o document.json",
            "  python pdfrecon.py https://example.com/paper.pdf -p 1-3",
            "  python pdfrecon.py document.pdf --render pages/ -s 1.5",
            "  python pdfrecon.py document.pdf -d layout,struct --color-logs",
        ]
        parser = argparse.ArgumentParser(
            description="Rebuilds PDF structure from geometry, or renders PDF pages.",
            formatter_class=CustomHelpFormatter,
            add_help=False,
            epilog="\n".join(examples),
        )

        g_opts = parser.add_argument_group("Main Options")
        g_opts.add_argument("source", help="Path or http(s) URL of the input PDF.")
        g_opts.add_argument(
            "-h",
            "--help",
            action="help",
            help="Show this help message and exit.",
        )
        g_opts.add_argument(
            "-c",
            "--config",
            metavar="FILE",
            default=None,
            help="INI file overriding layout, render and limit settings.",
        )

        g_proc = parser.add_argument_group("Processing Control")
        g_proc.add_argument(
            "-p",
            "--pages",
            default="all",
            metavar="PAGES",
            help="Pages to process (e.g., '1,3,5-7'). (default: %(default)s)",
        )
        g_proc.add_argument(
            "-s",
            "--scale",
            type=float,
            default=None,
            help="Render scale factor. (default: from config, 2.0)",
        )
        g_proc.add_argument(
            "--render",
            metavar="DIR",
            default=None,
            help="Render pages as JPEG files into DIR instead of extracting.",
        )

        g_out = parser.add_argument_group("Script Output")
        g_out.add_argument(
            "-o",
            "--output-file",
            metavar="FILE",
            default=None,
            help="Write the extraction JSON to FILE instead of stdout.",
        )
        g_out.add_argument(
            "--log-file",
            metavar="FILE",
            default=None,
            help="Redirect all logging output to a specified file.",
        )
        g_out.add_argument(
            "--color-logs",
            action="store_true",
            help="Enable colored logging output. (default: %(default)s)",
        )
        g_out.add_argument(
            "-v",
            "--verbose",
            action="store_true",
            help="Enable INFO logging for detailed progress. (default: %(default)s)",
        )
        g_out.add_argument(
            "-d",
            "--debug",
            nargs="?",
            const="all",
            dest="debug_topics",
            metavar="TOPICS",
            help="Enable DEBUG logging (all,engine,layout,struct,images,render,...).",
        )

        return parser.parse_args(args)


def main():
    """Main entry point for the script."""
    # Basic logging config for early errors before full setup
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        args = Application.parse_arguments(sys.argv[1:])
        app = Application(args)
        app.run()
    except PdfReconError as e:
        log.critical(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        log.info("\nProcess interrupted by user. Exiting.")
        sys.exit(0)
    except Exception as e:
        log.critical("\nAn unexpected error occurred: %s", e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
