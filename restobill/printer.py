"""ESC/POS thermal printing of bills."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from restobill.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
)

logger = logging.getLogger(__name__)

_LINE_EXTRA_PX = 6
_TAIL_SPACER_PX = 40
_FONT_OVERRIDE_ENV = "RESTOBILL_PRINTER_FONT_PATH"
# Bills are column-aligned, so only monospace fallbacks are listed.
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/TTF/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/liberation/LiberationMono-Regular.ttf",
)


def resolve_printer_font_path() -> str:
    """
    Pick the monospace font used to rasterize bill lines.

    Bills are laid out in fixed columns (see `restobill.bill`), so a
    proportional font would misalign the amounts. The operator's
    RESTOBILL_PRINTER_FONT_PATH wins, then the configured font, then the
    mono fonts common on Linux distributions.
    """
    override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    candidates = dict.fromkeys(path for path in (override, PRINTER_FONT_PATH, *_LINUX_FONT_FALLBACKS) if path)
    for candidate in candidates:
        if Path(candidate).is_file():
            return candidate
    raise RuntimeError(
        f"No monospace font for the bill printer; set {_FONT_OVERRIDE_ENV}. Tried: {', '.join(candidates)}"
    )


def check_printer_dependencies() -> tuple[bool, str]:
    """Return (ready, status line) for the bill preview; never raises."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont

        ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    except Exception as exc:
        return (False, f"Printer unavailable: {exc}")
    return (True, "Printer ready")


def _render_line(text: str, font: object) -> object:
    from PIL import Image, ImageDraw

    probe = Image.new("1", (1, 1), color=1)
    bbox = ImageDraw.Draw(probe).textbbox((0, 0), text or " ", font=font)
    text_height = bbox[3] - bbox[1]
    canvas_height = max(PRINTER_FONT_SIZE, text_height) + _LINE_EXTRA_PX

    img = Image.new("1", (PRINTER_WIDTH_PX, canvas_height), color=1)
    draw = ImageDraw.Draw(img)
    # Offset by bbox top so descenders are not clipped.
    y = (canvas_height - text_height) // 2 - bbox[1]
    draw.text((PRINTER_LEFT_INDENT_PX, y), text, font=font, fill=0)
    return img


def _render_spacer(height_px: int) -> object:
    from PIL import Image

    return Image.new("1", (PRINTER_WIDTH_PX, max(1, height_px)), color=1)


def print_bill(lines: list[str]) -> None:
    """Print bill lines one image row at a time and cut the ticket."""
    if not lines:
        return

    try:
        from escpos.printer import Usb
        from PIL import ImageFont
    except Exception as exc:
        raise RuntimeError(f"Printer dependencies unavailable: {exc}") from exc

    printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
    font = ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    for line in lines:
        printer.image(_render_line(line, font))
    printer.image(_render_spacer(_TAIL_SPACER_PX))
    printer.cut()
    logger.info("printed bill (%d lines)", len(lines))
