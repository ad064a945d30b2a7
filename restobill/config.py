"""Runtime configuration defaults for persistence, printing and insights."""

from __future__ import annotations

DB_PATH = "data/restobill.db"
DB_PATH_ENV = "RESTOBILL_DB_PATH"
DEBUG_LOG_PATH = "/tmp/restobill-debug.log"

# Snapshot blob envelope version written by this build.
SNAPSHOT_VERSION = 1

PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 22
PRINTER_FONT_PATH = "/System/Library/Fonts/Menlo.ttc"
PRINTER_LEFT_INDENT_PX = 8
PRINTER_BILL_WIDTH_CHARS = 32

INSIGHT_API_KEY_ENVS = ("GEMINI_API_KEY", "API_KEY")
INSIGHT_MODEL = "gemini-2.5-flash"
INSIGHT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
INSIGHT_TIMEOUT_SECONDS = 20.0
