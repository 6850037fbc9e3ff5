import logging
import re
from typing import NamedTuple, Optional, Union

from pptx.util import Inches, Pt

logger = logging.getLogger(__name__)

# --- 1. Unit Constants ---
EMU_PER_INCH = int(Inches(1))  # 914400
EMU_PER_POINT = int(Pt(1))  # 12700
# Values at or above this are already EMU; no slide coordinate in inches gets this big
RAW_UNIT_THRESHOLD = 100
LINE_HEIGHT_RATIO = 1.65

_LEADING_NUMBER = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+))")

Number = Union[int, float]


# --- 2. Layout Presets ---
class SlideLayout(NamedTuple):
    """A named slide size preset, in EMU."""
    name: str
    width: int
    height: int


LAYOUTS = {
    "LAYOUT_4x3": SlideLayout("screen4x3", 9144000, 6858000),
    "LAYOUT_16x9": SlideLayout("screen16x9", 9144000, 5143500),
    "LAYOUT_16x10": SlideLayout("screen16x10", 9144000, 5715000),
    "LAYOUT_WIDE": SlideLayout("custom", 12191996, 6858000),
}
DEFAULT_LAYOUT = "LAYOUT_16x9"


def find_layout(name: str) -> Optional[SlideLayout]:
    """Looks up a layout preset by key ("LAYOUT_WIDE") or short alias ("wide", "16x9")."""
    if not name:
        return None
    key = str(name).strip().upper().replace("X", "x")
    if not key.startswith("LAYOUT_"):
        key = "LAYOUT_" + key
    return LAYOUTS.get(key)


# --- 3. Conversions ---
def _leading_number(value: str) -> Optional[float]:
    match = _LEADING_NUMBER.match(value)
    if not match:
        return None
    return float(match.group(1))


def to_emu(value: Union[Number, str, None]) -> int:
    """
    Converts a measurement to EMU.

    Numbers below the raw-unit threshold are inches; anything at or above it
    is taken to be EMU already and only rounded. Strings have their leading
    numeric part parsed first, so "1.5in" and "1.5" behave the same.
    """
    if value is None:
        return 0
    if isinstance(value, str):
        parsed = _leading_number(value)
        if parsed is None:
            logger.warning(f"Cannot parse a length from {value!r}; using 0.")
            return 0
        value = parsed
    if value >= RAW_UNIT_THRESHOLD:
        return int(round(value))
    return int(round(EMU_PER_INCH * value))



def percent_to_emu(value: str, axis: str, layout: SlideLayout) -> int:
    """Scales a "50%" string against the layout width (axis X) or height (axis Y)."""
    parsed = _leading_number(str(value).replace("%", ""))
    if parsed is None:
        logger.warning(f"Cannot parse a percentage from {value!r}; using 0.")
        return 0
    base = layout.height if axis and axis.upper() == "Y" else layout.width
    return int(round(int(parsed) / 100 * base))


def parse_position(value: Union[Number, str, None], axis: str, layout: SlideLayout) -> int:
    """Resolves any user-facing x/y/cx/cy value (inches, EMU, "in" or "%" strings) to EMU."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return to_emu(value)
    text = str(value).strip()
    if text.endswith("%"):
        return percent_to_emu(text, axis, layout)
    if _leading_number(text) is not None:
        return to_emu(text)
    logger.warning(f"Unrecognized position value {value!r}; using 0.")
    return 0


def points_to_emu(points: Number) -> int:
    return int(round(points * EMU_PER_POINT))


def line_height_emu(font_size: Number) -> int:
    """Estimated height of one line of text at the given point size."""
    return int(round(EMU_PER_INCH * font_size * LINE_HEIGHT_RATIO / 100))


# --- 4. Colors ---
def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Converts RGB components to the upper-case hex used by srgbClr."""
    for component in (r, g, b):
        if not isinstance(component, int):
            logger.warning(f"Integer expected for color component, got {component!r}")
    return "".join(f"{int(c):02x}" for c in (r, g, b)).upper()


def parse_css_color(value: Optional[str]) -> Optional[str]:
    """Turns "rgb(1, 2, 3)", "rgba(...)" or "#AABBCC" into srgbClr hex, else None."""
    if not value:
        return None
    text = re.sub(r"\s+", "", str(value))
    if text.startswith("#") and len(text) == 7:
        return text[1:].upper()
    match = re.match(r"rgba?\((\d+),(\d+),(\d+)", text)
    if not match:
        return None
    return rgb_to_hex(*(int(part) for part in match.groups()))
