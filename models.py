import logging
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# A length as accepted from callers: inches, raw EMU, "1.5in" or "25%"
Length = Union[int, float, str]
Sides = Tuple[float, float, float, float]  # top, right, bottom, left


# --- 1. Alignment Enumerations ---
class HAlign(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFY = "justify"


class VAlign(str, Enum):
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


def coerce_align(value: Any, default: Optional[HAlign] = HAlign.LEFT) -> Optional[HAlign]:
    """Maps free-form alignment keywords onto HAlign; unknown values fall back to the default."""
    if value is None or value == "":
        return None
    if isinstance(value, HAlign):
        return value
    text = str(value).strip().lower()
    if text.startswith(("c", "m")):
        return HAlign.CENTER
    if text.startswith(("l", "start")):
        return HAlign.LEFT
    if text.startswith(("r", "end")):
        return HAlign.RIGHT
    if text.startswith("j"):
        return HAlign.JUSTIFY
    logger.warning(f"Unknown align value {value!r}; using {default.value if default else None!r}.")
    return default


def coerce_valign(value: Any, default: Optional[VAlign] = VAlign.CENTER) -> Optional[VAlign]:
    """Maps free-form vertical alignment keywords onto VAlign; unknown values fall back to the default."""
    if value is None or value == "":
        return None
    if isinstance(value, VAlign):
        return value
    text = str(value).strip().lower()
    if text.startswith(("c", "m")):
        return VAlign.CENTER
    if text.startswith("t"):
        return VAlign.TOP
    if text.startswith("b"):
        return VAlign.BOTTOM
    logger.warning(f"Unknown valign value {value!r}; using {default.value if default else None!r}.")
    return default


def normalize_color(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    text = str(value).strip().lstrip("#").upper()
    if len(text) != 6 or any(c not in "0123456789ABCDEF" for c in text):
        logger.warning(f"Invalid hex color {value!r}; ignoring it.")
        return None
    return text


def normalize_sides(value: Any) -> Optional[Sides]:
    """Accepts a scalar or a [top, right, bottom, left] sequence."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (float(value),) * 4
    if isinstance(value, (list, tuple)) and len(value) == 4:
        return tuple(float(v or 0) for v in value)
    logger.warning(f"Margin must be a number or 4 values (TRBL), got {value!r}; ignoring it.")
    return None


# --- 2. Option Structures ---
class FontOptions(BaseModel):
    model_config = ConfigDict(extra="ignore")

    bold: bool = False
    underline: bool = False
    font_size: Optional[float] = None  # points
    font_face: Optional[str] = None
    color: Optional[str] = None
    char_spacing: Optional[float] = None  # points

    @field_validator("color", mode="before")
    @classmethod
    def _color(cls, value):
        return normalize_color(value)


class TextRunOptions(FontOptions):
    break_line: bool = False


class PositionOptions(BaseModel):
    """Position and size; "w"/"h" are accepted as aliases of "cx"/"cy"."""
    model_config = ConfigDict(extra="ignore")

    x: Optional[Length] = None
    y: Optional[Length] = None
    cx: Optional[Length] = None
    cy: Optional[Length] = None

    @model_validator(mode="before")
    @classmethod
    def _size_aliases(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            if data.get("w") is not None:
                data["cx"] = data.pop("w")
            if data.get("h") is not None:
                data["cy"] = data.pop("h")
        return data


class ShapeOptions(PositionOptions, FontOptions):
    align: Optional[HAlign] = None
    valign: Optional[VAlign] = None
    fill: Optional[str] = None
    line: Optional[str] = None
    line_size: Optional[float] = None  # points
    line_head: Optional[str] = None
    line_tail: Optional[str] = None
    flip_h: bool = False
    flip_v: bool = False
    rotate: Optional[float] = None  # degrees
    shape: Optional[str] = None  # preset geometry name, resolved by Slide.add_shape
    margin: Optional[Sides] = None  # points
    inset: Optional[float] = None  # inches, all four sides
    autofit: bool = False
    shrink_text: bool = False
    is_text_box: bool = False
    indent_level: int = 0
    break_line: bool = False

    @field_validator("align", mode="before")
    @classmethod
    def _align(cls, value):
        return coerce_align(value, HAlign.LEFT)

    @field_validator("valign", mode="before")
    @classmethod
    def _valign(cls, value):
        return coerce_valign(value, VAlign.CENTER)

    @field_validator("fill", "line", mode="before")
    @classmethod
    def _colors(cls, value):
        return normalize_color(value)

    @field_validator("margin", mode="before")
    @classmethod
    def _margin(cls, value):
        return normalize_sides(value)


TextOptions = ShapeOptions


class TextRun(BaseModel):
    """One formatted run of text, or a field (e.g. "slidenum") rendered by PowerPoint."""
    text: Optional[str] = None
    field: Optional[str] = None
    options: Optional[TextRunOptions] = None

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, value):
        if value is None or isinstance(value, str):
            return value
        return str(value)


class BorderSide(BaseModel):
    pt: float = 1
    color: str = "666666"
    type: str = "solid"

    @field_validator("color", mode="before")
    @classmethod
    def _color(cls, value):
        return normalize_color(value) or "666666"

    @property
    def dashed(self) -> bool:
        return "dash" in (self.type or "").lower()


# A single color string, one style for all sides, or [top, right, bottom, left]
Border = Union[str, BorderSide, List[Optional[BorderSide]]]


class CellStyleOptions(FontOptions):
    align: Optional[HAlign] = None
    valign: Optional[VAlign] = None
    fill: Optional[str] = None
    border: Optional[Border] = None
    margin: Optional[Sides] = None  # points, top/right/bottom/left

    @field_validator("align", mode="before")
    @classmethod
    def _align(cls, value):
        return coerce_align(value, HAlign.LEFT)

    @field_validator("valign", mode="before")
    @classmethod
    def _valign(cls, value):
        return coerce_valign(value, VAlign.TOP)

    @field_validator("fill", mode="before")
    @classmethod
    def _fill(cls, value):
        return normalize_color(value)

    @field_validator("margin", mode="before")
    @classmethod
    def _margin(cls, value):
        return normalize_sides(value)

    @field_validator("border", mode="before")
    @classmethod
    def _border(cls, value):
        if isinstance(value, str):
            return normalize_color(value)
        if isinstance(value, (list, tuple)) and len(value) != 4:
            logger.warning(f"Border list needs 4 sides (TRBL), got {len(value)}; ignoring it.")
            return None
        return value


class CellOptions(CellStyleOptions):
    colspan: Optional[int] = Field(default=None, ge=1)
    rowspan: Optional[int] = Field(default=None, ge=1)


class TableCell(BaseModel):
    text: str = ""
    options: CellOptions = Field(default_factory=CellOptions)

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, value):
        return "" if value is None else str(value)

    @model_validator(mode="before")
    @classmethod
    def _plain_value(cls, data):
        if isinstance(data, (str, int, float)):
            return {"text": data}
        return data


class TableOptions(CellStyleOptions):
    """Table-wide settings; the style fields are defaults for cells that do not set their own."""
    col_w: Optional[Union[Length, List[Length]]] = None
    row_h: Optional[Union[Length, List[Length]]] = None


# --- 3. Slide Master Template ---
class MasterBackground(BaseModel):
    src: str
    data: Optional[str] = None


class MasterImage(BaseModel):
    src: str
    x: Length = 0
    y: Length = 0
    cx: Optional[Length] = None
    cy: Optional[Length] = None
    data: Optional[str] = None


class MasterShape(BaseModel):
    type: Literal["text", "line", "rect"] = "text"
    text: Optional[Union[str, List[TextRun]]] = None
    options: ShapeOptions = Field(default_factory=ShapeOptions)


class SlideMaster(BaseModel):
    """Repeated content applied to every slide created from it."""
    title: Optional[str] = None
    bkgd: Optional[Union[MasterBackground, str]] = None
    images: List[MasterImage] = Field(default_factory=list)
    shapes: List[MasterShape] = Field(default_factory=list)
    is_numbered: Optional[bool] = None
    margin: Optional[Union[float, Sides]] = None  # inches, used by table auto-paging


# --- 4. Table Source Collaborator ---
class CellStyle(BaseModel):
    """Computed style of a source table cell, as reported by the table source."""
    font_size: Optional[float] = None  # px, rendered 1:1 as pt
    font_weight: Optional[Union[str, int]] = None
    color: Optional[str] = None  # "rgb(r, g, b)" or hex
    background_color: Optional[str] = None
    text_align: Optional[str] = None
    vertical_align: Optional[str] = None
    padding: Optional[Sides] = None  # px, top/right/bottom/left
    border: Optional[List[BorderSide]] = None  # top/right/bottom/left
    colspan: Optional[int] = None
    width: Optional[float] = None  # outer width in px
    min_width: Optional[float] = None  # inches


class SourceCell(BaseModel):
    text: str = ""
    style: CellStyle = Field(default_factory=CellStyle)


class SourceTable(BaseModel):
    head: List[List[SourceCell]] = Field(default_factory=list)
    body: List[List[SourceCell]] = Field(default_factory=list)
    foot: List[List[SourceCell]] = Field(default_factory=list)


# --- 5. Auto-Paging Options ---
class ExtraImage(BaseModel):
    path: str
    x: Length = 0
    y: Length = 0
    w: Optional[Length] = None
    h: Optional[Length] = None


class ExtraText(BaseModel):
    text: Union[str, List[TextRun]]
    options: ShapeOptions = Field(default_factory=ShapeOptions)


class ExtraShape(BaseModel):
    shape: str = "rect"
    options: ShapeOptions = Field(default_factory=ShapeOptions)


class ExtraTable(BaseModel):
    rows: List[List[TableCell]]
    options: PositionOptions = Field(default_factory=PositionOptions)
    table_options: TableOptions = Field(default_factory=TableOptions)


class AutoPageOptions(BaseModel):
    margin: Optional[Union[float, Sides]] = None  # inches
    add_header_to_each: bool = False
    master: Optional[SlideMaster] = None
    col_w: Optional[List[Length]] = None
    add_image: Optional[ExtraImage] = None
    add_text: Optional[ExtraText] = None
    add_shape: Optional[ExtraShape] = None
    add_table: Optional[ExtraTable] = None


# --- 6. API Payloads ---
class TextElement(BaseModel):
    type: Literal["text"]
    text: Union[str, List[TextRun]]
    options: ShapeOptions = Field(default_factory=ShapeOptions)
    markup: bool = False  # parse **bold** and [[highlight]] in plain-string text


class ShapeElement(BaseModel):
    type: Literal["shape"]
    shape: str = "rect"
    options: ShapeOptions = Field(default_factory=ShapeOptions)


class ImageElement(BaseModel):
    type: Literal["image"]
    path: str
    x: Length = 0
    y: Length = 0
    w: Optional[Length] = None
    h: Optional[Length] = None
    data: Optional[str] = None  # base64, optionally a data URI


class TableElement(BaseModel):
    type: Literal["table"]
    rows: List[List[TableCell]]
    options: PositionOptions = Field(default_factory=PositionOptions)
    table_options: TableOptions = Field(default_factory=TableOptions)


SlideElement = Annotated[Union[TextElement, ShapeElement, ImageElement, TableElement], Field(discriminator="type")]


class SlidePayload(BaseModel):
    type: Literal["slide"] = "slide"
    master: Optional[str] = None  # key into PresentationPayload.masters
    slide_number: bool = False
    background: Optional[str] = None
    elements: List[SlideElement] = Field(default_factory=list)


class TableSlidesPayload(BaseModel):
    type: Literal["table_pages"]
    master: Optional[str] = None
    table: SourceTable
    options: AutoPageOptions = Field(default_factory=AutoPageOptions)


class PresentationPayload(BaseModel):
    title: str
    author: Optional[str] = None
    layout: Optional[str] = None
    masters: Dict[str, SlideMaster] = Field(default_factory=dict)
    slides: List[Union[SlidePayload, TableSlidesPayload]]
