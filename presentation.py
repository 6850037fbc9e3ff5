import asyncio
import base64
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, List, Optional, Sequence, Union

from pptx.enum.shapes import MSO_SHAPE
from pptx.opc.constants import CONTENT_TYPE as CT
from pydantic import BaseModel, ValidationError

from assembler import ZipArchiveWriter, build_package_parts
from media import resolve_media
from models import (AutoPageOptions, PositionOptions, ShapeOptions, SlideMaster, SourceTable,
                    TableCell, TableOptions, TextRun, normalize_color)
from table_layout import (TableSource, cell_from_source, check_spans, column_count, compute_column_widths,
                          paginate_table)
from units import DEFAULT_LAYOUT, LAYOUTS, SlideLayout, find_layout, to_emu

logger = logging.getLogger(__name__)

__version__ = "1.0.0"

DEFAULT_AUTHOR = "PptxGen"
# Geometries that are not auto-shapes in python-pptx's MSO_SHAPE table
BASE_GEOMETRIES = {"rect": "rect", "line": "line"}
IMAGE_CONTENT_TYPES = {"png": CT.PNG, "jpeg": CT.JPEG}


# --- 1. Relationships and Shape Descriptors ---
@dataclass
class Relationship:
    """An image referenced from one slide; payload may be empty until resolved."""
    rid: int
    media_number: int
    path: str
    extension: str
    data: bytes = b""
    width_px: Optional[int] = None
    height_px: Optional[int] = None

    @property
    def target(self) -> str:
        return f"../media/image{self.media_number}.{self.extension}"

    @property
    def part_name(self) -> str:
        return f"ppt/media/image{self.media_number}.{self.extension}"

    @property
    def content_type(self) -> str:
        return IMAGE_CONTENT_TYPES.get(self.extension, CT.PNG)

    @property
    def resolved(self) -> bool:
        return bool(self.data)


@dataclass
class TextShape:
    """Text box or auto-shape; runs is empty for a shape without text."""
    type: ClassVar[str] = "text"

    options: ShapeOptions
    geometry: str = "rect"
    runs: List[TextRun] = field(default_factory=list)
    has_text: bool = False


@dataclass
class PictureShape:
    type: ClassVar[str] = "image"

    relationship: Relationship
    x: Any = 0
    y: Any = 0
    w: Any = None
    h: Any = None


@dataclass
class TableShape:
    type: ClassVar[str] = "table"

    rows: List[List[TableCell]]
    options: PositionOptions
    table_options: TableOptions


Shape = Union[TextShape, PictureShape, TableShape]


def resolve_geometry(kind: Any) -> str:
    """Maps an MSO_SHAPE member, a preset name ("roundRect") or a member name to a prstGeom value."""
    if kind is None or kind == "":
        return "rect"
    if isinstance(kind, MSO_SHAPE):
        return MSO_SHAPE.to_xml(kind)
    name = str(kind)
    if name in BASE_GEOMETRIES:
        return BASE_GEOMETRIES[name]
    try:
        return MSO_SHAPE.to_xml(MSO_SHAPE.from_xml(name))
    except ValueError:
        pass
    try:
        return MSO_SHAPE.to_xml(MSO_SHAPE[name.upper()])
    except (KeyError, ValueError):
        logger.warning(f"Unknown shape '{kind}'; drawing a rectangle instead.")
        return "rect"


def _validated(model_cls, value):
    """Coerces dicts (or None) into an option model; models are copied so callers can reuse them."""
    if value is None:
        return model_cls()
    if isinstance(value, model_cls):
        return value.model_copy(deep=True)
    if isinstance(value, BaseModel):
        value = value.model_dump(exclude_unset=True)
    return model_cls.model_validate(value)


def _to_runs(text: Any) -> Optional[List[TextRun]]:
    if text is None:
        return []
    if isinstance(text, TextRun):
        return [text]
    if isinstance(text, (str, int, float)):
        return [TextRun(text=str(text))]
    if isinstance(text, dict):
        return [TextRun.model_validate(text)]
    if isinstance(text, (list, tuple)):
        runs = []
        for item in text:
            if isinstance(item, (str, int, float)):
                runs.append(TextRun(text=str(item)))
            elif isinstance(item, TextRun):
                runs.append(item)
            else:
                runs.append(TextRun.model_validate(item))
        return runs
    return None


def decode_image_data(data: Union[bytes, str, None]) -> bytes:
    """Accepts raw bytes or base64 text, with or without a data-URI prefix."""
    if not data:
        return b""
    if isinstance(data, bytes):
        return data
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data)
    except ValueError:
        logger.warning("Image data is not valid base64; it will be loaded from its path instead.")
        return b""


def _sniff_extension(data: bytes, default: str) -> str:
    if data.startswith(b"\x89PNG"):
        return "png"
    if data.startswith(b"\xff\xd8"):
        return "jpeg"
    return default


def _path_extension(path: str) -> str:
    name = path.split("?", 1)[0].split("#", 1)[0]
    return os.path.splitext(name)[1].lstrip(".").lower()


def _image_format(path: str, data: bytes) -> str:
    """Media format for an image: sniffed from its bytes, else taken from the path."""
    extension = {"jpg": "jpeg"}.get(_path_extension(path), _path_extension(path))
    if extension not in IMAGE_CONTENT_TYPES:
        extension = "png"
    return _sniff_extension(data, extension)


# --- 2. Slide ---
class Slide:
    """One slide; every add_* call appends a shape in paint order and returns the slide."""

    def __init__(self, presentation: "Presentation", index: int):
        self._presentation = presentation
        self.index = index
        self.name = f"Slide {index}"
        self.background_color: Optional[str] = None
        self.background_relationship: Optional[Relationship] = None
        self.show_slide_number = False
        self.shapes: List[Shape] = []
        self.relationships: List[Relationship] = []

    @property
    def page_number(self) -> int:
        return self.index

    def _writable(self, operation: str) -> bool:
        if self._presentation.frozen:
            logger.warning(f"{operation}: presentation is being exported; the slide can no longer change.")
            return False
        return True

    def _add_relationship(self, path: str, extension: str, data: bytes = b"") -> Relationship:
        relationship = Relationship(
            rid=len(self.relationships) + 2,  # rId1 is the slide layout
            media_number=self._presentation.next_media_number(),
            path=path,
            extension=extension,
            data=data,
        )
        self.relationships.append(relationship)
        return relationship

    def set_slide_number(self, show: bool = True) -> "Slide":
        if self._writable("set_slide_number"):
            self.show_slide_number = bool(show)
        return self

    def has_slide_number(self) -> bool:
        return self.show_slide_number

    def set_background_color(self, color: str) -> Optional["Slide"]:
        if not self._writable("set_background_color"):
            return None
        self.background_color = normalize_color(color)
        return self

    def set_background_image(self, path: str, data: Union[bytes, str, None] = None) -> Optional["Slide"]:
        if not self._writable("set_background_image"):
            return None
        if not path or not _path_extension(path):
            logger.warning("set_background_image: image path needs an extension and cannot be blank.")
            return None
        payload = decode_image_data(data)
        self.background_relationship = self._add_relationship(path, _image_format(path, payload), payload)
        return self

    def add_text(self, text: Any, options: Union[ShapeOptions, dict, None] = None) -> Optional["Slide"]:
        if not self._writable("add_text"):
            return None
        try:
            runs = _to_runs(text)
            opts = _validated(ShapeOptions, options)
        except (ValidationError, TypeError) as e:
            logger.warning(f"add_text: invalid text or options: {e}")
            return None
        if runs is None:
            logger.warning(f"add_text: unsupported text value of type {type(text).__name__}.")
            return None
        geometry = resolve_geometry(opts.shape)
        self.shapes.append(TextShape(options=opts, geometry=geometry, runs=runs, has_text=text is not None))
        logger.debug(f"{self.name}: text shape with {len(runs)} run(s).")
        return self

    def add_shape(self, kind: Any, options: Union[ShapeOptions, dict, None] = None) -> Optional["Slide"]:
        if not self._writable("add_shape"):
            return None
        try:
            opts = _validated(ShapeOptions, options)
        except (ValidationError, TypeError) as e:
            logger.warning(f"add_shape: invalid options: {e}")
            return None
        geometry = resolve_geometry(kind)
        opts.shape = geometry
        self.shapes.append(TextShape(options=opts, geometry=geometry))
        logger.debug(f"{self.name}: '{geometry}' shape.")
        return self

    def add_image(self, path: str, x: Any = 0, y: Any = 0, w: Any = None, h: Any = None,
                  data: Union[bytes, str, None] = None) -> Optional["Slide"]:
        if not self._writable("add_image"):
            return None
        if not path or not _path_extension(path):
            logger.warning("add_image: image path needs an extension and cannot be blank.")
            return None
        payload = decode_image_data(data)
        relationship = self._add_relationship(path, _image_format(path, payload), payload)
        self.shapes.append(PictureShape(relationship=relationship, x=x, y=y, w=w, h=h))
        logger.debug(f"{self.name}: image '{path}' as rId{relationship.rid}.")
        return self

    def add_table(self, rows: Any, options: Union[PositionOptions, dict, None] = None,
                  table_options: Union[TableOptions, dict, None] = None) -> Optional["Slide"]:
        """
        Adds a table. Rows are lists of TableCell, dicts, strings or numbers;
        a single flat row is accepted too. A cell spanning rows and columns at
        once raises UnsupportedTableLayoutError.
        """
        if not self._writable("add_table"):
            return None
        if not rows or not isinstance(rows, (list, tuple)):
            logger.warning("add_table: a list of rows is expected.")
            return None
        if not isinstance(rows[0], (list, tuple)):
            rows = [rows]
        try:
            grid = [
                [cell if isinstance(cell, TableCell) else TableCell.model_validate(cell if cell is not None else "")
                 for cell in row]
                for row in rows
            ]
            opts = _validated(PositionOptions, options)
            table_opts = _validated(TableOptions, table_options)
        except (ValidationError, TypeError) as e:
            logger.warning(f"add_table: invalid table data: {e}")
            return None
        if not any(grid):
            logger.warning("add_table: table has no cells.")
            return None
        check_spans(grid)
        declared = table_opts.col_w
        if isinstance(declared, list) and len(declared) != column_count(grid[0]):
            logger.warning(f"add_table: col_w lists {len(declared)} column(s) but the first row spans "
                           f"{column_count(grid[0])}.")
        self.shapes.append(TableShape(rows=grid, options=opts, table_options=table_opts))
        logger.debug(f"{self.name}: table with {len(grid)} row(s).")
        return self

    def apply_master(self, master: SlideMaster) -> None:
        """Adds the master's images, background, shapes and slide-number flag, in that order."""
        for image in master.images:
            self.add_image(image.src, image.x, image.y, image.cx, image.cy, image.data)
        if master.bkgd is not None:
            if isinstance(master.bkgd, str):
                self.set_background_color(master.bkgd)
            else:
                self.set_background_image(master.bkgd.src, master.bkgd.data)
        for shape in master.shapes:
            if shape.type == "text":
                self.add_text(shape.text, shape.options)
            else:
                self.add_shape(shape.type, shape.options)
        if master.is_numbered is not None:
            self.set_slide_number(master.is_numbered)


# --- 3. Presentation ---
class Presentation:
    """
    An in-memory presentation.

    Slides are only ever appended. Once export starts the model is frozen
    and further changes are ignored with a warning.
    """

    version = __version__

    def __init__(self, title: str = "Presentation", author: Optional[str] = None,
                 layout: Optional[str] = None):
        self.title = title
        self.author = author or DEFAULT_AUTHOR
        self.created = datetime.now(timezone.utc)
        self.slides: List[Slide] = []
        self.frozen = False
        self._layout_key = DEFAULT_LAYOUT
        self._media_count = 0
        if layout:
            self.set_layout(layout)

    @property
    def layout(self) -> SlideLayout:
        return LAYOUTS[self._layout_key]

    @property
    def layout_key(self) -> str:
        return self._layout_key

    def get_layout(self) -> SlideLayout:
        return self.layout

    def set_layout(self, name: str) -> SlideLayout:
        """Selects a layout preset; an unknown name keeps the current one."""
        if self.frozen:
            logger.warning("set_layout: presentation is being exported; layout unchanged.")
            return self.layout
        layout = find_layout(name)
        if layout is None:
            logger.warning(f"Unknown layout '{name}'; keeping {self._layout_key}. "
                           f"Valid layouts: {', '.join(LAYOUTS)}")
            return self.layout
        self._layout_key = next(key for key, value in LAYOUTS.items() if value is layout)
        return layout

    def set_title(self, title: str) -> None:
        if not self.frozen:
            self.title = title

    def next_media_number(self) -> int:
        self._media_count += 1
        return self._media_count

    def add_slide(self, master: Union[SlideMaster, dict, None] = None) -> Optional[Slide]:
        if self.frozen:
            logger.warning("add_slide: presentation is being exported; no slide added.")
            return None
        try:
            master = _validated(SlideMaster, master) if master is not None else None
        except (ValidationError, TypeError) as e:
            logger.warning(f"add_slide: invalid slide master: {e}")
            return None
        slide = Slide(self, len(self.slides) + 1)
        self.slides.append(slide)
        if master is not None:
            slide.apply_master(master)
        logger.debug(f"Added {slide.name}.")
        return slide

    def add_slides_for_table(self, table: Union[SourceTable, dict, str],
                             options: Union[AutoPageOptions, dict, None] = None,
                             table_source: Optional[TableSource] = None) -> List[Slide]:
        """
        Lays a source table out over as many slides as it needs.

        `table` is a SourceTable (or its dict form), or the id of a table to
        read from `table_source`. Returns the slides that were created.
        """
        if self.frozen:
            logger.warning("add_slides_for_table: presentation is being exported; nothing added.")
            return []
        try:
            opts = _validated(AutoPageOptions, options)
            if isinstance(table, str):
                if table_source is None:
                    logger.warning(f"add_slides_for_table: no table source to read '{table}' from.")
                    return []
                table = table_source.read_table(table)
                if table is None:
                    return []
            table = _validated(SourceTable, table)
        except ValidationError as e:
            logger.warning(f"add_slides_for_table: invalid table data: {e}")
            return []

        top, right, bottom, left = _margins(opts)
        usable_width = self.layout.width - to_emu(right + left)
        usable_height = self.layout.height - to_emu(top + bottom)
        col_widths = compute_column_widths(table, usable_width, opts.col_w)

        def convert(rows: Sequence) -> List[List[TableCell]]:
            return [[cell_from_source(cell) for cell in row] for row in rows]

        pages = paginate_table(convert(table.body), col_widths, usable_height,
                               head=convert(table.head), foot=convert(table.foot),
                               repeat_header=opts.add_header_to_each)
        slides = []
        for page in pages:
            slide = self.add_slide(opts.master)
            slide.add_table(page.rows, {"x": left, "y": top, "cx": usable_width},
                            TableOptions(col_w=col_widths))
            if opts.add_image:
                extra = opts.add_image
                slide.add_image(extra.path, extra.x, extra.y, extra.w, extra.h)
            if opts.add_text:
                slide.add_text(opts.add_text.text, opts.add_text.options)
            if opts.add_shape:
                slide.add_shape(opts.add_shape.shape, opts.add_shape.options)
            if opts.add_table:
                slide.add_table(opts.add_table.rows, opts.add_table.options, opts.add_table.table_options)
            slides.append(slide)
        logger.info(f"Table laid out over {len(slides)} slide(s).")
        return slides

    # --- 4. Export ---
    def freeze(self) -> None:
        self.frozen = True

    async def export_async(self, writer=None, resolver=None) -> bytes:
        """Resolves every pending image, then serializes and archives all parts."""
        self.freeze()
        logger.info(f"Exporting '{self.title}' with {len(self.slides)} slide(s)...")
        await resolve_media(self, resolver)
        parts = build_package_parts(self)
        return (writer or ZipArchiveWriter()).write(parts)

    def export(self, writer=None, resolver=None) -> bytes:
        return asyncio.run(self.export_async(writer, resolver))

    def save(self, target) -> None:
        """Writes the package to a path or a binary file-like object."""
        data = self.export()
        if hasattr(target, "write"):
            target.write(data)
            return
        with open(target, "wb") as f:
            f.write(data)
        logger.info(f"Saved presentation to {target}")


def _margins(opts: AutoPageOptions):
    margin = opts.margin
    if margin is None and opts.master is not None:
        margin = opts.master.margin
    if margin is None:
        margin = 0.5
    if isinstance(margin, (int, float)):
        return (float(margin),) * 4
    return tuple(float(m) for m in margin)
