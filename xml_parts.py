"""
Serializers for every XML part of a presentation package.

Each `*_xml` function is pure: it reads the document model and returns the
finished part as a string. Slide shapes are dispatched by their `type` to
the matching shape writer, in paint order.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pptx.opc.constants import CONTENT_TYPE as CT
from pptx.opc.constants import RELATIONSHIP_TYPE as RT

import xml_builder as xb
from models import (Border, BorderSide, CellOptions, FontOptions, HAlign, TableCell, TableOptions,
                    TextRun, VAlign)
from static_parts import (DATE_FIELD_ID, SLIDE_NUMBER_FIELD_ID, default_run_style, pres_props_xml,
                          slide_layout_xml, slide_master_xml, table_styles_xml, theme_xml,
                          view_props_xml)
from table_layout import MergedCell, column_count, materialize_spans
from units import (DEFAULT_LAYOUT, EMU_PER_INCH, EMU_PER_POINT, LAYOUTS, SlideLayout, parse_position,
                   points_to_emu, to_emu)

logger = logging.getLogger(__name__)

__all__ = [
    "content_types_xml", "root_rels_xml", "app_xml", "core_xml", "presentation_rels_xml",
    "presentation_xml", "slide_master_xml", "slide_master_rels_xml", "slide_layout_xml",
    "slide_layout_rels_xml", "slide_xml", "slide_rels_xml", "theme_xml", "pres_props_xml",
    "table_styles_xml", "view_props_xml",
]

MASTER_ID = 2147483648
FIRST_SLIDE_ID = 256
EMU_PER_PIXEL = 9525
DEFAULT_BORDER_COLOR = "666666"
TABLE_URI = "http://schemas.openxmlformats.org/drawingml/2006/table"

ALIGN_VALUES = {HAlign.CENTER: "ctr", HAlign.RIGHT: "r", HAlign.JUSTIFY: "just"}
CELL_ALIGN_VALUES = {HAlign.LEFT: "l", **ALIGN_VALUES}
ANCHOR_VALUES = {VAlign.TOP: "t", VAlign.CENTER: "ctr", VAlign.BOTTOM: "b"}
FIELD_IDS = {"slidenum": SLIDE_NUMBER_FIELD_ID, "datetime": DATE_FIELD_ID}
PRESENTATION_FORMATS = {
    "LAYOUT_4x3": "On-screen Show (4:3)",
    "LAYOUT_16x9": "On-screen Show (16:9)",
    "LAYOUT_16x10": "On-screen Show (16:10)",
    "LAYOUT_WIDE": "Widescreen",
}


def _rels(entries: Sequence[Tuple[int, str, str]]) -> str:
    node = xb.root("Relationships", default="pr")
    for rid, rel_type, target in entries:
        xb.sub(node, "pr:Relationship", {"Id": f"rId{rid}", "Type": rel_type, "Target": target})
    return xb.to_xml(node)


# --- 1. Package-Level Parts ---
def content_types_xml(presentation) -> str:
    """[Content_Types].xml: fixed defaults and overrides plus master, layout and slide per slide."""
    node = xb.root("Types", default="ct")
    for extension, content_type in (("rels", CT.OPC_RELATIONSHIPS), ("xml", CT.XML),
                                    ("jpeg", CT.JPEG), ("png", CT.PNG)):
        xb.sub(node, "ct:Default", {"Extension": extension, "ContentType": content_type})

    def override(part_name, content_type):
        xb.sub(node, "ct:Override", {"PartName": part_name, "ContentType": content_type})

    override("/docProps/app.xml", CT.OFC_EXTENDED_PROPERTIES)
    override("/ppt/theme/theme1.xml", CT.OFC_THEME)
    override("/docProps/core.xml", CT.OPC_CORE_PROPERTIES)
    override("/ppt/presProps.xml", CT.PML_PRES_PROPS)
    override("/ppt/presentation.xml", CT.PML_PRESENTATION_MAIN)
    override("/ppt/tableStyles.xml", CT.PML_TABLE_STYLES)
    override("/ppt/viewProps.xml", CT.PML_VIEW_PROPS)
    for number in range(1, len(presentation.slides) + 1):
        override(f"/ppt/slideMasters/slideMaster{number}.xml", CT.PML_SLIDE_MASTER)
        override(f"/ppt/slideLayouts/slideLayout{number}.xml", CT.PML_SLIDE_LAYOUT)
        override(f"/ppt/slides/slide{number}.xml", CT.PML_SLIDE)
    return xb.to_xml(node)


def root_rels_xml() -> str:
    return _rels([
        (1, RT.EXTENDED_PROPERTIES, "docProps/app.xml"),
        (2, RT.CORE_PROPERTIES, "docProps/core.xml"),
        (3, RT.OFFICE_DOCUMENT, "ppt/presentation.xml"),
    ])


def _variant(vector, kind: str, value: Any) -> None:
    xb.sub(xb.sub(vector, "vt:variant"), kind, text=value)


def app_xml(presentation) -> str:
    """docProps/app.xml: application statistics and the titles of parts."""
    count = len(presentation.slides)
    node = xb.root("Properties", "vt", default="ep")
    for tag, value in (("TotalTime", 0), ("Words", 0), ("Application", "Microsoft Office PowerPoint"),
                       ("PresentationFormat", PRESENTATION_FORMATS.get(presentation.layout_key, "Custom")),
                       ("Paragraphs", 0), ("Slides", count), ("Notes", 0), ("HiddenSlides", 0),
                       ("MMClips", 0), ("ScaleCrop", "false")):
        xb.sub(node, f"ep:{tag}", text=value)

    pairs = xb.sub(xb.sub(node, "ep:HeadingPairs"), "vt:vector", {"size": 4, "baseType": "variant"})
    _variant(pairs, "vt:lpstr", "Theme")
    _variant(pairs, "vt:i4", 1)
    _variant(pairs, "vt:lpstr", "Slide Titles")
    _variant(pairs, "vt:i4", count)

    titles = xb.sub(xb.sub(node, "ep:TitlesOfParts"), "vt:vector", {"size": count + 1, "baseType": "lpstr"})
    xb.sub(titles, "vt:lpstr", text="Office Theme")
    for slide in presentation.slides:
        xb.sub(titles, "vt:lpstr", text=slide.name)

    for tag, value in (("Company", presentation.author), ("LinksUpToDate", "false"), ("SharedDoc", "false"),
                       ("HyperlinksChanged", "false"), ("AppVersion", "15.0000")):
        xb.sub(node, f"ep:{tag}", text=value)
    return xb.to_xml(node)


def core_xml(presentation) -> str:
    node = xb.root("cp:coreProperties", "cp", "dc", "dcterms", "dcmitype", "xsi")
    stamp = presentation.created.strftime("%Y-%m-%dT%H:%M:%SZ")
    xb.sub(node, "dc:title", text=presentation.title)
    xb.sub(node, "dc:creator", text=presentation.author)
    xb.sub(node, "cp:lastModifiedBy", text=presentation.author)
    xb.sub(node, "cp:revision", text=1)
    xb.sub(node, "dcterms:created", {"xsi:type": "dcterms:W3CDTF"}, stamp)
    xb.sub(node, "dcterms:modified", {"xsi:type": "dcterms:W3CDTF"}, stamp)
    return xb.to_xml(node)


def presentation_rels_xml(presentation) -> str:
    """ppt/_rels/presentation.xml.rels: master, slides, then the property parts and theme."""
    count = len(presentation.slides)
    entries = [(1, RT.SLIDE_MASTER, "slideMasters/slideMaster1.xml")]
    entries += [(number + 1, RT.SLIDE, f"slides/slide{number}.xml") for number in range(1, count + 1)]
    entries += [
        (count + 2, RT.PRES_PROPS, "presProps.xml"),
        (count + 3, RT.VIEW_PROPS, "viewProps.xml"),
        (count + 4, RT.THEME, "theme/theme1.xml"),
        (count + 5, RT.TABLE_STYLES, "tableStyles.xml"),
    ]
    return _rels(entries)


def presentation_xml(presentation) -> str:
    layout = presentation.layout
    node = xb.root("p:presentation", "a", "r", "p", attrs={"saveSubsetFonts": 1})
    masters = xb.sub(node, "p:sldMasterIdLst")
    xb.sub(masters, "p:sldMasterId", {"id": MASTER_ID, "r:id": "rId1"})
    slides = xb.sub(node, "p:sldIdLst")
    for idx in range(len(presentation.slides)):
        xb.sub(slides, "p:sldId", {"id": idx + FIRST_SLIDE_ID, "r:id": f"rId{idx + 2}"})
    xb.sub(node, "p:sldSz", {"cx": layout.width, "cy": layout.height, "type": layout.name})
    xb.sub(node, "p:notesSz", {"cx": layout.height, "cy": layout.width})

    styles = xb.sub(node, "p:defaultTextStyle")
    xb.sub(xb.sub(styles, "a:defPPr"), "a:defRPr", {"lang": "en-US"})
    for level in range(1, 10):
        ppr = xb.sub(styles, f"a:lvl{level}pPr", {
            "marL": (level - 1) * 457200, "algn": "l", "defTabSz": 914400, "rtl": 0,
            "eaLnBrk": 1, "latinLnBrk": 0, "hangingPunct": 1,
        })
        default_run_style(ppr, 1800)
    return xb.to_xml(node)


def slide_master_rels_xml(slide_count: int) -> str:
    entries = [(idx, RT.SLIDE_LAYOUT, f"../slideLayouts/slideLayout{idx}.xml")
               for idx in range(1, slide_count + 1)]
    entries.append((slide_count + 1, RT.THEME, "../theme/theme1.xml"))
    return _rels(entries)


def slide_layout_rels_xml() -> str:
    return _rels([(1, RT.SLIDE_MASTER, "../slideMasters/slideMaster1.xml")])


def slide_rels_xml(slide) -> str:
    """Layout at rId1, then the slide's images in the order they were added."""
    entries = [(1, RT.SLIDE_LAYOUT, f"../slideLayouts/slideLayout{slide.index}.xml")]
    entries += [(rel.rid, RT.IMAGE, rel.target) for rel in slide.relationships]
    return _rels(entries)


# --- 2. Text ---
def _solid_fill(parent, color: Optional[str]) -> None:
    if color:
        xb.sub(xb.sub(parent, "a:solidFill"), "a:srgbClr", {"val": color})


def _run_properties(parent, opts: FontOptions, tag: str = "a:rPr"):
    rpr = xb.sub(parent, tag, {
        "lang": "en-US",
        "sz": int(round(opts.font_size * 100)) if opts.font_size else None,
        "b": 1 if opts.bold else None,
        "u": "sng" if opts.underline else None,
        "spc": int(round(opts.char_spacing * 100)) if opts.char_spacing else None,
        "kern": 0 if opts.char_spacing else None,
        "dirty": 0,
    })
    _solid_fill(rpr, opts.color)
    if opts.font_face:
        xb.sub(rpr, "a:latin", {"typeface": opts.font_face, "pitchFamily": 34, "charset": 0})
        xb.sub(rpr, "a:cs", {"typeface": opts.font_face, "pitchFamily": 34, "charset": 0})
    return rpr


def _field_id(field: str) -> Tuple[str, str]:
    key = field.lower()
    if key in FIELD_IDS:
        return FIELD_IDS[key], key
    logger.warning(f"Unknown field type '{field}'; writing a date field instead.")
    return DATE_FIELD_ID, "datetime"


def _paragraphs(runs: Sequence[TextRun], shape_opts) -> List[List[Tuple[TextRun, FontOptions, str]]]:
    """
    Groups runs into paragraphs. A newline inside a run starts a new
    paragraph that keeps the run's formatting; a run with break_line closes
    its paragraph. Runs without their own options take the shape's.
    """
    paragraphs: List[list] = [[]]
    closed = False
    for run in runs:
        opts = run.options or shape_opts
        if closed:
            paragraphs.append([])
            closed = False
        if run.field:
            paragraphs[-1].append((run, opts, run.text or ""))
        else:
            for number, line in enumerate((run.text or "").split("\n")):
                if number:
                    paragraphs.append([])
                if line:
                    paragraphs[-1].append((run, opts, line))
        closed = opts.break_line
    return paragraphs


def _write_paragraphs(body, runs: Sequence[TextRun], opts, slide=None) -> None:
    align = ALIGN_VALUES.get(opts.align) if opts.align else None
    for paragraph in _paragraphs(runs, opts):
        p = xb.sub(body, "a:p")
        if align or opts.indent_level > 0:
            xb.sub(p, "a:pPr", {"algn": align, "lvl": opts.indent_level or None})
        for run, run_opts, text in paragraph:
            if run.field:
                field_id, field_type = _field_id(run.field)
                fld = xb.sub(p, "a:fld", {"id": field_id, "type": field_type})
                _run_properties(fld, run_opts)
                if not text and field_type == "slidenum" and slide is not None:
                    text = str(slide.page_number)
                xb.sub(fld, "a:t", text=text)
            else:
                r = xb.sub(p, "a:r")
                _run_properties(r, run_opts)
                xb.sub(r, "a:t", text=text)
        xb.sub(p, "a:endParaRPr", {
            "lang": "en-US",
            "sz": int(round(opts.font_size * 100)) if opts.font_size else None,
            "dirty": 0,
        })


def _body_properties(body, opts) -> None:
    insets = {}
    if opts.margin:
        top, right, bottom, left = opts.margin
        insets = {"lIns": points_to_emu(left), "tIns": points_to_emu(top),
                  "rIns": points_to_emu(right), "bIns": points_to_emu(bottom)}
    elif opts.inset is not None:
        inset = to_emu(opts.inset)
        insets = {"lIns": inset, "tIns": inset, "rIns": inset, "bIns": inset}
    body_pr = xb.sub(body, "a:bodyPr", {
        "wrap": "square", "rtlCol": 0, **insets,
        "anchor": ANCHOR_VALUES[opts.valign or VAlign.CENTER],
    })
    if opts.shrink_text:
        xb.sub(body_pr, "a:normAutofit", {"fontScale": 85000, "lnSpcReduction": 20000})
    elif opts.autofit:
        xb.sub(body_pr, "a:spAutoFit")


# --- 3. Shapes ---
def _transform(parent, tag: str, x: int, y: int, cx: int, cy: int, opts=None):
    attrs = {}
    if opts is not None:
        if opts.rotate:
            degrees = opts.rotate - 360 if opts.rotate > 360 else opts.rotate
            attrs["rot"] = int(round(degrees * 60000))
        if opts.flip_h:
            attrs["flipH"] = 1
        if opts.flip_v:
            attrs["flipV"] = 1
    xfrm = xb.sub(parent, tag, attrs)
    xb.sub(xfrm, "a:off", {"x": x, "y": y})
    xb.sub(xfrm, "a:ext", {"cx": cx, "cy": cy})
    return xfrm


def _preset_geometry(parent, geometry: str) -> None:
    xb.sub(xb.sub(parent, "a:prstGeom", {"prst": geometry}), "a:avLst")


def _text_shape(tree, idx: int, shape, slide, layout: SlideLayout) -> None:
    opts = shape.options
    x = parse_position(opts.x, "X", layout)
    y = parse_position(opts.y, "Y", layout)
    cx = parse_position(opts.cx, "X", layout) if opts.cx is not None else EMU_PER_INCH * 10
    cy = parse_position(opts.cy, "Y", layout)
    if cy == 0 and not opts.line:
        cy = int(EMU_PER_INCH * 0.3)

    sp = xb.sub(tree, "p:sp")
    nv = xb.sub(sp, "p:nvSpPr")
    xb.sub(nv, "p:cNvPr", {"id": idx + 2, "name": f"Object {idx + 1}"})
    xb.sub(nv, "p:cNvSpPr", {"txBox": 1 if opts.is_text_box else None})
    xb.sub(nv, "p:nvPr")

    sp_pr = xb.sub(sp, "p:spPr")
    _transform(sp_pr, "a:xfrm", x, y, cx, cy, opts)
    _preset_geometry(sp_pr, shape.geometry)
    if opts.fill:
        _solid_fill(sp_pr, opts.fill)
    else:
        xb.sub(sp_pr, "a:noFill")
    if opts.line:
        ln = xb.sub(sp_pr, "a:ln", {"w": points_to_emu(opts.line_size) if opts.line_size else None})
        _solid_fill(ln, opts.line)
        if opts.line_head:
            xb.sub(ln, "a:headEnd", {"type": opts.line_head})
        if opts.line_tail:
            xb.sub(ln, "a:tailEnd", {"type": opts.line_tail})

    if shape.has_text:
        body = xb.sub(sp, "p:txBody")
        _body_properties(body, opts)
        xb.sub(body, "a:lstStyle")
        _write_paragraphs(body, shape.runs, opts, slide)


def _natural_size(relationship) -> Tuple[int, int]:
    if relationship.width_px and relationship.height_px:
        return relationship.width_px * EMU_PER_PIXEL, relationship.height_px * EMU_PER_PIXEL
    return EMU_PER_INCH, EMU_PER_INCH


def _picture_shape(tree, idx: int, shape, slide, layout: SlideLayout) -> None:
    relationship = shape.relationship
    natural_cx, natural_cy = _natural_size(relationship)
    cx = parse_position(shape.w, "X", layout) if shape.w is not None else natural_cx
    cy = parse_position(shape.h, "Y", layout) if shape.h is not None else natural_cy

    pic = xb.sub(tree, "p:pic")
    nv = xb.sub(pic, "p:nvPicPr")
    xb.sub(nv, "p:cNvPr", {"id": idx + 2, "name": f"Object {idx + 1}", "descr": relationship.path})
    xb.sub(xb.sub(nv, "p:cNvPicPr"), "a:picLocks", {"noChangeAspect": 1})
    xb.sub(nv, "p:nvPr")

    blip_fill = xb.sub(pic, "p:blipFill")
    xb.sub(blip_fill, "a:blip", {"r:embed": f"rId{relationship.rid}", "cstate": "print"})
    xb.sub(xb.sub(blip_fill, "a:stretch"), "a:fillRect")

    sp_pr = xb.sub(pic, "p:spPr")
    _transform(sp_pr, "a:xfrm", parse_position(shape.x, "X", layout), parse_position(shape.y, "Y", layout),
               cx, cy)
    _preset_geometry(sp_pr, "rect")


# --- 4. Tables ---
_CELL_STYLE_FIELDS = ("align", "valign", "font_face", "font_size", "color", "fill", "border", "margin")


def cell_style(cell: TableCell, table_opts: TableOptions) -> CellOptions:
    """A cell's own options with unset fields filled from the table-wide defaults."""
    opts = cell.options.model_copy()
    for name in _CELL_STYLE_FIELDS:
        if getattr(opts, name) is None:
            setattr(opts, name, getattr(table_opts, name))
    opts.bold = opts.bold or table_opts.bold
    opts.underline = opts.underline or table_opts.underline
    return opts


def _column_widths(table_opts: TableOptions, cx: int, count: int) -> List[int]:
    even = int(cx / count) if count else 0
    col_w = table_opts.col_w
    if isinstance(col_w, list):
        return [to_emu(col_w[i]) if i < len(col_w) and col_w[i] is not None else even for i in range(count)]
    if col_w is not None:
        return [to_emu(col_w)] * count
    return [even] * count


def _row_heights(table_opts: TableOptions, cy: int, count: int) -> List[int]:
    row_h = table_opts.row_h
    if isinstance(row_h, list):
        fallback = int(cy / count) if cy and count else 0
        return [to_emu(row_h[i]) if i < len(row_h) else fallback for i in range(count)]
    if row_h is not None:
        return [to_emu(row_h)] * count
    if cy and count:
        return [int(cy / count)] * count
    return [0] * count


def _solid_line(parent, tag: str, width: int, color: str):
    ln = xb.sub(parent, tag, {"w": width, "cap": "flat", "cmpd": "sng", "algn": "ctr"})
    _solid_fill(ln, color)
    return ln


def _cell_borders(tc_pr, border: Border) -> None:
    sides = ("a:lnL", "a:lnR", "a:lnT", "a:lnB")
    if isinstance(border, str):
        for tag in sides:
            _solid_line(tc_pr, tag, EMU_PER_POINT, border)
    elif isinstance(border, BorderSide):
        for tag in sides:
            ln = _solid_line(tc_pr, tag, points_to_emu(border.pt), border.color)
            xb.sub(ln, "a:prstDash", {"val": "sysDash" if border.dashed else "solid"})
            xb.sub(ln, "a:round")
            xb.sub(ln, "a:headEnd", {"type": "none", "w": "med", "len": "med"})
            xb.sub(ln, "a:tailEnd", {"type": "none", "w": "med", "len": "med"})
    else:
        # Stored top, right, bottom, left; written left, right, top, bottom
        for tag, index in zip(sides, (3, 1, 0, 2)):
            side = border[index]
            if side is None:
                xb.sub(xb.sub(tc_pr, tag, {"w": 0}), "a:miter", {"lim": 400000})
            else:
                _solid_line(tc_pr, tag, points_to_emu(side.pt), side.color or DEFAULT_BORDER_COLOR)


def _table_cell(tr, cell: TableCell, table_opts: TableOptions) -> None:
    opts = cell_style(cell, table_opts)
    tc = xb.sub(tr, "a:tc", {
        "gridSpan": opts.colspan if opts.colspan and opts.colspan > 1 else None,
        "rowSpan": opts.rowspan if opts.rowspan and opts.rowspan > 1 else None,
    })
    body = xb.sub(tc, "a:txBody")
    xb.sub(body, "a:bodyPr")
    xb.sub(body, "a:lstStyle")
    for line in cell.text.split("\n"):
        p = xb.sub(body, "a:p")
        if opts.align:
            xb.sub(p, "a:pPr", {"algn": CELL_ALIGN_VALUES[opts.align]})
        if line:
            r = xb.sub(p, "a:r")
            _run_properties(r, opts)
            xb.sub(r, "a:t", text=line)
        xb.sub(p, "a:endParaRPr", {"lang": "en-US", "dirty": 0})

    margins = {}
    if opts.margin:
        top, right, bottom, left = opts.margin
        margins = {"marL": points_to_emu(left), "marR": points_to_emu(right),
                   "marT": points_to_emu(top), "marB": points_to_emu(bottom)}
    tc_pr = xb.sub(tc, "a:tcPr", {**margins, "anchor": ANCHOR_VALUES[opts.valign] if opts.valign else None})
    if opts.border:
        _cell_borders(tc_pr, opts.border)
    _solid_fill(tc_pr, opts.fill)


def _merged_cell(tr, cell: MergedCell) -> None:
    tc = xb.sub(tr, "a:tc", {"hMerge" if cell.direction == "h" else "vMerge": 1})
    xb.sub(tc, "a:tcPr")


def _table_shape(tree, idx: int, shape, slide, layout: SlideLayout) -> None:
    opts = shape.options
    x = parse_position(opts.x, "X", layout) if opts.x is not None else EMU_PER_INCH // 2
    y = parse_position(opts.y, "Y", layout) if opts.y is not None else EMU_PER_INCH
    cx = parse_position(opts.cx, "X", layout) if opts.cx is not None else layout.width - EMU_PER_INCH // 2
    cy = parse_position(opts.cy, "Y", layout) if opts.cy is not None else 0

    grid = materialize_spans(shape.rows)
    count = max(column_count(row) for row in shape.rows)
    widths = _column_widths(shape.table_options, cx, count)
    heights = _row_heights(shape.table_options, cy, len(grid))

    frame = xb.sub(tree, "p:graphicFrame")
    nv = xb.sub(frame, "p:nvGraphicFramePr")
    xb.sub(nv, "p:cNvPr", {"id": idx + 2, "name": f"Table {idx + 1}"})
    xb.sub(xb.sub(nv, "p:cNvGraphicFramePr"), "a:graphicFrameLocks", {"noGrp": 1})
    xb.sub(nv, "p:nvPr")
    _transform(frame, "p:xfrm", x, y, cx, cy or EMU_PER_INCH)

    data = xb.sub(xb.sub(frame, "a:graphic"), "a:graphicData", {"uri": TABLE_URI})
    tbl = xb.sub(data, "a:tbl")
    xb.sub(tbl, "a:tblPr")
    tbl_grid = xb.sub(tbl, "a:tblGrid")
    for width in widths:
        xb.sub(tbl_grid, "a:gridCol", {"w": width})
    for row, height in zip(grid, heights):
        tr = xb.sub(tbl, "a:tr", {"h": height})
        for cell in row:
            if isinstance(cell, MergedCell):
                _merged_cell(tr, cell)
            else:
                _table_cell(tr, cell, shape.table_options)


# --- 5. Slides ---
SHAPE_WRITERS: Dict[str, Callable[..., None]] = {
    "text": _text_shape,
    "image": _picture_shape,
    "table": _table_shape,
}


def _slide_number(tree, shape_id: int, slide, layout: SlideLayout) -> None:
    sp = xb.sub(tree, "p:sp")
    nv = xb.sub(sp, "p:nvSpPr")
    xb.sub(nv, "p:cNvPr", {"id": shape_id, "name": "Slide Number Placeholder 24"})
    xb.sub(xb.sub(nv, "p:cNvSpPr"), "a:spLocks", {"noGrp": 1})
    xb.sub(xb.sub(nv, "p:nvPr"), "p:ph", {"type": "sldNum", "sz": "quarter", "idx": 4294967295})
    sp_pr = xb.sub(sp, "p:spPr")
    _transform(sp_pr, "a:xfrm", int(EMU_PER_INCH * 0.3), layout.height - int(EMU_PER_INCH * 0.4), 400000, 300000)
    _preset_geometry(sp_pr, "rect")
    body = xb.sub(sp, "p:txBody")
    xb.sub(body, "a:bodyPr")
    xb.sub(body, "a:lstStyle")
    p = xb.sub(body, "a:p")
    xb.sub(p, "a:pPr")
    fld = xb.sub(p, "a:fld", {"id": SLIDE_NUMBER_FIELD_ID, "type": "slidenum"})
    xb.sub(fld, "a:rPr", {"lang": "en-US"})
    xb.sub(fld, "a:t", text=slide.page_number)
    xb.sub(p, "a:endParaRPr", {"lang": "en-US"})


def _background(c_sld, slide) -> None:
    if slide.background_relationship is not None:
        bg_pr = xb.sub(xb.sub(c_sld, "p:bg"), "p:bgPr")
        blip_fill = xb.sub(bg_pr, "a:blipFill", {"dpi": 0, "rotWithShape": 1})
        blip = xb.sub(blip_fill, "a:blip", {"r:embed": f"rId{slide.background_relationship.rid}"})
        xb.sub(blip, "a:lum")
        xb.sub(blip_fill, "a:srcRect")
        xb.sub(xb.sub(blip_fill, "a:stretch"), "a:fillRect")
        xb.sub(bg_pr, "a:effectLst")
    elif slide.background_color:
        bg_pr = xb.sub(xb.sub(c_sld, "p:bg"), "p:bgPr")
        _solid_fill(bg_pr, slide.background_color)
        xb.sub(bg_pr, "a:effectLst")


def slide_xml(slide, layout: Optional[SlideLayout] = None) -> str:
    """ppt/slides/slideN.xml: background, then every shape in the order it was added."""
    layout = layout or LAYOUTS[DEFAULT_LAYOUT]
    node = xb.root("p:sld", "a", "r", "p")
    c_sld = xb.sub(node, "p:cSld", {"name": slide.name})
    _background(c_sld, slide)

    tree = xb.sub(c_sld, "p:spTree")
    group = xb.sub(tree, "p:nvGrpSpPr")
    xb.sub(group, "p:cNvPr", {"id": 1, "name": ""})
    xb.sub(group, "p:cNvGrpSpPr")
    xb.sub(group, "p:nvPr")
    xfrm = xb.sub(xb.sub(tree, "p:grpSpPr"), "a:xfrm")
    xb.sub(xfrm, "a:off", {"x": 0, "y": 0})
    xb.sub(xfrm, "a:ext", {"cx": 0, "cy": 0})
    xb.sub(xfrm, "a:chOff", {"x": 0, "y": 0})
    xb.sub(xfrm, "a:chExt", {"cx": 0, "cy": 0})

    for idx, shape in enumerate(slide.shapes):
        writer = SHAPE_WRITERS.get(shape.type)
        if writer is None:
            logger.warning(f"{slide.name}: no writer for shape type '{shape.type}'; skipped.")
            continue
        writer(tree, idx, shape, slide, layout)

    if slide.show_slide_number:
        _slide_number(tree, len(slide.shapes) + 2, slide, layout)

    xb.sub(xb.sub(node, "p:clrMapOvr"), "a:masterClrMapping")
    logger.debug(f"Serialized {slide.name} with {len(slide.shapes)} shape(s).")
    return xb.to_xml(node)
