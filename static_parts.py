"""
Fixed boilerplate parts: theme, slide master, slide layout and the
presentation-level property parts. Only the master's layout id list depends
on the presentation being built.
"""
from pptx.oxml import parse_from_template, parse_xml

import xml_builder as xb

FIRST_LAYOUT_ID = 2147483649
SLIDE_NUMBER_FIELD_ID = "{F7021451-1387-4CA6-816F-3879F97B5CBC}"
DATE_FIELD_ID = "{F8166F1F-CE9B-4651-A6AA-CD717754106B}"
TABLE_STYLE_ID = "{5C22544A-7EE6-4342-B048-85BDC9FD1C3A}"

_NS = 'xmlns:a="%s" xmlns:r="%s" xmlns:p="%s"' % (
    xb.NAMESPACES["a"], xb.NAMESPACES["r"], xb.NAMESPACES["p"])

_GROUP_HEADER = (
    '<p:nvGrpSpPr><p:cNvPr id="1" name=""/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr>'
    '<p:grpSpPr><a:xfrm><a:off x="0" y="0"/><a:ext cx="0" cy="0"/>'
    '<a:chOff x="0" y="0"/><a:chExt cx="0" cy="0"/></a:xfrm></p:grpSpPr>'
)


def _placeholder(shape_id, name, ph_attrs, xfrm="", body="", text=""):
    geometry = ""
    if xfrm:
        geometry = '<a:xfrm>%s</a:xfrm><a:prstGeom prst="rect"><a:avLst/></a:prstGeom>' % xfrm
    return (
        f'<p:sp><p:nvSpPr><p:cNvPr id="{shape_id}" name="{name}"/>'
        f'<p:cNvSpPr><a:spLocks noGrp="1"/></p:cNvSpPr><p:nvPr><p:ph {ph_attrs}/></p:nvPr></p:nvSpPr>'
        f'<p:spPr>{geometry}</p:spPr><p:txBody>{body or "<a:bodyPr/><a:lstStyle/>"}'
        f'<a:p>{text}<a:endParaRPr lang="en-US"/></a:p></p:txBody></p:sp>'
    )


def _run(text):
    return f'<a:r><a:rPr lang="en-US" smtClean="0"/><a:t>{text}</a:t></a:r>'


def _field(field_id, field_type, text=""):
    return f'<a:fld id="{field_id}" type="{field_type}"><a:rPr lang="en-US" smtClean="0"/><a:t>{text}</a:t></a:fld>'


def _footer_body(algn):
    return (
        '<a:bodyPr vert="horz" lIns="91440" tIns="45720" rIns="91440" bIns="45720" rtlCol="0" anchor="ctr"/>'
        f'<a:lstStyle><a:lvl1pPr algn="{algn}"><a:defRPr sz="1200"><a:solidFill><a:schemeClr val="tx1">'
        '<a:tint val="75000"/></a:schemeClr></a:solidFill></a:defRPr></a:lvl1pPr></a:lstStyle>'
    )


def _level_styles(parent, kind):
    """Appends the nine paragraph levels of a master text style."""
    for level in range(1, 10):
        if kind == "body":
            indent = -342900 if level == 1 else (-285750 if level == 2 else -228600)
            margin = 342900 if level == 1 else (742950 if level == 2 else 1143000 + (level - 3) * 457200)
            size = {1: 3200, 2: 2800, 3: 2400}.get(level, 2000)
        else:
            indent, margin, size = None, (level - 1) * 457200, 1800
        ppr = xb.sub(parent, f"a:lvl{level}pPr", {
            "marL": margin, "indent": indent, "algn": "l", "defTabSz": 914400, "rtl": 0,
            "eaLnBrk": 1, "latinLnBrk": 0, "hangingPunct": 1,
        })
        if kind == "body":
            xb.sub(xb.sub(ppr, "a:spcBef"), "a:spcPct", {"val": 20000})
            xb.sub(ppr, "a:buFont", {"typeface": "Arial", "pitchFamily": 34, "charset": 0})
            xb.sub(ppr, "a:buChar", {"char": "•"})
        default_run_style(ppr, size, minor=True)


def default_run_style(parent, size, minor=True):
    kind = "mn" if minor else "mj"
    rpr = xb.sub(parent, "a:defRPr", {"sz": size, "kern": 1200})
    xb.sub(xb.sub(rpr, "a:solidFill"), "a:schemeClr", {"val": "tx1"})
    for script, tag in (("lt", "a:latin"), ("ea", "a:ea"), ("cs", "a:cs")):
        xb.sub(rpr, tag, {"typeface": f"+{kind}-{script}"})
    return rpr


_MASTER_TREE = (
    f'<p:sldMaster {_NS}><p:cSld><p:bg><p:bgRef idx="1001"><a:schemeClr val="bg1"/></p:bgRef></p:bg>'
    f'<p:spTree>{_GROUP_HEADER}'
    + _placeholder(2, "Title Placeholder 1", 'type="title"',
                   '<a:off x="457200" y="274638"/><a:ext cx="8229600" cy="1143000"/>',
                   '<a:bodyPr vert="horz" lIns="91440" tIns="45720" rIns="91440" bIns="45720" rtlCol="0" anchor="ctr">'
                   '<a:normAutofit/></a:bodyPr><a:lstStyle/>',
                   _run("Click to edit Master title style"))
    + _placeholder(3, "Text Placeholder 2", 'type="body" idx="1"',
                   '<a:off x="457200" y="1600200"/><a:ext cx="8229600" cy="4525963"/>',
                   '<a:bodyPr vert="horz" lIns="91440" tIns="45720" rIns="91440" bIns="45720" rtlCol="0">'
                   '<a:normAutofit/></a:bodyPr><a:lstStyle/>',
                   '<a:pPr lvl="0"/>' + _run("Click to edit Master text styles"))
    + _placeholder(4, "Date Placeholder 3", 'type="dt" sz="half" idx="2"',
                   '<a:off x="457200" y="6356350"/><a:ext cx="2133600" cy="365125"/>',
                   _footer_body("l"), _field(DATE_FIELD_ID, "datetimeFigureOut"))
    + _placeholder(5, "Footer Placeholder 4", 'type="ftr" sz="quarter" idx="3"',
                   '<a:off x="3124200" y="6356350"/><a:ext cx="2895600" cy="365125"/>',
                   _footer_body("ctr"))
    + _placeholder(6, "Slide Number Placeholder 5", 'type="sldNum" sz="quarter" idx="4"',
                   '<a:off x="6553200" y="6356350"/><a:ext cx="2133600" cy="365125"/>',
                   _footer_body("r"), _field(SLIDE_NUMBER_FIELD_ID, "slidenum"))
    + '</p:spTree></p:cSld>'
    '<p:clrMap bg1="lt1" tx1="dk1" bg2="lt2" tx2="dk2" accent1="accent1" accent2="accent2" '
    'accent3="accent3" accent4="accent4" accent5="accent5" accent6="accent6" hlink="hlink" folHlink="folHlink"/>'
    '</p:sldMaster>'
)

_LAYOUT_TREE = (
    f'<p:sldLayout {_NS} type="title" preserve="1"><p:cSld name="Title Slide"><p:spTree>{_GROUP_HEADER}'
    + _placeholder(2, "Title 1", 'type="ctrTitle"',
                   '<a:off x="685800" y="2130425"/><a:ext cx="7772400" cy="1470025"/>',
                   text=_run("Click to edit Master title style"))
    + _placeholder(3, "Subtitle 2", 'type="subTitle" idx="1"',
                   '<a:off x="1371600" y="3886200"/><a:ext cx="6400800" cy="1752600"/>',
                   text=_run("Click to edit Master subtitle style"))
    + _placeholder(4, "Date Placeholder 3", 'type="dt" sz="half" idx="10"',
                   text=_field(DATE_FIELD_ID, "datetimeFigureOut"))
    + _placeholder(5, "Footer Placeholder 4", 'type="ftr" sz="quarter" idx="11"')
    + _placeholder(6, "Slide Number Placeholder 5", 'type="sldNum" sz="quarter" idx="12"',
                   text=_field(SLIDE_NUMBER_FIELD_ID, "slidenum"))
    + '</p:spTree></p:cSld><p:clrMapOvr><a:masterClrMapping/></p:clrMapOvr></p:sldLayout>'
)

_PRES_PROPS = (
    f'<p:presentationPr {_NS}><p:extLst>'
    '<p:ext uri="{E76CE94A-603C-4142-B9EB-6D1370010A27}"><p14:discardImageEditData '
    'xmlns:p14="http://schemas.microsoft.com/office/powerpoint/2010/main" val="0"/></p:ext>'
    '<p:ext uri="{D31A062A-798A-4329-ABDD-BBA856620510}"><p14:defaultImageDpi '
    'xmlns:p14="http://schemas.microsoft.com/office/powerpoint/2010/main" val="220"/></p:ext>'
    '</p:extLst></p:presentationPr>'
)

_VIEW_PROPS = (
    f'<p:viewPr {_NS}>'
    '<p:normalViewPr><p:restoredLeft sz="15620"/><p:restoredTop sz="94660"/></p:normalViewPr>'
    '<p:slideViewPr><p:cSldViewPr><p:cViewPr varScale="1"><p:scale><a:sx n="64" d="100"/>'
    '<a:sy n="64" d="100"/></p:scale><p:origin x="-1392" y="-96"/></p:cViewPr>'
    '<p:guideLst><p:guide orient="horz" pos="2160"/><p:guide pos="2880"/></p:guideLst>'
    '</p:cSldViewPr></p:slideViewPr>'
    '<p:notesTextViewPr><p:cViewPr><p:scale><a:sx n="100" d="100"/><a:sy n="100" d="100"/></p:scale>'
    '<p:origin x="0" y="0"/></p:cViewPr></p:notesTextViewPr>'
    '<p:gridSpacing cx="78028800" cy="78028800"/></p:viewPr>'
)


def theme_xml() -> str:
    """The stock Office theme bundled with python-pptx."""
    return xb.to_xml(parse_from_template("theme"))


def slide_layout_xml() -> str:
    return xb.to_xml(parse_xml(_LAYOUT_TREE))


def slide_master_xml(slide_count: int) -> str:
    """The single master, listing one layout per slide (layout rIds 1..N)."""
    master = parse_xml(_MASTER_TREE)
    layouts = xb.sub(master, "p:sldLayoutIdLst")
    for idx in range(slide_count):
        xb.sub(layouts, "p:sldLayoutId", {"id": FIRST_LAYOUT_ID + idx, "r:id": f"rId{idx + 1}"})

    styles = xb.sub(master, "p:txStyles")
    title = xb.sub(xb.sub(styles, "p:titleStyle"), "a:lvl1pPr", {
        "algn": "ctr", "defTabSz": 914400, "rtl": 0, "eaLnBrk": 1, "latinLnBrk": 0, "hangingPunct": 1,
    })
    xb.sub(xb.sub(title, "a:spcBef"), "a:spcPct", {"val": 0})
    xb.sub(title, "a:buNone")
    default_run_style(title, 4400, minor=False)
    _level_styles(xb.sub(styles, "p:bodyStyle"), "body")
    other = xb.sub(styles, "p:otherStyle")
    xb.sub(xb.sub(other, "a:defPPr"), "a:defRPr", {"lang": "en-US"})
    _level_styles(other, "other")
    return xb.to_xml(master)


def pres_props_xml() -> str:
    return xb.to_xml(parse_xml(_PRES_PROPS))


def table_styles_xml() -> str:
    return xb.to_xml(xb.root("a:tblStyleLst", "a", attrs={"def": TABLE_STYLE_ID}))


def view_props_xml() -> str:
    return xb.to_xml(parse_xml(_VIEW_PROPS))
