"""
Tests for the XML part serializers
"""

from lxml import etree

import xml_parts
from models import BorderSide, TextRun
from presentation import Presentation
from static_parts import SLIDE_NUMBER_FIELD_ID
from xml_builder import NAMESPACES

NS = {prefix: NAMESPACES[prefix] for prefix in ("a", "p", "r", "ct", "pr", "ep", "vt", "dc", "cp")}


def parse(xml: str):
    assert xml.startswith("<?xml version='1.0' encoding='UTF-8' standalone='yes'?>")
    return etree.fromstring(xml.encode("utf-8"))


def paragraph_texts(sp):
    return ["".join(p.xpath("./a:r/a:t/text()", namespaces=NS)) for p in sp.xpath(".//a:p", namespaces=NS)]


class TestPackageParts:
    """Tests for manifest, relationships and document properties."""

    def test_manifest_overrides_per_slide(self):
        prs = Presentation()
        for _ in range(3):
            prs.add_slide()
        tree = parse(xml_parts.content_types_xml(prs))
        for kind in ("slideMasters/slideMaster", "slideLayouts/slideLayout", "slides/slide"):
            names = tree.xpath(f"//ct:Override[contains(@PartName, '/{kind}')]/@PartName", namespaces=NS)
            assert names == [f"/ppt/{kind}{n}.xml" for n in (1, 2, 3)]
        defaults = tree.xpath("//ct:Default/@Extension", namespaces=NS)
        assert defaults == ["rels", "xml", "jpeg", "png"]

    def test_root_rels(self):
        tree = parse(xml_parts.root_rels_xml())
        assert tree.xpath("//pr:Relationship/@Id", namespaces=NS) == ["rId1", "rId2", "rId3"]
        assert tree.xpath("//pr:Relationship/@Target", namespaces=NS)[2] == "ppt/presentation.xml"

    def test_presentation_rels_order(self):
        prs = Presentation()
        prs.add_slide()
        prs.add_slide()
        tree = parse(xml_parts.presentation_rels_xml(prs))
        targets = tree.xpath("//pr:Relationship/@Target", namespaces=NS)
        assert targets == ["slideMasters/slideMaster1.xml", "slides/slide1.xml", "slides/slide2.xml",
                           "presProps.xml", "viewProps.xml", "theme/theme1.xml", "tableStyles.xml"]

    def test_app_properties(self):
        prs = Presentation(layout="LAYOUT_WIDE")
        prs.add_slide()
        prs.add_slide()
        tree = parse(xml_parts.app_xml(prs))
        assert tree.findtext("ep:Slides", namespaces=NS) == "2"
        assert tree.findtext("ep:PresentationFormat", namespaces=NS) == "Widescreen"
        titles = tree.xpath("//ep:TitlesOfParts/vt:vector/vt:lpstr/text()", namespaces=NS)
        assert titles == ["Office Theme", "Slide 1", "Slide 2"]

    def test_core_properties(self):
        prs = Presentation(title="Budget & Plan", author="Ops")
        tree = parse(xml_parts.core_xml(prs))
        assert tree.findtext("dc:title", namespaces=NS) == "Budget & Plan"
        assert tree.findtext("dc:creator", namespaces=NS) == "Ops"

    def test_presentation_sizes(self):
        prs = Presentation(layout="LAYOUT_WIDE")
        prs.add_slide()
        tree = parse(xml_parts.presentation_xml(prs))
        size = tree.find("p:sldSz", namespaces=NS)
        assert (size.get("cx"), size.get("cy")) == ("12191996", "6858000")
        notes = tree.find("p:notesSz", namespaces=NS)
        assert (notes.get("cx"), notes.get("cy")) == ("6858000", "12191996")
        assert tree.xpath("//p:sldId/@id", namespaces=NS) == ["256"]

    def test_master_lists_one_layout_per_slide(self):
        tree = parse(xml_parts.slide_master_xml(3))
        assert tree.xpath("//p:sldLayoutId/@r:id", namespaces=NS) == ["rId1", "rId2", "rId3"]
        rels = parse(xml_parts.slide_master_rels_xml(3))
        assert rels.xpath("//pr:Relationship/@Target", namespaces=NS)[-1] == "../theme/theme1.xml"


class TestSlideText:
    """Tests for text shapes."""

    def test_newline_makes_two_paragraphs(self, presentation):
        slide = presentation.add_slide()
        slide.add_text("Hello\nWorld", {"x": 1, "y": 1, "font_size": 14})
        tree = parse(xml_parts.slide_xml(slide, presentation.layout))
        sp = tree.xpath("//p:sp", namespaces=NS)[0]
        assert paragraph_texts(sp) == ["Hello", "World"]
        assert sp.xpath(".//a:rPr/@sz", namespaces=NS) == ["1400", "1400"]

    def test_break_line_runs(self, presentation):
        slide = presentation.add_slide()
        slide.add_text([
            TextRun(text="First", options={"break_line": True, "bold": True}),
            TextRun(text="Second", options={"color": "#ff0000"}),
        ])
        sp = parse(xml_parts.slide_xml(slide)).xpath("//p:sp", namespaces=NS)[0]
        assert paragraph_texts(sp) == ["First", "Second"]
        assert sp.xpath(".//a:r[1]/a:rPr/@b", namespaces=NS) == ["1"]
        assert sp.xpath(".//a:srgbClr/@val", namespaces=NS) == ["FF0000"]

    def test_text_is_escaped_once(self, presentation):
        slide = presentation.add_slide()
        slide.add_text("R&D <2024>")
        xml = xml_parts.slide_xml(slide)
        assert "R&amp;D &lt;2024&gt;" in xml
        assert paragraph_texts(parse(xml).xpath("//p:sp", namespaces=NS)[0]) == ["R&D <2024>"]

    def test_shape_geometry_and_line(self, presentation):
        slide = presentation.add_slide()
        slide.add_shape("roundRect", {"x": 1, "y": 1, "w": 2, "h": 1, "fill": "00FF00",
                                      "line": "000000", "line_size": 2, "rotate": 45, "flip_h": True})
        sp = parse(xml_parts.slide_xml(slide)).xpath("//p:sp", namespaces=NS)[0]
        assert sp.xpath(".//a:prstGeom/@prst", namespaces=NS) == ["roundRect"]
        assert sp.xpath(".//a:ln/@w", namespaces=NS) == ["25400"]
        xfrm = sp.find(".//a:xfrm", namespaces=NS)
        assert xfrm.get("rot") == "2700000"
        assert xfrm.get("flipH") == "1"
        assert sp.find("p:txBody", namespaces=NS) is None

    def test_body_properties(self, presentation):
        slide = presentation.add_slide()
        slide.add_text("fit", {"valign": "bottom", "shrink_text": True, "margin": [1, 2, 3, 4]})
        body_pr = parse(xml_parts.slide_xml(slide)).xpath("//a:bodyPr", namespaces=NS)[0]
        assert body_pr.get("anchor") == "b"
        assert body_pr.get("lIns") == str(4 * 12700)
        assert body_pr.get("tIns") == str(1 * 12700)
        assert body_pr.find("a:normAutofit", namespaces=NS) is not None

    def test_slide_number_field(self, presentation):
        presentation.add_slide()
        slide = presentation.add_slide()
        slide.add_text("x")
        slide.set_slide_number(True)
        tree = parse(xml_parts.slide_xml(slide, presentation.layout))
        fields = tree.xpath("//a:fld", namespaces=NS)
        assert fields[0].get("id") == SLIDE_NUMBER_FIELD_ID
        assert fields[0].findtext("a:t", namespaces=NS) == "2"
        ids = tree.xpath("//p:cNvPr/@id", namespaces=NS)
        assert ids == ["1", "2", "3"]


class TestSlideBackgroundAndImages:
    """Tests for backgrounds and pictures."""

    def test_background_color(self, presentation):
        slide = presentation.add_slide()
        slide.set_background_color("#003366")
        tree = parse(xml_parts.slide_xml(slide))
        assert tree.xpath("//p:bg//a:srgbClr/@val", namespaces=NS) == ["003366"]

    def test_picture_and_rels(self, presentation, png_bytes):
        slide = presentation.add_slide()
        slide.add_image("chart.png", 1, 1, data=png_bytes)
        slide.add_image("photo.png", 2, 2, 3, 2, data=png_bytes)
        slide.relationships[0].width_px, slide.relationships[0].height_px = 4, 3
        tree = parse(xml_parts.slide_xml(slide))
        assert tree.xpath("//a:blip/@r:embed", namespaces=NS) == ["rId2", "rId3"]
        ext = tree.xpath("//p:pic[1]//a:ext", namespaces=NS)[0]
        assert (ext.get("cx"), ext.get("cy")) == (str(4 * 9525), str(3 * 9525))

        rels = parse(xml_parts.slide_rels_xml(slide))
        assert rels.xpath("//pr:Relationship/@Id", namespaces=NS) == ["rId1", "rId2", "rId3"]
        assert rels.xpath("//pr:Relationship/@Target", namespaces=NS) == [
            "../slideLayouts/slideLayout1.xml", "../media/image1.png", "../media/image2.png"]


class TestTables:
    """Tests for table graphic frames."""

    def test_grid_and_cells(self, presentation):
        slide = presentation.add_slide()
        slide.add_table([["A", "B"], ["1", "2"]], {"x": 1, "y": 1, "w": 4},
                        {"col_w": [1, 3], "font_size": 10, "fill": "EEEEEE", "align": "center"})
        tree = parse(xml_parts.slide_xml(slide))
        assert tree.xpath("//a:gridCol/@w", namespaces=NS) == ["914400", "2743200"]
        assert len(tree.xpath("//a:tr", namespaces=NS)) == 2
        assert tree.xpath("//a:tc//a:rPr/@sz", namespaces=NS) == ["1000"] * 4
        assert tree.xpath("//a:tc/a:tcPr/a:solidFill/a:srgbClr/@val", namespaces=NS) == ["EEEEEE"] * 4
        assert set(tree.xpath("//a:tc//a:pPr/@algn", namespaces=NS)) == {"ctr"}

    def test_spans_emit_merge_placeholders(self, presentation):
        slide = presentation.add_slide()
        slide.add_table([
            [{"text": "wide", "options": {"colspan": 3}}],
            [{"text": "tall", "options": {"rowspan": 3}}, "a", "b"],
            ["c", "d"],
            ["e", "f"],
        ])
        tree = parse(xml_parts.slide_xml(slide))
        rows = tree.xpath("//a:tr", namespaces=NS)
        assert rows[0].xpath("./a:tc[@hMerge='1']", namespaces=NS).__len__() == 2
        assert rows[0].xpath("./a:tc[1]/@gridSpan", namespaces=NS) == ["3"]
        for row in rows[2:]:
            first = row.xpath("./a:tc", namespaces=NS)[0]
            assert first.get("vMerge") == "1"

    def test_border_sides_order(self, presentation):
        slide = presentation.add_slide()
        slide.add_table([[{"text": "x", "options": {"border": [
            BorderSide(pt=1, color="FF0000"), None, BorderSide(pt=2, color="00FF00"), None]}}]])
        tc_pr = parse(xml_parts.slide_xml(slide)).xpath("//a:tcPr", namespaces=NS)[0]
        tags = [etree.QName(child).localname for child in tc_pr]
        assert tags[:4] == ["lnL", "lnR", "lnT", "lnB"]
        assert tc_pr.find("a:lnL", namespaces=NS).get("w") == "0"
        assert tc_pr.find("a:lnT", namespaces=NS).get("w") == "12700"
        assert tc_pr.find("a:lnB", namespaces=NS).get("w") == "25400"

    def test_color_border(self, presentation):
        slide = presentation.add_slide()
        slide.add_table([["x"]], table_options={"border": "333333"})
        tc_pr = parse(xml_parts.slide_xml(slide)).xpath("//a:tcPr", namespaces=NS)[0]
        assert tc_pr.xpath("./*/a:solidFill/a:srgbClr/@val", namespaces=NS) == ["333333"] * 4


class TestEscaping:
    """Tests for escaping of user text in serialized parts."""

    def test_text_escaped_once(self, presentation):
        slide = presentation.add_slide()
        slide.add_text("a \"q\" & 'b' <c>")
        xml = xml_parts.slide_xml(slide)
        assert "&amp;amp;" not in xml
        assert "&lt;c&gt;" in xml
        assert parse(xml).xpath("//a:t/text()", namespaces=NS) == ["a \"q\" & 'b' <c>"]

    def test_title_in_core_properties(self):
        prs = Presentation(title="R&D <Plan>")
        xml = xml_parts.core_xml(prs)
        assert "R&amp;D &lt;Plan&gt;" in xml
        assert parse(xml).xpath("//dc:title/text()", namespaces=NS) == ["R&D <Plan>"]
