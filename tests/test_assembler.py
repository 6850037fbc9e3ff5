"""
Tests for package assembly and export
"""

import zipfile
from io import BytesIO

import pptx
import pytest
from pptx.util import Emu

from assembler import MANIFEST_PATH, PackagePart, ZipArchiveWriter, build_package_parts
from conftest import FakeResolver
from presentation import Presentation


def sample_presentation(png_bytes, layout=None):
    prs = Presentation(title="Export Test", layout=layout)
    slide = prs.add_slide()
    slide.set_background_color("FAFAFA")
    slide.add_text("Hello\nWorld", {"x": 0.5, "y": 0.5, "w": 6, "h": 1, "font_size": 24, "bold": True})
    slide.add_shape("ellipse", {"x": 7, "y": 1, "w": 1, "h": 1, "fill": "336699"})
    slide.add_image("inline.png", 1, 2, data=png_bytes)
    slide.set_slide_number(True)
    second = prs.add_slide()
    second.add_table([["Region", "Sales"], ["North", 10], ["South", 12]], {"x": 0.5, "y": 1, "w": 6})
    second.add_image("remote.png", 7, 1, 1, 1)
    return prs


class TestBuildParts:
    """Tests for build_package_parts."""

    def test_part_order(self, png_bytes):
        prs = sample_presentation(png_bytes)
        prs.freeze()
        paths = [part.path for part in build_package_parts(prs)]
        assert paths[:5] == [MANIFEST_PATH, "_rels/.rels", "docProps/app.xml", "docProps/core.xml",
                             "ppt/_rels/presentation.xml.rels"]
        assert paths[5:9] == ["ppt/slideLayouts/slideLayout1.xml", "ppt/slideLayouts/_rels/slideLayout1.xml.rels",
                              "ppt/slides/slide1.xml", "ppt/slides/_rels/slide1.xml.rels"]
        assert paths[13:15] == ["ppt/slideMasters/slideMaster1.xml",
                                "ppt/slideMasters/_rels/slideMaster1.xml.rels"]
        assert paths[15:17] == ["ppt/media/image1.png", "ppt/media/image2.png"]
        assert paths[-5:] == ["ppt/theme/theme1.xml", "ppt/presentation.xml", "ppt/presProps.xml",
                              "ppt/tableStyles.xml", "ppt/viewProps.xml"]

    def test_media_parts_are_binary(self, png_bytes):
        prs = sample_presentation(png_bytes)
        media = [part for part in build_package_parts(prs) if part.path.startswith("ppt/media/")]
        assert all(part.is_binary for part in media)
        assert media[0].content == png_bytes


class TestZipWriter:
    """Tests for ZipArchiveWriter."""

    def test_manifest_written_first(self):
        parts = [PackagePart("b.xml", "<b/>"), PackagePart(MANIFEST_PATH, "<Types/>"),
                 PackagePart("c.bin", b"\x00\x01", is_binary=True)]
        data = ZipArchiveWriter().write(parts)
        with zipfile.ZipFile(BytesIO(data)) as archive:
            assert archive.namelist() == [MANIFEST_PATH, "b.xml", "c.bin"]
            assert archive.read("c.bin") == b"\x00\x01"
            assert archive.getinfo("b.xml").compress_type == zipfile.ZIP_DEFLATED


class TestExport:
    """Tests for the full export pipeline."""

    @pytest.mark.asyncio
    async def test_export_opens_with_python_pptx(self, png_bytes):
        prs = sample_presentation(png_bytes)
        data = await prs.export_async(resolver=FakeResolver())

        opened = pptx.Presentation(BytesIO(data))
        assert len(opened.slides) == 2
        assert opened.slide_width == Emu(9144000)
        texts = [shape.text_frame.text for shape in opened.slides[0].shapes
                 if shape.has_text_frame and shape.text_frame.text]
        assert "Hello\nWorld" in texts
        tables = [shape for shape in opened.slides[1].shapes if shape.has_table]
        assert tables[0].table.cell(1, 0).text == "North"
        assert opened.core_properties.title == "Export Test"

    @pytest.mark.asyncio
    async def test_wide_layout_reads_back(self, png_bytes):
        prs = sample_presentation(png_bytes, layout="LAYOUT_WIDE")
        data = await prs.export_async(resolver=FakeResolver())
        opened = pptx.Presentation(BytesIO(data))
        assert (opened.slide_width, opened.slide_height) == (12191996, 6858000)

    @pytest.mark.asyncio
    async def test_export_freezes(self, png_bytes):
        prs = sample_presentation(png_bytes)
        await prs.export_async(resolver=FakeResolver())
        assert prs.frozen
        assert prs.add_slide() is None

    def test_save_to_path_and_stream(self, tmp_path, png_bytes):
        target = tmp_path / "deck.pptx"
        sample_presentation(png_bytes).save(target)
        assert zipfile.is_zipfile(target)
        with zipfile.ZipFile(target) as archive:
            rels = archive.read("ppt/slides/_rels/slide2.xml.rels").decode("utf-8")
            # remote.png cannot be read locally, so the placeholder image is packaged
            assert archive.read("ppt/media/image2.png").startswith(b"\x89PNG")
        assert 'Id="rId1"' in rels and 'Id="rId2"' in rels

        stream = BytesIO()
        sample_presentation(png_bytes).save(stream)
        assert len(pptx.Presentation(BytesIO(stream.getvalue())).slides) == 2
