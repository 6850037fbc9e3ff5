"""
Package assembly: serializes every part of a frozen presentation in the
fixed package order and hands them to an archive writer.
"""
import logging
import zipfile
from io import BytesIO
from typing import List, NamedTuple, Protocol, Sequence, Union

import xml_parts

logger = logging.getLogger(__name__)

MANIFEST_PATH = "[Content_Types].xml"


class PackagePart(NamedTuple):
    path: str
    content: Union[str, bytes]
    is_binary: bool = False


class ArchiveWriter(Protocol):
    def write(self, parts: Sequence[PackagePart]) -> bytes:
        ...


class ZipArchiveWriter:
    """Writes parts into a deflated zip, keeping the content-type manifest first."""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED):
        self.compression = compression

    def write(self, parts: Sequence[PackagePart]) -> bytes:
        ordered = sorted(parts, key=lambda part: part.path != MANIFEST_PATH)
        buffer = BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=self.compression) as archive:
            for part in ordered:
                content = part.content if part.is_binary else part.content.encode("utf-8")
                archive.writestr(part.path, content)
        logger.info(f"Wrote package with {len(ordered)} part(s), {buffer.tell()} bytes.")
        return buffer.getvalue()


def build_package_parts(presentation) -> List[PackagePart]:
    """
    Serializes all parts of the presentation.

    Order: manifest, root rels, app, core, presentation rels, then for each
    slide its layout, layout rels, slide and slide rels, then the master and
    its rels, the media files by number, theme, presentation, presProps,
    tableStyles and viewProps. Images must already be resolved.
    """
    slides = presentation.slides
    layout = presentation.layout
    parts = [
        PackagePart(MANIFEST_PATH, xml_parts.content_types_xml(presentation)),
        PackagePart("_rels/.rels", xml_parts.root_rels_xml()),
        PackagePart("docProps/app.xml", xml_parts.app_xml(presentation)),
        PackagePart("docProps/core.xml", xml_parts.core_xml(presentation)),
        PackagePart("ppt/_rels/presentation.xml.rels", xml_parts.presentation_rels_xml(presentation)),
    ]

    layout_xml = xml_parts.slide_layout_xml()
    layout_rels = xml_parts.slide_layout_rels_xml()
    for slide in slides:
        number = slide.index
        parts += [
            PackagePart(f"ppt/slideLayouts/slideLayout{number}.xml", layout_xml),
            PackagePart(f"ppt/slideLayouts/_rels/slideLayout{number}.xml.rels", layout_rels),
            PackagePart(f"ppt/slides/slide{number}.xml", xml_parts.slide_xml(slide, layout)),
            PackagePart(f"ppt/slides/_rels/slide{number}.xml.rels", xml_parts.slide_rels_xml(slide)),
        ]
        logger.info(f"Serialized {slide.name}.")

    parts += [
        PackagePart("ppt/slideMasters/slideMaster1.xml", xml_parts.slide_master_xml(len(slides))),
        PackagePart("ppt/slideMasters/_rels/slideMaster1.xml.rels", xml_parts.slide_master_rels_xml(len(slides))),
    ]

    relationships = sorted((rel for slide in slides for rel in slide.relationships),
                           key=lambda rel: rel.media_number)
    for rel in relationships:
        if not rel.resolved:
            logger.warning(f"Image '{rel.path}' was never loaded; writing an empty media part.")
        parts.append(PackagePart(rel.part_name, rel.data, is_binary=True))

    parts += [
        PackagePart("ppt/theme/theme1.xml", xml_parts.theme_xml()),
        PackagePart("ppt/presentation.xml", xml_parts.presentation_xml(presentation)),
        PackagePart("ppt/presProps.xml", xml_parts.pres_props_xml()),
        PackagePart("ppt/tableStyles.xml", xml_parts.table_styles_xml()),
        PackagePart("ppt/viewProps.xml", xml_parts.view_props_xml()),
    ]
    return parts
