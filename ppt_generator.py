import logging
import re
from typing import Callable, Dict, List, Optional

from models import (FontOptions, ImageElement, PresentationPayload, ShapeElement, ShapeOptions, SlideMaster,
                    SlidePayload, TableElement, TableSlidesPayload, TextElement, TextRun,
                    TextRunOptions)
from presentation import Presentation, Slide

logger = logging.getLogger(__name__)

# --- 1. Design Constants ---
HIGHLIGHT_COLOR = "4285F4"
MARKUP_PATTERN = re.compile(r"(\*\*.*?\*\*|\[\[.*?\]\])")


# --- 2. Helper Functions ---
def markup_to_runs(text: str, options: Optional[ShapeOptions] = None) -> List[TextRun]:
    """
    Splits text with **bold** and [[highlight]] syntax into runs. Every run
    inherits the font settings of the element; highlighted runs are bold and
    blue.
    """
    base = TextRunOptions(**(options.model_dump(include=set(FontOptions.model_fields)) if options else {}))
    runs = []
    for part in MARKUP_PATTERN.split(text or ""):
        if part.startswith("**") and part.endswith("**") and len(part) > 4:
            runs.append(TextRun(text=part[2:-2], options=base.model_copy(update={"bold": True})))
        elif part.startswith("[[") and part.endswith("]]") and len(part) > 4:
            runs.append(TextRun(text=part[2:-2],
                                options=base.model_copy(update={"bold": True, "color": HIGHLIGHT_COLOR})))
        elif part:
            runs.append(TextRun(text=part, options=base.model_copy()))
    return runs


# --- 3. Element Drawing Functions ---
def draw_text(slide: Slide, element: TextElement) -> None:
    text = element.text
    if element.markup and isinstance(text, str):
        text = markup_to_runs(text, element.options)
    slide.add_text(text, element.options)


def draw_shape(slide: Slide, element: ShapeElement) -> None:
    slide.add_shape(element.shape, element.options)


def draw_image(slide: Slide, element: ImageElement) -> None:
    slide.add_image(element.path, element.x, element.y, element.w, element.h, element.data)


def draw_table(slide: Slide, element: TableElement) -> None:
    slide.add_table(element.rows, element.options, element.table_options)


element_draw_functions: Dict[str, Callable] = {
    "text": draw_text,
    "shape": draw_shape,
    "image": draw_image,
    "table": draw_table,
}


# --- 4. Slide Builders ---
def _master(payload: PresentationPayload, key: Optional[str]) -> Optional[SlideMaster]:
    if key is None:
        return None
    master = payload.masters.get(key)
    if master is None:
        logger.warning(f"No master named '{key}'. Using a plain slide.")
    return master


def build_slide(prs: Presentation, payload: PresentationPayload, slide_data: SlidePayload) -> List[Slide]:
    slide = prs.add_slide(_master(payload, slide_data.master))
    if slide_data.background:
        slide.set_background_color(slide_data.background)
    if slide_data.slide_number:
        slide.set_slide_number(True)
    for element in slide_data.elements:
        element_draw_functions[element.type](slide, element)
    logger.info(f"  - Drawing {slide.name} with {len(slide_data.elements)} element(s)")
    return [slide]


def build_table_slides(prs: Presentation, payload: PresentationPayload,
                       slide_data: TableSlidesPayload) -> List[Slide]:
    options = slide_data.options
    master = _master(payload, slide_data.master)
    if master is not None and options.master is None:
        options = options.model_copy(update={"master": master})
    slides = prs.add_slides_for_table(slide_data.table, options)
    logger.info(f"  - Drawing auto-paged table over {len(slides)} slide(s)")
    return slides


slide_build_functions: Dict[str, Callable] = {
    "slide": build_slide,
    "table_pages": build_table_slides,
}


def create_presentation(payload: PresentationPayload, default_layout: Optional[str] = None,
                        default_author: Optional[str] = None) -> Presentation:
    """Creates a new presentation from a declarative payload."""
    if isinstance(payload, dict):
        payload = PresentationPayload.model_validate(payload)
    prs = Presentation(title=payload.title,
                       author=payload.author or default_author,
                       layout=payload.layout or default_layout)

    logger.info("Starting presentation generation...")
    for i, slide_data in enumerate(payload.slides):
        logger.info(f"Processing slide entry {i + 1}: type='{slide_data.type}'")
        slide_build_functions[slide_data.type](prs, payload, slide_data)
    return prs
