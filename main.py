import os
from datetime import datetime

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
import uvicorn

# Local imports
import ppt_generator
from models import PresentationPayload
from presentation import __version__
from table_layout import UnsupportedTableLayoutError

# Logging configuration
import logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())

# --- Configuration ---
DEFAULT_LAYOUT = os.getenv("PPTX_DEFAULT_LAYOUT", "LAYOUT_16x9")
DEFAULT_AUTHOR = os.getenv("PPTX_AUTHOR", "PptxGen")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8080"))
PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

# --- FastAPI App ---
app = FastAPI(
    title="PowerPoint Generation Service",
    description="An API that builds PowerPoint packages from a declarative slide description.",
    version=__version__,
)


def build_file_name(title: str) -> str:
    safe_title = "".join(c for c in (title or "") if c.isalnum() or c in (' ', '_')).rstrip()
    if not safe_title:
        safe_title = "Untitled_Presentation"
    return f"{safe_title.replace(' ', '_')}_{datetime.now().strftime('%Y%m%d%H%M%S')}.pptx"


# --- Main Endpoint --- #
@app.post("/generate/", summary="Generate a PowerPoint from a slide description")
async def generate_endpoint(payload: PresentationPayload):
    """Builds the presentation described by the payload and returns the .pptx file."""
    try:
        logging.info(f"Generating presentation with title: {payload.title}")
        presentation_object = ppt_generator.create_presentation(
            payload, default_layout=DEFAULT_LAYOUT, default_author=DEFAULT_AUTHOR)
        data = await presentation_object.export_async()
    except UnsupportedTableLayoutError as e:
        logging.warning(f"Rejected table layout: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logging.error(f"An error occurred in the generation process: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    file_name = build_file_name(payload.title)
    logging.info(f"Presentation ready: {file_name} ({len(data)} bytes)")
    return Response(
        content=data,
        media_type=PPTX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


@app.get("/")
async def root():
    return {"message": f"PowerPoint Generation API v{__version__} is running."}


def run():
    """Serves the app with uvicorn; the `pptx-builder` console script points here."""
    uvicorn.run(app, host=HOST, port=PORT, log_level=os.environ.get("LOG_LEVEL", "INFO").lower())


if __name__ == "__main__":
    run()
