"""
Image loading for export: fetches the bytes of every image a slide refers
to by path and measures its natural size.

Loads run concurrently, one per distinct source path. An image that
cannot be loaded is replaced by a small placeholder picture so the package
stays valid.
"""
import asyncio
import base64
import logging
import os
from io import BytesIO
from typing import Dict, List, NamedTuple, Optional, Protocol, Tuple

import requests
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

IMAGE_FETCH_TIMEOUT = float(os.environ.get("IMAGE_FETCH_TIMEOUT", "10"))

FALLBACK_IMAGE = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAGQAAAB3CAYAAAD1oOVhAAAGAUlEQVR4Xu2dT0xcRRzHf7tAYSsc0EBSIq2xEg8m"
    "tTGebVzEqOVIolz0siRE4gGTStqKwdpWsXoyGhMuyAVJOHBgqyvLNgonDkabeCBYW/8kTUr0wsJC+Wfm0bfuvn37"
    "Znbem9mR9303mJnf/Pb7ed95M7PDI5JIJPYJV5EC7e3t1N/fT62trdqViQCIu+bVgpIHEo/Hqbe3V/sdYVKHyWSS"
    "ZmZm8ilVA0oeyNjYmEnaVC2Xvr6+qg5fAOJAz4DU1dURGzFSqZRVqtMpAFIGyMjICC0vL9PExIRWKADiAYTNshYW"
    "FrRCARAOEFZcCKWtrY0GBgaUTYkBRACIE4rKZwqACALR5RQAqQCIDqcASIVAVDsFQCSAqHQKgEgCUeUUAPEBRIVT"
    "AMQnEBvK5OQkbW9vk991CoAEAMQJxc86BUACAhKUUwAkQCBBOAVAAgbi1ykAogCIH6cAiCIgsk4BEIVAZJwCIIqB"
    "VLqiBxANQFgXS0tLND4+zl08AogmIG5OSSQS1gGKwgtANAIRcQqAaAbCe6YASBWA2E6xDyeyDUl7+AKQMkDYYevm"
    "5mZHabA/Li4uUiaTsYLau8QA4gLE/hU7wajyYtv1hReDAiAOxQcHBymbzark4BkbQKom/X8dp9Npmpqasn4BIAYA"
    "YSnYp+4BBEAMUcCwNOCQsAKZnp62NtQOw8WmwT09PUo+ijaHsOMx7GppaaH6+nolH0Z10K2tLVpdXbW6UfV3mNqB"
    "dHd3U1NTk2rtlMRfW1uj2dlZAFGirkRQAJEQTWUTAFGprkRsAJEQTWUTAFGprkRsAJEQTWUTAFGprkRsAJEQTWUT"
    "AFGprkRsAJEQTWUTAFGprkRsAJEQTWUTAGHqrm8caPzQ0WC1logbeiC7X3xJm0PvUmRzh45cuki1588FAmVn9BO6"
    "P3yF9utrqGH0MtW82S8UN9RA9v/4k7InjhcJFTs/TLVXLwmJV67S7vD7tHF5pKi46fYdosdOcOOGG8j1OcqefbFE"
    "JD9Q3GCwDhqT31HklS4A8VRgfYM2Op6k3bt/BQJl58J7lPvwg5JYNccepaMry0LPqFA7hCm39+NNyp2J0172b19Q"
    "ysGINj5CsRtpij57musOViH0QPJQXn6J9u7dlYJSFkbrMYolrwvDAJAC+WWdEpQz7FTgECeUCpzi6YxvvqXoM6eE"
    "hqnCSgDikEzUKUE7Aw7xuHctKB5OYU3dZlNR9syQdAaAcAYTC0pXF+39c09o2Ik+3EqxVKqiB7hbYAxZkk4pbBaE"
    "M+AQofv+wTrFwylBOQNABIGwavdfe4O2pg5elO+86l99nY58/VUF0byrYsjiSFluNlXYrOHcBar7+EogUADEQ0YR"
    "GHbzoKAASBkg2+9cpM1rV0tK2QOcXW7bLEFAARAXIF4w2DrDWoeUWaf4hQIgDiA8GPZ2iNfi0Q8UACkAIgrDbrJ3"
    "85eDxaPLLrEsFAB5oG6lMPJQPLZZZKAACBGVhcG2Q+bmuLu2nk55e4jqPv1IeEoceiBeX7s2zCa5MAqdstl91vfX"
    "waEGsv/rb5TtOFk6tWXOuJGh6KmnhO9sayrMninPx103JBtXblHkice58cINZP4Hyr5wpkgkdiChEmc4FWazLzen"
    "NKa/p0jncwDiqcD6BuWePk07t1asatZGoYQzSqA4nFJ7soNiP/+EUyfc25GI2GG53dHPrKo1g/1Cw4pIXLrzO+1c"
    "+/wg7tBbFDle/EbQcjFCPWQJCau5EoBoFpzXHYDwFNJcDiCaBed1ByA8hTSXA4hmwXndAQhPIc3lAKJZcF53AMJT"
    "SHM5gGgWnNcdgPAU0lwOIJoF53UHIDyFNJcfSiCdnZ0Ui8U0SxlMd7lcjubn561gh+Y1scFIU/0o/3sgeLO12E2k"
    "7UXKYumgFoAYdg8ACIAYpoBh6cAhAGKYAoalA4cAiGEKGJYOHAIghilgWDpwCIAYpoBh6cAhAGKYAoalA4cAiGEK"
    "GJYOHAIghilgWDpwCIAYpoBh6ZQ4JB6PKzviYthnNy4d9h+1M5mMlVckkUjsG5dhiBMCEMPg/wuOfrZZ/RSywQAA"
    "AABJRU5ErkJggg=="
)


class ResolvedImage(NamedTuple):
    data: bytes
    width_px: Optional[int] = None
    height_px: Optional[int] = None


class ImageResolver(Protocol):
    async def load(self, path: str, image_format: str) -> ResolvedImage:
        ...


def measure_image(data: bytes) -> Tuple[Optional[int], Optional[int]]:
    """Natural pixel size of encoded image bytes, or (None, None) if Pillow cannot read them."""
    try:
        with Image.open(BytesIO(data)) as image:
            return image.size
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Could not measure image: {e}")
        return None, None


class PillowImageResolver:
    """Reads local files or http(s) URLs and re-encodes them into the requested format."""

    def __init__(self, timeout: float = IMAGE_FETCH_TIMEOUT, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def _read(self, path: str) -> bytes:
        if path.startswith(("http://", "https://")):
            response = self.session.get(path, timeout=self.timeout)
            response.raise_for_status()
            return response.content
        with open(path, "rb") as f:
            return f.read()

    def _encode(self, raw: bytes, image_format: str) -> ResolvedImage:
        with Image.open(BytesIO(raw)) as image:
            size = image.size
            if image_format == "jpeg":
                if image.mode != "RGB":
                    image = image.convert("RGB")
                pil_format = "JPEG"
            else:
                pil_format = "PNG"
            buffer = BytesIO()
            image.save(buffer, format=pil_format)
        return ResolvedImage(buffer.getvalue(), size[0], size[1])

    def _load_sync(self, path: str, image_format: str) -> ResolvedImage:
        return self._encode(self._read(path), image_format)

    async def load(self, path: str, image_format: str) -> ResolvedImage:
        return await asyncio.to_thread(self._load_sync, path, image_format)


def _fallback() -> ResolvedImage:
    width, height = measure_image(FALLBACK_IMAGE)
    return ResolvedImage(FALLBACK_IMAGE, width, height)


def _apply(relationships, image: ResolvedImage) -> None:
    for relationship in relationships:
        relationship.data = image.data
        relationship.width_px = image.width_px
        relationship.height_px = image.height_px


async def resolve_media(presentation, resolver: Optional[ImageResolver] = None) -> int:
    """
    Fills in the data and natural size of every image relationship.

    Relationships that already carry data are only measured. The rest are
    grouped by source path and each group is loaded once; loads run
    concurrently and a failed load falls back to the placeholder picture.
    Returns the number of loads that failed.
    """
    resolver = resolver or PillowImageResolver()
    pending: Dict[str, List] = {}
    for slide in presentation.slides:
        for relationship in slide.relationships:
            if relationship.resolved:
                if relationship.width_px is None:
                    relationship.width_px, relationship.height_px = measure_image(relationship.data)
                continue
            pending.setdefault(relationship.path, []).append(relationship)

    if not pending:
        return 0

    logger.info(f"Loading {len(pending)} image(s)...")
    paths = list(pending)
    results = await asyncio.gather(*(resolver.load(path, pending[path][0].extension) for path in paths),
                                   return_exceptions=True)
    failures = 0
    for path, result in zip(paths, results):
        if isinstance(result, Exception):
            failures += 1
            logger.warning(f"Could not load image '{path}': {result}. Using a placeholder image.")
            result = _fallback()
        _apply(pending[path], result)
    return failures
