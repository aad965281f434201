import base64
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from io import BytesIO

import requests
from PIL import Image, UnidentifiedImageError

from .errors import RecoverableAssetError

logger = logging.getLogger(__name__)

MERMAID_INK_URL = "https://mermaid.ink/img/{}"
MERMAID_BLOCK_RE = re.compile(r"```mermaid[ \t]*\n([\s\S]*?)```")
FETCH_TIMEOUT = 15.0
MAX_WORKERS = 4
EMBEDDABLE_FORMATS = ("PNG", "JPEG", "GIF")


@dataclass(frozen=True)
class DiagramSource:
    """Textual diagram description to be rendered by the diagram service."""

    code: str


def extract_mermaid_blocks(markdown):
    return [match.group(1).strip() for match in MERMAID_BLOCK_RE.finditer(markdown)]


def load_image(data):
    """Validate image bytes, re-encoding formats the writers cannot embed as PNG."""
    if not data:
        raise RecoverableAssetError("Empty image data")
    try:
        with Image.open(BytesIO(data)) as probe:
            probe.verify()
        with Image.open(BytesIO(data)) as image:
            if image.format in EMBEDDABLE_FORMATS:
                return bytes(data)
            buffer = BytesIO()
            image.save(buffer, format="PNG")
            return buffer.getvalue()
    except (Image.DecompressionBombError, UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise RecoverableAssetError(f"Undecodable image data: {e}") from e


def fetch_image(url, timeout=FETCH_TIMEOUT):
    try:
        response = requests.get(
            url,
            headers={"User-Agent": "BRD-Generator/1.0", "Accept": "image/png"},
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise RecoverableAssetError(f"Failed to fetch diagram from {url}: {e}") from e

    content_type = response.headers.get("content-type", "")
    if "image" not in content_type:
        raise RecoverableAssetError(f"Response is not an image, got: {content_type or 'no content type'}")
    return load_image(response.content)


def mermaid_ink_url(code):
    cleaned = code.replace("```mermaid", "").replace("```", "").strip()
    if len(cleaned) < 10:
        raise RecoverableAssetError("Invalid Mermaid code (too short)")
    encoded = base64.urlsafe_b64encode(cleaned.encode("utf-8")).decode("ascii")
    return MERMAID_INK_URL.format(encoded)


def render_mermaid(code, timeout=FETCH_TIMEOUT):
    return fetch_image(mermaid_ink_url(code), timeout=timeout)


def _resolve_one(entry, timeout):
    if entry is None:
        return None
    if isinstance(entry, (bytes, bytearray)):
        return load_image(bytes(entry))
    if isinstance(entry, DiagramSource):
        return render_mermaid(entry.code, timeout=timeout)
    if isinstance(entry, str) and entry.startswith(("http://", "https://")):
        return fetch_image(entry, timeout=timeout)
    raise RecoverableAssetError(f"Unsupported diagram entry: {type(entry).__name__}")


def resolve_diagrams(entries, timeout=FETCH_TIMEOUT, max_workers=MAX_WORKERS):
    """Turn diagram entries into image bytes, concurrently and in order.

    Entries may be raw bytes, http(s) URLs or ``DiagramSource`` objects.
    Anything that cannot be fetched or decoded becomes ``None`` at the same
    position so later placeholders keep their bindings.
    """
    entries = list(entries or [])
    if not entries:
        return []

    def resolve(indexed):
        index, entry = indexed
        try:
            return _resolve_one(entry, timeout)
        except RecoverableAssetError as e:
            logger.warning("Diagram %d unavailable: %s", index + 1, e)
            return None

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(resolve, enumerate(entries)))


class DiagramResolver:
    """Binds the n-th placeholder of a render to the n-th diagram image."""

    def __init__(self, images):
        self.images = list(images or [])
        self.next_index = 0

    def next_image(self):
        index = self.next_index
        self.next_index += 1
        if index < len(self.images):
            return self.images[index]
        return None
