"""Adapters for the external services the pipeline leans on.

Neither backend is needed by the core stages, so both libraries are
imported lazily:
  - rembg   — local background removal (alpha mask for the subject)
  - openai  — remote image edit (``gpt-image-1``), an alternative path that
              bypasses the quantization pipeline entirely

Set the API key via the environment:
  OPENAI_API_KEY=...
"""

import base64
import logging
import os
from io import BytesIO
from typing import Optional

import numpy as np
from PIL import Image

from .buffer import PixelBuffer, check_buffer
from .errors import CollaboratorFailure

logger = logging.getLogger(__name__)

DEFAULT_EDIT_MODEL = "gpt-image-1"
DEFAULT_EDIT_SIZE = "1024x1024"
DEFAULT_EDIT_PROMPT = (
    "Recreate the subject in a clean, modern style suitable for web display. "
    "Keep subject recognizable. No text, watermark, or logos. "
    "Square composition on a simple background."
)


# ---------------------------------------------------------------------------
# Background removal
# ---------------------------------------------------------------------------

def remove_background(buf: PixelBuffer) -> PixelBuffer:
    """Return ``buf`` with background pixels made transparent (via rembg)."""
    check_buffer(buf)
    try:
        from rembg import remove
    except ImportError as exc:
        raise CollaboratorFailure(
            "rembg package required for background removal. Install with: pip install rembg"
        ) from exc

    h, w = buf.shape[:2]
    try:
        result = remove(Image.fromarray(buf))
        out = np.array(result.convert("RGBA"), dtype=np.uint8)
    except Exception as exc:  # pylint: disable=broad-except
        raise CollaboratorFailure(f"Background removal failed: {exc}") from exc

    if out.shape != (h, w, 4):
        raise CollaboratorFailure(
            f"Background removal returned {out.shape[1]}x{out.shape[0]}, expected {w}x{h}"
        )
    logger.info("Background removed (%d of %d pixels kept)", int((out[:, :, 3] > 0).sum()), w * h)
    return out


# ---------------------------------------------------------------------------
# Remote image edit
# ---------------------------------------------------------------------------

def edit_image(
    image_bytes: bytes,
    prompt: str = "",
    api_key: Optional[str] = None,
    model: str = DEFAULT_EDIT_MODEL,
    size: str = DEFAULT_EDIT_SIZE,
    filename: str = "input.png",
) -> bytes:
    """Send an encoded image and an instruction to the OpenAI edit endpoint.

    Args:
        image_bytes: Encoded source image (PNG recommended).
        prompt: Free-text instruction; empty uses ``DEFAULT_EDIT_PROMPT``.
        api_key: Overrides ``OPENAI_API_KEY``.
        model: Image model name.
        size: Output resolution, e.g. ``"1024x1024"``.
        filename: Upload filename reported to the provider.

    Returns:
        Encoded PNG bytes of the synthesized image.
    """
    if not image_bytes:
        raise CollaboratorFailure("Missing image file")

    api_key = api_key or os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise CollaboratorFailure("Server misconfiguration: missing OPENAI_API_KEY")

    try:
        import openai
    except ImportError as exc:
        raise CollaboratorFailure("openai package required. Install with: pip install openai") from exc

    client = openai.OpenAI(api_key=api_key)
    logger.info("Requesting %s edit (%s) for %s", model, size, filename)
    try:
        result = client.images.edit(
            model=model,
            image=(filename, image_bytes, "image/png"),
            prompt=prompt or DEFAULT_EDIT_PROMPT,
            size=size,
        )
    except openai.OpenAIError as exc:
        raise CollaboratorFailure(str(exc) or "Unknown error") from exc

    data = getattr(result, "data", None) or []
    b64 = getattr(data[0], "b64_json", None) if data else None
    if not b64:
        raise CollaboratorFailure("No image returned from provider")

    return base64.b64decode(b64)

