"""
Art Renderer

Two steps, kept separate so the pipeline can trace them separately:

    decode(bytes) -> PIL image     (fails with DecodeError)
    render(image) -> HTML document (cannot fail for a decoded image)

The ASCII conversion itself is ascii_magic's. We only pick fixed options
(full colour, fixed width) and wrap its markup in a page that can be served
as-is.
"""

import io

from PIL import Image, UnidentifiedImageError
from ascii_magic import AsciiArt

from catscii.errors import DecodeError

# Characters per line of output
COLUMNS = 120

# Character cell height / width, as ascii_magic assumes
WIDTH_RATIO = 2.2

HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>catscii</title>
<style>
body {{ background-color: #000000; margin: 0; padding: 1em; }}
pre {{ font-family: monospace; font-size: 10px; line-height: 1; }}
</style>
</head>
<body>
<pre>{art}</pre>
</body>
</html>
"""


def decode(data: bytes) -> Image.Image:
    """
    Decode raw bytes into a fully loaded image.

    Image.open() is lazy, so load() is called here: a truncated file must fail
    now, not halfway through render().
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except Image.DecompressionBombError as e:
        raise DecodeError(detail="image too large") from e
    except (UnidentifiedImageError, OSError, EOFError, ValueError, SyntaxError) as e:
        raise DecodeError(detail=type(e).__name__) from e
    return image


def _ensure_one_row(image: Image.Image) -> Image.Image:
    """
    Stretch strips too wide to yield a single row of output.

    ascii_magic scales the image to COLUMNS characters and computes the row
    count as int(height / scale), which is 0 for e.g. a 300x5 banner.
    """
    scale = image.width * WIDTH_RATIO / COLUMNS
    if int(image.height / scale) >= 1:
        return image
    # COLUMNS wide gives scale == WIDTH_RATIO, so this height is one row
    return image.resize((COLUMNS, int(WIDTH_RATIO) + 1))


def render(image: Image.Image) -> str:
    """Convert a decoded image into a self-contained HTML page."""
    art = AsciiArt.from_pillow_image(_ensure_one_row(image.convert("RGB")))
    markup = art.to_html(columns=COLUMNS, width_ratio=WIDTH_RATIO, full_color=True)
    return HTML_TEMPLATE.format(art=markup)
