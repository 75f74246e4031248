"""
preview.py — HTML page for link unfurling.

The page embeds the chart through an <img> that points back at /graph with
format=png, so the image request carries everything it needs (name,
algorithm, xpMax) and can be replayed on its own.
"""

from html import escape
from typing import Optional
from urllib.parse import urlencode

GRAPH_PATH = "/graph"
PREVIEW_DESCRIPTION = "XP → Level graph dynamically generated"


def build_graph_url(
    name: str,
    algorithm: str,
    xp_max: int,
    fmt: str = "png",
    base_url: Optional[str] = None,
) -> str:
    """
    /graph?name=...&algorithm=...&xpMax=...&format=png

    Every parameter goes through the same encoder; ``xp_max`` is the resolved
    integer, not whatever the caller typed.
    """
    query = urlencode({"name": name, "algorithm": algorithm, "xpMax": str(int(xp_max)), "format": fmt})
    path = f"{GRAPH_PATH}?{query}"
    if base_url:
        return base_url.rstrip("/") + path
    return path


def render_preview_page(name: str, image_url: str, absolute_image_url: Optional[str] = None) -> str:
    """
    Self-contained HTML page with Open Graph + Twitter card tags.
    All interpolated values are escaped; ``name`` and the algorithm inside the
    URL come straight from the caller.
    """
    title = escape(f"{name} Graph")
    img = escape(image_url)
    og_img = escape(absolute_image_url or image_url)
    desc = escape(PREVIEW_DESCRIPTION)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>{title}</title>

  <!-- Open Graph / Social meta tags -->
  <meta property="og:title" content="{title}">
  <meta property="og:description" content="{desc}">
  <meta property="og:image" content="{og_img}">
  <meta property="og:type" content="website">

  <!-- Twitter Card -->
  <meta name="twitter:card" content="summary_large_image">
  <meta name="twitter:title" content="{title}">
  <meta name="twitter:description" content="{desc}">
  <meta name="twitter:image" content="{og_img}">
</head>
<body>
  <h2>{title}</h2>
  <img src="{img}" alt="{title}">
</body>
</html>
"""
