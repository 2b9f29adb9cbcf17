# ABOUTME: Renders chart artifacts to standalone SVG documents.
# ABOUTME: Handles line, heatmap, bar, and placeholder chart kinds.

from __future__ import annotations

from typing import Any, Dict, List, Mapping
from xml.sax.saxutils import escape, quoteattr

SVG_NS = "http://www.w3.org/2000/svg"
DEFAULT_PADDING = 40


def _frame(artifact: Mapping[str, Any]) -> List[str]:
    width, height = artifact["width"], artifact["height"]
    return [
        f'<svg width="{width}" height="{height}" xmlns="{SVG_NS}">',
        f'<rect width="{width}" height="{height}" fill="white" stroke="#ccc" stroke-width="1"/>',
        f'<text x="{width / 2}" y="25" text-anchor="middle" font-size="16" font-weight="bold">'
        f"{escape(artifact['title'])}</text>",
    ]


def _axes(artifact: Mapping[str, Any], padding: int) -> List[str]:
    width, height = artifact["width"], artifact["height"]
    parts = [
        f'<line x1="{padding}" y1="{height - padding}" x2="{width - padding}" y2="{height - padding}" '
        'stroke="black" stroke-width="2"/>',
        f'<line x1="{padding}" y1="{padding}" x2="{padding}" y2="{height - padding}" stroke="black" stroke-width="2"/>',
    ]
    if artifact.get("x_label"):
        parts.append(
            f'<text x="{width / 2}" y="{height - 5}" text-anchor="middle" font-size="12" fill="black">'
            f"{escape(artifact['x_label'])}</text>"
        )
    if artifact.get("y_label"):
        parts.append(
            f'<text x="15" y="{height / 2}" text-anchor="middle" font-size="12" fill="black" '
            f'transform="rotate(-90 15 {height / 2})">{escape(artifact["y_label"])}</text>'
        )
    return parts


def _series(data: Dict[str, Any]) -> List[str]:
    parts = []
    for series in data.get("series", []):
        color = series["color"]
        points = " ".join(f"{p['x']},{p['y']}" for p in series["points"])
        parts.append(
            f'<polyline points="{points}" fill="none" stroke="{color}" stroke-width="2">'
            f"<title>{escape(str(series['label']))}</title></polyline>"
        )
        if series.get("markers"):
            parts.extend(f'<circle cx="{p["x"]}" cy="{p["y"]}" r="5" fill="{color}"/>' for p in series["points"])
    return parts


def _rects(data: Dict[str, Any]) -> List[str]:
    return [
        f'<rect x="{r["x"]}" y="{r["y"]}" width="{r["width"]}" height="{r["height"]}" '
        f'fill={quoteattr(r["color"])} stroke="#999" stroke-width="1">'
        f"<title>{escape(str(r['label']))}: {r['value']}</title></rect>"
        for r in data.get("rects", [])
    ]


def render_svg(artifact: Mapping[str, Any]) -> str:
    """
    Render one chart artifact as an SVG string.

    Placeholders render as the frame plus their message, so every chart in
    an output envelope can be written to disk. Axes are drawn at the
    artifact's own padding so they line up with the plotted coordinates.
    """

    parts = _frame(artifact)
    kind = artifact["kind"]
    padding = artifact.get("padding", DEFAULT_PADDING)
    data = artifact.get("data", {})

    if kind == "placeholder":
        width, height = artifact["width"], artifact["height"]
        parts.append(
            f'<text x="{width / 2}" y="{height / 2}" text-anchor="middle" font-size="14" fill="#666">'
            f"{escape(data.get('message', ''))}</text>"
        )
    elif kind == "line":
        parts.extend(_axes(artifact, padding))
        parts.extend(_series(data))
    elif kind == "bar":
        parts.extend(_axes(artifact, padding))
        parts.extend(_rects(data))
    elif kind == "heatmap":
        parts.extend(_rects(data))
        width, height = artifact["width"], artifact["height"]
        parts.append(f'<text x="{width - 50}" y="{height - 10}" font-size="10" fill="green">Low</text>')
        parts.append(f'<text x="{width - 50}" y="{height - 20}" font-size="10" fill="red">High</text>')
    else:
        raise ValueError(f"Unsupported chart kind: {kind}")

    parts.append("</svg>")
    return "\n".join(parts)
