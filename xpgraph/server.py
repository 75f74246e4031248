# xpgraph/server.py
import os
from typing import Any, List, Optional, Union

from fastapi import FastAPI, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field

from . import __version__
from .chart_plotter import MEDIA_TYPES, build_chart_config, render_chart
from .domain import resolve_xp_max
from .errors import (
    ClientInputError,
    FormulaCompileError,
    MissingParameterError,
    RenderError,
    RequestLimitError,
    XpGraphError,
)
from .evaluator import evaluate_batch, evaluate_formula
from .keying import compute_graph_key
from .preview import build_graph_url, render_preview_page
from .settings import settings
from .utils import setup_logger, truncate

logger = setup_logger(__name__)

app = FastAPI(title="XP Graph Server", version=__version__)

DEFAULT_GRAPH_NAME = "Algorithm"


# --- Models for our API requests ---
class FormulaIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    source: str = Field(..., alias="funcString")


class ComputeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    formulas: List[FormulaIn] = Field(default_factory=list, alias="funcs")
    # Resolved by domain.resolve_xp_max, which also handles junk values
    xpMax: Any = None


class SeriesOut(BaseModel):
    name: str
    levels: List[Optional[Union[int, float]]]


class ComputeResponse(BaseModel):
    domain: List[int]
    series: List[SeriesOut]


# ---- helpers ----

def _resolve_xp_max(raw: Any) -> int:
    return resolve_xp_max(
        raw,
        default=settings.XP_MAX_DEFAULT,
        ceiling=settings.XP_MAX_CEILING,
        policy=settings.XP_MAX_POLICY,
    )


def _sandbox_options() -> dict:
    return {
        "mode": settings.SANDBOX_MODE,
        "timeout": settings.SANDBOX_TIMEOUT_SECONDS,
        "memory_mb": settings.SANDBOX_MEMORY_MB,
        "start_method": settings.SANDBOX_START_METHOD,
        "max_length": settings.MAX_FORMULA_LENGTH,
    }


def _etag_matches(request: Request, key: str) -> bool:
    raw = request.headers.get("if-none-match")
    if not raw:
        return False
    tags = [t.strip() for t in raw.split(",")]
    return any(t.removeprefix("W/").strip('"') == key for t in tags)


@app.exception_handler(XpGraphError)
async def _xpgraph_error_handler(request: Request, exc: XpGraphError):
    """Single place that maps the error taxonomy onto HTTP responses."""
    if isinstance(exc, ClientInputError):
        logger.warning("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc)
    else:
        logger.error("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


# ---- API ----

@app.get("/health")
def health():
    return {"ok": True, "service": "xpgraph", "version": app.version}


@app.post("/compute", response_model=ComputeResponse)
def compute(body: ComputeRequest):
    """
    Sample every submitted formula over [0, xpMax).
    Any formula that fails to compile fails the whole batch (400).
    """
    if len(body.formulas) > settings.MAX_FORMULAS:
        raise RequestLimitError(f"Too many formulas (>{settings.MAX_FORMULAS}).")

    xp_max = _resolve_xp_max(body.xpMax)
    formulas = [
        (f.name if f.name is not None else f"{DEFAULT_GRAPH_NAME} {i + 1}", f.source)
        for i, f in enumerate(body.formulas)
    ]
    logger.info("Compute: %d formula(s), xpMax=%d", len(formulas), xp_max)

    result = evaluate_batch(formulas, xp_max, **_sandbox_options())
    return result.to_dict()


@app.get("/graph")
def graph(
    request: Request,
    name: Optional[str] = Query(None, description="display name (default 'Algorithm')"),
    algorithm: Optional[str] = Query(None, description="formula source, e.g. 'x => x * 2'"),
    xpMax: Optional[str] = Query(None, description="domain size (default 2000)"),
    format: Optional[str] = Query(None, description="png | svg; omit for the HTML preview page"),
):
    if not algorithm:
        raise MissingParameterError("Missing algorithm query parameter")

    name = name or DEFAULT_GRAPH_NAME
    fmt = (format or "").strip().lower()
    if fmt and fmt not in settings.ALLOWED_FORMATS:
        raise ClientInputError(f"Unsupported format {fmt!r}; expected one of {sorted(settings.ALLOWED_FORMATS)}")

    xp_max = _resolve_xp_max(xpMax)

    key = compute_graph_key(name, algorithm, xp_max, fmt or "html")
    if fmt and _etag_matches(request, key):
        return Response(status_code=304, headers={"ETag": f'"{key}"'})

    logger.info("Graph: name=%r xpMax=%d format=%s algorithm=%s", name, xp_max, fmt or "html", truncate(algorithm))
    try:
        series = evaluate_formula(0, name, algorithm, xp_max, **_sandbox_options())
    except FormulaCompileError as e:
        raise FormulaCompileError(f"Algorithm error: {e}", index=e.index, name=e.name) from None

    if not fmt:
        image_url = build_graph_url(name, algorithm, xp_max, fmt="png")
        base_url = settings.PUBLIC_BASE_URL or str(request.base_url)
        absolute_url = build_graph_url(name, algorithm, xp_max, fmt="png", base_url=base_url)
        return HTMLResponse(render_preview_page(name, image_url, absolute_url))

    config = build_chart_config(name, range(xp_max), series.values, color=settings.CHART_LINE_COLOR)
    try:
        image = render_chart(
            config,
            fmt,
            width_px=settings.CHART_WIDTH_PX,
            height_px=settings.CHART_HEIGHT_PX,
            dpi=settings.CHART_DPI,
        )
    except RenderError as e:
        logger.exception("Render failed for %r: %s", name, e)
        return JSONResponse(
            status_code=RenderError.status_code,
            content={"detail": "render_failed", "error": str(e)[:400]},
        )

    headers = {
        "ETag": f'"{key}"',
        "Cache-Control": "public, max-age=86400",
    }
    return Response(content=image, media_type=MEDIA_TYPES[fmt], headers=headers)


# ---- Static assets (mounted last so the API routes win) ----
if os.path.isdir(settings.PUBLIC_DIR):
    app.mount("/", StaticFiles(directory=settings.PUBLIC_DIR, html=True), name="public")
else:
    logger.info("No public dir at %s; static files disabled.", settings.PUBLIC_DIR)
