# main.py

"""
FastAPI preview service for chart fragments.
Renders single charts or whole pages from JSON rows posted by the caller.
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, HTMLResponse
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List, Union
import uvicorn
import logging
import time
from datetime import datetime

from chart_options.defaults import ChartKind
from fragment_compiler.errors import ConfigurationError, NotFoundError, UnsupportedFormatError
from pages.assembler import ChartPage, DataFormat, render_page
from visualization.chart_templates import CHART_REGISTRY
from visualization.generator import ChartGenerator
from config import APP_CONFIG, LOG_CONFIG, PLOTLY_JS_VERSION


# Configure logging
logging.basicConfig(
    level=LOG_CONFIG["level"],
    format=LOG_CONFIG["format"],
    handlers=[
        logging.FileHandler("chart_service.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=APP_CONFIG["name"],
    description="Interactive chart fragments rendered from tabular data",
    version=APP_CONFIG["version"],
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if APP_CONFIG["debug"] else [
        "http://localhost:3000",
        "http://localhost:8000"
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Execution-Time"]
)

# Initialize services
chart_generator = ChartGenerator(CHART_REGISTRY)


class ChartSpec(BaseModel):
    """One chart to build from a posted table."""
    kind: ChartKind = Field(..., description="Chart kind")
    title: str = Field(..., description="Unique chart title", min_length=1)
    data_label: Union[str, List[str]] = Field(..., description="Label of the table the chart reads")
    options: Dict[str, Any] = Field(default_factory=dict, description="Kind-specific options")


class ChartRequest(ChartSpec):
    rows: List[Dict[str, Any]] = Field(..., description="Table rows as objects")


class PageRequest(BaseModel):
    tables: Dict[str, List[Dict[str, Any]]] = Field(..., description="Data label -> rows")
    charts: List[ChartSpec]
    tab_title: Optional[str] = None
    page_header: str = ""
    notes: str = ""
    data_format: str = Field("csv_embedded", description="csv_embedded or json_embedded")


def _check_rows(label: str, rows: List[Dict[str, Any]]) -> None:
    if len(rows) > APP_CONFIG["max_rows_per_table"]:
        raise HTTPException(
            status_code=413,
            detail=f"Table '{label}' has {len(rows)} rows; the limit is {APP_CONFIG['max_rows_per_table']}"
        )


def _build(spec: ChartSpec, rows: List[Dict[str, Any]]):
    if spec.kind == ChartKind.PICTURE:
        raise ConfigurationError("Picture charts read server files and cannot be rendered over HTTP")
    return chart_generator.build(spec.kind, spec.title, rows, spec.data_label, **spec.options)


# Middleware to add request ID and timing
@app.middleware("http")
async def add_process_time_header(request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Execution-Time"] = str(round(process_time * 1000, 2))
    response.headers["X-Request-ID"] = f"req_{int(start_time * 1000)}"
    return response


# Root endpoint
@app.get("/", response_class=HTMLResponse)
async def root():
    """Welcome page listing the endpoints."""
    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <title>{APP_CONFIG["name"]}</title>
        <style>
            body {{ font-family: Arial, sans-serif; margin: 40px; line-height: 1.6; }}
            .endpoint {{ background: #f9f9f9; padding: 15px; margin: 10px 0; border-left: 4px solid #007bff; }}
            code {{ background: #eee; padding: 2px 5px; border-radius: 3px; }}
        </style>
    </head>
    <body>
        <h1>{APP_CONFIG["name"]} v{APP_CONFIG["version"]}</h1>
        <div class="endpoint"><code>GET /health</code><p>Service status</p></div>
        <div class="endpoint"><code>GET /charts/kinds</code><p>Chart kinds and their defaults</p></div>
        <div class="endpoint"><code>POST /charts/render</code><p>Render one chart to its two fragments</p></div>
        <div class="endpoint"><code>POST /pages/render</code><p>Render a full HTML page</p></div>
        <p><a href="/docs">Interactive Swagger UI</a> | <a href="/redoc">ReDoc Documentation</a></p>
    </body>
    </html>
    """
    return HTMLResponse(content=html_content)


@app.get("/health")
async def health_check():
    """Service status and chart registry summary."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": APP_CONFIG["version"],
        "components": {
            "registry": {
                "status": "healthy",
                "chart_kinds": [kind.value for kind in ChartKind],
            },
            "plotly_js": {"version": PLOTLY_JS_VERSION},
        }
    }


@app.get("/charts/kinds")
async def list_chart_kinds():
    """Chart kinds with their descriptions, script libraries and defaults."""
    kinds = CHART_REGISTRY.describe()
    return {"success": True, "kinds": kinds, "total_kinds": len(kinds)}


@app.post("/charts/render")
async def render_chart(request: ChartRequest):
    """Build one chart from posted rows and return its fragments."""
    start_time = time.time()
    _check_rows(str(request.data_label), request.rows)
    logger.info(f"Rendering {request.kind.value} chart '{request.title}' ({len(request.rows)} rows)")

    try:
        chart = _build(request, request.rows)
    except (ConfigurationError, UnsupportedFormatError) as e:
        logger.warning(f"Chart '{request.title}' rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        logger.warning(f"Chart '{request.title}' rejected: {e}")
        raise HTTPException(status_code=404, detail=str(e))

    return {
        "success": True,
        "chart_title": chart.chart_title,
        "kind": chart.kind.value,
        "appearance_html": chart.appearance_html,
        "functional_html": chart.functional_html,
        "dependencies": sorted(chart.dependencies()),
        "js_dependencies": chart.js_dependencies(),
        "execution_time_ms": round((time.time() - start_time) * 1000, 2)
    }


@app.post("/pages/render", response_class=HTMLResponse)
async def render_page_endpoint(request: PageRequest):
    """Build every chart and return the assembled page. Only embedded data formats are served."""
    try:
        data_format = DataFormat(request.data_format)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unsupported data format '{request.data_format}'")
    if data_format.is_external:
        raise HTTPException(
            status_code=400,
            detail=f"Data format '{data_format.value}' writes files and is not available over HTTP"
        )

    for label, rows in request.tables.items():
        _check_rows(label, rows)

    logger.info(f"Rendering page with {len(request.charts)} charts over {len(request.tables)} tables")

    try:
        charts = []
        for spec in request.charts:
            labels = [spec.data_label] if isinstance(spec.data_label, str) else spec.data_label
            if not labels or labels[0] not in request.tables:
                raise ConfigurationError(f"Chart '{spec.title}' reads unknown table {spec.data_label!r}")
            charts.append(_build(spec, request.tables[labels[0]]))

        page = ChartPage(
            tables=request.tables,
            charts=charts,
            tab_title=request.tab_title,
            page_header=request.page_header,
            notes=request.notes,
            data_format=data_format
        )
        document = render_page(page)
    except (ConfigurationError, UnsupportedFormatError) as e:
        logger.warning(f"Page rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        logger.warning(f"Page rejected: {e}")
        raise HTTPException(status_code=404, detail=str(e))

    return HTMLResponse(content=document)


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "path": request.url.path,
            "method": request.method
        }
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    error_detail = str(exc) if APP_CONFIG["debug"] else "Internal server error"

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": error_detail,
            "path": request.url.path,
            "method": request.method
        }
    )


# Startup event
@app.on_event("startup")
async def startup_event():
    logger.info(f"🚀 Starting {APP_CONFIG['name']}...")
    logger.info(f"Chart kinds: {[kind.value for kind in ChartKind]}, Plotly.js {PLOTLY_JS_VERSION}")


# Main entry point
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=APP_CONFIG["host"],
        port=APP_CONFIG["port"],
        reload=APP_CONFIG["debug"],
        log_level="debug" if APP_CONFIG["debug"] else "info",
        access_log=True
    )
