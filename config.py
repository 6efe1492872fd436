"""
Library configuration.
Static chart defaults, CDN script tags and service settings.
"""

import os
from dotenv import load_dotenv
from plotly import colors as plotly_colors
from plotly.offline import get_plotlyjs_version

# Load environment variables
load_dotenv()


# Chart construction settings
CHART_CONFIG = {
    # Colours assigned to groups in order of first appearance
    "color_palette": list(plotly_colors.qualitative.Plotly),

    # Group label used when a chart has no group/colour column
    "no_group_label": "__no_group__",

    # Numeric/date filter columns with more distinct values than this get a range slider
    "continuous_threshold": int(os.getenv("CHARTS_CONTINUOUS_THRESHOLD", "20")),

    # Numeric columns may act as groups/facets/stages up to this many distinct values
    "max_group_cardinality": int(os.getenv("CHARTS_MAX_GROUP_CARDINALITY", "50")),

    # Warn when embedding images larger than this
    "max_embedded_image_mb": float(os.getenv("CHARTS_MAX_EMBEDDED_IMAGE_MB", "5")),
}

# Page assembly settings
PAGE_CONFIG = {
    "default_data_format": os.getenv("CHARTS_DATA_FORMAT", "csv_embedded"),
    "default_tab_title": "Charts",
    "data_dir": "data",
    "pictures_dir": "pictures",
}

# External JavaScript libraries, keyed by name
PLOTLY_JS_VERSION = get_plotlyjs_version()

JS_DEPENDENCIES = {
    "jquery": '<script src="https://code.jquery.com/jquery-3.7.1.min.js"></script>',
    "jquery_ui": (
        '<link rel="stylesheet" href="https://code.jquery.com/ui/1.13.2/themes/base/jquery-ui.css">\n'
        '<script src="https://code.jquery.com/ui/1.13.2/jquery-ui.min.js"></script>'
    ),
    "plotly": f'<script src="https://cdn.plot.ly/plotly-{PLOTLY_JS_VERSION}.min.js"></script>',
    "d3": '<script src="https://cdnjs.cloudflare.com/ajax/libs/d3/3.5.17/d3.min.js"></script>',
    "c3": (
        '<link rel="stylesheet" href="https://cdnjs.cloudflare.com/ajax/libs/c3/0.4.24/c3.min.css">\n'
        '<script src="https://cdnjs.cloudflare.com/ajax/libs/c3/0.4.24/c3.min.js"></script>'
    ),
    "pivottable": (
        '<link rel="stylesheet" href="https://cdnjs.cloudflare.com/ajax/libs/pivottable/2.23.0/pivot.min.css">\n'
        '<script src="https://cdnjs.cloudflare.com/ajax/libs/pivottable/2.23.0/pivot.min.js"></script>\n'
        '<script src="https://cdnjs.cloudflare.com/ajax/libs/pivottable/2.23.0/d3_renderers.min.js"></script>\n'
        '<script src="https://cdnjs.cloudflare.com/ajax/libs/pivottable/2.23.0/c3_renderers.min.js"></script>\n'
        '<script src="https://cdnjs.cloudflare.com/ajax/libs/pivottable/2.23.0/export_renderers.min.js"></script>'
    ),
    "papaparse": '<script src="https://cdnjs.cloudflare.com/ajax/libs/PapaParse/5.4.1/papaparse.min.js"></script>',
}

# Application Configuration
APP_CONFIG = {
    "debug": os.getenv("DEBUG", "false").lower() == "true",
    "name": "Chart Fragments",
    "version": "1.0.0",

    # Server settings
    "host": os.getenv("HOST", "0.0.0.0"),
    "port": int(os.getenv("PORT", "8000")),

    # Request limits for the preview service
    "max_rows_per_table": int(os.getenv("MAX_ROWS_PER_TABLE", "100000")),
}

# Logging Configuration
LOG_CONFIG = {
    "level": "INFO" if not APP_CONFIG["debug"] else "DEBUG",
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
}


def check_config():
    """Check configuration and log the effective settings."""
    import logging

    logger = logging.getLogger(__name__)

    if PAGE_CONFIG["default_data_format"] not in ("csv_embedded", "json_embedded", "csv_external", "json_external"):
        logger.warning(
            f"⚠️  CHARTS_DATA_FORMAT={PAGE_CONFIG['default_data_format']} is not a known data format; "
            f"pages will have to pass data_format explicitly."
        )

    logger.debug(f"Plotly.js version: {PLOTLY_JS_VERSION}")
    logger.debug(
        f"Continuous filter threshold: {CHART_CONFIG['continuous_threshold']}, "
        f"max group cardinality: {CHART_CONFIG['max_group_cardinality']}"
    )


# Run config check on import
check_config()
