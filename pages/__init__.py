"""
Pages package - assembles charts and tables into HTML documents.
"""

from pages.assembler import (
    DataFormat,
    ChartPage,
    dataset_to_html,
    render_page,
    create_html
)

__all__ = [
    'DataFormat',
    'ChartPage',
    'dataset_to_html',
    'render_page',
    'create_html'
]
