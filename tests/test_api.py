"""
Tests for the preview service endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def rows():
    categories = ["a", "b", "c"]
    return [
        {"x": float(i), "y": float((i * 7) % 11), "category": categories[i % 3], "value": i}
        for i in range(24)
    ]


class TestServiceInfo:
    """Test the informational endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "/charts/render" in response.text
        assert "X-Execution-Time" in response.headers

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert "scatter" in data["components"]["registry"]["chart_kinds"]

    def test_chart_kinds(self, client):
        data = client.get("/charts/kinds").json()
        kinds = {entry["kind"]: entry for entry in data["kinds"]}

        assert data["total_kinds"] == 8
        assert kinds["area"]["defaults"]["stack_mode"] == "unstack"
        assert "pivottable" in kinds["pivot_table"]["js_libraries"]


class TestRenderChart:
    """Test single-chart rendering."""

    def test_scatter(self, client, rows):
        response = client.post("/charts/render", json={
            "kind": "scatter",
            "title": "Preview",
            "data_label": "data",
            "rows": rows,
            "options": {"dimensions": ["x", "y"], "color_cols": ["category"]}
        })
        data = response.json()

        assert response.status_code == 200
        assert data["success"] is True
        assert data["kind"] == "scatter"
        assert data["dependencies"] == ["data"]
        assert "category" in data["appearance_html"]
        assert "loadDataset(DATA_LABEL)" in data["functional_html"]

    def test_missing_column(self, client, rows):
        response = client.post("/charts/render", json={
            "kind": "area",
            "title": "Preview",
            "data_label": "data",
            "rows": rows,
            "options": {"x_cols": ["nonexistent"], "y_cols": ["y"]}
        })
        data = response.json()

        assert response.status_code == 400
        assert data["success"] is False
        assert "nonexistent" in data["error"]

    def test_bad_option(self, client, rows):
        response = client.post("/charts/render", json={
            "kind": "local_correlation",
            "title": "Preview",
            "data_label": "data",
            "rows": rows,
            "options": {"dimensions": ["x", "y"], "grid_size": 1000}
        })
        assert response.status_code == 400

    def test_picture_not_served(self, client, rows):
        response = client.post("/charts/render", json={
            "kind": "picture",
            "title": "Preview",
            "data_label": "data",
            "rows": rows,
            "options": {"path": "/etc/hostname"}
        })
        assert response.status_code == 400

    def test_unknown_kind(self, client, rows):
        response = client.post("/charts/render", json={
            "kind": "histogram",
            "title": "Preview",
            "data_label": "data",
            "rows": rows
        })
        assert response.status_code == 422


class TestRenderPage:
    """Test whole-page rendering."""

    def test_page(self, client, rows):
        response = client.post("/pages/render", json={
            "tables": {"sales data": rows},
            "charts": [
                {"kind": "scatter", "title": "One", "data_label": "sales data",
                 "options": {"dimensions": ["x", "y"]}},
                {"kind": "kernel_density", "title": "Two", "data_label": "sales data",
                 "options": {"value_cols": ["y"], "group_cols": ["category"]}}
            ],
            "tab_title": "Preview page",
            "data_format": "json_embedded"
        })

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "<title>Preview page</title>" in response.text
        assert 'id="data_sales_data"' in response.text
        assert 'id="Two_block"' in response.text

    def test_external_format_rejected(self, client, rows):
        response = client.post("/pages/render", json={
            "tables": {"data": rows},
            "charts": [],
            "data_format": "csv_external"
        })
        assert response.status_code == 400

    def test_unknown_table(self, client, rows):
        response = client.post("/pages/render", json={
            "tables": {"data": rows},
            "charts": [{"kind": "scatter", "title": "One", "data_label": "other",
                        "options": {"dimensions": ["x", "y"]}}]
        })
        data = response.json()

        assert response.status_code == 400
        assert "other" in data["error"]
