"""
Page-level HTML and the client-side dataset loader shared by every chart.
"""

import html
from typing import List


# Resolves a data label to parsed rows. Charts call loadDataset(label) and
# receive a promise of row objects; each label is parsed once per page.
LOAD_DATASET_JS = """
<script>
var datasetCache = {};

function parseCsvText(text) {
    return new Promise(function(resolve, reject) {
        Papa.parse(text, {
            header: true,
            dynamicTyping: true,
            skipEmptyLines: true,
            complete: function(results) {
                var fatal = results.errors.filter(function(err) { return err.type !== 'Delimiter'; });
                if (fatal.length > 0) {
                    reject(fatal);
                } else {
                    resolve(results.data);
                }
            },
            error: reject
        });
    });
}

function loadDataset(dataLabel) {
    if (datasetCache[dataLabel]) {
        return datasetCache[dataLabel];
    }
    var elementId = 'data_' + dataLabel.replace(/[\\s\\-\\.:\\/\\\\]/g, '_');
    var element = document.getElementById(elementId);
    if (!element) {
        return Promise.reject(new Error('Data element not found: ' + elementId + ' (from label: ' + dataLabel + ')'));
    }
    var format = element.getAttribute('data-format') || 'csv_embedded';
    var src = element.getAttribute('data-src');
    var promise;

    if (format === 'csv_external' || format === 'json_external') {
        promise = fetch(src).then(function(response) {
            if (!response.ok) {
                throw new Error('Failed to load ' + src + ': ' + response.statusText);
            }
            return format === 'json_external' ? response.json() : response.text().then(parseCsvText);
        });
    } else if (format === 'json_embedded') {
        promise = new Promise(function(resolve) { resolve(JSON.parse(element.textContent.trim())); });
    } else if (format === 'csv_embedded') {
        promise = parseCsvText(element.textContent.trim());
    } else {
        promise = Promise.reject(new Error('Unsupported data format: ' + format));
    }
    datasetCache[dataLabel] = promise;
    return promise;
}
</script>
"""

PAGE_STYLE = """
<style>
    body {
        margin: 0;
        padding: 20px;
        font-family: Arial, sans-serif;
    }
    .chart-block {
        margin-bottom: 20px;
    }
    .chart-section {
        display: inline-block;
        vertical-align: top;
        margin: 0 20px 10px 0;
        padding: 6px;
        background-color: #f0f0f0;
        border-radius: 5px;
    }
    .chart-notes {
        color: #444;
    }
</style>
"""

SEGMENT_SEPARATOR = "\n<br>\n<hr>\n<br>\n"


def render_document(
    tab_title: str,
    page_header: str,
    notes: str,
    js_dependencies: List[str],
    datasets: List[str],
    segments: List[str]
) -> str:
    """Full HTML document. Datasets precede the charts that read them."""
    head = "\n".join([
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        f"    <title>{html.escape(tab_title)}</title>",
        '    <meta charset="UTF-8">',
        *js_dependencies,
        PAGE_STYLE,
        LOAD_DATASET_JS,
        "</head>",
    ])

    body = ["<body>"]
    if page_header:
        body.append(f"<h1>{html.escape(page_header)}</h1>")
    if notes:
        body.append(f'<p class="page-notes">{notes}</p>')
    body.extend(datasets)
    body.append(SEGMENT_SEPARATOR.join(segments))
    body.append("</body>")
    body.append("</html>")
    return head + "\n" + "\n".join(body) + "\n"
