"""Dark theme configuration for the web dashboard."""

from __future__ import annotations

COLORS = {
    "border": "#30363d",
    "text_primary": "#e6edf3",
    "text_secondary": "#8b949e",
    "purple": "#6a1b9a",
}

GLOBAL_CSS = """
body {
    background-color: #0d1117 !important;
    color: #e6edf3 !important;
    font-family: 'JetBrains Mono', 'Fira Code', monospace !important;
}
.q-card {
    background-color: #161b22 !important;
    border: 1px solid #30363d !important;
}
.q-btn {
    text-transform: none !important;
}
.log-panel {
    font-size: 0.8rem;
    white-space: pre-wrap;
}
"""
