"""
Report renderers: text (rich), JSON, SARIF 2.1.0
"""

from .json_format import render_json
from .sarif import build_sarif, render_sarif, severity_to_sarif_level
from .text import print_report

__all__ = ["build_sarif", "print_report", "render_json", "render_sarif", "severity_to_sarif_level"]
