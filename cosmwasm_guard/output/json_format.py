"""
JSON report renderer
"""

import json

from cosmwasm_guard.report import AnalysisReport


def render_json(report: AnalysisReport) -> str:
    return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)
