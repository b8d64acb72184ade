import json
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
import logging
from jinja2 import Template

from ..core.config import ConfigManager
from ..core.exceptions import ConfigurationError
from .results import RunResult

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("html", "json", "junit")

HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Test Execution Report - {{ timestamp }}</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 20px; background-color: #f5f5f5; }
        .header { background-color: #333; color: white; padding: 20px; border-radius: 5px; margin-bottom: 20px; }
        .summary { display: flex; gap: 20px; margin-bottom: 30px; }
        .summary-card { background: white; padding: 20px; border-radius: 5px; flex: 1; text-align: center; }
        .summary-card .number { font-size: 36px; font-weight: bold; }
        .passed { color: #28a745; }
        .failed { color: #dc3545; }
        .skipped { color: #ffc107; }
        .pending, .undefined { color: #17a2b8; }
        .feature { background: white; margin-bottom: 20px; border-radius: 5px; overflow: hidden; }
        .feature-header { background: #f8f9fa; padding: 15px 20px; border-bottom: 1px solid #dee2e6; }
        .scenario { padding: 15px 20px; border-bottom: 1px solid #eee; }
        .scenario-name { font-weight: bold; }
        .step { margin-left: 20px; padding: 5px 0; font-family: monospace; font-size: 14px; }
        .error { background-color: #f8d7da; color: #721c24; padding: 10px; margin: 10px 0 10px 20px;
                 border-radius: 3px; font-size: 12px; white-space: pre-wrap; }
        .tag { background-color: #e9ecef; padding: 2px 6px; border-radius: 3px; font-size: 11px; }
        .duration { color: #6c757d; font-size: 12px; }
    </style>
</head>
<body>
    <div class="header">
        <h1>Test Execution Report</h1>
        <p>Generated: {{ timestamp }}</p>
        <p>Duration: {{ "%.3f"|format(run.duration) }}s</p>
        {% if run.hook_error %}<p class="failed">Hook error: {{ run.hook_error.message }}</p>{% endif %}
    </div>

    <div class="summary">
        <div class="summary-card"><h3>Scenarios</h3><div class="number">{{ run.summary.scenarios.total }}</div></div>
        <div class="summary-card"><h3>Passed</h3><div class="number passed">{{ run.summary.scenarios.passed }}</div></div>
        <div class="summary-card"><h3>Failed</h3><div class="number failed">{{ run.summary.scenarios.failed }}</div></div>
        <div class="summary-card"><h3>Pending</h3><div class="number pending">{{ run.summary.scenarios.pending }}</div></div>
        <div class="summary-card"><h3>Pass Rate</h3><div class="number">{{ pass_rate }}%</div></div>
    </div>

    {% for feature in run.features %}
    <div class="feature">
        <div class="feature-header {{ feature.status }}">
            <h2>{{ feature.name }}</h2>
            <div class="duration">{{ feature.uri or '' }} ({{ "%.3f"|format(feature.duration) }}s)</div>
            {% if feature.hook_error %}<div class="error">{{ feature.hook_error.message }}</div>{% endif %}
        </div>
        {% for scenario in feature.scenarios %}
        <div class="scenario">
            <div class="scenario-name {{ scenario.status }}">{{ scenario.name }} [{{ scenario.status|upper }}]</div>
            {% for tag in scenario.tags %}<span class="tag">{{ tag }}</span> {% endfor %}
            {% if scenario.hook_error %}<div class="error">{{ scenario.hook_error.message }}</div>{% endif %}
            {% for step in scenario.steps %}
            <div class="step {{ step.status }}">{{ step.keyword }} {{ step.text }} ({{ step.status }})</div>
            {% if step.error %}<div class="error">{{ step.error.message }}</div>{% endif %}
            {% for line in step.logs %}<div class="step duration">{{ line }}</div>{% endfor %}
            {% endfor %}
        </div>
        {% endfor %}
    </div>
    {% endfor %}
</body>
</html>
"""

JUNIT_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<testsuites name="QA-BDD Test Results" time="{{ run.duration }}" tests="{{ run.summary.scenarios.total }}" failures="{{ run.summary.scenarios.failed }}">
{% for feature in run.features %}
    <testsuite name="{{ feature.name }}" tests="{{ feature.scenarios|length }}" failures="{{ feature.scenarios|selectattr('status', 'equalto', 'failed')|list|length }}" time="{{ feature.duration }}">
    {% for scenario in feature.scenarios %}
        <testcase classname="{{ feature.name|replace(' ', '_') }}" name="{{ scenario.name }}" time="{{ scenario.duration }}">
        {% if scenario.status == 'failed' %}
            <failure message="{{ failure_message(scenario) }}">
            {% for step in scenario.steps %}{% if step.status == 'failed' %}
                {{ step.keyword }} {{ step.text }}
                Error: {{ step.error.message if step.error else '' }}
            {% endif %}{% endfor %}
            </failure>
        {% elif scenario.status in ('skipped', 'pending') %}
            <skipped message="{{ scenario.status }}"/>
        {% endif %}
        </testcase>
    {% endfor %}
    </testsuite>
{% endfor %}
</testsuites>
"""


def _failure_message(scenario: Dict[str, Any]) -> str:
    if scenario.get('hook_error'):
        return scenario['hook_error']['message']
    for step in scenario.get('steps', []):
        if step['status'] == 'failed' and step.get('error'):
            return step['error']['message']
    return 'Test failed'


class ReportCollector:
    """Renders a RunResult as an HTML, JSON or JUnit XML report"""

    def __init__(self, output_dir: Union[str, Path] = "test-results", formats: Optional[List[str]] = None):
        self.output_dir = Path(output_dir)
        self.formats = list(formats) if formats else ["html"]
        unsupported = [f for f in self.formats if f not in SUPPORTED_FORMATS]
        if unsupported:
            raise ConfigurationError(f"Unsupported report format(s): {', '.join(unsupported)}")

    @classmethod
    def from_config_manager(cls, manager: Optional[ConfigManager] = None) -> "ReportCollector":
        """Build from the ``reporter`` section (``output_dir``, ``formats``)"""
        manager = manager or ConfigManager()
        section = manager.get_module_config('reporter') or {}
        return cls(section.get('output_dir') or "test-results", section.get('formats'))

    def render(self, result: RunResult, format: str = "html", timestamp: Optional[str] = None) -> str:
        """Render the report to a string without writing it"""
        timestamp = timestamp or datetime.now().strftime('%Y%m%d_%H%M%S')
        data = result.to_dict()

        if format == "html":
            scenarios = data['summary']['scenarios']
            pass_rate = round(scenarios['passed'] / scenarios['total'] * 100, 1) if scenarios['total'] else 0
            return Template(HTML_TEMPLATE, autoescape=True).render(run=data, timestamp=timestamp, pass_rate=pass_rate)
        elif format == "json":
            return json.dumps(data, indent=2, default=str)
        elif format == "junit":
            return Template(JUNIT_TEMPLATE, autoescape=True).render(run=data, failure_message=_failure_message)
        else:
            raise ValueError(f"Unsupported report format: {format}")

    def generate_report(self, result: RunResult, format: str = "html") -> str:
        """
        Generate test report in specified format

        Args:
            result: Run to report on
            format: Report format (html, json, junit)

        Returns:
            Path to generated report
        """
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        content = self.render(result, format, timestamp)

        extension = {"html": "html", "json": "json", "junit": "xml"}[format]
        self.output_dir.mkdir(parents=True, exist_ok=True)
        report_path = self.output_dir / f"report_{timestamp}.{extension}"
        with open(report_path, 'w', encoding='utf-8') as f:
            f.write(content)

        logger.info(f"{format.upper()} report generated: {report_path}")
        return str(report_path)

    def generate_reports(self, result: RunResult, formats: Optional[List[str]] = None) -> List[str]:
        """Write one report per format; defaults to the configured formats"""
        return [self.generate_report(result, format) for format in (formats or self.formats)]
