# so-check - Search-order privilege escalation checker
# License: MIT

import json
from datetime import datetime

from socheck.logger import LogLevel
from socheck.models import Severity

SEVERITY_LEVELS = {
    Severity.INFO: LogLevel.INFO,
    Severity.WARNING: LogLevel.WARNING,
    Severity.ISSUE: LogLevel.ISSUE,
}


class ReportGenerator:
    def __init__(self, logger, environment, findings, library_search_path=None):
        self.logger = logger
        self.environment = environment
        self.findings = findings
        self.library_search_path = library_search_path or []
        self.report_data = {}

    def build_report_data(self):
        summary = {
            'total_findings': len(self.findings),
            'issues': sum(1 for f in self.findings if f.severity == Severity.ISSUE),
            'categories': {},
        }
        for finding in self.findings:
            category = finding.category.value
            summary['categories'][category] = summary['categories'].get(category, 0) + 1

        self.report_data = {
            'scan_time': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            'environment': self.environment.as_dict(),
            'library_search_path': list(self.library_search_path),
            'findings': [finding.to_dict() for finding in self.findings],
            'summary': summary,
        }
        return self.report_data

    def generate_report(self, output_format='text', output_file=None):
        """Generate a report of the scan results"""
        self.build_report_data()

        if output_format == 'text' or output_format == 'all':
            self.generate_text_report()

        if output_format == 'json' or output_format == 'all':
            self.generate_json_report(output_file)

        return self.report_data

    def generate_json_report(self, output_file=None):
        """Generate a JSON report"""
        json_report = json.dumps(self.report_data, indent=4)

        if output_file:
            file_name = f"{output_file}.json" if not output_file.endswith('.json') else output_file
            with open(file_name, 'w') as f:
                f.write(json_report)
            self.logger.log(LogLevel.SUCCESS, f"JSON report saved to {file_name}")
        else:
            print(json_report)

        return json_report

    def generate_text_report(self):
        """Print findings to the console, most severe categories first"""
        if not self.findings:
            self.logger.log(LogLevel.SUCCESS, "No search order issues found")
            return

        ordered = sorted(
            self.findings,
            key=lambda f: (f.severity != Severity.ISSUE, f.category.value),
        )
        for finding in ordered:
            self.logger.log(SEVERITY_LEVELS.get(finding.severity, LogLevel.INFO), finding.message)
            for detail in finding.details:
                self.logger.log(LogLevel.INFO, f"    {detail}")

        print()
        summary = self.report_data['summary']
        self.logger.log(LogLevel.INFO, f"Total findings: {summary['total_findings']} ({summary['issues']} issues)")
        for category, count in sorted(summary['categories'].items()):
            self.logger.log(LogLevel.INFO, f"  {category.replace('_', ' ').title()}: {count}")
