from typing import Dict, Any, List, Optional
from datetime import datetime


class UpgradeReporter:
    """Collect step results of an upgrade run and render them"""

    def __init__(self, system_name: str = "local"):
        self.system_name = system_name
        self.start_time = None
        self.end_time = None
        self.steps: List[Dict[str, Any]] = []

    def set_start_time(self):
        """Record the start time of the run"""
        self.start_time = datetime.now()

    def set_end_time(self):
        """Record the end time of the run"""
        self.end_time = datetime.now()

    def add_step(self, step: str, success: bool, status: str = "",
                 duration: float = 0.0, error: Optional[str] = None):
        """Add the result of one step"""
        result = {
            'step': step,
            'success': success,
            'status': status or ('done' if success else 'failed'),
            'duration': duration
        }
        if error:
            result['error'] = error
        self.steps.append(result)

    @property
    def success(self) -> bool:
        return all(step['success'] for step in self.steps)

    def generate_summary_report(self) -> str:
        """Generate a summary report of the run"""
        if not self.start_time:
            self.start_time = datetime.now()
        if not self.end_time:
            self.end_time = datetime.now()

        duration = self.end_time - self.start_time

        report_lines = []
        report_lines.append("=" * 50)
        report_lines.append(f"   Debian Upgrade Report: {self.system_name}")
        report_lines.append("=" * 50)
        report_lines.append(f"Started:   {self.start_time.strftime('%Y-%m-%d %H:%M:%S')}")
        report_lines.append(f"Completed: {self.end_time.strftime('%Y-%m-%d %H:%M:%S')}")
        report_lines.append(f"Duration:  {self._format_duration(duration.total_seconds())}")
        report_lines.append("")

        for step in self.steps:
            status_symbol = "✓" if step['success'] else "✗"
            line = f"  {status_symbol} {step['step']}: {step['status']}"
            if step['duration']:
                line += f" ({self._format_duration(step['duration'])})"
            report_lines.append(line)
            if 'error' in step:
                report_lines.append(f"    Error: {step['error']}")

        failed = sum(1 for step in self.steps if not step['success'])
        report_lines.append("")
        report_lines.append("-" * 50)
        report_lines.append(f"Summary: {len(self.steps) - failed}/{len(self.steps)} steps succeeded")
        report_lines.append("=" * 50)

        return "\n".join(report_lines)

    def _format_duration(self, seconds: float) -> str:
        """Format duration in a human-readable way"""
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            minutes = int(seconds // 60)
            secs = seconds % 60
            return f"{minutes}m {secs:.0f}s"
        else:
            hours = int(seconds // 3600)
            minutes = int((seconds % 3600) // 60)
            return f"{hours}h {minutes}m"

    def generate_json_report(self) -> Dict[str, Any]:
        """Generate a JSON-compatible report"""
        if not self.start_time:
            self.start_time = datetime.now()
        if not self.end_time:
            self.end_time = datetime.now()

        duration = self.end_time - self.start_time

        return {
            'system': self.system_name,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'duration_seconds': duration.total_seconds(),
            'steps': self.steps,
            'success': self.success
        }
