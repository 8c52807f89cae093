"""Report generation module."""

import logging
import json
from typing import Any, Dict, List
from datetime import datetime
from colorama import Fore, Style, init

# Initialize colorama for Windows
init()


class Reporter:
    """Render group resolution results as text or JSON."""

    def __init__(self):
        """Initialize reporter."""
        self.logger = logging.getLogger(__name__)

    def generate_json_report(self, data: Dict[str, Any], output_file: str):
        """
        Generate JSON report.

        Args:
            data: Query results keyed by query name
            output_file: Output file path
        """
        self.logger.info(f"Generating JSON report: {output_file}")

        report = {
            'metadata': {
                'generated_at': datetime.now().isoformat(),
                'tool': 'AD Group Resolver',
                'version': '1.0',
            },
            'results': self._serialize(data),
        }

        with open(output_file, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, ensure_ascii=False)

        self.logger.info("JSON report generated successfully")

    def generate_text_report(self, data: Dict[str, Any], output_file: str = None) -> str:
        """
        Generate text report for console or file.

        Args:
            data: Query results keyed by query name
            output_file: Output file path (None for console output)

        Returns:
            The report text
        """
        lines = []

        lines.append("=" * 80)
        lines.append("AD GROUP MEMBERSHIP REPORT")
        lines.append("=" * 80)
        lines.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        lines.append("")

        if 'classification' in data:
            item = data['classification']
            lines.append(self._heading("CLASSIFICATION"))
            lines.append(f"{item['identifier']}: {item['classification']}")
            lines.append("")

        if 'in_group' in data:
            closure = data['in_group']
            lines.append(self._heading("NESTED GROUPS"))
            if closure is None:
                lines.append(f"{Fore.RED}Group not found{Style.RESET_ALL}")
            else:
                lines.append(f"Group: {closure['group']} (recursive: {closure['recursive']})")
                lines.extend(self._bullets(closure['groups']))
                if closure['skipped']:
                    lines.append(f"{Fore.YELLOW}Unresolved members ({len(closure['skipped'])}):{Style.RESET_ALL}")
                    lines.extend(self._bullets(closure['skipped']))
            lines.append("")

        if 'recursive_groups' in data:
            lines.append(self._heading("MEMBER OF (RECURSIVE)"))
            lines.extend(self._bullets(data['recursive_groups']))
            lines.append("")

        if 'primary_group' in data:
            lines.append(self._heading("PRIMARY GROUP"))
            lines.append(data['primary_group'] or f"{Fore.RED}Not found{Style.RESET_ALL}")
            lines.append("")

        if 'members' in data:
            members = data['members']
            lines.append(self._heading("USER MEMBERS"))
            if members is None:
                lines.append(f"{Fore.RED}Group not found{Style.RESET_ALL}")
            else:
                lines.extend(self._bullets(members))
            lines.append("")

        lines.append("=" * 80)

        report_text = '\n'.join(lines)

        if output_file:
            with open(output_file, 'w', encoding='utf-8') as f:
                f.write(report_text)
            self.logger.info(f"Text report saved to: {output_file}")
        else:
            print(report_text)

        return report_text

    def _heading(self, title: str) -> str:
        return f"{Fore.GREEN}[+]{Style.RESET_ALL} {title}\n" + "-" * 80

    def _bullets(self, items: List[str]) -> List[str]:
        if not items:
            return ["  (none)"]
        return [f"  - {item}" for item in items]

    def _serialize(self, obj: Any) -> Any:
        """Recursively convert results to JSON-compatible values."""
        if hasattr(obj, 'to_dict'):
            return self._serialize(obj.to_dict())
        elif hasattr(obj, 'value') and hasattr(obj, 'name'):
            return obj.value
        elif isinstance(obj, bytes):
            return obj.hex()
        elif isinstance(obj, datetime):
            return obj.isoformat()
        elif isinstance(obj, dict):
            return {k: self._serialize(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [self._serialize(item) for item in obj]
        else:
            return obj
