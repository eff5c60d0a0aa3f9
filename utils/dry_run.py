from typing import Dict, Any

from updaters.dependencies import DependencyUpdater
from updaters.keyring import KeyringUpdater
from updaters.sources import SourcesListUpdater
from utils.error_handler import DebUpgradeError


class DryRunValidator:
    """Inspect a host read-only and describe what an upgrade would do"""

    def __init__(self, logger):
        self.logger = logger

    def validate_system(self, system) -> Dict[str, Any]:
        """Collect everything the run would decide, without changing anything"""
        paths = system.paths
        repository = system.repository
        settings = system.settings

        results = {
            'system_name': system.name,
            'hostname': system.hostname,
            'is_local': system.is_local,
            'current_release': None,
            'target_release': None,
            'keyring_present': False,
            'marker_count': 0,
            'would_prompt_sources': False,
            'legacy_fragment_present': False,
            'missing_tools': [],
            'commands': [],
            'errors': [],
            'warnings': []
        }

        try:
            release = system.detect_release()
        except DebUpgradeError as e:
            results['errors'].append(str(e))
            return results

        target = release.upgrade_target()
        results['current_release'] = release.title
        results['target_release'] = target.title if target else None

        results['keyring_present'] = system.file_exists(paths['keyring'])
        if not results['keyring_present']:
            results['commands'].append(system.prepare_command(
                KeyringUpdater.get_download_command(repository['keyring_url'], paths['keyring']),
                needs_sudo=True
            ))
            results['missing_tools'] = DependencyUpdater.find_missing(system, settings['required_tools'])
            if results['missing_tools']:
                results['warnings'].append(
                    f"Key fallback would install: {', '.join(results['missing_tools'])}"
                )

        if target:
            content = system.read_file(paths['sources_list']) or ""
            results['marker_count'] = SourcesListUpdater.count_marker(content, repository['marker'])
            results['would_prompt_sources'] = (
                results['marker_count'] == 0 and not settings['assume_yes']
            )
            if results['would_prompt_sources']:
                results['warnings'].append(
                    f"'{repository['marker']}' not found in {paths['sources_list']}; replacement needs confirmation"
                )

        results['legacy_fragment_present'] = system.file_exists(paths['legacy_fragment'])

        for command, options in system.get_package_upgrade_commands():
            results['commands'].append(system.prepare_command(
                command, options.get('needs_sudo', False), options.get('env')
            ))

        return results

    def generate_dry_run_report(self, results: Dict[str, Any]) -> str:
        """Generate the dry-run report"""
        report_lines = []
        report_lines.append("=" * 60)
        report_lines.append("           DRY RUN VALIDATION REPORT")
        report_lines.append("=" * 60)
        report_lines.append(f"\n[{results['system_name']}] {results['hostname']}")

        for error in results['errors']:
            report_lines.append(f"  ✗ {error}")

        if results['current_release']:
            report_lines.append(f"  ✓ Installed: {results['current_release']}")
            if results['target_release']:
                report_lines.append(f"  → Upgrade to: {results['target_release']}")
            else:
                report_lines.append("  → Already current, packages only")

            keyring = "present" if results['keyring_present'] else "would be downloaded"
            report_lines.append(f"  Signing key: {keyring}")
            if results['target_release']:
                report_lines.append(f"  Marker lines in sources list: {results['marker_count']}")
            fragment = "would be removed" if results['legacy_fragment_present'] else "not present"
            report_lines.append(f"  Legacy fragment: {fragment}")

        for warning in results['warnings']:
            report_lines.append(f"  ⚠  {warning}")

        if results['commands']:
            report_lines.append("\n  Commands:")
            for command in results['commands']:
                report_lines.append(f"    {command}")

        report_lines.append("=" * 60)
        return "\n".join(report_lines)

    def is_ready(self, results: Dict[str, Any]) -> bool:
        return not results['errors']
