from typing import List, Tuple, Dict, Any
import re

from utils.error_handler import PackageManagerError
from utils.logger import get_logger

NONINTERACTIVE_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class PackageManagerUpdater:
    """Refresh, upgrade, full-upgrade and purge through apt"""

    @staticmethod
    def get_upgrade_commands() -> List[Tuple[str, Dict[str, Any]]]:
        """Get apt commands in the order they must run"""
        opts = {"needs_sudo": True, "env": NONINTERACTIVE_ENV}
        return [
            ("apt update --assume-yes", dict(opts)),
            ("apt upgrade --without-new-pkgs --assume-yes", dict(opts)),
            ("apt full-upgrade --assume-yes", dict(opts)),
            ("apt --purge autoremove --assume-yes", dict(opts))
        ]

    @staticmethod
    def install_packages(system, packages: List[str]) -> bool:
        """Install packages; returns False instead of raising on failure"""
        logger = get_logger()
        for command in ("apt update --assume-yes",
                        "apt install --assume-yes " + " ".join(packages)):
            exit_code, _, stderr = system.execute_command(
                command, needs_sudo=True, env=NONINTERACTIVE_ENV
            )
            if exit_code != 0:
                logger.warning(f"'{command}' failed: {stderr.strip()}")
                return False
        return True

    @staticmethod
    def run_upgrade(system) -> List[Dict[str, Any]]:
        """
        Run every upgrade command, stopping at the first failure.

        apt output is streamed to the log while it runs.

        Raises:
            PackageManagerError: when a command exits non-zero
        """
        logger = get_logger()
        results = []
        for command, options in system.get_package_upgrade_commands():
            logger.info(f"Running {command}")
            exit_code, stdout, stderr = system.execute_command(
                command,
                needs_sudo=options.get('needs_sudo', False),
                env=options.get('env'),
                stream=True
            )
            info = PackageManagerUpdater.parse_apt_output(stdout)
            results.append({
                'command': command,
                'exit_code': exit_code,
                'info': info,
                'success': exit_code == 0
            })
            if exit_code != 0:
                # stderr is folded into stdout when output is streamed locally
                raise PackageManagerError(
                    f"Command failed: {command} (exit code: {exit_code})",
                    command=command,
                    exit_code=exit_code,
                    stderr=stderr or "\n".join(info['errors'])
                )
            PackageManagerUpdater._log_summary(info)
        return results

    @staticmethod
    def _log_summary(info: Dict[str, Any]):
        logger = get_logger()
        if info['already_up_to_date']:
            logger.info("Already up to date")
            return
        if info['download_size']:
            logger.info(info['download_size'])
        if info['total_packages'] or info['packages_installed'] or info['packages_removed']:
            logger.info(
                f"{info['total_packages']} upgraded, {info['packages_installed']} newly installed, "
                f"{info['packages_removed']} removed, {info['packages_not_upgraded']} held back"
            )

    @staticmethod
    def parse_apt_output(stdout: str) -> Dict[str, Any]:
        """Parse apt output to extract useful information"""
        info = {
            'total_packages': 0,
            'packages_installed': 0,
            'packages_removed': 0,
            'packages_not_upgraded': 0,
            'already_up_to_date': False,
            'download_size': None,
            'errors': []
        }

        for line in stdout.split('\n'):
            line = line.strip()

            summary = re.search(
                r'(\d+) upgraded, (\d+) newly installed, (\d+) to remove and (\d+) not upgraded',
                line
            )
            if summary:
                info['total_packages'] = int(summary.group(1))
                info['packages_installed'] = int(summary.group(2))
                info['packages_removed'] = int(summary.group(3))
                info['packages_not_upgraded'] = int(summary.group(4))
                if not any(int(n) for n in summary.groups()[:3]):
                    info['already_up_to_date'] = True
            elif 'All packages are up to date' in line:
                info['already_up_to_date'] = True
            elif line.startswith('Need to get'):
                info['download_size'] = line
            elif line.startswith('E:') or line.startswith('Err:'):
                info['errors'].append(line)

        return info
