import os
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from .base import BaseSystem
from systems.releases import Release
from updaters.cleanup import CleanupUpdater
from updaters.keyring import KeyringUpdater
from updaters.package_manager import PackageManagerUpdater
from updaters.reboot import RebootUpdater
from updaters.sources import SourcesListUpdater
from utils.error_handler import (
    ConfigurationError, DebUpgradeError, UnsupportedSystemError, handle_exception
)
from utils.logger import get_logger
from utils.reporter import UpgradeReporter


class DebianSystem(BaseSystem):
    """A Debian host moved one release forward per run"""

    def __init__(self, name: str, config: Dict[str, Any]):
        super().__init__(name, config['target'])
        self.paths = config['paths']
        self.repository = config['repository']
        self.settings = config['settings']

    def get_package_upgrade_commands(self) -> List[Tuple[str, Dict[str, Any]]]:
        return PackageManagerUpdater.get_upgrade_commands()

    def check_privileges(self):
        """Local runs without sudo must already be root"""
        if self.direct_file_access and os.geteuid() != 0:
            raise ConfigurationError(
                "This tool must be run as root, or configure target.sudo_method"
            )

    def read_os_release(self) -> Tuple[str, Dict[str, str]]:
        """Return the raw os-release text and its parsed key/value pairs"""
        raw = self.read_file(self.paths['os_release']) or ""
        fields = {}
        for line in raw.splitlines():
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            key, value = line.split('=', 1)
            fields[key.strip()] = value.strip().strip('"').strip("'")
        return raw, fields

    def detect_release(self) -> Release:
        """
        Identify the installed release.

        Raises:
            UnsupportedSystemError: os-release does not mention debian
            UnsupportedVersionError: VERSION_ID is not 10, 11 or 12
        """
        raw, fields = self.read_os_release()
        if 'debian' not in raw.lower():
            raise UnsupportedSystemError("This script is only for Debian-based systems. Exiting.")
        return Release.from_version_id(fields.get('VERSION_ID'))

    def provision_keyring(self) -> str:
        return KeyringUpdater.provision(
            self,
            path=self.paths['keyring'],
            url=self.repository['keyring_url'],
            fallback_url=self.repository['keyring_fallback_url'],
            required_tools=self.settings['required_tools']
        )

    def rewrite_sources(self, release: Release,
                        input_func: Callable[[str], str] = input) -> str:
        return SourcesListUpdater.rewrite(
            self,
            release,
            path=self.paths['sources_list'],
            marker=self.repository['marker'],
            mirror_url=self.repository['mirror_url'],
            keyring_path=self.paths['keyring'],
            assume_yes=self.settings['assume_yes'],
            input_func=input_func
        )

    def _run_step(self, reporter: UpgradeReporter, step: str,
                  func: Callable, describe: Optional[Callable[[Any], str]] = None,
                  *args, **kwargs):
        logger = get_logger()
        logger.log_step_start(step)
        start_time = time.time()
        try:
            result = func(*args, **kwargs)
        except DebUpgradeError as e:
            reporter.add_step(step, False, duration=time.time() - start_time, error=str(e))
            logger.log_step_complete(step, False, str(e))
            raise

        status = describe(result) if describe else ""
        reporter.add_step(step, True, status, time.time() - start_time)
        logger.log_step_complete(step, True, status)
        return result

    @handle_exception
    def run_upgrade(self, reporter: Optional[UpgradeReporter] = None,
                    input_func: Callable[[str], str] = input) -> UpgradeReporter:
        """
        Move the host one release forward and upgrade every package.

        Any DebUpgradeError aborts the run after being recorded in the
        reporter.
        """
        logger = get_logger()
        reporter = reporter or UpgradeReporter(self.name)
        reporter.set_start_time()
        start_time = time.time()
        logger.log_run_start(self.name, self.hostname)

        try:
            self.connect()

            current = self._run_step(reporter, "Detect release", self.detect_release,
                                     lambda release: release.title)
            target = current.upgrade_target()
            if target:
                logger.info(f"{current.title} detected. Upgrading to {target.title}...")
            else:
                logger.info(
                    f"{current.title} detected. Staying on current version, "
                    "but updating any apps that can be updated..."
                )

            self._run_step(reporter, "Signing key", self.provision_keyring, str)

            if target:
                self._run_step(reporter, "Sources list", self.rewrite_sources,
                               lambda _: f"switched to {target.codename}",
                               target, input_func)

            self._run_step(
                reporter, "Legacy fragment", CleanupUpdater.remove_legacy_fragment,
                lambda removed: "removed" if removed else "not present",
                self, self.paths['legacy_fragment']
            )

            logger.info("Running apt update and upgrades...")
            self._run_step(
                reporter, "Package upgrade", PackageManagerUpdater.run_upgrade,
                lambda results: f"{sum(r['info']['total_packages'] for r in results)} packages upgraded",
                self
            )

            if target:
                self._run_step(
                    reporter, "Reboot", RebootUpdater.prompt_reboot,
                    lambda rebooted: "rebooting" if rebooted else "deferred",
                    self, self.settings['reboot'], input_func
                )
        finally:
            reporter.set_end_time()
            self.close()

        logger.log_run_complete(self.name, time.time() - start_time)
        logger.info("Script execution complete.")
        return reporter
