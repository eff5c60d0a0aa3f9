from typing import List

from updaters.package_manager import PackageManagerUpdater
from utils.logger import get_logger

DEFAULT_REQUIRED_TOOLS = ["curl", "gpg"]


class DependencyUpdater:
    """Make sure the tools the key fallback needs are installed"""

    @staticmethod
    def find_missing(system, tools: List[str]) -> List[str]:
        return [tool for tool in tools if not system.command_exists(tool)]

    @staticmethod
    def ensure(system, tools: List[str] = None) -> List[str]:
        """
        Install whichever of ``tools`` is missing on the target.

        Failures are logged and otherwise ignored. Returns the tools that were
        missing before installation was attempted.
        """
        logger = get_logger()
        tools = DEFAULT_REQUIRED_TOOLS if tools is None else tools
        logger.info(f"Checking for required dependencies ({', '.join(tools)})...")

        missing = DependencyUpdater.find_missing(system, tools)
        if not missing:
            return []

        logger.info(f"Installing missing dependencies: {' '.join(missing)}")
        if not PackageManagerUpdater.install_packages(system, missing):
            logger.warning("Failed to install some dependencies. Continuing anyway.")
        return missing
