from typing import Callable, Dict, Optional

from systems.releases import Release
from updaters.keyring import DEFAULT_KEYRING_PATH
from utils.error_handler import OperatorDeclinedError, UnsupportedVersionError
from utils.logger import get_logger
from utils.prompt import confirm

DEFAULT_SOURCES_LIST = "/etc/apt/sources.list"
DEFAULT_MIRROR_URL = "https://registry.vnocsymphony.com/repos/apt-mirror/mirror"
DEFAULT_MARKER = "debian.org/debian"

BULLSEYE_TEMPLATE = """\
deb [trusted=yes] {mirror}/ftp.us.debian.org/debian bullseye main contrib non-free

deb [trusted=yes] {mirror}/ftp.us.debian.org/debian bullseye-updates main contrib non-free

deb [trusted=yes] {mirror}/deb.debian.org/debian-security bullseye-security main contrib non-free
"""

BOOKWORM_TEMPLATE = """\
deb [trusted=yes] {mirror}/ftp.us.debian.org/debian bookworm main contrib non-free non-free-firmware

deb [trusted=yes] {mirror}/ftp.us.debian.org/debian bookworm-updates main contrib non-free non-free-firmware

deb [trusted=yes] {mirror}/ftp.us.debian.org/debian bookworm-backports main contrib non-free non-free-firmware

deb [trusted=yes] {mirror}/deb.debian.org/debian-security bookworm-security main contrib non-free non-free-firmware

deb [arch=amd64 signed-by={keyring}] {mirror}/download.docker.com/linux/debian bookworm stable
"""

# Releases reachable as an upgrade target; buster is only ever a starting point
SOURCES_TEMPLATES: Dict[Release, str] = {
    Release.BULLSEYE: BULLSEYE_TEMPLATE,
    Release.BOOKWORM: BOOKWORM_TEMPLATE,
}


class SourcesListUpdater:
    """Replace /etc/apt/sources.list with the mirror layout for a release"""

    @staticmethod
    def count_marker(content: str, marker: str = DEFAULT_MARKER) -> int:
        """Count uncommented lines that mention ``marker``"""
        count = 0
        for line in content.splitlines():
            if line.lstrip().startswith('#'):
                continue
            if marker in line:
                count += 1
        return count

    @staticmethod
    def render(release: Release, mirror_url: str = DEFAULT_MIRROR_URL,
               keyring_path: str = DEFAULT_KEYRING_PATH) -> str:
        if release not in SOURCES_TEMPLATES:
            raise UnsupportedVersionError(f"Unsupported version: {release.codename}")
        return SOURCES_TEMPLATES[release].format(
            mirror=mirror_url.rstrip('/'),
            keyring=keyring_path
        )

    @staticmethod
    def rewrite(system, release: Release,
                path: str = DEFAULT_SOURCES_LIST,
                marker: str = DEFAULT_MARKER,
                mirror_url: str = DEFAULT_MIRROR_URL,
                keyring_path: str = DEFAULT_KEYRING_PATH,
                assume_yes: Optional[bool] = None,
                input_func: Callable[[str], str] = input) -> str:
        """
        Overwrite the sources list for ``release`` and return the new content.

        When no uncommented line carries the marker the current content is shown
        and the operator must confirm the replacement.

        Raises:
            UnsupportedVersionError: no template exists for ``release``
            OperatorDeclinedError: the operator refused the replacement
        """
        logger = get_logger()
        new_content = SourcesListUpdater.render(release, mirror_url, keyring_path)

        current = system.read_file(path) or ""
        count = SourcesListUpdater.count_marker(current, marker)

        if count >= 1:
            logger.info(
                f"'{marker}' appears {count} times in uncommented lines of {path}. Proceeding with replacement."
            )
        else:
            logger.warning(f"The current {path} does not contain '{marker}' on any uncommented lines.")
            print(f"Contents of {path}:")
            print(current)
            answer = confirm(
                f"Do you want to replace the contents of {path}? (y/n): ",
                assume=True if assume_yes else None,
                input_func=input_func
            )
            if not answer.confirmed:
                raise OperatorDeclinedError(f"Exiting without modifying {path}.")

        logger.info(f"Updating {path} to use custom repositories for Debian {release.codename}...")
        system.write_file(path, new_content)
        return new_content
