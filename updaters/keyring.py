"""Provisioning of the Docker repository signing key.

The bookworm sources reference the key through ``signed-by``, so it has to be
on disk before apt refreshes metadata.  Only the file's existence is checked;
a present file is never re-downloaded or validated.
"""

import shlex
from typing import List, Optional

from updaters.dependencies import DependencyUpdater
from utils.logger import get_logger

DEFAULT_KEYRING_PATH = "/usr/share/keyrings/docker-archive-keyring.gpg"
DEFAULT_KEYRING_URL = "https://registry.vnocsymphony.com/cpx/downloads/docker-archive-keyring.gpg"
DEFAULT_KEYRING_FALLBACK_URL = "https://download.docker.com/linux/debian/gpg"

KEY_PRESENT = "present"
KEY_DOWNLOADED = "downloaded"
KEY_IMPORTED = "imported"
KEY_FAILED = "failed"


class KeyringUpdater:

    @staticmethod
    def get_download_command(url: str, path: str) -> str:
        return f"wget -q {shlex.quote(url)} -O {shlex.quote(path)}"

    @staticmethod
    def get_import_command(url: str, path: str) -> str:
        armored = f"{path}.asc"
        return (
            f"curl -fsSL {shlex.quote(url)} -o {shlex.quote(armored)}"
            f" && gpg --batch --yes --dearmor -o {shlex.quote(path)} {shlex.quote(armored)}"
            f"; status=$?; rm -f {shlex.quote(armored)}; exit $status"
        )

    @staticmethod
    def provision(system, path: str = DEFAULT_KEYRING_PATH,
                  url: str = DEFAULT_KEYRING_URL,
                  fallback_url: str = DEFAULT_KEYRING_FALLBACK_URL,
                  required_tools: Optional[List[str]] = None) -> str:
        """Make sure the keyring exists, returning how it got there"""
        logger = get_logger()

        if system.file_exists(path):
            logger.info(f"Docker GPG key already exists @{path} skipping download.")
            return KEY_PRESENT

        logger.info("Downloading Docker GPG key...")
        exit_code, _, _ = system.execute_command(
            KeyringUpdater.get_download_command(url, path), needs_sudo=True
        )
        if exit_code == 0:
            return KEY_DOWNLOADED

        # wget leaves an empty file behind on failure
        system.remove_file(path)
        logger.warning(f"Direct download from {url} failed, falling back to {fallback_url}")

        DependencyUpdater.ensure(system, required_tools)

        exit_code, _, _ = system.execute_command(
            KeyringUpdater.get_import_command(fallback_url, path), needs_sudo=True
        )
        if exit_code == 0:
            return KEY_IMPORTED

        system.remove_file(path)
        logger.warning("Failed to download and save Docker GPG key. Continuing without Docker repository.")
        return KEY_FAILED
