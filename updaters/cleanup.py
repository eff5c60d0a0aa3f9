from utils.logger import get_logger

# Extra source left behind by the 2020 OVA image
DEFAULT_LEGACY_FRAGMENT = "/etc/apt/sources.list.d/deb_debian_org_debian.list"


class CleanupUpdater:

    @staticmethod
    def remove_legacy_fragment(system, path: str = DEFAULT_LEGACY_FRAGMENT) -> bool:
        """Delete the legacy source fragment; returns True if it was there"""
        if not system.file_exists(path):
            return False
        get_logger().info(f"File exists. Deleting {path}...")
        system.remove_file(path)
        return True
