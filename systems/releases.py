from enum import Enum
from typing import Optional

from utils.error_handler import UnsupportedVersionError


class Release(Enum):
    """Debian releases this tool knows how to handle"""

    BUSTER = ("10", "buster")
    BULLSEYE = ("11", "bullseye")
    BOOKWORM = ("12", "bookworm")

    def __init__(self, version_id: str, codename: str):
        self.version_id = version_id
        self.codename = codename

    @property
    def title(self) -> str:
        return f"Debian {self.version_id} ({self.codename.capitalize()})"

    @classmethod
    def from_version_id(cls, version_id: Optional[str]) -> "Release":
        for release in cls:
            if release.version_id == version_id:
                return release
        raise UnsupportedVersionError(f"Unsupported Debian version: {version_id}")

    def upgrade_target(self) -> Optional["Release"]:
        """Next release to move to, or None when already current"""
        return UPGRADE_PATH[self]


UPGRADE_PATH = {
    Release.BUSTER: Release.BULLSEYE,
    Release.BULLSEYE: Release.BOOKWORM,
    Release.BOOKWORM: None,
}
