import copy
import logging
import pytest
from pathlib import Path
from unittest.mock import Mock

from config import DEFAULT_CONFIG
from systems.debian import DebianSystem


STOCK_BUSTER_SOURCES = """\
deb http://deb.debian.org/debian buster main
# deb-src http://deb.debian.org/debian buster main
deb http://security.debian.org/debian-security buster/updates main
"""

CUSTOM_SOURCES = """\
# deb http://deb.debian.org/debian bullseye main
deb http://mirror.internal.example/apt bullseye main
"""


def os_release_text(version_id: str, distro: str = "debian") -> str:
    return (
        f'PRETTY_NAME="{distro.capitalize()} GNU/Linux {version_id}"\n'
        f'NAME="{distro.capitalize()} GNU/Linux"\n'
        f'VERSION_ID="{version_id}"\n'
        f'ID={distro}\n'
        f'HOME_URL="https://www.{distro}.org/"\n'
    )


class CommandRecorder:
    """Stand-in for BaseSystem.execute_command that records every call"""

    def __init__(self):
        self.calls = []
        self.responses = []

    def respond(self, fragment: str, exit_code: int = 0, stdout: str = "", stderr: str = "",
                effect=None):
        """
        Answer commands containing ``fragment``; first match wins.

        ``effect`` is called with the command before answering, to mimic what
        the command leaves behind on disk.
        """
        self.responses.append((fragment, (exit_code, stdout, stderr), effect))

    def __call__(self, command, needs_sudo=False, env=None, stream=False):
        self.calls.append({'command': command, 'needs_sudo': needs_sudo, 'env': env,
                           'stream': stream})
        for fragment, response, effect in self.responses:
            if fragment in command:
                if effect:
                    effect(command)
                return response
        return 0, "", ""

    @property
    def commands(self):
        return [call['command'] for call in self.calls]


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop handlers bound to a test's captured stdout"""
    yield
    logger = logging.getLogger("debupgrade")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def sample_config():
    """Default configuration, safe to mutate"""
    return copy.deepcopy(DEFAULT_CONFIG)


@pytest.fixture
def sample_config_yaml():
    """Sample YAML configuration content"""
    return """
target:
  name: vm01
  hostname: vm01.example.com
  ssh:
    user: admin
    key_file: ~/.ssh/id_ed25519
  sudo_method: nopasswd

repository:
  mirror_url: https://mirror.example.com/apt-mirror/mirror

settings:
  log_level: DEBUG
  reboot: never
"""


@pytest.fixture
def temp_config_file(tmp_path, sample_config_yaml):
    """Create a temporary config file for testing"""
    path = tmp_path / "debupgrade.yaml"
    path.write_text(sample_config_yaml)
    return str(path)


@pytest.fixture
def host_root(tmp_path):
    """A fake filesystem root with the directories the upgrade touches"""
    root = tmp_path / "host"
    (root / "etc" / "apt" / "sources.list.d").mkdir(parents=True)
    (root / "usr" / "share" / "keyrings").mkdir(parents=True)
    return root


@pytest.fixture
def host_config(sample_config, host_root):
    """Configuration whose paths all point into ``host_root``"""
    sample_config['paths'] = {
        'os_release': str(host_root / "etc" / "os-release"),
        'sources_list': str(host_root / "etc" / "apt" / "sources.list"),
        'legacy_fragment': str(host_root / "etc" / "apt" / "sources.list.d" / "deb_debian_org_debian.list"),
        'keyring': str(host_root / "usr" / "share" / "keyrings" / "docker-archive-keyring.gpg"),
    }
    return sample_config


@pytest.fixture
def make_host(host_config):
    """Populate the fake host and return a DebianSystem with recorded commands"""

    def _make(version_id="11", sources=STOCK_BUSTER_SOURCES, keyring=True,
              fragment=False, distro="debian"):
        paths = host_config['paths']
        Path(paths['os_release']).write_text(os_release_text(version_id, distro))
        if sources is not None:
            Path(paths['sources_list']).write_text(sources)
        if keyring:
            Path(paths['keyring']).write_bytes(b"\x99\x01\x0dkey")
        if fragment:
            Path(paths['legacy_fragment']).write_text("deb http://deb.debian.org/debian buster main\n")

        system = DebianSystem('test', host_config)
        recorder = CommandRecorder()
        system.execute_command = recorder
        return system, recorder

    return _make


@pytest.fixture
def mock_logger():
    """Mock logger for testing"""
    logger = Mock()
    logger.info = Mock()
    logger.warning = Mock()
    logger.error = Mock()
    logger.debug = Mock()
    return logger


@pytest.fixture
def remote_target_config():
    """Target configuration for a VM reached over SSH"""
    return {
        'hostname': 'vm01.example.com',
        'ssh': {
            'user': 'admin',
            'key_file': '~/.ssh/id_rsa'
        },
        'sudo_method': 'nopasswd'
    }


@pytest.fixture
def local_target_config():
    return {
        'hostname': 'localhost',
        'sudo_method': 'root'
    }
