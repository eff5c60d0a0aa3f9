from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Dict, Any, Optional, Tuple
import os
import shlex
import shutil
import subprocess
import time
import pexpect
from utils.error_handler import CommandExecutionError
from utils.logger import get_logger
from utils.ssh import SSHConnection


class BaseSystem(ABC):
    def __init__(self, name: str, config: Dict[str, Any]):
        self.name = name
        self.hostname = config.get('hostname', 'localhost')
        self.ssh_config = config.get('ssh')
        self.sudo_method = config.get('sudo_method', 'root')
        self.sudo_password = None
        self.is_local = self._is_local_system()
        self.ssh_connection: Optional[SSHConnection] = None

        if self.sudo_method == 'password':
            env_var = config.get('sudo_password_env', 'DEBUPGRADE_SUDO_PASS')
            self.sudo_password = os.environ.get(env_var)

    def _is_local_system(self) -> bool:
        """Determine if this system should be executed locally"""
        return (self.ssh_config is None or
                self.hostname in ['localhost', '127.0.0.1'] or
                self.hostname == os.uname().nodename)

    @property
    def direct_file_access(self) -> bool:
        """Local root runs touch files directly instead of through the shell"""
        return self.is_local and self.sudo_method == 'root'

    @abstractmethod
    def get_package_upgrade_commands(self) -> List[Tuple[str, Dict[str, Any]]]:
        """Return list of (command, options) tuples"""
        pass

    def wrap_with_sudo(self, command: str) -> str:
        """Wrap command with sudo; the password, if any, is answered at run time"""
        return f"sudo sh -c {shlex.quote(command)}"

    @staticmethod
    def with_env(command: str, env: Optional[Dict[str, str]]) -> str:
        """Prefix command with per-invocation variable assignments"""
        if not env:
            return command
        assignments = " ".join(f"{key}={shlex.quote(value)}" for key, value in env.items())
        return f"{assignments} {command}"

    def prepare_command(self, command: str, needs_sudo: bool = False,
                        env: Optional[Dict[str, str]] = None) -> str:
        """
        Prepare command with environment and sudo handling

        Args:
            command: Base command to run
            needs_sudo: Whether command needs elevated privileges
            env: Variables set for this command only
        """
        command = self.with_env(command, env)
        if not needs_sudo or self.sudo_method == 'root':
            return command
        return self.wrap_with_sudo(command)

    def create_ssh_connection(self) -> Optional[SSHConnection]:
        """Create SSH connection if needed"""
        if self.is_local or not self.ssh_config:
            return None

        return SSHConnection(
            hostname=self.hostname,
            username=self.ssh_config['user'],
            key_file=self.ssh_config['key_file'],
            sudo_password=self.sudo_password,
            port=self.ssh_config.get('port', 22)
        )

    def connect(self):
        """Open the SSH connection for remote systems; no-op locally"""
        if self.is_local or self.ssh_connection is not None:
            return
        logger = get_logger()
        self.ssh_connection = self.create_ssh_connection()
        if self.ssh_connection:
            logger.info(f"Establishing SSH connection to {self.hostname}")
            self.ssh_connection.connect()
            logger.info(f"Successfully connected to {self.hostname}")

    def close(self):
        if self.ssh_connection:
            self.ssh_connection.close()
            get_logger().debug(f"Closed SSH connection to {self.hostname}")
            self.ssh_connection = None

    def execute_command(self, command: str, needs_sudo: bool = False,
                        env: Optional[Dict[str, str]] = None,
                        stream: bool = False) -> Tuple[int, str, str]:
        """
        Execute command locally or remotely based on system configuration

        Args:
            stream: Log output lines at INFO as they arrive; local stderr is
                merged into stdout

        Returns:
            Tuple of (exit_code, stdout, stderr)
        """
        logger = get_logger()
        display = self.prepare_command(command, needs_sudo, env)
        logger.log_command_start(display)
        start_time = time.time()

        on_line = logger.info if stream else None
        exit_code, stdout, stderr = self._dispatch(command, needs_sudo, env, on_line)

        logger.log_command_complete(display, exit_code, time.time() - start_time)
        if exit_code != 0 and stderr:
            logger.debug(f"Error output: {stderr.strip()}")
        return exit_code, stdout, stderr

    def _dispatch(self, command: str, needs_sudo: bool,
                  env: Optional[Dict[str, str]],
                  on_line: Optional[Callable[[str], None]] = None) -> Tuple[int, str, str]:
        if self.is_local:
            return self.execute_command_local(command, needs_sudo, env, on_line)
        return self.execute_command_remote(self.with_env(command, env), needs_sudo, on_line)

    def execute_command_local(self, command: str, needs_sudo: bool = False,
                              env: Optional[Dict[str, str]] = None,
                              on_line: Optional[Callable[[str], None]] = None) -> Tuple[int, str, str]:
        """Execute command locally with proper sudo handling"""
        final_command = self.prepare_command(command, needs_sudo, env)
        if needs_sudo and self.sudo_method == 'password' and self.sudo_password:
            return self._execute_with_pexpect(final_command, on_line)
        if on_line:
            return self._execute_streaming(final_command, on_line)
        return self._execute_with_subprocess(final_command)

    def _execute_with_subprocess(self, command: str,
                                 timeout: Optional[int] = None) -> Tuple[int, str, str]:
        """Execute command using subprocess"""
        try:
            result = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                errors='replace',
                timeout=timeout
            )
            return result.returncode, result.stdout, result.stderr
        except subprocess.TimeoutExpired:
            return 124, "", f"Command timed out after {timeout} seconds"
        except OSError as e:
            return 1, "", str(e)

    def _execute_streaming(self, command: str,
                           on_line: Callable[[str], None]) -> Tuple[int, str, str]:
        """
        Execute command passing each output line to ``on_line`` as it arrives.

        stdin stays attached to the terminal so dpkg can still ask about
        modified configuration files.
        """
        lines = []
        try:
            process = subprocess.Popen(
                command,
                shell=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors='replace'
            )
            for line in process.stdout:
                line = line.rstrip('\n')
                lines.append(line)
                on_line(line)
            process.stdout.close()
            exit_code = process.wait()
        except OSError as e:
            return 1, "\n".join(lines), str(e)
        return exit_code, "\n".join(lines), ""

    def _execute_with_pexpect(self, command: str,
                              on_line: Optional[Callable[[str], None]] = None) -> Tuple[int, str, str]:
        """Execute command using pexpect, answering the sudo password prompt"""
        try:
            child = pexpect.spawn('/bin/sh', ['-c', command], timeout=None,
                                  encoding='utf-8', codec_errors='replace')
            output = ""
            password_sent = False

            while True:
                index = child.expect([
                    pexpect.EOF,
                    r'\[sudo\] password.*:',
                    r'Password.*:',
                    r'\r?\n'
                ])
                before = child.before or ""

                if index == 3:
                    output += before + "\n"
                    if on_line:
                        on_line(before)
                    continue

                output += before
                if index == 0:
                    break
                if password_sent:
                    child.close()
                    return 1, output, "Sudo password rejected"
                child.sendline(self.sudo_password)
                password_sent = True

            child.close()
            exit_code = child.exitstatus if child.exitstatus is not None else 1
            return exit_code, output, ""

        except (pexpect.ExceptionPexpect, OSError) as e:
            return 1, "", str(e)

    def execute_command_remote(self, command: str, needs_sudo: bool = False,
                               on_line: Optional[Callable[[str], None]] = None) -> Tuple[int, str, str]:
        """Execute command remotely via SSH"""
        if self.ssh_connection is None:
            return 1, "", "No SSH connection provided for remote execution"

        return self.ssh_connection.execute_command(
            command,
            use_sudo=needs_sudo and self.sudo_method != 'root',
            sudo_method=self.sudo_method,
            on_line=on_line
        )

    def _probe(self, command: str) -> Tuple[int, str]:
        """Run a read-only check without logging it as a failure"""
        exit_code, stdout, _ = self._dispatch(command, False, None)
        return exit_code, stdout

    def command_exists(self, name: str) -> bool:
        if self.is_local:
            return shutil.which(name) is not None
        exit_code, _ = self._probe(f"command -v {shlex.quote(name)}")
        return exit_code == 0

    def file_exists(self, path: str) -> bool:
        if self.direct_file_access:
            return Path(path).is_file()
        exit_code, _ = self._probe(f"test -f {shlex.quote(path)}")
        return exit_code == 0

    def read_file(self, path: str) -> Optional[str]:
        """Return file content, or None when the file does not exist"""
        if self.direct_file_access:
            file_path = Path(path)
            if not file_path.is_file():
                return None
            return file_path.read_text(errors='replace')
        exit_code, stdout = self._probe(f"cat {shlex.quote(path)}")
        if exit_code != 0:
            return None
        return stdout

    def write_file(self, path: str, content: str):
        """Replace the file content entirely"""
        if self.direct_file_access:
            Path(path).write_text(content)
            return
        command = f"printf '%s' {shlex.quote(content)} > {shlex.quote(path)}"
        exit_code, _, stderr = self.execute_command(command, needs_sudo=True)
        if exit_code != 0:
            raise CommandExecutionError(f"Failed to write {path}: {stderr.strip()}")

    def remove_file(self, path: str):
        if self.direct_file_access:
            Path(path).unlink(missing_ok=True)
            return
        exit_code, _, stderr = self.execute_command(f"rm -f {shlex.quote(path)}", needs_sudo=True)
        if exit_code != 0:
            raise CommandExecutionError(f"Failed to remove {path}: {stderr.strip()}")
