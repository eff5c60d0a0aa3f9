import codecs
import paramiko
import shlex
import socket
import time
from typing import Callable, Optional, Tuple
from pathlib import Path

from utils.error_handler import ConnectionError


class SSHConnection:
    def __init__(self, hostname: str, username: str, key_file: str,
                 sudo_password: Optional[str] = None, port: int = 22,
                 connect_timeout: int = 30, command_timeout: Optional[int] = None):
        self.hostname = hostname
        self.username = username
        self.key_file = Path(key_file).expanduser()
        self.sudo_password = sudo_password
        self.port = port
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.client = None
        self.connected = False

    def connect(self, max_retries: int = 3, retry_delay: int = 5) -> bool:
        """
        Establish SSH connection with retry logic

        Args:
            max_retries: Maximum number of connection attempts
            retry_delay: Delay between retry attempts in seconds

        Returns:
            True if connection successful

        Raises:
            ConnectionError: when every attempt failed
        """
        for attempt in range(max_retries):
            try:
                self.client = paramiko.SSHClient()
                self.client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

                if not self.key_file.exists():
                    raise FileNotFoundError(f"SSH key file not found: {self.key_file}")

                self.client.connect(
                    hostname=self.hostname,
                    port=self.port,
                    username=self.username,
                    key_filename=str(self.key_file),
                    timeout=self.connect_timeout,
                    banner_timeout=self.connect_timeout
                )
                self.connected = True
                return True

            except (paramiko.AuthenticationException,
                    paramiko.SSHException,
                    socket.error,
                    FileNotFoundError) as e:

                if self.client:
                    self.client.close()
                    self.client = None

                if attempt < max_retries - 1:
                    time.sleep(retry_delay)
                    continue
                self.connected = False
                raise ConnectionError(f"Failed to connect to {self.hostname} after {max_retries} attempts: {e}")

        return False

    def execute_command(self, command: str, use_sudo: bool = False,
                        sudo_method: str = 'nopasswd',
                        on_line: Optional[Callable[[str], None]] = None) -> Tuple[int, str, str]:
        """
        Execute command with optional sudo support

        Args:
            command: Shell command to execute
            use_sudo: Whether to run with sudo
            sudo_method: 'nopasswd' or 'password'
            on_line: Called with each stdout line as it arrives

        Returns:
            Tuple of (exit_code, stdout, stderr)
        """
        if not self.connected or not self.client:
            raise ConnectionError("Not connected to remote host")

        try:
            if use_sudo:
                return self._execute_with_sudo(command, sudo_method, on_line)
            return self._execute_simple(command, on_line)
        except (paramiko.SSHException, socket.error) as e:
            return 1, "", f"Command execution failed: {e}"

    def _execute_simple(self, command: str,
                        on_line: Optional[Callable[[str], None]] = None) -> Tuple[int, str, str]:
        """Execute simple command without sudo"""
        stdin, stdout, stderr = self.client.exec_command(command, timeout=self.command_timeout)
        return self._collect(stdout, stderr, on_line)

    def _execute_with_sudo(self, command: str, sudo_method: str,
                           on_line: Optional[Callable[[str], None]] = None) -> Tuple[int, str, str]:
        """Execute command with sudo using password or nopasswd"""
        if sudo_method == 'password' and self.sudo_password:
            # sudo -S reads the password from stdin; the PTY keeps sudo happy with requiretty
            full_command = f"sudo -S -p '' sh -c {shlex.quote(command)}"
            stdin, stdout, stderr = self.client.exec_command(
                full_command,
                get_pty=True,
                timeout=self.command_timeout
            )
            stdin.write(f"{self.sudo_password}\n")
            stdin.flush()
        else:
            full_command = f"sudo -n sh -c {shlex.quote(command)}"
            stdin, stdout, stderr = self.client.exec_command(
                full_command,
                timeout=self.command_timeout
            )

        return self._collect(stdout, stderr, on_line)

    def _collect(self, stdout, stderr,
                 on_line: Optional[Callable[[str], None]] = None) -> Tuple[int, str, str]:
        if on_line:
            stdout_data = self._stream_lines(stdout.channel, on_line)
        else:
            stdout_data = stdout.read().decode(errors='replace')
        stderr_data = stderr.read().decode(errors='replace')
        exit_code = stdout.channel.recv_exit_status()

        return exit_code, stdout_data, stderr_data

    @staticmethod
    def _stream_lines(channel, on_line: Callable[[str], None]) -> str:
        """Read stdout off the channel until EOF, handing over whole lines"""
        decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')
        pending = ""
        lines = []
        while True:
            data = channel.recv(4096)
            pending += decoder.decode(data, final=not data)
            *complete, pending = pending.split('\n')
            for line in complete:
                line = line.rstrip('\r')
                lines.append(line)
                on_line(line)
            if not data:
                break
        if pending:
            lines.append(pending)
            on_line(pending)
        return "\n".join(lines)

    def close(self):
        """Close SSH connection"""
        if self.client:
            self.client.close()
            self.client = None
        self.connected = False
