import logging
import traceback
from typing import Optional, Dict, Any, Callable
from functools import wraps


class DebUpgradeError(Exception):
    """Base exception for debupgrade errors"""
    exit_code = 1


class ConfigurationError(DebUpgradeError):
    """Configuration-related errors"""
    pass


class ConnectionError(DebUpgradeError):
    """Network/SSH connection errors"""
    pass


class CommandExecutionError(DebUpgradeError):
    """Command execution errors"""
    pass


class PackageManagerError(CommandExecutionError):
    """A package manager step exited non-zero"""

    def __init__(self, message: str, command: str = "", exit_code: int = 1, stderr: str = ""):
        super().__init__(message)
        self.command = command
        self.command_exit_code = exit_code
        self.stderr = stderr


class UnsupportedSystemError(DebUpgradeError):
    """Target host is not Debian-based"""
    pass


class UnsupportedVersionError(DebUpgradeError):
    """Target host runs a Debian release we cannot upgrade"""
    pass


class OperatorDeclinedError(DebUpgradeError):
    """Operator answered no to a confirmation that gates the run"""
    pass


class ErrorHandler:
    """Turn errors into structured information with operator suggestions"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("debupgrade")

    def handle_config_error(self, error: Exception, config_path: str) -> Dict[str, Any]:
        """Handle configuration errors with helpful suggestions"""
        self.logger.error(f"Configuration error in {config_path}: {error}")

        suggestions = []
        error_msg = str(error).lower()

        if "not found" in error_msg:
            suggestions.append(f"Create config file at {config_path}")
            suggestions.append("Use --config to specify a different config file")
        elif "yaml" in error_msg or "syntax" in error_msg:
            suggestions.append("Check YAML syntax in config file")
            suggestions.append("Ensure proper indentation and no tabs")
        elif "must be" in error_msg or "invalid" in error_msg:
            suggestions.append("Check section types and allowed values in config file")

        return {
            'error_type': 'configuration',
            'error_message': str(error),
            'suggestions': suggestions,
            'recoverable': False
        }

    def handle_connection_error(self, error: Exception, hostname: str) -> Dict[str, Any]:
        """Handle SSH connection errors with recovery suggestions"""
        self.logger.error(f"Connection error to {hostname}: {error}")

        suggestions = []
        error_msg = str(error).lower()

        if "name resolution" in error_msg or "unknown host" in error_msg:
            suggestions.append(f"Check if hostname '{hostname}' is correct")
            suggestions.append("Verify DNS resolution or /etc/hosts entry")
        elif "connection refused" in error_msg:
            suggestions.append(f"Check if SSH daemon is running on {hostname}")
            suggestions.append("Verify SSH port (default 22) is open")
        elif "authentication" in error_msg or "permission denied" in error_msg:
            suggestions.append("Check SSH key permissions (should be 600)")
            suggestions.append("Verify SSH key is authorized on remote host")
        elif "timeout" in error_msg or "timed out" in error_msg:
            suggestions.append("Check network connectivity to host")

        return {
            'error_type': 'connection',
            'error_message': str(error),
            'hostname': hostname,
            'suggestions': suggestions,
            'recoverable': False
        }

    def handle_package_manager_error(self, error: Exception, system_name: str) -> Dict[str, Any]:
        """Handle apt failures"""
        self.logger.error(f"Package manager error on {system_name}: {error}")

        suggestions = []
        error_msg = str(error).lower()
        stderr = getattr(error, 'stderr', '') or ''
        error_msg = f"{error_msg}\n{stderr.lower()}"

        if "lock" in error_msg:
            suggestions.append("Wait for apt/dpkg to finish")
            suggestions.append("Remove /var/lib/dpkg/lock* if no apt is running")
        elif "signature" in error_msg or "no_pubkey" in error_msg or "not signed" in error_msg:
            suggestions.append("Check the repository keyring referenced by signed-by")
        elif "space" in error_msg:
            suggestions.append("Free up disk space")
        elif "could not resolve" in error_msg or "failed to fetch" in error_msg:
            suggestions.append("Check internet connectivity")
            suggestions.append("Verify the mirror URL in sources.list")
        elif "dpkg was interrupted" in error_msg:
            suggestions.append("Run 'dpkg --configure -a' and retry")

        return {
            'error_type': 'package_manager',
            'error_message': str(error),
            'command': getattr(error, 'command', ''),
            'system_name': system_name,
            'suggestions': suggestions,
            'recoverable': False
        }

    def handle_error(self, error: DebUpgradeError, system_name: str,
                     config_path: str = "") -> Dict[str, Any]:
        """Dispatch to the matching handler and log its suggestions"""
        if isinstance(error, PackageManagerError):
            info = self.handle_package_manager_error(error, system_name)
        elif isinstance(error, ConnectionError):
            info = self.handle_connection_error(error, system_name)
        elif isinstance(error, ConfigurationError):
            info = self.handle_config_error(error, config_path)
        else:
            self.logger.error(str(error))
            info = {
                'error_type': type(error).__name__,
                'error_message': str(error),
                'suggestions': [],
                'recoverable': False
            }

        for suggestion in info['suggestions']:
            self.logger.info(f"Suggestion: {suggestion}")
        return info


def handle_exception(func: Callable):
    """Decorator for comprehensive exception handling"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DebUpgradeError:
            raise
        except Exception as e:
            logger = logging.getLogger("debupgrade")
            logger.error(f"Unhandled exception in {func.__name__}: {e}")
            logger.debug(f"Traceback: {traceback.format_exc()}")
            raise
    return wrapper
