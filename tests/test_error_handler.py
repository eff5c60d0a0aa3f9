import pytest
from unittest.mock import Mock

from utils.error_handler import (
    ErrorHandler, DebUpgradeError, ConfigurationError, ConnectionError,
    CommandExecutionError, PackageManagerError, UnsupportedSystemError,
    UnsupportedVersionError, OperatorDeclinedError, handle_exception
)


class TestErrorClasses:
    """Test custom error classes"""

    def test_inheritance(self):
        for error_class in (ConfigurationError, ConnectionError, CommandExecutionError,
                            PackageManagerError, UnsupportedSystemError,
                            UnsupportedVersionError, OperatorDeclinedError):
            assert issubclass(error_class, DebUpgradeError)
        assert issubclass(PackageManagerError, CommandExecutionError)

    def test_exit_code_is_nonzero(self):
        assert OperatorDeclinedError("declined").exit_code == 1
        assert UnsupportedVersionError("13").exit_code == 1

    def test_package_manager_error_details(self):
        error = PackageManagerError("apt failed", command="apt update", exit_code=100, stderr="E: lock")

        assert str(error) == "apt failed"
        assert error.command == "apt update"
        assert error.command_exit_code == 100
        assert error.stderr == "E: lock"


class TestErrorHandler:
    """Test ErrorHandler class functionality"""

    def test_init_without_logger(self):
        handler = ErrorHandler()

        assert handler.logger.name == "debupgrade"

    def test_config_error_not_found(self, mock_logger):
        handler = ErrorHandler(mock_logger)

        result = handler.handle_config_error(FileNotFoundError("Config file not found"), "/x.yaml")

        assert result['error_type'] == 'configuration'
        assert any('Create config file' in s for s in result['suggestions'])
        mock_logger.error.assert_called_once()

    def test_connection_error_authentication(self, mock_logger):
        handler = ErrorHandler(mock_logger)

        result = handler.handle_connection_error(Exception("Authentication failed"), "vm01")

        assert result['hostname'] == "vm01"
        assert any('SSH key' in s for s in result['suggestions'])

    @pytest.mark.parametrize("stderr,expected", [
        ("E: Could not get lock /var/lib/dpkg/lock-frontend", "Wait for apt/dpkg to finish"),
        ("E: You don't have enough free space in /var/cache/apt/archives/", "Free up disk space"),
        ("W: GPG error: NO_PUBKEY 7EA0A9C3F273FCD8", "Check the repository keyring referenced by signed-by"),
        ("E: Failed to fetch https://mirror/...", "Check internet connectivity"),
    ])
    def test_package_manager_suggestions(self, mock_logger, stderr, expected):
        handler = ErrorHandler(mock_logger)
        error = PackageManagerError("Command failed: apt update", command="apt update", stderr=stderr)

        result = handler.handle_package_manager_error(error, "vm01")

        assert expected in result['suggestions']
        assert result['command'] == "apt update"

    def test_handle_error_logs_suggestions(self, mock_logger):
        handler = ErrorHandler(mock_logger)
        error = PackageManagerError("failed", stderr="Could not get lock")

        info = handler.handle_error(error, "vm01")

        assert info['error_type'] == 'package_manager'
        logged = [call[0][0] for call in mock_logger.info.call_args_list]
        assert "Suggestion: Wait for apt/dpkg to finish" in logged

    def test_handle_error_generic(self, mock_logger):
        handler = ErrorHandler(mock_logger)

        info = handler.handle_error(OperatorDeclinedError("Exiting without modifying sources.list."), "vm01")

        assert info['error_type'] == 'OperatorDeclinedError'
        mock_logger.error.assert_called_once_with("Exiting without modifying sources.list.")


class TestHandleExceptionDecorator:

    def test_passes_through_result(self):
        @handle_exception
        def ok():
            return 42

        assert ok() == 42

    def test_reraises_unexpected(self):
        @handle_exception
        def broken():
            raise KeyError("boom")

        with pytest.raises(KeyError):
            broken()

    def test_reraises_domain_errors(self):
        @handle_exception
        def declined():
            raise OperatorDeclinedError("no")

        with pytest.raises(OperatorDeclinedError):
            declined()
