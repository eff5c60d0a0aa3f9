#!/usr/bin/env python3

import argparse
import json
import sys

import yaml

from config import ConfigParser
from systems.debian import DebianSystem
from updaters.reboot import REBOOT_POLICIES
from utils.dry_run import DryRunValidator
from utils.error_handler import ConfigurationError, DebUpgradeError, ErrorHandler
from utils.logger import get_logger
from utils.reporter import UpgradeReporter


def create_system(config: dict) -> DebianSystem:
    """Build the target system from the merged configuration"""
    return DebianSystem(config['target'].get('name', 'local'), config)


def print_report(reporter: UpgradeReporter, as_json: bool = False):
    if as_json:
        print(json.dumps(reporter.generate_json_report(), indent=2))
    else:
        print(reporter.generate_summary_report())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Upgrade a Debian host to the next release through the mirror"
    )
    parser.add_argument("--config", help="Path to config file")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be done")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--log-file", help="Log to file")
    parser.add_argument("--json", action="store_true", help="Print the run report as JSON")
    parser.add_argument("--yes", action="store_true",
                        help="Replace sources.list without asking even if it looks customised")
    parser.add_argument("--reboot", choices=REBOOT_POLICIES,
                        help="Reboot policy after a release change (default: ask)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config_parser = ConfigParser(args.config)
    try:
        config = config_parser.load_config()
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger = get_logger(log_file=args.log_file)
        ErrorHandler(logger.logger).handle_error(
            ConfigurationError(str(e)), "config", str(config_parser.config_path)
        )
        return 1

    settings = config_parser.get_settings()
    if args.yes:
        settings['assume_yes'] = True
    if args.reboot:
        settings['reboot'] = args.reboot

    log_level = "DEBUG" if args.verbose else settings.get('log_level', 'INFO')
    logger = get_logger(log_level, args.log_file)
    error_handler = ErrorHandler(logger.logger)

    system = create_system(config)

    if args.dry_run:
        validator = DryRunValidator(logger)
        try:
            system.connect()
            results = validator.validate_system(system)
        except DebUpgradeError as e:
            error_handler.handle_error(e, system.name)
            return e.exit_code
        finally:
            system.close()
        print(validator.generate_dry_run_report(results))
        return 0 if validator.is_ready(results) else 1

    reporter = UpgradeReporter(system.name)
    try:
        system.check_privileges()
        system.run_upgrade(reporter)
    except DebUpgradeError as e:
        error_handler.handle_error(e, system.name, str(config_parser.config_path))
        if reporter.steps:
            print_report(reporter, args.json)
        return e.exit_code
    except KeyboardInterrupt:
        logger.error("Interrupted by operator")
        return 130

    print_report(reporter, args.json)
    return 0


if __name__ == "__main__":
    sys.exit(main())
