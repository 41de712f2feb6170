# so-check - Search-order privilege escalation checker
# License: MIT

import argparse
import platform
import sys

from colorama import Fore, Style

from socheck import __version__
from socheck.config import DEFAULT_THREADS, DEFAULT_TOOL_TIMEOUT
from socheck.environment import EnvironmentSnapshot
from socheck.errors import FatalSetupError
from socheck.logger import LogLevel, SOCheckLogger
from socheck.report import ReportGenerator
from socheck.scanner import SearchOrderScanner


def print_banner():
    print(f"--[ {Fore.GREEN}{Style.BRIGHT}so-check v{__version__}{Style.RESET_ALL} ]--")
    print("  Checks shared objects and executables in the search path")
    print("  for privilege escalation vectors")
    print("")


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description='so-check: search order privilege escalation checker')
    parser.add_argument('-o', '--output', help='Output file for the JSON report (without extension)')
    parser.add_argument('-f', '--format', choices=['text', 'json', 'all'], default='text', help='Report format')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output')
    parser.add_argument('-l', '--log', help='Log file path')
    parser.add_argument('-t', '--threads', type=int, default=DEFAULT_THREADS, help='Number of threads to use for scanning')
    parser.add_argument('--timeout', type=int, default=DEFAULT_TOOL_TIMEOUT,
                        help=f'Timeout for each external tool invocation in seconds (default: {DEFAULT_TOOL_TIMEOUT})')
    parser.add_argument('--skip-info', action='store_true', help='Skip printing environment information')
    parser.add_argument('--skip-libraries', action='store_true', help='Do not check files inside library directories')

    return parser.parse_args(argv)


def check_requirements(environment):
    """Conditions under which the audit is meaningless"""
    if platform.system() != 'Linux':
        raise FatalSetupError(f"so-check audits the Linux dynamic linker, not {platform.system()}")

    if environment.is_superuser:
        raise FatalSetupError("Running this tool as root does not make sense.")


def print_environment_info(logger, environment, library_search_path):
    logger.log(LogLevel.INFO, "Environment info:")
    print()
    for name, value in environment.as_dict().items():
        print(f"{name}={value}")
    print(f"Library search paths: {':'.join(library_search_path)}")
    print()


def main(argv=None):
    args = parse_arguments(argv)

    print_banner()

    logger = SOCheckLogger(log_file=args.log, verbose=args.verbose)
    environment = EnvironmentSnapshot.capture()

    try:
        check_requirements(environment)
    except FatalSetupError as e:
        logger.log(LogLevel.ERROR, str(e))
        return 1

    scanner = SearchOrderScanner(
        logger=logger,
        environment=environment,
        threads=args.threads,
        timeout=args.timeout,
        scan_libraries=not args.skip_libraries,
    )

    library_search_path = scanner.collector.linker_default_search_path()
    if not args.skip_info:
        print_environment_info(logger, environment, library_search_path)

    findings = scanner.start_scan()

    report_generator = ReportGenerator(
        logger=logger,
        environment=environment,
        findings=findings,
        library_search_path=library_search_path,
    )
    report_generator.generate_report(output_format=args.format, output_file=args.output)

    # Advisory tool: findings never change the exit status
    return 0


def run():
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nExecution interrupted by user. Exiting...")
        sys.exit(1)
    except Exception as e:
        print(f"An error occurred: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
