# so-check - Search-order privilege escalation checker
# License: MIT

import logging
from enum import Enum

from colorama import init, Fore, Style

init(autoreset=True)


class LogLevel(Enum):
    INFO = 1
    SUCCESS = 2
    WARNING = 3
    ERROR = 4
    CRITICAL = 5
    DEBUG = 6
    ISSUE = 7


class SOCheckLogger:
    def __init__(self, log_file=None, verbose=False):
        self.log_file = log_file
        self.verbose = verbose
        self.setup_logger()

    def setup_logger(self):
        self.logger = logging.getLogger("so-check")
        self.logger.setLevel(logging.DEBUG if self.verbose else logging.INFO)
        self.logger.propagate = False

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        # Console output is printed by log(); the logging module only feeds the log file
        if self.log_file:
            handler = logging.FileHandler(self.log_file)
            handler.setFormatter(logging.Formatter('%(asctime)s - so-check - %(levelname)s - %(message)s'))
        else:
            handler = logging.NullHandler()
        self.logger.addHandler(handler)

    def log(self, level, message, show_console=True):
        color_map = {
            LogLevel.INFO: Fore.CYAN,
            LogLevel.SUCCESS: Fore.GREEN,
            LogLevel.WARNING: Fore.YELLOW,
            LogLevel.ERROR: Fore.RED,
            LogLevel.CRITICAL: Fore.RED + Style.BRIGHT,
            LogLevel.DEBUG: Style.DIM,
            LogLevel.ISSUE: Fore.YELLOW + Style.BRIGHT,
        }

        # Log to file if specified
        if level == LogLevel.INFO:
            self.logger.info(message)
        elif level == LogLevel.SUCCESS:
            self.logger.info(f"SUCCESS: {message}")
        elif level == LogLevel.WARNING:
            self.logger.warning(message)
        elif level == LogLevel.ERROR:
            self.logger.error(message)
        elif level == LogLevel.CRITICAL:
            self.logger.critical(message)
        elif level == LogLevel.DEBUG:
            self.logger.debug(message)
        elif level == LogLevel.ISSUE:
            self.logger.warning(f"ISSUE: {message}")

        if level == LogLevel.DEBUG and not self.verbose:
            return

        if show_console:
            color = color_map.get(level, "")
            prefix_map = {
                LogLevel.INFO: "[*]",
                LogLevel.SUCCESS: "[+]",
                LogLevel.WARNING: "[WARNING]",
                LogLevel.ERROR: "[ERROR]",
                LogLevel.CRITICAL: "[!!!]",
                LogLevel.DEBUG: "[D]",
                LogLevel.ISSUE: "[!]",
            }
            prefix = prefix_map.get(level, "")
            print(f"{color}{prefix}{Style.RESET_ALL}  {message}")
