# so-check - Search-order privilege escalation checker
# License: MIT

import glob
import os

from socheck.config import LD_SO_CONF, LD_SO_CONF_D, LD_SO_CONF_D_PATTERN, LD_SO_PRELOAD
from socheck.logger import LogLevel
from socheck.models import Origin, SearchPathEntry


def split_search_path(value, empty_is_cwd=False):
    """Split an environment search list on os.pathsep.

    Empty segments (leading, trailing or doubled separators) stay in the result
    as '' because the shell and the loader treat them as the working directory.
    An unset variable contributes nothing. A set but empty variable is a single
    empty segment when ``empty_is_cwd`` is true (execvp does this for PATH);
    otherwise it contributes nothing, as ld.so ignores an empty LD_LIBRARY_PATH.
    """
    if value is None:
        return []
    if value == '':
        return [''] if empty_is_cwd else []
    return value.split(os.pathsep)


def parse_preload(content):
    """Library paths listed in /etc/ld.so.preload"""
    entries = []
    for line in content.splitlines():
        line = line.strip()
        if line and not line.startswith('#'):
            entries.append(line)
    return entries


def parse_ld_so_conf(content):
    """Absolute directories named in an ld.so.conf style file.

    Comments and anything not starting with '/' are skipped, which also skips
    ``include`` directives; only the ld.so.conf.d directory is scanned for
    fragments.
    """
    paths = []
    for line in content.splitlines():
        line = line.split('#', 1)[0].strip()
        if not line.startswith('/'):
            continue
        paths.append(line)
    return paths


class PathSourceCollector:
    def __init__(self, logger, environment, tracer,
                 preload_path=LD_SO_PRELOAD, conf_path=LD_SO_CONF, conf_dir=LD_SO_CONF_D):
        self.logger = logger
        self.environment = environment
        self.tracer = tracer
        self.preload_path = preload_path
        self.conf_path = conf_path
        self.conf_dir = conf_dir
        self._linker_default = None

    def _read(self, path):
        """Contents of a config file, or '' when it is missing or unreadable"""
        try:
            with open(path, 'r', errors='replace') as f:
                return f.read()
        except OSError as e:
            self.logger.log(LogLevel.DEBUG, f"Cannot read {path}: {e}")
            return ''

    def linker_default_search_path(self):
        """Directories ld.so searches by default; traced once per collector"""
        if self._linker_default is None:
            try:
                self._linker_default = list(self.tracer.search_path(self.environment))
            except Exception as e:
                self.logger.log(LogLevel.DEBUG, f"Error tracing library search path: {e}")
                self._linker_default = []
        return self._linker_default

    def conf_fragments(self):
        return sorted(glob.glob(os.path.join(self.conf_dir, LD_SO_CONF_D_PATTERN)))

    def config_files(self):
        """Linker configuration whose modification changes the library search order"""
        files = []
        if os.path.exists(self.conf_path):
            files.append(self.conf_path)
        if os.path.isdir(self.conf_dir):
            files.append(self.conf_dir)
        files.extend(self.conf_fragments())
        return files

    def environment_entries(self):
        entries = []
        for origin, value in (
            (Origin.PATH, self.environment.path),
            (Origin.LD_LIBRARY_PATH, self.environment.ld_library_path),
            (Origin.LD_RUN_PATH, self.environment.ld_run_path),
        ):
            for raw in split_search_path(value, empty_is_cwd=origin == Origin.PATH):
                entries.append(SearchPathEntry(origin=origin, raw_value=raw))
        return entries

    def linker_default_entries(self):
        return [
            SearchPathEntry(origin=Origin.LINKER_DEFAULT, raw_value=raw)
            for raw in self.linker_default_search_path()
        ]

    def preload_entries(self):
        if not os.path.exists(self.preload_path):
            return []
        return [
            SearchPathEntry(origin=Origin.LD_SO_PRELOAD, raw_value=raw, source=self.preload_path)
            for raw in parse_preload(self._read(self.preload_path))
        ]

    def conf_entries(self):
        entries = []
        if os.path.exists(self.conf_path):
            for raw in parse_ld_so_conf(self._read(self.conf_path)):
                entries.append(SearchPathEntry(origin=Origin.LD_SO_CONF, raw_value=raw, source=self.conf_path))

        for fragment in self.conf_fragments():
            for raw in parse_ld_so_conf(self._read(fragment)):
                entries.append(SearchPathEntry(origin=Origin.LD_SO_CONF_D, raw_value=raw, source=fragment))
        return entries

    def collect(self):
        """Every search-order input, in the order the sources are consulted"""
        entries = []
        entries.extend(self.environment_entries())
        entries.extend(self.linker_default_entries())
        entries.extend(self.preload_entries())
        entries.extend(self.conf_entries())
        self.logger.log(LogLevel.DEBUG, f"Collected {len(entries)} search path entries")
        return entries
