# so-check - Search-order privilege escalation checker
# License: MIT

"""Capabilities backed by external programs.

Each capability has one method and an ``available`` flag. The subprocess
implementations return empty results when their program is missing, times out
or fails on a given file; the ``Static*`` implementations return canned data so
the rest of the pipeline can run without real ELF binaries.
"""

import random
import re
import shutil
import string
import subprocess

from socheck.config import (
    DEFAULT_TOOL_TIMEOUT, ENV, LDD, OBJDUMP, READELF, TRACE_TOKEN_LENGTH,
)
from socheck.logger import LogLevel
from socheck.models import BinaryMetadata, LibraryDependency

DYNAMIC_PATH_RE = re.compile(r'^[ \t]*(RPATH|RUNPATH)(?:[ \t]+(.*?))?[ \t]*$', re.MULTILINE)
INTERPRETER_RE = re.compile(r'\[Requesting program interpreter:\s*([^\]]+?)\s*\]')
ADDRESS_RE = re.compile(r'\s*\(0x[0-9a-fA-F]+\)\s*$')


def command_exists(command):
    """Check if a command exists in $PATH"""
    return shutil.which(command) is not None


def make_trace_token(length=TRACE_TOKEN_LENGTH):
    """Random library name the loader cannot resolve"""
    alphabet = string.ascii_letters + string.digits
    return ''.join(random.choice(alphabet) for _ in range(length))


def run_tool(args, timeout, env=None, merge_stderr=False):
    """Run an analysis tool and return its text output.

    Raises OSError or subprocess.SubprocessError (including TimeoutExpired);
    callers treat those as "no data" for the subject being analysed.
    """
    result = subprocess.run(
        args,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT if merge_stderr else subprocess.DEVNULL,
        stdin=subprocess.DEVNULL,
        env=env,
        timeout=timeout,
        text=True,
        errors='replace',
    )
    return result.stdout


def split_path_list(value):
    """Split a colon separated list, keeping empty segments"""
    return value.split(':')


def parse_ld_debug_search_path(output):
    """Return the directories of the first ``search path=`` line of an LD_DEBUG=libs trace"""
    for line in output.splitlines():
        if 'search path=' not in line:
            continue
        value = line.split('search path=', 1)[1]
        # The list is followed by a tab and a "(system search path)" style label
        value = value.split('\t', 1)[0].strip()
        if not value:
            return []
        return split_path_list(value)
    return []


def parse_objdump_dynamic(output):
    """Extract RPATH and RUNPATH lists from ``objdump -x`` output"""
    rpath = []
    runpath = []
    for tag, value in DYNAMIC_PATH_RE.findall(output):
        target = rpath if tag == 'RPATH' else runpath
        target.extend(split_path_list(value))
    return tuple(rpath), tuple(runpath)


def parse_readelf_interpreter(output):
    """Extract the program interpreter from ``readelf -l`` output"""
    match = INTERPRETER_RE.search(output)
    if match:
        return match.group(1)
    return None


def parse_ldd_output(output):
    """Turn ``ldd`` output into LibraryDependency values.

    Handles the three line shapes ldd prints::

        libc.so.6 => /lib/x86_64-linux-gnu/libc.so.6 (0x00007f...)
        libfoo.so.1 => not found
        /lib64/ld-linux-x86-64.so.2 (0x00007f...)
    """
    dependencies = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue

        if '=>' in line:
            name, target = (part.strip() for part in line.split('=>', 1))
            if target.startswith('not found'):
                dependencies.append(LibraryDependency(name=name, path=None, found=False))
                continue
            target = ADDRESS_RE.sub('', target).strip()
            dependencies.append(LibraryDependency(name=name, path=target or None, found=True))
        elif ADDRESS_RE.search(line):
            name = ADDRESS_RE.sub('', line).strip()
            path = name if name.startswith('/') else None
            dependencies.append(LibraryDependency(name=name, path=path, found=True))
        # "not a dynamic executable", "statically linked" and similar carry no dependency

    return tuple(dependencies)


class LoaderTracer:
    """Reports the dynamic linker's built-in library search path"""
    name = "ld.so trace"
    available = True

    def search_path(self, environment):
        raise NotImplementedError


class MetadataReader:
    """Reads RPATH, RUNPATH and interpreter of a binary"""
    name = "metadata reader"
    available = True
    interpreter_available = True

    def read(self, path):
        raise NotImplementedError


class DependencyResolver:
    """Resolves the shared library dependencies of a binary"""
    name = "dependency resolver"
    available = True

    def resolve(self, path):
        raise NotImplementedError


class LdDebugLoaderTracer(LoaderTracer):
    """Coaxes ld.so into printing its search path.

    A dynamically linked program (``env``) is started with LD_DEBUG=libs and an
    LD_PRELOAD entry that cannot be found, so the loader walks and prints its
    search path, reports the unresolvable preload and carries on.
    """

    def __init__(self, logger, timeout=DEFAULT_TOOL_TIMEOUT, program=ENV):
        self.logger = logger
        self.timeout = timeout
        self.name = program
        self.program = shutil.which(program)
        self.available = self.program is not None

    def search_path(self, environment):
        if not self.available:
            return []

        env = {key: value for key, value in environment.as_dict().items() if value}
        env['LD_PRELOAD'] = make_trace_token()
        env['LD_DEBUG'] = 'libs'

        try:
            output = run_tool([self.program], self.timeout, env=env, merge_stderr=True)
        except (OSError, subprocess.SubprocessError) as e:
            self.logger.log(LogLevel.DEBUG, f"Loader trace failed: {e}")
            return []

        return parse_ld_debug_search_path(output)


class ObjdumpMetadataReader(MetadataReader):
    """RPATH/RUNPATH from ``objdump -x``, interpreter from ``readelf -l``"""
    name = OBJDUMP

    def __init__(self, logger, timeout=DEFAULT_TOOL_TIMEOUT):
        self.logger = logger
        self.timeout = timeout
        self.available = command_exists(OBJDUMP)
        self.interpreter_available = command_exists(READELF)

    def read(self, path):
        if not self.available:
            return BinaryMetadata()

        rpath, runpath = (), ()
        try:
            rpath, runpath = parse_objdump_dynamic(run_tool([OBJDUMP, '-x', path], self.timeout))
        except (OSError, subprocess.SubprocessError) as e:
            self.logger.log(LogLevel.DEBUG, f"objdump failed for {path}: {e}")

        interpreter = None
        if self.interpreter_available:
            try:
                interpreter = parse_readelf_interpreter(run_tool([READELF, '-l', path], self.timeout))
            except (OSError, subprocess.SubprocessError) as e:
                self.logger.log(LogLevel.DEBUG, f"readelf failed for {path}: {e}")

        return BinaryMetadata(rpath=rpath, runpath=runpath, interpreter=interpreter)


class LddDependencyResolver(DependencyResolver):
    name = LDD

    def __init__(self, logger, timeout=DEFAULT_TOOL_TIMEOUT):
        self.logger = logger
        self.timeout = timeout
        self.available = command_exists(LDD)

    def resolve(self, path):
        if not self.available:
            return ()

        try:
            return parse_ldd_output(run_tool([LDD, path], self.timeout))
        except (OSError, subprocess.SubprocessError) as e:
            self.logger.log(LogLevel.DEBUG, f"ldd failed for {path}: {e}")
            return ()


class StaticLoaderTracer(LoaderTracer):
    def __init__(self, directories=(), available=True):
        self.directories = list(directories)
        self.available = available

    def search_path(self, environment):
        return list(self.directories) if self.available else []


class StaticMetadataReader(MetadataReader):
    """Canned metadata keyed by binary path"""

    def __init__(self, metadata=None, available=True):
        self.metadata = dict(metadata or {})
        self.available = available

    def read(self, path):
        if not self.available:
            return BinaryMetadata()
        return self.metadata.get(path, BinaryMetadata())


class StaticDependencyResolver(DependencyResolver):
    """Canned dependency lists keyed by binary path"""

    def __init__(self, dependencies=None, available=True):
        self.dependencies = dict(dependencies or {})
        self.available = available

    def resolve(self, path):
        if not self.available:
            return ()
        return tuple(self.dependencies.get(path, ()))
