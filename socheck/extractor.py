# so-check - Search-order privilege escalation checker
# License: MIT

import os

from socheck.config import SANITIZER_RUNTIMES
from socheck.logger import LogLevel
from socheck.models import BinaryMetadata, ExecutableRecord, Origin, SearchPathEntry


def is_sanitizer_runtime(library_name):
    name = os.path.basename(library_name)
    return any(name.startswith(prefix) for prefix in SANITIZER_RUNTIMES)


class BinaryAttributeExtractor:
    """Builds ExecutableRecords from the metadata reader and dependency resolver.

    Never raises: a failing tool leaves the affected fields empty.
    """

    def __init__(self, logger, risk_checker, metadata_reader, dependency_resolver):
        self.logger = logger
        self.risk_checker = risk_checker
        self.metadata_reader = metadata_reader
        self.dependency_resolver = dependency_resolver

    def _metadata(self, path):
        if not self.metadata_reader.available:
            return BinaryMetadata()
        try:
            return self.metadata_reader.read(path)
        except Exception as e:
            self.logger.log(LogLevel.DEBUG, f"Error reading metadata of {path}: {e}")
            return BinaryMetadata()

    def _dependencies(self, path):
        if not self.dependency_resolver.available:
            return ()
        try:
            return tuple(self.dependency_resolver.resolve(path))
        except Exception as e:
            self.logger.log(LogLevel.DEBUG, f"Error resolving dependencies of {path}: {e}")
            return ()

    def extract(self, path):
        path = os.path.realpath(path)
        base = os.path.dirname(path)
        metadata = self._metadata(path)

        rpath_entries = tuple(
            SearchPathEntry(origin=Origin.RPATH, raw_value=raw, relative_base=base, source=path)
            for raw in metadata.rpath
        )
        runpath_entries = tuple(
            SearchPathEntry(origin=Origin.RUNPATH, raw_value=raw, relative_base=base, source=path)
            for raw in metadata.runpath
        )
        if metadata.rpath:
            self.logger.log(LogLevel.DEBUG, f"{path} - RPATH: {':'.join(metadata.rpath)}")
        if metadata.runpath:
            self.logger.log(LogLevel.DEBUG, f"{path} - RUNPATH: {':'.join(metadata.runpath)}")

        dependencies = self._dependencies(path)
        missing = frozenset(dep.name for dep in dependencies if not dep.found)
        sanitizer = any(is_sanitizer_runtime(dep.name) for dep in dependencies if dep.found)
        if sanitizer:
            self.logger.log(LogLevel.DEBUG, f"{path} uses a sanitizer runtime")

        return ExecutableRecord(
            path=path,
            is_writable_by_current_user=self.risk_checker.is_writable(path),
            is_setuid=self.risk_checker.is_setuid(path),
            rpath_entries=rpath_entries,
            runpath_entries=runpath_entries,
            interpreter_path=metadata.interpreter,
            missing_dependencies=missing,
            links_sanitizer_runtime=sanitizer,
        )
