# so-check - Search-order privilege escalation checker
# License: MIT

import os
from concurrent.futures import ThreadPoolExecutor

from socheck.classifier import EscalationClassifier
from socheck.collector import PathSourceCollector
from socheck.config import (
    DEFAULT_THREADS, DEFAULT_TOOL_TIMEOUT, LD_SO_CONF, LD_SO_CONF_D, LD_SO_PRELOAD,
)
from socheck.extractor import BinaryAttributeExtractor
from socheck.logger import LogLevel
from socheck.models import Origin
from socheck.risk import RiskChecker
from socheck.tools import LddDependencyResolver, LdDebugLoaderTracer, ObjdumpMetadataReader


def unique_findings(findings):
    """Drop repeated identical findings, keeping first-seen order"""
    return list(dict.fromkeys(findings))


class SearchOrderScanner:
    def __init__(self, logger, environment, tracer=None, metadata_reader=None, dependency_resolver=None,
                 threads=DEFAULT_THREADS, timeout=DEFAULT_TOOL_TIMEOUT, scan_libraries=True,
                 preload_path=LD_SO_PRELOAD, conf_path=LD_SO_CONF, conf_dir=LD_SO_CONF_D):
        self.logger = logger
        self.environment = environment
        self.threads = max(1, threads)
        self.scan_libraries = scan_libraries
        self.preload_path = preload_path

        self.tracer = tracer or LdDebugLoaderTracer(logger, timeout=timeout)
        self.metadata_reader = metadata_reader or ObjdumpMetadataReader(logger, timeout=timeout)
        self.dependency_resolver = dependency_resolver or LddDependencyResolver(logger, timeout=timeout)

        self.risk_checker = RiskChecker(environment)
        self.collector = PathSourceCollector(
            logger, environment, self.tracer,
            preload_path=preload_path, conf_path=conf_path, conf_dir=conf_dir,
        )
        self.extractor = BinaryAttributeExtractor(
            logger, self.risk_checker, self.metadata_reader, self.dependency_resolver,
        )
        self.classifier = EscalationClassifier()
        self.findings = []

    def report_capabilities(self):
        """Warn once about every missing optional tool"""
        if not self.tracer.available:
            self.logger.log(LogLevel.WARNING, f"{self.tracer.name} is not in $PATH! Library search path will not be traced ...")
        if not self.metadata_reader.available:
            self.logger.log(LogLevel.WARNING, f"{self.metadata_reader.name} is not in $PATH! Some checks will be skipped ...")
        if not self.metadata_reader.interpreter_available:
            self.logger.log(LogLevel.WARNING, "readelf is not in $PATH! Interpreter checks will be skipped ...")
        if not self.dependency_resolver.available:
            self.logger.log(LogLevel.WARNING, f"{self.dependency_resolver.name} is not in $PATH! Some checks will be skipped ...")

    def start_scan(self):
        """Run every check and return the de-duplicated findings"""
        self.logger.log(LogLevel.INFO, "Starting search order scan...")
        self.report_capabilities()

        entries = self.collector.collect()
        findings = []

        self.logger.log(LogLevel.INFO, "Checking linker configuration...")
        findings.extend(self.check_linker_configuration())

        self.logger.log(LogLevel.INFO, "Checking library paths...")
        library_entries = [e for e in entries if e.origin.is_library_search or e.origin == Origin.LD_SO_PRELOAD]
        library_findings, library_dirs = self.check_entries(library_entries)
        findings.extend(library_findings)
        if self.scan_libraries:
            findings.extend(self.scan_directories(library_dirs, executables_only=False))

        self.logger.log(LogLevel.INFO, "Checking executable paths...")
        path_entries = [e for e in entries if e.origin == Origin.PATH]
        path_findings, path_dirs = self.check_entries(path_entries)
        findings.extend(path_findings)
        findings.extend(self.scan_directories(path_dirs, executables_only=True))

        self.findings = unique_findings(findings)
        self.logger.log(LogLevel.INFO, f"Scan complete: {len(self.findings)} findings")
        return self.findings

    def check_linker_configuration(self):
        """The preload file and ld.so.conf files themselves"""
        findings = []
        if os.path.exists(self.preload_path):
            assessment = self.risk_checker.assess(self.preload_path)
            findings.extend(self.classifier.classify_preload_file(assessment))

        for path in self.collector.config_files():
            assessment = self.risk_checker.assess(path)
            findings.extend(self.classifier.classify_config_file(assessment))
        return findings

    def check_entries(self, entries):
        """Classify search path entries.

        Returns the findings and the existing directories (canonical, first-seen
        order, each once) whose contents should be listed next, as
        ``(directory, origin, writable)``. A directory is paired with the origin
        of the first entry naming it.
        """
        findings = []
        directories = {}
        for entry in entries:
            try:
                assessment = self.risk_checker.assess(entry.raw_value, entry.relative_base)
            except Exception as e:
                self.logger.log(LogLevel.DEBUG, f"Error checking {entry.describe()} entry {entry.raw_value!r}: {e}")
                continue

            findings.extend(self.classifier.classify_entry(entry, assessment))

            if (entry.origin != Origin.LD_SO_PRELOAD and assessment.exists and assessment.is_directory
                    and assessment.resolved_path not in directories):
                directories[assessment.resolved_path] = (entry.origin, assessment.is_writable)
        return findings, [(directory, origin, writable) for directory, (origin, writable) in directories.items()]

    def _list_directory(self, item, executables_only):
        directory, origin, writable = item
        candidates = []
        try:
            with os.scandir(directory) as it:
                names = sorted(entry.name for entry in it)
        except OSError as e:
            self.logger.log(LogLevel.DEBUG, f"Cannot list {directory}: {e}")
            return candidates

        for name in names:
            path = os.path.join(directory, name)
            if self.risk_checker.is_executable_file(path):
                candidates.append((path, origin, writable, True))
            elif not executables_only and self.risk_checker.is_regular_file(path):
                candidates.append((path, origin, writable, False))
        return candidates

    def scan_directories(self, directories, executables_only):
        """Check every file one level below each directory.

        Executables also go through attribute extraction; with
        ``executables_only`` other files are ignored altogether.
        """
        if not directories:
            return []

        for directory, _, _ in directories:
            self.logger.log(LogLevel.DEBUG, f"Searching files in {directory} ...")

        with ThreadPoolExecutor(max_workers=self.threads) as executor:
            listings = list(executor.map(lambda item: self._list_directory(item, executables_only), directories))

        candidates = []
        seen = set()
        for listing in listings:
            for candidate in listing:
                canonical = os.path.realpath(candidate[0])
                if canonical in seen:
                    continue
                seen.add(canonical)
                candidates.append(candidate)

        with ThreadPoolExecutor(max_workers=self.threads) as executor:
            results = list(executor.map(self._scan_file, candidates))

        return [finding for result in results for finding in result]

    def _scan_file(self, candidate):
        path, origin, directory_writable, analyze = candidate
        findings = []
        try:
            assessment = self.risk_checker.assess(path)
            findings.extend(self.classifier.classify_target(path, assessment, origin, directory_writable))
            if analyze and assessment.exists:
                findings.extend(self.analyze_executable(assessment.resolved_path))
        except Exception as e:
            self.logger.log(LogLevel.DEBUG, f"Error checking {path}: {e}")
        return findings

    def analyze_executable(self, path):
        """Findings from a binary's RPATH, RUNPATH, interpreter and dependencies"""
        record = self.extractor.extract(path)
        self.logger.log(LogLevel.DEBUG, record.path)

        findings = []
        for entry in record.search_entries:
            assessment = self.risk_checker.assess(entry.raw_value, entry.relative_base)
            findings.extend(self.classifier.classify_entry(entry, assessment, record))

        interpreter_assessment = None
        if record.interpreter_path:
            interpreter_assessment = self.risk_checker.assess(record.interpreter_path)
        findings.extend(self.classifier.classify_executable(record, interpreter_assessment))
        return findings
