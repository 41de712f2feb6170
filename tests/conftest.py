"""Shared test fixtures for so-check tests."""

import os

import pytest

from socheck.environment import EnvironmentSnapshot
from socheck.logger import SOCheckLogger
from socheck.scanner import SearchOrderScanner
from socheck.tools import StaticDependencyResolver, StaticLoaderTracer, StaticMetadataReader

running_as_root = pytest.mark.skipif(
    os.geteuid() == 0,
    reason="root can write everywhere; read-only checks are meaningless",
)


def make_snapshot(cwd, path=None, ld_library_path=None, ld_run_path=None):
    return EnvironmentSnapshot(
        path=path,
        ld_library_path=ld_library_path,
        ld_run_path=ld_run_path,
        cwd=str(cwd),
        euid=os.geteuid(),
    )


def make_executable(path, mode=0o755):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n")
    os.chmod(path, mode)
    return os.path.realpath(path)


@pytest.fixture
def logger():
    return SOCheckLogger(verbose=True)


@pytest.fixture
def etc(tmp_path):
    """Stand-in for /etc with no linker configuration in it"""
    d = tmp_path / "etc"
    d.mkdir()
    return d


@pytest.fixture
def make_scanner(logger, etc, tmp_path):
    """Build a scanner wired to canned tools and the temporary /etc"""

    def _make(environment=None, search_path=(), metadata=None, dependencies=None,
              metadata_available=True, resolver_available=True, **kwargs):
        environment = environment or make_snapshot(tmp_path)
        return SearchOrderScanner(
            logger=logger,
            environment=environment,
            tracer=StaticLoaderTracer(search_path),
            metadata_reader=StaticMetadataReader(metadata, available=metadata_available),
            dependency_resolver=StaticDependencyResolver(dependencies, available=resolver_available),
            threads=kwargs.pop('threads', 4),
            preload_path=str(etc / "ld.so.preload"),
            conf_path=str(etc / "ld.so.conf"),
            conf_dir=str(etc / "ld.so.conf.d"),
            **kwargs
        )

    return _make
