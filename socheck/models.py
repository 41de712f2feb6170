# so-check - Search-order privilege escalation checker
# License: MIT

"""Value objects passed between the pipeline stages."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import FrozenSet, Optional, Tuple


class Origin(Enum):
    PATH = 'PATH'
    LD_LIBRARY_PATH = 'LD_LIBRARY_PATH'
    LD_RUN_PATH = 'LD_RUN_PATH'
    LINKER_DEFAULT = 'library search path'
    LD_SO_PRELOAD = '/etc/ld.so.preload'
    LD_SO_CONF = '/etc/ld.so.conf'
    LD_SO_CONF_D = '/etc/ld.so.conf.d'
    RPATH = 'RPATH'
    RUNPATH = 'RUNPATH'

    @property
    def is_environment(self):
        return self in (Origin.PATH, Origin.LD_LIBRARY_PATH, Origin.LD_RUN_PATH)

    @property
    def is_library_search(self):
        """Sources consulted by the dynamic linker when resolving libraries"""
        return self in (
            Origin.LD_LIBRARY_PATH,
            Origin.LD_RUN_PATH,
            Origin.LINKER_DEFAULT,
            Origin.LD_SO_CONF,
            Origin.LD_SO_CONF_D,
            Origin.RPATH,
            Origin.RUNPATH,
        )

    @property
    def is_binary_embedded(self):
        return self in (Origin.RPATH, Origin.RUNPATH)


class Severity(Enum):
    INFO = 'info'
    WARNING = 'warning'
    ISSUE = 'issue'


class Category(Enum):
    ENV_VAR_WRITABLE_DIR = 'env_var_writable_dir'
    CURRENT_DIR_IN_SEARCH_PATH = 'current_dir_in_search_path'
    WRITABLE_SEARCH_DIR = 'writable_search_dir'
    WRITABLE_TARGET = 'writable_target'
    PRELOAD_HIJACK = 'preload_hijack'
    CONFIG_WRITABLE = 'config_writable'
    RPATH_HIJACK = 'rpath_hijack'
    MISSING_DEPENDENCY = 'missing_dependency'
    SANITIZER_SETUID = 'sanitizer_setuid'
    INTERPRETER_WRITABLE = 'interpreter_writable'


@dataclass(frozen=True)
class SearchPathEntry:
    origin: Origin
    raw_value: str
    relative_base: Optional[str] = None
    # conf.d fragment name, or the binary that embeds an RPATH/RUNPATH
    source: Optional[str] = None

    @property
    def is_current_dir_marker(self):
        return self.raw_value in ('', '.')

    def describe(self):
        """Human readable name of where this entry came from"""
        if self.origin.is_environment:
            return f"${self.origin.value}"
        if self.source and self.origin.is_binary_embedded:
            return f"{self.source} {self.origin.value}"
        if self.source:
            return self.source
        return self.origin.value


@dataclass(frozen=True)
class PathAssessment:
    raw_path: str
    resolved_path: Optional[str] = None
    exists: bool = False
    is_directory: bool = False
    is_writable: bool = False
    is_current_dir_marker: bool = False
    # Missing, but the parent directory is writable so it can be planted
    can_create: bool = False


@dataclass(frozen=True)
class BinaryMetadata:
    """Dynamic section and program header facts read from one binary"""
    rpath: Tuple[str, ...] = ()
    runpath: Tuple[str, ...] = ()
    interpreter: Optional[str] = None


@dataclass(frozen=True)
class LibraryDependency:
    name: str
    path: Optional[str] = None
    found: bool = True


@dataclass(frozen=True)
class ExecutableRecord:
    path: str
    is_writable_by_current_user: bool = False
    is_setuid: bool = False
    rpath_entries: Tuple[SearchPathEntry, ...] = ()
    runpath_entries: Tuple[SearchPathEntry, ...] = ()
    interpreter_path: Optional[str] = None
    missing_dependencies: FrozenSet[str] = frozenset()
    links_sanitizer_runtime: bool = False

    @property
    def search_entries(self):
        """RPATH entries followed by RUNPATH entries, each list in declaration order"""
        return self.rpath_entries + self.runpath_entries


@dataclass(frozen=True)
class Finding:
    severity: Severity
    subject_path: str
    category: Category
    message: str
    details: Tuple[str, ...] = field(default=(), compare=False)

    def to_dict(self):
        data = asdict(self)
        data['severity'] = self.severity.value
        data['category'] = self.category.value
        data['details'] = list(self.details)
        return data
