"""Tests for parsing external tool output and the tool capabilities."""

import subprocess

from socheck import tools
from socheck.models import BinaryMetadata, LibraryDependency
from socheck.tools import (
    LddDependencyResolver,
    ObjdumpMetadataReader,
    StaticMetadataReader,
    make_trace_token,
    parse_ld_debug_search_path,
    parse_ldd_output,
    parse_objdump_dynamic,
    parse_readelf_interpreter,
)

from conftest import make_snapshot


LD_DEBUG_OUTPUT = (
    "ERROR: ld.so: object 'Xy12' from LD_PRELOAD cannot be preloaded: ignored.\n"
    "     41234:\tfind library=libc.so.6 [0]; searching\n"
    "     41234:\t search path=/lib/x86_64-linux-gnu/tls:/lib/x86_64-linux-gnu:/usr/lib\t\t(system search path)\n"
    "     41234:\t  trying file=/lib/x86_64-linux-gnu/tls/libc.so.6\n"
    "     41234:\t search path=/other\t\t(RUNPATH from file env)\n"
)

OBJDUMP_OUTPUT = """
Dynamic Section:
  NEEDED               libfoo.so.1
  NEEDED               libc.so.6
  RPATH                /opt/lib::$ORIGIN/../lib
  RUNPATH              $ORIGIN
  INIT                 0x0000000000001000
"""

READELF_OUTPUT = """
Program Headers:
  Type           Offset             VirtAddr           PhysAddr
  INTERP         0x0000000000000318 0x0000000000000318 0x0000000000000318
                 0x000000000000001c 0x000000000000001c  R      0x1
      [Requesting program interpreter: /lib64/ld-linux-x86-64.so.2]
"""

LDD_OUTPUT = """\
\tlinux-vdso.so.1 (0x00007ffd3b5f2000)
\tlibfoo.so.1 => not found
\tlibasan.so.8 => /usr/lib/x86_64-linux-gnu/libasan.so.8 (0x00007f0c1c000000)
\tlibc.so.6 => /lib/x86_64-linux-gnu/libc.so.6 (0x00007f0c1bc00000)
\t/lib64/ld-linux-x86-64.so.2 (0x00007f0c1d2a1000)
"""


def test_trace_token_shape():
    token = make_trace_token()
    assert len(token) == 32
    assert token.isalnum()


def test_ld_debug_first_search_path_line():
    assert parse_ld_debug_search_path(LD_DEBUG_OUTPUT) == [
        "/lib/x86_64-linux-gnu/tls",
        "/lib/x86_64-linux-gnu",
        "/usr/lib",
    ]


def test_ld_debug_without_search_path_is_no_data():
    assert parse_ld_debug_search_path("") == []
    assert parse_ld_debug_search_path("ld.so: unrelated noise\n") == []


def test_objdump_rpath_and_runpath_keep_order_and_empties():
    rpath, runpath = parse_objdump_dynamic(OBJDUMP_OUTPUT)
    assert rpath == ("/opt/lib", "", "$ORIGIN/../lib")
    assert runpath == ("$ORIGIN",)


def test_objdump_empty_runpath_is_one_empty_entry():
    output = (
        "Dynamic Section:\n"
        "  NEEDED               libc.so.6\n"
        "  RUNPATH              \n"
        "  INIT                 0x0000000000001000\n"
    )
    assert parse_objdump_dynamic(output) == ((), ("",))


def test_objdump_without_dynamic_paths():
    assert parse_objdump_dynamic("Dynamic Section:\n  NEEDED   libc.so.6\n") == ((), ())


def test_readelf_interpreter():
    assert parse_readelf_interpreter(READELF_OUTPUT) == "/lib64/ld-linux-x86-64.so.2"
    assert parse_readelf_interpreter("There are no program headers in this file.") is None


def test_ldd_output():
    deps = parse_ldd_output(LDD_OUTPUT)
    by_name = {dep.name: dep for dep in deps}

    assert by_name["libfoo.so.1"] == LibraryDependency(name="libfoo.so.1", path=None, found=False)
    assert by_name["libc.so.6"].path == "/lib/x86_64-linux-gnu/libc.so.6"
    assert by_name["linux-vdso.so.1"].found
    assert by_name["/lib64/ld-linux-x86-64.so.2"].path == "/lib64/ld-linux-x86-64.so.2"
    assert len(deps) == 5


def test_ldd_static_binary():
    assert parse_ldd_output("\tnot a dynamic executable\n") == ()
    assert parse_ldd_output("\tstatically linked\n") == ()


def test_objdump_reader_degrades_when_missing(logger, monkeypatch):
    monkeypatch.setattr(tools, "command_exists", lambda command: False)
    reader = ObjdumpMetadataReader(logger)
    assert not reader.available
    assert reader.read("/bin/true") == BinaryMetadata()


def test_objdump_reader_survives_timeout(logger, monkeypatch):
    monkeypatch.setattr(tools, "command_exists", lambda command: True)

    def hang(args, timeout, env=None, merge_stderr=False):
        raise subprocess.TimeoutExpired(args, timeout)

    monkeypatch.setattr(tools, "run_tool", hang)
    reader = ObjdumpMetadataReader(logger, timeout=1)
    assert reader.read("/bin/true") == BinaryMetadata()


def test_ldd_resolver_parses_tool_output(logger, monkeypatch):
    monkeypatch.setattr(tools, "command_exists", lambda command: True)
    monkeypatch.setattr(tools, "run_tool", lambda args, timeout, env=None, merge_stderr=False: LDD_OUTPUT)
    resolver = LddDependencyResolver(logger)
    assert [dep.name for dep in resolver.resolve("/bin/app") if not dep.found] == ["libfoo.so.1"]


def test_loader_tracer_passes_debug_environment(logger, tmp_path, monkeypatch):
    seen = {}

    def fake_run(args, timeout, env=None, merge_stderr=False):
        seen.update(env)
        return LD_DEBUG_OUTPUT

    monkeypatch.setattr(tools, "run_tool", fake_run)
    tracer = tools.LdDebugLoaderTracer(logger, program="sh")
    snapshot = make_snapshot(tmp_path, path="/usr/bin:/bin")

    assert tracer.search_path(snapshot)[-1] == "/usr/lib"
    assert seen["LD_DEBUG"] == "libs"
    assert len(seen["LD_PRELOAD"]) == 32
    assert seen["PATH"] == "/usr/bin:/bin"
    assert "LD_LIBRARY_PATH" not in seen


def test_static_reader_unavailable_returns_empty():
    reader = StaticMetadataReader({"/bin/x": BinaryMetadata(rpath=("/tmp",))}, available=False)
    assert reader.read("/bin/x") == BinaryMetadata()
