# so-check - Search-order privilege escalation checker
# License: MIT

"""Static configuration: linker file locations, tool names, defaults."""

LD_SO_PRELOAD = '/etc/ld.so.preload'
LD_SO_CONF = '/etc/ld.so.conf'
LD_SO_CONF_D = '/etc/ld.so.conf.d'
LD_SO_CONF_D_PATTERN = '*.conf'

# Relocatable-origin token spellings accepted by ld.so
ORIGIN_TOKENS = ('${ORIGIN}', '$ORIGIN')

# Sanitizer runtimes that honour attacker-controlled options (e.g. ASAN_OPTIONS log_path)
SANITIZER_RUNTIMES = (
    'libasan.so',
    'libhwasan.so',
    'libtsan.so',
    'libubsan.so',
    'liblsan.so',
    'libclang_rt.asan',
)

OBJDUMP = 'objdump'
READELF = 'readelf'
LDD = 'ldd'
ENV = 'env'

TRACE_TOKEN_LENGTH = 32

DEFAULT_THREADS = 10
DEFAULT_TOOL_TIMEOUT = 10  # seconds, per subprocess invocation
