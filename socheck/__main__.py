# so-check - Search-order privilege escalation checker
# License: MIT

from socheck.cli import run

run()
