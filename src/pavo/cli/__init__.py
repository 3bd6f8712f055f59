"""CLI package.

The ``cli`` sub-package contains the option registry, the argument
parser, the dispatcher and the click application. It imports subsystem
modules (server, builder, optimizer, preview) only through the
dispatcher's loader, never at import time.
"""
from __future__ import annotations
