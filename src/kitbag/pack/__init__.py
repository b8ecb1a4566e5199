"""
Pack system for kitbag.

Key Components:
    - parse: Turn a pack manifest's text into a PackSpec
    - validate / collect_findings: Ordered pack rules with findings
    - PackLoader: Locate and read a pack on disk
"""

from kitbag.pack.loader import PackLoader
from kitbag.pack.spec import parse
from kitbag.pack.validator import collect_findings, validate

__all__ = [
    "PackLoader",
    "collect_findings",
    "parse",
    "validate",
]
