"""
Reporting module for kitbag.

Output formats:
    - Console: Rich terminal output (findings, pack details, merge outcome,
      status drift)
    - JSON: Structured dictionaries for ``--json``

Example:
    from rich.console import Console
    from kitbag.report import print_findings

    print_findings(Console(), findings, "packs/cli-pack")
"""

from kitbag.report.console import print_findings, print_install, print_pack, print_status
from kitbag.report.json import dumps, findings_dict, install_dict, pack_dict, status_dict

__all__ = [
    "dumps",
    "findings_dict",
    "install_dict",
    "pack_dict",
    "print_findings",
    "print_install",
    "print_pack",
    "print_status",
    "status_dict",
]
