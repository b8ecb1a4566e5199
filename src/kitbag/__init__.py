"""
kitbag - curated dependency packs for project manifests.

A pack is a versioned bundle of library declarations plus a map from named
features to the libraries they pull in. kitbag:
- Parses and validates a pack's own manifest
- Resolves a feature selection into concrete libraries
- Merges them into a consumer manifest, never downgrading a version,
  never removing a feature, and leaving unrelated formatting untouched

Example usage:
    $ kitbag validate packs/cli-pack
    $ kitbag add packs/cli-pack -F indicators
    $ kitbag status packs/cli-pack
"""

__version__ = "0.1.0"
__author__ = "kitbag Contributors"

__all__ = [
    "__version__",
    "__author__",
]
