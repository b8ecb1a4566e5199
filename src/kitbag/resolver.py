"""
Feature resolution.

Maps a user's selection (requested features, default/all-feature flags,
explicit library names) onto the concrete set of libraries to install.

Resolution order:
    1. all_features: defaults plus every feature in declaration order
    2. otherwise defaults (unless disabled) plus each requested feature
    3. explicit libraries replace the set with exactly the named ones
    4. hidden libraries are always added
    5. nothing selected and no criteria given: defer to a human (Interactive)
    6. flags an active feature adds to a library are unioned into that
       library's own flags (never removed)

Unknown explicit libraries are a partial failure: the valid remainder still
resolves and the unknown names are carried on the Concrete result.
"""

import logging
from collections.abc import Iterable

from kitbag.schema import DEFAULT_FEATURE, Concrete, Interactive, LibrarySpec, PackSpec, ResolvedSelection

logger = logging.getLogger(__name__)


def _extra_flags(spec: PackSpec, active: list[str]) -> dict[str, tuple[str, ...]]:
    """Collect the library flags added by active features, first occurrence wins."""
    flags: dict[str, dict[str, None]] = {}
    for feature in active:
        for name, extra in spec.feature_extras.get(feature, {}).items():
            flags.setdefault(name, {}).update(dict.fromkeys(extra))
    return {name: tuple(values) for name, values in flags.items()}


def resolve(
    spec: PackSpec,
    requested_features: Iterable[str] = (),
    no_default_features: bool = False,
    all_features: bool = False,
    explicit_libraries: Iterable[str] = (),
) -> ResolvedSelection:
    """
    Resolve a selection against a pack.

    Args:
        spec: Parsed pack specification
        requested_features: Feature names to activate
        no_default_features: Skip the pack's default libraries
        all_features: Activate every feature (overrides the two above)
        explicit_libraries: Exact library names to install

    Returns:
        Interactive when nothing was selected and no criteria were given,
        otherwise Concrete with libraries in pack declaration order
    """
    requested = list(dict.fromkeys(requested_features))
    explicit = list(dict.fromkeys(explicit_libraries))

    selected: set[str] = set()
    active: list[str] = []
    unknown_features: list[str] = []

    if all_features:
        selected |= spec.default_libraries
        active.append(DEFAULT_FEATURE)
        for feature, names in spec.features.items():
            selected.update(names)
            active.append(feature)
    else:
        if not no_default_features:
            selected |= spec.default_libraries
            active.append(DEFAULT_FEATURE)
        for feature in requested:
            if feature == DEFAULT_FEATURE:
                continue
            if feature not in spec.features:
                unknown_features.append(feature)
                continue
            selected.update(spec.features[feature])
            active.append(feature)

    if unknown_features:
        logger.warning(
            "Ignoring unknown feature(s) for pack %s: %s",
            spec.name or "<unnamed>", ", ".join(unknown_features),
        )

    unknown_libraries: list[str] = []
    if explicit:
        selected = set()
        active = []
        for name in explicit:
            if name in spec.libraries:
                selected.add(name)
            else:
                unknown_libraries.append(name)
        if unknown_libraries:
            logger.warning(
                "Skipping unknown library(s) for pack %s: %s",
                spec.name or "<unnamed>", ", ".join(unknown_libraries),
            )

    criteria_given = bool(requested or explicit or all_features or no_default_features)
    if not selected and not criteria_given:
        logger.debug("No libraries selected for pack %s; deferring", spec.name)
        return Interactive()

    selected |= spec.hidden_libraries

    extra_flags = _extra_flags(spec, active)
    libraries: dict[str, LibrarySpec] = {}
    for name, lib in spec.libraries.items():
        if name not in selected:
            continue
        added = tuple(f for f in extra_flags.get(name, ()) if f not in lib.feature_flags)
        if added:
            lib = lib.model_copy(update={"feature_flags": lib.feature_flags + added})
        libraries[name] = lib
    logger.debug(
        "Resolved pack %s: features=%s libraries=%s",
        spec.name, active, list(libraries),
    )
    return Concrete(
        active_features=tuple(active),
        libraries=libraries,
        unknown_libraries=tuple(unknown_libraries),
        unknown_features=tuple(unknown_features),
        pack=spec.name,
    )


def resolve_recorded(spec: PackSpec, active_features: Iterable[str]) -> Concrete:
    """
    Re-resolve a pack from the features recorded in a manifest.

    "default" in the recorded list means the defaults were applied. Never
    defers: with nothing recorded only the hidden libraries come back.
    """
    active = list(active_features)
    selection = resolve(
        spec,
        requested_features=active,
        no_default_features=DEFAULT_FEATURE not in active,
    )
    if isinstance(selection, Concrete):
        return selection
    hidden = {name: lib for name, lib in spec.libraries.items() if name in spec.hidden_libraries}
    return Concrete(libraries=hidden, pack=spec.name)
