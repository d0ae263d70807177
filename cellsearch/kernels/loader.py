"""Resolve a kernel backend from ``package.module:attr`` or an entry point name."""

from __future__ import annotations

import importlib
import inspect
from importlib.metadata import entry_points
from typing import Any, List

from cellsearch.kernels.base import REQUIRED_METHODS
from cellsearch.util.errors import ConfigurationError
from cellsearch.util.logging import get_logger

logger = get_logger(__name__)

ENTRY_POINT_GROUP = "cellsearch.kernels"


class KernelLoadError(ConfigurationError):
    """The requested kernel backend could not be imported or is incomplete."""


def _entry_point_target(name: str) -> Any:
    eps = entry_points()
    # Python < 3.10 returns a dict of groups.
    group = eps.select(group=ENTRY_POINT_GROUP) if hasattr(eps, "select") else eps.get(ENTRY_POINT_GROUP, [])
    for ep in group:
        if ep.name == name:
            return ep.load()
    raise KernelLoadError(f"no kernel backend named '{name}' in entry point group '{ENTRY_POINT_GROUP}'")


def _import_target(spec: str) -> Any:
    module_name, _, attr_path = spec.partition(":")
    if not module_name or not attr_path:
        raise KernelLoadError(f"kernel backend '{spec}' must look like 'package.module:attr'")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise KernelLoadError(f"cannot import kernel module '{module_name}': {exc}") from exc
    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise KernelLoadError(f"kernel backend '{spec}' has no attribute '{part}'") from exc
    return target


def missing_methods(backend: Any) -> List[str]:
    return [name for name in REQUIRED_METHODS if not callable(getattr(backend, name, None))]


def load_kernels(spec: str) -> Any:
    """Return a ready-to-use kernel backend.

    ``spec`` is either ``package.module:attr`` or the name of an entry point
    in the ``cellsearch.kernels`` group. Classes and factory functions are
    called without arguments; other objects are used as-is.
    """
    text = str(spec or "").strip()
    if not text:
        raise KernelLoadError("no kernel backend configured (use --kernels or CELLSEARCH_KERNELS)")
    target = _import_target(text) if ":" in text else _entry_point_target(text)
    backend = target() if inspect.isclass(target) or inspect.isfunction(target) else target
    missing = missing_methods(backend)
    if missing:
        raise KernelLoadError(f"kernel backend '{text}' is missing: {', '.join(missing)}")
    logger.debug("Loaded kernel backend %s (%s)", text, type(backend).__name__)
    return backend
