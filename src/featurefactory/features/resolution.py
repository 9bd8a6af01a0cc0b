"""
Lookup of feature and postprocessing functions.

A function reference is resolved through an ordered chain:

1. a callable given directly in the declaration,
2. a name in the factory's table of named functions,
3. a name in the calling namespaces (the factory subclass and its module,
   or a namespace passed in explicitly),
4. a dotted ``module.function`` import path.

The first hit wins; if nothing matches, FunctionNotFound is raised.
"""

import importlib
import sys
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from featurefactory.errors import DeclarationError, FunctionNotFound
from featurefactory.utils.logging import get_logger

log = get_logger(__name__)


def _lookup(namespace: Any, name: str) -> Any:
    if isinstance(namespace, Mapping):
        return namespace.get(name)
    return getattr(namespace, name, None)


def _import_dotted(name: str, base_dir: Path | None) -> Any:
    module_name, _, attr = name.rpartition(".")
    if not module_name:
        return None
    if base_dir is not None and str(base_dir) not in sys.path:
        sys.path.append(str(base_dir))
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        log.warning("Failed loading module", module=module_name, error=str(e))
        return None
    return getattr(module, attr, None)


def resolve_function(
    ref: Callable[..., Any] | str | None,
    *,
    feature_name: str,
    table: Mapping[str, Any] | None = None,
    namespaces: Sequence[Any] = (),
    base_dir: Path | None = None,
) -> Callable[..., Any]:
    """
    Resolve a function reference for a feature.

    Args:
        ref: A callable, a function name, or None to look up ``feature_name``.
        feature_name: Feature the function belongs to (and default name).
        table: Named-function table, consulted before any namespace.
        namespaces: Modules, objects or mappings searched by attribute/key.
        base_dir: Added to ``sys.path`` before importing dotted names.

    Returns:
        The resolved callable.

    Raises:
        DeclarationError: If a name resolves to something not callable.
        FunctionNotFound: If no step of the chain finds the name.
    """
    if callable(ref):
        return ref
    if ref is not None and not isinstance(ref, str):
        msg = f"Function for feature '{feature_name}' must be a callable or a name, not {type(ref).__name__}"
        raise DeclarationError(msg, feature_name)

    name = ref if ref is not None else feature_name
    searched: list[str] = []

    if table:
        searched.append("function table")
        found = table.get(name)
        if found is not None:
            if not callable(found):
                msg = f"Found '{name}' in the function table but it's not callable"
                raise DeclarationError(msg, feature_name)
            return found

    for namespace in namespaces:
        searched.append(getattr(namespace, "__name__", type(namespace).__name__))
        found = _lookup(namespace, name)
        if callable(found):
            return found

    if "." in name:
        searched.append(f"import {name}")
        found = _import_dotted(name, base_dir)
        if callable(found):
            return found

    raise FunctionNotFound(name, feature_name, searched)
