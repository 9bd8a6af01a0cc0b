"""
Feature registry.

Turns an ordered list of raw declarations into validated descriptors,
keyed by name, remembering declaration order for "ALL" selections.
"""

import math
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from featurefactory.errors import DeclarationError, UnknownFeatureError
from featurefactory.features.declarations import (
    FeatureDeclaration,
    parse_range,
    read_values_file,
)
from featurefactory.features.descriptors import (
    DESCRIPTOR_TYPES,
    FeatureDescriptor,
    to_number,
)
from featurefactory.features.kinds import FeatureKind
from featurefactory.features.resolution import resolve_function
from featurefactory.utils.logging import get_logger

log = get_logger(__name__)

ALL = "ALL"

# Internal keys of older declarations, accepted and dropped
IGNORED_KEYS = frozenset(
    {"num2cat", "cat2num_dyna", "num2cat_dyna", "num_values_fh", "values_ordered"}
)


@dataclass
class FeatureRegistry:
    """
    Registry of declared features.

    Attributes:
        features: Descriptors keyed by feature name.
        order: Feature names in declaration order.
    """

    features: dict[str, FeatureDescriptor] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)

    def register(self, descriptor: FeatureDescriptor) -> None:
        """
        Register a feature.

        Raises:
            DeclarationError: If a feature of that name already exists.
        """
        if descriptor.name in self.features:
            msg = f"Feature '{descriptor.name}' specified twice"
            raise DeclarationError(msg, descriptor.name)
        self.features[descriptor.name] = descriptor
        self.order.append(descriptor.name)

    def get(self, name: str) -> FeatureDescriptor:
        """
        Get a feature by name.

        Raises:
            UnknownFeatureError: If feature not found.
        """
        if name not in self.features:
            raise UnknownFeatureError(name, self.order)
        return self.features[name]

    def list_features(self) -> list[str]:
        """List all feature names in declaration order."""
        return list(self.order)

    def select(self, selector: str | Sequence[str]) -> list[FeatureDescriptor]:
        """
        Resolve a selector to descriptors, in selection order.

        Args:
            selector: ``"ALL"``, a single feature name, or a sequence of names.
        """
        if isinstance(selector, str):
            names = self.order if selector == ALL else [selector]
        else:
            names = [str(name) for name in selector]
        return [self.get(name) for name in names]

    def __contains__(self, name: object) -> bool:
        return name in self.features

    def __iter__(self) -> Iterator[FeatureDescriptor]:
        return (self.features[name] for name in self.order)

    def __len__(self) -> int:
        return len(self.order)


def _explicit_values(
    values: Any, feature_name: str
) -> tuple[list[Any], bool]:
    """Split declared values into (values, ordered?)."""
    if isinstance(values, (list, tuple)):
        return list(values), True
    if isinstance(values, (set, frozenset)):
        return list(values), False
    if isinstance(values, Mapping):
        return list(values.keys()), False
    msg = (
        f"The values of feature '{feature_name}' must be given as a list or a set, "
        f"not {type(values).__name__}"
    )
    raise DeclarationError(msg, feature_name)


def _coerce_boolean(
    decl: FeatureDeclaration, values: list[Any] | None
) -> tuple[list[int] | None, Any]:
    name = decl.name
    if values is not None:
        if len(values) > 2:
            msg = f"More than two values ({len(values)}) specified for feature '{name}'"
            raise DeclarationError(msg, name)
        true_literal: Any = None
        false_literal: Any = None
        seen_true = seen_false = False
        for value in values:
            if value:
                if seen_true:
                    msg = (
                        f"True value (literal: '{true_literal}', '{value}') for "
                        f"feature '{name}' specified multiple times"
                    )
                    raise DeclarationError(msg, name)
                seen_true, true_literal = True, value
            else:
                if seen_false:
                    msg = (
                        f"False value (literal: '{false_literal}', '{value}') for "
                        f"feature '{name}' specified multiple times"
                    )
                    raise DeclarationError(msg, name)
                seen_false, false_literal = True, value
        values = [1 if value else 0 for value in values]

    default = decl.default
    if decl.has_default:
        allowed = values or []
        if len(allowed) > 1:
            msg = (
                f"Default value '{default}' specified for boolean feature '{name}' "
                "which has both values allowed"
            )
            raise DeclarationError(msg, name)
        if allowed and bool(default) == bool(allowed[0]):
            state = "true" if default else "false"
            msg = f"Default and allowed value are both {state} for feature '{name}'"
            raise DeclarationError(msg, name)
        default = 1 if default else 0
    return values, default


def _to_kind(kind: FeatureKind, value: Any) -> int | float:
    number = to_number(value)
    return math.trunc(number) if kind is FeatureKind.INTEGER else float(number)


def _coerce_numbers(
    decl: FeatureDeclaration, values: list[Any] | None
) -> tuple[list[Any] | None, Any]:
    try:
        if values is not None:
            values = [_to_kind(decl.kind, value) for value in values]
        default = _to_kind(decl.kind, decl.default) if decl.has_default else decl.default
    except (TypeError, ValueError, OverflowError) as e:
        msg = f"Non-numeric value declared for {decl.kind.value} feature '{decl.name}': {e}"
        raise DeclarationError(msg, decl.name) from e
    return values, default


def build_descriptor(
    raw: Mapping[str, Any],
    *,
    functions: Mapping[str, Any] | None = None,
    namespaces: Sequence[Any] = (),
    base_dir: Path | None = None,
) -> FeatureDescriptor:
    """
    Validate one raw declaration and build its descriptor.

    Args:
        raw: The declaration mapping (must contain ``name``).
        functions: Named-function table for resolving ``code``/``postproc``.
        namespaces: Namespaces searched after the function table.
        base_dir: Base directory for relative value files and imports.

    Raises:
        DeclarationError: If the declaration is malformed or contradictory.
        FunctionNotFound: If the feature's function can't be resolved.
    """
    if not isinstance(raw, Mapping):
        msg = f"Each feature declaration must be a mapping, not {type(raw).__name__}"
        raise DeclarationError(msg)
    if "name" not in raw:
        msg = "There was a feature without a name. Each declaration must have a 'name' field at least"
        raise DeclarationError(msg)

    name = str(raw["name"])
    accepted = dict(raw)
    for key in sorted(accepted.keys() & IGNORED_KEYS):
        log.warning("Declaration key is not supported and is ignored", feature=name, key=key)
        del accepted[key]
    try:
        decl = FeatureDeclaration.model_validate(accepted)
    except ValidationError as e:
        msg = f"Invalid declaration for feature '{name}': {e}"
        raise DeclarationError(msg, name) from e

    if decl.category_numbers is not None:
        log.warning(
            "Explicit category numbers are trusted as given; make sure they are complete",
            feature=name,
        )

    # Domain: explicit values, values file, or range
    values: list[Any] | None = None
    ordered = False
    bounds: tuple[float, float] | None = None
    if decl.values is not None:
        values, ordered = _explicit_values(decl.values, name)
    elif decl.values_file is not None:
        values, ordered = read_values_file(decl.values_file, name, base_dir), True
    elif decl.range is not None:
        low, high = parse_range(decl.range, name)
        if decl.kind is FeatureKind.INTEGER:
            values, ordered = list(range(math.trunc(low), math.trunc(high) + 1)), True
        else:
            bounds = (float(low), float(high))

    # Coercion pass by kind
    default = decl.default
    if decl.kind is FeatureKind.BOOLEAN:
        values, default = _coerce_boolean(decl, values)
    elif decl.kind.is_numeric:
        values, default = _coerce_numbers(decl, values)

    try:
        value_set = frozenset(values) if values is not None else None
    except TypeError as e:
        msg = f"Values of feature '{name}' must be hashable: {e}"
        raise DeclarationError(msg, name) from e

    evaluator = resolve_function(
        decl.code,
        feature_name=name,
        table=functions,
        namespaces=namespaces,
        base_dir=base_dir,
    )
    postprocess = None
    if decl.postproc is not None:
        postprocess = resolve_function(
            decl.postproc,
            feature_name=name,
            table=functions,
            namespaces=namespaces,
            base_dir=base_dir,
        )

    kwargs: dict[str, Any] = {
        "name": name,
        "evaluator": evaluator,
        "values": value_set,
        "values_ordered": tuple(values) if ordered and values is not None else None,
        "default": default,
        "has_default": decl.has_default,
        "output_format": decl.format,
        "postprocess": postprocess,
    }
    if decl.kind is FeatureKind.NUMERIC:
        kwargs["bounds"] = bounds
    if decl.kind is FeatureKind.CATEGORICAL:
        kwargs["category_numbers"] = decl.category_numbers

    return DESCRIPTOR_TYPES[decl.kind](**kwargs)


def build_registry(
    declarations: Sequence[Mapping[str, Any]],
    *,
    functions: Mapping[str, Any] | None = None,
    namespaces: Sequence[Any] = (),
    base_dir: Path | None = None,
) -> FeatureRegistry:
    """
    Build a registry from ordered feature declarations.

    Args:
        declarations: Raw declarations, each a mapping with a ``name``.
        functions: Named-function table for resolving feature functions.
        namespaces: Namespaces searched after the function table.
        base_dir: Base directory for relative value files and imports.

    Returns:
        Populated FeatureRegistry.

    Raises:
        DeclarationError: On the first invalid or duplicate declaration.
    """
    registry = FeatureRegistry()
    if not declarations:
        log.warning("Empty set of features declared")
    for raw in declarations:
        descriptor = build_descriptor(
            raw,
            functions=functions,
            namespaces=namespaces,
            base_dir=base_dir,
        )
        registry.register(descriptor)
        log.debug("Registered feature", name=descriptor.name, kind=descriptor.kind.value)
    return registry
