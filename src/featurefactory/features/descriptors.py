"""
Typed feature descriptors.

One dataclass per feature kind. Each carries only the fields that make
sense for its kind and knows how to coerce and validate a raw value
returned by its feature function.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from featurefactory.features.kinds import FeatureKind, OutputFormat
from featurefactory.features.result import Ok, Result, SkipBatch

if TYPE_CHECKING:
    from featurefactory.mapping.codecs import BinaryCodec, NumericCodec


def to_number(value: Any) -> int | float:
    """
    Coerce a value to a number.

    Numbers pass through, strings are parsed as an integer or else a float,
    and anything else goes through float().

    Raises:
        TypeError, ValueError: If the value is not numeric.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return float(value)
    return float(value)


@dataclass(eq=False)
class FeatureDescriptor:
    """
    Normalized description of a declared feature.

    Attributes:
        name: Unique feature name.
        evaluator: Function computing the raw value from sample arguments.
        values: Acceptable values (membership), or None if unrestricted.
        values_ordered: Declared order of ``values``, when one was given.
        default: Value substituted when the returned one is unacceptable.
        has_default: Whether ``default`` was declared.
        output_format: Per-feature format override.
        postprocess: Filter applied in normal format only.
    """

    kind: ClassVar[FeatureKind]

    name: str
    evaluator: Callable[..., Any]
    values: frozenset[Any] | None = None
    values_ordered: tuple[Any, ...] | None = None
    default: Any = None
    has_default: bool = False
    output_format: OutputFormat | None = None
    postprocess: Callable[[Any], Any] | None = None

    # Mapping caches, filled lazily by the engine
    numeric_codec: "NumericCodec | None" = field(default=None, init=False, repr=False)
    binary_codec: "BinaryCodec | None" = field(default=None, init=False, repr=False)

    def coerce(self, value: Any) -> Any:
        """Convert a raw value to this kind; categorical values pass through."""
        return value

    def domain(self) -> list[Any]:
        """
        Values in encoding order, with the default appended if it is new.

        Declared order is used when there is one; otherwise the iteration
        order of the value set.
        """
        if self.values is None:
            return []
        ordered = list(self.values_ordered if self.values_ordered is not None else self.values)
        if self.has_default and self.default not in self.values:
            ordered.append(self.default)
        return ordered

    def effective_format(self, requested: OutputFormat) -> OutputFormat:
        """The per-feature override if declared, else the requested format."""
        return self.output_format or requested

    def validate(self, raw: Any) -> Result[Any]:
        """
        Coerce a raw value and check it against the declared values.

        Returns:
            Ok with the (possibly defaulted) value, or SkipBatch when the
            value is unacceptable and no default exists.
        """
        try:
            value = self.coerce(raw)
        except (TypeError, ValueError, OverflowError) as e:
            return SkipBatch(
                f"Feature '{self.name}' returned '{raw!r}' which is not a valid "
                f"{self.kind.value} value ({e})",
                feature=self.name,
            )
        return self.check_domain(value)

    def contains(self, value: Any) -> bool:
        """Whether ``value`` is one of ``values``; unhashable values never are."""
        try:
            return value in self.values
        except TypeError:
            return False

    def check_domain(self, value: Any) -> Result[Any]:
        """Membership check against ``values``."""
        if self.values is None:
            return Ok(value)
        if self.contains(value):
            return Ok(value)
        if self.has_default:
            return Ok(self.default)
        return SkipBatch(
            f"Feature '{self.name}' returned unexpected value '{value}'",
            feature=self.name,
        )


@dataclass(eq=False)
class CategoricalFeature(FeatureDescriptor):
    """Feature whose values are opaque categories."""

    kind: ClassVar[FeatureKind] = FeatureKind.CATEGORICAL

    category_numbers: dict[Any, int] | None = None

    def check_domain(self, value: Any) -> Result[Any]:
        """
        Membership check that also matches a value by its string form.

        Values read from a file are strings, so a function returning ``2``
        matches a listed ``"2"`` and the listed value is used from then on.
        """
        if (
            self.values is not None
            and value is not None
            and not isinstance(value, str)
            and not self.contains(value)
            and self.contains(str(value))
        ):
            return Ok(str(value))
        return super().check_domain(value)


@dataclass(eq=False)
class BooleanFeature(FeatureDescriptor):
    """Feature whose values are folded to 1 (true) or 0 (false)."""

    kind: ClassVar[FeatureKind] = FeatureKind.BOOLEAN

    def coerce(self, value: Any) -> int:
        return 1 if value else 0


@dataclass(eq=False)
class IntegerFeature(FeatureDescriptor):
    """Feature whose values are truncated to whole numbers."""

    kind: ClassVar[FeatureKind] = FeatureKind.INTEGER

    def coerce(self, value: Any) -> int:
        return math.trunc(to_number(value))


@dataclass(eq=False)
class NumericFeature(FeatureDescriptor):
    """
    Feature with real-valued output.

    A declared range is kept as ``bounds`` and only used for checking;
    unlike integer ranges it does not enumerate values.
    """

    kind: ClassVar[FeatureKind] = FeatureKind.NUMERIC

    bounds: tuple[float, float] | None = None

    def coerce(self, value: Any) -> int | float:
        return to_number(value)

    def check_domain(self, value: Any) -> Result[Any]:
        if self.values is not None or self.bounds is None:
            return super().check_domain(value)
        low, high = self.bounds
        # NaN fails both comparisons, so test for membership explicitly
        if not value >= low:
            if not self.has_default:
                return SkipBatch(
                    f"Feature '{self.name}' returned an unexpected value '{value}' "
                    f"below the left allowed boundary '{low}'",
                    feature=self.name,
                )
            value = self.default
        if not value <= high:
            if not self.has_default:
                return SkipBatch(
                    f"Feature '{self.name}' returned an unexpected value '{value}' "
                    f"above the right allowed boundary '{high}'",
                    feature=self.name,
                )
            value = self.default
        return Ok(value)


DESCRIPTOR_TYPES: dict[FeatureKind, type[FeatureDescriptor]] = {
    FeatureKind.BOOLEAN: BooleanFeature,
    FeatureKind.INTEGER: IntegerFeature,
    FeatureKind.NUMERIC: NumericFeature,
    FeatureKind.CATEGORICAL: CategoricalFeature,
}
