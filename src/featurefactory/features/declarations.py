"""
Raw feature declarations.

A declaration is the user-facing record describing one feature. It is
validated here with Pydantic for shape (allowed keys, mutually exclusive
options) and turned into a typed descriptor by the registry builder.
"""

import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from featurefactory.errors import DeclarationError
from featurefactory.features.kinds import FeatureKind, OutputFormat

RANGE_PATTERN = re.compile(r"^\s*(.+?)\s*\.{2,}\s*(.+?)\s*$")


def parse_number(text: str) -> int | float:
    """
    Evaluate one side of a range expression as a number.

    Integer literals stay integers; anything else Python's float() accepts
    (signs, exponents, underscores between digits) becomes a float.
    """
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        return float(text)


def parse_range(text: str, feature_name: str | None = None) -> tuple[int | float, int | float]:
    """
    Parse a closed range such as ``"0 .. 5"`` or ``"-0.5 ...... +1.000_005"``.

    Args:
        text: Two numeric expressions separated by two or more dots.
        feature_name: Used in error messages only.

    Returns:
        Tuple of (left, right) bounds.

    Raises:
        DeclarationError: If the range is malformed or left >= right.
    """
    match = RANGE_PATTERN.match(str(text))
    if match is None:
        msg = f"Malformed range '{text}' of feature '{feature_name}'. Should be in format '0 .. 5'"
        raise DeclarationError(msg, feature_name)
    try:
        left = parse_number(match.group(1))
        right = parse_number(match.group(2))
    except ValueError as e:
        msg = f"Malformed range '{text}' of feature '{feature_name}': {e}"
        raise DeclarationError(msg, feature_name) from e
    if not left < right:
        msg = (
            f"Invalid range '{text}' specified for feature '{feature_name}'. "
            "The left boundary must be lesser than the right one"
        )
        raise DeclarationError(msg, feature_name)
    return left, right


def read_values_file(
    path: Path,
    feature_name: str,
    base_dir: Path | None = None,
) -> list[str]:
    """
    Read acceptable values from a file, one value per line.

    Only the line terminator is stripped, so blank lines become empty-string
    values. If ``path`` cannot be opened as given, it is retried relative to
    ``base_dir``.

    Raises:
        DeclarationError: If the file cannot be opened at either location.
    """
    candidates = [Path(path)]
    if base_dir is not None and not Path(path).is_absolute():
        candidates.append(Path(base_dir) / path)

    for candidate in candidates:
        try:
            with candidate.open(encoding="utf-8") as f:
                return [line.removesuffix("\n") for line in f]
        except OSError:
            continue

    msg = f"Couldn't open file '{path}' specifying values for '{feature_name}'"
    raise DeclarationError(msg, feature_name)


class FeatureDeclaration(BaseModel):
    """
    Validated shape of one feature declaration.

    Only the keys listed here are accepted; anything else is rejected.
    ``type`` may also be spelled ``kind`` and ``cat2num`` may be spelled
    ``category_numbers``.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    name: str = Field(description="Unique feature name")
    kind: FeatureKind = Field(
        default=FeatureKind.CATEGORICAL,
        validation_alias=AliasChoices("type", "kind"),
        description="boolean, integer, numeric or categorical (first 3 chars count)",
    )
    values: Any = Field(
        default=None,
        description="Acceptable values: a list/tuple (ordered) or a set/dict (unordered)",
    )
    values_file: Path | None = Field(
        default=None, description="File listing acceptable values, one per line"
    )
    range: str | None = Field(
        default=None, description="Closed numeric range such as '0 .. 5'"
    )
    default: Any = Field(
        default=None, description="Value substituted for unacceptable returns"
    )
    format: OutputFormat | None = Field(
        default=None, description="Per-feature override of the requested format"
    )
    postproc: Callable[..., Any] | str | None = Field(
        default=None, description="Filter applied to normal-format output"
    )
    code: Callable[..., Any] | str | None = Field(
        default=None, description="Feature function or its name"
    )
    category_numbers: dict[Any, int] | None = Field(
        default=None,
        validation_alias=AliasChoices("cat2num", "category_numbers"),
        description="Explicit category -> number mapping, trusted as-is",
    )

    @field_validator("kind", mode="before")
    @classmethod
    def parse_kind(cls, v: Any) -> FeatureKind:
        """Accept any spelling whose first three characters name a kind."""
        if v is None:
            return FeatureKind.CATEGORICAL
        return FeatureKind.parse(v)

    @field_validator("format", mode="before")
    @classmethod
    def parse_format(cls, v: Any) -> Any:
        """Reject formats other than normal, numeric and binary."""
        if v is None or isinstance(v, OutputFormat):
            return v
        if v not in {f.value for f in OutputFormat}:
            msg = f"Invalid format '{v}'. Please specify 'normal', 'numeric' or 'binary'"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def check_exclusive_options(self) -> "FeatureDeclaration":
        """Enforce the combinations of values, values_file, range and default."""
        if self.values is not None and self.values_file is not None:
            msg = f"Values specified both explicitly and by file for '{self.name}'"
            raise ValueError(msg)
        if self.range is not None:
            if self.values is not None or self.values_file is not None:
                msg = f"Both range and values specified for feature '{self.name}'"
                raise ValueError(msg)
            if not self.kind.is_numeric:
                msg = (
                    f"Range specified for {self.kind.value} feature '{self.name}'; "
                    "only integer and numeric features can have a range"
                )
                raise ValueError(msg)
        if "default" in self.model_fields_set and not self.has_domain_or_range:
            msg = (
                f"Default value '{self.default}' but no values specified "
                f"for feature '{self.name}'"
            )
            raise ValueError(msg)
        if self.format is OutputFormat.BINARY and not self.has_domain:
            msg = (
                f"Feature '{self.name}' has format: 'binary' specified "
                "but doesn't have values specified"
            )
            raise ValueError(msg)
        if self.category_numbers is not None and self.kind is not FeatureKind.CATEGORICAL:
            msg = f"cat2num given for {self.kind.value} feature '{self.name}'"
            raise ValueError(msg)
        return self

    @property
    def has_default(self) -> bool:
        """Whether a default was declared (None is a legal default)."""
        return "default" in self.model_fields_set

    @property
    def has_domain(self) -> bool:
        """Whether an enumerable set of values will exist after parsing."""
        return (
            self.values is not None
            or self.values_file is not None
            or (self.range is not None and self.kind is FeatureKind.INTEGER)
        )

    @property
    def has_domain_or_range(self) -> bool:
        """Whether the returned value can be checked at all."""
        return self.has_domain or self.range is not None
