"""
Category encoders.

Static codecs are built once from a feature's declared values. The
dynamic numeric codec grows as new categories are seen and writes each
new assignment through to its mapping file.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol

from featurefactory.errors import MappingError
from featurefactory.mapping.store import MappingFile


class NumericCodec(Protocol):
    """Bidirectional category <-> number mapping."""

    category_to_number: Mapping[Any, int]
    number_to_category: Mapping[int, Any]

    def encode(self, value: Any) -> int: ...

    def decode(self, number: int) -> Any: ...


class StaticNumericCodec:
    """Fixed 1-based numbering of a known set of categories."""

    def __init__(self, feature_name: str, category_to_number: Mapping[Any, int]) -> None:
        self.feature_name = feature_name
        self.category_to_number = dict(category_to_number)
        self.number_to_category = {n: c for c, n in self.category_to_number.items()}

    @classmethod
    def from_values(cls, feature_name: str, values: Iterable[Any]) -> "StaticNumericCodec":
        """Number ``values`` 1, 2, ... in iteration order."""
        return cls(feature_name, {value: n for n, value in enumerate(values, start=1)})

    def encode(self, value: Any) -> int:
        try:
            return self.category_to_number[value]
        except (KeyError, TypeError) as e:
            msg = (
                f"Feature '{self.feature_name}' has the value '{value}' "
                "for which there is no mapping to numbers"
            )
            raise MappingError(msg) from e

    def decode(self, number: int) -> Any:
        try:
            return self.number_to_category[number]
        except (KeyError, TypeError) as e:
            msg = f"Feature '{self.feature_name}' has no category numbered {number!r}"
            raise MappingError(msg) from e


class DynamicNumericCodec:
    """
    Numbering that assigns the next free number to each unseen category.

    Categories are keyed by their string form, which is also how they are
    stored on disk, so a mapping reloaded in a later run matches values
    of any type that print the same.
    """

    def __init__(self, feature_name: str, store: MappingFile) -> None:
        self.feature_name = feature_name
        self.store = store
        self.category_to_number: dict[str, int] = dict(store.entries)
        self.number_to_category: dict[int, str] = {
            n: c for c, n in self.category_to_number.items()
        }
        self.max_number = max(self.category_to_number.values(), default=0)

    def encode(self, value: Any) -> int:
        category = str(value)
        number = self.category_to_number.get(category)
        if number is not None:
            return number

        number = self.max_number + 1
        self.store.append(category, number)
        self.max_number = number
        self.category_to_number[category] = number
        self.number_to_category[number] = category
        return number

    def decode(self, number: int) -> str:
        try:
            return self.number_to_category[number]
        except (KeyError, TypeError) as e:
            msg = (
                f"Feature '{self.feature_name}' has no category numbered {number!r} "
                f"in {self.store.path}"
            )
            raise MappingError(msg) from e


class BinaryCodec:
    """
    One-hot vectors over an ordered list of categories.

    Position ``i`` of every vector stands for ``categories[i]``.
    """

    def __init__(self, feature_name: str, categories: Sequence[Any]) -> None:
        self.feature_name = feature_name
        self.categories = tuple(categories)
        self.category_to_vector: dict[Any, tuple[int, ...]] = {}
        self.vector_to_category: dict[tuple[int, ...], Any] = {}

        zeroes = [0] * len(self.categories)
        for position, category in enumerate(self.categories):
            vector = list(zeroes)
            vector[position] = 1
            self.category_to_vector[category] = tuple(vector)
            self.vector_to_category[tuple(vector)] = category

    @property
    def width(self) -> int:
        """Length of every vector."""
        return len(self.categories)

    def encode(self, value: Any) -> list[int]:
        try:
            return list(self.category_to_vector[value])
        except (KeyError, TypeError) as e:
            msg = f"No mapping for value '{value}' to binary in feature '{self.feature_name}'"
            raise MappingError(msg) from e

    def decode(self, vector: Iterable[int]) -> Any:
        key = tuple(vector)
        try:
            return self.vector_to_category[key]
        except KeyError as e:
            msg = f"Vector {list(key)} is not a binary code of feature '{self.feature_name}'"
            raise MappingError(msg) from e
