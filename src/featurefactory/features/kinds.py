"""Feature kinds and output formats."""

from enum import Enum

from featurefactory.errors import DeclarationError, UnknownFormatError


class FeatureKind(str, Enum):
    """Declared value type of a feature."""

    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"

    @classmethod
    def parse(cls, text: str) -> "FeatureKind":
        """
        Parse a kind name, looking only at its first three characters.

        Matching is case-insensitive, so ``"cat"``, ``"Num"``,
        ``"integral"`` and ``"Boo!"`` are all accepted.

        Raises:
            DeclarationError: If the prefix names no known kind.
        """
        if isinstance(text, cls):
            return text
        prefix = str(text)[:3].lower()
        for kind in cls:
            if kind.value[:3] == prefix:
                return kind
        msg = (
            f"Unknown feature type '{text}'. Should be 'boolean', 'integer', "
            "'numeric' or 'categorical'"
        )
        raise DeclarationError(msg)

    @property
    def is_numeric(self) -> bool:
        """Whether values of this kind are passed through as numbers."""
        return self in (FeatureKind.INTEGER, FeatureKind.NUMERIC)


class OutputFormat(str, Enum):
    """Representation requested from the engine."""

    NORMAL = "normal"
    NUMERIC = "numeric"
    BINARY = "binary"

    @classmethod
    def parse(cls, text: "str | OutputFormat") -> "OutputFormat":
        """Parse a format name; raises UnknownFormatError for anything else."""
        try:
            return cls(text)
        except ValueError as e:
            raise UnknownFormatError(text) from e
