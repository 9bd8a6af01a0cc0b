"""
Exception hierarchy for the feature registry and encoding engine.

Everything raised here is a hard failure. Values outside a declared
domain are not exceptions; they travel as ``SkipBatch`` results.
"""


class FeatureFactoryError(Exception):
    """Base exception for featurefactory."""


class DeclarationError(FeatureFactoryError, ValueError):
    """Raised when a feature declaration or engine option is invalid."""

    def __init__(self, message: str, feature_name: str | None = None) -> None:
        self.feature_name = feature_name
        super().__init__(message)


class FunctionNotFound(DeclarationError):
    """Raised when an evaluator or postprocessing function cannot be resolved."""

    def __init__(self, function_name: str, feature_name: str, searched: list[str]) -> None:
        self.function_name = function_name
        self.searched = searched
        where = ", ".join(searched) if searched else "nowhere"
        super().__init__(
            f"Couldn't find function '{function_name}' for feature "
            f"'{feature_name}' (searched: {where})",
            feature_name=feature_name,
        )


class UnknownFeatureError(FeatureFactoryError, KeyError):
    """Raised when evaluation is requested for an undeclared feature."""

    def __init__(self, feature_name: str, known: list[str]) -> None:
        self.feature_name = feature_name
        self.known = known
        super().__init__(
            f"Feature '{feature_name}' you wish to evaluate was not found "
            f"among known features (these are: {', '.join(known)})"
        )

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class UnknownFormatError(FeatureFactoryError, ValueError):
    """Raised for an output format other than normal, numeric or binary."""

    def __init__(self, fmt: object) -> None:
        self.format = fmt
        super().__init__(
            f"Unknown format: '{fmt}'. Please specify 'normal', 'numeric' or 'binary'"
        )


class MappingError(FeatureFactoryError):
    """Raised when a category mapping is missing or incomplete."""


class MappingStoreError(MappingError, OSError):
    """Raised when the persisted numeric mapping file cannot be used."""
