"""
Featurefactory: evaluate features normally, numerically or as binary vectors.

Features are named functions deriving one value from a data sample. The
package validates their declarations, checks returned values against
declared values or ranges, and encodes them as numbers or one-hot
vectors for statistical and machine-learning models.

Categorical features evaluated numerically without declared values are
numbered on the fly and the numbering is saved to a mapping file. These
files are not locked: processes sharing one must not grow it at the
same time.
"""

from importlib.metadata import version

from featurefactory.config import EngineOptions, MappingStoreConfig
from featurefactory.errors import (
    DeclarationError,
    FeatureFactoryError,
    FunctionNotFound,
    MappingError,
    MappingStoreError,
    UnknownFeatureError,
    UnknownFormatError,
)
from featurefactory.features import FeatureFactory, OutputFormat, evaluate_frame

__version__ = version("featurefactory")

__all__ = [
    "DeclarationError",
    "EngineOptions",
    "FeatureFactory",
    "FeatureFactoryError",
    "FunctionNotFound",
    "MappingError",
    "MappingStoreConfig",
    "MappingStoreError",
    "OutputFormat",
    "UnknownFeatureError",
    "UnknownFormatError",
    "__version__",
    "evaluate_frame",
]
