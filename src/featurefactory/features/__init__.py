"""
Feature registry and encoding engine.

Features are declared as plain records, validated into typed descriptors
and evaluated through FeatureFactory.
"""

from featurefactory.features.descriptors import (
    BooleanFeature,
    CategoricalFeature,
    FeatureDescriptor,
    IntegerFeature,
    NumericFeature,
)
from featurefactory.features.engine import FeatureFactory
from featurefactory.features.frame import evaluate_frame
from featurefactory.features.kinds import FeatureKind, OutputFormat
from featurefactory.features.registry import ALL, FeatureRegistry, build_registry
from featurefactory.features.result import Ok, Result, SkipBatch

__all__ = [
    "ALL",
    "BooleanFeature",
    "CategoricalFeature",
    "FeatureDescriptor",
    "FeatureFactory",
    "FeatureKind",
    "FeatureRegistry",
    "IntegerFeature",
    "NumericFeature",
    "Ok",
    "OutputFormat",
    "Result",
    "SkipBatch",
    "build_registry",
    "evaluate_frame",
]
