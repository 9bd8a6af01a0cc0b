"""Basic package tests to verify installation."""


def test_package_imports() -> None:
    """Verify the main package can be imported."""
    import featurefactory

    assert featurefactory.__version__


def test_config_module_imports() -> None:
    """Verify config module structure is correct."""
    from featurefactory.config import (
        EngineOptions,
        FactoryConfig,
        MappingStoreConfig,
        load_factory_config,
    )

    assert EngineOptions is not None
    assert FactoryConfig is not None
    assert MappingStoreConfig is not None
    assert load_factory_config is not None


def test_features_module_imports() -> None:
    """Verify features module structure is correct."""
    from featurefactory.features import (
        ALL,
        FeatureFactory,
        FeatureKind,
        FeatureRegistry,
        Ok,
        OutputFormat,
        SkipBatch,
        build_registry,
        evaluate_frame,
    )

    assert ALL == "ALL"
    assert FeatureFactory is not None
    assert FeatureRegistry is not None
    assert build_registry is not None
    assert evaluate_frame is not None
    assert {k.value for k in FeatureKind} == {"boolean", "integer", "numeric", "categorical"}
    assert {f.value for f in OutputFormat} == {"normal", "numeric", "binary"}
    assert Ok([1]) and not SkipBatch("reason")


def test_error_hierarchy() -> None:
    """Hard failures share a base class and keep builtin compatibility."""
    from featurefactory.errors import (
        DeclarationError,
        FeatureFactoryError,
        FunctionNotFound,
        MappingError,
        MappingStoreError,
        UnknownFeatureError,
        UnknownFormatError,
    )

    assert issubclass(FunctionNotFound, DeclarationError)
    assert issubclass(DeclarationError, ValueError)
    assert issubclass(UnknownFeatureError, KeyError)
    assert issubclass(UnknownFormatError, ValueError)
    assert issubclass(MappingStoreError, MappingError)
    assert issubclass(MappingStoreError, OSError)
    for error in (DeclarationError, UnknownFeatureError, UnknownFormatError, MappingError):
        assert issubclass(error, FeatureFactoryError)
