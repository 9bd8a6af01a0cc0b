"""
Feature evaluation engine.

``FeatureFactory`` evaluates declared features on a sample and formats
their values normally, numerically or as one-hot binary vectors.

Features can be declared by subclassing:

    class WordFeatures(FeatureFactory):
        features = [
            {"name": "no_of_letters", "type": "int", "range": "0 .. 5"},
            {"name": "first_letter", "values": list("abc")},
        ]

        def no_of_letters(self, word):
            return len(word)

        def first_letter(self, word):
            return word[:1]

    with WordFeatures() as f:
        f.evaluate("ALL", "numeric", "bad")    # [3, 2]
        f.evaluate("ALL", "binary", "cab")     # [0, 0, 0, 1, 0, 0, 0, 0, 1]

or by passing ``declarations`` (and ``functions``) to the base class.
"""

import sys
import weakref
from collections.abc import Callable, Mapping, Sequence
from contextlib import ExitStack
from pathlib import Path
from types import TracebackType
from typing import Any, ClassVar

from pydantic import ValidationError

from featurefactory.config.settings import EngineOptions, FactoryConfig, MappingStoreConfig
from featurefactory.errors import DeclarationError, MappingError
from featurefactory.features.descriptors import FeatureDescriptor
from featurefactory.features.kinds import FeatureKind, OutputFormat
from featurefactory.features.registry import FeatureRegistry, build_registry
from featurefactory.features.result import Ok, Result, SkipBatch
from featurefactory.mapping.codecs import (
    BinaryCodec,
    DynamicNumericCodec,
    StaticNumericCodec,
)
from featurefactory.mapping.store import MappingFile
from featurefactory.utils.logging import get_logger

log = get_logger(__name__)

Selector = str | Sequence[str]


class FeatureFactory:
    """
    Registry of features plus the machinery to evaluate and encode them.

    Class attributes (for subclasses):
        features: Ordered feature declarations.
        feature_functions: Named functions, consulted before methods.

    Mapping files opened for dynamic numbering are held until close() is
    called, the ``with`` block exits, or the instance is garbage collected.
    """

    features: ClassVar[Sequence[Mapping[str, Any]]] = ()
    feature_functions: ClassVar[Mapping[str, Callable[..., Any]]] = {}

    def __init__(
        self,
        options: Mapping[str, Any] | EngineOptions | None = None,
        *,
        declarations: Sequence[Mapping[str, Any]] | None = None,
        functions: Mapping[str, Callable[..., Any]] | None = None,
        namespace: Any = None,
        base_dir: Path | None = None,
        mapping_store: MappingStoreConfig | None = None,
    ) -> None:
        """
        Build the feature registry.

        Args:
            options: Engine options; only ``"N/A"`` is recognized.
            declarations: Feature declarations (default: the class's ``features``).
            functions: Extra named functions, merged over ``feature_functions``.
            namespace: Module, object or mapping searched for functions by name.
            base_dir: Directory for relative value files and dotted imports
                (default: the directory of the subclass's module, else cwd).
            mapping_store: Location and identity of dynamic mapping files.

        Raises:
            DeclarationError: If options or declarations are invalid.
            FunctionNotFound: If a feature function can't be resolved.
        """
        cls = type(self)
        self.options = self._parse_options(options)
        self.mapping_store = mapping_store or MappingStoreConfig()
        self.identity = self.mapping_store.identity or f"{cls.__module__}.{cls.__qualname__}"
        self.base_dir = Path(base_dir) if base_dir is not None else self._default_base_dir()

        self._resources = ExitStack()
        self._finalizer = weakref.finalize(self, self._resources.close)

        self.registry: FeatureRegistry = build_registry(
            cls.features if declarations is None else declarations,
            functions={**cls.feature_functions, **(functions or {})},
            namespaces=self._calling_namespaces(namespace),
            base_dir=self.base_dir,
        )

    @classmethod
    def from_config(
        cls,
        config: FactoryConfig,
        *,
        functions: Mapping[str, Callable[..., Any]] | None = None,
        namespace: Any = None,
    ) -> "FeatureFactory":
        """Create a factory from a loaded FactoryConfig."""
        return cls(
            config.options,
            declarations=config.features or None,
            functions=functions,
            namespace=namespace,
            base_dir=config.base_dir,
            mapping_store=config.mapping_store,
        )

    @classmethod
    def _parse_options(cls, options: Any) -> EngineOptions:
        if options is None:
            return EngineOptions()
        if isinstance(options, EngineOptions):
            return options
        if not isinstance(options, Mapping):
            msg = f"The options for {cls.__name__} must be a mapping or nothing, not {type(options).__name__}"
            raise DeclarationError(msg)
        try:
            return EngineOptions.model_validate(dict(options))
        except ValidationError as e:
            msg = f"Unexpected option passed to {cls.__name__}: {e}"
            raise DeclarationError(msg) from e

    def _default_base_dir(self) -> Path:
        module = sys.modules.get(type(self).__module__)
        module_file = getattr(module, "__file__", None)
        if type(self) is not FeatureFactory and module_file:
            return Path(module_file).resolve().parent
        return Path.cwd()

    def _calling_namespaces(self, namespace: Any) -> list[Any]:
        namespaces: list[Any] = []
        cls = type(self)
        if cls is not FeatureFactory:
            own = {}
            for name in dir(cls):
                if name.startswith("_") or hasattr(FeatureFactory, name):
                    continue
                attr = getattr(self, name)
                if callable(attr):
                    own[name] = attr
            namespaces.append(own)
        if namespace is not None:
            namespaces.append(namespace)
        if cls is not FeatureFactory and cls.__module__ in sys.modules:
            namespaces.append(sys.modules[cls.__module__])
        return namespaces

    @property
    def na(self) -> str | None:
        """Substitute emitted for features that return None."""
        return self.options.na

    def feature_names(self) -> list[str]:
        """Names of all features in declaration order."""
        return self.registry.list_features()

    def evaluate(self, selector: Selector, fmt: str | OutputFormat, *args: Any) -> list[Any]:
        """
        Evaluate features on one sample.

        Args:
            selector: ``"ALL"``, one feature name, or a sequence of names.
            fmt: ``"normal"``, ``"numeric"`` or ``"binary"``.
            *args: Arguments passed to every feature function.

        Returns:
            The formatted values, concatenated in selection order. Empty if
            some feature returned an unacceptable value; the reason is
            logged as a warning.

        Raises:
            UnknownFeatureError: If a selected feature isn't declared.
            UnknownFormatError: If ``fmt`` isn't a known format.
            MappingError: If a value can't be encoded.
        """
        result = self.evaluate_result(selector, fmt, *args)
        if isinstance(result, SkipBatch):
            log.warning("Skipping sample", feature=result.feature, reason=result.reason)
            return []
        return result.value

    def evaluate_result(
        self, selector: Selector, fmt: str | OutputFormat, *args: Any
    ) -> Result[list[Any]]:
        """Like evaluate(), but return Ok(values) or SkipBatch(reason)."""
        requested = OutputFormat.parse(fmt)
        descriptors = self.registry.select(selector)
        for descriptor in descriptors:
            self._materialize(descriptor, descriptor.effective_format(requested))

        if not args:
            log.warning("No arguments specified for the features")

        values: list[Any] = []
        for descriptor in descriptors:
            effective = descriptor.effective_format(requested)
            raw = descriptor.evaluator(*args)

            if raw is None and self.na is not None:
                values.extend(self._na_values(descriptor, effective))
                continue

            checked = descriptor.validate(raw)
            if isinstance(checked, SkipBatch):
                return checked
            values.extend(self._format_value(descriptor, checked.value, effective))
        return Ok(values)

    def _na_values(self, descriptor: FeatureDescriptor, fmt: OutputFormat) -> list[Any]:
        if fmt is not OutputFormat.BINARY or descriptor.kind is FeatureKind.BOOLEAN:
            return [self.na]
        codec = descriptor.binary_codec
        if codec is None or codec.width == 0:
            msg = (
                f"Couldn't determine the length of bit vector for feature "
                f"'{descriptor.name}', which was about to be evaluated in binary "
                "and returned None"
            )
            raise MappingError(msg)
        return [self.na] * codec.width

    def _format_value(
        self, descriptor: FeatureDescriptor, value: Any, fmt: OutputFormat
    ) -> list[Any]:
        if fmt is OutputFormat.NORMAL:
            if descriptor.postprocess is not None:
                value = descriptor.postprocess(value)
            return [value]

        if fmt is OutputFormat.NUMERIC:
            if descriptor.kind is not FeatureKind.CATEGORICAL:
                return [value]
            if descriptor.numeric_codec is None:
                msg = f"No numeric mapping was created for feature '{descriptor.name}'"
                raise MappingError(msg)
            return [descriptor.numeric_codec.encode(value)]

        if descriptor.kind is FeatureKind.BOOLEAN:
            return [value]
        if descriptor.binary_codec is None:
            msg = f"No binary mapping was created for feature '{descriptor.name}'"
            raise MappingError(msg)
        return descriptor.binary_codec.encode(value)

    def _materialize(self, descriptor: FeatureDescriptor, fmt: OutputFormat) -> None:
        """Create the mapping ``fmt`` needs for this feature, once."""
        if fmt is OutputFormat.NUMERIC:
            if descriptor.kind is not FeatureKind.CATEGORICAL or descriptor.numeric_codec is not None:
                return
            category_numbers = getattr(descriptor, "category_numbers", None)
            if category_numbers is not None:
                descriptor.numeric_codec = StaticNumericCodec(descriptor.name, category_numbers)
            elif descriptor.values is not None:
                descriptor.numeric_codec = StaticNumericCodec.from_values(
                    descriptor.name, descriptor.domain()
                )
            else:
                log.warning(
                    "Categorical feature is about to be evaluated numerically "
                    "but has no set of values specified",
                    feature=descriptor.name,
                )
                store = MappingFile.open(self.identity, descriptor.name, self.mapping_store)
                self._resources.enter_context(store)
                descriptor.numeric_codec = DynamicNumericCodec(descriptor.name, store)

        elif fmt is OutputFormat.BINARY:
            if descriptor.kind is FeatureKind.BOOLEAN or descriptor.binary_codec is not None:
                return
            if descriptor.values is None:
                msg = (
                    f"Attempted to convert feature '{descriptor.name}' to binary "
                    "without specifying its values"
                )
                raise MappingError(msg)
            descriptor.binary_codec = BinaryCodec(descriptor.name, descriptor.domain())

    def decode(self, name: str, encoded: Any, fmt: str | OutputFormat = OutputFormat.NUMERIC) -> Any:
        """
        Recover a feature value from its numeric or binary encoding.

        Args:
            name: Feature name.
            encoded: A number (numeric) or a one-hot sequence (binary).
            fmt: Format the value was produced in.

        Returns:
            The category. Dynamically numbered categories come back as the
            strings they were stored as.

        Raises:
            MappingError: If ``encoded`` isn't a code of the feature.
        """
        descriptor = self.registry.get(name)
        effective = descriptor.effective_format(OutputFormat.parse(fmt))
        if effective is OutputFormat.NORMAL or descriptor.kind is FeatureKind.BOOLEAN:
            return encoded
        if effective is OutputFormat.NUMERIC and descriptor.kind is not FeatureKind.CATEGORICAL:
            return encoded

        self._materialize(descriptor, effective)
        if effective is OutputFormat.NUMERIC:
            return descriptor.numeric_codec.decode(encoded)
        return descriptor.binary_codec.decode(encoded)

    def column_names(
        self, selector: Selector = "ALL", fmt: str | OutputFormat = OutputFormat.NORMAL
    ) -> list[str]:
        """
        Label every position evaluate() would return.

        One-hot positions are labelled ``"<feature>=<category>"``.
        """
        requested = OutputFormat.parse(fmt)
        names: list[str] = []
        for descriptor in self.registry.select(selector):
            effective = descriptor.effective_format(requested)
            self._materialize(descriptor, effective)
            if effective is OutputFormat.BINARY and descriptor.kind is not FeatureKind.BOOLEAN:
                names.extend(f"{descriptor.name}={c}" for c in descriptor.binary_codec.categories)
            else:
                names.append(descriptor.name)
        return names

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def close(self) -> None:
        """Release all open mapping files. Safe to call more than once."""
        self._finalizer()

    def __enter__(self) -> "FeatureFactory":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
