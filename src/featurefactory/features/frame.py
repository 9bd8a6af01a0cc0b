"""
Batch evaluation into a DataFrame.

Each sample becomes one row; samples that some feature rejects are left
out, which is what makes soft failures convenient for batch pipelines.
"""

from collections.abc import Iterable
from typing import Any

import pandas as pd

from featurefactory.features.engine import FeatureFactory, Selector
from featurefactory.features.kinds import OutputFormat
from featurefactory.features.result import SkipBatch
from featurefactory.utils.logging import get_logger, log_context

log = get_logger(__name__)


def evaluate_frame(
    factory: FeatureFactory,
    samples: Iterable[Any],
    selector: Selector = "ALL",
    fmt: str | OutputFormat = OutputFormat.NUMERIC,
    *,
    unpack: bool = False,
) -> pd.DataFrame:
    """
    Evaluate features on many samples.

    Args:
        factory: Factory holding the features.
        samples: Samples, each passed as the single argument of every
            feature function (or as ``*sample`` when ``unpack`` is set).
        selector: Features to evaluate (see FeatureFactory.evaluate).
        fmt: Output format.
        unpack: Treat each sample as a tuple of arguments.

    Returns:
        DataFrame with one column per output position (see
        FeatureFactory.column_names), indexed by the position of each
        accepted sample in ``samples``.
    """
    columns = factory.column_names(selector, fmt)
    rows: list[list[Any]] = []
    index: list[int] = []
    skipped = 0

    for position, sample in enumerate(samples):
        args = tuple(sample) if unpack else (sample,)
        with log_context(position=position):
            result = factory.evaluate_result(selector, fmt, *args)
            if isinstance(result, SkipBatch):
                skipped += 1
                log.debug("Skipping sample", reason=result.reason)
                continue
        rows.append(result.value)
        index.append(position)

    if skipped:
        log.warning("Skipped samples with unexpected values", skipped=skipped, kept=len(rows))

    return pd.DataFrame(rows, columns=columns, index=pd.Index(index, dtype="int64"))
