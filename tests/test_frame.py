"""Tests for batch evaluation into DataFrames."""

import pandas as pd
import pytest
from structlog.contextvars import get_contextvars
from structlog.testing import capture_logs

from featurefactory.features import evaluate_frame
from featurefactory.utils.logging import log_context


class TestEvaluateFrame:
    """Tests for evaluate_frame."""

    def test_numeric_rows(self, make_factory, word_declarations) -> None:
        factory = make_factory(word_declarations)

        df = evaluate_frame(factory, ["bad", "cab", "a"])

        assert list(df.columns) == ["length", "first_char"]
        assert df.to_numpy().tolist() == [[3, 2], [3, 3], [1, 1]]
        assert list(df.index) == [0, 1, 2]

    def test_rejected_samples_left_out(self, make_factory, word_declarations) -> None:
        factory = make_factory(word_declarations)

        with capture_logs() as logs:
            df = evaluate_frame(factory, ["bad", "xyz", "toolong", "cab"], fmt="normal")

        assert list(df.index) == [0, 3]
        assert df["first_char"].tolist() == ["b", "c"]
        summary = [entry for entry in logs if entry["log_level"] == "warning"]
        assert summary[-1]["skipped"] == 2
        assert summary[-1]["kept"] == 2

    def test_binary_columns(self, make_factory) -> None:
        factory = make_factory([{"name": "first_char", "values": ["a", "b", "c"]}])

        df = evaluate_frame(factory, ["a", "c"], fmt="binary")

        assert list(df.columns) == ["first_char=a", "first_char=b", "first_char=c"]
        assert df.loc[1].tolist() == [0, 0, 1]

    def test_unpacked_samples(self, make_factory) -> None:
        factory = make_factory([{"name": "total", "type": "num", "code": lambda a, b: a + b}])

        df = evaluate_frame(factory, [(1, 2), (0.5, 0.25)], unpack=True)

        assert df["total"].tolist() == pytest.approx([3, 0.75])

    def test_no_samples(self, make_factory, word_declarations) -> None:
        factory = make_factory(word_declarations)

        df = evaluate_frame(factory, [])

        assert isinstance(df, pd.DataFrame)
        assert df.empty
        assert list(df.columns) == ["length", "first_char"]

    def test_position_bound_while_evaluating(self, make_factory) -> None:
        """Logs emitted during a sample's evaluation carry its position."""
        positions: list[int | None] = []

        def first_char(word: str) -> str:
            positions.append(get_contextvars().get("position"))
            return word[:1]

        factory = make_factory([{"name": "first_char", "values": ["a", "b"], "code": first_char}])

        evaluate_frame(factory, ["a", "zz", "b"], fmt="normal")

        assert positions == [0, 1, 2]
        assert "position" not in get_contextvars()

    def test_log_context(self) -> None:
        with log_context(record=42):
            assert get_contextvars()["record"] == 42
        assert "record" not in get_contextvars()
