from __future__ import annotations

import unittest
from unittest import mock

from luvatrix_series import (
    DataSeriesDatum,
    FilledValue,
    FilledValues,
    FitConfig,
    FitFunction,
    FullDataSeriesDatum,
    InvalidDomainError,
    SeriesConfig,
    UnknownFitStrategyError,
    compute_series,
    compute_series_group,
    fit_series_group,
    refit_series,
)
from luvatrix_series.mocks import MockDataSeries, MockDataSeriesDatum, MockRawDataSeries, MockRawDataSeriesDatum


def _fitted(series) -> list[tuple[object, object, object, object]]:
    return [(d.x, d.y0, d.y1, d.mark) for d in series.data]


class SeriesEngineTests(unittest.TestCase):
    def test_full_datums_exclude_unresolved_leading_gap(self) -> None:
        raw = MockRawDataSeries.default(
            data=[{"x": 1, "y1": None}, {"x": 2, "y1": 5.0}, {"x": 3, "y1": None}]
        )
        series = fit_series_group([raw], fit="carry").series[0]
        full = series.full_data
        self.assertEqual([d.x for d in full], [2, 3])
        self.assertEqual(full[1].y1, 5.0)
        self.assertEqual(full[1].fitting_index, 1)
        self.assertEqual(full[0].fitting_index, 1)
        self.assertNotIsInstance(series.data[0], FullDataSeriesDatum)
        self.assertIsNone(series.data[0].y1)
        self.assertFalse(series.is_empty)

    def test_fixture_carry_matches_expected_values(self) -> None:
        series = fit_series_group([MockRawDataSeries.fit_function(shuffle=False)], fit="carry").series[0]
        self.assertEqual(
            [d.y1 for d in series.data],
            [None, 3.0, 5.0, 5.0, 4.0, 4.0, 4.0, 12.0, 10.0, 10.0, 7.0, 8.0, 8.0],
        )

    def test_shuffled_continuous_input_fits_like_ordered_input(self) -> None:
        ordered = fit_series_group([MockRawDataSeries.fit_function(shuffle=False)], fit="linear")
        shuffled = fit_series_group([MockRawDataSeries.fit_function(shuffle=True)], fit="linear")
        self.assertEqual(_fitted(ordered.series[0]), _fitted(shuffled.series[0]))

    def test_ordinal_fixture_keeps_letter_order(self) -> None:
        raw = MockRawDataSeries.fit_function(ordinal=True)
        result = fit_series_group([raw], fit="lookahead", x_scale_type="ordinal")
        self.assertEqual(result.domain.values[:3], ("a", "b", "c"))
        self.assertEqual(result.series[0].data[0].y1, 3.0)

    def test_provenance_of_filled_and_original_values(self) -> None:
        raw = MockRawDataSeries.fit_function(shuffle=False)
        series = fit_series_group([raw], fit="average").series[0]
        for datum in series.data:
            if datum.filled is not None and datum.filled.y1 is not None:
                self.assertIsNone(datum.initial_y1)
                self.assertIsNotNone(datum.y1)
                self.assertEqual(datum.filled.y1.strategy, "average")
            elif datum.initial_y1 is not None:
                self.assertEqual(datum.initial_y1, datum.y1)

    def test_filled_datum_keeps_original_record(self) -> None:
        raw = MockRawDataSeries.default(data=[{"x": 1, "y1": 1.0, "datum": {"id": 1}}, {"x": 2, "y1": None, "datum": {"id": 2}}])
        datum = fit_series_group([raw], fit="carry").series[0].data[1]
        self.assertEqual(datum.datum, {"id": 2})
        self.assertEqual(datum.filled.y1, FilledValue(strategy="carry", donor=0))
        self.assertFalse(datum.filled.x)

    def test_absent_positions_have_no_source_record(self) -> None:
        raws = MockRawDataSeries.from_data([[{"x": 1, "y1": 1.0}, {"x": 3, "y1": 3.0}], [{"x": 2, "y1": 2.0}]])
        series = fit_series_group(raws, fit="linear").series[0]
        gap = series.data[1]
        self.assertIsInstance(gap, FullDataSeriesDatum)
        self.assertEqual(gap.y1, 2.0)
        self.assertIsNone(gap.datum)
        self.assertIsNone(gap.initial_y1)
        self.assertTrue(gap.filled.x)

    def test_absent_only_gap_selector_skips_reported_nulls(self) -> None:
        raws = MockRawDataSeries.from_data(
            [[{"x": 1, "y1": 1.0}, {"x": 2, "y1": None}, {"x": 4, "y1": 4.0}], [{"x": 3, "y1": 0.0}]]
        )
        fit = FitFunction("carry", gaps="absent")
        series = fit_series_group(raws, fit=fit).series[0]
        self.assertEqual([d.y1 for d in series.data], [1.0, None, 1.0, 4.0])

    def test_series_with_no_full_datums_is_kept_and_flagged(self) -> None:
        raws = MockRawDataSeries.from_data([[{"x": 1, "y1": None}], [{"x": 1, "y1": 2.0}]])
        result = fit_series_group(raws, fit="linear")
        self.assertEqual(len(result.series), 2)
        self.assertTrue(result.series[0].is_empty)
        self.assertEqual(result.non_empty, (result.series[1],))

    def test_metadata_preserved(self) -> None:
        raw = MockRawDataSeries.default(
            spec_id="cpu", key="cpu___y___a", series_keys=("a",), split_accessors={"host": "a"}, data=[{"x": 1}]
        )
        series = fit_series_group([raw]).series[0]
        self.assertEqual(
            (series.spec_id, series.key, series.series_keys, dict(series.split_accessors)),
            ("cpu", "cpu___y___a", ("a",), {"host": "a"}),
        )

    def test_channels_fit_independently_with_overrides(self) -> None:
        raw = MockRawDataSeries.default(
            data=[
                {"x": 1, "y1": 1.0, "y0": 0.5, "mark": 2.0},
                {"x": 2, "y1": None, "y0": None, "mark": None},
                {"x": 3, "y1": 3.0, "y0": 1.5, "mark": 4.0},
            ],
            has_y0=True,
            has_mark=True,
        )
        fit = FitConfig(default=FitFunction("linear"), overrides={"y0": FitFunction("zero")})
        datum = fit_series_group([raw], fit=fit).series[0].data[1]
        self.assertEqual((datum.y1, datum.y0, datum.mark), (2.0, 0.0, 3.0))
        self.assertEqual(datum.filled.y0, FilledValue(strategy="zero", donor=None))
        self.assertEqual(datum.filled.mark.strategy, "linear")

    def test_unknown_strategy_fails_before_data_is_touched(self) -> None:
        raw = MockRawDataSeries.fit_function()
        with mock.patch("luvatrix_series.engine.compute_x_domain") as domain:
            with self.assertRaises(UnknownFitStrategyError):
                fit_series_group([raw], fit="bogus")
        domain.assert_not_called()

    def test_refit_with_none_is_a_fixed_point(self) -> None:
        raws = MockRawDataSeries.from_data(
            [
                [{"x": 1, "y1": None}, {"x": 2, "y1": 4.0}, {"x": 5, "y1": 10.0}],
                [{"x": 3, "y1": 1.0}, {"x": 4, "y1": None}],
            ]
        )
        once = fit_series_group(raws, fit="linear")
        twice = refit_series(once.series, fit="none")
        self.assertEqual(twice.domain, once.domain)
        for first, second in zip(once.series, twice.series, strict=True):
            self.assertEqual(_fitted(first), _fitted(second))
            self.assertEqual(len(first.full_data), len(second.full_data))

    def test_input_raw_series_not_mutated(self) -> None:
        raw = MockRawDataSeries.fit_function(shuffle=False)
        before = raw.data
        fit_series_group([raw], fit="zero")
        self.assertEqual(raw.data, before)
        self.assertIsNone(raw.data[0].y1)

    def test_compute_series_end_to_end(self) -> None:
        records = [
            {"t": 1, "v": 1.0, "host": "a"},
            {"t": 3, "v": 3.0, "host": "a"},
            {"t": 2, "v": 5.0, "host": "b"},
            {"v": 9.0, "host": "b"},
        ]
        config = SeriesConfig(
            spec_id="cpu",
            x_accessor="t",
            y_accessors=("v",),
            split_accessors=("host",),
            fit=FitFunction("linear"),
        )
        result = compute_series(records, config)
        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.domain.values, (1, 2, 3))
        by_key = result.by_key()
        self.assertEqual([d.y1 for d in by_key["cpu___v___a"].data], [1.0, 2.0, 3.0])
        self.assertEqual([d.y1 for d in by_key["cpu___v___b"].data], [None, 5.0, None])

    def test_compute_series_is_deterministic(self) -> None:
        records = [{"x": "b", "y": 1}, {"x": "a", "y": None}, {"x": "c", "y": 3}]
        config = SeriesConfig(spec_id="s", x_scale_type="ordinal", fit=FitFunction("average"))
        self.assertEqual(compute_series(records, config), compute_series(records, config))

    def test_compute_series_group_shares_one_axis(self) -> None:
        left = SeriesConfig(spec_id="a", fit=FitFunction("carry"))
        right = SeriesConfig(spec_id="b", fit=FitFunction("zero"))
        result = compute_series_group(
            [([{"x": 1, "y": 1}, {"x": 3, "y": 3}], left), ([{"x": 2, "y": 2}], right)]
        )
        self.assertEqual(result.domain.values, (1, 2, 3))
        self.assertEqual([d.y1 for d in result.series[0].data], [1.0, 1.0, 3.0])
        self.assertEqual([d.y1 for d in result.series[1].data], [0.0, 2.0, 0.0])
        for series in result.series:
            self.assertEqual([(d.y0, d.mark) for d in series.data], [(None, None)] * 3)
            for datum in series.data:
                if datum.filled is not None:
                    self.assertIsNone(datum.filled.y0)
                    self.assertIsNone(datum.filled.mark)
        self.assertEqual(
            [d.filled for d in result.series[1].data],
            [
                FilledValues(x=True, y1=FilledValue(strategy="zero")),
                None,
                FilledValues(x=True, y1=FilledValue(strategy="zero")),
            ],
        )

    def test_compute_series_group_rejects_mixed_scale_kinds(self) -> None:
        specs = [([{"x": 1, "y": 1}], SeriesConfig(spec_id="a")), ([{"x": "a", "y": 1}], SeriesConfig(spec_id="b", x_scale_type="ordinal"))]
        with self.assertRaises(InvalidDomainError):
            compute_series_group(specs)

    def test_mock_builders_match_assembled_shape(self) -> None:
        raw = MockRawDataSeries.default(data=[{"x": 1, "y1": 1.0, "datum": {"x": 1, "y1": 1.0, "y0": None}}])
        datum = fit_series_group([raw]).series[0].data[0]
        self.assertEqual(datum, MockDataSeriesDatum.full(x=1, y1=1.0, fitting_index=0))
        self.assertIsInstance(MockDataSeriesDatum.simple(x=1), DataSeriesDatum)
        self.assertEqual(MockRawDataSeriesDatum.simple(x=2).y1, None)

    def test_undeclared_channels_are_never_filled(self) -> None:
        records = [{"x": 1, "y": 1}, {"x": 2, "y": None}, {"x": 3, "y": 3}]
        cases = [
            (FitFunction("zero"), None),
            (FitFunction("explicit", value=5), None),
            (FitFunction("carry", end_value=0.0), 0),
        ]
        for fit, donor in cases:
            with self.subTest(fit=fit):
                series = compute_series(records, SeriesConfig(spec_id="s", fit=fit)).series[0]
                self.assertEqual([(d.y0, d.mark) for d in series.data], [(None, None)] * 3)
                self.assertIsNone(series.data[0].filled)
                self.assertIsNone(series.data[2].filled)
                self.assertEqual(series.data[1].filled, FilledValues(y1=FilledValue(strategy=fit.type, donor=donor)))

    def test_explicit_fill_leaves_plain_series_unbanded(self) -> None:
        records = [{"x": 1, "y": 1}, {"x": 2, "y": None}, {"x": 3, "y": 3}]
        series = compute_series(records, SeriesConfig(spec_id="s", fit=FitFunction("explicit", value=5))).series[0]
        self.assertEqual([d.y1 for d in series.data], [1.0, 5.0, 3.0])
        self.assertEqual(series.data[1].filled, FilledValues(y1=FilledValue(strategy="explicit")))

    def test_declared_y0_and_mark_are_filled(self) -> None:
        records = [{"x": 1, "hi": 4, "lo": 1, "size": 2}, {"x": 2, "hi": None, "lo": None, "size": None}]
        config = SeriesConfig(
            spec_id="band",
            y_accessors=("hi",),
            y0_accessors=("lo",),
            mark_accessor="size",
            fit=FitFunction("zero"),
        )
        datum = compute_series(records, config).series[0].data[1]
        self.assertEqual((datum.y1, datum.y0, datum.mark), (0.0, 0.0, 0.0))
        self.assertEqual(datum.filled.y0, FilledValue(strategy="zero"))
        self.assertEqual(datum.filled.mark, FilledValue(strategy="zero"))

    def test_refit_keeps_declared_channels(self) -> None:
        records = [{"x": 1, "y": None}, {"x": 2, "y": 2}]
        once = compute_series(records, SeriesConfig(spec_id="s"))
        twice = refit_series(once.series, fit="zero")
        self.assertEqual([(d.y0, d.y1, d.mark) for d in twice.series[0].data], [(None, 0.0, None), (None, 2.0, None)])

    def test_same_named_callable_accessors_fit_as_separate_series(self) -> None:
        records = [{"x": 1, "a": 1, "b": 10}, {"x": 2, "a": None, "b": 20}, {"x": 3, "a": 3, "b": None}]
        config = SeriesConfig(spec_id="s", y_accessors=(lambda r: r["a"], lambda r: r["b"]), fit=FitFunction("carry"))
        result = compute_series(records, config)
        self.assertEqual(len(result.series), 2)
        by_key = result.by_key()
        self.assertEqual([d.y1 for d in by_key["s___<lambda>#0___"].data], [1.0, 1.0, 3.0])
        self.assertEqual([d.y1 for d in by_key["s___<lambda>#1___"].data], [10.0, 20.0, 20.0])

    def test_mock_data_series_fit_function_fixture(self) -> None:
        ordered = MockDataSeries.fit_function(shuffle=False)
        self.assertEqual([d.x for d in ordered.data], list(range(13)))
        self.assertEqual(ordered.data[1], MockDataSeriesDatum.simple(x=1, y1=3.0))
        self.assertFalse(ordered.is_empty)
        shuffled = MockDataSeries.fit_function()
        self.assertEqual(sorted(d.x for d in shuffled.data), list(range(13)))
        ordinal = MockDataSeries.fit_function(ordinal=True)
        self.assertEqual([d.x for d in ordinal.data[:3]], ["a", "b", "c"])

    def test_mock_random_datums_are_simple(self) -> None:
        series = MockDataSeries.random(count=4, include_mark=True)
        self.assertEqual(len(series.data), 4)
        for datum in series.data:
            self.assertNotIsInstance(datum, FullDataSeriesDatum)
            self.assertEqual(datum.initial_y1, datum.y1)
            self.assertIsNotNone(datum.mark)
        self.assertTrue(series.has_mark)
        self.assertEqual(MockDataSeries.random(count=4), MockDataSeries.random(count=4))


if __name__ == "__main__":
    unittest.main()
