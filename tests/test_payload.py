"""Tests for build_tracker_payload and its grid / time-space helpers."""

import datetime as dt

import pytest

from backend.models.clock import Clock
from backend.models.session import SessionState
from backend.models.timetable import Timetable
from backend.services.plot_data import (
    build_grid,
    build_plot_series,
    build_tracker_payload,
    service_labels,
)
from backend.services.timetable_service import load_timetable_content


def _make_timetable(trains=None) -> Timetable:
    if trains is None:
        trains = [
            {"trainNumber": "DMU1", "direction": "southbound", "stops": [
                {"station": "A", "departure": "10:00"},
                {"station": "B", "arrival": "10:20", "departure": "10:25"},
                {"station": "C", "arrival": "10:40"},
            ]},
            {"trainNumber": "DMU1", "direction": "northbound", "stops": [
                {"station": "C", "departure": "11:00"},
                {"station": "B", "time": "11:15", "stopsAt": False},
                {"station": "A", "arrival": "11:30"},
            ]},
        ]
    return Timetable.model_validate({"name": "Test day", "date": "18 October", "trains": trains})


def _make_session(minutes: int, timetable: Timetable = None) -> SessionState:
    session = SessionState(clock=Clock(live=False, manual_minutes=minutes,
                                       now_fn=lambda: dt.datetime(2025, 10, 18, 3, 0)))
    load_timetable_content((timetable or _make_timetable()).model_dump_json(by_alias=True), session)
    return session


class TestTrackerPayload:
    def test_empty_when_nothing_loaded(self):
        session = SessionState(clock=Clock(live=False, manual_minutes=75))
        payload = build_tracker_payload(session)
        assert payload["time"] == "01:15"
        assert payload["timetable"] is None
        assert payload["statuses"] == []
        assert payload["layout"] == []

    def test_payload_for_moving_train(self):
        payload = build_tracker_payload(_make_session(610))
        assert payload["time"] == "10:10"
        assert payload["minutes"] == 610
        assert not payload["live"]
        assert payload["timetable"] == {"name": "Test day", "date": "18 October"}
        assert payload["stations"] == ["A", "B", "C"]
        assert payload["statuses"] == [{
            "train_number": "DMU1",
            "direction": "southbound",
            "color": "#ff6b6b",
            "text": "Traveling from A (departed 10:00) → B (arriving 10:20 in 10 minutes)",
        }]
        assert payload["positions"] == [{"train": "DMU1", "direction": "southbound", "y": 0.5}]
        track = payload["layout"][1]
        assert track["type"] == "track"
        assert track["trains"][0]["percentage"] == 50.0

    def test_unit_idles_between_workings(self):
        payload = build_tracker_payload(_make_session(650))
        assert payload["statuses"][0]["text"] == (
            "Waiting at C, next departure at 11:00 (departing in 10 minutes)"
        )
        assert payload["positions"][0]["y"] == 2.0

    def test_nothing_active_late_evening(self):
        payload = build_tracker_payload(_make_session(22 * 60))
        assert payload["statuses"] == []
        assert payload["positions"] == []
        # the timetable itself is still shown
        assert len(payload["plot_series"]) == 2
        assert len(payload["grid_rows"]) == 4

    def test_live_clock_read_once(self):
        calls = []

        def now_fn():
            calls.append(1)
            return dt.datetime(2025, 10, 18, 10, 10)

        session = _make_session(0)
        session.clock = Clock(now_fn=now_fn)
        payload = build_tracker_payload(session)
        assert payload["time"] == "10:10"
        assert len(calls) == 1


class TestServiceLabels:
    def test_repeated_numbers_are_suffixed(self):
        assert service_labels(_make_timetable()) == ["DMU1", "DMU1 (2)"]


class TestPlotSeries:
    def test_points_and_range(self):
        tt = _make_timetable()
        series, x_min, x_max = build_plot_series(tt, ["A", "B", "C"])
        assert [s["name"] for s in series] == ["DMU1", "DMU1 (2)"]
        out = series[0]["points"]
        # dwell at B gives two points
        assert [p["value"] for p in out] == [[600, 0], [620, 1], [625, 1], [640, 2]]
        back = series[1]["points"]
        assert back[1] == {"value": [675, 1], "station": "B", "train": "DMU1", "stopsAt": False}
        assert x_min == 540
        assert x_max == 720

    def test_range_clamped_to_day(self):
        tt = _make_timetable([{"trainNumber": "1", "direction": "southbound", "stops": [
            {"station": "A", "departure": "00:20"}, {"station": "B", "arrival": "23:50"},
        ]}])
        _, x_min, x_max = build_plot_series(tt, ["A", "B"])
        assert (x_min, x_max) == (0, 1440)

    def test_unknown_station_skipped(self):
        tt = _make_timetable([{"trainNumber": "1", "direction": "southbound", "stops": [
            {"station": "A", "departure": "10:00"}, {"station": "Z", "arrival": "10:30"},
        ]}])
        series, _, _ = build_plot_series(tt, ["A"])
        assert len(series[0]["points"]) == 1


class TestGrid:
    def test_dwell_station_gets_arr_dep_rows(self):
        rows, cols = build_grid(_make_timetable(), ["A", "B", "C"])
        assert [r["station"] for r in rows] == ["A", "B (arr)", "B (dep)", "C"]
        assert [c["field"] for c in cols] == ["station", "DMU1", "DMU1 (2)"]

    def test_cells(self):
        rows, _ = build_grid(_make_timetable(), ["A", "B", "C"])
        by_station = {r["station"]: r for r in rows}
        assert by_station["A"]["DMU1"] == "10:00"
        assert by_station["A"]["DMU1 (2)"] == "11:30"
        assert by_station["B (arr)"]["DMU1"] == "10:20"
        assert by_station["B (dep)"]["DMU1"] == "10:25"
        assert by_station["B (arr)"]["DMU1 (2)"] == "11:15 (pass)"
        assert by_station["C"]["DMU1 (2)"] == "11:00"

    @pytest.mark.parametrize("station", ["A", "C"])
    def test_row_metadata(self, station):
        rows, _ = build_grid(_make_timetable(), ["A", "B", "C"])
        row = next(r for r in rows if r["station"] == station)
        assert row["_station_raw"] == station
        assert row["_slot"] is None
