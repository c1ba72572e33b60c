from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.weather import CloudLayer, MetarDecodeError, Phenomenon, Wind, WindVariation, decode_metar

NOW = datetime(2024, 3, 20, 12, 0, tzinfo=timezone.utc)


def _codes(report) -> list[list[str]]:
    return [[p.code for p in group] for group in report.weather]


def test_decode_full_report_leaves_trailing_groups() -> None:
    report = decode_metar("EFHK 151050Z 18015G25KT 180V240 9999 FEW020 BKN035 22/15 Q1012", now=NOW)

    assert report.station == "EFHK"
    assert report.time == datetime(2024, 3, 15, 10, 50, 0, tzinfo=timezone.utc)
    assert report.auto is False
    assert report.wind == Wind(
        direction=180, speed=15, gust=25, unit="KT", variation=WindVariation(min=180, max=240)
    )
    assert report.cavok is False
    assert report.visibility == 9999
    assert report.statute_visibility is None
    assert report.weather == []
    assert report.clouds == [
        CloudLayer(code="FEW", meaning="few", altitude=2000, cumulonimbus=False),
        CloudLayer(code="BKN", meaning="broken", altitude=3500, cumulonimbus=False),
    ]


def test_variable_wind_without_gust() -> None:
    report = decode_metar("LSMP 171720Z VRB05KT 9999 OVC007", now=NOW)
    assert report.wind.direction == "VRB"
    assert report.wind.speed == 5
    assert report.wind.gust is None
    assert report.wind.unit == "KT"
    assert report.wind.variation is True


def test_variable_wind_bounds_override_vrb_flag() -> None:
    report = decode_metar("LSMP 171720Z VRB03KT 120V200 9999", now=NOW)
    assert report.wind.variation == WindVariation(min=120, max=200)
    assert report.visibility == 9999


def test_steady_wind_has_no_variation() -> None:
    report = decode_metar("UUEE 171720Z 27010MPS 9999", now=NOW)
    assert report.wind == Wind(direction=270, speed=10, gust=None, unit="MPS", variation=None)


def test_variation_group_only_captured_right_after_wind() -> None:
    report = decode_metar("EFHK 151050Z 18015KT 9999 180V240 FEW020", now=NOW)
    assert report.wind.variation is None
    assert report.visibility == 9999
    # The stray group stops weather and cloud decoding.
    assert report.clouds == []


def test_bad_wind_unit_is_fatal() -> None:
    with pytest.raises(MetarDecodeError) as excinfo:
        decode_metar("EFHK 151050Z 18015XX 9999", now=NOW)
    assert excinfo.value.token == "18015XX"
    assert "18015XX" in str(excinfo.value)


def test_truncated_reports_keep_defaults() -> None:
    empty = decode_metar("", now=NOW)
    assert empty.station is None
    assert empty.time is None
    assert empty.wind is None
    assert empty.visibility is None
    assert empty.weather == []
    assert empty.clouds == []

    station_only = decode_metar("EFHK", now=NOW)
    assert station_only.station == "EFHK"
    assert station_only.time is None

    no_wind = decode_metar("EFHK 151050Z", now=NOW)
    assert no_wind.time is not None
    assert no_wind.wind is None
    assert no_wind.auto is False


def test_auto_marker_is_consumed() -> None:
    report = decode_metar("KSJC 171653Z AUTO 31008KT 10SM CLR", now=NOW)
    assert report.auto is True
    assert report.wind.direction == 310
    assert report.statute_visibility == "10SM"
    assert report.visibility == 16090
    assert report.clouds == [CloudLayer(code="CLR", meaning="no clouds under 12,000 ft", altitude=None)]


def test_report_type_word_is_skipped() -> None:
    report = decode_metar("METAR EGLL 171650Z 24008KT 9999 SCT040", now=NOW)
    assert report.station == "EGLL"
    assert report.clouds[0].altitude == 4000


def test_cavok_suppresses_visibility_weather_and_clouds() -> None:
    report = decode_metar("EGLL 171650Z 24008KT CAVOK 9999 R27/0600 -RA FEW020 15/10 Q1020", now=NOW)
    assert report.cavok is True
    assert report.visibility is None
    assert report.statute_visibility is None
    assert report.weather == []
    assert report.clouds == []


def test_compound_statute_visibility() -> None:
    report = decode_metar("KJFK 171651Z 18010KT 1 1/2SM BR OVC005", now=NOW)
    assert report.statute_visibility == "1 1/2SM"
    assert report.visibility == 1609 + 804
    assert _codes(report) == [["BR"]]
    assert report.clouds[0].altitude == 500


def test_fractional_statute_visibility_truncates_meters() -> None:
    assert decode_metar("KJFK 171651Z 18010KT 1/2SM FG", now=NOW).visibility == 804
    assert decode_metar("KJFK 171651Z 18010KT M1/4SM FG", now=NOW).visibility == 402


def test_four_digit_visibility_is_meters() -> None:
    report = decode_metar("EGLL 171650Z 24008KT 0350 FG VV002", now=NOW)
    assert report.visibility == 350
    assert report.statute_visibility is None
    assert report.clouds == [CloudLayer(code="VV", meaning="vertical visibility", altitude=200)]


def test_unknown_visibility_placeholder() -> None:
    report = decode_metar("EFHK 151050Z 18015KT //// BKN010", now=NOW)
    assert report.visibility is None
    assert report.statute_visibility is None
    assert report.clouds[0].code == "BKN"


def test_unrecognised_visibility_backs_off() -> None:
    report = decode_metar("EGLL 171650Z 24008KT R27/0600U R09L/P1500 FG OVC002", now=NOW)
    assert report.visibility is None
    assert _codes(report) == [["FG"]]
    assert report.clouds[0].altitude == 200


def test_runway_groups_are_skipped() -> None:
    report = decode_metar("EGLL 171650Z 24008KT 0600 R27R/0600U R27L/0550N -DZ BR BKN003", now=NOW)
    assert report.visibility == 600
    assert _codes(report) == [["-", "DZ"], ["BR"]]


def test_weather_groups_decompose_into_codes() -> None:
    report = decode_metar("KMIA 171653Z 09020G35KT 3SM +TSRA VCSH BKN015CB", now=NOW)
    assert report.weather == [
        [
            Phenomenon("+", "heavy intensity"),
            Phenomenon("TS", "thunderstorm"),
            Phenomenon("RA", "rain"),
        ],
        [Phenomenon("VC", "in the vicinity"), Phenomenon("SH", "showers")],
    ]
    assert report.clouds == [CloudLayer(code="BKN", meaning="broken", altitude=1500, cumulonimbus=True)]


def test_cloud_altitudes_and_cumulonimbus() -> None:
    report = decode_metar("EFHK 151050Z 18015KT 9999 FEW012CB SCT030TCU BKN/// OVC000 NSC", now=NOW)
    assert [(c.code, c.altitude, c.cumulonimbus) for c in report.clouds] == [
        ("FEW", 1200, True),
        ("SCT", 3000, False),
        ("BKN", None, False),
        ("OVC", 0, False),
        ("NSC", None, False),
    ]


def test_time_uses_reference_month_and_tolerates_bad_values() -> None:
    feb = datetime(2023, 2, 10, tzinfo=timezone.utc)
    impossible = decode_metar("EFHK 311050Z 18015KT", now=feb)
    assert impossible.day == 31
    assert impossible.time is None
    assert impossible.wind.speed == 15

    garbled = decode_metar("EFHK XX1050Z 18015KT", now=NOW)
    assert garbled.day is None
    assert garbled.hour == 10
    assert garbled.time is None


def test_non_numeric_wind_slices_are_none_not_zero() -> None:
    report = decode_metar("EFHK 151050Z ///15KT 9999", now=NOW)
    assert report.wind.direction is None
    assert report.wind.speed == 15


def test_as_dict_is_json_friendly() -> None:
    data = decode_metar("EFHK 151050Z 18015G25KT 180V240 9999 -SN BKN035", now=NOW).as_dict()
    assert data["time"] == "2024-03-15T10:50:00+00:00"
    assert data["wind"]["variation"] == {"min": 180, "max": 240}
    assert data["weather"] == [[{"code": "-", "meaning": "light intensity"}, {"code": "SN", "meaning": "snow"}]]
    assert data["clouds"][0] == {"code": "BKN", "meaning": "broken", "altitude": 3500, "cumulonimbus": False}


def test_decoding_has_no_shared_state() -> None:
    text = "EFHK 151050Z 18015G25KT 9999 -RA BKN035"
    assert decode_metar(text, now=NOW) == decode_metar(text, now=NOW)


def test_decoding_writes_nothing_to_stdout(capsys) -> None:
    decode_metar("EFHK 151050Z 18015G25KT 180V240 9999 FEW020 BKN035 22/15 Q1012", now=NOW)
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == ""
