"""Tests for coordinate grouping and marker descriptions."""

import pytest
from hypothesis import given, strategies as st

from fm_tracker.services.distance_cache import DistanceCache
from fm_tracker.services.station_grouping import (
    MarkerIcon,
    build_map_points,
    coordinate_key,
    group_by_coordinates,
    marker_icon,
    paginate_group,
)
from fm_tracker.services.station_types import (
    MAIN_STATION_TYPE,
    InspectionStatus,
    SubmitRequest,
    UserLocation,
)
from fm_tracker.tests.factories import make_station


def test_identical_coordinates_share_a_group():
    stations = [
        make_station(1, latitude=13.7563, longitude=100.5018),
        make_station(2, latitude=13.7563, longitude=100.5018),
        make_station(3, latitude=13.75630001, longitude=100.5018),
    ]

    groups = group_by_coordinates(stations)

    assert list(groups) == ["13.7563,100.5018", "13.75630001,100.5018"]
    assert [station.id for station in groups["13.7563,100.5018"]] == [1, 2]
    assert coordinate_key(stations[0]) == "13.7563,100.5018"


@given(
    st.lists(
        st.tuples(st.sampled_from([13.7563, 13.8025, 7.8804]), st.sampled_from([100.5018, 98.3923])),
        max_size=30,
    )
)
def test_groups_are_exact_and_complete(coordinates):
    stations = [
        make_station(index, latitude=lat, longitude=lon)
        for index, (lat, lon) in enumerate(coordinates)
    ]

    groups = group_by_coordinates(stations)

    assert sum(len(group) for group in groups.values()) == len(stations)
    for group in groups.values():
        assert len({(station.latitude, station.longitude) for station in group}) == 1
    assert len(groups) == len(set(coordinates))


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"submit_request": SubmitRequest.NOT_SUBMITTED, "on_air": False,
          "inspection": InspectionStatus.inspected()}, MarkerIcon.NOT_SUBMITTED),
        ({"on_air": False, "inspection": InspectionStatus.inspected()}, MarkerIcon.OFF_AIR),
        ({"inspection": InspectionStatus.inspected()}, MarkerIcon.INSPECTED),
        ({"inspection": InspectionStatus.other("Pending")}, MarkerIcon.NOT_INSPECTED),
        ({"submit_request": SubmitRequest.SUBMITTED}, MarkerIcon.NOT_INSPECTED),
    ],
)
def test_marker_icon_precedence(overrides, expected):
    assert marker_icon(make_station(1, **overrides)) is expected


def test_map_points_describe_clusters_and_singles():
    stations = [
        make_station(1, name="Radio Thailand", frequency=92.5, genre=MAIN_STATION_TYPE,
                     latitude=13.7563, longitude=100.5018, inspection=InspectionStatus.inspected()),
        make_station(2, name="Cool Fahrenheit", frequency=93.0, latitude=13.7563, longitude=100.5018,
                     on_air=False),
        make_station(3, name="Kiss FM", frequency=91.5, latitude=13.7460, longitude=100.5350),
    ]

    cluster, single = build_map_points(stations)

    assert cluster.is_cluster and cluster.count == 2
    assert cluster.title == "2 stations"
    assert cluster.icon is MarkerIcon.INSPECTED
    assert cluster.is_main_station
    assert cluster.distance_km is None
    assert single.title == "Kiss FM FM 91.5"
    assert single.label == "Kiss FM - Dusit, Bangkok"
    assert single.to_dict()["station_ids"] == [3]


def test_map_points_carry_distance():
    stations = [make_station(1, latitude=13.7563, longitude=100.5018)]
    cache = DistanceCache()

    (point,) = build_map_points(stations, UserLocation(13.7563, 100.5018), cache)
    (uncached,) = build_map_points(stations, UserLocation(13.8, 100.5018))

    assert point.distance_km == pytest.approx(0.0)
    assert len(cache) == 1
    assert uncached.distance_km == pytest.approx(4.86, abs=0.02)


def test_paginate_group():
    stations = [make_station(index) for index in range(5)]

    first = paginate_group(stations, page=0, page_size=3)
    assert [s.id for s in first.stations] == [0, 1, 2]
    assert first.total_pages == 2
    assert first.has_next and not first.has_previous

    clamped = paginate_group(stations, page=9, page_size=3)
    assert clamped.page == 1
    assert [s.id for s in clamped.stations] == [3, 4]

    assert paginate_group(stations, page=-2, page_size=1).page == 0
    assert paginate_group([], page=0).total_pages == 1


def test_paginate_group_rejects_empty_pages():
    with pytest.raises(ValueError):
        paginate_group([make_station(1)], page_size=0)
