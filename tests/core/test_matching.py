"""Unit tests for event filtering, ordering and paging.

Pure function tests - no mocks needed, fast execution.
"""

import pytest

from fdsnws.core.event import Event, Product
from fdsnws.core.matching import matches, paginate, sort_events
from fdsnws.core.query import Query


def make_event(**overrides) -> Event:
    """Create a test event with sensible defaults."""
    defaults = dict(
        id="us1",
        time=1704067200000,
        latitude=35.0,
        longitude=-118.0,
        depth=10.0,
        magnitude=4.5,
        mag_type="mww",
        net="us",
        sources=("us", "ci"),
        types=("origin", "shakemap"),
        status="reviewed",
        felt=12,
        cdi=3.4,
        mmi=4.0,
        alert="green",
        sig=312,
        gap=40.0,
    )
    defaults.update(overrides)
    return Event(**defaults)


@pytest.fixture
def event():
    return make_event()


class TestMatches:
    """Tests for matches() query evaluation."""

    def test_empty_query_matches(self, event):
        assert matches(event, Query())

    def test_eventid_matches_any_associated_id(self):
        event = make_event(id="us1", ids=("us1", "ci7"))

        assert matches(event, Query(eventid="us1"))
        assert matches(event, Query(eventid="ci7"))
        assert not matches(event, Query(eventid="nc3"))

    def test_time_window_inclusive(self, event):
        assert matches(event, Query(starttime=event.time, endtime=event.time))
        assert not matches(event, Query(starttime=event.time + 1))
        assert not matches(event, Query(endtime=event.time - 1))

    def test_updatedafter_falls_back_to_time(self, event):
        """Events without an update time use the origin time."""
        assert matches(event, Query(updatedafter=event.time))
        assert not matches(event, Query(updatedafter=event.time + 1))

    def test_updatedafter_uses_update_time(self):
        event = make_event(updated=1704067300000)

        assert matches(event, Query(updatedafter=1704067250000))

    def test_rectangle(self, event):
        assert matches(event, Query(minlatitude=30, maxlatitude=40))
        assert not matches(event, Query(minlatitude=36))

    def test_rectangle_across_dateline(self):
        event = make_event(longitude=-175.0)

        assert matches(event, Query(minlongitude=170, maxlongitude=190))
        assert not matches(event, Query(minlongitude=160, maxlongitude=170))

    def test_circle(self, event):
        assert matches(event, Query(latitude=35.0, longitude=-117.0, maxradius=1.5))
        assert not matches(event, Query(latitude=35.0, longitude=-110.0, maxradius=1.5))

    def test_circle_min_radius(self, event):
        query = Query(latitude=35.0, longitude=-118.0, maxradius=5, minradius=1)
        assert not matches(event, query)

    def test_depth_and_magnitude(self, event):
        assert matches(event, Query(mindepth=5, maxdepth=10, minmagnitude=4.5))
        assert not matches(event, Query(maxdepth=9.9))
        assert not matches(event, Query(minmagnitude=5))

    def test_missing_magnitude_fails_magnitude_filter(self):
        """An event without a magnitude cannot satisfy a magnitude bound."""
        event = make_event(magnitude=None)

        assert matches(event, Query())
        assert not matches(event, Query(minmagnitude=0))

    def test_magnitude_type_case_insensitive(self, event):
        assert matches(event, Query(magnitudetype="MWW"))
        assert not matches(event, Query(magnitudetype="ml"))

    def test_catalog_matches_preferred_network(self, event):
        assert matches(event, Query(catalog="us"))
        assert not matches(event, Query(catalog="ci"))

    def test_contributor_matches_any_source(self, event):
        assert matches(event, Query(contributor="ci"))
        assert not matches(event, Query(contributor="nc"))

    def test_eventtype_list(self, event):
        assert matches(event, Query(eventtype="quarry blast,earthquake"))
        assert not matches(event, Query(eventtype="explosion"))

    def test_reviewstatus(self, event):
        assert matches(event, Query(reviewstatus="reviewed"))
        assert not matches(event, Query(reviewstatus="automatic"))

    def test_impact_filters(self, event):
        assert matches(event, Query(minmmi=4, maxcdi=4, minfelt=12, alertlevel="green"))
        assert not matches(event, Query(minfelt=13))
        assert not matches(event, Query(alertlevel="red"))

    def test_gap_and_significance(self, event):
        assert matches(event, Query(maxgap=40, minsig=300, maxsig=400))
        assert not matches(event, Query(mingap=41))
        assert not matches(event, Query(maxsig=300))

    def test_producttype_from_types_or_products(self):
        event = make_event(
            types=("origin",),
            products=(Product(id="p", type="dyfi", code="c", source="us"),),
        )

        assert matches(event, Query(producttype="origin"))
        assert matches(event, Query(producttype="dyfi"))
        assert not matches(event, Query(producttype="shakemap"))


class TestSortEvents:
    """Tests for sort_events() orderings."""

    @pytest.fixture
    def events(self):
        return [
            make_event(id="a", time=2, magnitude=3.0),
            make_event(id="b", time=3, magnitude=None),
            make_event(id="c", time=1, magnitude=5.0),
        ]

    def test_default_newest_first(self, events):
        assert [e.id for e in sort_events(events, None)] == ["b", "a", "c"]
        assert [e.id for e in sort_events(events, "time")] == ["b", "a", "c"]

    def test_time_ascending(self, events):
        assert [e.id for e in sort_events(events, "time-asc")] == ["c", "a", "b"]

    def test_magnitude_descending_nulls_last(self, events):
        assert [e.id for e in sort_events(events, "magnitude")] == ["c", "a", "b"]

    def test_magnitude_ascending_nulls_last(self, events):
        assert [e.id for e in sort_events(events, "magnitude-asc")] == ["a", "c", "b"]


class TestPaginate:
    """Tests for paginate() 1-based offsets."""

    def test_no_paging(self):
        assert list(paginate(range(5), None, None)) == [0, 1, 2, 3, 4]

    def test_offset_is_one_based(self):
        assert list(paginate(range(5), 2, None)) == [1, 2, 3, 4]

    def test_limit(self):
        assert list(paginate(range(5), 2, 2)) == [1, 2]

    def test_limit_zero(self):
        assert list(paginate(range(5), None, 0)) == []
