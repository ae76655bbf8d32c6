"""
tests/test_discovery_service.py — Candidate Selection
======================================================
Exclusion rules, filters, anonymous preview and keyset paging.
"""

from __future__ import annotations

import pytest

from heelo.config import HeeloConfig
from heelo.engine.filters import DiscoveryFilters
from heelo.errors import InvalidFilterError, UnknownProfileError
from heelo.services import discovery_service, interest_service
from tests.conftest import clan_ids, make_profile


def _ids(rows) -> set[str]:
    return {p.id for p in rows}


class TestExclusions:
    def test_age_window_and_own_profile(self, db_engine):
        """Viewer 25; candidates 22, 30, 45 with window 20–35 → only 22 and 30."""
        viewer = make_profile(db_engine, "Viewer", age=25)
        p22 = make_profile(db_engine, "P22", age=22)
        p30 = make_profile(db_engine, "P30", age=30)
        make_profile(db_engine, "P45", age=45)

        rows = discovery_service.next_candidates(
            db_engine, viewer.id, DiscoveryFilters(age_min=20, age_max=35)
        )
        assert _ids(rows) == {p22.id, p30.id}

    def test_acted_on_profiles_never_reappear(self, db_engine):
        viewer = make_profile(db_engine, "Viewer")
        hello_target = make_profile(db_engine, "HelloTarget")
        ignored = make_profile(db_engine, "Ignored")
        fresh = make_profile(db_engine, "Fresh")

        interest_service.record_action(db_engine, viewer.id, hello_target.id, "hello")
        interest_service.record_action(db_engine, viewer.id, ignored.id, "ignore")

        rows = discovery_service.next_candidates(db_engine, viewer.id)
        assert _ids(rows) == {fresh.id}

    def test_ignored_profile_stays_hidden_under_any_filters(self, db_engine):
        viewer = make_profile(db_engine, "Viewer", age=25)
        target = make_profile(
            db_engine,
            "Target",
            age=30,
            family="Hawiye",
            subclan="Abgaal",
            location_category="home_region",
            location_value="Mogadishu",
        )
        ids = clan_ids(db_engine)

        narrow = DiscoveryFilters(age_min=20, age_max=28)
        wide = DiscoveryFilters(age_min=18, age_max=60)
        assert target.id not in _ids(
            discovery_service.next_candidates(db_engine, viewer.id, narrow)
        )
        assert target.id in _ids(
            discovery_service.next_candidates(db_engine, viewer.id, wide)
        )

        interest_service.record_action(db_engine, viewer.id, target.id, "ignore")

        for filters in (
            wide,
            narrow,
            DiscoveryFilters(),
            DiscoveryFilters(age_min=30, age_max=30),
            DiscoveryFilters(location_category="home_region", location_value="Mogadishu"),
            DiscoveryFilters(
                clan_family_id=ids["Hawiye"], subclan_id=ids[("Hawiye", "Abgaal")]
            ),
        ):
            rows = discovery_service.next_candidates(db_engine, viewer.id, filters)
            assert target.id not in _ids(rows)

    def test_incoming_action_also_excludes(self, db_engine):
        viewer = make_profile(db_engine, "Viewer")
        admirer = make_profile(db_engine, "Admirer")
        interest_service.record_action(db_engine, admirer.id, viewer.id, "hello")

        rows = discovery_service.next_candidates(db_engine, viewer.id)
        assert admirer.id not in _ids(rows)

    def test_incomplete_profiles_hidden(self, db_engine):
        viewer = make_profile(db_engine, "Viewer")
        make_profile(db_engine, "Draft", complete=False)
        assert discovery_service.next_candidates(db_engine, viewer.id) == []

    def test_unknown_viewer(self, db_engine):
        with pytest.raises(UnknownProfileError):
            discovery_service.next_candidates(db_engine, "ghost")


class TestFilters:
    def test_invalid_age_window_rejected(self, db_engine):
        viewer = make_profile(db_engine, "Viewer")
        with pytest.raises(InvalidFilterError):
            discovery_service.next_candidates(
                db_engine, viewer.id, DiscoveryFilters(age_min=40, age_max=30)
            )

    def test_clan_and_subclan(self, db_engine):
        viewer = make_profile(db_engine, "Viewer")
        maj = make_profile(db_engine, "Maj", family="Darod", subclan="Majeerteen")
        oga = make_profile(db_engine, "Oga", family="Darod", subclan="Ogaden")
        make_profile(db_engine, "Abg", family="Hawiye", subclan="Abgaal")
        ids = clan_ids(db_engine)

        by_family = discovery_service.next_candidates(
            db_engine, viewer.id, DiscoveryFilters(clan_family_id=ids["Darod"])
        )
        assert _ids(by_family) == {maj.id, oga.id}

        by_subclan = discovery_service.next_candidates(
            db_engine,
            viewer.id,
            DiscoveryFilters(
                clan_family_id=ids["Darod"], subclan_id=ids[("Darod", "Ogaden")]
            ),
        )
        assert _ids(by_subclan) == {oga.id}

    def test_inconsistent_subclan_is_ignored(self, db_engine):
        viewer = make_profile(db_engine, "Viewer")
        maj = make_profile(db_engine, "Maj", family="Darod", subclan="Majeerteen")
        ids = clan_ids(db_engine)

        rows = discovery_service.next_candidates(
            db_engine,
            viewer.id,
            DiscoveryFilters(
                clan_family_id=ids["Darod"], subclan_id=ids[("Hawiye", "Abgaal")]
            ),
        )
        assert _ids(rows) == {maj.id}

    def test_subclan_without_family_is_ignored(self, db_engine):
        viewer = make_profile(db_engine, "Viewer")
        a = make_profile(db_engine, "A", family="Darod", subclan="Majeerteen")
        b = make_profile(db_engine, "B", family="Hawiye", subclan="Abgaal")
        ids = clan_ids(db_engine)

        rows = discovery_service.next_candidates(
            db_engine, viewer.id, DiscoveryFilters(subclan_id=ids[("Darod", "Ogaden")])
        )
        assert _ids(rows) == {a.id, b.id}

    def test_location_filters(self, db_engine):
        viewer = make_profile(db_engine, "Viewer")
        uk = make_profile(
            db_engine, "U", location_category="diaspora", location_value="United Kingdom"
        )
        make_profile(db_engine, "C", location_category="diaspora", location_value="Canada")
        home = make_profile(
            db_engine, "H", location_category="home_region", location_value="Garowe"
        )

        home_rows = discovery_service.next_candidates(
            db_engine, viewer.id, DiscoveryFilters(location_category="home_region")
        )
        assert _ids(home_rows) == {home.id}

        uk_rows = discovery_service.next_candidates(
            db_engine,
            viewer.id,
            DiscoveryFilters(location_category="diaspora", location_value=" united kingdom "),
        )
        assert _ids(uk_rows) == {uk.id}


class TestPreview:
    def test_anonymous_preview_requires_bio(self, db_engine):
        with_bio = make_profile(db_engine, "Bio", bio="Hello there")
        make_profile(db_engine, "NoBio", bio=None)
        make_profile(db_engine, "Blank", bio="   ")

        rows = discovery_service.next_candidates(db_engine, None)
        assert _ids(rows) == {with_bio.id}

    def test_signed_in_viewer_sees_profiles_without_bio(self, db_engine):
        viewer = make_profile(db_engine, "Viewer")
        no_bio = make_profile(db_engine, "NoBio", bio=None)
        assert _ids(discovery_service.next_candidates(db_engine, viewer.id)) == {no_bio.id}


class TestPaging:
    def test_keyset_pages_do_not_overlap(self, db_engine):
        viewer = make_profile(db_engine, "Viewer")
        everyone = {make_profile(db_engine, f"P{i}").id for i in range(7)}

        seen: list[str] = []
        after = None
        while True:
            page = discovery_service.next_candidates(
                db_engine, viewer.id, page_size=3, after=after
            )
            if not page:
                break
            assert len(page) <= 3
            seen.extend(p.id for p in page)
            after = page[-1].id

        assert len(seen) == len(set(seen)) == 7
        assert set(seen) == everyone
        assert seen == sorted(seen)

    def test_page_size_is_clamped(self, db_engine):
        viewer = make_profile(db_engine, "Viewer")
        for i in range(4):
            make_profile(db_engine, f"P{i}")
        cfg = HeeloConfig(max_page_size=2)

        assert len(discovery_service.next_candidates(
            db_engine, viewer.id, page_size=100, cfg=cfg
        )) == 2
        assert len(discovery_service.next_candidates(
            db_engine, viewer.id, page_size=0, cfg=cfg
        )) == 1
