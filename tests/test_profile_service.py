"""
tests/test_profile_service.py — Profile Lifecycle
==================================================
Creation on first login (idempotent per identity), owner-only edits and
``is_complete`` recomputation.
"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from heelo.config import HeeloConfig
from heelo.database.models import Profile
from heelo.errors import AuthorizationError, UnknownProfileError
from heelo.services import profile_service
from tests.conftest import PHOTOS, clan_ids, make_profile, run_concurrently


class TestGetOrCreateProfile:
    def test_first_login_creates(self, db_engine):
        profile, created = profile_service.get_or_create_profile(
            db_engine, identity_id="idp|1", display_name="  Hodan ", age=24
        )
        assert created is True
        assert profile.display_name == "Hodan"
        assert profile.is_complete is False
        assert profile.id != "idp|1"

    def test_second_login_returns_same_row(self, db_engine):
        first, _ = profile_service.get_or_create_profile(
            db_engine, identity_id="idp|1", display_name="Hodan", age=24
        )
        again, created = profile_service.get_or_create_profile(
            db_engine, identity_id="idp|1", display_name="Other", age=30
        )
        assert created is False
        assert again.id == first.id
        assert again.display_name == "Hodan"

    def test_underage_rejected(self, db_engine):
        with pytest.raises(ValueError):
            profile_service.get_or_create_profile(
                db_engine, identity_id="idp|kid", display_name="Kid", age=17
            )

    def test_concurrent_first_logins_converge(self, file_engine):
        calls = [
            lambda: profile_service.get_or_create_profile(
                file_engine, identity_id="idp|race", display_name="Racer", age=30
            )
            for _ in range(6)
        ]
        results = run_concurrently(calls)

        assert len({p.id for p, _ in results}) == 1
        assert sum(1 for _, created in results if created) == 1
        with Session(file_engine) as session:
            assert session.scalar(select(func.count()).select_from(Profile)) == 1


class TestUpdateProfile:
    def test_filling_every_field_marks_complete(self, db_engine):
        profile = make_profile(db_engine, complete=False, bio=None)
        assert profile.is_complete is False

        ids = clan_ids(db_engine)
        updated = profile_service.update_profile(
            db_engine,
            profile.id,
            actor_id=profile.id,
            gender="male",
            photo_refs=list(PHOTOS),
            location_category="home_region",
            location_value="Hargeisa",
            clan_family_id=ids["Hawiye"],
            subclan_id=ids[("Hawiye", "Abgaal")],
        )
        assert updated.is_complete is True

    def test_removing_a_photo_marks_incomplete(self, db_engine):
        profile = make_profile(db_engine)
        assert profile.is_complete is True
        updated = profile_service.update_profile(
            db_engine, profile.id, actor_id=profile.id, photo_refs=PHOTOS[:3]
        )
        assert updated.is_complete is False

    def test_only_owner_may_edit(self, db_engine):
        owner = make_profile(db_engine, "Owner")
        other = make_profile(db_engine, "Other")
        with pytest.raises(AuthorizationError):
            profile_service.update_profile(
                db_engine, owner.id, actor_id=other.id, bio="hacked"
            )
        assert profile_service.get_profile(db_engine, owner.id).bio != "hacked"

    def test_subclan_must_belong_to_family(self, db_engine):
        profile = make_profile(db_engine)
        ids = clan_ids(db_engine)
        with pytest.raises(ValueError, match="does not belong"):
            profile_service.update_profile(
                db_engine,
                profile.id,
                actor_id=profile.id,
                clan_family_id=ids["Darod"],
                subclan_id=ids[("Hawiye", "Abgaal")],
            )

    @pytest.mark.parametrize("fields", [
        {"age": 15},
        {"gender": "other"},
        {"location_category": "moon"},
        {"location_category": "diaspora", "location_value": "Mogadishu"},
        {"location_category": "home_region", "location_value": "United Kingdom"},
        {"photo_refs": ["a", "b", "c", "d", "e"]},
        {"clan_family_id": 9999},
        {"is_complete": True},
    ])
    def test_invalid_edits_rejected(self, db_engine, fields):
        profile = make_profile(db_engine)
        with pytest.raises(ValueError):
            profile_service.update_profile(
                db_engine, profile.id, actor_id=profile.id, **fields
            )

    def test_gender_is_required_for_complete(self, db_engine):
        profile = make_profile(db_engine)
        assert profile.gender == "female"
        updated = profile_service.update_profile(
            db_engine, profile.id, actor_id=profile.id, gender=None
        )
        assert updated.is_complete is False

    def test_category_change_must_carry_a_matching_value(self, db_engine):
        profile = make_profile(
            db_engine, location_category="home_region", location_value="Garowe"
        )
        with pytest.raises(ValueError, match="Garowe"):
            profile_service.update_profile(
                db_engine, profile.id, actor_id=profile.id, location_category="diaspora"
            )
        assert profile_service.get_profile(db_engine, profile.id).location_category == (
            "home_region"
        )

        moved = profile_service.update_profile(
            db_engine,
            profile.id,
            actor_id=profile.id,
            location_category="diaspora",
            location_value="Sweden",
        )
        assert moved.location_value == "Sweden"
        assert moved.is_complete is True

    def test_value_without_category_rejected(self, db_engine):
        profile = make_profile(db_engine, complete=False, bio=None)
        with pytest.raises(ValueError, match="location_category"):
            profile_service.update_profile(
                db_engine, profile.id, actor_id=profile.id, location_value="Kenya"
            )

    def test_configured_catalogue_is_used(self, db_engine):
        profile = make_profile(db_engine, complete=False, bio=None)
        cfg = HeeloConfig(location_catalogue={"diaspora": ["Norway"]})
        with pytest.raises(ValueError):
            profile_service.update_profile(
                db_engine,
                profile.id,
                actor_id=profile.id,
                cfg=cfg,
                location_category="diaspora",
                location_value="Sweden",
            )
        updated = profile_service.update_profile(
            db_engine,
            profile.id,
            actor_id=profile.id,
            cfg=cfg,
            location_category="diaspora",
            location_value="Norway",
        )
        assert updated.location_value == "Norway"

    def test_unknown_profile(self, db_engine):
        with pytest.raises(UnknownProfileError) as exc:
            profile_service.update_profile(db_engine, "missing", actor_id="missing", bio="x")
        assert exc.value.profile_id == "missing"
