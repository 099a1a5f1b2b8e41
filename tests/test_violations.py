"""
Violation Search Service Tests

Search with pagination and sorting, single lookup, creation and status/note
updates against an in-memory database.
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from ppe_compliance.enums import PPECategory, ViolationStatus
from ppe_compliance.errors import ReferenceNotFound, ViolationNotFound
from ppe_compliance.filters import compile_query
from ppe_compliance.models import Violation
from ppe_compliance.schemas import ViolationCreate, ViolationQuery, ViolationUpdate
from ppe_compliance.services.cache import ReportCache
from ppe_compliance.services.violations import (
    create_violation,
    get_violation,
    search_violations,
    update_violation,
)

BASE = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


def search(db, **kwargs):
    return search_violations(db, compile_query(ViolationQuery(**kwargs)))


@pytest.fixture
def site(add_worker, add_camera, add_violation):
    """Two workers, two zones, seven violations spread over January 2024"""
    alice = add_worker(name="Alice", employee_id="EMP001")
    bob = add_worker(name="Bob", employee_id="EMP002")
    gate = add_camera(zone="Main Gate")
    north = add_camera(zone="North Wing")
    rows = [
        add_violation(alice, gate, PPECategory.HELMET, BASE),
        add_violation(alice, gate, PPECategory.VEST, BASE + timedelta(hours=1)),
        add_violation(alice, north, PPECategory.HELMET, BASE + timedelta(days=1)),
        add_violation(bob, north, PPECategory.MASK, BASE + timedelta(days=2)),
        add_violation(bob, gate, PPECategory.GLOVES, BASE + timedelta(days=3), status=ViolationStatus.RESOLVED),
        add_violation(bob, north, PPECategory.HELMET, BASE + timedelta(days=4)),
        add_violation(alice, north, PPECategory.VEST, BASE + timedelta(days=5), status=ViolationStatus.ACKNOWLEDGED),
    ]
    return {"alice": alice, "bob": bob, "gate": gate, "north": north, "violations": rows}


class TestSearch:
    """Filtered, sorted and paginated search"""

    def test_default_search_returns_newest_first(self, db, site):
        page = search(db)
        assert page.total_count == 7
        detected = [v.detected_at for v in page.items]
        assert detected == sorted(detected, reverse=True)

    def test_rows_carry_worker_and_zone(self, db, site):
        page = search(db, worker_id=site["bob"].id, sort_order="ASC")
        first = page.items[0]
        assert first.worker_name == "Bob"
        assert first.worker_employee_id == "EMP002"
        assert first.location_zone == "North Wing"
        assert first.detected_at.tzinfo is not None

    def test_total_count_matches_direct_count(self, db, site):
        page = search(db, location_zone="North Wing", page_size=2)
        direct = (
            db.query(Violation)
            .filter(Violation.camera_id == site["north"].id)
            .count()
        )
        assert page.total_count == direct == 4
        assert len(page.items) == 2
        assert page.total_pages == 2

    def test_total_count_is_independent_of_page_window(self, db, site):
        counts = {search(db, page_number=n, page_size=3).total_count for n in (1, 2, 3, 9)}
        assert counts == {7}

    def test_page_past_the_end_is_empty(self, db, site):
        page = search(db, page_number=5, page_size=5)
        assert page.items == []
        assert page.total_count == 7
        assert page.page_number == 5

    def test_pages_do_not_overlap(self, db, site):
        seen = []
        for n in (1, 2, 3):
            seen.extend(v.id for v in search(db, page_number=n, page_size=3).items)
        assert sorted(seen) == sorted(v.id for v in site["violations"])

    def test_filter_by_category_and_status(self, db, site):
        page = search(db, category="helmet", status="PENDING")
        assert page.total_count == 3
        assert {v.category for v in page.items} == {PPECategory.HELMET}

    def test_unknown_category_filter_is_ignored(self, db, site):
        assert search(db, category="BOOTS").total_count == 7

    def test_sort_by_worker_ascending(self, db, site):
        page = search(db, sort_by="WorkerId", sort_order="ASC")
        ids = [v.worker_id for v in page.items]
        assert ids == sorted(ids)

    def test_sort_by_zone_descending(self, db, site):
        page = search(db, sort_by="LocationZone", sort_order="DESC")
        zones = [v.location_zone for v in page.items]
        assert zones == sorted(zones, reverse=True)

    def test_no_matches(self, db, site):
        page = search(db, worker_id=999)
        assert page.items == []
        assert page.total_count == 0
        assert page.total_pages == 0


class TestDateToInclusive:
    """dateTo includes the whole day it names"""

    def test_last_minute_of_day_is_included(self, db, add_worker, add_camera, add_violation):
        late = add_violation(add_worker(), add_camera(), detected_at=datetime(2024, 1, 31, 23, 59, tzinfo=timezone.utc))
        assert [v.id for v in search(db, date_to=date(2024, 1, 31)).items] == [late.id]
        assert search(db, date_to=date(2024, 1, 30)).total_count == 0

    def test_date_from_is_inclusive(self, db, add_worker, add_camera, add_violation):
        at = datetime(2024, 2, 1, 0, 0, tzinfo=timezone.utc)
        add_violation(add_worker(), add_camera(), detected_at=at)
        assert search(db, date_from=at).total_count == 1
        assert search(db, date_from=at + timedelta(seconds=1)).total_count == 0


class TestCreate:
    """Creating violations from the detection pipeline"""

    def test_round_trip(self, db, add_worker, add_camera):
        worker = add_worker()
        camera = add_camera(zone="Material Yard")
        detected = datetime(2024, 5, 2, 14, 30, tzinfo=timezone.utc)
        created = create_violation(db, ViolationCreate(
            worker_id=worker.id,
            camera_id=camera.id,
            category="HELMET",
            evidence_url="s3://evidence/1.jpg",
            confidence_score=95,
            detected_at=detected,
        ))

        fetched = get_violation(db, created.id)
        assert fetched == created
        assert fetched.worker_id == worker.id
        assert fetched.camera_id == camera.id
        assert fetched.category is PPECategory.HELMET
        assert fetched.confidence_score == 95
        assert fetched.detected_at == detected
        assert fetched.status is ViolationStatus.PENDING
        assert fetched.notes is None
        assert fetched.location_zone == "Material Yard"
        assert fetched.created_at is not None

    def test_unknown_worker_is_rejected(self, db, add_camera):
        camera = add_camera()
        with pytest.raises(ReferenceNotFound) as exc:
            create_violation(db, ViolationCreate(
                worker_id=42, camera_id=camera.id, category="VEST",
                confidence_score=80, detected_at=BASE,
            ))
        assert exc.value.field == "worker_id"
        assert db.query(Violation).count() == 0

    def test_unknown_camera_is_rejected(self, db, add_worker):
        worker = add_worker()
        with pytest.raises(ReferenceNotFound) as exc:
            create_violation(db, ViolationCreate(
                worker_id=worker.id, camera_id=42, category="VEST",
                confidence_score=80, detected_at=BASE,
            ))
        assert exc.value.field == "camera_id"
        assert db.query(Violation).count() == 0

    def test_category_outside_the_set_is_rejected(self):
        with pytest.raises(ValidationError):
            ViolationCreate(worker_id=1, camera_id=1, category="BOOTS", confidence_score=80, detected_at=BASE)

    @pytest.mark.parametrize("score", [-1, 101])
    def test_confidence_out_of_range_is_rejected(self, score):
        with pytest.raises(ValidationError):
            ViolationCreate(worker_id=1, camera_id=1, category="MASK", confidence_score=score, detected_at=BASE)

    def test_creation_invalidates_detection_month_and_the_next(self, db, add_worker, add_camera):
        class RecordingCache(ReportCache):
            def __init__(self):
                super().__init__(client=None)
                self.invalidated = []

            def invalidate_month(self, year, month):
                self.invalidated.append((year, month))
                return 0

        cache = RecordingCache()
        create_violation(db, ViolationCreate(
            worker_id=add_worker().id, camera_id=add_camera().id, category="GLOVES",
            confidence_score=70, detected_at=datetime(2024, 3, 31, 23, 30, tzinfo=timezone.utc),
        ), cache=cache)
        # the next month's summary compares against this one
        assert cache.invalidated == [(2024, 3), (2024, 4)]


class TestLookup:
    """Single violation lookup"""

    def test_missing_violation_is_none(self, db):
        assert get_violation(db, 12345) is None


class TestUpdate:
    """Status and note updates"""

    def test_update_status_and_notes(self, db, site):
        target = site["violations"][0]
        updated = update_violation(db, target.id, ViolationUpdate(status="ACKNOWLEDGED", notes="Talked to worker"))
        assert updated.status is ViolationStatus.ACKNOWLEDGED
        assert updated.notes == "Talked to worker"

    def test_omitted_fields_are_left_unchanged(self, db, site):
        target = site["violations"][0]
        update_violation(db, target.id, ViolationUpdate(notes="first note"))
        updated = update_violation(db, target.id, ViolationUpdate(status="RESOLVED"))
        assert updated.notes == "first note"
        assert updated.status is ViolationStatus.RESOLVED

    def test_explicit_null_note_clears_it(self, db, site):
        target = site["violations"][0]
        update_violation(db, target.id, ViolationUpdate(notes="to be cleared"))
        updated = update_violation(db, target.id, ViolationUpdate(notes=None))
        assert updated.notes is None

    def test_empty_update_is_a_no_op(self, db, site):
        target = site["violations"][4]
        before = get_violation(db, target.id)
        assert update_violation(db, target.id, ViolationUpdate()) == before

    def test_update_is_idempotent(self, db, site):
        target = site["violations"][1]
        payload = ViolationUpdate(status="RESOLVED", notes="PPE issued")
        once = update_violation(db, target.id, payload)
        twice = update_violation(db, target.id, payload)
        assert once == twice

    def test_status_may_move_backwards(self, db, site):
        resolved = site["violations"][4]
        updated = update_violation(db, resolved.id, ViolationUpdate(status="PENDING"))
        assert updated.status is ViolationStatus.PENDING

    def test_detection_time_is_not_touched(self, db, site):
        target = site["violations"][2]
        updated = update_violation(db, target.id, ViolationUpdate(status="ACKNOWLEDGED"))
        assert updated.detected_at == BASE + timedelta(days=1)

    def test_unknown_violation_raises(self, db):
        with pytest.raises(ViolationNotFound):
            update_violation(db, 999, ViolationUpdate(status="RESOLVED"))

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValidationError):
            ViolationUpdate(status="ESCALATED")
