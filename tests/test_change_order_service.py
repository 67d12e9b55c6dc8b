"""
Tests: change order lifecycle at the model and service layer.

Covers:
    1. CHANGE_ORDER_TRANSITIONS — PENDING is the only non-terminal state
    2. Boundary validation — price precision / bounds, extra_days range
    3. Eligibility — OUT_OF_SCOPE only, one change order per request
    4. Update / delete — PENDING only, checks ordered ownership → existence → state
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from conftest import make_change_order, make_project, make_request, make_user
from scopematter.core.exceptions import ConflictError, NotFoundError, ServiceErrorCode, ValidationError
from scopematter.models import db
from scopematter.models.change_order import (
    CHANGE_ORDER_TRANSITIONS,
    ChangeOrder,
    is_change_order_editable,
    validate_change_order_transition,
)
from scopematter.services import change_order_service as svc
from scopematter.services.cache_service import dashboard_key, project_key


def _create(cache, project, request, price="300.00", extra_days=5):
    return svc.create_change_order(
        session=db.session,
        cache=cache,
        project_id=project.id,
        request_id=request.id,
        user_id=project.user_id,
        price_usd=price,
        extra_days=extra_days,
    )


# ═════════════════════════════════════════════════════════════════════════════
# 1. State machine
# ═════════════════════════════════════════════════════════════════════════════


class TestTransitions:
    @pytest.mark.parametrize("target", ["PENDING", "APPROVED", "REJECTED"])
    def test_pending_accepts_every_status(self, target):
        assert validate_change_order_transition("PENDING", target)

    @pytest.mark.parametrize("terminal", ["APPROVED", "REJECTED"])
    @pytest.mark.parametrize("target", ["PENDING", "APPROVED", "REJECTED"])
    def test_terminal_states_reject_everything(self, terminal, target):
        assert not validate_change_order_transition(terminal, target)

    def test_unknown_source_is_rejected(self):
        assert not validate_change_order_transition("DRAFT", "APPROVED")

    def test_only_pending_is_editable(self):
        assert is_change_order_editable("PENDING")
        assert not is_change_order_editable("APPROVED")
        assert not is_change_order_editable("REJECTED")

    def test_terminal_states_have_no_edges(self):
        assert CHANGE_ORDER_TRANSITIONS["APPROVED"] == []
        assert CHANGE_ORDER_TRANSITIONS["REJECTED"] == []


# ═════════════════════════════════════════════════════════════════════════════
# 2. Boundary validation
# ═════════════════════════════════════════════════════════════════════════════


class TestPriceValidation:
    @pytest.mark.parametrize("value,expected", [
        (300, Decimal("300.00")),
        ("300.5", Decimal("300.50")),
        (0.01, Decimal("0.01")),
        ("999999.99", Decimal("999999.99")),
    ])
    def test_accepts_valid_prices(self, value, expected):
        assert svc.validate_price_usd(value) == expected

    @pytest.mark.parametrize("value", [
        "300.005", 0, -1, "1000000.00", "abc", None, True, "NaN", "Infinity",
    ])
    def test_rejects_invalid_prices(self, value):
        with pytest.raises(ValidationError) as exc:
            svc.validate_price_usd(value)
        assert "price_usd" in exc.value.details

    def test_three_decimals_are_rejected_not_rounded(self):
        with pytest.raises(ValidationError) as exc:
            svc.validate_price_usd("300.005")
        assert exc.value.details == {"price_usd": "precision"}


class TestExtraDaysValidation:
    @pytest.mark.parametrize("value", [None, 1, 5, 365])
    def test_accepts(self, value):
        assert svc.validate_extra_days(value) == value

    @pytest.mark.parametrize("value", [0, -3, 366, 2.5, "5", True])
    def test_rejects(self, value):
        with pytest.raises(ValidationError):
            svc.validate_extra_days(value)


# ═════════════════════════════════════════════════════════════════════════════
# 3. Creation & eligibility
# ═════════════════════════════════════════════════════════════════════════════


class TestCreate:
    def test_creates_pending_change_order(self, cache, project):
        req = make_request(project, status="OUT_OF_SCOPE")
        co = _create(cache, project, req)
        assert co.status == "PENDING"
        assert co.price_usd == Decimal("300.00")
        assert co.extra_days == 5
        assert co.user_id == project.user_id

    def test_extra_days_optional(self, cache, project):
        req = make_request(project, status="OUT_OF_SCOPE")
        co = _create(cache, project, req, extra_days=None)
        assert co.extra_days is None

    @pytest.mark.parametrize("status", ["PENDING", "IN_SCOPE"])
    def test_request_must_be_out_of_scope(self, cache, project, status):
        req = make_request(project, status=status)
        with pytest.raises(ConflictError) as exc:
            _create(cache, project, req)
        assert exc.value.code == ServiceErrorCode.REQUEST_NOT_ELIGIBLE

    def test_second_change_order_for_same_request_rejected(self, cache, project):
        req = make_request(project, status="OUT_OF_SCOPE")
        _create(cache, project, req)
        with pytest.raises(ConflictError) as exc:
            _create(cache, project, req, price="100.00")
        assert exc.value.code == ServiceErrorCode.REQUEST_NOT_ELIGIBLE
        assert db.session.query(ChangeOrder).count() == 1

    def test_request_from_another_project_not_eligible(self, cache, user, project):
        other_project = make_project(user, name="Second")
        req = make_request(other_project, status="OUT_OF_SCOPE")
        with pytest.raises(ConflictError) as exc:
            _create(cache, project, req)
        assert exc.value.code == ServiceErrorCode.REQUEST_NOT_ELIGIBLE

    def test_foreign_project_not_eligible(self, cache, project):
        intruder = make_user(external_id="user_mallory", email="m@example.com")
        req = make_request(project, status="OUT_OF_SCOPE")
        with pytest.raises(ConflictError):
            svc.create_change_order(
                session=db.session, cache=cache, project_id=project.id,
                request_id=req.id, user_id=intruder.id, price_usd="10.00",
            )

    def test_price_validated_before_eligibility(self, cache, project):
        req = make_request(project, status="PENDING")
        with pytest.raises(ValidationError):
            _create(cache, project, req, price="300.005")


# ═════════════════════════════════════════════════════════════════════════════
# 4. Update & delete
# ═════════════════════════════════════════════════════════════════════════════


class TestUpdate:
    def _update(self, cache, project, co, **kw):
        return svc.update_change_order(
            session=db.session, cache=cache, project_id=project.id,
            change_order_id=co.id, user_id=project.user_id, **kw,
        )

    def test_update_price_and_days_while_pending(self, cache, project):
        co = make_change_order(project, make_request(project, status="OUT_OF_SCOPE"))
        updated = self._update(cache, project, co, price_usd="450.25", extra_days=10)
        assert updated.price_usd == Decimal("450.25")
        assert updated.extra_days == 10
        assert updated.status == "PENDING"

    def test_pending_self_transition_is_allowed(self, cache, project):
        co = make_change_order(project, make_request(project, status="OUT_OF_SCOPE"))
        updated = self._update(cache, project, co, status="PENDING")
        assert updated.status == "PENDING"
        assert db.session.get(ChangeOrder, co.id).status == "PENDING"

    def test_none_arguments_are_not_written(self, cache, project):
        co = make_change_order(project, make_request(project, status="OUT_OF_SCOPE"))
        updated = self._update(cache, project, co, status="APPROVED")
        assert updated.price_usd == Decimal("300.00")
        assert updated.extra_days == 5

    @pytest.mark.parametrize("terminal", ["APPROVED", "REJECTED"])
    def test_terminal_change_order_is_frozen(self, cache, project, terminal):
        co = make_change_order(project, make_request(project, status="OUT_OF_SCOPE"), status=terminal)
        for kwargs in ({"status": "PENDING"}, {"status": "APPROVED"}, {"price_usd": "1.00"}):
            with pytest.raises(ConflictError) as exc:
                self._update(cache, project, co, **kwargs)
            assert exc.value.code == ServiceErrorCode.INVALID_STATUS_UPDATE

    def test_unknown_status_is_validation_error(self, cache, project):
        co = make_change_order(project, make_request(project, status="OUT_OF_SCOPE"))
        with pytest.raises(ValidationError):
            self._update(cache, project, co, status="CANCELLED")

    def test_missing_change_order(self, cache, project):
        with pytest.raises(NotFoundError) as exc:
            svc.update_change_order(
                session=db.session, cache=cache, project_id=project.id,
                change_order_id="nope", user_id=project.user_id, status="APPROVED",
            )
        assert exc.value.code == ServiceErrorCode.CHANGE_ORDER_NOT_FOUND

    def test_ownership_checked_before_state(self, cache, project):
        intruder = make_user(external_id="user_mallory", email="m@example.com")
        co = make_change_order(project, make_request(project, status="OUT_OF_SCOPE"), status="APPROVED")
        with pytest.raises(NotFoundError) as exc:
            svc.update_change_order(
                session=db.session, cache=cache, project_id=project.id,
                change_order_id=co.id, user_id=intruder.id, status="REJECTED",
            )
        assert exc.value.code == ServiceErrorCode.PROJECT_NOT_FOUND


class TestDelete:
    def test_delete_pending(self, cache, project):
        co = make_change_order(project, make_request(project, status="OUT_OF_SCOPE"))
        result = svc.delete_change_order(
            session=db.session, cache=cache, project_id=project.id,
            change_order_id=co.id, user_id=project.user_id,
        )
        assert result == {"id": co.id}
        assert db.session.query(ChangeOrder).count() == 0

    def test_decided_change_order_cannot_be_deleted(self, cache, project):
        co = make_change_order(project, make_request(project, status="OUT_OF_SCOPE"), status="APPROVED")
        with pytest.raises(ConflictError) as exc:
            svc.delete_change_order(
                session=db.session, cache=cache, project_id=project.id,
                change_order_id=co.id, user_id=project.user_id,
            )
        assert exc.value.code == ServiceErrorCode.INVALID_STATUS_UPDATE


class TestListAndGet:
    def test_list_newest_first_with_request_summary(self, cache, project):
        earlier = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
        r1 = make_request(project, description="first", status="OUT_OF_SCOPE")
        r2 = make_request(project, description="second", status="OUT_OF_SCOPE")
        make_change_order(project, r1, created_at=earlier)
        make_change_order(project, r2, created_at=earlier + timedelta(hours=1))
        orders = svc.list_change_orders(session=db.session, project_id=project.id, user_id=project.user_id)
        assert [o.request.description for o in orders] == ["second", "first"]
        assert orders[0].to_dict()["request"]["description"] == "second"

    def test_get_from_other_project_is_not_found(self, cache, user, project):
        other = make_project(user, name="Other")
        co = make_change_order(other, make_request(other, status="OUT_OF_SCOPE"))
        with pytest.raises(NotFoundError) as exc:
            svc.get_change_order(
                session=db.session, project_id=project.id, change_order_id=co.id, user_id=user.id,
            )
        assert exc.value.code == ServiceErrorCode.CHANGE_ORDER_NOT_FOUND


# ═════════════════════════════════════════════════════════════════════════════
# 5. Cache invalidation
# ═════════════════════════════════════════════════════════════════════════════


class TestCacheInvalidation:
    """Every committed change order mutation drops project:{id} and dashboard:{user}."""

    def _seed(self, cache, project):
        cache.set(project_key(project.id), {"stale": True})
        cache.set(dashboard_key(project.user_id), {"stale": True})

    def _assert_dropped(self, cache, project):
        assert cache.get(project_key(project.id)) is None
        assert cache.get(dashboard_key(project.user_id)) is None

    def test_create_invalidates(self, cache, project):
        req = make_request(project, status="OUT_OF_SCOPE")
        self._seed(cache, project)
        _create(cache, project, req)
        self._assert_dropped(cache, project)

    def test_update_invalidates(self, cache, project):
        co = make_change_order(project, make_request(project, status="OUT_OF_SCOPE"))
        self._seed(cache, project)
        svc.update_change_order(
            session=db.session, cache=cache, project_id=project.id,
            change_order_id=co.id, user_id=project.user_id, status="APPROVED",
        )
        self._assert_dropped(cache, project)

    def test_delete_invalidates(self, cache, project):
        co = make_change_order(project, make_request(project, status="OUT_OF_SCOPE"))
        self._seed(cache, project)
        svc.delete_change_order(
            session=db.session, cache=cache, project_id=project.id,
            change_order_id=co.id, user_id=project.user_id,
        )
        self._assert_dropped(cache, project)

    def test_rejected_update_keeps_cache(self, cache, project):
        co = make_change_order(project, make_request(project, status="OUT_OF_SCOPE"), status="APPROVED")
        self._seed(cache, project)
        with pytest.raises(ConflictError):
            svc.update_change_order(
                session=db.session, cache=cache, project_id=project.id,
                change_order_id=co.id, user_id=project.user_id, status="REJECTED",
            )
        assert cache.get(project_key(project.id)) == {"stale": True}
