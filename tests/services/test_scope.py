from __future__ import annotations

import asyncio
import uuid
from decimal import Decimal

import pytest

from instructor_analytics.db.tables import PurchaseRow
from instructor_analytics.models.course import Course
from instructor_analytics.models.purchase import Purchase
from instructor_analytics.repos.pg_purchase_repo import _row_to_purchase
from instructor_analytics.repos.store import RecordStore
from instructor_analytics.services.scope import InstructorScope, resolve_scope
from tests.factories import FIXED_NOW, add_course, add_instructor


def test_scope_keeps_only_the_instructors_courses() -> None:
    me, other = uuid.uuid4(), uuid.uuid4()
    mine = [Course.new(title=f"C{i}", creator_id=me) for i in range(3)]
    theirs = Course.new(title="Theirs", creator_id=other)

    scope = InstructorScope.of(me, [*mine, theirs])

    assert [c.id for c in scope.courses] == sorted(c.id for c in mine)
    assert scope.course_ids == frozenset(c.id for c in mine)
    assert not scope.owns(theirs.id)
    with pytest.raises(KeyError):
        scope.ref(theirs.id)


def test_empty_scope() -> None:
    scope = InstructorScope.of(uuid.uuid4(), [])

    assert scope.courses == ()
    assert scope.course_ids == frozenset()


def test_resolve_scope_reads_courses_by_creator(store: RecordStore) -> None:
    instructor = add_instructor(store)
    other = add_instructor(store, "Other")
    mine = add_course(store, instructor, "Mine", price=12.5)
    add_course(store, other, "Theirs")

    scope = asyncio.run(resolve_scope(store.courses, instructor.id))

    assert scope.course_ids == {mine.id}
    ref = scope.ref(mine.id)
    assert ref.title == "Mine"
    assert ref.price == 12.5


# ---------------------------------------------------------------------------
# Record validation
# ---------------------------------------------------------------------------


def test_purchase_rejects_negative_amount() -> None:
    with pytest.raises(ValueError, match="non-negative"):
        Purchase.new(course_id=uuid.uuid4(), user_id=uuid.uuid4(), amount=-1.0)


def test_purchase_rejects_unknown_status() -> None:
    with pytest.raises(ValueError, match="unknown status"):
        Purchase.new(
            course_id=uuid.uuid4(), user_id=uuid.uuid4(), amount=1.0, status="refunded"
        )


def test_course_rejects_negative_price() -> None:
    with pytest.raises(ValueError, match="non-negative"):
        Course.new(title="Bad", creator_id=uuid.uuid4(), price=-5.0)


def test_purchase_row_with_negative_amount_is_rejected() -> None:
    row = PurchaseRow(
        id=uuid.uuid4(),
        course_id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        amount=Decimal("-5.00"),
        status="completed",
        created_at=FIXED_NOW,
    )

    with pytest.raises(ValueError, match="non-negative"):
        _row_to_purchase(row)


@pytest.mark.parametrize(
    ("given", "held"),
    [(0.1, Decimal("0.10")), (55.33, Decimal("55.33")), ("19.999", Decimal("20.00"))],
)
def test_amounts_are_held_as_cents(given: float | str, held: Decimal) -> None:
    purchase = Purchase.new(course_id=uuid.uuid4(), user_id=uuid.uuid4(), amount=given)

    assert purchase.amount == held
    assert isinstance(purchase.amount, Decimal)


def test_non_finite_amount_is_rejected() -> None:
    with pytest.raises(ValueError, match="finite"):
        Purchase.new(
            course_id=uuid.uuid4(), user_id=uuid.uuid4(), amount=float("nan")
        )
