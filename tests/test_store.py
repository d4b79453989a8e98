"""
Tests for the record store and schedule accessor over the in-memory Firestore.
"""

from meal_service.models import SchedulePatch, User
from meal_service.models.schedule import SCHEDULE_DOC_ID
from meal_service.models.store import SCHEDULE_COLLECTION


def test_find_users_filters_on_equality(store, add_user):
    add_user("alice")
    add_user("bob", is_away=True)
    add_user("carol", has_eaten=True)

    present = sorted(u.firebase_uid for u in store.find_users(is_away=False))
    assert present == ["alice", "carol"]
    assert [u.firebase_uid for u in store.find_users(is_away=False, has_eaten=True)] == ["carol"]


def test_update_user_returns_stored_state(store, add_user):
    add_user("alice")
    user = store.update_user("alice", {"missed_meals_count": 3})

    assert isinstance(user, User)
    assert user.missed_meals_count == 3
    assert store.get_user("alice").missed_meals_count == 3


def test_stored_documents_are_copies(store, add_user):
    add_user("alice")
    user = store.get_user("alice")
    user.meal_history.append(None)

    assert store.get_user("alice").meal_history == []


def test_schedule_is_a_singleton(accessor, db):
    accessor.get()
    accessor.update(SchedulePatch(lunch_time="13:15"))
    accessor.get()

    docs = db.collection(SCHEDULE_COLLECTION).get()
    assert [doc.id for doc in docs] == [SCHEDULE_DOC_ID]
    assert docs[0].to_dict() == {"lunch_time": "13:15", "dinner_time": "19:00"}


def test_empty_patch_fields_are_ignored(accessor):
    accessor.update(SchedulePatch(lunch_time="11:45"))
    schedule = accessor.update(SchedulePatch(lunch_time="", dinner_time=None))

    assert schedule.lunch_time == "11:45"
    assert schedule.dinner_time == "19:00"
