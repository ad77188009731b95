"""
Tests for the join code lifecycle at the manager level: generation, preview,
redemption, usage caps, expiry, legacy group codes and the best-effort usage
counter.
"""
import re
from datetime import datetime, timedelta

import pytest
import pytz
from sqlalchemy.exc import OperationalError

from core.exceptions import (
    AlreadyMember,
    CodeDeactivated,
    CodeExpired,
    CodeNotFound,
    DuplicateGroupCode,
    Forbidden,
    GenerationExhausted,
    GroupNotFound,
    InvalidInput,
    UsageLimitReached,
)
from models.group_member import GroupMemberModel
from models.join_code import JoinCodeModel
from models.user import UserModel
from utils import join_code as join_code_module
from utils import join_code_manager as join_code_manager_module
from utils.join_code import parse_timestamp
from utils.join_code_manager import JoinCodeManager


@pytest.fixture
def manager(db_session):
    return JoinCodeManager(db_session)


@pytest.fixture
def teacher(make_user):
    return make_user("teacher", fullname="Ada Lovelace")


@pytest.fixture
def group(make_group, teacher):
    return make_group(teacher, name="Biology 101", subject="Biology")


def _members(db_session, group_id):
    db_session.expire_all()
    return db_session.query(GroupMemberModel).filter(GroupMemberModel.group_id == group_id).all()


def _reload(db_session, code):
    db_session.expire_all()
    return db_session.query(JoinCodeModel).filter(JoinCodeModel.code == code).one()


def test_generate_persists_fresh_code(manager, teacher, group):
    model = manager.generate_join_code(group.id, teacher, max_uses=5)

    assert re.fullmatch(r"[A-Z0-9]{8}", model.code)
    assert model.group_id == group.id
    assert model.max_uses == 5
    assert model.current_uses == 0
    assert model.is_active is True
    assert model.expires_at is None
    assert model.created_by == teacher.user_id


def test_generate_sets_expiry_from_days(manager, teacher, group):
    before = datetime.now(pytz.utc)
    model = manager.generate_join_code(group.id, teacher, expiration_days=7)

    expires_at = parse_timestamp(model.expires_at)
    assert before + timedelta(days=7) <= expires_at <= datetime.now(pytz.utc) + timedelta(days=7)


def test_generated_codes_are_unique(manager, teacher, group):
    codes = {manager.generate_join_code(group.id, teacher).code for _ in range(30)}
    assert len(codes) == 30


def test_generate_rejects_non_owner(manager, make_user, group):
    other_teacher = make_user("teacher")
    with pytest.raises(Forbidden):
        manager.generate_join_code(group.id, other_teacher)


def test_generate_rejects_admin_who_does_not_own_group(manager, make_user, group):
    admin = make_user("admin")
    with pytest.raises(Forbidden):
        manager.generate_join_code(group.id, admin)


def test_generate_unknown_group(manager, teacher):
    with pytest.raises(GroupNotFound):
        manager.generate_join_code("missing", teacher)


@pytest.mark.parametrize("max_uses, expiration_days", [(0, None), (-2, None), (1, 0)])
def test_generate_rejects_invalid_limits(manager, teacher, group, max_uses, expiration_days):
    with pytest.raises(InvalidInput):
        manager.generate_join_code(group.id, teacher, max_uses, expiration_days)


def test_generate_exhausted_when_every_code_collides(manager, teacher, group, db_session, monkeypatch):
    monkeypatch.setattr(manager, "_code_exists", lambda code: True)

    with pytest.raises(GenerationExhausted):
        manager.generate_join_code(group.id, teacher)
    assert db_session.query(JoinCodeModel).count() == 0


def test_validate_returns_preview_without_side_effects(manager, teacher, group, make_user, db_session):
    code = manager.generate_join_code(group.id, teacher, max_uses=1).code
    student = make_user("student")

    info = manager.validate_join_code(code.lower(), student.user_id)

    assert info.group_id == group.id
    assert info.class_name == "Biology 101"
    assert info.subject == "Biology"
    assert info.teacher_name == "Ada Lovelace"
    assert _reload(db_session, code).current_uses == 0
    assert _members(db_session, group.id) == []


def test_validate_preview_fallbacks(manager, make_user, make_group, db_session):
    teacher = make_user("teacher")
    group = make_group(teacher, subject=None)
    db_session.query(UserModel).filter(UserModel.user_id == teacher.user_id).update(
        {UserModel.fullname: None}
    )
    db_session.commit()
    code = manager.generate_join_code(group.id, teacher).code

    info = manager.validate_join_code(code, make_user("student").user_id)

    assert info.subject == "N/A"
    assert info.teacher_name == "Unknown Teacher"


def test_unknown_code(manager, make_user):
    student = make_user("student")
    with pytest.raises(CodeNotFound):
        manager.validate_join_code("NOPE1234", student.user_id)
    with pytest.raises(CodeNotFound):
        manager.redeem_join_code("NOPE1234", student.user_id)


def test_unlimited_code_never_hits_usage_limit(manager, teacher, group, make_user, db_session):
    code = manager.generate_join_code(group.id, teacher, max_uses=-1).code

    for _ in range(6):
        assert manager.redeem_join_code(code, make_user("student").user_id) == group.id

    assert _reload(db_session, code).current_uses == 6
    assert len(_members(db_session, group.id)) == 6


def test_capped_code_admits_exactly_max_uses_students(manager, teacher, group, make_user, db_session):
    code = manager.generate_join_code(group.id, teacher, max_uses=3).code

    for _ in range(3):
        manager.redeem_join_code(code, make_user("student").user_id)

    late_student = make_user("student")
    with pytest.raises(UsageLimitReached):
        manager.validate_join_code(code, late_student.user_id)
    with pytest.raises(UsageLimitReached):
        manager.redeem_join_code(code, late_student.user_id)

    assert _reload(db_session, code).current_uses == 3
    assert len(_members(db_session, group.id)) == 3


def test_expired_code_fails_even_when_unused(manager, teacher, group, make_user):
    code = manager.generate_join_code(group.id, teacher, expiration_days=1).code
    student = make_user("student")
    later = datetime.now(pytz.utc) + timedelta(days=2)

    with pytest.raises(CodeExpired):
        manager.validate_join_code(code, student.user_id, now=later)
    with pytest.raises(CodeExpired):
        manager.redeem_join_code(code, student.user_id, now=later)


def test_deactivated_code_fails(manager, teacher, group, make_user):
    code = manager.generate_join_code(group.id, teacher).code
    manager.set_join_code_active(group.id, code, teacher, False)
    student = make_user("student")

    with pytest.raises(CodeDeactivated):
        manager.validate_join_code(code, student.user_id)
    with pytest.raises(CodeDeactivated):
        manager.redeem_join_code(code, student.user_id)

    manager.set_join_code_active(group.id, code, teacher, True)
    assert manager.redeem_join_code(code, student.user_id) == group.id


def test_set_active_rejects_code_of_another_group(manager, teacher, group, make_group):
    other_group = make_group(teacher, name="Chemistry")
    code = manager.generate_join_code(other_group.id, teacher).code

    with pytest.raises(CodeNotFound):
        manager.set_join_code_active(group.id, code, teacher, False)


def test_same_student_twice_is_already_member(manager, teacher, group, make_user, db_session):
    code = manager.generate_join_code(group.id, teacher).code
    student = make_user("student")

    manager.redeem_join_code(code, student.user_id)
    with pytest.raises(AlreadyMember):
        manager.redeem_join_code(code, student.user_id)
    with pytest.raises(AlreadyMember):
        manager.validate_join_code(code, student.user_id)

    assert len(_members(db_session, group.id)) == 1
    assert _reload(db_session, code).current_uses == 1


def test_legacy_group_code_is_backfilled(manager, make_group, teacher, make_user, db_session):
    group = make_group(teacher, code="abc123")
    student = make_user("student")

    info = manager.validate_join_code("ABC123", student.user_id)

    assert info.group_id == group.id
    backfilled = _reload(db_session, "ABC123")
    assert backfilled.group_id == group.id
    assert backfilled.max_uses == -1
    assert backfilled.is_active is True
    assert backfilled.expires_at is None
    assert backfilled.created_by == teacher.user_id


def test_legacy_backfill_is_idempotent(manager, make_group, teacher, db_session):
    make_group(teacher, code="LEG001")

    first = manager.get_or_create_join_code("leg001")
    second = manager.get_or_create_join_code("LEG001")

    assert first.id == second.id
    assert db_session.query(JoinCodeModel).count() == 1


def test_redeem_with_legacy_group_code(manager, make_group, teacher, make_user, db_session):
    group = make_group(teacher, code="LEG002")

    assert manager.redeem_join_code("leg002", make_user("student").user_id) == group.id
    assert _reload(db_session, "LEG002").current_uses == 1


def test_counter_failure_does_not_undo_enrollment(manager, teacher, group, make_user, db_session, monkeypatch):
    code = manager.generate_join_code(group.id, teacher, max_uses=5).code
    student = make_user("student")

    def broken_claim(join_code_id):
        raise OperationalError("UPDATE class_join_codes", {}, Exception("database is locked"))

    monkeypatch.setattr(manager, "_claim_use", broken_claim)

    assert manager.redeem_join_code(code, student.user_id) == group.id
    assert [m.student_id for m in _members(db_session, group.id)] == [student.user_id]
    assert _reload(db_session, code).current_uses == 0


def test_claim_refuses_to_exceed_cap(manager, teacher, group, make_user, db_session, monkeypatch):
    code = manager.generate_join_code(group.id, teacher, max_uses=1).code
    manager.redeem_join_code(code, make_user("student").user_id)

    # Simulate a redemption that passed the checks before the last seat went
    monkeypatch.setattr(join_code_manager_module, "ensure_join_code_valid", lambda join_code, now: None)
    late_student = make_user("student")

    with pytest.raises(UsageLimitReached):
        manager.redeem_join_code(code, late_student.user_id)

    assert _reload(db_session, code).current_uses == 1
    assert len(_members(db_session, group.id)) == 1


def test_single_use_code_scenario(manager, teacher, group, make_user):
    code = manager.generate_join_code(group.id, teacher, max_uses=1, expiration_days=None).code
    first_student = make_user("student")
    second_student = make_user("student")

    preview = manager.validate_join_code(code.lower(), first_student.user_id)
    assert preview.group_id == group.id

    assert manager.redeem_join_code(code, first_student.user_id) == group.id
    with pytest.raises(UsageLimitReached):
        manager.redeem_join_code(code, second_student.user_id)


def test_list_join_codes_requires_owner(manager, teacher, group, make_user):
    manager.generate_join_code(group.id, teacher)
    manager.generate_join_code(group.id, teacher)

    assert len(manager.list_join_codes(group.id, teacher)) == 2
    with pytest.raises(Forbidden):
        manager.list_join_codes(group.id, make_user("teacher"))


def test_group_code_cannot_take_a_live_join_code(manager, teacher, group, make_user, make_group):
    code = manager.generate_join_code(group.id, teacher).code

    with pytest.raises(DuplicateGroupCode):
        make_group(make_user("teacher"), name="Other class", code=code.lower())

    assert manager.redeem_join_code(code, make_user("student").user_id) == group.id


def test_join_code_draw_skips_legacy_group_code(manager, teacher, group, make_user, make_group, monkeypatch):
    legacy_group = make_group(make_user("teacher"), name="Legacy class", code="LEGACY01")
    draws = iter(["LEGACY01", "FRESH001"])
    monkeypatch.setattr(join_code_module, "generate_code", lambda length=8, alphabet=None: next(draws))

    model = manager.generate_join_code(group.id, teacher)

    assert model.code == "FRESH001"
    assert manager.redeem_join_code("LEGACY01", make_user("student").user_id) == legacy_group.id
