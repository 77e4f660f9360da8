# SPDX-License-Identifier: Apache-2.0
"""Session lifecycle at the service layer: start rules, strict block order, completion."""
import pytest

from researchhub.core.exceptions import AuthorizationError, ConflictError, StateError, ValidationError
from researchhub.core.identity import Caller
from researchhub.core.lifecycle import ReviewDecision, SessionStatus, StudyStatus
from researchhub.models import StudySession
from researchhub.schemas import BlockDef, StudyCreate
from researchhub.services import application_service, session_service, study_service

BLOCKS = [
    BlockDef(block_key="welcome", block_type="welcome"),
    BlockDef(block_key="question1", block_type="open_question"),
    BlockDef(block_key="question2", block_type="open_question"),
    BlockDef(block_key="block_4_thank_you", block_type="thank_you"),
]


def _application(db, owner, participant, decision=ReviewDecision.ACCEPT, blocks=BLOCKS):
    study = study_service.create_study(db, owner, StudyCreate(title="Nav test", is_public=True, max_participants=1, blocks=blocks))
    study_service.transition_study(db, owner, study.id, StudyStatus.ACTIVE)
    app = application_service.submit(db, participant, study.id, {})
    if decision is not None:
        app = application_service.review(db, owner, app.id, decision)
    return app


def test_start_accepted_application(db, researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    assert s.status == "active"
    assert s.current_block_index == 0
    assert s.study_id == app.study_id


@pytest.mark.parametrize("decision", [None, ReviewDecision.REJECT])
def test_start_requires_accepted(db, researcher, participant, decision):
    app = _application(db, researcher, participant, decision=decision)
    with pytest.raises(StateError):
        session_service.start(db, participant, app.id)


def test_start_by_someone_else_is_authorization_error(db, researcher, participant):
    app = _application(db, researcher, participant)
    intruder = Caller(user_id=participant.user_id + "-x", token_role="participant")
    with pytest.raises(AuthorizationError):
        session_service.start(db, intruder, app.id)


def test_second_active_session_is_conflict(db, researcher, participant):
    app = _application(db, researcher, participant)
    session_service.start(db, participant, app.id)
    with pytest.raises(ConflictError):
        session_service.start(db, participant, app.id)


def test_answers_follow_block_order(db, researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    s, done = session_service.record_answer(db, participant, s.id, "welcome", None)
    assert s.current_block_index == 1
    assert done is False
    with pytest.raises(ValidationError):
        session_service.record_answer(db, participant, s.id, "question2", "skipped ahead")
    db.refresh(s)
    assert s.current_block_index == 1
    with pytest.raises(ValidationError):
        session_service.record_answer(db, participant, s.id, "welcome", "revisit")
    db.refresh(s)
    assert s.current_block_index == 1


def test_closing_block_reports_completion(db, researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    for key in ("welcome", "question1", "question2"):
        s, done = session_service.record_answer(db, participant, s.id, key, {"text": key})
        assert not done
    s, done = session_service.record_answer(db, participant, s.id, "block_4_thank_you", None)
    assert done is True
    with pytest.raises(StateError):
        session_service.record_answer(db, participant, s.id, "block_4_thank_you", None)


def test_last_block_flag_reports_completion(db, researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    _, done = session_service.record_answer(db, participant, s.id, "welcome", None, is_last_block=True)
    assert done is True


def test_explicit_terminal_block_without_closing_type(db, researcher, participant):
    blocks = [
        BlockDef(block_key="intro", block_type="welcome"),
        BlockDef(block_key="rating", block_type="opinion_scale", is_terminal=True),
    ]
    app = _application(db, researcher, participant, blocks=blocks)
    s = session_service.start(db, participant, app.id)
    session_service.record_answer(db, participant, s.id, "intro", None)
    _, done = session_service.record_answer(db, participant, s.id, "rating", 4)
    assert done is True


def test_stale_expected_index_is_conflict(db, researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    session_service.record_answer(db, participant, s.id, "welcome", None, expected_block_index=0)
    with pytest.raises(ConflictError):
        session_service.record_answer(db, participant, s.id, "question1", "a", expected_block_index=0)
    db.refresh(s)
    assert s.current_block_index == 1


def test_only_participant_answers(db, researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    with pytest.raises(AuthorizationError):
        session_service.record_answer(db, researcher, s.id, "welcome", None)


def test_responses_replay_successful_calls(db, researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    calls = [("welcome", None), ("question1", "fast checkout"), ("question2", {"rating": 5})]
    for block_id, answer in calls:
        session_service.record_answer(db, participant, s.id, block_id, answer)
        with pytest.raises(ValidationError):
            session_service.record_answer(db, participant, s.id, "welcome-typo", "noise")
    replayed = [(r.block_id, session_service.response_to_dict(r)["answer"]) for r in session_service.replay(db, participant, s.id)]
    assert replayed == calls
    assert [r.position for r in session_service.list_responses(db, s.id)] == [0, 1, 2]


def test_replay_visible_to_owner_not_other_researcher(db, researcher, other_researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    assert session_service.replay(db, researcher, s.id) == []
    with pytest.raises(AuthorizationError):
        session_service.replay(db, other_researcher, s.id)


def test_complete_then_immutable(db, researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    session_service.record_answer(db, participant, s.id, "welcome", None)
    s = session_service.complete(db, participant, s.id)
    assert s.status == "completed"
    assert s.completed_at is not None
    with pytest.raises(StateError):
        session_service.complete(db, participant, s.id)
    with pytest.raises(StateError):
        session_service.record_answer(db, participant, s.id, "question1", "late")
    assert db.get(StudySession, s.id).current_block_index == 1


def test_new_session_after_completion(db, researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    session_service.complete(db, participant, s.id)
    again = session_service.start(db, participant, app.id)
    assert again.id != s.id


def test_study_sessions_listed_for_owner_only(db, researcher, other_researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    session_service.record_answer(db, participant, s.id, "welcome", "hi")
    listed = session_service.list_for_study(db, researcher, app.study_id)
    assert [x.id for x in listed] == [s.id]
    responses = session_service.responses_by_session(db, [s.id])
    assert [r.block_id for r in responses[s.id]] == ["welcome"]
    with pytest.raises(AuthorizationError):
        session_service.list_for_study(db, other_researcher, app.study_id)


def test_study_sessions_status_filter(db, researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    session_service.complete(db, participant, s.id)
    assert session_service.list_for_study(db, researcher, app.study_id, SessionStatus.ACTIVE) == []
    assert [x.id for x in session_service.list_for_study(db, researcher, app.study_id, SessionStatus.COMPLETED)] == [s.id]


def test_participant_finds_active_session_to_resume(db, researcher, participant):
    app = _application(db, researcher, participant)
    s = session_service.start(db, participant, app.id)
    with pytest.raises(ConflictError):
        session_service.start(db, participant, app.id)
    active = session_service.list_for_participant(db, participant.user_id, SessionStatus.ACTIVE)
    assert [x.id for x in active] == [s.id]
