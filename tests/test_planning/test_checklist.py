"""Tests for HSE checklist assembly and add-only answer collection."""

from __future__ import annotations

import uuid
from types import SimpleNamespace

import pytest

from jobcards.planning.checklist import build_checklist, collect_new_responses, summarize


def _response(question, value):
    return SimpleNamespace(question_id=question.id, response_value=value, responder_name="Sam")


@pytest.fixture
def questions(sample_topics):
    t = sample_topics
    return [t.q1, t.q2, t.q3]


class TestBuildChecklist:
    def test_nothing_attached(self, sample_topics, questions):
        topics = [sample_topics.hot, sample_topics.wah]
        assert build_checklist(topics, questions, [], []) == []

    def test_only_attached_topics_in_given_order(self, sample_topics, questions):
        t = sample_topics
        checklist = build_checklist([t.hot, t.wah], questions, [t.wah.id, t.hot.id], [])

        assert [entry.topic.code for entry in checklist] == ["HOT", "WAH"]
        assert [q.question.id for q in checklist[1].questions] == [t.q1.id, t.q2.id]

    def test_responses_are_paired(self, sample_topics, questions):
        t = sample_topics
        checklist = build_checklist([t.wah], questions, [t.wah.id], [_response(t.q1, "Yes")])

        first, second = checklist[0].questions
        assert first.answered
        assert first.response.response_value == "Yes"
        assert not second.answered

    def test_blank_response_is_not_answered(self, sample_topics, questions):
        t = sample_topics
        checklist = build_checklist([t.wah], questions, [t.wah.id], [_response(t.q2, "  ")])
        assert not checklist[0].questions[1].answered


class TestSummary:
    def test_counts(self, sample_topics, questions):
        t = sample_topics
        checklist = build_checklist(
            [t.hot, t.wah], questions, [t.hot.id, t.wah.id], [_response(t.q3, "No")]
        )
        summary = summarize(checklist)
        assert (summary.total, summary.answered) == (3, 1)
        assert not summary.all_answered

    def test_all_answered(self, sample_topics, questions):
        t = sample_topics
        checklist = build_checklist([t.hot], questions, [t.hot.id], [_response(t.q3, "Yes")])
        assert summarize(checklist).all_answered

    def test_empty_checklist_is_not_complete(self):
        summary = summarize([])
        assert summary.total == 0
        assert not summary.all_answered


class TestCollectNewResponses:
    @pytest.fixture
    def checklist(self, sample_topics, questions):
        t = sample_topics
        return build_checklist(
            [t.hot, t.wah], questions, [t.hot.id, t.wah.id], [_response(t.q3, "Yes")]
        )

    def test_new_answers_become_rows(self, checklist, sample_topics):
        t = sample_topics
        rows = collect_new_responses(
            checklist, {t.q1.id: "yes", t.q2.id: " RP-7 "}, responder_name=" Jo Site "
        )
        assert rows == [
            {"question_id": t.q1.id, "response_value": "Yes", "responder_name": "Jo Site"},
            {"question_id": t.q2.id, "response_value": "RP-7", "responder_name": "Jo Site"},
        ]

    def test_answered_questions_are_not_overwritten(self, checklist, sample_topics):
        rows = collect_new_responses(checklist, {sample_topics.q3.id: "No"})
        assert rows == []

    def test_blank_and_missing_drafts_are_skipped(self, checklist, sample_topics):
        rows = collect_new_responses(checklist, {sample_topics.q1.id: "   ", sample_topics.q2.id: None})
        assert rows == []

    def test_drafts_outside_checklist_are_ignored(self, checklist):
        assert collect_new_responses(checklist, {uuid.uuid4(): "Yes"}) == []

    def test_blank_responder_name_is_none(self, checklist, sample_topics):
        rows = collect_new_responses(checklist, {sample_topics.q1.id: "No"}, responder_name="  ")
        assert rows[0]["responder_name"] is None

    def test_yes_no_rejects_other_answers(self, checklist, sample_topics):
        with pytest.raises(ValueError, match="must be Yes or No"):
            collect_new_responses(checklist, {sample_topics.q1.id: "maybe"})
