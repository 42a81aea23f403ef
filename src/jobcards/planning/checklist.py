"""HSE checklist assembly for a single jobcard.

A jobcard carries a set of attached HSE topics. Its checklist is every
question of every attached topic, each paired with the response recorded
for this jobcard (if any). Responses are add-only: once a question has a
recorded answer it is shown read-only and never overwritten.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

YES_NO = "yes_no"


@dataclass
class ChecklistQuestion:
    question: Any
    response: Any | None = None

    @property
    def answered(self) -> bool:
        return bool(recorded_value(self.response))


@dataclass
class ChecklistTopic:
    topic: Any
    questions: list[ChecklistQuestion] = field(default_factory=list)


@dataclass
class ChecklistSummary:
    total: int
    answered: int

    @property
    def all_answered(self) -> bool:
        return self.total > 0 and self.answered == self.total


def recorded_value(response: Any | None) -> str:
    if response is None:
        return ""
    return (response.response_value or "").strip()


def build_checklist(
    topics: Iterable[Any],
    questions: Iterable[Any],
    attached_topic_ids: Iterable[Any],
    responses: Iterable[Any],
) -> list[ChecklistTopic]:
    """Assemble the checklist for the attached topics.

    *topics* keep their given order (usually by code) and questions keep
    their given order within each topic (usually by sort order).
    """
    attached = set(attached_topic_ids)
    if not attached:
        return []

    response_by_question = {r.question_id: r for r in responses}

    questions_by_topic: dict[Any, list[Any]] = {}
    for q in questions:
        questions_by_topic.setdefault(q.topic_id, []).append(q)

    return [
        ChecklistTopic(
            topic=topic,
            questions=[
                ChecklistQuestion(question=q, response=response_by_question.get(q.id))
                for q in questions_by_topic.get(topic.id, [])
            ],
        )
        for topic in topics
        if topic.id in attached
    ]


def summarize(checklist: Iterable[ChecklistTopic]) -> ChecklistSummary:
    total = answered = 0
    for entry in checklist:
        total += len(entry.questions)
        answered += sum(1 for q in entry.questions if q.answered)
    return ChecklistSummary(total=total, answered=answered)


def normalize_answer(question: Any, value: str) -> str:
    """Validate a draft answer against the question's response type."""
    if question.response_type == YES_NO:
        lowered = value.lower()
        if lowered == "yes":
            return "Yes"
        if lowered == "no":
            return "No"
        raise ValueError(f"Answer to '{question.question_text}' must be Yes or No.")
    return value


def collect_new_responses(
    checklist: Iterable[ChecklistTopic],
    drafts: Mapping[Any, str | None],
    responder_name: str | None = None,
) -> list[dict[str, Any]]:
    """Turn draft answers into response rows to insert.

    Questions without a draft, blank drafts and questions already answered
    are skipped. Drafts for questions outside the checklist are ignored.

    Raises:
        ValueError: If a yes/no question gets any other answer.
    """
    name = (responder_name or "").strip() or None
    rows: list[dict[str, Any]] = []

    for entry in checklist:
        for item in entry.questions:
            raw = drafts.get(item.question.id)
            if raw is None:
                continue
            value = raw.strip()
            if not value or item.answered:
                continue
            rows.append(
                {
                    "question_id": item.question.id,
                    "response_value": normalize_answer(item.question, value),
                    "responder_name": name,
                }
            )
    return rows
