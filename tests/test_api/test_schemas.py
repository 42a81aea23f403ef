"""Test Pydantic schema validation."""

from __future__ import annotations

import uuid

import pytest
from pydantic import ValidationError


class TestJobcardSchemas:
    def test_jobcard_create_valid(self):
        from jobcards.models.schemas import JobcardCreate

        node_id = uuid.uuid4()
        data = JobcardCreate(wbs_node_id=node_id, title="Erect columns grid 1-6")
        assert data.wbs_node_id == node_id
        assert data.description is None

    def test_jobcard_create_requires_title(self):
        from jobcards.models.schemas import JobcardCreate

        with pytest.raises(ValidationError):
            JobcardCreate(wbs_node_id=uuid.uuid4(), title="")

    def test_jobcard_update_rejects_unknown_status(self):
        from jobcards.models.schemas import JobcardUpdate

        with pytest.raises(ValidationError):
            JobcardUpdate(status="cancelled")

    def test_jobcard_update_partial(self):
        from jobcards.models.schemas import JobcardUpdate

        data = JobcardUpdate(status="in_progress")
        dump = data.model_dump(exclude_unset=True)
        assert dump == {"status": "in_progress"}


class TestWbsSchemas:
    def test_wbs_create_top_level(self):
        from jobcards.models.schemas import WbsNodeCreate

        data = WbsNodeCreate(name="Foundations")
        assert data.parent_id is None

    def test_wbs_update_rejects_empty_name(self):
        from jobcards.models.schemas import WbsNodeUpdate

        with pytest.raises(ValidationError):
            WbsNodeUpdate(name="")


class TestAdminSchemas:
    @pytest.mark.parametrize("role", ["none", "member", "manager", "admin"])
    def test_role_assignment_accepts_known_roles(self, role):
        from jobcards.models.schemas import RoleAssignment

        assert RoleAssignment(role=role).role == role

    def test_role_assignment_rejects_other_roles(self):
        from jobcards.models.schemas import RoleAssignment

        with pytest.raises(ValidationError):
            RoleAssignment(role="owner")

    def test_project_number_pattern(self):
        from jobcards.models.schemas import ProjectCreate

        assert ProjectCreate(projectnumber="10305").projectnumber == "10305"
        with pytest.raises(ValidationError):
            ProjectCreate(projectnumber="103 05")

    def test_project_item_sequence_range(self):
        from jobcards.models.schemas import ProjectItemCreate

        with pytest.raises(ValidationError):
            ProjectItemCreate(item_seq=1000)

    def test_hse_answers_keys_are_question_ids(self):
        from jobcards.models.schemas import HseAnswersSubmit

        qid = uuid.uuid4()
        data = HseAnswersSubmit(responder_name="Jo", answers={str(qid): "Yes"})
        assert data.answers == {qid: "Yes"}
