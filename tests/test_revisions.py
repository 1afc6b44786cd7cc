"""Test the revision and approval state machine.

Test cases:
- Submissions count against the revision limit; unlimited when unset
- Approved projects are locked until reopened; reopening keeps the count
- Approval is one-shot, notifies once, and survives a failing notifier
- Concurrent submissions never overshoot the limit
"""
import asyncio
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.exceptions import (
    NotFoundException,
    ProjectLockedException,
    RevisionLimitExceededException,
    ValidationException,
)
from reviewgate.models.enums import ApprovalStatus
from reviewgate.models.project import Project, ProjectVersion
from reviewgate.models.user import User
from reviewgate.usecase.revision_usecase import RevisionUsecase


async def submit(usecase: RevisionUsecase, project_id, name: str = "mix.wav"):
    return await usecase.submit_new_version(
        project_id, storage_key=f"projects/{project_id}/{uuid4()}_{name}", original_filename=name
    )


async def _versions(usecase: RevisionUsecase, project_id) -> list:
    async with usecase.transaction():
        project = await usecase.project_repo.get_by_id(project_id)
        return [version.id for version in project.versions]


@pytest.mark.unit
class TestSubmitVersion:
    """Test version submission."""

    async def test_submission_increments_and_numbers_versions(
        self, session: AsyncSession, user_a: User, create_project, reload
    ):
        project = await create_project(user_a, revision_limit=3)
        usecase = RevisionUsecase(session)

        first = await submit(usecase, project.id)
        second = await submit(usecase, project.id)

        assert (first.version_number, second.version_number) == (1, 2)
        stored = await reload(Project, project.id)
        assert stored.revisions_used == 2

    async def test_version_number_matches_revisions_used(
        self, session: AsyncSession, user_a: User, create_project, reload
    ):
        project = await create_project(user_a, revision_limit=5, versions=2)

        version = await submit(RevisionUsecase(session), project.id)

        stored = await reload(Project, project.id)
        assert version.version_number == stored.revisions_used == 3

    async def test_limit_reached(self, session: AsyncSession, user_a: User, create_project):
        project = await create_project(user_a, revision_limit=2)
        usecase = RevisionUsecase(session)

        await submit(usecase, project.id)
        await submit(usecase, project.id)

        with pytest.raises(RevisionLimitExceededException) as exc:
            await submit(usecase, project.id)
        assert exc.value.status_code == 409

        state = await usecase.get_revision_state(project.id)
        assert state.revisions_used == 2
        assert state.revisions_remaining == 0
        assert state.can_submit is False

    async def test_zero_limit_accepts_nothing(self, session: AsyncSession, user_a: User, create_project):
        project = await create_project(user_a, revision_limit=0)
        with pytest.raises(RevisionLimitExceededException):
            await submit(RevisionUsecase(session), project.id)

    async def test_unlimited(self, session: AsyncSession, user_a: User, create_project):
        project = await create_project(user_a)
        usecase = RevisionUsecase(session)

        for _ in range(5):
            await submit(usecase, project.id)

        state = await usecase.get_revision_state(project.id)
        assert state.revisions_used == 5
        assert state.revisions_remaining is None
        assert state.can_submit is True

    async def test_unknown_project(self, session: AsyncSession):
        with pytest.raises(NotFoundException):
            await submit(RevisionUsecase(session), uuid4())

    async def test_approved_project_is_locked(
        self, session: AsyncSession, user_a: User, create_project
    ):
        project = await create_project(user_a, versions=1)
        usecase = RevisionUsecase(session)
        version_id = (await _versions(usecase, project.id))[0]
        await usecase.approve(project.id, version_id, "owner:test")

        with pytest.raises(ProjectLockedException) as exc:
            await submit(usecase, project.id)
        assert exc.value.status_code == 423

    async def test_raising_limit_allows_more(self, session: AsyncSession, user_a: User, create_project):
        project = await create_project(user_a, revision_limit=1, versions=1)
        usecase = RevisionUsecase(session)

        with pytest.raises(RevisionLimitExceededException):
            await submit(usecase, project.id)

        await usecase.set_revision_limit(project.id, 2)
        version = await submit(usecase, project.id)
        assert version.version_number == 2

    async def test_negative_limit_rejected(self, session: AsyncSession, user_a: User, create_project):
        project = await create_project(user_a)
        with pytest.raises(ValidationException):
            await RevisionUsecase(session).set_revision_limit(project.id, -1)

    async def test_set_limit_unknown_project(self, session: AsyncSession):
        with pytest.raises(NotFoundException):
            await RevisionUsecase(session).set_revision_limit(uuid4(), 3)


@pytest.mark.unit
class TestApproval:
    """Test approval and reopening."""

    async def test_approve_records_approver_and_notifies_once(
        self, session: AsyncSession, user_a: User, create_project, notifier, reload
    ):
        project = await create_project(user_a, versions=2)
        usecase = RevisionUsecase(session, notifier)
        version_ids = await _versions(usecase, project.id)

        approved = await usecase.approve(project.id, version_ids[0], "project_review_link:abc")

        assert approved.approval_status == ApprovalStatus.APPROVED.value
        assert approved.approved_version_id == version_ids[0]
        assert approved.approved_by == "project_review_link:abc"
        assert approved.approved_at is not None

        flags = {v: (await reload(ProjectVersion, v)).is_approved for v in version_ids}
        assert flags == {version_ids[0]: True, version_ids[1]: False}

        sent = notifier.of_type("approval")
        assert len(sent) == 1
        assert sent[0]["version_number"] == 1

    async def test_second_approval_is_locked(
        self, session: AsyncSession, user_a: User, create_project, notifier
    ):
        project = await create_project(user_a, versions=2)
        usecase = RevisionUsecase(session, notifier)
        version_ids = await _versions(usecase, project.id)

        await usecase.approve(project.id, version_ids[0], "owner:a")
        with pytest.raises(ProjectLockedException):
            await usecase.approve(project.id, version_ids[1], "owner:a")

        state = await usecase.get_revision_state(project.id)
        assert state.approved_version_id == version_ids[0]
        assert len(notifier.of_type("approval")) == 1

    async def test_version_of_other_project_not_found(
        self, session: AsyncSession, user_a: User, create_project
    ):
        project = await create_project(user_a, versions=1)
        other = await create_project(user_a, title="Other", versions=1)
        usecase = RevisionUsecase(session)
        foreign_version = (await _versions(usecase, other.id))[0]

        with pytest.raises(NotFoundException):
            await usecase.approve(project.id, foreign_version, "owner:a")

    async def test_failing_notifier_does_not_undo_approval(
        self, session: AsyncSession, user_a: User, create_project, notifier, reload
    ):
        notifier.fail = True
        project = await create_project(user_a, versions=1)
        usecase = RevisionUsecase(session, notifier)
        version_id = (await _versions(usecase, project.id))[0]

        await usecase.approve(project.id, version_id, "owner:a")

        stored = await reload(Project, project.id)
        assert stored.approval_status == ApprovalStatus.APPROVED.value
        assert len(notifier.of_type("approval")) == 1

    async def test_reopen_keeps_revision_count(
        self, session: AsyncSession, user_a: User, create_project
    ):
        project = await create_project(user_a, revision_limit=3, versions=2)
        usecase = RevisionUsecase(session)
        version_id = (await _versions(usecase, project.id))[1]
        await usecase.approve(project.id, version_id, "owner:a")

        reopened = await usecase.reopen(project.id)

        assert reopened.approval_status == ApprovalStatus.PENDING.value
        assert reopened.revisions_used == 2
        version = await submit(usecase, project.id)
        assert version.version_number == 3
        with pytest.raises(RevisionLimitExceededException):
            await submit(usecase, project.id)

    async def test_reopen_pending_project_rejected(
        self, session: AsyncSession, user_a: User, create_project
    ):
        project = await create_project(user_a)
        with pytest.raises(ValidationException):
            await RevisionUsecase(session).reopen(project.id)

    async def test_reopen_unknown_project(self, session: AsyncSession):
        with pytest.raises(NotFoundException):
            await RevisionUsecase(session).reopen(uuid4())


@pytest.mark.concurrency
class TestConcurrentSubmissions:
    """Test that the store decides revision races."""

    async def test_limit_holds_under_concurrency(self, test_db, user_a: User, create_project, reload):
        project = await create_project(user_a, revision_limit=1)

        async def submit_in_own_session(name: str):
            async with test_db() as own_session:
                return await submit(RevisionUsecase(own_session), project.id, name)

        results = await asyncio.gather(
            *(submit_in_own_session(f"take{i}.wav") for i in range(4)),
            return_exceptions=True,
        )

        accepted = [r for r in results if isinstance(r, ProjectVersion)]
        rejected = [r for r in results if isinstance(r, RevisionLimitExceededException)]
        assert len(accepted) == 1
        assert len(rejected) == 3

        stored = await reload(Project, project.id)
        assert stored.revisions_used == 1

    async def test_exactly_one_concurrent_approval_wins(
        self, test_db, user_a: User, create_project, notifier
    ):
        project = await create_project(user_a, versions=2)
        async with test_db() as setup_session:
            usecase = RevisionUsecase(setup_session)
            version_ids = await _versions(usecase, project.id)

        async def approve_in_own_session(version_id):
            async with test_db() as own_session:
                return await RevisionUsecase(own_session, notifier).approve(
                    project.id, version_id, "owner:a"
                )

        results = await asyncio.gather(
            *(approve_in_own_session(version_id) for version_id in version_ids),
            return_exceptions=True,
        )

        assert len([r for r in results if isinstance(r, Project)]) == 1
        assert len([r for r in results if isinstance(r, ProjectLockedException)]) == 1
        assert len(notifier.of_type("approval")) == 1
