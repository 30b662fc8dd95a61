import asyncio
import logging
import uuid

import pytest
from fastapi import BackgroundTasks

from conftest import FailingNotifier
from docspace.core.exceptions import InvalidStateError, MergeAnchorNotFoundError, NotFoundError, UnauthorizedError
from docspace.db.repositories.workspace_repository import DocumentVersionRepository, WorkspaceDocumentRepository
from docspace.domains.workspace.entities import ContributionStatus, Scope, ScopeKind
from docspace.domains.workspace.merger import ContentMerger
from docspace.domains.workspace.schemas import WorkspaceDocumentCreate
from docspace.domains.workspace.services import WorkspaceService
from docspace.domains.workspace.templates import DocType
from docspace.domains.workspace.workflow import ContributionWorkflow


async def create_team_document(session, resolver, locks, team_scope, team_admin, doc_type=DocType.HTML, content="<h1>Hi</h1>"):
    service = WorkspaceService(session, resolver, locks=locks)
    document = await service.create_document(team_admin, team_scope, WorkspaceDocumentCreate(title="notes"))
    if doc_type is not None:
        document = await service.request_template(team_admin, team_scope, document.uuid, doc_type, content)
    return document


@pytest.fixture
def workflow_factory(resolver, notifier, locks):
    def factory(session, notifier_override=None):
        return ContributionWorkflow(session, resolver, notifier=notifier_override or notifier, locks=locks)
    return factory


@pytest.mark.asyncio
async def test_submit_creates_pending_contribution(session, resolver, locks, team_scope, team_admin, team_member, workflow_factory):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)
    workflow = workflow_factory(session)

    contribution = await workflow.submit(team_member, document.uuid, "<p>new</p>")

    assert contribution.status == ContributionStatus.PENDING
    assert contribution.reviewer_id is None
    assert contribution.text == "<p>new</p>"

    stored = await WorkspaceDocumentRepository(session).get_by_uuid(document.uuid)
    assert stored.content == document.content
    assert stored.version == document.version


@pytest.mark.asyncio
async def test_submit_requires_team_membership(session, resolver, locks, team_scope, team_admin, workflow_factory):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)

    with pytest.raises(UnauthorizedError):
        await workflow_factory(session).submit(uuid.uuid4(), document.uuid, "<p>x</p>")


@pytest.mark.asyncio
async def test_submit_to_untyped_document_is_rejected(session, resolver, locks, team_scope, team_admin, team_member, workflow_factory):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin, doc_type=None)

    with pytest.raises(InvalidStateError):
        await workflow_factory(session).submit(team_member, document.uuid, "<p>x</p>")


@pytest.mark.asyncio
async def test_submit_to_user_document_is_rejected(session, resolver, locks, owner_id, workflow_factory):
    service = WorkspaceService(session, resolver, locks=locks)
    document = await service.create_document(owner_id, Scope(ScopeKind.USER, owner_id), WorkspaceDocumentCreate(title="mine"))

    with pytest.raises(InvalidStateError):
        await workflow_factory(session).submit(owner_id, document.uuid, "text")


@pytest.mark.asyncio
async def test_submit_to_unknown_document(session, team_member, workflow_factory):
    with pytest.raises(NotFoundError):
        await workflow_factory(session).submit(team_member, uuid.uuid4(), "text")


@pytest.mark.asyncio
async def test_approve_merges_fragment_into_anchor(session, resolver, locks, notifier, team_scope, team_admin, team_member, workflow_factory):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)
    workflow = workflow_factory(session)
    contribution = await workflow.submit(team_member, document.uuid, "<p>new</p>")

    approved, merged_document = await workflow.approve(team_admin, contribution.uuid)

    assert approved.status == ContributionStatus.APPROVED
    assert approved.reviewer_id == team_admin
    assert approved.reviewed_at is not None
    assert "    <p>new</p>" in merged_document.text
    assert "<h1>Hi</h1>" not in merged_document.text
    assert merged_document.version == document.version + 1

    stored = await WorkspaceDocumentRepository(session).get_by_uuid(document.uuid)
    assert stored.text == merged_document.text

    assert len(notifier.events) == 1
    assert notifier.events[0].status == "APPROVED"
    assert notifier.events[0].contributor_id == team_member


@pytest.mark.asyncio
async def test_approve_with_missing_anchor_keeps_everything_unchanged(
    session, resolver, locks, notifier, team_scope, team_admin, team_member, workflow_factory
):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)
    workflow = workflow_factory(session)
    contribution = await workflow.submit(team_member, document.uuid, "<p>new</p>")

    repository = WorkspaceDocumentRepository(session)
    document.set_text("markup without a body")
    await repository.update(document)
    await session.commit()

    with pytest.raises(MergeAnchorNotFoundError):
        await workflow.approve(team_admin, contribution.uuid)

    stored = await repository.get_by_uuid(document.uuid)
    pending = await workflow.get_contribution(team_admin, contribution.uuid)

    assert stored.content == b"markup without a body"
    assert stored.version == document.version
    assert pending.status == ContributionStatus.PENDING
    assert pending.reviewer_id is None
    assert notifier.events == []


@pytest.mark.asyncio
async def test_member_cannot_review(session, resolver, locks, team_scope, team_admin, team_member, workflow_factory):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)
    workflow = workflow_factory(session)
    contribution = await workflow.submit(team_member, document.uuid, "<p>new</p>")

    with pytest.raises(UnauthorizedError):
        await workflow.approve(team_member, contribution.uuid)
    with pytest.raises(UnauthorizedError):
        await workflow.reject(team_member, contribution.uuid, "no")


@pytest.mark.asyncio
async def test_review_through_another_team_is_forbidden(session, resolver, locks, team_scope, team_admin, team_member, workflow_factory):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)
    workflow = workflow_factory(session)
    contribution = await workflow.submit(team_member, document.uuid, "<p>new</p>")

    with pytest.raises(UnauthorizedError):
        await workflow.approve(team_admin, contribution.uuid, team_id=uuid.uuid4())


@pytest.mark.asyncio
async def test_reject_leaves_document_untouched(session, resolver, locks, notifier, team_scope, team_admin, team_member, workflow_factory):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)
    workflow = workflow_factory(session)
    contribution = await workflow.submit(team_member, document.uuid, "<p>new</p>")

    rejected = await workflow.reject(team_admin, contribution.uuid, "too vague")

    assert rejected.status == ContributionStatus.REJECTED
    assert rejected.rejection_reason == "too vague"
    assert rejected.reviewer_id == team_admin

    stored = await WorkspaceDocumentRepository(session).get_by_uuid(document.uuid)
    assert stored.content == document.content
    assert stored.version == document.version
    assert notifier.events[0].rejection_reason == "too vague"


@pytest.mark.asyncio
@pytest.mark.parametrize("first, second", [
    ("approve", "approve"),
    ("approve", "reject"),
    ("reject", "approve"),
    ("reject", "reject"),
])
async def test_terminal_contribution_cannot_be_reviewed_again(
    session, resolver, locks, team_scope, team_admin, team_member, workflow_factory, first, second
):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)
    workflow = workflow_factory(session)
    contribution = await workflow.submit(team_member, document.uuid, "<p>new</p>")

    async def review(action):
        if action == "approve":
            return await workflow.approve(team_admin, contribution.uuid)
        return await workflow.reject(team_admin, contribution.uuid, "no")

    await review(first)
    stored_before = await WorkspaceDocumentRepository(session).get_by_uuid(document.uuid)

    with pytest.raises(InvalidStateError):
        await review(second)

    stored_after = await WorkspaceDocumentRepository(session).get_by_uuid(document.uuid)
    assert stored_after.content == stored_before.content
    assert stored_after.version == stored_before.version


@pytest.mark.asyncio
async def test_approve_unknown_contribution(session, team_admin, workflow_factory):
    with pytest.raises(NotFoundError):
        await workflow_factory(session).approve(team_admin, uuid.uuid4())


@pytest.mark.asyncio
async def test_list_pending_in_submission_order(session, resolver, locks, team_scope, team_admin, team_member, workflow_factory):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)
    workflow = workflow_factory(session)
    first = await workflow.submit(team_member, document.uuid, "<p>1</p>")
    second = await workflow.submit(team_member, document.uuid, "<p>2</p>")
    third = await workflow.submit(team_member, document.uuid, "<p>3</p>")
    await workflow.reject(team_admin, second.uuid, None)

    pending = await workflow.list_pending(team_admin, document.uuid)

    assert [c.uuid for c in pending] == [first.uuid, third.uuid]


@pytest.mark.asyncio
async def test_contributor_sees_own_contributions(session, resolver, locks, team_scope, team_admin, team_member, workflow_factory):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)
    workflow = workflow_factory(session)
    contribution = await workflow.submit(team_member, document.uuid, "<p>1</p>")

    mine = await workflow.list_for_contributor(team_member)
    fetched = await workflow.get_contribution(team_member, contribution.uuid)

    assert [c.uuid for c in mine] == [contribution.uuid]
    assert fetched == contribution
    with pytest.raises(UnauthorizedError):
        await workflow.get_contribution(uuid.uuid4(), contribution.uuid)


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_approval(
    session, resolver, locks, team_scope, team_admin, team_member, workflow_factory, caplog
):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)
    workflow = workflow_factory(session, notifier_override=FailingNotifier())
    contribution = await workflow.submit(team_member, document.uuid, "<p>new</p>")

    with caplog.at_level(logging.ERROR):
        approved, _ = await workflow.approve(team_admin, contribution.uuid)

    assert approved.status == ContributionStatus.APPROVED
    assert "Failed to send notification" in caplog.text

    stored = await workflow.get_contribution(team_admin, contribution.uuid)
    assert stored.status == ContributionStatus.APPROVED


@pytest.mark.asyncio
async def test_concurrent_approvals_do_not_lose_updates(
    session_factory, resolver, locks, team_scope, team_admin, team_member, workflow_factory
):
    async with session_factory() as session:
        document = await create_team_document(session, resolver, locks, team_scope, team_admin)
        workflow = workflow_factory(session)
        first = await workflow.submit(team_member, document.uuid, "<p>first</p>")
        second = await workflow.submit(team_member, document.uuid, "<p>second</p>")

    async with session_factory() as session_a, session_factory() as session_b:
        await asyncio.gather(
            workflow_factory(session_a).approve(team_admin, first.uuid),
            workflow_factory(session_b).approve(team_admin, second.uuid),
        )

    async with session_factory() as session:
        stored = await WorkspaceDocumentRepository(session).get_by_uuid(document.uuid)
        versions = await DocumentVersionRepository(session).get_by_document(document.uuid)
        workflow = workflow_factory(session)
        statuses = {
            (await workflow.get_contribution(team_admin, c.uuid)).status for c in (first, second)
        }

    assert statuses == {ContributionStatus.APPROVED}
    assert stored.version == document.version + 2
    assert [v.version_number for v in versions][-2:] == [document.version + 1, document.version + 2]

    merger = ContentMerger()
    before_last, last = versions[-2], versions[-1]
    applied = [f for f in ("<p>first</p>", "<p>second</p>") if f in before_last.text]
    assert len(applied) == 1
    remaining = "<p>second</p>" if applied[0] == "<p>first</p>" else "<p>first</p>"

    # Второе слияние применено к результату первого
    assert last.text == merger.merge(before_last.text, remaining, DocType.HTML)
    assert stored.text == last.text


@pytest.mark.asyncio
async def test_notification_is_deferred_to_background_tasks(
    session, resolver, locks, notifier, team_scope, team_admin, team_member
):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)
    tasks = BackgroundTasks()
    workflow = ContributionWorkflow(session, resolver, notifier=notifier, locks=locks, background_tasks=tasks)
    accepted = await workflow.submit(team_member, document.uuid, "<p>new</p>")
    declined = await workflow.submit(team_member, document.uuid, "<p>vague</p>")

    await workflow.approve(team_admin, accepted.uuid)
    await workflow.reject(team_admin, declined.uuid, "too vague")

    assert notifier.events == []
    assert len(tasks.tasks) == 2

    await tasks()

    assert [e.status for e in notifier.events] == ["APPROVED", "REJECTED"]
    assert notifier.events[1].rejection_reason == "too vague"


@pytest.mark.asyncio
async def test_failing_background_notification_is_logged(
    session, resolver, locks, team_scope, team_admin, team_member, caplog
):
    document = await create_team_document(session, resolver, locks, team_scope, team_admin)
    tasks = BackgroundTasks()
    workflow = ContributionWorkflow(session, resolver, notifier=FailingNotifier(), locks=locks, background_tasks=tasks)
    contribution = await workflow.submit(team_member, document.uuid, "<p>new</p>")

    approved, _ = await workflow.approve(team_admin, contribution.uuid)

    with caplog.at_level(logging.ERROR):
        await tasks()

    assert approved.status == ContributionStatus.APPROVED
    assert "Failed to send notification" in caplog.text
