import asyncio
import logging
import uuid

import pytest

from conftest import FailingNotifier, RecordingNotifier
from docspace.core.exceptions import UnauthorizedError
from docspace.db.repositories.workspace_repository import ScopeMembershipRepository
from docspace.domains.workspace.access import (
    Action, Capabilities, MembershipAccessResolver, ScopeRole, authorize, capabilities_of
)
from docspace.domains.workspace.entities import ContributionStatus, Scope, ScopeKind
from docspace.domains.workspace.locks import DocumentLocks
from docspace.domains.workspace.notifications import ContributionEvent, LoggingNotificationSender, dispatch


def test_capabilities_follow_role_hierarchy():
    assert capabilities_of(ScopeRole.OWNER) == Capabilities(owner=True, admin=True, member=True)
    assert capabilities_of(ScopeRole.ADMIN) == Capabilities(admin=True, member=True)
    assert capabilities_of(ScopeRole.MEMBER) == Capabilities(member=True)
    assert capabilities_of(ScopeRole.NONE) == Capabilities()


@pytest.mark.asyncio
async def test_user_scope_is_owner_only(resolver, owner_id, user_scope):
    capabilities = await authorize(resolver, owner_id, user_scope, Action.DELETE)
    assert capabilities.owner

    with pytest.raises(UnauthorizedError):
        await authorize(resolver, uuid.uuid4(), user_scope, Action.VIEW)


@pytest.mark.asyncio
async def test_team_actions_by_role(resolver, team_scope, team_admin, team_member):
    await authorize(resolver, team_member, team_scope, Action.VIEW)
    await authorize(resolver, team_member, team_scope, Action.SUBMIT)
    await authorize(resolver, team_admin, team_scope, Action.REVIEW)

    for action in (Action.EDIT, Action.REVIEW, Action.DELETE):
        with pytest.raises(UnauthorizedError):
            await authorize(resolver, team_member, team_scope, action)


@pytest.mark.asyncio
async def test_contribution_actions_only_exist_for_teams(resolver, owner_id, user_scope):
    with pytest.raises(UnauthorizedError):
        await authorize(resolver, owner_id, user_scope, Action.SUBMIT)


@pytest.mark.asyncio
async def test_denied_access_is_logged(resolver, user_scope, caplog):
    with caplog.at_level(logging.WARNING, logger="docspace.domains.workspace.access"):
        with pytest.raises(UnauthorizedError):
            await authorize(resolver, uuid.uuid4(), user_scope, Action.EDIT)

    assert "is not authorized to edit" in caplog.text


@pytest.mark.asyncio
async def test_membership_resolver_reads_roles(session):
    team_id, admin, outsider = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    await ScopeMembershipRepository(session).add(ScopeKind.TEAM, team_id, admin, ScopeRole.ADMIN.value)
    await session.commit()

    resolver = MembershipAccessResolver(session)
    scope = Scope(ScopeKind.TEAM, team_id)

    assert await resolver.resolve_role(admin, scope) == ScopeRole.ADMIN
    assert await resolver.resolve_role(outsider, scope) == ScopeRole.NONE
    assert await resolver.resolve_role(admin, Scope(ScopeKind.USER, admin)) == ScopeRole.OWNER


def make_event():
    return ContributionEvent(
        contribution_id=uuid.uuid4(),
        document_id=uuid.uuid4(),
        document_title="notes",
        contributor_id=uuid.uuid4(),
        reviewer_id=uuid.uuid4(),
        status=ContributionStatus.REJECTED.value,
        rejection_reason="too vague"
    )


@pytest.mark.asyncio
async def test_dispatch_delivers_event():
    notifier = RecordingNotifier()
    event = make_event()

    await dispatch(notifier, event)

    assert notifier.events == [event]


@pytest.mark.asyncio
async def test_dispatch_logs_failures_without_raising(caplog):
    with caplog.at_level(logging.ERROR):
        await dispatch(FailingNotifier(), make_event())

    assert "mail server is down" in caplog.text


@pytest.mark.asyncio
async def test_logging_sender(caplog):
    with caplog.at_level(logging.INFO, logger="docspace.domains.workspace.notifications"):
        await dispatch(LoggingNotificationSender(), make_event())

    assert "rejected" in caplog.text


@pytest.mark.asyncio
async def test_document_locks_serialize_same_document():
    locks = DocumentLocks()
    document_id = uuid.uuid4()
    order = []

    async def critical(name):
        async with locks.hold(document_id):
            order.append(f"{name}:start")
            await asyncio.sleep(0.01)
            order.append(f"{name}:end")

    await asyncio.gather(critical("a"), critical("b"))

    assert order == ["a:start", "a:end", "b:start", "b:end"]
    assert locks.lock_for(document_id) is locks.lock_for(document_id)
    assert locks.lock_for(uuid.uuid4()) is not locks.lock_for(document_id)
