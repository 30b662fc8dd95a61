from fastapi import BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from docspace.core.db import get_db
from docspace.domains.workspace.access import AccessResolver, MembershipAccessResolver
from docspace.domains.workspace.notifications import LoggingNotificationSender, NotificationSender
from docspace.domains.workspace.services import WorkspaceService
from docspace.domains.workspace.workflow import ContributionWorkflow


async def get_access_resolver(db: AsyncSession = Depends(get_db)) -> AccessResolver:
    """Роли берутся из таблицы членства; платформа может подменить резолвер"""
    return MembershipAccessResolver(db)


def get_notification_sender() -> NotificationSender:
    return LoggingNotificationSender()


async def get_workspace_service(
    db: AsyncSession = Depends(get_db),
    resolver: AccessResolver = Depends(get_access_resolver)
) -> WorkspaceService:
    return WorkspaceService(db, resolver)


async def get_contribution_workflow(
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    resolver: AccessResolver = Depends(get_access_resolver),
    notifier: NotificationSender = Depends(get_notification_sender)
) -> ContributionWorkflow:
    return ContributionWorkflow(db, resolver, notifier, background_tasks=background_tasks)
