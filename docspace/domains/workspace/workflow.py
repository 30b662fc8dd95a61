import logging
import uuid
from typing import Optional, List, Tuple

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from docspace.core.exceptions import InvalidStateError, NotFoundError, UnauthorizedError
from docspace.db.repositories.workspace_repository import (
    ContributionRepository,
    DocumentVersionRepository,
    WorkspaceDocumentRepository
)
from docspace.domains.workspace.access import AccessResolver, Action, authorize
from docspace.domains.workspace.entities import Contribution, ScopeKind, WorkspaceDocument
from docspace.domains.workspace.locks import DocumentLocks, document_locks
from docspace.domains.workspace.merger import ContentMerger
from docspace.domains.workspace.notifications import ContributionEvent, NotificationSender, dispatch
from docspace.domains.workspace.templates import TemplateRegistry

logger = logging.getLogger(__name__)


class ContributionWorkflow:
    """Проверка вкладов в командные документы.

    Вклад создается в статусе PENDING и проверяется ровно один раз:
    одобрение сливает фрагмент с документом, отклонение документ не трогает.
    """

    def __init__(
        self,
        session: AsyncSession,
        resolver: AccessResolver,
        notifier: Optional[NotificationSender] = None,
        locks: Optional[DocumentLocks] = None,
        registry: Optional[TemplateRegistry] = None,
        background_tasks: Optional[BackgroundTasks] = None
    ):
        self.session = session
        self.resolver = resolver
        self.notifier = notifier
        self.locks = locks or document_locks
        self.background_tasks = background_tasks
        self.document_repository = WorkspaceDocumentRepository(session)
        self.version_repository = DocumentVersionRepository(session)
        self.contribution_repository = ContributionRepository(session)
        self.merger = ContentMerger(registry)

    async def submit(
        self,
        contributor_id: uuid.UUID,
        document_id: uuid.UUID,
        fragment: str,
        team_id: Optional[uuid.UUID] = None
    ) -> Contribution:
        """Отправка фрагмента на проверку; документ не меняется"""
        document = await self._get_team_document(document_id, team_id)
        await authorize(self.resolver, contributor_id, document.scope, Action.SUBMIT)

        if not document.is_typed:
            raise InvalidStateError("Contributions require a document with a doc type")

        contribution = Contribution.submit(document.uuid, contributor_id, fragment)
        created = await self.contribution_repository.create(contribution)
        await self.session.commit()

        logger.info(f"Contribution {created.uuid} submitted to document {document_id} by user {contributor_id}")
        return created

    async def approve(
        self,
        reviewer_id: uuid.UUID,
        contribution_id: uuid.UUID,
        team_id: Optional[uuid.UUID] = None
    ) -> Tuple[Contribution, WorkspaceDocument]:
        """Одобрение вклада: фрагмент заменяет область якоря документа.

        Слияние и смена статуса фиксируются одной транзакцией под блокировкой
        документа, поэтому два одобрения одного документа идут по очереди.
        """
        contribution, document = await self._load_for_review(reviewer_id, contribution_id, team_id)

        async with self.locks.hold(document.uuid):
            try:
                contribution = await self._reload_contribution(contribution_id)
                document = await self._reload_document(document.uuid)

                contribution.approve(reviewer_id)
                merged = self.merger.merge(document.text, contribution.text, document.doc_type)
                document.set_text(merged)
                document.updated_at = contribution.reviewed_at

                version = document.record_change(reviewer_id)
                await self.document_repository.update(document)
                await self.version_repository.create(version)
                await self._complete_review(contribution)
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

        logger.info(
            f"Contribution {contribution_id} approved by user {reviewer_id}, "
            f"document {document.uuid} is now at version {document.version}"
        )
        await self._notify(self._event(contribution, document))
        return contribution, document

    async def reject(
        self,
        reviewer_id: uuid.UUID,
        contribution_id: uuid.UUID,
        reason: Optional[str] = None,
        team_id: Optional[uuid.UUID] = None
    ) -> Contribution:
        """Отклонение вклада с причиной"""
        contribution, document = await self._load_for_review(reviewer_id, contribution_id, team_id)

        try:
            contribution = await self._reload_contribution(contribution_id)
            contribution.reject(reviewer_id, reason)
            await self._complete_review(contribution)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(f"Contribution {contribution_id} rejected by user {reviewer_id}")
        await self._notify(self._event(contribution, document))
        return contribution

    async def list_pending(
        self,
        reviewer_id: uuid.UUID,
        document_id: uuid.UUID,
        team_id: Optional[uuid.UUID] = None
    ) -> List[Contribution]:
        """Ожидающие вклады документа по времени отправки"""
        document = await self._get_team_document(document_id, team_id)
        await authorize(self.resolver, reviewer_id, document.scope, Action.REVIEW)
        return await self.contribution_repository.list_pending(document.uuid)

    async def list_for_contributor(self, contributor_id: uuid.UUID) -> List[Contribution]:
        """Вклады пользователя во всех командах"""
        return await self.contribution_repository.list_by_contributor(contributor_id)

    async def get_contribution(self, actor_id: uuid.UUID, contribution_id: uuid.UUID) -> Contribution:
        """Вклад виден своему автору и участникам команды"""
        contribution = await self.contribution_repository.get_by_uuid(contribution_id)
        if not contribution:
            raise NotFoundError(f"Contribution with id {contribution_id} not found")

        if contribution.contributor_id != actor_id:
            document = await self._get_team_document(contribution.document_id)
            await authorize(self.resolver, actor_id, document.scope, Action.VIEW)

        return contribution

    async def _get_team_document(
        self,
        document_id: uuid.UUID,
        team_id: Optional[uuid.UUID] = None
    ) -> WorkspaceDocument:
        document = await self.document_repository.get_by_uuid(document_id)
        if not document:
            raise NotFoundError(f"Workspace document with id {document_id} not found")
        if document.scope.kind != ScopeKind.TEAM:
            raise InvalidStateError("Contributions are only available for team documents")
        if team_id is not None and document.scope.owner_id != team_id:
            raise UnauthorizedError("Workspace document does not belong to this team")
        return document

    async def _load_for_review(
        self,
        reviewer_id: uuid.UUID,
        contribution_id: uuid.UUID,
        team_id: Optional[uuid.UUID]
    ) -> Tuple[Contribution, WorkspaceDocument]:
        contribution = await self.contribution_repository.get_by_uuid(contribution_id)
        if not contribution:
            raise NotFoundError(f"Contribution with id {contribution_id} not found")

        document = await self._get_team_document(contribution.document_id, team_id)
        await authorize(self.resolver, reviewer_id, document.scope, Action.REVIEW)
        return contribution, document

    async def _reload_contribution(self, contribution_id: uuid.UUID) -> Contribution:
        contribution = await self.contribution_repository.get_for_update(contribution_id)
        if not contribution:
            raise NotFoundError(f"Contribution with id {contribution_id} not found")
        return contribution

    async def _reload_document(self, document_id: uuid.UUID) -> WorkspaceDocument:
        document = await self.document_repository.get_for_update(document_id)
        if not document:
            raise NotFoundError(f"Workspace document with id {document_id} not found")
        return document

    async def _complete_review(self, contribution: Contribution) -> None:
        # Вклад мог быть проверен параллельно между чтением и записью
        if not await self.contribution_repository.complete_review(contribution):
            raise InvalidStateError(f"Contribution {contribution.uuid} has already been reviewed")

    async def _notify(self, event: ContributionEvent) -> None:
        """Отправка уведомления после ответа, если есть фоновые задачи"""
        if self.background_tasks is not None:
            self.background_tasks.add_task(dispatch, self.notifier, event)
            return
        await dispatch(self.notifier, event)

    @staticmethod
    def _event(contribution: Contribution, document: WorkspaceDocument) -> ContributionEvent:
        return ContributionEvent(
            contribution_id=contribution.uuid,
            document_id=document.uuid,
            document_title=document.title,
            contributor_id=contribution.contributor_id,
            reviewer_id=contribution.reviewer_id,
            status=contribution.status.value,
            rejection_reason=contribution.rejection_reason
        )
