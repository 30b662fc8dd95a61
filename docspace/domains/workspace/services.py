import logging
import uuid
from datetime import datetime
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession

from docspace.core.config import settings
from docspace.core.exceptions import InvalidStateError, NotFoundError, UnauthorizedError
from docspace.db.repositories.workspace_repository import DocumentVersionRepository, WorkspaceDocumentRepository
from docspace.domains.workspace.access import AccessResolver, Action, authorize
from docspace.domains.workspace.archive import ArchiveExporter, DownloadedFile, WorkspaceArchive
from docspace.domains.workspace.entities import DocumentVersion, Scope, WorkspaceDocument
from docspace.domains.workspace.injector import ContentInjector
from docspace.domains.workspace.locks import DocumentLocks, document_locks
from docspace.domains.workspace.merger import ContentMerger
from docspace.domains.workspace.schemas import WorkspaceDocumentCreate
from docspace.domains.workspace.templates import DocType, TemplateRegistry

logger = logging.getLogger(__name__)


class WorkspaceService:
    """Сервис рабочих документов области (пользователь, проект, команда)"""

    def __init__(
        self,
        session: AsyncSession,
        resolver: AccessResolver,
        locks: Optional[DocumentLocks] = None,
        registry: Optional[TemplateRegistry] = None
    ):
        self.session = session
        self.resolver = resolver
        self.locks = locks or document_locks
        self.document_repository = WorkspaceDocumentRepository(session)
        self.version_repository = DocumentVersionRepository(session)
        self.injector = ContentInjector(registry)
        self.merger = ContentMerger(registry)
        self.exporter = ArchiveExporter(registry)

    async def create_document(
        self,
        actor_id: uuid.UUID,
        scope: Scope,
        document_data: WorkspaceDocumentCreate
    ) -> WorkspaceDocument:
        """Создание пустого рабочего документа"""
        logger.info(f"Creating workspace document in {scope} by user {actor_id}")
        await authorize(self.resolver, actor_id, scope, Action.CREATE)

        document = WorkspaceDocument.create_document(
            title=document_data.title,
            scope=scope,
            created_by=actor_id,
            description=document_data.description,
            linked_document_id=document_data.linked_document_id
        )

        created_document = await self.document_repository.create(document)
        await self.session.commit()

        logger.info(f"Workspace document {created_document.uuid} created in {scope}")
        return created_document

    async def request_template(
        self,
        actor_id: uuid.UUID,
        scope: Scope,
        document_uuid: uuid.UUID,
        doc_type: DocType,
        content: Optional[str] = None
    ) -> WorkspaceDocument:
        """Типизация документа: свежий каркас выбранного типа"""
        await authorize(self.resolver, actor_id, scope, Action.TEMPLATE)

        async with self.locks.hold(document_uuid):
            document = await self._get_for_update(document_uuid, scope)
            self.injector.apply(document, doc_type, content)
            await self._save_change(document, actor_id)

        logger.info(f"Template {doc_type} applied to workspace document {document_uuid}")
        return document

    async def view_document(self, actor_id: uuid.UUID, scope: Scope, document_uuid: uuid.UUID) -> WorkspaceDocument:
        """Просмотр документа с отметкой времени просмотра"""
        await authorize(self.resolver, actor_id, scope, Action.VIEW)
        document = await self._get_document(document_uuid, scope)

        document.touch()
        await self.document_repository.touch([document.uuid], document.last_viewed_at)
        await self.session.commit()
        return document

    async def reset_content(
        self,
        actor_id: uuid.UUID,
        scope: Scope,
        document_uuid: uuid.UUID,
        content: str
    ) -> WorkspaceDocument:
        """Новое содержимое в свежем каркасе текущего типа.

        Все, что было добавлено вне якоря, теряется.
        """
        await authorize(self.resolver, actor_id, scope, Action.EDIT)

        async with self.locks.hold(document_uuid):
            document = await self._get_for_update(document_uuid, scope)
            if not document.is_typed:
                await self.session.rollback()
                raise InvalidStateError("Document has no doc type yet, request a template first")

            self.injector.apply(document, document.doc_type, content)
            await self._save_change(document, actor_id)

        logger.info(f"Workspace document {document_uuid} reset by user {actor_id}")
        return document

    async def update_content(
        self,
        actor_id: uuid.UUID,
        scope: Scope,
        document_uuid: uuid.UUID,
        content: str
    ) -> WorkspaceDocument:
        """Замена области якоря новым фрагментом с сохранением каркаса"""
        await authorize(self.resolver, actor_id, scope, Action.EDIT)

        async with self.locks.hold(document_uuid):
            document = await self._get_for_update(document_uuid, scope)
            try:
                merged = self.merger.merge(document.text, content, document.doc_type)
            except InvalidStateError:
                await self.session.rollback()
                raise

            now = datetime.utcnow()
            document.set_text(merged)
            document.updated_at = now
            document.last_viewed_at = now
            await self._save_change(document, actor_id)

        logger.info(f"Workspace document {document_uuid} updated by user {actor_id}")
        return document

    async def delete_document(self, actor_id: uuid.UUID, scope: Scope, document_uuid: uuid.UUID) -> None:
        """Удаление документа вместе с версиями и вкладами"""
        await authorize(self.resolver, actor_id, scope, Action.DELETE)
        await self._get_document(document_uuid, scope)

        async with self.locks.hold(document_uuid):
            await self.document_repository.delete(document_uuid)
            await self.session.commit()

        logger.info(f"Workspace document {document_uuid} deleted by user {actor_id}")

    async def list_documents(
        self,
        actor_id: uuid.UUID,
        scope: Scope,
        linked_document_id: Optional[uuid.UUID] = None
    ) -> List[WorkspaceDocument]:
        """Все документы области"""
        await authorize(self.resolver, actor_id, scope, Action.VIEW)
        return await self.document_repository.list_by_scope(scope, linked_document_id=linked_document_id)

    async def list_by_type(
        self,
        actor_id: uuid.UUID,
        scope: Scope,
        doc_type: DocType,
        linked_document_id: Optional[uuid.UUID] = None
    ) -> List[WorkspaceDocument]:
        """Документы области выбранного типа"""
        await authorize(self.resolver, actor_id, scope, Action.VIEW)
        documents = await self.document_repository.list_by_scope(
            scope, linked_document_id=linked_document_id, doc_type=doc_type
        )
        await self._touch_all(documents)
        return documents

    async def search(
        self,
        actor_id: uuid.UUID,
        scope: Scope,
        keyword: str,
        linked_document_id: Optional[uuid.UUID] = None
    ) -> List[WorkspaceDocument]:
        """Поиск по заголовку и описанию"""
        await authorize(self.resolver, actor_id, scope, Action.VIEW)
        documents = await self.document_repository.search(scope, keyword, linked_document_id=linked_document_id)
        await self._touch_all(documents)
        return documents

    async def recent(
        self,
        actor_id: uuid.UUID,
        scope: Scope,
        linked_document_id: Optional[uuid.UUID] = None
    ) -> List[WorkspaceDocument]:
        """Последние созданные документы"""
        await authorize(self.resolver, actor_id, scope, Action.VIEW)
        return await self.document_repository.recent(
            scope, settings.recent_limit, linked_document_id=linked_document_id
        )

    async def recently_viewed(
        self,
        actor_id: uuid.UUID,
        scope: Scope,
        linked_document_id: Optional[uuid.UUID] = None
    ) -> List[WorkspaceDocument]:
        """Последние просмотренные документы"""
        await authorize(self.resolver, actor_id, scope, Action.VIEW)
        return await self.document_repository.recently_viewed(
            scope, settings.recent_limit, linked_document_id=linked_document_id
        )

    async def list_versions(
        self,
        actor_id: uuid.UUID,
        scope: Scope,
        document_uuid: uuid.UUID
    ) -> List[DocumentVersion]:
        """История версий содержимого документа"""
        await authorize(self.resolver, actor_id, scope, Action.VIEW)
        await self._get_document(document_uuid, scope)
        return await self.version_repository.get_by_document(document_uuid)

    async def download(self, actor_id: uuid.UUID, scope: Scope, document_uuid: uuid.UUID) -> DownloadedFile:
        """Один документ как файл: заголовок + расширение типа"""
        await authorize(self.resolver, actor_id, scope, Action.EXPORT)
        document = await self._get_document(document_uuid, scope)

        document.touch()
        await self.document_repository.touch([document.uuid], document.last_viewed_at)
        await self.session.commit()

        return self.exporter.download(document)

    async def export_scope(
        self,
        actor_id: uuid.UUID,
        scope: Scope,
        linked_document_id: Optional[uuid.UUID] = None
    ) -> Optional[WorkspaceArchive]:
        """ZIP архив всех документов области; None, если документов нет"""
        await authorize(self.resolver, actor_id, scope, Action.EXPORT)
        documents = await self.document_repository.list_by_scope(scope, linked_document_id=linked_document_id)
        return self.exporter.export_all(documents, scope_owner_id=scope.owner_id)

    def anchor_content(self, document: WorkspaceDocument) -> Optional[str]:
        """Пользовательская область документа, если якорь удается найти"""
        if not document.is_typed:
            return None
        try:
            return self.merger.extract(document.text, document.doc_type)
        except InvalidStateError:
            return None

    async def _get_document(self, document_uuid: uuid.UUID, scope: Scope) -> WorkspaceDocument:
        document = await self.document_repository.get_by_uuid(document_uuid)
        return self._check_scope(document, document_uuid, scope)

    async def _get_for_update(self, document_uuid: uuid.UUID, scope: Scope) -> WorkspaceDocument:
        document = await self.document_repository.get_for_update(document_uuid)
        try:
            return self._check_scope(document, document_uuid, scope)
        except (NotFoundError, UnauthorizedError):
            await self.session.rollback()
            raise

    @staticmethod
    def _check_scope(document: Optional[WorkspaceDocument], document_uuid: uuid.UUID, scope: Scope) -> WorkspaceDocument:
        if document is None:
            raise NotFoundError(f"Workspace document with id {document_uuid} not found")
        if document.scope != scope:
            raise UnauthorizedError(f"Workspace document does not belong to this {scope.kind.value}")
        return document

    async def _save_change(self, document: WorkspaceDocument, author_id: uuid.UUID) -> None:
        version = document.record_change(author_id)
        await self.document_repository.update(document)
        await self.version_repository.create(version)
        await self.session.commit()

    async def _touch_all(self, documents: List[WorkspaceDocument]) -> None:
        if not documents:
            return
        now = datetime.utcnow()
        for document in documents:
            document.last_viewed_at = now
        await self.document_repository.touch([d.uuid for d in documents], now)
        await self.session.commit()
