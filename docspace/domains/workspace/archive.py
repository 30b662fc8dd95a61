import io
import logging
import zipfile
from dataclasses import dataclass
from typing import Iterable, Optional

from docspace.domains.workspace.entities import WorkspaceDocument
from docspace.domains.workspace.templates import TemplateRegistry, registry as default_registry

logger = logging.getLogger(__name__)

ZIP_MIME_TYPE = "application/zip"

# Минимальная дата, допустимая в заголовке ZIP
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


@dataclass
class WorkspaceArchive:
    """Готовый архив рабочих документов"""
    filename: str
    data: bytes
    entries: list
    mime_type: str = ZIP_MIME_TYPE


@dataclass
class DownloadedFile:
    """Один документ для скачивания"""
    filename: str
    mime_type: str
    data: bytes


class ArchiveExporter:
    """Упаковка набора документов в один ZIP архив"""

    def __init__(self, registry: Optional[TemplateRegistry] = None):
        self.registry = registry or default_registry

    def download_filename(self, document: WorkspaceDocument) -> str:
        """Имя файла документа: заголовок + расширение типа"""
        return document.title + self.registry.extension_for(document.doc_type)

    def download(self, document: WorkspaceDocument) -> DownloadedFile:
        return DownloadedFile(
            filename=self.download_filename(document),
            mime_type=self.registry.mime_type_for(document.doc_type),
            data=document.content or b""
        )

    def archive_filename(self, scope_owner_id) -> str:
        return f"workspace_{scope_owner_id}.zip"

    def export_all(
        self,
        documents: Iterable[WorkspaceDocument],
        scope_owner_id=None
    ) -> Optional[WorkspaceArchive]:
        """Архив со всеми документами.

        Возвращает None, если экспортировать нечего; пустой архив не создается.
        Порядок записей совпадает с порядком документов на входе.
        """
        documents = list(documents)
        if not documents:
            logger.info(f"Nothing to export for {scope_owner_id}")
            return None

        buffer = io.BytesIO()
        entries = []
        used_names = {}

        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for document in documents:
                name = self._unique_name(self.download_filename(document), used_names)
                info = zipfile.ZipInfo(name, date_time=self._entry_time(document))
                info.compress_type = zipfile.ZIP_DEFLATED
                archive.writestr(info, document.content or b"")
                entries.append(name)

        logger.info(f"Exported {len(entries)} workspace documents for {scope_owner_id}")
        return WorkspaceArchive(
            filename=self.archive_filename(scope_owner_id),
            data=buffer.getvalue(),
            entries=entries
        )

    @staticmethod
    def _unique_name(name: str, used_names: dict) -> str:
        # Одинаковые заголовки получают суффикс " (n)"
        count = used_names.get(name, 0)
        used_names[name] = count + 1
        if count == 0:
            return name
        stem, dot, extension = name.rpartition(".")
        if not dot:
            return f"{name} ({count + 1})"
        return f"{stem} ({count + 1}).{extension}"

    @staticmethod
    def _entry_time(document: WorkspaceDocument) -> tuple:
        stamp = document.updated_at
        if stamp is None or stamp.year < 1980:
            return _ZIP_EPOCH
        return (stamp.year, stamp.month, stamp.day, stamp.hour, stamp.minute, stamp.second)
