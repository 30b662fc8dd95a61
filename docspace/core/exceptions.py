from typing import Optional


class WorkspaceError(Exception):
    """Базовая ошибка движка рабочих документов"""
    pass


class NotFoundError(WorkspaceError):
    """Документ или вклад не найден"""
    pass


class UnauthorizedError(WorkspaceError):
    """У пользователя нет нужных прав в области (scope)"""
    pass


class InvalidStateError(WorkspaceError):
    """Операция невозможна в текущем состоянии документа или вклада"""
    pass


class MergeAnchorNotFoundError(InvalidStateError):
    """Якорь шаблона не найден в содержимом документа при слиянии"""

    def __init__(self, doc_type: Optional[str], message: Optional[str] = None):
        self.doc_type = doc_type
        super().__init__(
            message or f"Anchor region for doc type {doc_type} not found in document content"
        )
