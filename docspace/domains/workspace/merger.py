"""Слияние нового фрагмента с уже оформленным документом.

Документ делится якорем своего типа на ``(prefix, body, suffix)`` и
собирается заново как ``prefix + fragment + suffix``: обвязка шаблона
сохраняется, заменяется только пользовательская область.

Слияние всегда полностью заменяет область якоря, а не дописывает в нее.
Для типов со стратегией HEADER повторное слияние не идемпотентно: все после
заголовка (включая завершающий перевод строки каркаса) теряется.
"""
import logging
from typing import Optional, Tuple

from docspace.core.exceptions import InvalidStateError, MergeAnchorNotFoundError
from docspace.domains.workspace.templates import DocType, TemplateRegistry, registry as default_registry

logger = logging.getLogger(__name__)


class ContentMerger:
    """Подстановка фрагмента в область якоря существующего документа"""

    def __init__(self, registry: Optional[TemplateRegistry] = None):
        self.registry = registry or default_registry

    def split(self, existing: str, doc_type: Optional[DocType]) -> Tuple[str, str, str]:
        """Разбиение документа на (prefix, body, suffix) по якорю типа"""
        if doc_type is None:
            raise InvalidStateError("Document has no doc type yet, request a template first")

        anchor = self.registry.anchor_pattern_for(doc_type)
        if anchor is None:
            # Типы без шаблона: весь документ является содержимым
            logger.warning(f"Unknown DocType for content update: {doc_type}")
            return "", existing, ""

        parts = anchor.split(existing)
        if parts is None:
            logger.error(f"Anchor for {doc_type} not found in document content")
            raise MergeAnchorNotFoundError(getattr(doc_type, "value", doc_type))
        return parts

    def merge(self, existing: str, fragment: str, doc_type: Optional[DocType]) -> str:
        """Замена области якоря новым фрагментом"""
        prefix, _, suffix = self.split(existing, doc_type)

        template = self.registry.template_for(doc_type)
        body = template.render_body(fragment) if template else fragment
        return prefix + body + suffix

    def extract(self, existing: str, doc_type: Optional[DocType]) -> str:
        """Пользовательская область документа без отступов каркаса"""
        _, body, _ = self.split(existing, doc_type)

        template = self.registry.template_for(doc_type)
        if template is None or not template.indent:
            return body
        return "\n".join(
            line[len(template.indent):] if line.startswith(template.indent) else line
            for line in body.split("\n")
        )
