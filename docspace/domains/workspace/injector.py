import logging
from datetime import datetime
from typing import Optional

from docspace.domains.workspace.templates import DocType, TemplateRegistry, registry as default_registry

logger = logging.getLogger(__name__)


class ContentInjector:
    """Встраивание содержимого в свежий каркас шаблона"""

    def __init__(self, registry: Optional[TemplateRegistry] = None):
        self.registry = registry or default_registry

    def initialize(self, doc_type: DocType, raw_content: str) -> str:
        """Каркас типа документа с содержимым на месте якоря.

        Все, что раньше лежало вне якоря, отбрасывается.
        """
        template = self.registry.template_for(doc_type)
        if template is None:
            logger.warning(f"Unknown DocType: {doc_type}, content stored as is")
            return raw_content
        return template.render(raw_content)

    def apply(self, document, doc_type: DocType, raw_content: Optional[str] = None) -> str:
        """Типизация (или сброс) документа: новый каркас, тип и отметки времени"""
        if raw_content is None:
            template = self.registry.template_for(doc_type)
            raw_content = template.sample if template else ""

        rendered = self.initialize(doc_type, raw_content)
        now = datetime.utcnow()

        document.doc_type = doc_type
        document.set_text(rendered)
        document.updated_at = now
        document.last_viewed_at = now
        return rendered
