"""Реестр шаблонов рабочих документов.

Одна таблица на все области (пользователь, проект, команда): тип документа ->
каркас, якорь для подстановки содержимого, расширение файла и MIME-тип.

Якорь описывается одной из трех стратегий:

* WRAP   - содержимое лежит между открывающей и закрывающей конструкцией
           (тег ``<body>``, тело ``main`` и т.п.). Поиск идет регулярным
           выражением по форме синтаксиса, поэтому фрагмент, содержащий ту же
           закрывающую последовательность, ломает следующее слияние.
* HEADER - все, что после строки-заголовка. Слияние заменяет весь хвост.
* FLAT   - каркаса нет, документ целиком является содержимым.
"""
import logging
import re
import textwrap
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


class DocType(str, Enum):
    """Типы рабочих документов"""
    HTML = "HTML"
    CSS = "CSS"
    JS = "JS"
    JAVA = "JAVA"
    PYTHON = "PYTHON"
    C_SHARP = "C_SHARP"
    C_PLUS_PLUS = "C_PLUS_PLUS"
    RUBY = "RUBY"
    PHP = "PHP"
    SWIFT = "SWIFT"
    GO = "GO"
    R = "R"
    KOTLIN = "KOTLIN"
    SCALA = "SCALA"
    TYPESCRIPT = "TYPESCRIPT"
    SQL = "SQL"
    NO_SQL = "NO_SQL"
    MARKDOWN = "MARKDOWN"
    TEXT = "TEXT"

    # Файловые типы платформы без шаблона
    PDF = "PDF"
    WORD = "WORD"
    ZIP = "ZIP"
    JSON = "JSON"
    XML = "XML"
    C = "C"

    @property
    def mime_type(self) -> str:
        return _FILE_TYPES[self][0]

    @property
    def extension(self) -> str:
        return _FILE_TYPES[self][1]


_FILE_TYPES: Dict[DocType, tuple] = {
    DocType.PDF: ("application/pdf", ".pdf"),
    DocType.WORD: ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", ".docx"),
    DocType.ZIP: ("application/zip", ".zip"),
    DocType.HTML: ("text/html", ".html"),
    DocType.CSS: ("text/css", ".css"),
    DocType.JS: ("application/javascript", ".js"),
    DocType.JAVA: ("text/x-java-source", ".java"),
    DocType.JSON: ("application/json", ".json"),
    DocType.XML: ("application/xml", ".xml"),
    DocType.TEXT: ("text/plain", ".txt"),
    DocType.MARKDOWN: ("text/markdown", ".md"),
    DocType.PYTHON: ("text/x-python", ".py"),
    DocType.C: ("text/x-c", ".c"),
    DocType.C_SHARP: ("text/x-csharp", ".cs"),
    DocType.C_PLUS_PLUS: ("text/x-c++", ".cpp"),
    DocType.RUBY: ("text/x-ruby", ".rb"),
    DocType.PHP: ("application/x-httpd-php", ".php"),
    DocType.SWIFT: ("text/x-swift", ".swift"),
    DocType.GO: ("text/x-go", ".go"),
    DocType.R: ("text/x-r", ".r"),
    DocType.KOTLIN: ("text/x-kotlin", ".kt"),
    DocType.SCALA: ("text/x-scala", ".scala"),
    DocType.TYPESCRIPT: ("application/typescript", ".ts"),
    DocType.SQL: ("application/sql", ".sql"),
    DocType.NO_SQL: ("application/json", ".json"),
}


class AnchorStrategy(Enum):
    """Способ поиска якоря внутри документа"""
    WRAP = "wrap"
    HEADER = "header"
    FLAT = "flat"


@dataclass(frozen=True)
class AnchorPattern:
    """Описание якоря: стратегия и регулярное выражение с группами prefix/body/suffix"""
    strategy: AnchorStrategy
    regex: "re.Pattern"

    def split(self, content: str) -> Optional[tuple]:
        match = self.regex.match(content)
        if match is None:
            return None
        return match.group("prefix"), match.group("body"), match.group("suffix")


@dataclass(frozen=True)
class Template:
    """Шаблон типа документа"""
    doc_type: DocType
    strategy: AnchorStrategy
    head: str
    tail: str
    sample: str
    indent: str = ""
    open_pattern: str = ""
    close_pattern: str = ""

    def render_body(self, fragment: str) -> str:
        """Форматирование фрагмента для вставки в якорь"""
        if self.strategy is AnchorStrategy.WRAP and self.indent:
            return textwrap.indent(fragment, self.indent)
        return fragment

    def render(self, fragment: str) -> str:
        """Каркас с фрагментом на месте якоря"""
        return self.head + self.render_body(fragment) + self.tail

    @property
    def anchor(self) -> AnchorPattern:
        return _compile_anchor(self)


def _compile_anchor(template: Template) -> AnchorPattern:
    if template.strategy is AnchorStrategy.WRAP:
        source = (
            rf"\A(?P<prefix>.*?{template.open_pattern})"
            rf"(?P<body>.*?)"
            rf"(?P<suffix>{template.close_pattern}.*)\Z"
        )
    elif template.strategy is AnchorStrategy.HEADER:
        source = rf"\A(?P<prefix>{re.escape(template.head)})(?P<body>.*)(?P<suffix>)\Z"
    else:
        source = r"\A(?P<prefix>)(?P<body>.*)(?P<suffix>)\Z"
    return AnchorPattern(template.strategy, re.compile(source, re.DOTALL))


def _wrap(doc_type, head, tail, sample, open_pattern, close_pattern, indent="    "):
    return Template(
        doc_type=doc_type,
        strategy=AnchorStrategy.WRAP,
        head=head,
        tail=tail,
        sample=sample,
        indent=indent,
        open_pattern=open_pattern,
        close_pattern=close_pattern,
    )


def _header(doc_type, head, sample):
    return Template(
        doc_type=doc_type,
        strategy=AnchorStrategy.HEADER,
        head=head,
        tail="\n",
        sample=sample,
    )


_TEMPLATES: Dict[DocType, Template] = {t.doc_type: t for t in [
    _wrap(
        DocType.HTML,
        head=(
            '<!DOCTYPE html>\n'
            '<html lang="en">\n'
            '<head>\n'
            '    <meta charset="UTF-8">\n'
            '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
            '    <title>My Document</title>\n'
            '</head>\n'
            '<body>\n'
        ),
        tail="\n</body>\n</html>\n",
        sample="<h1>Hello, World!</h1>",
        open_pattern=r"<body>\n",
        close_pattern=r"\n</body>",
    ),
    _wrap(
        DocType.JS,
        head='// JavaScript Template\nconsole.log("Hello, World!");\n\nfunction main() {\n',
        tail="\n}\n\nmain();\n",
        sample="// Your code here",
        open_pattern=r"function main\(\) \{\n",
        close_pattern=r"\n\}\n\nmain\(\);",
    ),
    _wrap(
        DocType.CSS,
        head=(
            "/* CSS Template */\n"
            "body {\n"
            "    font-family: Arial, sans-serif;\n"
            "    margin: 0;\n"
            "    padding: 0;\n"
            "    background-color: #f4f4f4;\n"
            "}\n\n"
        ),
        tail="\n",
        sample="h1 {\n    color: #333;\n}",
        open_pattern=r"body \{[^}]*\}\n\n",
        close_pattern=r"\n\Z",
        indent="",
    ),
    _wrap(
        DocType.JAVA,
        head="public class Main {\n    public static void main(String[] args) {\n",
        tail="\n    }\n}\n",
        sample='System.out.println("Hello, World!");',
        open_pattern=r"public static void main\(String\[\] args\) \{\n",
        close_pattern=r"\n    \}\n\}",
        indent=" " * 8,
    ),
    _wrap(
        DocType.PYTHON,
        head="# Python Template\ndef main():\n",
        tail='\n\nif __name__ == "__main__":\n    main()\n',
        sample='print("Hello, World!")',
        open_pattern=r"def main\(\):\n",
        close_pattern=r"\n\nif __name__ == \"__main__\":",
    ),
    _wrap(
        DocType.C_SHARP,
        head=(
            "using System;\n\n"
            "namespace HelloWorld\n"
            "{\n"
            "    class Program\n"
            "    {\n"
            "        static void Main(string[] args)\n"
            "        {\n"
        ),
        tail="\n        }\n    }\n}\n",
        sample='Console.WriteLine("Hello World!");',
        open_pattern=r"static void Main\(string\[\] args\)\s*\{\n",
        close_pattern=r"\n        \}\n    \}\n\}",
        indent=" " * 12,
    ),
    _wrap(
        DocType.C_PLUS_PLUS,
        head="#include <iostream>\n\nint main() {\n",
        tail="\n    return 0;\n}\n",
        sample='std::cout << "Hello World!";',
        open_pattern=r"int main\(\) \{\n",
        close_pattern=r"\n    return 0;\n\}",
    ),
    _wrap(
        DocType.PHP,
        head="<?php\n",
        tail="\n?>\n",
        sample='echo "Hello, World!";',
        open_pattern=r"<\?php\n",
        close_pattern=r"\n\?>",
        indent="",
    ),
    _wrap(
        DocType.GO,
        head='package main\n\nimport "fmt"\n\nfunc main() {\n',
        tail="\n}\n",
        sample='fmt.Println("Hello, World!")',
        open_pattern=r"func main\(\) \{\n",
        close_pattern=r"\n\}\s*\Z",
    ),
    _wrap(
        DocType.KOTLIN,
        head="fun main() {\n",
        tail="\n}\n",
        sample='println("Hello, World!")',
        open_pattern=r"fun main\(\) \{\n",
        close_pattern=r"\n\}\s*\Z",
    ),
    _wrap(
        DocType.SCALA,
        head="object Hello extends App {\n",
        tail="\n}\n",
        sample='println("Hello, World!")',
        open_pattern=r"object Hello extends App \{\n",
        close_pattern=r"\n\}\s*\Z",
    ),
    _header(DocType.RUBY, "# Ruby Template\n", 'puts "Hello, World!"'),
    _header(DocType.SWIFT, "import Swift\n", 'print("Hello, World!")'),
    _header(DocType.R, "# R Template\n", 'print("Hello, World!")'),
    _header(
        DocType.TYPESCRIPT,
        "// TypeScript Template\n",
        'const message: string = "Hello, World!";\nconsole.log(message);',
    ),
    _header(DocType.SQL, "-- SQL Template\n", "SELECT * FROM table_name;"),
    _header(DocType.NO_SQL, "// NoSQL Template (e.g., MongoDB)\n", "db.collection.find({});"),
    _header(DocType.MARKDOWN, "# Document\n\n", "This is a markdown template."),
    Template(
        doc_type=DocType.TEXT,
        strategy=AnchorStrategy.FLAT,
        head="",
        tail="",
        sample="Hello, World!",
    ),
]}

_ANCHORS: Dict[DocType, AnchorPattern] = {
    doc_type: template.anchor for doc_type, template in _TEMPLATES.items()
}


def _coerce(doc_type: Union[DocType, str, None]) -> Optional[DocType]:
    if doc_type is None or isinstance(doc_type, DocType):
        return doc_type
    try:
        return DocType(doc_type)
    except ValueError:
        return None


class TemplateRegistry:
    """Статический реестр шаблонов по типу документа"""

    def template_for(self, doc_type: Union[DocType, str, None]) -> Optional[Template]:
        return _TEMPLATES.get(_coerce(doc_type))

    def is_supported(self, doc_type: Union[DocType, str, None]) -> bool:
        return self.template_for(doc_type) is not None

    def skeleton_for(self, doc_type: Union[DocType, str, None]) -> str:
        """Каркас типа документа; для неизвестных типов - пустая строка"""
        template = self.template_for(doc_type)
        if template is None:
            logger.warning(f"Unknown DocType: {doc_type}")
            return ""
        return template.render(template.sample)

    def anchor_pattern_for(self, doc_type: Union[DocType, str, None]) -> Optional[AnchorPattern]:
        """Якорь типа документа; None для типов без шаблона"""
        return _ANCHORS.get(_coerce(doc_type))

    def extension_for(self, doc_type: Union[DocType, str, None]) -> str:
        resolved = _coerce(doc_type)
        return resolved.extension if resolved else DocType.TEXT.extension

    def mime_type_for(self, doc_type: Union[DocType, str, None]) -> str:
        resolved = _coerce(doc_type)
        return resolved.mime_type if resolved else DocType.TEXT.mime_type

    def supported_types(self):
        return list(_TEMPLATES.keys())


registry = TemplateRegistry()
