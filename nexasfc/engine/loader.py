"""
NexaSFC Template Loaders
========================

Loaders turn a template name into document source. Any callable
``(name) -> str | Document | None`` works; the classes here cover the
common cases.

Example:
    loader = FileSystemLoader("templates", "shared")
    loader("pages/home")   # reads templates/pages/home.sfc

    loader = DictLoader({"home": "<data>{}</data><template>Hi</template>"})
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from nexasfc.engine.document import Document
from nexasfc.utils.logger import get_logger

logger = get_logger("nexasfc.loader")

DEFAULT_EXTENSION = ".sfc"


class FileSystemLoader:
    """
    Directory-based loader.

    Names are relative paths; the extension is appended when missing.
    Names that would escape the search directories are not found.
    """

    def __init__(
        self,
        *paths: Union[str, Path],
        extension: str = DEFAULT_EXTENSION,
        encoding: str = "utf-8",
    ) -> None:
        """
        Initialize loader with template directories.

        Args:
            *paths: Template directories, searched in order
            extension: File extension added to bare names
            encoding: File encoding
        """
        self.paths: List[Path] = []
        self.extension = extension
        self.encoding = encoding
        for path in paths:
            self.add_path(path)

    def add_path(self, path: Union[str, Path]) -> None:
        path = Path(path).resolve()
        if path not in self.paths:
            self.paths.append(path)

    def resolve(self, name: str) -> Optional[Path]:
        """
        Resolve a template name to a file path.

        Returns:
            Path of the first match, or None
        """
        candidates = [name]
        if not name.endswith(self.extension):
            candidates.append(f"{name}{self.extension}")

        for base in self.paths:
            for candidate in candidates:
                full_path = (base / candidate).resolve()
                if base not in full_path.parents:
                    continue
                if full_path.is_file():
                    return full_path
        return None

    def exists(self, name: str) -> bool:
        return self.resolve(name) is not None

    def load(self, name: str) -> Optional[str]:
        path = self.resolve(name)
        if path is None:
            logger.debug("Template not found", template=name, paths=len(self.paths))
            return None
        return path.read_text(encoding=self.encoding)

    def __call__(self, name: str) -> Optional[str]:
        return self.load(name)


class DictLoader:
    """In-memory loader backed by a mapping of name to source."""

    def __init__(self, templates: Mapping[str, Union[str, Document]]) -> None:
        self.templates: Dict[str, Union[str, Document]] = dict(templates)

    def add(self, name: str, source: Union[str, Document]) -> None:
        self.templates[name] = source

    def exists(self, name: str) -> bool:
        return name in self.templates

    def __call__(self, name: str) -> Optional[Union[str, Document]]:
        return self.templates.get(name)
