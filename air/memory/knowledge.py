"""
Knowledge Base - local documents the agent can cite.

`air memory add <path>` splits text files into paragraph-sized chunks and
stores them. `search()` ranks chunks by keyword coverage: the share of
the query's meaningful words that appear in the chunk, in [0, 1].
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from air.core.exceptions import MemoryStoreError
from air.models import KnowledgeChunk

logger = logging.getLogger("air.memory.knowledge")

TEXT_SUFFIXES = {
    ".txt", ".md", ".rst", ".py", ".rs", ".toml", ".json", ".yaml", ".yml",
    ".cfg", ".ini", ".csv", ".html", ".js", ".ts", ".sh",
}
CHUNK_CHARS = 800

_STOPWORDS = {
    "the", "and", "for", "are", "but", "not", "you", "all", "any", "can",
    "her", "was", "one", "our", "out", "has", "his", "how", "its", "who",
    "what", "when", "where", "which", "with", "this", "that", "from", "does",
    "about", "tell", "into", "there", "their", "them", "they", "have",
}


@dataclass
class KnowledgeHit:
    source: str
    content: str
    relevance: float


def _keywords(text: str) -> set:
    return {w for w in re.findall(r"[a-z0-9_]+", text.lower()) if len(w) > 2 and w not in _STOPWORDS}


def chunk_text(text: str, size: int = CHUNK_CHARS) -> List[str]:
    """Group paragraphs into chunks of roughly `size` characters."""
    chunks: List[str] = []
    current = ""
    for paragraph in re.split(r"\n\s*\n", text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        if current and len(current) + len(paragraph) + 2 > size:
            chunks.append(current)
            current = ""
        while len(paragraph) > size:
            chunks.append(paragraph[:size])
            paragraph = paragraph[size:]
        current = f"{current}\n\n{paragraph}" if current else paragraph
    if current:
        chunks.append(current)
    return chunks


class KnowledgeBase:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    async def add_path(self, path: Path) -> int:
        """
        Ingest a file, or every text file under a directory.

        Re-adding a file replaces its previous chunks.

        Returns:
            Number of chunks stored
        """
        return await asyncio.to_thread(self._add_path_sync, Path(path))

    def _iter_files(self, path: Path) -> Iterator[Path]:
        if path.is_file():
            yield path
            return
        for candidate in sorted(path.rglob("*")):
            if candidate.is_file() and candidate.suffix.lower() in TEXT_SUFFIXES:
                yield candidate

    def _add_path_sync(self, path: Path) -> int:
        if not path.exists():
            raise FileNotFoundError(f"No such file or directory: {path}")

        total = 0
        with self._session_factory() as session:
            try:
                for file_path in self._iter_files(path):
                    try:
                        text = file_path.read_text(encoding="utf-8")
                    except (UnicodeDecodeError, OSError) as e:
                        logger.warning(f"Skipping {file_path}: {e}")
                        continue

                    source = str(file_path.resolve())
                    session.execute(delete(KnowledgeChunk).where(KnowledgeChunk.source == source))
                    for position, chunk in enumerate(chunk_text(text)):
                        session.add(KnowledgeChunk(source=source, position=position, content=chunk))
                        total += 1
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise MemoryStoreError(f"Could not index {path}: {e}") from e

        logger.info(f"Indexed {total} chunks from {path}")
        return total

    async def search(self, query: str, limit: int = 3) -> List[KnowledgeHit]:
        """Best-matching chunks, most relevant first."""
        return await asyncio.to_thread(self._search_sync, query, limit)

    def _search_sync(self, query: str, limit: int) -> List[KnowledgeHit]:
        wanted = _keywords(query)
        if not wanted:
            return []

        try:
            with self._session_factory() as session:
                chunks = session.scalars(select(KnowledgeChunk)).all()
        except SQLAlchemyError as e:
            raise MemoryStoreError(f"Knowledge search failed: {e}") from e

        hits = []
        for chunk in chunks:
            found = wanted & _keywords(chunk.content)
            if found:
                hits.append(KnowledgeHit(chunk.source, chunk.content, len(found) / len(wanted)))

        hits.sort(key=lambda h: h.relevance, reverse=True)
        return hits[:limit]
