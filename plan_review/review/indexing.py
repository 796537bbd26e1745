from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from whoosh import index
from whoosh.fields import ID, NUMERIC, TEXT, Schema
from whoosh.qparser import QueryParser
from whoosh.query import Term

from ..markdown.blocks import Block

logger = logging.getLogger(__name__)


class Indexer(Protocol):
    def index_version(self, plan_id: str, version: int, blocks: Sequence[Block]) -> None:
        ...

    def search(self, query_str: str, plan_id: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        ...


class NoopIndexer:
    """
    Default indexer stub. Keeps the service wired without pulling in Whoosh.
    """

    def index_version(self, plan_id: str, version: int, blocks: Sequence[Block]) -> None:
        return None

    def search(self, query_str: str, plan_id: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        return []


class WhooshIndexer:
    """
    File-system backed Whoosh index of plan blocks. Only the most recently
    indexed version of a plan is searchable: indexing a version first deletes
    the plan's previous entries.
    """

    def __init__(self, index_dir: Path):
        self.index_dir = Path(index_dir)
        self.index_dir.mkdir(parents=True, exist_ok=True)
        self.schema = Schema(
            doc_key=ID(stored=True, unique=True),
            plan_id=ID(stored=True),
            version=NUMERIC(stored=True),
            block_id=ID(stored=True),
            block_type=ID(stored=True),
            start_line=NUMERIC(stored=True, sortable=True),
            end_line=NUMERIC(stored=True),
            text=TEXT(stored=True),
        )
        if index.exists_in(self.index_dir):
            self.ix = index.open_dir(self.index_dir)
        else:
            self.ix = index.create_in(self.index_dir, self.schema)

    def index_version(self, plan_id: str, version: int, blocks: Sequence[Block]) -> None:
        writer = self.ix.writer()
        writer.delete_by_term("plan_id", plan_id)
        for block in blocks:
            writer.add_document(
                doc_key=f"{plan_id}:{block.id}",
                plan_id=plan_id,
                version=version,
                block_id=block.id,
                block_type=block.type.value,
                start_line=block.start_line,
                end_line=block.end_line,
                text=block.content,
            )
        writer.commit()
        logger.info("Indexed %d blocks for plan %s version %s", len(blocks), plan_id, version)

    def search(self, query_str: str, plan_id: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        """
        Return a list of plain dicts so callers are safe after the searcher closes.
        """
        qp = QueryParser("text", schema=self.schema)
        q = qp.parse(query_str)
        plan_filter = Term("plan_id", plan_id) if plan_id else None
        with self.ix.searcher() as searcher:
            results = searcher.search(q, limit=limit, filter=plan_filter)
            hits = []
            for hit in results:
                fields = hit.fields()
                hits.append(
                    {
                        "plan_id": fields.get("plan_id"),
                        "version": fields.get("version"),
                        "block_id": fields.get("block_id"),
                        "block_type": fields.get("block_type"),
                        "start_line": fields.get("start_line"),
                        "end_line": fields.get("end_line"),
                        "text": fields.get("text"),
                    }
                )
            return hits
