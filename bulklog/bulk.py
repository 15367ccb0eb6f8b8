"""
Bulk request wire format.

Each document becomes two newline-terminated lines in the request body:

    {"index":{"_index":"<index>","_type":"<type>"}}
    <document source, surrounding whitespace stripped>
"""

import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class Document:
    """A serialized payload and its type label."""

    source: str
    type: str


class BulkRequest:
    """Ordered, immutable batch of documents for one bulk request."""

    def __init__(self, documents: Iterable[Document] = ()):
        self.documents: tuple[Document, ...] = tuple(documents)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> "BulkRequest":
        """Build a batch from ``(source, type)`` tuples."""
        return cls(Document(source, type_) for source, type_ in pairs)

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)

    def __repr__(self) -> str:
        return f"BulkRequest(documents={len(self.documents)})"

    def to_body(self, index: str) -> str:
        """Serialize the batch against the given index name.

        Payloads are passed through without validation; the receiver
        rejects malformed JSON.
        """
        lines = []
        for document in self.documents:
            action = {"index": {"_index": index, "_type": document.type}}
            lines.append(json.dumps(action, separators=(",", ":"), ensure_ascii=False) + "\n")
            lines.append(document.source.strip() + "\n")
        return "".join(lines)

    def to_bytes(self, index: str) -> bytes:
        """UTF-8 encoded request body."""
        return self.to_body(index).encode("utf-8")
