"""Tests for the bulk request wire format."""

import json

from hypothesis import given, settings

from bulklog import BulkRequest, Document
from strategies import document_lists, index_names


class TestToBody:
    """Tests for BulkRequest.to_body."""

    def test_single_document_body(self):
        """One document produces an action line and a payload line."""
        batch = BulkRequest([Document('{"a":1}', "t1")])

        assert batch.to_body("tok123") == '{"index":{"_index":"tok123","_type":"t1"}}\n{"a":1}\n'

    def test_empty_batch_yields_empty_body(self):
        """An empty batch serializes to an empty string."""
        assert BulkRequest([]).to_body("idx") == ""

    def test_payload_whitespace_stripped(self):
        """Leading and trailing whitespace and newlines are removed from payloads."""
        batch = BulkRequest([Document('\n\t  {"a": 1}  \r\n', "t")])

        lines = batch.to_body("idx").split("\n")
        assert lines[1] == '{"a": 1}'

    def test_inner_whitespace_preserved(self):
        """Only surrounding whitespace is stripped."""
        batch = BulkRequest([Document('{"msg": "two  spaces"}', "t")])
        assert '{"msg": "two  spaces"}\n' in batch.to_body("idx")

    def test_malformed_payload_passed_through(self):
        """Payloads are not validated."""
        batch = BulkRequest([Document("not json {", "t")])
        assert batch.to_body("idx").endswith("not json {\n")

    def test_documents_keep_order(self, sample_batch):
        """Documents are serialized in the order given."""
        lines = sample_batch.to_body("idx").split("\n")

        assert json.loads(lines[0])["index"]["_type"] == "event"
        assert lines[1] == '{"message": "started", "level": "info"}'
        assert lines[3] == '{"message": "failed", "level": "error"}'
        assert json.loads(lines[4])["index"]["_type"] == "metric"

    def test_action_line_escapes_type_label(self):
        """Quotes in labels do not break the action line."""
        batch = BulkRequest([Document("{}", 'we"ird\\type')])
        action = json.loads(batch.to_body("idx").split("\n")[0])
        assert action == {"index": {"_index": "idx", "_type": 'we"ird\\type'}}

    def test_non_ascii_labels_written_verbatim(self):
        """Index and type labels keep their characters instead of \\u escapes."""
        batch = BulkRequest([Document("{}", "café")])

        action_line = batch.to_body("índice").split("\n")[0]
        assert action_line == '{"index":{"_index":"índice","_type":"café"}}'
        assert "índice".encode("utf-8") in batch.to_bytes("índice")

    def test_to_bytes_is_utf8(self):
        """to_bytes encodes the body as UTF-8."""
        batch = BulkRequest([Document('{"msg": "héllo 世界"}', "t")])
        assert batch.to_bytes("idx") == batch.to_body("idx").encode("utf-8")

    @given(document_lists, index_names)
    @settings(max_examples=100)
    def test_two_lines_per_document(self, documents, index):
        """Property: N documents produce 2N lines referencing index and type."""
        body = BulkRequest(documents).to_body(index)
        lines = body.split("\n")[:-1]

        assert len(lines) == 2 * len(documents)
        for k, document in enumerate(documents):
            action = json.loads(lines[2 * k])
            assert action == {"index": {"_index": index, "_type": document.type}}
            assert lines[2 * k + 1] == document.source.strip()


class TestBulkRequest:
    """Tests for BulkRequest construction helpers."""

    def test_from_pairs(self):
        batch = BulkRequest.from_pairs([('{"a":1}', "t1"), ('{"b":2}', "t2")])

        assert list(batch) == [Document('{"a":1}', "t1"), Document('{"b":2}', "t2")]
        assert len(batch) == 2

    def test_documents_are_immutable_tuple(self, sample_documents):
        """The batch copies the input into a tuple."""
        batch = BulkRequest(sample_documents)
        sample_documents.append(Document("{}", "late"))

        assert len(batch) == 3
        assert isinstance(batch.documents, tuple)

    def test_repr(self, sample_batch):
        assert repr(sample_batch) == "BulkRequest(documents=3)"
