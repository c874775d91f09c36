"""Tests for the anchor index."""

import random

import pytest

from scripts.doccheck.anchor_index import anchor_index_to_json, build_anchor_index
from scripts.doccheck.document import Anchor, AnchorLocation, Document
from scripts.doccheck.violations import DuplicateAnchorError, StrictModeAbort, ViolationSink


def _doc(path, *labels):
    return Document(
        path=path,
        anchors=tuple(Anchor(label=label, path=path, line=i + 1) for i, label in enumerate(labels)),
    )


class TestBuildAnchorIndex:
    """Tests for build_anchor_index."""

    def test_unique_labels(self):
        sink = ViolationSink()
        index = build_anchor_index([_doc("a.rst", "one", "two"), _doc("b.rst", "three")], sink)
        assert index == {
            "one": AnchorLocation("a.rst", 1),
            "two": AnchorLocation("a.rst", 2),
            "three": AnchorLocation("b.rst", 1),
        }
        assert len(sink) == 0

    def test_empty_corpus(self):
        assert build_anchor_index([]) == {}

    def test_duplicate_across_documents(self):
        """Documents A and B both define foo: one error citing both."""
        sink = ViolationSink()
        build_anchor_index([_doc("A.rst", "foo"), _doc("B.rst", "foo")], sink)
        assert len(sink) == 1
        error = sink.violations[0]
        assert isinstance(error, DuplicateAnchorError)
        assert error.label == "foo"
        assert error.paths == ["A.rst", "B.rst"]
        assert error.locations == [("A.rst", 1), ("B.rst", 1)]

    def test_triple_definition_reported_once(self):
        sink = ViolationSink()
        build_anchor_index([_doc("a.rst", "x"), _doc("b.rst", "x"), _doc("c.rst", "x")], sink)
        assert len(sink) == 1
        assert sink.violations[0].paths == ["a.rst", "b.rst", "c.rst"]

    def test_duplicate_within_one_document(self):
        sink = ViolationSink()
        build_anchor_index([_doc("a.rst", "x", "x")], sink)
        assert len(sink) == 1
        assert sink.violations[0].paths == ["a.rst"]
        assert sink.violations[0].locations == [("a.rst", 1), ("a.rst", 2)]

    def test_first_sorted_definition_wins(self):
        index = build_anchor_index([_doc("z.rst", "foo"), _doc("a.rst", "foo")])
        assert index["foo"] == AnchorLocation("a.rst", 1)

    def test_result_independent_of_scan_order(self):
        docs = [_doc(f"doc{i}.rst", "shared", f"own{i}") for i in range(6)]
        shuffled = list(docs)
        random.Random(7).shuffle(shuffled)

        sink_a, sink_b = ViolationSink(), ViolationSink()
        index_a = build_anchor_index(docs, sink_a)
        index_b = build_anchor_index(shuffled, sink_b)

        assert index_a == index_b
        assert [v.to_json() for v in sink_a.violations] == [v.to_json() for v in sink_b.violations]

    def test_strict_sink_aborts(self):
        with pytest.raises(StrictModeAbort) as exc_info:
            build_anchor_index([_doc("a.rst", "foo"), _doc("b.rst", "foo")], ViolationSink(strict=True))
        assert isinstance(exc_info.value.violation, DuplicateAnchorError)


class TestAnchorIndexToJson:
    """Tests for index serialization."""

    def test_sorted_by_label(self):
        index = {"b": AnchorLocation("x.rst", 2), "a": AnchorLocation("y.rst", 1)}
        data = anchor_index_to_json(index)
        assert list(data) == ["a", "b"]
        assert data["a"] == {"path": "y.rst", "line": 1}
