"""Tests for the end-to-end check run."""

import pytest

from scripts.doccheck.checker import format_text_report, format_violation, run_check
from scripts.doccheck.violations import (
    BlockParseError,
    CorpusIOError,
    DuplicateAnchorError,
    KeySetMismatchError,
    UnresolvedReferenceError,
)


class TestRunCheckLenient:
    """Tests for run_check collecting every violation."""

    def test_consistent_corpus_has_no_violations(self, sample_corpus, config):
        report = run_check(sample_corpus, config)
        assert report.ok
        assert report.document_count == 3
        assert report.anchor_count == 3
        assert report.reference_count == 5
        assert report.resolved_count == 5
        assert report.group_count == 1
        assert not report.aborted

    def test_anchors_without_references(self, write_doc, tmp_path, config):
        write_doc("a.rst", ".. _one:\n\nText\n")
        write_doc("b.rst", ".. _two:\n\nText\n")
        report = run_check(tmp_path, config)
        assert report.ok
        assert report.anchor_count == 2

    def test_broken_corpus_reports_each_kind_in_order(self, broken_corpus, config):
        report = run_check(broken_corpus, config)
        assert [v.kind for v in report.violations] == [
            "DuplicateAnchorError",
            "UnresolvedReferenceError",
            "KeySetMismatchError",
        ]

    def test_duplicate_anchor_cites_both_documents(self, broken_corpus, config):
        report = run_check(broken_corpus, config)
        duplicates = [v for v in report.violations if isinstance(v, DuplicateAnchorError)]
        assert len(duplicates) == 1
        assert duplicates[0].paths == ["a.rst", "b.rst"]
        assert duplicates[0].label == "foo"

    def test_unresolved_reference_names_label(self, broken_corpus, config):
        report = run_check(broken_corpus, config)
        unresolved = [v for v in report.violations if isinstance(v, UnresolvedReferenceError)]
        assert len(unresolved) == 1
        assert unresolved[0].label == "missing-label"
        assert unresolved[0].paths == ["a.rst"]
        assert unresolved[0].line == 6

    def test_key_set_mismatch_symmetric_difference(self, broken_corpus, config):
        report = run_check(broken_corpus, config)
        mismatches = [v for v in report.violations if isinstance(v, KeySetMismatchError)]
        assert len(mismatches) == 1
        assert set(mismatches[0].difference) == {"b", "c"}
        assert mismatches[0].missing == {"yaml": ["c"], "xml": ["b"]}

    def test_idempotent(self, broken_corpus, config):
        first = run_check(broken_corpus, config)
        second = run_check(broken_corpus, config)
        assert [v.to_json() for v in first.violations] == [v.to_json() for v in second.violations]

    def test_parallel_run_matches_serial(self, broken_corpus, config):
        serial = run_check(broken_corpus, config)
        config.jobs = 3
        parallel = run_check(broken_corpus, config)
        assert [v.to_json() for v in serial.violations] == [v.to_json() for v in parallel.violations]

    def test_unparseable_block_is_skipped_and_logged(self, write_doc, tmp_path, config, caplog):
        write_doc(
            "bad.rst",
            ".. configuration-block::\n"
            "\n"
            "    .. code-block:: yaml\n"
            "\n"
            "        a: 1\n"
            "\n"
            "    .. code-block:: xml\n"
            "\n"
            "        <container><a></container>\n",
        )
        with caplog.at_level("WARNING"):
            report = run_check(tmp_path, config)
        assert report.ok
        assert len(report.skipped_blocks) == 1
        assert "Skipping xml block" in caplog.text

    def test_wrapped_reference_to_missing_label(self, write_doc, tmp_path, config):
        write_doc("a.rst", ".. _real:\n\nSee :ref:`the cache\nsection <missing-label>` here.\n")
        report = run_check(tmp_path, config)
        assert len(report.violations) == 1
        assert isinstance(report.violations[0], UnresolvedReferenceError)
        assert report.violations[0].label == "missing-label"
        assert report.violations[0].line == 3

    def test_recursive_yaml_alias_is_skipped(self, write_doc, tmp_path, config, caplog):
        write_doc(
            "loop.rst",
            ".. configuration-block::\n"
            "\n"
            "    .. code-block:: yaml\n"
            "\n"
            "        a: &x\n"
            "            b: *x\n"
            "\n"
            "    .. code-block:: json\n"
            "\n"
            "        {\"a\": {\"b\": 1}}\n",
        )
        with caplog.at_level("WARNING"):
            report = run_check(tmp_path, config)
        assert report.ok
        assert len(report.skipped_blocks) == 1
        assert "recursive alias" in report.skipped_blocks[0].message

    def test_unreadable_document_aborts_run(self, sample_corpus, config):
        (sample_corpus / "bad.rst").write_bytes(b"\xff\xfe")
        with pytest.raises(CorpusIOError):
            run_check(sample_corpus, config)


class TestRunCheckStrict:
    """Tests for run_check stopping at the first violation."""

    def test_stops_at_first_violation(self, broken_corpus, config):
        config.strict = True
        report = run_check(broken_corpus, config)
        assert report.aborted
        assert len(report.violations) == 1
        assert report.violations[0].kind == "DuplicateAnchorError"

    def test_strict_clean_corpus(self, sample_corpus, config):
        config.strict = True
        report = run_check(sample_corpus, config)
        assert report.ok
        assert not report.aborted

    def test_unparseable_block_is_fatal(self, write_doc, tmp_path, config):
        write_doc(
            "bad.rst",
            ".. configuration-block::\n"
            "\n"
            "    .. code-block:: json\n"
            "\n"
            "        {not json}\n",
        )
        config.strict = True
        with pytest.raises(BlockParseError) as exc_info:
            run_check(tmp_path, config)
        assert exc_info.value.paths == ["bad.rst"]


class TestReportFormatting:
    """Tests for text and JSON rendering."""

    def test_format_violation_with_section(self, broken_corpus, config):
        report = run_check(broken_corpus, config)
        line = format_violation(report.violations[1], broken_corpus)
        assert line.startswith("UnresolvedReferenceError a.rst:6: ")
        assert "[in section 'Page A']" in line

    def test_section_title_read_with_corpus_encoding(self, tmp_path, config):
        (tmp_path / "a.rst").write_bytes(
            "R\u00e9glages\n========\n\nSee :ref:`nowhere`.\n".encode("latin-1")
        )
        config.encoding = "latin-1"
        text = format_text_report(run_check(tmp_path, config))
        assert "[in section 'R\u00e9glages']" in text

    def test_format_duplicate_lists_paths(self, broken_corpus, config):
        report = run_check(broken_corpus, config)
        assert format_violation(report.violations[0]).startswith("DuplicateAnchorError a.rst, b.rst: ")

    def test_text_report_summary(self, broken_corpus, config):
        text = format_text_report(run_check(broken_corpus, config))
        assert "Violations: 3" in text
        assert "Mode: lenient" in text
        assert "  KeySetMismatchError: 1" in text

    def test_json_report_structure(self, broken_corpus, config):
        data = run_check(broken_corpus, config).to_json()
        assert data["summary"]["violations"] == 3
        assert data["summary"]["by_kind"] == {
            "DuplicateAnchorError": 1,
            "UnresolvedReferenceError": 1,
            "KeySetMismatchError": 1,
        }
        kinds = [v["kind"] for v in data["violations"]]
        assert kinds == ["DuplicateAnchorError", "UnresolvedReferenceError", "KeySetMismatchError"]
        assert data["violations"][0]["locations"] == [
            {"path": "a.rst", "line": 1},
            {"path": "b.rst", "line": 1},
        ]
