# tests/test_assembler.py
"""
Tests for the trace assembler: merge order, de-duplication of the
convergence record, and text/JSON rendering.
"""

import io
import json

from trace_slicer.assembler import HEADER, TraceRow, merge_traces, render_json, render_text, to_json
from tests.conftest import LOAD_CHAIN_LOG, run_slice


class TestMergeTraces:

    def test_interleaves_descending(self):
        rows = list(merge_traces([(9, 1), (5, 2), (2, 3)], [(8, 4), (6, 5), (1, 6)]))
        assert [r.record_id for r in rows] == [9, 8, 6, 5, 2, 1]
        assert [r.label for r in rows] == [0, 1, 1, 0, 0, 1]

    def test_one_side_empty(self):
        rows = list(merge_traces([], [(3, 1), (2, 2)]))
        assert rows == [TraceRow(3, 1, 1), TraceRow(2, 1, 2)]

    def test_both_empty(self):
        assert list(merge_traces([], [])) == []

    def test_convergence_record_kept_twice_by_default(self):
        rows = list(merge_traces([(7, 24), (4, 21)], [(4, 21)]))
        assert [(r.record_id, r.label) for r in rows] == [(7, 0), (4, 0), (4, 1)]

    def test_dedupe_drops_second_copy(self):
        rows = list(merge_traces([(7, 24), (4, 21)], [(4, 21)], dedupe=True))
        assert [(r.record_id, r.label) for r in rows] == [(7, 0), (4, 0)]

    def test_pointer_name(self):
        assert TraceRow(1, 0, 5).pointer == "ptr1"
        assert TraceRow(1, 1, 5).pointer == "ptr2"


class TestRenderText:

    def test_listing_layout(self, program):
        result = run_slice(program, LOAD_CHAIN_LOG, 7, 2)
        out = io.StringIO()
        render_text(result, program, out)
        assert out.getvalue().splitlines() == [
            HEADER,
            "",
            "ptr1: ",
            "7\tptr1\t24\tmain:  %q = bitcast %p",
            "6\tptr1\t23\tmain:  %p = load %slot",
            "5\tptr1\t21\tmain:  %obj = alloca",
            "4\tptr1\t21\tmain:  %obj = alloca",
            "",
            "ptr2: ",
            "2\tptr2\t20\tmain:  %slot = alloca",
            "",
            "Merged: ",
            "7\tptr1\t24\tmain:  %q = bitcast %p",
            "6\tptr1\t23\tmain:  %p = load %slot",
            "5\tptr1\t21\tmain:  %obj = alloca",
            "4\tptr1\t21\tmain:  %obj = alloca",
            "2\tptr2\t20\tmain:  %slot = alloca",
        ]

    def test_merged_view_strictly_descending(self, program):
        result = run_slice(program, LOAD_CHAIN_LOG, 7, 4)
        out = io.StringIO()
        render_text(result, program, out)
        lines = out.getvalue().splitlines()
        merged = lines[lines.index("Merged: ") + 1:]
        ids = [int(line.split("\t")[0]) for line in merged]
        assert ids == [7, 6, 5, 4]


class TestRenderJson:

    def test_document(self, program):
        result = run_slice(program, LOAD_CHAIN_LOG, 7, 4)
        doc = to_json(result, program)
        assert [r["record_id"] for r in doc["ptr1"]] == [7, 6, 5, 4]
        assert doc["ptr2"] == [{
            "record_id": 4, "label": 1, "value_id": 21,
            "pointer": "ptr2", "description": "main:  %obj = alloca",
        }]
        assert doc["status"]["ptr1"] == {
            "start": 7, "end": True, "termination": "converged",
        }
        assert [r["record_id"] for r in doc["merged"]] == [7, 6, 5, 4]
        assert doc["records_processed"] == 4

    def test_render_json_is_valid(self, program):
        result = run_slice(program, LOAD_CHAIN_LOG, 7, 2)
        out = io.StringIO()
        render_json(result, program, out, dedupe=False)
        doc = json.loads(out.getvalue())
        assert doc["status"]["ptr2"]["termination"] == "root"
