# tests/test_cli.py
"""
End-to-end tests of the ``trace-slicer`` command line.
"""

import json

import pytest

from trace_slicer.cli import EXIT_ERROR, EXIT_INFRA, EXIT_OK, build_parser, main
from trace_slicer.config import SlicerConfig
from tests.conftest import LOAD_CHAIN_PROGRAM


class TestConfig:

    def test_from_args(self):
        args = build_parser().parse_args(
            ["p.sexp", "r.log", "--pt1", "7", "--pt2", "2", "--format", "json", "-vv"]
        )
        config = SlicerConfig.from_args(args)
        assert config.first_start == 7
        assert config.second_start == 2
        assert config.output_format == "json"
        assert config.dedupe_merged
        assert config.verbosity == 2

    def test_keep_duplicates(self):
        args = build_parser().parse_args(
            ["p", "r", "--pt1", "1", "--pt2", "1", "--keep-duplicates"]
        )
        assert not SlicerConfig.from_args(args).dedupe_merged

    def test_rejects_unknown_format(self, tmp_path):
        with pytest.raises(ValueError):
            SlicerConfig(tmp_path, tmp_path, 1, 1, output_format="xml")

    def test_starts_are_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["p", "r", "--pt1", "1"])


class TestMain:

    def test_text_listing(self, load_chain_files, capsys):
        prog, log = load_chain_files
        rc = main([str(prog), str(log), "--pt1", "7", "--pt2", "2"])
        assert rc == EXIT_OK
        out = capsys.readouterr().out
        assert out.startswith("RecID\tPtr\tValueID")
        assert "7\tptr1\t24\tmain:  %q = bitcast %p" in out
        assert out.rstrip().endswith("2\tptr2\t20\tmain:  %slot = alloca")

    def test_json_to_file(self, load_chain_files, tmp_path):
        prog, log = load_chain_files
        dest = tmp_path / "out" / "slice.json"
        rc = main([str(prog), str(log), "--pt1", "7", "--pt2", "4",
                   "--format", "json", "-o", str(dest)])
        assert rc == EXIT_OK
        doc = json.loads(dest.read_text(encoding="utf-8"))
        assert [r["record_id"] for r in doc["merged"]] == [7, 6, 5, 4]

    def test_missing_input(self, load_chain_files, tmp_path):
        prog, _ = load_chain_files
        rc = main([str(prog), str(tmp_path / "nope.log"), "--pt1", "1", "--pt2", "1"])
        assert rc == EXIT_INFRA

    def test_malformed_log(self, load_chain_files):
        prog, log = load_chain_files
        log.write_text("toplevel 24 0x2000\nnonsense\n", encoding="utf-8")
        rc = main([str(prog), str(log), "--pt1", "1", "--pt2", "1"])
        assert rc == EXIT_INFRA

    def test_contract_violation(self, load_chain_files, capsys):
        prog, log = load_chain_files
        rc = main([str(prog), str(log), "--pt1", "1", "--pt2", "2"])
        assert rc == EXIT_ERROR
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "SLICE-2002" in captured.err

    def test_out_of_range_start(self, load_chain_files):
        prog, log = load_chain_files
        rc = main([str(prog), str(log), "--pt1", "99", "--pt2", "2"])
        assert rc == EXIT_ERROR

    def test_unknown_adopted_operand_writes_nothing(self, load_chain_files, tmp_path):
        prog, log = load_chain_files
        prog.write_text(LOAD_CHAIN_PROGRAM.replace("(21 20)", "(99 20)"), encoding="utf-8")
        log.write_text(
            "toplevel 1 0x77\nstore 102 0x1000\ntoplevel 23 0x2000 0x1000\n",
            encoding="utf-8",
        )
        dest = tmp_path / "slice.txt"
        rc = main([str(prog), str(log), "--pt1", "3", "--pt2", "1", "-o", str(dest)])
        assert rc == EXIT_INFRA
        assert not dest.exists()

    def test_unopenable_output(self, load_chain_files, tmp_path):
        prog, log = load_chain_files
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        rc = main([str(prog), str(log), "--pt1", "7", "--pt2", "2",
                   "-o", str(blocker / "slice.txt")])
        assert rc == EXIT_INFRA
