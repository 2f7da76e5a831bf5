"""
End-to-end tests for the pgsearch pipeline with external tools replaced by FakeTools.
"""

import os
from dataclasses import replace

import pandas as pd
import pytest

from pgsearch.errors import ExternalToolError, MalformedInputError
from pgsearch.pipeline import run_pgsearch_pipeline


def write_definitions(temp_dir, lines):
    path = os.path.join(temp_dir, "spectra.txt")
    with open(path, "w") as f:
        f.write("\n".join(lines) + "\n")
    return path


@pytest.fixture
def transcript_models(temp_dir):
    return [os.path.join(temp_dir, "tumour.gtf"), os.path.join(temp_dir, "normal.stringtie.gtf")]


class TestPipeline:
    """Test the complete dataflow from inputs to validated sets."""

    def test_minimal_run(self, temp_dir, config, fake_tools, transcript_models):
        spectra = write_definitions(temp_dir, ["/ms/set1_f01.mzML\t1\t01"])

        result = run_pgsearch_pipeline(config, transcript_models, spectra)

        assert len(result.search_units) == 1
        assert result.search_units[0].key == ("01", "1", "set1_f01")
        assert len(result.identifications) == 1
        assert len(result.validated_sets) == 1

        validated = result.validated_sets[0]
        assert validated.group.samples == ["set1_f01"]
        assert validated.validation.validated_path == os.path.join(
            config.output_dir, "validation", "Set1.perco.xml"
        )

        programs = fake_tools.programs()
        assert programs.count("gffread") == 2
        assert programs.count("pi_database_splitter.py") == 1
        assert programs.count("msgf2pin") == 1
        assert programs[-1] == "percolator"

    def test_sets_and_fractions(self, temp_dir, config, fake_tools, transcript_models):
        spectra = write_definitions(
            temp_dir,
            [
                "/ms/A_f02.mzML A 02",
                "/ms/B_f01.mzML B 01",
                "/ms/A_f01.mzML A 01",
                "/ms/B_f02.mzML B 02",
            ],
        )

        result = run_pgsearch_pipeline(config, transcript_models, spectra)

        assert [unit.key for unit in result.search_units] == [
            ("02", "A", "A_f02"),
            ("01", "B", "B_f01"),
            ("01", "A", "A_f01"),
            ("02", "B", "B_f02"),
        ]
        for unit in result.search_units:
            assert os.path.basename(unit.database_path) == f"db_{unit.fraction}.fa"

        groups = {validated.group.set: validated.group.samples for validated in result.validated_sets}
        assert groups == {"A": ["A_f02", "A_f01"], "B": ["B_f01", "B_f02"]}

        splitter = [cmd for cmd in fake_tools.calls if cmd[0] == "pi_database_splitter.py"][0]
        assert splitter[splitter.index("--fractions") + 1 :] == ["02", "01"]

        units_file, sets_file = result.summary_files
        units = pd.read_csv(units_file, sep="\t", dtype=str)
        assert list(units["sample"]) == ["A_f02", "B_f01", "A_f01", "B_f02"]
        sets = pd.read_csv(sets_file, sep="\t", dtype=str)
        assert list(sets["set"]) == ["A", "A", "B", "B"]
        assert list(sets["position"]) == ["1", "2", "1", "2"]

    def test_empty_fraction_searched_against_canonical(self, temp_dir, config, fake_tools, transcript_models):
        fake_tools.empty_fractions = {"02"}
        spectra = write_definitions(temp_dir, ["/ms/A_f01.mzML A 01", "/ms/A_f02.mzML A 02"])

        result = run_pgsearch_pipeline(config, transcript_models, spectra)

        assert len(result.search_units) == 2
        decoy_inputs = [cmd[cmd.index("-i") + 1] for cmd in fake_tools.calls if cmd[0] == "msstitch"]
        canonical_peptides = os.path.join(config.output_dir, "canonical", "canonical.peptides.fa")
        assert canonical_peptides in decoy_inputs

        empty_unit = result.search_units[1]
        assert empty_unit.fraction == "02"
        assert empty_unit.database_path == os.path.join(config.output_dir, "targetdecoy", "db_02.fa")
        with open(canonical_peptides) as f:
            canonical_text = f.read()
        with open(empty_unit.database_path) as f:
            assert f.read() == canonical_text + ">decoy_pep\nKEDITPEP\n"

        search_cmd = [cmd for cmd in fake_tools.calls if cmd[0] == "java" and "/ms/A_f02.mzML" in cmd][0]
        assert search_cmd[search_cmd.index("-d") + 1] == empty_unit.database_path

    def test_tool_failure_aborts_run(self, temp_dir, config, fake_tools, transcript_models):
        fake_tools.fail_on = "msstitch"
        spectra = write_definitions(temp_dir, ["/ms/A_f01.mzML A 01"])

        with pytest.raises(ExternalToolError):
            run_pgsearch_pipeline(config, transcript_models, spectra)

        assert "java" not in fake_tools.programs()
        assert not os.path.exists(os.path.join(config.output_dir, "sets.tsv"))

    def test_malformed_definitions_fail_before_tools(self, temp_dir, config, fake_tools, transcript_models):
        spectra = write_definitions(temp_dir, ["/ms/A_f01.mzML A"])

        with pytest.raises(MalformedInputError):
            run_pgsearch_pipeline(config, transcript_models, spectra)

        assert fake_tools.calls == []

    def test_no_samples(self, temp_dir, config, fake_tools):
        spectra = write_definitions(temp_dir, ["/ms/A_f01.mzML A 01"])
        with pytest.raises(MalformedInputError):
            run_pgsearch_pipeline(config, [], spectra)

    def test_duplicate_sample_ids(self, temp_dir, config, fake_tools):
        spectra = write_definitions(temp_dir, ["/ms/A_f01.mzML A 01"])
        with pytest.raises(MalformedInputError):
            run_pgsearch_pipeline(config, ["/a/s1.gtf", "/b/s1.gtf"], spectra)

    def test_set_with_path_separator_fails_before_tools(self, temp_dir, config, fake_tools, transcript_models):
        spectra = write_definitions(temp_dir, [f"/ms/a_f01.mzML grp{os.sep}1 01"])

        with pytest.raises(MalformedInputError):
            run_pgsearch_pipeline(config, transcript_models, spectra)

        assert fake_tools.calls == []

    def test_unsupported_enzyme_fails_before_tools(self, temp_dir, config, fake_tools, transcript_models):
        spectra = write_definitions(temp_dir, ["/ms/A_f01.mzML A 01"])

        with pytest.raises(MalformedInputError):
            run_pgsearch_pipeline(replace(config, enzyme="Pepsin"), transcript_models, spectra)

        assert fake_tools.calls == []
