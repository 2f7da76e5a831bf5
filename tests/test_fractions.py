import os

import pytest

from pgsearch.config import PiBinning
from pgsearch.fractions import fraction_db_name, fraction_from_db_name, split_by_fraction


class TestFractionNames:
    @pytest.mark.parametrize("fraction", ["01", "1", "72", "pI_3.5", "A-12"])
    def test_name_round_trip(self, fraction):
        assert fraction_from_db_name(fraction_db_name(fraction)) == fraction

    def test_name_layout(self):
        assert fraction_db_name("07") == "db_07.fa"

    @pytest.mark.parametrize("name", ["07.fa", "db_07.fasta", "db_.fa", "decoy_07.fa"])
    def test_bad_names(self, name):
        with pytest.raises(ValueError):
            fraction_from_db_name(name)


class TestSplitByFraction:
    """Test splitting the pI-annotated peptides into fraction databases."""

    def test_one_database_per_fraction_in_order(self, temp_dir, fake_tools):
        out_dir = os.path.join(temp_dir, "fractions")
        databases = split_by_fraction("peptides.pi.tsv", ["03", "01", "02"], "ref.tsv", out_dir)

        assert [db.fraction for db in databases] == ["03", "01", "02"]
        assert [os.path.basename(db.path) for db in databases] == ["db_03.fa", "db_01.fa", "db_02.fa"]
        assert all(os.path.getsize(db.path) > 0 for db in databases)

    def test_splitter_command(self, temp_dir, fake_tools):
        out_dir = os.path.join(temp_dir, "fractions")
        binning = PiBinning(intercept=3.0, width=0.1, tolerance=0.2, amount=60)
        split_by_fraction("peptides.pi.tsv", ["01", "02"], "ref.tsv", out_dir, binning=binning)

        cmd = fake_tools.calls[0]
        assert cmd[0] == "pi_database_splitter.py"
        assert cmd[cmd.index("-i") + 1] == "peptides.pi.tsv"
        assert cmd[cmd.index("-p") + 1] == "ref.tsv"
        assert cmd[cmd.index("--intercept") + 1] == "3.0"
        assert cmd[cmd.index("--amount") + 1] == "60"
        assert cmd[cmd.index("--fractions") + 1 :] == ["01", "02"]

    def test_missing_fraction_gets_empty_database(self, temp_dir, fake_tools, capsys):
        fake_tools.empty_fractions = {"02"}
        out_dir = os.path.join(temp_dir, "fractions")

        databases = split_by_fraction("peptides.pi.tsv", ["01", "02"], "ref.tsv", out_dir)

        empty = databases[1]
        assert empty.fraction == "02"
        assert os.path.exists(empty.path)
        assert os.path.getsize(empty.path) == 0
        assert "no peptides binned to fraction 02" in capsys.readouterr().out

    def test_undeclared_output_ignored(self, temp_dir, fake_tools, capsys):
        fake_tools.extra_fractions = ["99"]
        out_dir = os.path.join(temp_dir, "fractions")

        databases = split_by_fraction("peptides.pi.tsv", ["01"], "ref.tsv", out_dir)

        assert [db.fraction for db in databases] == ["01"]
        assert "ignoring splitter output db_99.fa" in capsys.readouterr().out

    def test_rerun_does_not_reuse_earlier_databases(self, temp_dir, fake_tools):
        out_dir = os.path.join(temp_dir, "fractions")
        first = split_by_fraction("peptides.pi.tsv", ["01", "02"], "ref.tsv", out_dir)
        assert os.path.getsize(first[1].path) > 0

        fake_tools.empty_fractions = {"02"}
        second = split_by_fraction("peptides.pi.tsv", ["01", "02"], "ref.tsv", out_dir)

        assert os.path.getsize(second[0].path) > 0
        assert os.path.getsize(second[1].path) == 0
