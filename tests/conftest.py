import os
import pytest
import tempfile
import shutil

from pgsearch.config import PipelineConfig
from pgsearch.errors import ExternalToolError


def _after(cmd, flag):
    return cmd[cmd.index(flag) + 1]


def _write(path, text):
    with open(path, "w") as f:
        f.write(text)


def _copy(src, dst):
    with open(src) as f:
        _write(dst, f.read())


class FakeTools:
    """Stand-in for pgsearch.tools.run_tool that writes the files each tool would write."""

    def __init__(self):
        self.calls = []
        self.empty_fractions = set()
        self.extra_fractions = []
        self.fail_on = None

    def programs(self):
        return [os.path.basename(cmd[0]) for cmd in self.calls]

    def __call__(self, cmd, description, cancel=None):
        self.calls.append(list(cmd))
        program = os.path.basename(cmd[0])

        if self.fail_on is not None and self.fail_on == program:
            raise ExternalToolError(cmd, 1, f"{program} failed")

        if program == "gffread":
            _write(_after(cmd, "-w"), ">TCONS_1\nATGAAACGTTAG\n")
        elif program == "transeq":
            stem = os.path.basename(_after(cmd, "-outseq")).split(".", 1)[0]
            _write(
                _after(cmd, "-outseq"),
                f">{stem}_1\nMKR*PEPTIDEK\n>{stem}_2\nLLLK\n>shared_1\nSHAREDK\n",
            )
        elif program == "Digestor":
            _copy(_after(cmd, "-in"), _after(cmd, "-out"))
        elif program == "peptide_pI_annotator.py":
            _copy(_after(cmd, "-p"), _after(cmd, "-o"))
        elif program == "pi_database_splitter.py":
            prefix = _after(cmd, "--prefix")
            fractions = cmd[cmd.index("--fractions") + 1 :]
            for fraction in fractions + self.extra_fractions:
                if fraction not in self.empty_fractions:
                    _write(f"{prefix}{fraction}.fa", f">pep_{fraction}\nPEPTIDEK\n")
        elif program == "msstitch":
            _write(_after(cmd, "-o"), ">decoy_pep\nKEDITPEP\n")
        elif program == "java":
            _write(_after(cmd, "-o"), "<MzIdentML/>\n")
        elif program == "msgf2pin":
            _write(_after(cmd, "-o"), "SpecId\tLabel\n")
        elif program == "percolator":
            _write(_after(cmd, "-X"), "<percolator_output/>\n")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def fake_tools(monkeypatch):
    """Replace external tool invocations with FakeTools."""
    fake = FakeTools()
    monkeypatch.setattr("pgsearch.tools.run_tool", fake)
    return fake


@pytest.fixture
def canonical_file(temp_dir):
    """Create a small canonical proteome FASTA file."""
    canonical = os.path.join(temp_dir, "canonical.fasta")
    with open(canonical, "w") as f:
        f.write(">sp|P00001|CANON_1\n")
        f.write("MKRLLAISLLLAVVTSLLAAPYVK\n")
        f.write(">sp|P00002|CANON_2\n")
        f.write("MATAIGDRSTLTAK\n")
    return canonical


@pytest.fixture
def config(temp_dir, canonical_file):
    """Pipeline configuration writing into the temporary directory."""
    return PipelineConfig(
        output_dir=os.path.join(temp_dir, "out"),
        genome_file=os.path.join(temp_dir, "genome.fa"),
        canonical_proteome=canonical_file,
        pi_reference=os.path.join(temp_dir, "pi_reference.tsv"),
        jobs=2,
    )
