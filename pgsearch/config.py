"""
Run configuration for the pgsearch pipeline.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .errors import MalformedInputError

# Digestion rule -> (MS-GF+ enzyme id, msgf2pin enzyme name)
SEARCH_ENZYMES = {
    "Trypsin/P": ("1", "trypsinp"),
    "Trypsin": ("1", "trypsin"),
    "Chymotrypsin": ("2", "chymotrypsin"),
    "Lys-C": ("3", "lys-c"),
    "Lys-N": ("4", "lys-n"),
    "glutamyl endopeptidase": ("5", "glu-c"),
    "Arg-C": ("6", "arg-c"),
    "Asp-N": ("7", "asp-n"),
}


def search_enzyme(enzyme: str) -> Tuple[str, str]:
    """Search and validation enzyme settings matching a digestion rule.

    Raises
    ------
    MalformedInputError
        If the rule has no search counterpart
    """
    try:
        return SEARCH_ENZYMES[enzyme]
    except KeyError:
        raise MalformedInputError(
            f"Enzyme '{enzyme}' is not supported for searching; choose one of: {', '.join(SEARCH_ENZYMES)}"
        ) from None


@dataclass(frozen=True)
class PiBinning:
    """Linear pI-to-fraction model used by the database splitter."""

    intercept: float = 3.5
    width: float = 0.07
    tolerance: float = 0.11
    amount: int = 72


@dataclass(frozen=True)
class ToolPaths:
    """Executables of the external collaborators."""

    gffread: str = "gffread"
    transeq: str = "transeq"
    digestor: str = "Digestor"
    pi_annotator: str = "peptide_pI_annotator.py"
    pi_splitter: str = "pi_database_splitter.py"
    msstitch: str = "msstitch"
    java: str = "java"
    msgf_jar: str = "MSGFPlus.jar"
    msgf2pin: str = "msgf2pin"
    percolator: str = "percolator"

    def executables(self):
        """Programs that must be found on PATH."""
        return [
            self.gffread,
            self.transeq,
            self.digestor,
            self.pi_annotator,
            self.pi_splitter,
            self.msstitch,
            self.java,
            self.msgf2pin,
            self.percolator,
        ]


@dataclass(frozen=True)
class PipelineConfig:
    """All parameters of a pipeline run.

    Parameters
    ----------
    output_dir : str
        Root directory for every stage output
    genome_file : str
        Reference genome FASTA used to extract transcript nucleotide sequences
    canonical_proteome : str
        Canonical protein FASTA, or a UniProt proteome id to download
    pi_reference : str
        Reference peptide/retention table used by the pI binning model
    mods_file : str, optional
        Modification table passed to the search tool
    missed_cleavages : int
        Missed cleavages allowed during digestion (default: 2)
    enzyme : str
        Cleavage rule (default: Trypsin/P)
    binning : PiBinning
        pI binning parameters
    spectra_suffix : str
        Extension stripped from spectra file names to derive sample names
    drop_unmatched_fractions : bool
        Drop spectra whose fraction has no database instead of failing
    jobs : int
        Concurrent branches for light tools
    search_jobs : int
        Concurrent search invocations
    search_threads : int
        Threads given to each search invocation
    search_memory : str
        Java heap size given to each search invocation
    """

    output_dir: str
    genome_file: str
    canonical_proteome: str
    pi_reference: str
    mods_file: Optional[str] = None
    missed_cleavages: int = 2
    enzyme: str = "Trypsin/P"
    binning: PiBinning = field(default_factory=PiBinning)
    spectra_suffix: str = ".mzML"
    drop_unmatched_fractions: bool = False
    jobs: int = 4
    search_jobs: int = 1
    search_threads: int = 4
    search_memory: str = "8G"
    tools: ToolPaths = field(default_factory=ToolPaths)

    def stage_dir(self, name: str) -> str:
        """Return (and create) the output directory of a pipeline stage."""
        path = os.path.join(self.output_dir, name)
        os.makedirs(path, exist_ok=True)
        return path
