"""
Sample-specific peptide database construction from transcript models.
"""

import os
import threading
from typing import List, Optional, Sequence

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from . import tools
from .config import PipelineConfig
from .records import Sample
from .taskgroup import TaskGroup


def extract_transcript_sequences(
    sample: Sample,
    genome_file: str,
    output_dir: str,
    gffread: str = "gffread",
    cancel: Optional[threading.Event] = None,
) -> str:
    """Extract transcript nucleotide sequences for one sample with gffread.

    Parameters
    ----------
    sample : Sample
        Sample whose transcript model is extracted
    genome_file : str
        Reference genome FASTA file
    output_dir : str
        Directory for output files
    gffread : str
        gffread executable
    cancel : threading.Event, optional
        Cancellation token of the run

    Returns
    -------
    str
        Path to the nucleotide FASTA file
    """

    nt_file = os.path.join(output_dir, f"{sample.id}.nt.fa")
    cmd = [gffread, sample.transcript_model, "-g", genome_file, "-w", nt_file]
    tools.run_tool(cmd, f"Extracting transcript sequences of {sample.id}", cancel=cancel)
    return nt_file


def translate_three_frame(
    sample: Sample,
    nt_file: str,
    output_dir: str,
    transeq: str = "transeq",
    cancel: Optional[threading.Event] = None,
) -> str:
    """Translate nucleotide sequences in the three forward frames with EMBOSS transeq.

    Stop codons are kept as ``*`` so they can be split on later.

    Returns
    -------
    str
        Path to the protein FASTA file
    """

    protein_file = os.path.join(output_dir, f"{sample.id}.3frame.fa")
    cmd = [transeq, "-sequence", nt_file, "-outseq", protein_file, "-frame", "F"]
    tools.run_tool(cmd, f"Translating {sample.id} in three frames", cancel=cancel)
    return protein_file


def build_sample_proteins(
    sample: Sample, config: PipelineConfig, cancel: Optional[threading.Event] = None
) -> str:
    """Run extraction and translation for one sample."""

    output_dir = config.stage_dir("transcripts")
    nt_file = extract_transcript_sequences(
        sample, config.genome_file, output_dir, gffread=config.tools.gffread, cancel=cancel
    )
    return translate_three_frame(sample, nt_file, output_dir, transeq=config.tools.transeq, cancel=cancel)


def merge_sequence_sets(protein_files: Sequence[str], output_file: str) -> str:
    """Concatenate protein sets, dropping exact duplicate records.

    A record is a duplicate only if both its full header line and its sequence
    were already seen; the first occurrence is kept. Records sharing an id but
    differing in sequence are all kept.

    Parameters
    ----------
    protein_files : Sequence[str]
        Protein FASTA files, in sample order
    output_file : str
        Merged FASTA file

    Returns
    -------
    str
        Path to the merged file
    """

    seen = set()
    merged: List[SeqRecord] = []
    total = 0

    for protein_file in protein_files:
        for record in SeqIO.parse(protein_file, "fasta"):
            total += 1
            identity = (record.description, str(record.seq))
            if identity in seen:
                continue
            seen.add(identity)
            merged.append(record)

    SeqIO.write(merged, output_file, "fasta")
    print(f"Merged {total} sequences from {len(protein_files)} samples into {len(merged)} unique records")
    return output_file


def split_stop_codons(input_file: str, output_file: str, stop: str = "*") -> str:
    """Split protein records at internal stop codons.

    Empty pieces are dropped. A record yielding a single piece keeps its id,
    otherwise pieces are named ``<id>_<n>`` starting at 1.
    """

    pieces_written = 0

    def pieces():
        nonlocal pieces_written
        for record in SeqIO.parse(input_file, "fasta"):
            fragments = [frag for frag in str(record.seq).split(stop) if frag]
            if len(fragments) == 1:
                pieces_written += 1
                yield SeqRecord(Seq(fragments[0]), id=record.id, description=record.description)
                continue
            for n, fragment in enumerate(fragments, start=1):
                pieces_written += 1
                yield SeqRecord(Seq(fragment), id=f"{record.id}_{n}", description="")

    SeqIO.write(pieces(), output_file, "fasta")
    print(f"Split stop codons: {pieces_written} open sequences written to {output_file}")
    return output_file


def digest_proteins(
    input_file: str,
    output_file: str,
    enzyme: str = "Trypsin/P",
    missed_cleavages: int = 2,
    digestor: str = "Digestor",
    cancel: Optional[threading.Event] = None,
) -> str:
    """Digest proteins into peptides with OpenMS Digestor.

    Parameters
    ----------
    input_file : str
        Protein FASTA file
    output_file : str
        Peptide FASTA file
    enzyme : str
        Cleavage rule (default: Trypsin/P)
    missed_cleavages : int
        Missed cleavages allowed (default: 2)

    Returns
    -------
    str
        Path to the peptide FASTA file
    """

    cmd = [
        digestor,
        "-in",
        input_file,
        "-out",
        output_file,
        "-enzyme",
        enzyme,
        "-missed_cleavages",
        str(missed_cleavages),
        "-out_type",
        "fasta",
    ]
    tools.run_tool(cmd, f"Digesting {os.path.basename(input_file)} ({enzyme}, {missed_cleavages} missed)", cancel=cancel)
    return output_file


def annotate_peptide_pi(
    input_file: str,
    output_file: str,
    annotator: str = "peptide_pI_annotator.py",
    cancel: Optional[threading.Event] = None,
) -> str:
    """Annotate peptides with their predicted isoelectric point."""

    cmd = [annotator, "-p", input_file, "-o", output_file]
    tools.run_tool(cmd, "Predicting peptide pI", cancel=cancel)
    return output_file


def build_transcript_database(
    samples: Sequence[Sample], config: PipelineConfig, cancel: Optional[threading.Event] = None
) -> str:
    """Build the combined, pI-annotated peptide set of all samples.

    Per-sample branches run concurrently; the merge waits for all of them.

    Returns
    -------
    str
        Path to the pI-annotated peptide file
    """

    group = TaskGroup(max_workers=config.jobs, cancel=cancel)
    for sample in samples:
        group.add(f"proteins:{sample.id}", build_sample_proteins, sample, config)
    protein_files = group.run()

    output_dir = config.stage_dir("transcripts")
    merged = merge_sequence_sets(protein_files, os.path.join(output_dir, "combined.fa"))
    split = split_stop_codons(merged, os.path.join(output_dir, "combined.nostop.fa"))
    peptides = digest_proteins(
        split,
        os.path.join(output_dir, "combined.peptides.fa"),
        enzyme=config.enzyme,
        missed_cleavages=config.missed_cleavages,
        digestor=config.tools.digestor,
        cancel=cancel,
    )
    return annotate_peptide_pi(
        peptides,
        os.path.join(output_dir, "combined.peptides.pi.tsv"),
        annotator=config.tools.pi_annotator,
        cancel=cancel,
    )
