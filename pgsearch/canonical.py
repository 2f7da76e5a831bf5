"""
Canonical proteome handling and target-decoy database construction.
"""

import os
import re
import threading
from typing import List, Optional, Sequence

import requests

from . import tools
from .config import PipelineConfig
from .fractions import fraction_db_name
from .records import FractionDatabase, TargetDecoyDatabase
from .taskgroup import TaskGroup
from .transcripts import digest_proteins

UNIPROT_STREAM_URL = "https://rest.uniprot.org/uniprotkb/stream"
PROTEOME_ID = re.compile(r"^UP\d{9}$")


def fetch_canonical_proteome(
    proteome_id: str,
    output_dir: str,
    base_url: str = UNIPROT_STREAM_URL,
    timeout: float = 300.0,
    session: Optional[requests.Session] = None,
) -> str:
    """Download a reviewed UniProt proteome as FASTA.

    Parameters
    ----------
    proteome_id : str
        UniProt proteome id (e.g., 'UP000005640')
    output_dir : str
        Directory to store the FASTA file
    base_url : str, optional
        UniProt stream endpoint
    timeout : float, optional
        Request timeout in seconds (default: 300)
    session : requests.Session, optional
        Reuse a requests session

    Returns
    -------
    str
        Path to the downloaded FASTA file
    """

    params = {"format": "fasta", "query": f"(proteome:{proteome_id}) AND (reviewed:true)"}
    req = session.get if session else requests.get

    print(f"Downloading canonical proteome {proteome_id} from UniProt...")
    resp = req(base_url, params=params, timeout=timeout)
    resp.raise_for_status()

    os.makedirs(output_dir, exist_ok=True)
    fasta_file = os.path.join(output_dir, f"{proteome_id}.fasta")
    with open(fasta_file, "w") as f:
        f.write(resp.text)

    print(f"Canonical proteome saved to {fasta_file}")
    return fasta_file


def resolve_canonical_proteome(source: str, output_dir: str, **kwargs) -> str:
    """Return a canonical proteome FASTA path, downloading it if given a proteome id."""

    if not os.path.exists(source) and PROTEOME_ID.match(source):
        return fetch_canonical_proteome(source, output_dir, **kwargs)
    return source


def concatenate_files(paths: Sequence[str], output_file: str) -> str:
    with open(output_file, "w") as outfile:
        for path in paths:
            with open(path, "r") as infile:
                outfile.write(infile.read())
    return output_file


def make_decoys(
    target_file: str,
    decoy_file: str,
    msstitch: str = "msstitch",
    cancel: Optional[threading.Event] = None,
) -> str:
    """Create one tryptic-reversed decoy per target peptide with msstitch."""

    cmd = [msstitch, "makedecoy", "-i", target_file, "-o", decoy_file, "--scramble", "tryp_rev"]
    tools.run_tool(cmd, f"Creating decoys for {os.path.basename(target_file)}", cancel=cancel)
    return decoy_file


def build_target_decoy(
    database: FractionDatabase,
    canonical_peptides: str,
    output_dir: str,
    msstitch: str = "msstitch",
    cancel: Optional[threading.Event] = None,
) -> TargetDecoyDatabase:
    """Merge a fraction database with canonical peptides and append decoys.

    An empty fraction database is expected for fractions outside the pI range
    of the sample peptides; its target is the canonical peptides alone.

    Parameters
    ----------
    database : FractionDatabase
        Candidate database of one fraction
    canonical_peptides : str
        Digested canonical proteome, shared by all fractions
    output_dir : str
        Directory for target-decoy databases

    Returns
    -------
    TargetDecoyDatabase
        Target-decoy database keyed by the same fraction
    """

    os.makedirs(output_dir, exist_ok=True)
    name = fraction_db_name(database.fraction)
    stem = name[: -len(".fa")]

    canonical_only = os.path.getsize(database.path) == 0
    if canonical_only:
        print(f"Fraction {database.fraction} has no candidate peptides, using canonical peptides only")
        target = canonical_peptides
    else:
        target = concatenate_files(
            [database.path, canonical_peptides], os.path.join(output_dir, f"{stem}.target.fa")
        )

    decoy = make_decoys(target, os.path.join(output_dir, f"{stem}.decoy.fa"), msstitch=msstitch, cancel=cancel)
    td_file = concatenate_files([target, decoy], os.path.join(output_dir, name))

    return TargetDecoyDatabase(fraction=database.fraction, path=td_file, canonical_only=canonical_only)


def digest_canonical_proteome(config: PipelineConfig, cancel: Optional[threading.Event] = None) -> str:
    """Fetch if needed and digest the canonical proteome once for all fractions."""

    output_dir = config.stage_dir("canonical")
    proteome = resolve_canonical_proteome(config.canonical_proteome, output_dir)
    return digest_proteins(
        proteome,
        os.path.join(output_dir, "canonical.peptides.fa"),
        enzyme=config.enzyme,
        missed_cleavages=config.missed_cleavages,
        digestor=config.tools.digestor,
        cancel=cancel,
    )


def build_target_decoy_databases(
    databases: Sequence[FractionDatabase],
    canonical_peptides: str,
    config: PipelineConfig,
    cancel: Optional[threading.Event] = None,
) -> List[TargetDecoyDatabase]:
    """Build one target-decoy database per fraction database, concurrently."""

    output_dir = config.stage_dir("targetdecoy")
    group = TaskGroup(max_workers=config.jobs, cancel=cancel)
    for database in databases:
        group.add(
            f"targetdecoy:{database.fraction}",
            build_target_decoy,
            database,
            canonical_peptides,
            output_dir,
            msstitch=config.tools.msstitch,
        )
    target_decoys = group.run()

    print(f"Built {len(target_decoys)} target-decoy databases")
    return target_decoys
