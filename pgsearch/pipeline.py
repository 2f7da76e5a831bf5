"""
Main pipeline orchestration for pgsearch.
"""

import os
import threading
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from .aggregate import group_by_set, join_validations, validate_sets
from .canonical import build_target_decoy_databases, digest_canonical_proteome
from .config import PipelineConfig, search_enzyme
from .correspond import build_search_units
from .errors import MalformedInputError
from .fractions import split_by_fraction
from .ingest import fractions_of, load_samples, read_spectra_definitions
from .records import IdentificationResult, SearchUnit, ValidatedSet
from .search import dispatch_searches
from .taskgroup import TaskGroup
from .transcripts import build_transcript_database


@dataclass
class PipelineResult:
    search_units: List[SearchUnit]
    identifications: List[IdentificationResult]
    validated_sets: List[ValidatedSet]
    summary_files: Tuple[str, str]


def write_run_summary(
    units: Sequence[SearchUnit], validated_sets: Sequence[ValidatedSet], output_dir: str
) -> Tuple[str, str]:
    """Write the search unit and set tables of a run.

    Returns
    -------
    Tuple[str, str]
        Paths to ``search_units.tsv`` and ``sets.tsv``
    """

    units_df = pd.DataFrame(
        [
            {
                "fraction": unit.fraction,
                "set": unit.set,
                "sample": unit.sample,
                "spectra": unit.spectra_path,
                "database": unit.database_path,
            }
            for unit in units
        ],
        columns=["fraction", "set", "sample", "spectra", "database"],
    )
    units_file = os.path.join(output_dir, "search_units.tsv")
    units_df.to_csv(units_file, sep="\t", index=False)

    sets_df = pd.DataFrame(
        [
            {
                "set": validated.group.set,
                "position": position,
                "sample": result.sample,
                "fraction": result.fraction,
                "mzid": result.ident_path,
                "table": result.table_path,
                "percolator": validated.validation.validated_path,
            }
            for validated in validated_sets
            for position, result in enumerate(validated.group.results, start=1)
        ],
        columns=["set", "position", "sample", "fraction", "mzid", "table", "percolator"],
    )
    sets_file = os.path.join(output_dir, "sets.tsv")
    sets_df.to_csv(sets_file, sep="\t", index=False)

    print(f"Run summary written to {units_file} and {sets_file}")
    return units_file, sets_file


def run_pgsearch_pipeline(
    config: PipelineConfig,
    transcript_models: Sequence[str],
    spectra_definition: str,
    cancel: Optional[threading.Event] = None,
) -> PipelineResult:
    """
    Run the complete proteogenomics search pipeline.

    Parameters
    ----------
    config : PipelineConfig
        Run parameters
    transcript_models : Sequence[str]
        One transcript model file per sample
    spectra_definition : str
        File listing spectra path, set and fraction per line
    cancel : threading.Event, optional
        Cancellation token shared by every branch of the run

    Returns
    -------
    PipelineResult
        Search units, identifications and validated sets of the run
    """
    cancel = cancel if cancel is not None else threading.Event()

    # Parse all inputs before any tool runs
    search_enzyme(config.enzyme)
    samples = load_samples(transcript_models)
    if not samples:
        raise MalformedInputError("No transcript models given")
    records = read_spectra_definitions(spectra_definition, config.spectra_suffix)
    if not records:
        raise MalformedInputError(f"No spectra records in {spectra_definition}")
    fractions = fractions_of(records)
    print(f"{len(samples)} samples, {len(records)} spectra files, {len(fractions)} fractions")

    # Sample database and canonical digest are independent branches
    branches = TaskGroup(max_workers=2, cancel=cancel)
    branches.add("transcript database", build_transcript_database, samples, config)
    branches.add("canonical digest", digest_canonical_proteome, config)
    pi_peptides, canonical_peptides = branches.run()

    fraction_dbs = split_by_fraction(
        pi_peptides,
        fractions,
        config.pi_reference,
        config.stage_dir("fractions"),
        binning=config.binning,
        splitter=config.tools.pi_splitter,
        cancel=cancel,
    )
    target_decoys = build_target_decoy_databases(fraction_dbs, canonical_peptides, config, cancel=cancel)

    units = build_search_units(records, target_decoys, drop_unmatched=config.drop_unmatched_fractions)
    identifications = dispatch_searches(units, config, cancel=cancel)

    # Wait for every search of a set before validating it
    groups = group_by_set(identifications, records)
    validations = validate_sets(groups, config, cancel=cancel)
    validated_sets = join_validations(groups, validations)

    summary_files = write_run_summary(units, validated_sets, config.output_dir)
    print(f"Pipeline completed! {len(validated_sets)} sets validated")

    return PipelineResult(
        search_units=units,
        identifications=identifications,
        validated_sets=validated_sets,
        summary_files=summary_files,
    )
