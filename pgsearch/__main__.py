import argparse
import os
import sys

from . import __version__
from .config import SEARCH_ENZYMES, PiBinning, PipelineConfig, ToolPaths
from .dependencies import check_dependencies
from .errors import PipelineError
from .pipeline import run_pgsearch_pipeline


def get_args():
    description = (
        "pgsearch: build sample-specific peptide databases from transcript models"
        + " and search pI-fractionated spectra against them"
    )
    main_parser = argparse.ArgumentParser(
        description=description,
        prog="pgsearch",
    )

    # i/o args
    io_opts = main_parser.add_argument_group("Input and output")
    io_opts.add_argument(
        "-t",
        "--transcripts",
        dest="transcript_models",
        help="transcript model files (GTF), one per sample; sample ids are the file names up to the first '.'",
        type=str,
        nargs="+",
        required=True,
    )
    io_opts.add_argument(
        "-s",
        "--spectra",
        dest="spectra_definition",
        help="definition file with one 'spectra_file set fraction' line per spectra file",
        type=str,
        required=True,
    )
    io_opts.add_argument(
        "-g",
        "--genome",
        dest="genome_file",
        help="FASTA-format reference genome the transcript models refer to",
        type=str,
        required=True,
    )
    io_opts.add_argument(
        "-c",
        "--canonical",
        dest="canonical_proteome",
        help=(
            "canonical protein FASTA merged into every fraction database, "
            + "or a UniProt proteome id (e.g. 'UP000005640') to download"
        ),
        type=str,
        required=True,
    )
    io_opts.add_argument(
        "-r",
        "--pi-reference",
        dest="pi_reference",
        help="reference peptide pI/fraction dataset used to train the binning model",
        type=str,
        required=True,
    )
    io_opts.add_argument(
        "-o",
        "--out_dir",
        dest="output_dir",
        help="directory for output files",
        type=str,
        required=True,
    )

    # digestion args
    digest_opts = main_parser.add_argument_group("Digestion arguments")
    digest_opts.add_argument(
        "--enzyme",
        dest="enzyme",
        help=(
            "cleavage rule used for digestion, search and validation (default: Trypsin/P); "
            + "one of: " + ", ".join(SEARCH_ENZYMES)
        ),
        type=str,
        default="Trypsin/P",
    )
    digest_opts.add_argument(
        "--missed-cleavages",
        dest="missed_cleavages",
        help="missed cleavages allowed during digestion (default: 2)",
        type=int,
        default=2,
    )

    # pI binning args
    pi_opts = main_parser.add_argument_group("pI binning arguments")
    pi_opts.add_argument(
        "--intercept", dest="intercept", help="pI of the first fraction (default: 3.5)", type=float, default=3.5
    )
    pi_opts.add_argument(
        "--width", dest="width", help="pI width of a fraction (default: 0.07)", type=float, default=0.07
    )
    pi_opts.add_argument(
        "--tolerance",
        dest="tolerance",
        help="pI tolerance around each fraction (default: 0.11)",
        type=float,
        default=0.11,
    )
    pi_opts.add_argument(
        "--amount",
        dest="amount",
        help="target number of peptides per fraction bin (default: 72)",
        type=int,
        default=72,
    )

    # search args
    search_opts = main_parser.add_argument_group("Search arguments")
    search_opts.add_argument(
        "--mods",
        dest="mods_file",
        help="modification table passed to MS-GF+",
        type=str,
        default=None,
    )
    search_opts.add_argument(
        "--msgf-jar",
        dest="msgf_jar",
        help="path to MSGFPlus.jar (default: MSGFPlus.jar)",
        type=str,
        default="MSGFPlus.jar",
    )
    search_opts.add_argument(
        "--spectra-suffix",
        dest="spectra_suffix",
        help="extension stripped from spectra file names to name samples (default: .mzML)",
        type=str,
        default=".mzML",
    )
    search_opts.add_argument(
        "--search-threads",
        dest="search_threads",
        help="threads per search (default: 4)",
        type=int,
        default=4,
    )
    search_opts.add_argument(
        "--search-memory",
        dest="search_memory",
        help="java heap size per search (default: 8G)",
        type=str,
        default="8G",
    )

    # execution args
    exec_opts = main_parser.add_argument_group("Execution arguments")
    exec_opts.add_argument(
        "-j",
        "--jobs",
        dest="jobs",
        help="concurrent sample/fraction/set branches (default: 4)",
        type=int,
        default=4,
    )
    exec_opts.add_argument(
        "--search-jobs",
        dest="search_jobs",
        help="concurrent searches (default: 1)",
        type=int,
        default=1,
    )
    exec_opts.add_argument(
        "--drop-unmatched-fractions",
        dest="drop_unmatched_fractions",
        help="skip spectra whose fraction got no database instead of stopping the run",
        action="store_true",
    )

    # main parser args
    main_parser.add_argument(
        "-v", "--version", action="version", version=f"%(prog)s {__version__}"
    )

    args = main_parser.parse_args()

    return args


def build_config(args) -> PipelineConfig:
    """Turn parsed command line arguments into a PipelineConfig."""
    return PipelineConfig(
        output_dir=args.output_dir,
        genome_file=args.genome_file,
        canonical_proteome=args.canonical_proteome,
        pi_reference=args.pi_reference,
        mods_file=args.mods_file,
        missed_cleavages=args.missed_cleavages,
        enzyme=args.enzyme,
        binning=PiBinning(
            intercept=args.intercept,
            width=args.width,
            tolerance=args.tolerance,
            amount=args.amount,
        ),
        spectra_suffix=args.spectra_suffix,
        drop_unmatched_fractions=args.drop_unmatched_fractions,
        jobs=args.jobs,
        search_jobs=args.search_jobs,
        search_threads=args.search_threads,
        search_memory=args.search_memory,
        tools=ToolPaths(msgf_jar=args.msgf_jar),
    )


def main():
    args = get_args()
    config = build_config(args)

    check_dependencies(config.tools)

    if not os.path.exists(args.output_dir):
        os.makedirs(args.output_dir, exist_ok=True)

    # Run the pipeline
    try:
        run_pgsearch_pipeline(
            config,
            transcript_models=args.transcript_models,
            spectra_definition=args.spectra_definition,
        )
    except PipelineError as e:
        sys.stderr.write(f"pgsearch failed: {e}\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
