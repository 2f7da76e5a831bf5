"""
Spectral search of each search unit against its fraction database.
"""

import os
import threading
from typing import List, Optional, Sequence, Tuple

from . import tools
from .config import PipelineConfig, search_enzyme
from .records import IdentificationResult, SearchUnit
from .taskgroup import TaskGroup

MZID_TO_TSV = "edu.ucsd.msjava.ui.MzIDToTsv"


def search_output_paths(unit: SearchUnit, output_dir: str) -> Tuple[str, str]:
    """Identification and table paths for a unit: ``<set>/<sample>.mzid`` and ``.tsv``."""

    set_dir = os.path.join(output_dir, unit.set)
    return (
        os.path.join(set_dir, f"{unit.sample}.mzid"),
        os.path.join(set_dir, f"{unit.sample}.tsv"),
    )


def run_search(
    unit: SearchUnit,
    output_dir: str,
    config: PipelineConfig,
    cancel: Optional[threading.Event] = None,
) -> IdentificationResult:
    """Search one spectra file with MS-GF+ and flatten its identifications.

    Parameters
    ----------
    unit : SearchUnit
        Spectra file and database to search
    output_dir : str
        Directory for search outputs
    config : PipelineConfig
        Search parameters and tool locations
    cancel : threading.Event, optional
        Cancellation token of the run

    Returns
    -------
    IdentificationResult
        Identification and table files keyed by the unit's triple
    """

    msgf_enzyme, _ = search_enzyme(config.enzyme)
    mzid_file, tsv_file = search_output_paths(unit, output_dir)
    os.makedirs(os.path.dirname(mzid_file), exist_ok=True)
    java = config.tools.java
    jar = config.tools.msgf_jar

    search_cmd = [
        java,
        f"-Xmx{config.search_memory}",
        "-jar",
        jar,
        "-s",
        unit.spectra_path,
        "-d",
        unit.database_path,
        "-o",
        mzid_file,
        "-thread",
        str(config.search_threads),
        "-tda",
        "0",
        "-e",
        msgf_enzyme,
        "-ntt",
        "2",
        "-addFeatures",
        "1",
    ]
    if config.mods_file:
        search_cmd += ["-mod", config.mods_file]

    tools.run_tool(
        search_cmd,
        f"Searching {unit.sample} (set {unit.set}, fraction {unit.fraction})",
        cancel=cancel,
    )

    convert_cmd = [java, f"-Xmx{config.search_memory}", "-cp", jar, MZID_TO_TSV, "-i", mzid_file, "-o", tsv_file]
    tools.run_tool(convert_cmd, f"Converting {os.path.basename(mzid_file)} to table", cancel=cancel)

    return IdentificationResult(
        set=unit.set,
        fraction=unit.fraction,
        sample=unit.sample,
        ident_path=mzid_file,
        table_path=tsv_file,
    )


def dispatch_searches(
    units: Sequence[SearchUnit], config: PipelineConfig, cancel: Optional[threading.Event] = None
) -> List[IdentificationResult]:
    """Run all searches, at most ``config.search_jobs`` at a time."""

    output_dir = config.stage_dir("search")
    group = TaskGroup(max_workers=config.search_jobs, cancel=cancel)
    for unit in units:
        group.add(f"search:{unit.set}:{unit.sample}", run_search, unit, output_dir, config)
    results = group.run()

    print(f"Completed {len(results)} searches")
    return results
