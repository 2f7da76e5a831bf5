"""
pI-based splitting of the peptide database into per-fraction databases.
"""

import os
import threading
from typing import List, Optional, Sequence

from . import tools
from .config import PiBinning
from .errors import CorrespondenceError
from .records import FractionDatabase

FRACTION_DB_PREFIX = "db_"
FRACTION_DB_EXT = "fa"


def fraction_db_name(fraction: str, ext: str = FRACTION_DB_EXT) -> str:
    """File name of the database for a fraction: ``db_<fraction>.<ext>``."""

    return f"{FRACTION_DB_PREFIX}{fraction}.{ext}"


def fraction_from_db_name(name: str, ext: str = FRACTION_DB_EXT) -> str:
    """Recover the fraction key from a database file name.

    Raises
    ------
    ValueError
        If the name does not follow ``db_<fraction>.<ext>``
    """

    suffix = f".{ext}"
    if not name.startswith(FRACTION_DB_PREFIX) or not name.endswith(suffix):
        raise ValueError(f"Not a fraction database name: {name}")
    fraction = name[len(FRACTION_DB_PREFIX) : -len(suffix)]
    if not fraction:
        raise ValueError(f"Empty fraction key in database name: {name}")
    return fraction


def split_by_fraction(
    pi_peptides: str,
    fractions: Sequence[str],
    reference: str,
    output_dir: str,
    binning: Optional[PiBinning] = None,
    splitter: str = "pi_database_splitter.py",
    cancel: Optional[threading.Event] = None,
) -> List[FractionDatabase]:
    """Bin pI-annotated peptides into one candidate database per fraction.

    The fraction keys passed in are the ones carried on the returned records;
    they are never read back from the tool's output names. Fractions the tool
    leaves without a file get an empty database.

    Parameters
    ----------
    pi_peptides : str
        pI-annotated peptide file
    fractions : Sequence[str]
        Distinct fraction keys from the spectra definitions
    reference : str
        Reference peptide/retention dataset for the binning model
    output_dir : str
        Directory for the per-fraction databases
    binning : PiBinning, optional
        Binning parameters (default: intercept 3.5, width 0.07, tolerance 0.11, amount 72)
    splitter : str
        Splitter executable
    cancel : threading.Event, optional
        Cancellation token of the run

    Returns
    -------
    List[FractionDatabase]
        Exactly one database per fraction key, in input order

    Raises
    ------
    CorrespondenceError
        If a fraction key cannot be recovered from its database file name
    """

    binning = binning or PiBinning()
    os.makedirs(output_dir, exist_ok=True)

    # output of an earlier run into the same directory
    for name in os.listdir(output_dir):
        if name.startswith(FRACTION_DB_PREFIX):
            os.remove(os.path.join(output_dir, name))

    cmd = [
        splitter,
        "-i",
        pi_peptides,
        "-p",
        reference,
        "--intercept",
        str(binning.intercept),
        "--width",
        str(binning.width),
        "--tolerance",
        str(binning.tolerance),
        "--amount",
        str(binning.amount),
        "--prefix",
        os.path.join(output_dir, FRACTION_DB_PREFIX),
        "--fractions",
        *fractions,
    ]
    tools.run_tool(cmd, f"Splitting peptides into {len(fractions)} pI fractions", cancel=cancel)

    databases = []
    for fraction in fractions:
        name = fraction_db_name(fraction)
        if fraction_from_db_name(name) != fraction:
            raise CorrespondenceError(f"Fraction '{fraction}' does not survive the database file name {name}")

        path = os.path.join(output_dir, name)
        if not os.path.exists(path):
            print(f"Warning: no peptides binned to fraction {fraction}, writing empty database")
            open(path, "w").close()
        databases.append(FractionDatabase(fraction=fraction, path=path))

    requested = {fraction_db_name(fraction) for fraction in fractions}
    for name in sorted(os.listdir(output_dir)):
        if name.startswith(FRACTION_DB_PREFIX) and name not in requested:
            print(f"Warning: ignoring splitter output {name} for an undeclared fraction")

    print(f"Created {len(databases)} fraction databases in {output_dir}")
    return databases
