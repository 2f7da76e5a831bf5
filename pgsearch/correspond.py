"""
Correspondence between spectra records and per-fraction search databases.
"""

from typing import List, Sequence

from .dataflow import DROP, REJECT, index_unique, join
from .records import SearchUnit, SpectraRecord, TargetDecoyDatabase


def build_search_units(
    records: Sequence[SpectraRecord],
    databases: Sequence[TargetDecoyDatabase],
    drop_unmatched: bool = False,
) -> List[SearchUnit]:
    """Join spectra records with the target-decoy database of their fraction.

    Every record yields exactly one SearchUnit carrying its (fraction, set,
    sample) triple, in record order.

    Parameters
    ----------
    records : Sequence[SpectraRecord]
        Spectra records, possibly several per fraction
    databases : Sequence[TargetDecoyDatabase]
        One database per fraction
    drop_unmatched : bool
        Drop records whose fraction has no database instead of failing

    Returns
    -------
    List[SearchUnit]
        One unit per matched record

    Raises
    ------
    CorrespondenceError
        If a fraction has more than one database, a record's fraction has no
        database (unless ``drop_unmatched``), or a triple occurs twice
    """

    pairs, dropped = join(
        records,
        databases,
        left_key=lambda record: record.fraction,
        right_key=lambda database: database.fraction,
        on_miss=DROP if drop_unmatched else REJECT,
        what="target-decoy database",
    )

    for record in dropped:
        print(
            f"Warning: dropping {record.spectra_path} (set {record.set}): "
            f"no database for fraction {record.fraction}"
        )

    units = [
        SearchUnit(
            fraction=record.fraction,
            set=record.set,
            sample=record.sample,
            spectra_path=record.spectra_path,
            database_path=database.path,
        )
        for record, database in pairs
    ]
    index_unique(units, lambda unit: unit.key, "search unit")

    print(f"Resolved {len(units)} search units from {len(records)} spectra records")
    return units
