"""
Input parsing for the pgsearch pipeline: transcript models and spectra definitions.
"""

import os
from typing import Iterable, List

from .errors import MalformedInputError
from .records import Sample, SpectraRecord


def sample_id_from_path(path: str) -> str:
    """Derive a sample id from a transcript model path.

    Parameters
    ----------
    path : str
        Path to a transcript model file, e.g. ``/data/tumour_a.stringtie.gtf``

    Returns
    -------
    str
        Base name cut at its first dot, e.g. ``tumour_a``
    """

    return os.path.basename(path).split(".", 1)[0]


def load_samples(paths: Iterable[str]) -> List[Sample]:
    """Build one Sample per transcript model path.

    Parameters
    ----------
    paths : Iterable[str]
        Transcript model file paths

    Returns
    -------
    List[Sample]
        Samples in input order

    Raises
    ------
    MalformedInputError
        If a path yields an empty id or two paths yield the same id
    """

    samples = []
    seen = {}
    for path in paths:
        sample_id = sample_id_from_path(path)
        if not sample_id:
            raise MalformedInputError(f"Cannot derive a sample id from {path}")
        if sample_id in seen:
            raise MalformedInputError(
                f"Transcript models {seen[sample_id]} and {path} both yield sample id '{sample_id}'"
            )
        seen[sample_id] = path
        samples.append(Sample(id=sample_id, transcript_model=path))

    return samples


def sample_name_from_spectra(spectra_path: str, suffix: str = ".mzML") -> str:
    """Strip directories and the spectra file extension from a spectra path."""

    name = os.path.basename(spectra_path)
    if suffix and name.endswith(suffix):
        name = name[: -len(suffix)]
    return name


def parse_spectra_definitions(text: str, suffix: str = ".mzML") -> List[SpectraRecord]:
    """Parse the spectra definition file contents.

    Each non-empty line holds ``spectraPath setId fractionId`` separated by
    whitespace or tabs. Columns after the third are ignored.

    Parameters
    ----------
    text : str
        Raw contents of the definition file
    suffix : str
        Spectra file extension removed to derive the sample name

    Returns
    -------
    List[SpectraRecord]
        Records in declaration order

    Raises
    ------
    MalformedInputError
        On short lines, set ids or fraction keys that cannot be used in a file name,
        or a repeated (set, sample) pair
    """

    records = []
    pairs = {}

    for lineno, line in enumerate(text.splitlines(), start=1):
        tokens = line.split()
        if not tokens:
            continue
        if len(tokens) < 3:
            raise MalformedInputError(
                f"Line {lineno} of spectra definition has {len(tokens)} column(s), "
                "expected: spectra file, set, fraction"
            )

        spectra_path, set_id, fraction = tokens[:3]
        for what, key in (("set", set_id), ("fraction", fraction)):
            if os.sep in key or (os.altsep and os.altsep in key):
                raise MalformedInputError(f"Line {lineno}: {what} '{key}' contains a path separator")

        sample = sample_name_from_spectra(spectra_path, suffix)
        if (set_id, sample) in pairs:
            raise MalformedInputError(
                f"Line {lineno}: sample '{sample}' already declared for set '{set_id}' "
                f"on line {pairs[(set_id, sample)]}"
            )
        pairs[(set_id, sample)] = lineno

        records.append(
            SpectraRecord(
                fraction=fraction,
                set=set_id,
                sample=sample,
                spectra_path=spectra_path,
                order=len(records),
            )
        )

    return records


def read_spectra_definitions(definition_file: str, suffix: str = ".mzML") -> List[SpectraRecord]:
    """Read and parse a spectra definition file."""

    with open(definition_file, "r") as f:
        records = parse_spectra_definitions(f.read(), suffix)

    print(f"Read {len(records)} spectra records from {definition_file}")
    return records


def fractions_of(records: Iterable[SpectraRecord]) -> List[str]:
    """Distinct fraction keys in first-seen order."""

    fractions = []
    for record in records:
        if record.fraction not in fractions:
            fractions.append(record.fraction)
    return fractions
