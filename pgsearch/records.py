"""
Keyed records flowing between pipeline stages.
"""

from dataclasses import dataclass
from typing import List, Tuple


@dataclass(frozen=True)
class Sample:
    """One RNA-derived transcript model."""

    id: str
    transcript_model: str


@dataclass(frozen=True)
class SpectraRecord:
    """One line of the spectra definition file.

    ``order`` is the line position among the records and fixes the sample order
    within an analytical set.
    """

    fraction: str
    set: str
    sample: str
    spectra_path: str
    order: int = 0


@dataclass(frozen=True)
class FractionDatabase:
    """Candidate peptide database for one fraction, as written by the splitter."""

    fraction: str
    path: str


@dataclass(frozen=True)
class TargetDecoyDatabase:
    """Search database for one fraction with appended decoy entries."""

    fraction: str
    path: str
    canonical_only: bool = False


@dataclass(frozen=True)
class SearchUnit:
    """A spectra file resolved against the database of its fraction."""

    fraction: str
    set: str
    sample: str
    spectra_path: str
    database_path: str

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.fraction, self.set, self.sample)


@dataclass(frozen=True)
class IdentificationResult:
    set: str
    fraction: str
    sample: str
    ident_path: str
    table_path: str


@dataclass(frozen=True)
class SetGroup:
    """Identification results of one analytical set, in declared sample order."""

    set: str
    results: Tuple[IdentificationResult, ...]

    @property
    def samples(self) -> List[str]:
        return [result.sample for result in self.results]


@dataclass(frozen=True)
class ValidationResult:
    set: str
    validated_path: str


@dataclass(frozen=True)
class ValidatedSet:
    group: SetGroup
    validation: ValidationResult
