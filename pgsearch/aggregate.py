"""
Regrouping of identifications by analytical set and set-level validation.
"""

import os
import threading
from typing import List, Optional, Sequence

from . import tools
from .config import PipelineConfig, search_enzyme
from .dataflow import group_by, index_unique, join
from .errors import MissingGroupError
from .records import (
    IdentificationResult,
    SetGroup,
    SpectraRecord,
    ValidatedSet,
    ValidationResult,
)
from .taskgroup import TaskGroup


def validation_output_name(set_id: str) -> str:
    return f"Set{set_id}.perco.xml"


def group_by_set(
    results: Sequence[IdentificationResult], records: Sequence[SpectraRecord]
) -> List[SetGroup]:
    """Group identification results by analytical set in declared order.

    Sets appear in the order they were first declared, and results within a
    set follow the declaration order of their samples, regardless of the order
    in which searches finished. Validation addresses results by position, so
    this order is significant.

    Parameters
    ----------
    results : Sequence[IdentificationResult]
        One result per search unit, in any order
    records : Sequence[SpectraRecord]
        Spectra records as declared

    Returns
    -------
    List[SetGroup]
        One group per set that has results

    Raises
    ------
    MissingGroupError
        If a result does not belong to any declared (set, sample)
    """

    declared = {(record.set, record.sample): record.order for record in records}
    for result in results:
        if (result.set, result.sample) not in declared:
            raise MissingGroupError(f"Sample {result.sample} was not declared for set {result.set}")

    ordered = sorted(results, key=lambda result: declared[(result.set, result.sample)])
    groups = group_by(ordered, lambda result: result.set)
    return [SetGroup(set=set_id, results=tuple(members)) for set_id, members in groups.items()]


def run_validation(
    group: SetGroup,
    output_dir: str,
    config: PipelineConfig,
    cancel: Optional[threading.Event] = None,
) -> ValidationResult:
    """Validate the identifications of one set with percolator.

    The identification files are listed in group order, then converted to a
    percolator input with msgf2pin.
    """

    _, pin_enzyme = search_enzyme(config.enzyme)
    os.makedirs(output_dir, exist_ok=True)
    list_file = os.path.join(output_dir, f"Set{group.set}.mzidlist.txt")
    pin_file = os.path.join(output_dir, f"Set{group.set}.pin")
    xml_file = os.path.join(output_dir, validation_output_name(group.set))

    with open(list_file, "w") as f:
        f.write("\n".join(result.ident_path for result in group.results) + "\n")

    pin_cmd = [config.tools.msgf2pin, "-o", pin_file, "-e", pin_enzyme, "-P", "decoy_", list_file]
    tools.run_tool(pin_cmd, f"Preparing percolator input for set {group.set}", cancel=cancel)

    perco_cmd = [
        config.tools.percolator,
        "-j",
        pin_file,
        "-X",
        xml_file,
        "-N",
        "500000",
        "--decoy-xml-output",
        "-y",
    ]
    tools.run_tool(perco_cmd, f"Running percolator on set {group.set}", cancel=cancel)

    return ValidationResult(set=group.set, validated_path=xml_file)


def validate_sets(
    groups: Sequence[SetGroup], config: PipelineConfig, cancel: Optional[threading.Event] = None
) -> List[ValidationResult]:
    output_dir = config.stage_dir("validation")
    group = TaskGroup(max_workers=config.jobs, cancel=cancel)
    for set_group in groups:
        group.add(f"validate:{set_group.set}", run_validation, set_group, output_dir, config)
    return group.run()


def join_validations(
    groups: Sequence[SetGroup], validations: Sequence[ValidationResult]
) -> List[ValidatedSet]:
    """Attach the validation result of each set to its group.

    Raises
    ------
    MissingGroupError
        If a set has results but no validation, or a validation but no results
    """

    group_index = index_unique(groups, lambda group: group.set, "set group")
    orphans = sorted(v.set for v in validations if v.set not in group_index)
    if orphans:
        raise MissingGroupError(f"Validation output without identifications for set(s): {', '.join(orphans)}")

    pairs, _ = join(
        groups,
        validations,
        left_key=lambda group: group.set,
        right_key=lambda validation: validation.set,
        what="validation result",
        missing_error=MissingGroupError,
    )
    return [ValidatedSet(group=group, validation=validation) for group, validation in pairs]
