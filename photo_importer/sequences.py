"""Burst and HDR sequence detection."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .metadata import ResolvedUnit

logger = logging.getLogger(__name__)


class SequenceKind(Enum):
    BURST = 'BURST'
    HDR = 'HDR'


@dataclass(frozen=True)
class SequenceTag:
    """Sequence membership of a unit and the folder its files go into."""
    kind: SequenceKind
    folder_name: str


def _runs(entries: Iterable[Tuple[str, Optional[int]]]) -> Iterator[List[str]]:
    """
    Split ordered (key, ordinal) pairs into runs of consecutive ordinals.

    A run starts at ordinal 1 and continues while each following ordinal is
    one more than the previous. A missing ordinal or any other value closes
    the open run. Runs of every length are yielded; callers drop singletons.
    """
    run: List[str] = []
    expected = 1

    for key, ordinal in entries:
        if ordinal == 1:
            if run:
                yield run
            run = [key]
            expected = 2
        elif ordinal is not None and run and ordinal == expected:
            run.append(key)
            expected += 1
        else:
            if run:
                yield run
            run = []
            expected = 1

    if run:
        yield run


def _tag_runs(
    entries: Iterable[Tuple[str, Optional[int]]],
    kind: SequenceKind,
) -> Dict[str, SequenceTag]:
    tags: Dict[str, SequenceTag] = {}
    for run in _runs(entries):
        if len(run) < 2:
            continue
        tag = SequenceTag(kind=kind, folder_name=f"{run[0]}_{kind.value}")
        for key in run:
            tags[key] = tag
    return tags


def sort_for_sequencing(units: Iterable[ResolvedUnit]) -> List[ResolvedUnit]:
    """Order units by capture time, then by unit key."""
    return sorted(units, key=lambda u: (u.capture_time, u.unit_key))


def detect_hdr_sequences(ordered: List[ResolvedUnit]) -> Dict[str, SequenceTag]:
    """Tag runs of bracketed shots numbered 1, 2, 3, ..."""
    return _tag_runs(
        ((u.unit_key, u.hdr_shot_ordinal) for u in ordered),
        SequenceKind.HDR,
    )


def detect_burst_sequences(
    ordered: List[ResolvedUnit],
    exclude: Iterable[str] = (),
) -> Dict[str, SequenceTag]:
    """Tag runs of burst frames numbered 1, 2, 3, ..., skipping excluded keys."""
    excluded = set(exclude)
    return _tag_runs(
        ((u.unit_key, u.burst_ordinal or None) for u in ordered if u.unit_key not in excluded),
        SequenceKind.BURST,
    )


def detect_sequences(units: Iterable[ResolvedUnit]) -> Dict[str, SequenceTag]:
    """
    Detect HDR and burst sequences among resolved units.

    Units are ordered by (capture time, unit key). HDR runs are found first;
    burst detection then ignores every HDR-tagged unit, so a unit that
    qualifies for both is always tagged HDR.

    Args:
        units: Resolved units in any order

    Returns:
        Mapping from unit key to its SequenceTag, for tagged units only
    """
    ordered = sort_for_sequencing(units)

    hdr_tags = detect_hdr_sequences(ordered)
    burst_tags = detect_burst_sequences(ordered, exclude=hdr_tags)

    sequences = dict(hdr_tags)
    sequences.update(burst_tags)

    hdr_count = len({tag.folder_name for tag in hdr_tags.values()})
    burst_count = len({tag.folder_name for tag in burst_tags.values()})
    logger.info(
        f"Sequence detection complete: {len(sequences):,} photos in "
        f"{hdr_count} HDR and {burst_count} burst sequences"
    )
    return sequences


def count_sequences(sequences: Dict[str, SequenceTag]) -> Dict[str, int]:
    """Count distinct sequence folders per kind."""
    counts = {kind.value: 0 for kind in SequenceKind}
    for tag in set(sequences.values()):
        counts[tag.kind.value] += 1
    return counts
