"""
Keyed operators used to wire stage outputs to stage inputs.

Every operator works on ordered sequences and keeps the order of its left
(or only) input. Key functions map an item to a hashable key.
"""

from collections import OrderedDict
from typing import Callable, Dict, Hashable, List, Sequence, Tuple, Type, TypeVar

from .errors import CorrespondenceError

T = TypeVar("T")
U = TypeVar("U")
K = TypeVar("K", bound=Hashable)

# key-miss policies for join()
REJECT = "reject"
DROP = "drop"


def index_unique(
    items: Sequence[T], key: Callable[[T], K], what: str = "item"
) -> Dict[K, T]:
    """Index items by key, refusing duplicate keys.

    Raises
    ------
    CorrespondenceError
        If two items share a key
    """

    index: Dict[K, T] = {}
    for item in items:
        k = key(item)
        if k in index:
            raise CorrespondenceError(f"Duplicate {what} for key {k!r}")
        index[k] = item
    return index


def group_by(items: Sequence[T], key: Callable[[T], K]) -> "OrderedDict[K, List[T]]":
    """Group items by key; groups appear in first-seen key order and keep item order."""

    groups: "OrderedDict[K, List[T]]" = OrderedDict()
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def cross_join(
    left: Sequence[T],
    right: Sequence[U],
    left_key: Callable[[T], K],
    right_key: Callable[[U], K],
) -> List[Tuple[T, U]]:
    """All (left, right) pairs with equal keys, left-major order.

    Left items without a match produce nothing.
    """

    right_groups = group_by(right, right_key)
    pairs = []
    for item in left:
        for other in right_groups.get(left_key(item), []):
            pairs.append((item, other))
    return pairs


def join(
    left: Sequence[T],
    right: Sequence[U],
    left_key: Callable[[T], K],
    right_key: Callable[[U], K],
    on_miss: str = REJECT,
    what: str = "item",
    missing_error: Type[Exception] = CorrespondenceError,
) -> Tuple[List[Tuple[T, U]], List[T]]:
    """Attach exactly one right item to every left item.

    Parameters
    ----------
    left, right : Sequence
        Inputs; right keys must be unique
    left_key, right_key : Callable
        Key functions
    on_miss : str
        ``"reject"`` raises ``missing_error`` when a left key has no right
        match, ``"drop"`` leaves the left item out of the pairs
    what : str
        Name of the right-hand items used in error messages
    missing_error : Type[Exception]
        Exception raised on a rejected key miss

    Returns
    -------
    Tuple[List[Tuple], List]
        Matched pairs in left order, and the dropped left items

    Raises
    ------
    CorrespondenceError
        If the right side has duplicate keys
    """

    if on_miss not in (REJECT, DROP):
        raise ValueError(f"Unknown key-miss policy: {on_miss}")

    index = index_unique(right, right_key, what)
    dropped = [item for item in left if left_key(item) not in index]

    if dropped and on_miss == REJECT:
        missing = sorted({str(left_key(item)) for item in dropped})
        raise missing_error(f"No {what} for key(s): {', '.join(missing)}")

    pairs = cross_join(left, list(index.values()), left_key, right_key)
    return pairs, dropped
