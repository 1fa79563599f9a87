import logging
import random
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

MAX_SHUFFLE_ATTEMPTS = 10_000


class NotEnoughParticipantsError(ValueError):
    """Raised when fewer than two names are available to pair."""


class AssignmentError(ValueError):
    """Raised if no assignment without self-pairing could be built."""


def read_names(path: Union[str, Path]) -> List[str]:
    """Load participant names, one per line. Blank lines are skipped.

    A leading byte order mark is dropped. Undecodable files raise OSError,
    like any other unreadable source.
    """
    try:
        with Path(path).open(encoding="utf-8-sig") as fh:
            stripped = [line.strip() for line in fh]
    except UnicodeDecodeError as exc:
        raise OSError(f"{path} is not valid UTF-8 text: {exc}") from exc
    return [name for name in stripped if name]


def build_valid_assignment(
    names: Sequence[str],
    rng: Optional[random.Random] = None,
    max_attempts: int = MAX_SHUFFLE_ATTEMPTS,
) -> Dict[str, str]:
    """
    Shuffle until no participant is assigned to themselves.
    Any fixed point throws the whole shuffle away, which keeps the result
    uniform over all valid assignments. If ``max_attempts`` shuffles all fail,
    everyone gives to the next person in the list instead.
    """
    if len(names) < 2:
        raise NotEnoughParticipantsError(
            f"Not enough participants for Secret Santa: need at least 2, got {len(names)}."
        )
    if rng is None:
        rng = random.Random()

    givers = list(names)
    for attempt in range(1, max_attempts + 1):
        receivers = givers.copy()
        rng.shuffle(receivers)
        if all(giver != receiver for giver, receiver in zip(givers, receivers)):
            logger.debug("Shuffle %d produced a valid assignment.", attempt)
            return {giver: receiver for giver, receiver in zip(givers, receivers)}

    logger.warning(
        "No valid shuffle after %d attempts, falling back to rotation.", max_attempts
    )
    receivers = givers[1:] + givers[:1]
    # only possible with duplicate names
    if any(giver == receiver for giver, receiver in zip(givers, receivers)):
        raise AssignmentError(
            "Could not assign giftees without someone drawing themselves; "
            "check the list for duplicate names."
        )
    return {giver: receiver for giver, receiver in zip(givers, receivers)}


class SecretSanta:
    """Read-only giver -> giftee lookup.

    The assignment is copied on construction and only exposed through a
    ``MappingProxyType``, so it can be shared between request handlers.
    """

    def __init__(self, pairings: Mapping[str, str]):
        self._pairings = MappingProxyType(dict(pairings))

    @classmethod
    def from_file(
        cls, path: Union[str, Path], rng: Optional[random.Random] = None
    ) -> "SecretSanta":
        names = read_names(path)
        logger.info("Loaded %d participants from %s.", len(names), path)
        return cls(build_valid_assignment(names, rng=rng))

    @property
    def pairings(self) -> Mapping[str, str]:
        return self._pairings

    def giftee_for(self, giver: str) -> Optional[str]:
        """Return who ``giver`` buys for, or None if they are not in the draw."""
        return self._pairings.get(giver)

    def __contains__(self, giver: object) -> bool:
        return giver in self._pairings

    def __len__(self) -> int:
        return len(self._pairings)
