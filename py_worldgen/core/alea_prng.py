"""
Python implementation of the Alea PRNG used for every random decision.

Based on Johannes Baagøe's Alea algorithm. The generator only uses IEEE-754
double arithmetic and 32-bit integer masking, so a given seed produces the
same sequence on every platform.
"""

from typing import MutableSequence, Sequence, TypeVar

T = TypeVar("T")


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class AleaPRNG:
    """
    Seedable Alea generator.

    The seed may be an int, a string, or an iterable of either. Iterables are
    mashed element by element, which is how pipeline stages derive their own
    independent streams from a map seed, e.g. ``AleaPRNG((42, "rivers"))``.
    """

    def __init__(self, seed):
        """Initialize with seed string, number, or iterable of those."""
        self.call_count = 0

        if hasattr(seed, "__iter__") and not isinstance(seed, str):
            args = list(seed)
        else:
            args = [seed]

        mash_n = 0xEFC8249D  # 4022871197

        def mash(data):
            nonlocal mash_n
            data = str(data)
            for char in data:
                mash_n = mash_n + ord(char)
                h = 0.02519603282416938 * mash_n
                mash_n = _uint32(h)
                h -= mash_n
                h *= mash_n
                mash_n = _uint32(h)
                h -= mash_n
                mash_n += h * 0x100000000  # 2^32
            return _uint32(mash_n) * 2.3283064365386963e-10  # 2^-32

        self.s0 = mash(" ")
        self.s1 = mash(" ")
        self.s2 = mash(" ")
        self.c = 1

        for arg in args:
            self.s0 -= mash(arg)
            if self.s0 < 0:
                self.s0 += 1
            self.s1 -= mash(arg)
            if self.s1 < 0:
                self.s1 += 1
            self.s2 -= mash(arg)
            if self.s2 < 0:
                self.s2 += 1

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        self.call_count += 1
        t = 2091639 * self.s0 + self.c * 2.3283064365386963e-10  # 2^-32
        self.s0 = self.s1
        self.s1 = self.s2
        self.c = int(t)
        self.s2 = t - self.c
        return self.s2

    def next_int(self, low: int, high: int) -> int:
        """Random integer in [low, high)."""
        if high <= low:
            raise ValueError(f"Empty integer range [{low}, {high})")
        return low + int(self.random() * (high - low))

    def uniform(self, low: float, high: float) -> float:
        """Random float in [low, high)."""
        return low + self.random() * (high - low)

    def chance(self, probability: float) -> bool:
        """Return True with the given probability."""
        return self.random() < probability

    def shuffle(self, seq: MutableSequence[T]) -> MutableSequence[T]:
        """Shuffle a sequence in place (Fisher-Yates) and return it."""
        for i in range(len(seq) - 1, 0, -1):
            j = self.next_int(0, i + 1)
            seq[i], seq[j] = seq[j], seq[i]
        return seq

    def pick(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[int(self.random() * len(seq))]

