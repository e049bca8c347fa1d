"""Bond list and family arena for bond-based peridynamics.

Bonds are stored once per unordered pair. Families are a CSR-like view
rebuilt from the pair list: a flat array of partners ordered by owning
point, with per-point counts and start offsets. Every mutation goes
through :meth:`BondSet.without`, which rebuilds the families instead of
patching them, so family symmetry holds by construction.
"""

from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

from ..validation import InconsistentTopology, InvalidConfiguration


def _freeze(*arrays: np.ndarray):
    for a in arrays:
        a.flags.writeable = False


@dataclass(frozen=True, eq=False)
class FamilyIndex:
    """Per-point view of the bond list.

    Attributes:
        counts: Number of family members per point (n_points,)
        offsets: Start of each point's family in ``members`` (n_points,)
        members: Partner indices, grouped by owner, ascending within a group
        bond_ids: Row of the bond list behind each ``members`` entry
    """
    counts: np.ndarray
    offsets: np.ndarray
    members: np.ndarray
    bond_ids: np.ndarray

    @property
    def n_points(self) -> int:
        return self.counts.shape[0]

    def family(self, point: int) -> np.ndarray:
        """Partners of ``point``."""
        start = self.offsets[point]
        return self.members[start:start + self.counts[point]]

    def family_bonds(self, point: int) -> np.ndarray:
        """Bond rows incident to ``point`` (same order as :meth:`family`)."""
        start = self.offsets[point]
        return self.bond_ids[start:start + self.counts[point]]

    def owners(self) -> np.ndarray:
        """Owning point of every ``members`` entry."""
        return np.repeat(np.arange(self.n_points, dtype=np.int64), self.counts)


def families_from_pairs(pairs: np.ndarray, n_points: int) -> FamilyIndex:
    """Build the family arena from a deduplicated pair list.

    Each bond contributes one entry to both endpoint families.

    Args:
        pairs: Bond list (n_bonds, 2)
        n_points: Total number of points (isolated points get empty families)

    Returns:
        FamilyIndex with partners sorted ascending inside every family
    """
    n_bonds = pairs.shape[0]
    owners = np.concatenate([pairs[:, 0], pairs[:, 1]])
    partners = np.concatenate([pairs[:, 1], pairs[:, 0]])
    bond_ids = np.concatenate([np.arange(n_bonds), np.arange(n_bonds)])

    order = np.lexsort((partners, owners))
    counts = np.bincount(owners, minlength=n_points).astype(np.int64)
    offsets = np.zeros(n_points, dtype=np.int64)
    if n_points > 1:
        offsets[1:] = np.cumsum(counts)[:-1]

    index = FamilyIndex(
        counts=counts,
        offsets=offsets,
        members=partners[order].astype(np.int64),
        bond_ids=bond_ids[order].astype(np.int64),
    )
    _freeze(index.counts, index.offsets, index.members, index.bond_ids)
    return index


@dataclass(frozen=True, eq=False)
class BondSet:
    """Deduplicated bond list with rest lengths and families.

    Attributes:
        n_points: Number of material points
        pairs: Bond endpoints (n_bonds, 2), i < j, sorted lexicographically
        rest_length: Undeformed length of every bond (n_bonds,)
        families: Family arena derived from ``pairs``
    """
    n_points: int
    pairs: np.ndarray
    rest_length: np.ndarray
    families: FamilyIndex

    @classmethod
    def from_pairs(
        cls,
        pairs: np.ndarray,
        rest_length: np.ndarray,
        n_points: int,
    ) -> "BondSet":
        """Normalize a pair list and build its families.

        Pairs are reordered so that ``i < j`` and sorted; rest lengths follow
        their pair. Self bonds and duplicate pairs are rejected.
        """
        pairs = np.asarray(pairs, dtype=np.int64).reshape(-1, 2)
        rest_length = np.asarray(rest_length, dtype=np.float64).reshape(-1)
        if rest_length.shape[0] != pairs.shape[0]:
            raise InvalidConfiguration(
                f"{pairs.shape[0]} bonds but {rest_length.shape[0]} rest lengths",
                parameter="rest_length",
                value=rest_length.shape[0],
            )
        if pairs.size and (pairs.min() < 0 or pairs.max() >= n_points):
            raise InvalidConfiguration(
                f"bond endpoint out of range [0, {n_points})",
                parameter="pairs",
            )

        pairs = np.sort(pairs, axis=1)
        order = np.lexsort((pairs[:, 1], pairs[:, 0]))
        pairs = np.ascontiguousarray(pairs[order])
        rest_length = rest_length[order].copy()

        self_bonds = pairs[:, 0] == pairs[:, 1]
        if np.any(self_bonds):
            i = int(pairs[self_bonds][0, 0])
            raise InconsistentTopology(f"point {i} is bonded to itself", point=i, partner=i)
        if pairs.shape[0] > 1:
            dup = np.all(pairs[1:] == pairs[:-1], axis=1)
            if np.any(dup):
                i, j = (int(v) for v in pairs[1:][dup][0])
                raise InconsistentTopology(f"bond ({i}, {j}) is stored twice", point=i, partner=j)

        _freeze(pairs, rest_length)
        return cls(
            n_points=int(n_points),
            pairs=pairs,
            rest_length=rest_length,
            families=families_from_pairs(pairs, n_points),
        )

    @property
    def n_bonds(self) -> int:
        return self.pairs.shape[0]

    @property
    def counts(self) -> np.ndarray:
        return self.families.counts

    @property
    def offsets(self) -> np.ndarray:
        return self.families.offsets

    @property
    def members(self) -> np.ndarray:
        return self.families.members

    def family(self, point: int) -> np.ndarray:
        return self.families.family(point)

    def without(self, removed: np.ndarray) -> "BondSet":
        """Return a new bond set without the masked bonds.

        Rest lengths of retained bonds are carried over, not recomputed.

        Args:
            removed: Boolean mask over bonds, True for bonds to drop
        """
        removed = np.asarray(removed, dtype=bool)
        if removed.shape != (self.n_bonds,):
            raise InvalidConfiguration(
                f"removal mask has shape {removed.shape}, expected ({self.n_bonds},)",
                parameter="removed",
                value=removed.shape,
            )
        keep = ~removed
        bonds = BondSet.from_pairs(self.pairs[keep], self.rest_length[keep], self.n_points)
        bonds.check_symmetry()
        return bonds

    def bond_lookup(self, pairs: Iterable[Tuple[int, int]]) -> np.ndarray:
        """Bond rows of the given pairs (-1 where the pair is not bonded)."""
        query = np.sort(np.asarray(list(pairs), dtype=np.int64).reshape(-1, 2), axis=1)
        if self.n_bonds == 0:
            return np.full(query.shape[0], -1, dtype=np.int64)
        # pairs are sorted, so i * n + j is monotonic
        keys = self.pairs[:, 0] * self.n_points + self.pairs[:, 1]
        qkeys = query[:, 0] * self.n_points + query[:, 1]
        pos = np.minimum(np.searchsorted(keys, qkeys), self.n_bonds - 1)
        return np.where(keys[pos] == qkeys, pos, -1)

    def check_symmetry(self):
        """Verify the family invariants against the pair list.

        Raises:
            InconsistentTopology: a family entry has no mirror, a point is
                its own partner, or the families disagree with the bond list
        """
        fam = self.families
        if fam.counts.sum() != 2 * self.n_bonds:
            raise InconsistentTopology(
                f"families hold {int(fam.counts.sum())} entries for {self.n_bonds} bonds"
            )
        owners = fam.owners()
        if np.any(owners == fam.members):
            k = int(np.argmax(owners == fam.members))
            raise InconsistentTopology(
                f"point {int(owners[k])} lists itself as a family member",
                point=int(owners[k]), partner=int(owners[k]),
            )

        n = self.n_points
        forward = owners * n + fam.members
        mirror = np.sort(fam.members * n + owners)
        forward_sorted = np.sort(forward)
        if not np.array_equal(forward_sorted, mirror):
            missing = np.setdiff1d(forward_sorted, mirror)
            key = int(missing[0]) if missing.size else int(forward_sorted[0])
            raise InconsistentTopology(
                f"family entry {key // n} -> {key % n} has no mirror entry",
                point=key // n, partner=key % n,
            )

        bond_owner = self.pairs[fam.bond_ids]
        ok = ((bond_owner[:, 0] == owners) & (bond_owner[:, 1] == fam.members)) | (
            (bond_owner[:, 1] == owners) & (bond_owner[:, 0] == fam.members)
        )
        if not np.all(ok):
            k = int(np.argmin(ok))
            raise InconsistentTopology(
                f"family entry {int(owners[k])} -> {int(fam.members[k])} points at the wrong bond",
                point=int(owners[k]), partner=int(fam.members[k]),
            )
