"""
Skill-based team balancing.
"""

import logging
from typing import List, Sequence, Tuple
from models.player import PlayerRecord
from matchmaking.errors import InsufficientPlayers

logger = logging.getLogger(__name__)


class TeamBalancer:
    """Partitions a candidate pool into two teams balanced by skill rating."""

    def __init__(self, roster_sizes):
        self.roster_sizes = dict(roster_sizes)

    def roster_size(self, mode: str) -> int:
        try:
            return self.roster_sizes[mode]
        except KeyError:
            raise ValueError(f"Unknown game mode: {mode}") from None

    def balance(self, anchor: PlayerRecord, candidates: Sequence[PlayerRecord],
                mode: str) -> Tuple[List[PlayerRecord], List[PlayerRecord]]:
        """
        Split ``candidates`` (which include the anchor) into two teams of
        equal size.

        Candidates are ordered by how close their rating is to the
        anchor's, keeping queue order on ties, then dealt alternately to
        team A and team B so the closest matches end up on both sides.
        """
        size = self.roster_size(mode)
        if len(candidates) < size:
            raise InsufficientPlayers(mode, size, len(candidates))
        if len(candidates) > size:
            raise ValueError(f"{mode}: expected {size} candidates, got {len(candidates)}")

        ids = [c.player_id for c in candidates]
        if len(set(ids)) != len(ids):
            raise ValueError("Candidate pool contains the same player twice")

        anchor_rating = anchor.rating_for(mode)
        # sorted() is stable, so equal distances keep their queue order
        ordered = sorted(candidates, key=lambda c: abs(c.rating_for(mode) - anchor_rating))

        team_a = ordered[0::2]
        team_b = ordered[1::2]

        logger.debug(
            f"Balanced {mode} teams around {anchor.player_id}: "
            f"A={sum(p.rating_for(mode) for p in team_a):.0f} "
            f"B={sum(p.rating_for(mode) for p in team_b):.0f}"
        )
        return team_a, team_b
