"""Substitute selection for a player pulled off an in-progress match."""

from __future__ import annotations

from typing import Optional, Sequence

from openplay.services.open_play.domain import Player
from openplay.services.open_play.priority import rank_queue


def find_substitute(queue: Sequence[Player], removed_player: Player) -> Optional[Player]:
    """
    Most overdue queued player, preferring the pulled player's skill.

    Exact skill match first, then within one level, then anyone. Returns
    None only when the queue is empty.
    """
    if not queue:
        return None

    ranked = rank_queue(queue)
    target = removed_player.skill

    if target is not None:
        for c in ranked:
            if c.player.skill == target:
                return c.player
        for c in ranked:
            if c.player.skill is not None and abs(c.player.skill - target) <= 1:
                return c.player

    return ranked[0].player
