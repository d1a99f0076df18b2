"""
Locked partnerships.

A lock is stored as a mirrored locked_partner_id on both players. A pair
only counts when the pointers agree in both directions and both players
are present in the group being examined.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple, TypeVar

from openplay.services.open_play.domain import Player

T = TypeVar("T")


def is_mutual_lock(a: Player, b: Player) -> bool:
    return a.locked_partner_id == b.id and b.locked_partner_id == a.id and a.id != b.id


def find_locked_pairs(items: Sequence[T], key=lambda item: item) -> Tuple[List[Tuple[T, T]], List[T]]:
    """
    Split items into locked pairs present and everything else.

    `key` maps an item to its Player so this works for bare players and for
    ranked candidates alike. Pairs come out in the order their first member
    appears; each pair is deduplicated.
    """
    by_id: Dict[str, T] = {key(item).id: item for item in items}
    paired: set = set()
    pairs: List[Tuple[T, T]] = []
    for item in items:
        player = key(item)
        if player.id in paired:
            continue
        partner_item: Optional[T] = by_id.get(player.locked_partner_id) if player.locked_partner_id else None
        if partner_item is None or not is_mutual_lock(player, key(partner_item)):
            continue
        paired.add(player.id)
        paired.add(key(partner_item).id)
        pairs.append((item, partner_item))
    rest = [item for item in items if key(item).id not in paired]
    return pairs, rest
