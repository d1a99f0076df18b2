"""
Court filling: seat queued players on idle courts.

Courts are filled in ascending order from one progressively shrinking
queue, so nobody is booked on two courts in the same pass.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Tuple

from openplay.services.open_play.domain import GameMode, Match, Player, PlayerStatus, Session
from openplay.services.open_play.effects import TransitionContext
from openplay.services.open_play.match_selector import select_next_players
from openplay.services.open_play.team_former import form_teams


def fill_court(session: Session, court: int, ctx: TransitionContext) -> Tuple[Session, Tuple[Match, ...]]:
    """Seat one court. Unchanged session when the court is busy, out of range, or the queue is short."""
    if court not in session.idle_courts():
        return session, ()
    return _fill(session, (court,), ctx)


def fill_courts(session: Session, ctx: TransitionContext) -> Tuple[Session, Tuple[Match, ...]]:
    """Seat every idle court until the queue runs out."""
    return _fill(session, session.idle_courts(), ctx)


def _fill(session: Session, courts: Iterable[int], ctx: TransitionContext) -> Tuple[Session, Tuple[Match, ...]]:
    queue: List[Player] = list(session.queue)
    updated: Dict[str, Player] = {}
    new_matches: List[Match] = []

    for court in courts:
        group = select_next_players(queue, session.game_mode)
        if group is None:
            break
        teams = form_teams(group, session.game_mode, rng=ctx.rng)
        if teams is None:
            break

        match = Match(
            id=ctx.new_id(),
            court=court,
            team1=tuple(p.id for p in teams.team1),
            team2=tuple(p.id for p in teams.team2),
            start_time=ctx.now,
        )
        for side in (teams.team1, teams.team2):
            for p in side:
                updated[p.id] = seat_player(p, court, _teammate(p, side, session.game_mode))

        new_matches.append(match)
        seated = set(match.player_ids)
        queue = [p for p in queue if p.id not in seated]

    if not new_matches:
        return session, ()

    return (
        replace(
            session,
            players=tuple(updated.get(p.id, p) for p in session.players),
            active_matches=session.active_matches + tuple(new_matches),
        ),
        tuple(new_matches),
    )


def seat_player(player: Player, court: int, partner_id) -> Player:
    return replace(
        player,
        status=PlayerStatus.PLAYING,
        last_partner=partner_id,
        courts_played=player.courts_played + (court,),
    )


def _teammate(player: Player, side: Tuple[Player, ...], game_mode: GameMode):
    if game_mode != GameMode.DOUBLES:
        return None
    return next((p.id for p in side if p.id != player.id), None)
