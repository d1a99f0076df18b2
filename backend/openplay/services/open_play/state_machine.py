"""
Session state machine.

reduce(state, command, ctx) -> Transition

Pure: the input state is never mutated, no I/O happens here, and a command
whose preconditions are not met returns the input state unchanged with no
effects. Lifecycle:

    Setup --StartSession--> Active --EndSession--> Ended --NewSession--> Setup

The undo slot holds at most one UndoAction, always the latest RecordWinner.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Type

from openplay.services.open_play import commands as cmd
from openplay.services.open_play.court_filler import fill_court, fill_courts, seat_player
from openplay.services.open_play.domain import (
    DEFAULT_COURTS,
    SKILL_LEVELS,
    GameMode,
    Match,
    Player,
    PlayerStatus,
    PlayerSummary,
    Session,
    SessionState,
    SessionSummary,
    UndoAction,
    UndoKind,
    clamp_courts,
)
from openplay.services.open_play.effects import (
    Effect,
    FlushPlayerStats,
    LocationUsed,
    MatchFormed,
    SessionCleared,
    SyncEndedSession,
    Transition,
    TransitionContext,
    WinnerRecorded,
)
from openplay.services.open_play.substitution import find_substitute

Handler = Callable[[SessionState, object, TransitionContext], Transition]


def reduce(state: SessionState, command: cmd.Command, ctx: TransitionContext) -> Transition:
    handler = _HANDLERS.get(type(command))
    if handler is None:
        return Transition(state)
    return handler(state, command, ctx)


def apply(state: SessionState, command: cmd.Command, ctx: TransitionContext) -> SessionState:
    """reduce() without the effects."""
    return reduce(state, command, ctx).state


def initial_state(ctx: TransitionContext, location: str = "", courts: int = DEFAULT_COURTS) -> SessionState:
    return SessionState(session=_fresh_session(cmd.NewSession(location=location, courts=courts), ctx))


# ============================================================================
# Helpers
# ============================================================================


def _unchanged(state: SessionState) -> Transition:
    return Transition(state)


def _with_session(state: SessionState, session: Session, effects: Iterable[Effect] = ()) -> Transition:
    return Transition(replace(state, session=session), tuple(effects))


def _replace_player(session: Session, player_id: str, **changes) -> Session:
    return replace(
        session,
        players=tuple(replace(p, **changes) if p.id == player_id else p for p in session.players),
    )


def _valid_skill(skill: Optional[int]) -> bool:
    return skill is None or skill in SKILL_LEVELS


def _set_lock(players: Tuple[Player, ...], player_id: str, partner_id: Optional[str]) -> Tuple[Player, ...]:
    """
    Lock player_id to partner_id, or release player_id when partner_id is None.

    The only place locked_partner_id is written. Any earlier lock held by
    either player is released on both sides first, so a pointer is never
    left dangling at someone who no longer points back.
    """
    touched = {player_id} | ({partner_id} if partner_id else set())
    released = set(touched)
    for p in players:
        if p.id in touched and p.locked_partner_id:
            released.add(p.locked_partner_id)
        if p.locked_partner_id in touched:
            released.add(p.id)

    result: List[Player] = []
    for p in players:
        if partner_id and p.id == player_id:
            result.append(replace(p, locked_partner_id=partner_id))
        elif partner_id and p.id == partner_id:
            result.append(replace(p, locked_partner_id=player_id))
        elif p.id in released and p.locked_partner_id is not None:
            result.append(replace(p, locked_partner_id=None))
        else:
            result.append(p)
    return tuple(result)


def _names(session: Session, ids: Iterable[str]) -> Tuple[str, ...]:
    names = []
    for pid in ids:
        p = session.player(pid)
        if p is not None:
            names.append(p.name)
    return tuple(names)


def _match_formed_effects(session: Session, matches: Iterable[Match]) -> List[Effect]:
    return [
        MatchFormed(
            match_id=m.id,
            court=m.court,
            team1_names=_names(session, m.team1),
            team2_names=_names(session, m.team2),
        )
        for m in matches
    ]


def _fresh_session(command: cmd.NewSession, ctx: TransitionContext) -> Session:
    return Session(id=ctx.new_id(), location=command.location, courts=clamp_courts(command.courts))


def _new_player(name: str, skill: Optional[int], session: Session, ctx: TransitionContext) -> Player:
    active = session.is_active
    return Player(
        id=ctx.new_id(),
        name=name,
        skill=skill,
        status=PlayerStatus.CHECKED_IN if active else PlayerStatus.NOT_HERE,
        checked_in_at=ctx.now if active else None,
    )


# ============================================================================
# Setup / roster commands
# ============================================================================


def _load_session(state: SessionState, command: cmd.LoadSession, ctx: TransitionContext) -> Transition:
    return Transition(SessionState(session=command.session))


def _new_session(state: SessionState, command: cmd.NewSession, ctx: TransitionContext) -> Transition:
    return Transition(
        SessionState(session=_fresh_session(command, ctx)),
        (SessionCleared(previous_session_id=state.session.id),),
    )


def _set_location(state: SessionState, command: cmd.SetLocation, ctx: TransitionContext) -> Transition:
    return _with_session(state, replace(state.session, location=command.location))


def _set_courts(state: SessionState, command: cmd.SetCourts, ctx: TransitionContext) -> Transition:
    return _with_session(state, replace(state.session, courts=clamp_courts(command.courts)))


def _set_game_mode(state: SessionState, command: cmd.SetGameMode, ctx: TransitionContext) -> Transition:
    if command.game_mode not in (GameMode.DOUBLES, GameMode.SINGLES):
        return _unchanged(state)
    return _with_session(state, replace(state.session, game_mode=GameMode(command.game_mode)))


def _add_player(state: SessionState, command: cmd.AddPlayer, ctx: TransitionContext) -> Transition:
    return _add(state, command.name, None, ctx)


def _add_player_with_skill(state: SessionState, command: cmd.AddPlayerWithSkill, ctx: TransitionContext) -> Transition:
    if not _valid_skill(command.skill):
        return _unchanged(state)
    return _add(state, command.name, command.skill, ctx)


def _add(state: SessionState, raw_name: str, skill: Optional[int], ctx: TransitionContext) -> Transition:
    name = (raw_name or "").strip()
    if not name:
        return _unchanged(state)
    session = state.session
    player = _new_player(name, skill, session, ctx)
    return _with_session(state, replace(session, players=session.players + (player,)))


def _remove_player(state: SessionState, command: cmd.RemovePlayer, ctx: TransitionContext) -> Transition:
    # No guard for players on court: an active match may keep the vanished id.
    session = state.session
    if session.player(command.player_id) is None:
        return _unchanged(state)
    players = _set_lock(session.players, command.player_id, None)
    return _with_session(
        state,
        replace(session, players=tuple(p for p in players if p.id != command.player_id)),
    )


def _set_player_skill(state: SessionState, command: cmd.SetPlayerSkill, ctx: TransitionContext) -> Transition:
    if not _valid_skill(command.skill) or state.session.player(command.player_id) is None:
        return _unchanged(state)
    return _with_session(state, _replace_player(state.session, command.player_id, skill=command.skill))


def _check_in(state: SessionState, command: cmd.CheckInPlayer, ctx: TransitionContext) -> Transition:
    player = state.session.player(command.player_id)
    if player is None or player.status == PlayerStatus.PLAYING:
        return _unchanged(state)

    session = _replace_player(
        state.session, player.id, status=PlayerStatus.CHECKED_IN, checked_in_at=ctx.now
    )
    if not session.is_active:
        return _with_session(state, session)

    session, formed = fill_courts(session, ctx)
    return _with_session(state, session, _match_formed_effects(session, formed))


def _check_out(state: SessionState, command: cmd.CheckOutPlayer, ctx: TransitionContext) -> Transition:
    player = state.session.player(command.player_id)
    if player is None or player.status == PlayerStatus.PLAYING:
        return _unchanged(state)
    return _with_session(state, _replace_player(state.session, player.id, status=PlayerStatus.LEFT))


def _lock_partners(state: SessionState, command: cmd.LockPartners, ctx: TransitionContext) -> Transition:
    session = state.session
    a, b = command.player1_id, command.player2_id
    if a == b or session.player(a) is None or session.player(b) is None:
        return _unchanged(state)
    return _with_session(state, replace(session, players=_set_lock(session.players, a, b)))


def _unlock_partner(state: SessionState, command: cmd.UnlockPartner, ctx: TransitionContext) -> Transition:
    session = state.session
    player = session.player(command.player_id)
    if player is None or player.locked_partner_id is None:
        return _unchanged(state)
    return _with_session(state, replace(session, players=_set_lock(session.players, player.id, None)))


# ============================================================================
# Lifecycle
# ============================================================================


def _start_session(state: SessionState, command: cmd.StartSession, ctx: TransitionContext) -> Transition:
    session = state.session
    if not session.can_start:
        return _unchanged(state)

    session = replace(session, start_time=ctx.now)
    session, formed = fill_courts(session, ctx)
    effects: List[Effect] = [LocationUsed(name=session.location.strip(), courts=session.courts)]
    effects.extend(_match_formed_effects(session, formed))
    return _with_session(state, session, effects)


def _end_session(state: SessionState, command: cmd.EndSession, ctx: TransitionContext) -> Transition:
    session = state.session
    if not session.is_active:
        return _unchanged(state)

    session = replace(session, end_time=ctx.now)
    played = tuple(
        PlayerSummary(
            name=p.name,
            skill=p.skill,
            wins=p.wins,
            losses=p.losses,
            games_played=p.games_played,
        )
        for p in session.players
        if p.games_played > 0
    )
    summary = SessionSummary(
        location=session.location,
        courts=session.courts,
        total_games=len(session.matches),
        started_at=session.start_time,
        ended_at=session.end_time,
        players=played,
    )
    return Transition(
        replace(state, session=session, undo=None, synced_session_id=None),
        (FlushPlayerStats(players=played), SyncEndedSession(summary=summary)),
    )


def _set_synced_session_id(state: SessionState, command: cmd.SetSyncedSessionId, ctx: TransitionContext) -> Transition:
    return Transition(replace(state, synced_session_id=command.session_id))


# ============================================================================
# Courts & matches
# ============================================================================


def _fill_court(state: SessionState, command: cmd.FillCourt, ctx: TransitionContext) -> Transition:
    if not state.session.is_active:
        return _unchanged(state)
    session, formed = fill_court(state.session, command.court, ctx)
    if not formed:
        return _unchanged(state)
    return _with_session(state, session, _match_formed_effects(session, formed))


def _fill_courts(state: SessionState, command: cmd.FillCourts, ctx: TransitionContext) -> Transition:
    if not state.session.is_active:
        return _unchanged(state)
    session, formed = fill_courts(state.session, ctx)
    if not formed:
        return _unchanged(state)
    return _with_session(state, session, _match_formed_effects(session, formed))


def _record_winner(state: SessionState, command: cmd.RecordWinner, ctx: TransitionContext) -> Transition:
    session = state.session
    if not session.is_active:
        return _unchanged(state)
    match = session.active_match(command.match_id)
    if match is None or command.winner not in (1, 2):
        return _unchanged(state)

    winners = set(match.team(command.winner))
    losers = set(match.team(2 if command.winner == 1 else 1))

    players = []
    for p in session.players:
        if p.id in winners:
            p = replace(p, status=PlayerStatus.CHECKED_IN, games_played=p.games_played + 1, wins=p.wins + 1)
        elif p.id in losers:
            p = replace(p, status=PlayerStatus.CHECKED_IN, games_played=p.games_played + 1, losses=p.losses + 1)
        players.append(p)

    completed = replace(match, winner=command.winner, end_time=ctx.now)
    session = replace(
        session,
        players=tuple(players),
        matches=session.matches + (completed,),
        active_matches=tuple(m for m in session.active_matches if m.id != match.id),
    )
    undo = UndoAction(
        kind=UndoKind.WINNER,
        match_id=match.id,
        winner=command.winner,
        match=completed,
        timestamp=ctx.now,
    )
    effect = WinnerRecorded(
        match_id=match.id,
        court=match.court,
        winner_names=_names(session, match.team(command.winner)),
    )
    # The vacated court stays empty until FillCourt/FillCourts is dispatched.
    return Transition(replace(state, session=session, undo=undo), (effect,))


def _remove_from_court(state: SessionState, command: cmd.RemoveFromCourt, ctx: TransitionContext) -> Transition:
    session = state.session
    if not session.is_active:
        return _unchanged(state)
    match = session.active_match(command.match_id)
    removed = session.player(command.player_id)
    if match is None or removed is None:
        return _unchanged(state)
    side = match.side_of(removed.id)
    if side is None:
        return _unchanged(state)

    substitute = find_substitute(session.queue, removed)

    if substitute is None:
        # Nobody to step in: the match is abandoned with no result for anyone
        # and the remaining players go back to the queue.
        others = set(match.player_ids) - {removed.id}
        players = []
        for p in session.players:
            if p.id == removed.id:
                p = replace(p, status=PlayerStatus.LEFT)
            elif p.id in others and p.status == PlayerStatus.PLAYING:
                p = replace(p, status=PlayerStatus.CHECKED_IN)
            players.append(p)
        return _with_session(
            state,
            replace(
                session,
                players=tuple(players),
                active_matches=tuple(m for m in session.active_matches if m.id != match.id),
            ),
        )

    new_side = tuple(substitute.id if pid == removed.id else pid for pid in match.team(side))
    partner_id = None
    if session.game_mode == GameMode.DOUBLES:
        partner_id = next((pid for pid in new_side if pid != substitute.id), None)
    patched = replace(match, team1=new_side) if side == 1 else replace(match, team2=new_side)

    players = []
    for p in session.players:
        if p.id == removed.id:
            p = replace(p, status=PlayerStatus.LEFT)
        elif p.id == substitute.id:
            p = seat_player(p, match.court, partner_id)
        players.append(p)

    return _with_session(
        state,
        replace(
            session,
            players=tuple(players),
            active_matches=tuple(patched if m.id == match.id else m for m in session.active_matches),
        ),
    )


def _undo_winner(state: SessionState, command: cmd.UndoWinner, ctx: TransitionContext) -> Transition:
    undo = state.undo
    if not state.session.is_active:
        return _unchanged(state)
    if undo is None or undo.kind != UndoKind.WINNER or undo.match_id != command.match_id:
        return _unchanged(state)

    session = state.session
    original = undo.match
    original_ids = set(original.player_ids)

    replacement = session.match_on_court(original.court)
    replacement_ids = set(replacement.player_ids) if replacement is not None else set()

    # Refuse when an original participant is already seated on another court.
    for m in session.active_matches:
        if m is not replacement and original_ids & set(m.player_ids):
            return _unchanged(state)

    winners = set(original.team(undo.winner))
    losers = original_ids - winners

    players = []
    for p in session.players:
        if p.id in winners:
            p = replace(p, status=PlayerStatus.PLAYING, games_played=p.games_played - 1, wins=p.wins - 1)
        elif p.id in losers:
            p = replace(p, status=PlayerStatus.PLAYING, games_played=p.games_played - 1, losses=p.losses - 1)
        elif p.id in replacement_ids:
            p = replace(p, status=PlayerStatus.CHECKED_IN)
        players.append(p)

    restored = replace(original, winner=None, end_time=None)
    session = replace(
        session,
        players=tuple(players),
        matches=tuple(m for m in session.matches if m.id != original.id),
        active_matches=tuple(m for m in session.active_matches if m.court != original.court) + (restored,),
    )
    return Transition(replace(state, session=session, undo=None))


def _clear_undo(state: SessionState, command: cmd.ClearUndo, ctx: TransitionContext) -> Transition:
    if state.undo is None:
        return _unchanged(state)
    return Transition(replace(state, undo=None))


_HANDLERS: Dict[Type, Handler] = {
    cmd.LoadSession: _load_session,
    cmd.NewSession: _new_session,
    cmd.SetLocation: _set_location,
    cmd.SetCourts: _set_courts,
    cmd.SetGameMode: _set_game_mode,
    cmd.AddPlayer: _add_player,
    cmd.AddPlayerWithSkill: _add_player_with_skill,
    cmd.RemovePlayer: _remove_player,
    cmd.SetPlayerSkill: _set_player_skill,
    cmd.CheckInPlayer: _check_in,
    cmd.CheckOutPlayer: _check_out,
    cmd.StartSession: _start_session,
    cmd.EndSession: _end_session,
    cmd.FillCourt: _fill_court,
    cmd.FillCourts: _fill_courts,
    cmd.RecordWinner: _record_winner,
    cmd.RemoveFromCourt: _remove_from_court,
    cmd.UndoWinner: _undo_winner,
    cmd.ClearUndo: _clear_undo,
    cmd.LockPartners: _lock_partners,
    cmd.UnlockPartner: _unlock_partner,
    cmd.SetSyncedSessionId: _set_synced_session_id,
}
