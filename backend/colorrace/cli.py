import random

import click
from flask import current_app
from flask.cli import with_appcontext

from colorrace.models import CARDS, COLORS, Phase
from colorrace.services.games.engine import CHOOSE_CARD, USE_POWER, TurnEngine
from colorrace.services.rooms import RoomRegistry, RoomSessionManager
from colorrace.services.sessions import SessionRegistry

# Chance a bot spends its one-shot GM-removal power on a given turn
POWER_CHANCE = 0.1


def run_simulation(config, seed=None, players=None):
    """Play one full game between random bots on a private manager; returns the room."""
    rng = random.Random(seed)
    count = int(players or config.get('REQUIRED_PLAYERS', 2))
    engine = TurnEngine(
        required_players=count,
        finish_line=int(config.get('FINISH_LINE', 10)),
        min_turns=int(config.get('MIN_TURNS', 10)),
        max_turns=int(config.get('MAX_TURNS', 30)),
        rng=rng,
    )
    manager = RoomSessionManager(
        SessionRegistry(name_max_length=int(config.get('NAME_MAX_LENGTH', 15))),
        RoomRegistry(max_players=count),
        engine,
    )

    bots = [manager.authenticate(f'bot-{i}', proposed_name=f'Bot {i + 1}')[0] for i in range(count)]
    room, _ = manager.create_room(bots[0].user_id)
    for bot in bots[1:]:
        manager.join_room(room.room_id, bot.user_id)

    while room.phase != Phase.GAMEOVER:
        if room.phase == Phase.REVEAL:
            manager.advance_turn(room.room_id, room.turn)
            continue
        for bot in bots:
            seat = room.player_for_user(bot.user_id)
            if room.phase != Phase.CHOOSING:
                break
            if seat.choice is not None or not seat.is_active:
                continue
            if seat.can_use_remove_gm and not room.remove_gm_used_this_turn and rng.random() < POWER_CHANCE:
                manager.player_action(bot.user_id, {'type': USE_POWER})
            # White cards are void once the GM is removed
            deck = COLORS if room.remove_gm_used_this_turn else CARDS
            manager.player_action(bot.user_id, {'type': CHOOSE_CARD, 'card': rng.choice(deck)})
    return room


@click.command('simulate')
@click.option('--seed', type=int, default=None, help='Seed for a reproducible game.')
@click.option('--players', type=int, default=None, help='Number of bots (defaults to REQUIRED_PLAYERS).')
@with_appcontext
def simulate_command(seed, players):
    """Plays a full game between random bots and prints the narration."""
    room = run_simulation(current_app.config, seed=seed, players=players)
    for entry in room.log_history:
        click.echo(f'[{entry.tag}] {entry.message}')
    click.echo('')
    standings = sorted(room.players, key=lambda p: (-p.position, p.finish_turn or 0, p.seat))
    for rank, p in enumerate(standings, start=1):
        finished = f'finished turn {p.finish_turn}' if p.is_finished else 'did not finish'
        click.echo(f'{rank}. {p.name} position={p.position} ({finished})')
    click.echo(f'Game over after {room.turn} turns.')
