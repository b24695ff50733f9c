from colorrace import socketio
from colorrace.broadcast import dispatch


def play_events(app, events) -> None:
    """Dispatch a batch of narrated events, pacing them like a live reveal.

    - Runs inline (no pauses) in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS
    - Sleeps ``delay_ms * NARRATION_SPEED`` after each event otherwise
    - Once the batch that resolved a turn has played out, starts that room's
      next turn and plays it too; other batches never advance a room
    - Abandons a room as soon as it is destroyed or has moved on
    """
    if not events:
        return
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        _worker(app, events, paced=False)
    else:
        socketio.start_background_task(_worker, app, events, True)


def _worker(app, events, paced: bool) -> None:
    try:
        speed = float(app.config.get('NARRATION_SPEED', 1.0)) if paced else 0.0
    except (TypeError, ValueError):
        speed = 1.0
    manager = app.extensions['colorrace']

    with app.app_context():
        while events:
            for event in events:
                dispatch(app, [event])
                if speed > 0 and event.delay_ms:
                    socketio.sleep(event.delay_ms * speed / 1000.0)

            follow_up = []
            for event in events:
                if event.ends_turn is None:
                    continue
                room_id, turn = event.room_id, event.ends_turn
                next_events = manager.advance_turn(room_id, turn)
                if next_events:
                    app.logger.info(f"[timer-fire] room={room_id} next turn={turn + 1}")
                elif manager.rooms.get(room_id) is None:
                    app.logger.info(f"[timer-abort] room={room_id} destroyed during playback")
                else:
                    app.logger.info(f"[timer-abort] room={room_id} turn={turn} phase/turn changed")
                follow_up.extend(next_events)
            events = follow_up
