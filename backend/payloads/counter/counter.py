"""Minimal heavy-module payload used for local runs of the simulated host.

``game`` and ``log`` are bound by the loader before this code executes.
"""

ticks_seen = 0


def logging_setup():
    log.info("counter module ready")


def run_step():
    global ticks_seen
    ticks_seen += 1
    # Scratch writes land in the ephemeral store and vanish next invocation
    game.store['last_tick'] = game.invocation
    if ticks_seen % 50 == 0:
        log.info("counter at %d ticks (invocation %d)", ticks_seen, game.invocation)
