"""Ball state machine using transitions library.

States and triggers:
    pending --start--> in_progress
    *       --block--> blocked
    *       --finish--> complete
    blocked --resume--> in_progress
    *       --reset--> pending      (restore from archive)

"start" only fires from pending; calling it in any other state is a
no-op rather than an error. Every other trigger is accepted from any state.

Usage:
    from juggle.workflow.fsm import BallFSM

    fsm = BallFSM(ball)
    fsm.start()
    fsm.block()
"""

import logging
from typing import Callable

from transitions import Machine

logger = logging.getLogger(__name__)


STATES = [
    "pending",
    "in_progress",
    "blocked",
    "complete",
]

TERMINAL_STATES = ("blocked", "complete")
ACTIVE_STATES = ("pending", "in_progress")

TRANSITIONS = [
    {"trigger": "start", "source": "pending", "dest": "in_progress"},
    {"trigger": "resume", "source": "blocked", "dest": "in_progress"},

    # Blocking and completing are accepted from anywhere
    {"trigger": "block", "source": "*", "dest": "blocked"},
    {"trigger": "finish", "source": "*", "dest": "complete"},

    # Administrative reset, used when unarchiving
    {"trigger": "reset", "source": "*", "dest": "pending"},
]


def _build_trigger_lookup() -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name, expanding '*'."""
    lookup: dict[tuple[str, str], str] = {}
    for t in TRANSITIONS:
        sources = STATES if t["source"] == "*" else [t["source"]]
        for source in sources:
            key = (source, t["dest"])
            if key not in lookup:  # First trigger wins for a given source->dest
                lookup[key] = t["trigger"]
    return lookup


TRIGGER_FOR = _build_trigger_lookup()


class BallFSM:
    """State machine bound to a single ball.

    The ball object only needs `id` and `state` attributes. The machine
    writes the new state back onto the ball after every transition.
    """

    def __init__(self, ball, on_transition: Callable[[str, str, str], None] | None = None):
        """Initialize FSM for a ball.

        Args:
            ball: Object with `id` and `state` attributes
            on_transition: Optional callback(from_state, to_state, trigger) called after transitions
        """
        self.ball = ball
        self.on_transition = on_transition

        initial = ball.state
        if initial not in STATES:
            logger.warning(f"[BALL] {ball.id}: Unknown state '{initial}', treating as 'pending'")
            initial = "pending"

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=initial,
            auto_transitions=False,
            send_event=True,
            ignore_invalid_triggers=True,  # start() outside pending is a no-op
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        self.ball.state = to_state
        logger.info(f"[BALL] {self.ball.id}: {from_state} -> {to_state} ({trigger})")

        if self.on_transition:
            self.on_transition(from_state, to_state, trigger)

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)

    def move_to(self, dest: str) -> bool:
        """Move to dest unconditionally.

        Uses the named trigger when one exists for (state, dest). Returns
        False when already in dest, True otherwise.
        """
        if dest not in STATES:
            raise ValueError(f"Unknown ball state: {dest}")
        if dest == self.state:
            return False

        trigger = TRIGGER_FOR.get((self.state, dest))
        if trigger:
            return self.trigger(trigger)

        # No named edge (e.g. complete -> in_progress): administrative jump
        from_state = self.state
        self.machine.set_state(dest)
        self.ball.state = dest
        logger.info(f"[BALL] {self.ball.id}: {from_state} -> {dest} (set_state)")
        if self.on_transition:
            self.on_transition(from_state, dest, "set_state")
        return True
