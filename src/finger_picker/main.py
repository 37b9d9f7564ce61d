#!/usr/bin/env python3
"""
finger-picker: Multi-finger random picker

Command-line entry point. The picker core has no display of its own, so the
CLI runs it headless on a virtual clock:

1. Replays a scripted touch session and prints every phase/selection change
2. Runs a fairness self-check: many picks, chi-squared against uniform

Usage:
    # Replay a touch script
    finger-picker --script session.toml

    # Fairness check: 5000 picks among 5 fingers
    finger-picker --fairness 5000 --fingers 5

Script format (TOML):
    duration_ms = 8000

    [[events]]
    t = 0
    type = "start"
    id = 1
    x = 120
    y = 300

    [[events]]
    t = 500
    type = "end"
    id = 1
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple
import toml

# Set up logging before imports that use it
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger('finger-picker')

from .analysis.fairness import run_trials, uniformity_test
from .config import PickerConfig, load_config
from .interfaces.input_events import TouchEvent, event_from_dict
from .interfaces.render_state import RenderState
from .picker import TouchPicker
from .timing.scheduler import VirtualScheduler

# Fairness check rejects uniformity below this p-value
FAIRNESS_ALPHA = 0.001


def load_script(script_path: str) -> Tuple[List[TouchEvent], Optional[float]]:
    """
    Load a touch script from TOML.

    Returns:
        (events sorted by time, duration_ms or None)

    Raises:
        FileNotFoundError: Script does not exist
        ValueError: Malformed event entry
    """
    path = Path(script_path)
    if not path.exists():
        raise FileNotFoundError(f"Script not found: {path}")
    with open(path, 'r') as f:
        data = toml.load(f)

    events = [event_from_dict(entry) for entry in data.get('events', [])]
    events.sort(key=lambda e: e.t)
    duration = data.get('duration_ms')
    return events, float(duration) if duration is not None else None


def replay_script(
    picker: TouchPicker,
    scheduler: VirtualScheduler,
    events: Sequence[TouchEvent],
    duration_ms: float,
    emit: Callable[[RenderState], None] = lambda state: None
) -> List[RenderState]:
    """
    Replay scripted events frame by frame on a virtual clock.

    Events sharing a timestamp are delivered as one batch. A RenderState is
    emitted on the first frame and whenever the phase or the highlighted id
    changes.

    Returns:
        The emitted render states
    """
    frame_ms = picker.config.frame_interval_ms
    changes: List[RenderState] = []
    last_key = None
    idx = 0
    frame = 0

    while frame * frame_ms <= duration_ms:
        frame_t = frame * frame_ms

        while idx < len(events) and events[idx].t <= frame_t:
            batch_t = events[idx].t
            batch = []
            while idx < len(events) and events[idx].t == batch_t:
                batch.append(events[idx])
                idx += 1
            scheduler.advance_to(max(batch_t, scheduler.now()))
            picker.handle_events(batch)

        scheduler.advance_to(frame_t)
        state = picker.tick()

        key = (state.phase, state.selected_id)
        if key != last_key:
            changes.append(state)
            emit(state)
            last_key = key
        frame += 1

    return changes


def run_replay(config: PickerConfig, script_path: str) -> int:
    """Replay a script and print JSON lines; returns an exit code."""
    try:
        events, duration = load_script(script_path)
    except (OSError, ValueError, toml.TomlDecodeError) as e:
        logger.error(f"Failed to load script: {e}")
        return 1

    if duration is None:
        last_t = events[-1].t if events else 0.0
        duration = last_t + config.dwell_delay_ms + config.hold_duration_ms + 2000.0

    scheduler = VirtualScheduler()
    picker = TouchPicker(config, scheduler)

    logger.info("=" * 60)
    logger.info(f"Replaying {script_path}")
    logger.info(f"  Events: {len(events)}")
    logger.info(f"  Duration: {duration:.0f}ms")
    logger.info(f"  Dwell/hold: {config.dwell_delay_ms:.0f}ms / {config.hold_duration_ms:.0f}ms")
    logger.info(f"  Cycling: {config.cycling_enabled}")
    logger.info("=" * 60)

    replay_script(picker, scheduler, events, duration,
                  emit=lambda state: print(state.to_json(), flush=True))

    summary = picker.engine.describe()
    logger.info(f"Replay complete: {summary['selections']} selections, "
                f"{summary['aborts']} aborts, final phase {summary['phase']}")
    return 0


def run_fairness(config: PickerConfig, n_trials: int, n_fingers: int) -> int:
    """Run the fairness self-check; returns 1 if uniformity is rejected."""
    if n_trials < 1 or n_fingers < 1:
        logger.error("--fairness and --fingers must both be >= 1")
        return 1

    logger.info(f"Fairness check: {n_trials} picks among {n_fingers} fingers")
    tally = run_trials(n_fingers, n_trials, config)
    finger_ids = range(1, n_fingers + 1)
    result = uniformity_test(tally.counts(finger_ids))

    for touch_id, count in zip(finger_ids, tally.counts(finger_ids)):
        logger.info(f"  finger {touch_id}: {count:6d} ({count / n_trials:.3%})")
    logger.info(f"  chi2={result.chi_squared:.3f}  p={result.p_value:.4f}  "
                f"dof={max(0, result.n_categories - 1)}")

    if not result.is_uniform(FAIRNESS_ALPHA):
        logger.error(f"Selection is NOT uniform (p < {FAIRNESS_ALPHA})")
        return 1
    logger.info("Selection is consistent with uniform")
    return 0


def main(argv: Optional[Sequence[str]] = None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='finger-picker: Multi-finger random picker (headless driver)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Replay a touch session with a custom config
    finger-picker --config picker.toml --script session.toml

    # Check selection fairness
    finger-picker --fairness 5000 --fingers 5 --seed 42
        """
    )

    parser.add_argument(
        '--config', '-c',
        help='Path to TOML configuration file'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--seed',
        type=int,
        help='Random seed for reproducible picks (overrides config)'
    )
    parser.add_argument(
        '--script', '-s',
        help='Replay a TOML touch script and print render-state changes as JSON lines'
    )
    parser.add_argument(
        '--fairness',
        type=int,
        metavar='N',
        help='Run N picks and test them for uniformity'
    )
    parser.add_argument(
        '--fingers',
        type=int,
        default=5,
        help='Number of fingers for --fairness (default: 5)'
    )

    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config)
        if args.seed is not None:
            config.seed = args.seed
    except (OSError, ValueError, TypeError, toml.TomlDecodeError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    if args.script:
        exit_code = run_replay(config, args.script)
    elif args.fairness:
        exit_code = run_fairness(config, args.fairness, args.fingers)
    else:
        parser.print_help()
        exit_code = 2

    if exit_code:
        sys.exit(exit_code)


if __name__ == '__main__':
    main()
