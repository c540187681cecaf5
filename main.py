#!/usr/bin/env python3
"""
Scrolling Ring Listener - Main Entry Point
Maps Bluetooth scrolling ring swipes to key actions.
"""

import argparse
import asyncio
import logging

from scroll_ring.bindings.actions import ACTIONS, get_action_by_id
from scroll_ring.bindings.bindings import BindingTable
from scroll_ring.bindings.event_bus import UInputEventBus
from scroll_ring.core.listener import RingListener
from scroll_ring.gestures.gesture_detector import ScrollDirection
from scroll_ring.persistence import JsonSettingsStore

DIRECTIONS = [direction.value for direction in ScrollDirection]


def build_parser():
    parser = argparse.ArgumentParser(description="Bluetooth scrolling ring listener")
    parser.add_argument("--settings", help="settings JSON file")
    parser.add_argument("--debug-log", help="write a gesture debug log to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    parser.add_argument("--list-actions", action="store_true", help="list bindable actions and exit")
    parser.add_argument("--bind", nargs=3, action="append", metavar=("ADDRESS", "DIRECTION", "ACTION"),
                        help=f"bind a ring direction ({'/'.join(DIRECTIONS)}) to an action, then exit")
    return parser


def parse_args(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    args.bind = parse_bindings(parser, args.bind or [])
    return args


def parse_bindings(parser, raw_bindings):
    """Check each ``--bind`` triple, exiting with a usage error on a bad one."""
    bindings = []
    for address, direction, action_id in raw_bindings:
        if direction not in DIRECTIONS:
            parser.error(f"--bind: invalid direction {direction!r} (choose from {', '.join(DIRECTIONS)})")
        if get_action_by_id(action_id) is None:
            parser.error(f"--bind: unknown action {action_id!r} (see --list-actions)")
        bindings.append((address, ScrollDirection(direction), action_id))
    return bindings


async def run(listener: RingListener):
    listener.start()
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        listener.stop()


def main(argv=None):
    """Main entry point for the scrolling ring listener."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_actions:
        for action in ACTIONS:
            print(f"{action.id:14} {action.title}")
        return

    settings = JsonSettingsStore(args.settings)

    if args.bind:
        table = BindingTable(settings)
        table.load()
        for address, direction, action_id in args.bind:
            table.set_binding(address, direction, action_id)
            print(f"🎯 {address}: scroll {direction.value} → {action_id}")
        return

    listener = RingListener(settings, UInputEventBus(), debug_file=args.debug_log)
    try:
        asyncio.run(run(listener))
    except KeyboardInterrupt:
        print("\n👋 Stopping...")


if __name__ == "__main__":
    main()
