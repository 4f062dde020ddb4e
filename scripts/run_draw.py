"""Console front end for running draw rounds against the configured database."""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from codedraw.draw.controller import DrawController
from codedraw.workflows import open_controller

HELP = """\
Commands:
  range START END   set the code range (e.g. range 0000 0165)
  count N           set how many codes to draw per round
  start             start rolling; press Enter to stop
  history           list completed rounds
  status            show pool and validation flags
  reset             clear every round (asks for confirmation)
  quit              exit
"""


def _print_display(codes: list[str]) -> None:
    sys.stdout.write("\r" + "  ".join(codes))
    sys.stdout.flush()


def _print_status(controller: DrawController) -> None:
    status = controller.status
    code_range = controller.code_range
    count = controller.count if controller.count is not None else ""
    print(f"range {code_range.start}-{code_range.end}  count {count}  remaining {status.remaining}")
    if status.settings_invalid:
        print("  range is invalid (blank, mismatched width, or start > end)")
    if status.count_invalid:
        print("  count is required")
    if status.over_limit:
        print(f"  only {status.remaining} codes left in the pool")


def _print_history(controller: DrawController) -> None:
    rounds = controller.history
    if not rounds:
        print("no rounds yet")
    for draw_round in rounds:
        print(f"#{draw_round.round}  {draw_round.time}  {' '.join(draw_round.codes)}")


def _roll(controller: DrawController) -> None:
    if not controller.start():
        print("cannot start:")
        _print_status(controller)
        return
    input()
    draw_round = controller.stop()
    if draw_round is not None:
        print(f"round {draw_round.round}: {' '.join(draw_round.codes)}")


def main() -> int:
    load_dotenv()
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    controller = open_controller(on_display=_print_display, create_tables=True)
    print(HELP)
    _print_status(controller)
    try:
        while True:
            try:
                line = input("> ").strip()
            except EOFError:
                break
            if not line:
                continue
            command, *args = line.split()
            if command == "quit":
                break
            elif command == "range" and len(args) == 2:
                controller.set_range(args[0], args[1])
                _print_status(controller)
            elif command == "count" and len(args) == 1:
                controller.set_count(args[0])
                _print_status(controller)
            elif command == "start":
                _roll(controller)
            elif command == "history":
                _print_history(controller)
            elif command == "status":
                _print_status(controller)
            elif command == "reset":
                if input("Reset every round? [y/N] ").strip().lower() == "y":
                    controller.reset()
                    print("history cleared")
            else:
                print(HELP)
    finally:
        controller.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
