"""
Command-line entry point for antibeaver.

    antibeaver status                       # buffering verdict, backlog, latency
    antibeaver buffer "text" --priority P0  # buffer a thought
    antibeaver flush [--agent A | --all]    # synthesize backlog(s)
    antibeaver halt | force | resume        # operator controls
    antibeaver simulate 8000                # inject latency
    antibeaver record-latency 120           # record a measured sample
    antibeaver history --agent A            # past synthesis events
    antibeaver version

Exit status: 0 on success, 1 on any error.
"""

import argparse
import json
import logging
import logging.config
import sys
from typing import Callable, Dict, List, Optional, TextIO

from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .governance.engine import Governor
from .governance.policy import GovernancePolicy
from .governance.priority import PRIORITY_TOKENS
from .governance.validators import GovernanceError, ValidationError, parse_latency

logger = logging.getLogger("antibeaver")

EXIT_OK = 0
EXIT_ERROR = 1


def init_logging(verbose: bool = False) -> None:
    """Send log records to stderr so stdout stays clean for prompts and JSON."""
    level = "DEBUG" if verbose else "WARNING"
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s"},
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": "plain",
            },
        },
        "root": {"level": level, "handlers": ["stderr"]},
        "loggers": {
            "sqlalchemy": {"level": "WARNING"},
        },
    })


class Output:
    """Text or JSON rendering of command results."""

    def __init__(self, as_json: bool, stream: TextIO) -> None:
        self.as_json = as_json
        self.stream = stream

    def emit(self, payload: dict, text: str) -> None:
        if self.as_json:
            self.stream.write(json.dumps(payload, indent=2) + "\n")
        else:
            self.stream.write(text + "\n")


def _parse_limit(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        limit = int(raw)
    except ValueError:
        raise ValidationError(f"invalid limit: {raw}") from None
    if limit < 1:
        raise ValidationError(f"invalid limit: {raw} (must be at least 1)")
    return limit


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="antibeaver",
        description="Dam the flood: traffic governance for multi-agent systems.",
    )
    parser.add_argument("--db", default=None, help="Path to SQLite database.")
    parser.add_argument(
        "--config", default=None,
        help="Policy YAML file (default: $ANTIBEAVER_CONFIG, else built-in defaults).",
    )
    parser.add_argument("--json", action="store_true", help="Output as JSON.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Show current system status.")

    p = sub.add_parser("buffer", help="Buffer a thought for later synthesis.")
    p.add_argument("thought")
    p.add_argument("--agent", default=None, help="Agent ID.")
    p.add_argument(
        "--priority", default="P1",
        help=f"Priority ({'/'.join(PRIORITY_TOKENS)}).",
    )
    p.add_argument("--channel", default=None, help="Origin channel.")
    p.add_argument("--target", default="", help="Delivery target.")

    p = sub.add_parser("flush", help="Flush buffered thoughts and print the synthesis prompt.")
    p.add_argument("--agent", default=None, help="Agent ID.")
    p.add_argument("--all", action="store_true", help="Flush all agents.")

    sub.add_parser("halt", help="Halt the system (buffer everything).")
    sub.add_parser(
        "resume",
        help="Clear halt, forced buffering and simulated latency.",
    )
    sub.add_parser("force", help="Force buffering on (manual override).")

    p = sub.add_parser("simulate", help="Set simulated network latency.")
    p.add_argument("latency_ms")

    p = sub.add_parser("record-latency", help="Record a latency sample.")
    p.add_argument("latency_ms")

    p = sub.add_parser("history", help="Show recent synthesis events.")
    p.add_argument("--agent", default=None, help="Agent ID.")
    p.add_argument("--limit", default=None)

    sub.add_parser("version", help="Show version.")

    return parser.parse_args(argv)


def cmd_status(gov: Governor, args: argparse.Namespace, out: Output) -> None:
    status = gov.status()
    lines = []
    if status["buffering"]:
        lines.append(f"  Status: BUFFERING ({status['reason']})")
    else:
        lines.append(f"  Status: NORMAL ({status['reason']})")
    lines.append(f"  Pending: {status['pending']} thoughts")
    lines.append(
        f"  Latency: avg {status['avg_latency_ms']}ms / max {status['max_latency_ms']}ms"
        f" (threshold: {status['threshold_ms']}ms)"
    )
    if status["halted"]:
        lines.append("  SYSTEM HALTED")
    if status["forced_buffering"]:
        lines.append("  Forced buffering enabled")
    if status["simulated_ms"] > 0:
        lines.append(f"  Simulated latency: {status['simulated_ms']}ms")
    out.emit(status, "\n".join(lines))


def cmd_buffer(gov: Governor, args: argparse.Namespace, out: Output) -> None:
    thought = gov.buffer(
        args.thought,
        priority=args.priority,
        agent_id=args.agent,
        channel=args.channel,
        target=args.target,
    )
    out.emit(
        {"ok": True, "id": thought.id, "agent": thought.agent_id, "priority": thought.priority.value},
        f"  Buffered thought (id: {thought.id}, priority: {thought.priority.value}, "
        f"agent: {thought.agent_id})",
    )


def cmd_flush(gov: Governor, args: argparse.Namespace, out: Output) -> None:
    if args.all:
        results = gov.flush_all()
        if not results:
            out.emit({"ok": True, "flushed": []}, "  No pending thoughts to flush")
            return
        text = "\n".join(
            f"\n  === Agent: {r.agent_id} ===\n\n{r.prompt}" for r in results
        )
        out.emit({"ok": True, "flushed": [r.to_dict() for r in results]}, text)
        return

    result = gov.flush(args.agent)
    if not result.thoughts:
        out.emit(
            {"ok": True, "flushed": []},
            f"  No pending thoughts for agent: {result.agent_id}",
        )
        return
    out.emit(
        {"ok": True, "flushed": [result.to_dict()]},
        f"{result.prompt}\n\n  Synthesized {result.synthesized} thoughts",
    )


def cmd_halt(gov: Governor, args: argparse.Namespace, out: Output) -> None:
    gov.controls.halt()
    out.emit(
        {"ok": True, "halted": True},
        "  System HALTED\n     All messages will be buffered until resume",
    )


def cmd_resume(gov: Governor, args: argparse.Namespace, out: Output) -> None:
    gov.controls.resume()
    out.emit(
        {"ok": True, "halted": False, "forced_buffering": False, "simulated_ms": 0},
        "  System RESUMED\n    Normal operations restored",
    )


def cmd_force(gov: Governor, args: argparse.Namespace, out: Output) -> None:
    gov.controls.force()
    out.emit(
        {"ok": True, "forced_buffering": True},
        "  Forced buffering ENABLED\n     Use 'antibeaver resume' to clear",
    )


def cmd_simulate(gov: Governor, args: argparse.Namespace, out: Output) -> None:
    ms = gov.controls.simulate(parse_latency(args.latency_ms))
    triggers = ms > gov.policy.threshold_ms
    if ms == 0:
        text = "  Simulated latency cleared"
    else:
        text = f"  Simulated latency set to {ms}ms"
        if triggers:
            text += "\n     This will trigger buffering"
    out.emit({"ok": True, "simulated_ms": ms, "triggers_buffering": triggers}, text)


def cmd_record_latency(gov: Governor, args: argparse.Namespace, out: Output) -> None:
    ms = gov.record_latency(parse_latency(args.latency_ms))
    out.emit({"ok": True, "latency_ms": ms}, f"  Recorded latency: {ms}ms")


def cmd_history(gov: Governor, args: argparse.Namespace, out: Output) -> None:
    events = gov.history(args.agent, _parse_limit(args.limit))
    if not events:
        text = "  No synthesis events"
    else:
        text = "\n".join(
            f"  #{e['id']} {e['triggered_at']}  agent={e['agent_id']}  thoughts={e['thoughts_count']}"
            for e in events
        )
    out.emit({"ok": True, "events": events}, text)


COMMANDS: Dict[str, Callable[[Governor, argparse.Namespace, Output], None]] = {
    "status": cmd_status,
    "buffer": cmd_buffer,
    "flush": cmd_flush,
    "halt": cmd_halt,
    "resume": cmd_resume,
    "force": cmd_force,
    "simulate": cmd_simulate,
    "record-latency": cmd_record_latency,
    "history": cmd_history,
}


def run(
    args: argparse.Namespace,
    policy: GovernancePolicy,
    version: str = __version__,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> int:
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    out = Output(args.json, stdout)

    if args.command == "version":
        out.emit({"version": version}, f"  antibeaver v{version}\n     traffic governance for multi-agent systems")
        return EXIT_OK

    if args.command is None:
        out.emit(
            {"version": version},
            f"  antibeaver v{version}\n  Use 'antibeaver --help' for available commands",
        )
        return EXIT_OK

    try:
        with Governor(policy) as gov:
            COMMANDS[args.command](gov, args, out)
    except (GovernanceError, SQLAlchemyError, OSError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        if args.json:
            stdout.write(json.dumps({"ok": False, "error": str(e)}) + "\n")
        stderr.write(f"Error: {e}\n")
        return EXIT_ERROR
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    init_logging(args.verbose)
    policy = GovernancePolicy.load(args.config).with_db_path(args.db)
    return run(args, policy)


if __name__ == "__main__":
    sys.exit(main())
