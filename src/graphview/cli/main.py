from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from graphview.settings import settings


def _configure_logging() -> None:
    import logging

    level = (settings.log_level or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _parse_param(raw: str) -> tuple[str, Any]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected key=value, got {raw!r}")
    try:
        return key, json.loads(value)
    except json.JSONDecodeError:
        return key, value


def load_config(path: str | None) -> dict[str, Any]:
    if not path:
        return {}
    return json.loads(Path(path).read_text(encoding="utf-8"))


def cmd_version() -> int:
    from graphview import __version__

    print(__version__)
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    _configure_logging()
    from graphview.engine import GraphView
    from graphview.errors import GraphViewError
    from graphview.events import EventKind

    config = load_config(args.config)
    if args.cypher:
        config["initial_cypher"] = args.cypher
    if args.arrows:
        config["arrows"] = True
    params = dict(args.param) if args.param else None

    failures: list[BaseException] = []

    async def _run(view: GraphView) -> dict[str, Any]:
        try:
            dataset = await view.render(parameters=params)
            return dataset.to_dict()
        finally:
            await view.close()

    try:
        view = GraphView(config)
        view.register_on_event(EventKind.ERROR, failures.append)
        out = asyncio.run(_run(view))
    except (GraphViewError, RuntimeError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    if failures:
        print(f"error: {failures[0]}", file=sys.stderr)
        return 1

    text = json.dumps(out, indent=2 if args.pretty else None, default=str)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
    else:
        print(text)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="graphview")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version").set_defaults(func=lambda _a: cmd_version())

    render = sub.add_parser("render", help="Run a query and print the resulting dataset as JSON")
    render.add_argument("--cypher", default=None, help="Primary query (overrides initial_cypher)")
    render.add_argument("--config", default=None, help="JSON file with labels/relationships options")
    render.add_argument("--param", action="append", type=_parse_param, help="Query parameter key=value (repeatable)")
    render.add_argument("--arrows", action="store_true")
    render.add_argument("--output", default=None, help="Write JSON here instead of stdout")
    render.add_argument("--pretty", action="store_true")
    render.set_defaults(func=cmd_render)

    return p


def app() -> None:
    parser = build_parser()
    args = parser.parse_args()
    rc = args.func(args)
    raise SystemExit(rc)


if __name__ == "__main__":
    app()
