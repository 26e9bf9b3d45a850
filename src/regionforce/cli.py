"""Command-line entry point: load records, lay them out, write an SVG."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from regionforce.circular import circular_positions
from regionforce.errors import GraphDataError
from regionforce.loader import load_records
from regionforce.projection import FilterState
from regionforce.renderers import Renderer, SvgRenderer
from regionforce.session import Frame, GraphSession

logger = logging.getLogger("regionforce")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="regionforce",
        description="Lay out a relationship graph inside its regions and render it to SVG.",
    )
    parser.add_argument("data_dir", type=Path, help="directory with relationships.csv, social.json, characters.json")
    parser.add_argument("-o", "--output", type=Path, default=None, help="SVG output file (default: stdout)")
    parser.add_argument("--ticks", type=int, default=300, help="simulation ticks to run (default: 300)")
    parser.add_argument("--focus", default=None, help="entity id to focus on")
    parser.add_argument("--hide-role", action="append", default=[], metavar="ROLE", help="uncheck a role filter")
    parser.add_argument("--hide-house", action="append", default=[], metavar="HOUSE", help="uncheck a house filter")
    parser.add_argument("--layout", choices=("force", "circle"), default="force")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def filter_state_from_args(args: argparse.Namespace, session: GraphSession) -> FilterState:
    state = FilterState.all_enabled(session.region_map.scheme)
    for role in args.hide_role:
        if role in state.role_flags:
            state = state.toggled_role(role)
        else:
            logger.warning("unknown role %r ignored", role)
    for house in args.hide_house:
        if house in state.house_flags:
            state = state.toggled_house(house)
        else:
            logger.warning("unknown house %r ignored", house)
    return state.with_focus(args.focus)


def render(args: argparse.Namespace) -> str:
    records = load_records(args.data_dir)
    session = GraphSession.create(records.entities, records.relationships)
    try:
        projection = session.project(filter_state_from_args(args, session))
        renderer: Renderer

        if args.layout == "circle":
            visible = [session.entity(nid) for nid in projection.node_ids]
            positions = circular_positions(visible, session.region_map.scheme, projection.focus_id)
            frame = Frame(
                positions=positions,
                paths=session.router.route(projection.edges, positions),
                alpha=0.0,
                state=session.engine.state,
            )
            renderer = SvgRenderer(draw_regions=False)
        else:
            frame = session.run(max(args.ticks, 1))
            renderer = SvgRenderer()
            logger.info("ran %d ticks, alpha=%.4f (%s)", args.ticks, frame.alpha, frame.state.value)

        return renderer.render(frame, {e.id: e for e in session.entities}, session.region_map)
    finally:
        session.dispose()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        svg = render(args)
    except (FileNotFoundError, GraphDataError) as exc:
        logger.error("%s", exc)
        return 1

    if args.output is None:
        sys.stdout.write(svg + "\n")
    else:
        args.output.write_text(svg + "\n", encoding="utf-8")
        logger.info("wrote %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
