"""CLI entrypoints for repoviz commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List

from .config import ConfigError, load_config
from .errors import RepoVizError, user_message
from .github.client import GitHubClient
from .hierarchy import RepoTree, build_hierarchy
from .layout import create_layout
from .logging import configure_logging


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_repo_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("repo_url", help="GitHub repository URL, e.g. https://github.com/owner/repo.")
    parser.add_argument("--branch", default=None, help="Branch to list (defaults to the repository default).")
    parser.add_argument("--token", default=None, help="GitHub token used for rate limits and private repos.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repoviz",
        description="Visualise a GitHub repository's file tree as a graph or tree diagram.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        default=".",
        help="Directory or path of the .repoviz.yml file (defaults to current directory).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP proxy service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default=None, help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to listen on.")

    tree_parser = subparsers.add_parser("tree", help="Print the repository hierarchy.")
    _add_verbose_option(tree_parser, suppress_default=True)
    _add_repo_options(tree_parser)

    layout_parser = subparsers.add_parser("layout", help="Compute a layout frame and print it as JSON.")
    _add_verbose_option(layout_parser, suppress_default=True)
    _add_repo_options(layout_parser)
    layout_parser.add_argument(
        "--policy",
        choices=("graph", "tree"),
        default="tree",
        help="Force-directed graph or layered tree layout.",
    )
    layout_parser.add_argument("--width", type=float, default=None, help="Canvas width.")
    layout_parser.add_argument("--height", type=float, default=None, help="Canvas height.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for repoviz commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        capture=("uvicorn",) if args.command == "serve" else (),
    )

    try:
        config = load_config(Path(args.config))
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    if args.command == "serve":
        from .service import run_service

        run_service(
            host=args.host or config.service.host,
            port=args.port or config.service.port,
            config=config,
        )
        return

    client = GitHubClient(
        args.token or config.github.token,
        api_url=config.github.api_url,
        request_timeout=config.github.request_timeout,
    )
    try:
        entries = client.fetch_tree(args.repo_url, args.branch)
    except RepoVizError as exc:
        parser.exit(1, f"repoviz {args.command} failed: {user_message(exc)} ({exc})\n")
    tree = build_hierarchy(entries)

    if args.command == "tree":
        print("\n".join(render_tree_lines(tree)))
    elif args.command == "layout":
        settings = config.layout
        if args.width:
            settings.width = args.width
        if args.height:
            settings.height = args.height
        layout = create_layout(args.policy, tree, settings)
        ticks = 0
        while ticks < settings.max_ticks and layout.step():
            ticks += 1
        frame = layout.current_frame()
        print(
            json.dumps(
                {node_id: {"x": round(pos.x, 3), "y": round(pos.y, 3)} for node_id, pos in frame.items()},
                indent=2,
            )
        )
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def render_tree_lines(tree: RepoTree) -> List[str]:
    """Render the hierarchy as indented text, directories suffixed with ``/``."""
    lines: List[str] = []

    def _walk(node_id: str, prefix: str, is_last: bool, depth: int) -> None:
        node = tree.nodes[node_id]
        label = node.name + ("/" if node.kind == "tree" else "")
        if depth == 0:
            lines.append(label)
            child_prefix = ""
        else:
            lines.append(f"{prefix}{'└── ' if is_last else '├── '}{label}")
            child_prefix = prefix + ("    " if is_last else "│   ")
        for index, child_id in enumerate(node.children):
            _walk(child_id, child_prefix, index == len(node.children) - 1, depth + 1)

    _walk(tree.root.id, "", True, 0)
    return lines


if __name__ == "__main__":
    main(sys.argv[1:])
