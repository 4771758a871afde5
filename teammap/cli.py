"""CLI entrypoint for the team map data pipeline and API server."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from teammap.common.config_loader import load_config
from teammap.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, STAGES
from teammap.common.errors import PipelineError
from teammap.common.ids import generate_run_id
from teammap.common.logging import build_logger, build_stream_logger, log_event
from teammap.pipeline.analyze import run_analyze
from teammap.pipeline.geocode import run_geocode
from teammap.pipeline.merge import run_merge
from teammap.pipeline.reports import write_run_summary


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all", "serve"])
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--strict", action="store_true")
    parser.add_argument("--full", action="store_true", help="geocode every location, ignoring the checkpoint")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    return parser.parse_args(argv)


def execute_stage(stage: str, cfg: dict, data_dir: Path, run_id: str, args: argparse.Namespace, logger) -> bool:
    """Run one stage; return True when it completed with recorded per-item failures."""
    if stage == "analyze":
        run_analyze(cfg, data_dir, run_id, logger=logger)
        return False
    if stage == "geocode":
        payload = run_geocode(cfg, data_dir, run_id, resume=not args.full, logger=logger)
        return payload["summary"]["failed"] > 0
    if stage == "merge":
        result = run_merge(cfg, data_dir, run_id, logger=logger)
        return result["report"]["counts"]["skipped"] > 0
    raise ValueError(f"Unknown stage: {stage}")


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    cfg = load_config(Path(args.config_dir), overlay_config_dir=overlay_config_dir)
    stages = list(STAGES) if args.command == "all" else [args.command]

    had_partial_failure = False

    for stage in stages:
        log_event(logger, "stage start", run_id=run_id, stage=stage, event="STAGE_START", status="ok")
        try:
            partial = execute_stage(stage, cfg, data_dir, run_id, args, logger)
        except PipelineError as exc:
            log_event(
                logger,
                f"stage failed: {exc}",
                run_id=run_id,
                stage=stage,
                event="STAGE_FAIL",
                status="error",
                error_code=exc.error_code,
                level=logging.ERROR,
            )
            return EXIT_HARD_FAIL
        if partial:
            had_partial_failure = True
            if args.strict:
                log_event(
                    logger,
                    "stopping after partial failure in strict mode",
                    run_id=run_id,
                    stage=stage,
                    event="STAGE_FAIL",
                    status="error",
                    error_code="STRICT_PARTIAL",
                    level=logging.ERROR,
                )
                return EXIT_HARD_FAIL
        log_event(logger, "stage end", run_id=run_id, stage=stage, event="STAGE_END", status="ok")

    write_run_summary(data_dir, run_id=run_id, stages=stages)
    if had_partial_failure:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def run_server(args: argparse.Namespace) -> int:
    import uvicorn

    from teammap.server.app import ServerSettings, create_app

    data_dir = Path(args.data_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    cfg = load_config(Path(args.config_dir), overlay_config_dir=overlay_config_dir)
    build_stream_logger("teammap.server", level=args.log_level)

    app = create_app(ServerSettings.from_config(cfg, data_dir))
    uvicorn.run(
        app,
        host=args.host or str(cfg["server"]["host"]),
        port=args.port or int(cfg["server"]["port"]),
        log_level=args.log_level.lower(),
    )
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        if args.command == "serve":
            return run_server(args)
        return run_command(args)
    except PipelineError as exc:
        print(f"{exc.error_code}: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
