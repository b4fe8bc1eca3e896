import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from build_deps.observations import dependency_observations, parse_observations_file
from build_deps.resolver import resolve_dependencies
from configuration import Configuration as Config
from loggers.diagnostics import Diagnostics
from loggers.main_logger import main_logger as logger, set_console_level
from models.errors import SbomError
from models.scan_config import ScanConfig, load_scan_config
from sbom_generators.build_sbom_gen import generate_cyclonedx
from timer import Timer
from tools.sbom_merger import merge_boms
from tools.sbom_parser import read_bom, write_bom

p = Path(__file__).resolve()


def _scan_config(config_arg: Optional[str]) -> ScanConfig:
    if config_arg:
        return load_scan_config(Path(config_arg))

    default_config = Path.cwd() / Config.scan_config_file_name
    if default_config.is_file():
        return load_scan_config(default_config)
    return ScanConfig()


def _output_path(output_arg: Optional[str], config: ScanConfig, default_name: str) -> Path:
    if output_arg:
        return Path(output_arg)
    if config.output:
        return Path(config.output)
    return Path(Config.output_dir, default_name)


def _report(diagnostics: Diagnostics) -> None:
    if diagnostics.degraded:
        logger.info(f"completed with {len(diagnostics.warnings)} warnings")


def build(args: argparse.Namespace) -> int:
    config = _scan_config(args.config)
    diagnostics = Diagnostics()

    timer = Timer()
    timer.start("starting build timer")

    observations = parse_observations_file(args.observations, working_directory=args.working_directory)
    logger.debug(f"filtering dependencies from {len(observations.files_opened) + len(observations.files_executed)} observed build operations")
    observations = dependency_observations(observations)

    dependencies = resolve_dependencies(observations, diagnostics)
    bom = generate_cyclonedx(dependencies, config, diagnostics)

    out_path = write_bom(bom, _output_path(args.output, config, "build.cdx.json"))
    logger.info(f"Wrote {len(bom.components)} components to {out_path}")

    timer.stop("stopping build timer")
    logger.info(timer.elapsed("Elapsed time for build:"))
    _report(diagnostics)
    return 0


def merge(args: argparse.Namespace) -> int:
    config = _scan_config(args.config)
    diagnostics = Diagnostics()

    timer = Timer()
    timer.start("starting merge timer")

    boms = [read_bom(path) for path in args.inputs]
    merged = merge_boms(config, boms, merge_root_component=not args.keep_roots, diagnostics=diagnostics)

    out_path = write_bom(merged, _output_path(args.output, config, "merged.cdx.json"))
    logger.info(f"Merged {len(boms)} documents into {out_path}")

    timer.stop("stopping merge timer")
    logger.info(timer.elapsed("Elapsed time for merge:"))
    _report(diagnostics)
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog=Config.tool_name, description="Generate CycloneDX SBOMs from build observations.")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log debug output to the console.")
    sub = ap.add_subparsers(dest="command", required=True)

    build_ap = sub.add_parser("build", help="Resolve build observations against the OS package database.")
    build_ap.add_argument("--observations", required=True, help="Build observations file (trace log or JSON).")
    build_ap.add_argument("--working-directory", default=None, help="Build working directory; its files are ignored. Trace logs default to the current directory.")
    build_ap.add_argument("--config", default=None, help=f"Scan configuration (default: ./{Config.scan_config_file_name} if present).")
    build_ap.add_argument("--output", default=None, help="Path of the CycloneDX JSON document to write.")
    build_ap.set_defaults(handler=build)

    merge_ap = sub.add_parser("merge", help="Merge CycloneDX documents into one.")
    merge_ap.add_argument("--config", default=None, help="Scan configuration with metadata overrides.")
    merge_ap.add_argument("--output", default=None, help="Path of the merged CycloneDX JSON document.")
    merge_ap.add_argument(
        "--keep-roots",
        action="store_true",
        help="Keep the root component of every later document as a dependency of the first root.",
    )
    merge_ap.add_argument("inputs", nargs="+", help="CycloneDX JSON documents; the first one is merged into.")
    merge_ap.set_defaults(handler=merge)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    if args.verbose:
        set_console_level(logging.DEBUG)

    try:
        return args.handler(args)
    except SbomError as e:
        logger.error(str(e))
        return 1
    except OSError as e:
        logger.error(f"{e.filename or ''}: {e.strerror or e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
