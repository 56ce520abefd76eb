"""Command-line front end.

Usage:
    python -m cbz2epub.cli convert <path> [<path> ...] [--resolution N | --width W --height H]
    python -m cbz2epub.cli inspect <file.epub> [--output report.yaml]

`convert` accepts `.cbz` files and directories; directories are scanned
(non-recursively) for `.cbz` files. Each archive is written next to its
source with an `.epub` suffix unless `--output` is given.

Examples:
    python -m cbz2epub.cli convert "Berserk v01.cbz" --resolution 1200
    python -m cbz2epub.cli convert ./volumes --width 1072 --height 1448 -w 4
    python -m cbz2epub.cli inspect "Berserk v01.epub"
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import Config, find_config, load_config_file
from .converter import default_output_path
from .errors import ConversionError
from .reader import dump_summary, read_package
from .worker import convert_archives_parallel, print_summary

logger = logging.getLogger('cbz2epub')

LOGLEVEL_CHOICES = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "WARN"]


class ColorFormatter(logging.Formatter):
    """`<emoji> LEVEL: [archive] message` formatter, optionally ANSI-colored.

    Records from the per-archive loggers of a batch run
    (`cbz2epub.worker.<stem>`) are tagged with the archive stem, so output
    of parallel conversions can be told apart.
    """

    # level -> (emoji, ANSI color)
    STYLES = {
        'DEBUG': ('🔧', '\x1b[34m'),
        'INFO': ('✅', '\x1b[32m'),
        'WARNING': ('⚠️', '\x1b[33m'),
        'ERROR': ('❌', '\x1b[31m'),
        'CRITICAL': ('💥', '\x1b[31;1m'),
    }
    RESET = '\x1b[0m'
    ARCHIVE_LOGGER_PREFIX = 'cbz2epub.worker.'

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def archive_tag(self, record: logging.LogRecord) -> str:
        if record.name.startswith(self.ARCHIVE_LOGGER_PREFIX):
            return f"[{record.name[len(self.ARCHIVE_LOGGER_PREFIX):]}] "
        return ''

    def format(self, record: logging.LogRecord) -> str:
        emoji, color = self.STYLES.get(record.levelname, ('', ''))
        label = f"{emoji} {record.levelname}:"
        if self.use_color:
            label = f"{color}{label}{self.RESET}"
        text = f"{label} {self.archive_tag(record)}{record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def resolve_level(verbose: bool = False, loglevel: Optional[str] = None) -> int:
    """Return the numeric level: `loglevel` wins over `verbose`.

    >>> resolve_level(verbose=True)
    10
    >>> resolve_level(verbose=True, loglevel='warn')
    30
    """
    if loglevel:
        lvl = loglevel.upper()
        if lvl == 'WARN':
            lvl = 'WARNING'
        return getattr(logging, lvl, logging.INFO)
    return logging.DEBUG if verbose else logging.INFO


def setup_logging(verbose: bool = False, loglevel: Optional[str] = None, force_color: Optional[bool] = None):
    """Configure the root logger with `ColorFormatter` on stderr.

    - verbose -> DEBUG level, otherwise INFO
    - loglevel: explicit level name, overrides verbose
    - force_color: True/False to override TTY detection
    """
    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler()
    if force_color is None:
        stream = handler.stream
        use_color = hasattr(stream, "isatty") and stream.isatty()
    else:
        use_color = force_color

    handler.setFormatter(ColorFormatter(use_color))
    root.setLevel(resolve_level(verbose, loglevel))
    root.addHandler(handler)


def find_cbz_files(root: Path) -> List[Path]:
    """Return the `.cbz` files directly under `root`, sorted by name."""
    return sorted(
        p for p in root.iterdir()
        if p.is_file() and p.suffix.lower() == '.cbz'
    )


def _add_logging_args(parser: argparse.ArgumentParser):
    parser.add_argument('--verbose', action='store_true', help='verbose logging')
    parser.add_argument(
        '--loglevel', '-l',
        type=str,
        default=None,
        choices=LOGLEVEL_CHOICES,
        help='explicit log level (overrides --verbose)',
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog='cbz2epub',
        description='Convert comic archives (.cbz) into EPUB packages',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = p.add_subparsers(dest='command', help='command to execute')

    conv = sub.add_parser('convert', help='convert .cbz archives to .epub')
    conv.add_argument('paths', nargs='+', type=Path, help='.cbz files or directories holding them')
    conv.add_argument('--width', type=int, default=None, help='page width in pixels (default 800)')
    conv.add_argument('--height', type=int, default=None, help='page height in pixels (default 800)')
    conv.add_argument(
        '--resolution', '-r',
        type=int,
        default=None,
        help='square page size, e.g. 800 for 800x800 (--width/--height win over it)')
    conv.add_argument('--output', '-o', type=Path, default=None, help='destination file (single source only)')
    conv.add_argument('--config', '-c', type=Path, default=None, help='YAML config file (default: cbz2epub.yaml next to the sources)')
    conv.add_argument('--force-regen', action='store_true', help='regenerate output files even if they already exist')
    conv.add_argument('--dry-run', action='store_true', help="don't convert; just log what would be done")
    conv.add_argument('--nb-worker', '-w', type=int, default=None, help='number of worker processes (default 1)')
    _add_logging_args(conv)

    insp = sub.add_parser('inspect', help='print the manifest and spine of an .epub as YAML')
    insp.add_argument('epub', type=Path, help='EPUB file to inspect')
    insp.add_argument('--output', '-o', type=Path, default=None, help='write the YAML report to this file')
    _add_logging_args(insp)

    return p


def _build_config(args) -> Config:
    cfg = Config()

    cfg_file = args.config
    if cfg_file is None:
        first = args.paths[0]
        cfg_file = find_config(first if first.is_dir() else first.parent)
    elif not cfg_file.exists():
        raise ValueError(f"config file not found: {cfg_file}")
    if cfg_file is not None:
        logger.debug('loading config %s', cfg_file)
        cfg.apply_file_values(load_config_file(cfg_file))

    if args.resolution is not None:
        cfg.width = cfg.height = args.resolution
    if args.width is not None:
        cfg.width = args.width
    if args.height is not None:
        cfg.height = args.height
    if args.nb_worker is not None:
        cfg.nb_worker = args.nb_worker
    if args.loglevel:
        cfg.loglevel = args.loglevel
    cfg.verbose = args.verbose
    cfg.dry_run = args.dry_run
    cfg.force_regen = args.force_regen
    return cfg


def _collect_jobs(paths: List[Path], output: Optional[Path]):
    sources: List[Path] = []
    for path in paths:
        if path.is_dir():
            found = find_cbz_files(path)
            if not found:
                logger.warning('no .cbz files found under %s', path)
            sources.extend(found)
        elif path.is_file():
            sources.append(path)
        else:
            raise ValueError(f'path does not exist: {path}')

    unique: List[Path] = []
    seen = set()
    for src in sources:
        key = src.resolve()
        if key not in seen:
            seen.add(key)
            unique.append(src)

    if output is not None:
        if len(unique) != 1:
            raise ValueError('--output requires exactly one source archive')
        return [(unique[0], output)]

    jobs = [(src, default_output_path(src)) for src in unique]
    owners = {}
    for src, out in jobs:
        other = owners.setdefault(out.resolve(), src)
        if other is not src:
            raise ValueError(f'{other} and {src} would both write {out}')
    return jobs


def _run_convert(args) -> int:
    try:
        cfg = _build_config(args)
    except ValueError as e:
        setup_logging(args.verbose, loglevel=args.loglevel)
        logger.error(str(e))
        return 2

    setup_logging(cfg.verbose, loglevel=cfg.loglevel)

    try:
        size = cfg.dimensions.validate()
        jobs = _collect_jobs(args.paths, args.output)
    except (ConversionError, ValueError) as e:
        logger.error(str(e))
        return 2

    if not jobs:
        logger.warning('nothing to convert')
        return 0

    for src, out in jobs:
        logger.debug('%s -> %s', src, out)

    results = convert_archives_parallel(
        jobs,
        size.width,
        size.height,
        force_regen=cfg.force_regen,
        dry_run=cfg.dry_run,
        max_workers=cfg.nb_worker,
    )
    if len(jobs) > 1:
        print_summary(results)

    return 1 if results['failed'] else 0


def _run_inspect(args) -> int:
    setup_logging(args.verbose, loglevel=args.loglevel)
    try:
        summary = read_package(args.epub)
        text = dump_summary(summary, args.output)
    except ConversionError as e:
        logger.error(str(e))
        return 1
    if not args.output:
        print(text, end='')
    return 0


def main(argv=None) -> int:
    """Command-line entry point; returns the process exit code.

    Exit codes: 0 success, 1 a conversion or inspection failed, 2 invalid
    arguments or configuration.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    if args.command == 'convert':
        return _run_convert(args)
    elif args.command == 'inspect':
        return _run_inspect(args)
    return 0


if __name__ == '__main__':
    raise SystemExit(main(sys.argv[1:]))
