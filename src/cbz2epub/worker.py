"""Batch conversion loop with per-archive error handling and logging."""
from __future__ import annotations

import logging
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """Result of a single archive conversion."""
    source_path: Path
    output_path: Path | None
    success: bool
    skipped: bool = False
    error: str | None = None


def convert_single_archive(
    source: Path,
    out_path: Path,
    width: int,
    height: int,
    dry_run: bool = False,
    force_regen: bool = False,
) -> ConversionResult:
    """Convert one archive and report the outcome instead of raising.

    Runs in a worker process when called through `convert_archives_parallel`,
    so it only takes picklable arguments.
    """
    from .converter import convert_archive

    local_logger = logging.getLogger(f'cbz2epub.worker.{source.stem}')

    try:
        if out_path.exists() and not force_regen:
            local_logger.info('skipping existing output: %s', out_path)
            return ConversionResult(
                source_path=source,
                output_path=out_path,
                success=True,
                skipped=True,
            )

        result_path = convert_archive(
            source,
            out_path,
            width=width,
            height=height,
            dry_run=dry_run,
        )
        return ConversionResult(
            source_path=source,
            output_path=result_path,
            success=True,
        )

    except Exception as e:
        local_logger.error('conversion failed for %s: %s', source, e)
        return ConversionResult(
            source_path=source,
            output_path=None,
            success=False,
            error=str(e),
        )


def convert_archives_parallel(
    jobs: list[tuple[Path, Path]],
    width: int,
    height: int,
    force_regen: bool = False,
    dry_run: bool = False,
    max_workers: int | None = None,
) -> dict[str, list[Path]]:
    """Convert several archives, in parallel when `max_workers` > 1.

    Every conversion owns its scratch workspace, so conversions share no state.

    Args:
        jobs: (source archive, destination epub) pairs.
        width: target page width.
        height: target page height.
        force_regen: regenerate even if the destination exists.
        dry_run: don't actually convert.
        max_workers: worker processes (default: min(4, cpu_count)).

    Returns:
        Dict with 'success', 'skipped' and 'failed' lists of source paths.
    """
    if max_workers is None:
        max_workers = min(4, os.cpu_count() or 1)

    results: dict[str, list[Path]] = {'success': [], 'skipped': [], 'failed': []}

    def _record(result: ConversionResult):
        if not result.success:
            results['failed'].append(result.source_path)
        elif result.skipped:
            results['skipped'].append(result.source_path)
        else:
            results['success'].append(result.source_path)

    total = len(jobs)
    if max_workers <= 1 or total <= 1:
        for index, (source, out_path) in enumerate(jobs, 1):
            logger.debug('[%d/%d] %s', index, total, source.name)
            _record(convert_single_archive(source, out_path, width, height, dry_run, force_regen))
        return results

    logger.info('Starting parallel conversion with %d workers', max_workers)
    logger.info('Processing %d archives', total)

    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        future_to_source = {
            executor.submit(
                convert_single_archive,
                source,
                out_path,
                width,
                height,
                dry_run,
                force_regen,
            ): source
            for source, out_path in jobs
        }

        completed = 0
        for future in as_completed(future_to_source):
            completed += 1
            source = future_to_source[future]
            try:
                result = future.result()
            except Exception as e:
                # the worker process itself died
                logger.error('[%d/%d] Worker crashed for %s: %s', completed, total, source.name, e)
                results['failed'].append(source)
                continue

            logger.info('[%d/%d] Completed: %s', completed, total, source.name)
            if not result.success:
                logger.error('  Failed: %s', result.error)
            _record(result)

    return results


def print_summary(results: dict[str, list[Path]]):
    """Print a summary of conversion results."""
    success_count = len(results['success'])
    skipped_count = len(results.get('skipped', []))
    failed_count = len(results['failed'])
    total = success_count + skipped_count + failed_count

    print(f"\n{'='*60}")
    print("CONVERSION SUMMARY")
    print('='*60)
    print(f"Total archives:   {total}")
    print(f"✓ Converted:      {success_count}")
    print(f"⊘ Skipped:        {skipped_count}")
    print(f"✗ Failed:         {failed_count}")

    if results['failed']:
        print("\nFailed archives:")
        for src in results['failed']:
            print(f"  - {src.name}")

    print('='*60)
