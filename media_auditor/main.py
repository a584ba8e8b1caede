import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .core import MediaAuditor
from .exceptions import EnumerationError
from .metadata.extract import ExifToolTagProvider
from .models import ExecutionMode
from .scanning.filesystem import FileEnumerator


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Sets up logging to the console and, optionally, a file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("pymediainfo").setLevel(logging.WARNING)


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Media Auditor: fix extensions, reconcile timestamps and rename media by date"
    )

    p.add_argument("root", type=Path, help="Directory to audit")
    p.add_argument("--preview", action="store_true", help="Compute and report changes without modifying disk")
    p.add_argument("-r", "--recursive", action="store_true", help="Descend into subdirectories")
    p.add_argument("--workers", type=int, default=None, help="Parallel workers (default: CPU count)")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")

    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    root = args.root.resolve()

    setup_logging(args.verbose, args.log_file)

    mode = ExecutionMode.PREVIEW if args.preview else ExecutionMode.APPLY
    logging.info("=== Media Auditor Started ===")
    logging.info(f"Root:      {root}")
    logging.info(f"Recursive: {args.recursive}")
    logging.info(f"Mode:      {mode.value}")

    enumerator = FileEnumerator()
    try:
        # Counting pass only; the audit walks the tree again lazily
        total = sum(1 for _ in tqdm(enumerator.iter_files(root, args.recursive),
                                    desc="Counting", unit="file"))
    except EnumerationError as e:
        logging.error(str(e))
        return 1
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        return 1

    if not total:
        logging.info("No supported media files found.")
        return 0

    auditor = MediaAuditor(
        mode=mode,
        max_workers=args.workers,
        tag_provider=ExifToolTagProvider(),
    )
    try:
        paths = enumerator.iter_files(root, args.recursive)
    except EnumerationError as e:
        logging.error(str(e))
        return 1
    result = auditor.run(paths, total=total)

    if result.interrupted:
        logging.warning("Operation cancelled by user.")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
