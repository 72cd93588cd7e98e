from pathlib import Path
import argparse
import logging
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.config import get_settings
from app.core.db import session_scope
from app.core.logging import configure_logging
from app.services import LocalBlobStore, OrphanImageCleanupService

logger = logging.getLogger("scripts.cleanup_orphan_images")


def main() -> None:
    parser = argparse.ArgumentParser(description="Delete product image files no product references.")
    parser.add_argument("--dry-run", action="store_true", help="only report orphaned files")
    parser.add_argument("--grace-seconds", type=int, default=None, help="skip files newer than this")
    args = parser.parse_args()

    configure_logging()
    settings = get_settings()
    grace = args.grace_seconds if args.grace_seconds is not None else settings.ORPHAN_GRACE_SECONDS
    blob_store = LocalBlobStore(settings.product_image_root)
    with session_scope() as session:
        result = OrphanImageCleanupService(session, blob_store, grace_seconds=grace).run(dry_run=args.dry_run)
    logger.info("Orphan cleanup finished: %s", result)


if __name__ == "__main__":
    main()
