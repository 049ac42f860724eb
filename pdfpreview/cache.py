# pdfpreview/cache.py
"""Preview image cache: directory layout, URLs, eviction and statistics.

The cache directory is a flat namespace of ``{doc_id}-p1.{ext}`` files under
the host's upload directory.  Processing records only hold a relative path
to their file, so every lookup re-checks the filesystem before handing a
path or URL out.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from .config import PdfPreviewConfig
from .models import CacheStats
from .store import RecordStore

logger = logging.getLogger(__name__)

CACHE_DIR_NAME = "pdfpreview-cache"
IMAGE_EXTENSIONS = ("webp", "jpg")
TEMP_FILE_GLOB = ".*.tmp"
LAST_CLEANUP_OPTION = "last_cleanup"

INDEX_FILE = "index.html"
INDEX_CONTENT = "<!-- Silence is golden. -->\n"

HTACCESS_FILE = ".htaccess"
HTACCESS_CONTENT = """# pdfpreview cache
Options -Indexes

# Prevent script execution
<FilesMatch "\\.(php|phtml|phar|py|cgi|pl|sh)$">
    Deny from all
</FilesMatch>

# Only allow image files
<FilesMatch "\\.(webp|jpg|jpeg|png)$">
    Allow from all
</FilesMatch>
"""

_FILENAME_RE = re.compile(r"^(\d+)(?:-p1)?$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheStore:
    """Owner of the on-disk preview cache.

    Parameters
    ----------
    config : Supplies the upload directory/URL and the retention window.
    store  : Processing records that reference cache files.
    now    : Clock used by :meth:`cleanup_old_files`; injectable for tests.
    """

    def __init__(
        self,
        config: PdfPreviewConfig,
        store: RecordStore,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config
        self.store = store
        self._now = now

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def cache_dir(self) -> Path:
        return self.config.uploads_path / CACHE_DIR_NAME

    def cache_url(self) -> str:
        return f"{self.config.upload_url.rstrip('/')}/{CACHE_DIR_NAME}/"

    @staticmethod
    def preview_filename(doc_id: int, extension: str = "webp") -> str:
        return f"{doc_id}-p1.{extension}"

    @staticmethod
    def relative_path(filename: str) -> str:
        return f"{CACHE_DIR_NAME}/{filename}"

    @staticmethod
    def filename_from_relative(relative_path: str) -> str:
        """Accept ``pdfpreview-cache/<file>`` as well as a bare ``<file>``."""
        prefix = f"{CACHE_DIR_NAME}/"
        if relative_path.startswith(prefix):
            relative_path = relative_path[len(prefix):]
        # Never let a stored path escape the cache directory.
        return Path(relative_path).name

    def ensure_directory(self) -> bool:
        """Create the cache directory and its guard files; idempotent."""
        cache_dir = self.cache_dir()
        try:
            cache_dir.mkdir(parents=True, exist_ok=True)

            index_file = cache_dir / INDEX_FILE
            if not index_file.exists():
                index_file.write_text(INDEX_CONTENT, encoding="utf-8")

            htaccess_file = cache_dir / HTACCESS_FILE
            if not htaccess_file.exists():
                htaccess_file.write_text(HTACCESS_CONTENT, encoding="utf-8")
        except OSError as exc:
            logger.error("Cannot prepare cache directory %s: %s", cache_dir, exc)
            return False
        return True

    def iter_files(self) -> list[Path]:
        """Cached image files, sorted by name."""
        cache_dir = self.cache_dir()
        if not cache_dir.is_dir():
            return []
        files: list[Path] = []
        for ext in IMAGE_EXTENSIONS:
            files.extend(p for p in cache_dir.glob(f"*.{ext}") if p.is_file())
        return sorted(files)

    def iter_temp_files(self) -> list[Path]:
        """Partial encoder output left behind by an interrupted write."""
        cache_dir = self.cache_dir()
        if not cache_dir.is_dir():
            return []
        return sorted(p for p in cache_dir.glob(TEMP_FILE_GLOB) if p.is_file())

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _existing_file(self, doc_id: int) -> Optional[Path]:
        record = self.store.get_record(doc_id)
        if record is None or not record.preview_relative_path:
            return None
        full_path = self.cache_dir() / self.filename_from_relative(record.preview_relative_path)
        if not full_path.is_file():
            return None
        return full_path

    def preview_path(self, doc_id: int) -> Optional[Path]:
        """Filesystem path of the preview, or None when missing on disk."""
        return self._existing_file(doc_id)

    def preview_url(self, doc_id: int) -> Optional[str]:
        """Public URL of the preview, or None when missing on disk."""
        full_path = self._existing_file(doc_id)
        if full_path is None:
            return None
        return self.cache_url() + full_path.name

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    @staticmethod
    def _unlink(path: Path) -> bool:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete %s: %s", path, exc)
            return False
        return True

    def remove_preview_files(self, doc_id: int, keep: Optional[Path] = None) -> int:
        """Delete every cached image belonging to *doc_id* except *keep*."""
        removed = 0
        for ext in IMAGE_EXTENSIONS:
            candidate = self.cache_dir() / self.preview_filename(doc_id, ext)
            if keep is not None and candidate == keep:
                continue
            if candidate.exists() and self._unlink(candidate):
                removed += 1
        return removed

    def delete_preview(self, doc_id: int) -> bool:
        """Remove the preview file and reset every preview field of the record."""
        self.remove_preview_files(doc_id)

        record = self.store.get_record(doc_id)
        if record is not None:
            record.clear_preview()
            self.store.save_record(record)
        logger.info("Deleted preview for document %s", doc_id)
        return True

    def clear_all(self) -> int:
        """Delete every cached image and wipe preview fields in one bulk write."""
        deleted = sum(1 for path in self.iter_files() if self._unlink(path))
        for path in self.iter_temp_files():
            self._unlink(path)
        self.store.clear_all_previews()
        logger.info("Cleared preview cache: %d file(s) deleted", deleted)
        return deleted

    def cleanup_old_files(self) -> int:
        """Evict files older than the retention window.

        A file still referenced by its document's record is removed through
        :meth:`delete_preview` so the record stays consistent; anything else
        is an orphan and is unlinked directly.  The run is stamped even when
        nothing qualified.
        """
        now = self._now()
        cutoff = (now - timedelta(days=self.config.cache_retention_days)).timestamp()
        deleted = 0

        for path in self.iter_files():
            try:
                mtime = path.stat().st_mtime
            except OSError:
                continue
            if mtime >= cutoff:
                continue

            handled = False
            match = _FILENAME_RE.match(path.stem)
            if match is not None:
                doc_id = int(match.group(1))
                record = self.store.get_record(doc_id)
                if (
                    doc_id > 0
                    and record is not None
                    and record.preview_relative_path
                    and self.filename_from_relative(record.preview_relative_path) == path.name
                ):
                    self.delete_preview(doc_id)
                    handled = not path.exists()

            if not handled and path.exists():
                handled = self._unlink(path)

            if handled:
                deleted += 1
                logger.debug("Evicted %s", path.name)

        for path in self.iter_temp_files():
            try:
                if path.stat().st_mtime < cutoff and self._unlink(path):
                    logger.debug("Removed stale temp file %s", path.name)
            except OSError:
                continue

        self.store.set_option(LAST_CLEANUP_OPTION, now)
        logger.info("Cache cleanup removed %d file(s)", deleted)
        return deleted

    def last_cleanup(self) -> Optional[datetime]:
        value = self.store.get_option(LAST_CLEANUP_OPTION)
        if not value:
            return None
        try:
            return datetime.fromisoformat(value)
        except (TypeError, ValueError):
            return None

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_stats(self) -> CacheStats:
        stats = CacheStats()
        oldest: Optional[float] = None
        for path in self.iter_files():
            try:
                st = path.stat()
            except OSError:
                continue
            stats.file_count += 1
            stats.total_size_bytes += st.st_size
            if oldest is None or st.st_mtime < oldest:
                oldest = st.st_mtime
        if oldest is not None:
            stats.oldest_file_timestamp = datetime.fromtimestamp(oldest, tz=timezone.utc)
        return stats
