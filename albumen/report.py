"""Thread-safe accumulation of warnings, failures and counters for one build."""

import logging
import threading
from collections import Counter
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Issue:
    kind: str
    message: str
    path: Path | None = None
    fatal: bool = False

    def __str__(self):
        where = f"{self.path}: " if self.path is not None else ""
        return f"[{self.kind}] {where}{self.message}"


class BuildReport:
    """Collects per-item outcomes from any worker thread.

    Workers never raise across the pool; they record here instead and the
    orchestrator reads the totals once every stage has finished.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._issues: list[Issue] = []
        self._counts: Counter = Counter()

    def warn(self, kind: str, message: str, path: Path | None = None):
        self._add(Issue(kind, message, path))
        logger.warning("%s%s", f"{path}: " if path is not None else "", message)

    def fail(self, kind: str, message: str, path: Path | None = None):
        """Record a fatal condition; the build will exit nonzero."""
        self._add(Issue(kind, message, path, fatal=True))
        logger.error("%s%s", f"{path}: " if path is not None else "", message)

    def record_error(self, err, fatal: bool = False):
        kind = type(err).__name__
        message = str(err.args[0]) if err.args else kind
        path = getattr(err, "path", None)
        if fatal:
            self.fail(kind, message, path)
        else:
            self.warn(kind, message, path)

    def count(self, key: str, n: int = 1):
        with self._lock:
            self._counts[key] += n

    def _add(self, issue: Issue):
        with self._lock:
            self._issues.append(issue)

    @property
    def issues(self) -> list[Issue]:
        with self._lock:
            return list(self._issues)

    @property
    def warnings(self) -> list[Issue]:
        return [i for i in self.issues if not i.fatal]

    @property
    def fatal_issues(self) -> list[Issue]:
        return [i for i in self.issues if i.fatal]

    def __getitem__(self, key: str) -> int:
        with self._lock:
            return self._counts[key]

    @property
    def images_succeeded(self) -> int:
        return self["images_processed"] + self["images_skipped"]

    @property
    def ok(self) -> bool:
        return not self.fatal_issues

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def summary_lines(self) -> list[str]:
        lines = [
            f"Images:     {self.images_succeeded} succeeded "
            f"({self['images_processed']} processed, {self['images_skipped']} skipped), "
            f"{self['images_failed']} failed",
            f"Thumbnails: {self['thumbnails_written']} written, "
            f"{self['thumbnails_skipped']} up to date",
            f"Albums:     {self['albums_rendered']} rendered, "
            f"{self['albums_pruned']} pruned, {self['albums_failed']} failed",
        ]
        issues = self.issues
        if issues:
            lines.append(f"{len(issues)} issue(s):")
            lines.extend(f"  {issue}" for issue in issues)
        return lines

    def log_summary(self):
        for line in self.summary_lines():
            logger.info(line)
